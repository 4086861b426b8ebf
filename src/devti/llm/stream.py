"""Bridge from a push-based SSE connection to a pull-based fragment stream.

A background task reads the connection, decodes events and pushes text
fragments into a bounded queue; the consumer pulls them with ``async for``.
A full queue blocks the reader, so a slow consumer never makes fragments
pile up in memory.

Lifecycle::

    IDLE -> SENDING -> STREAMING -> COMPLETED | FAILED | CANCELLED

``COMPLETED``/``FAILED`` are entered when the consumer sees the end of the
sequence, and only then is the exchange recorded.  Leaving early (``break``
out of ``async for``, or ``aclose()``) means ``CANCELLED``: the reader is
cancelled, the connection released, and nothing is recorded.

Consumers see a plain end of sequence even on failure; check ``state`` and
``error`` afterwards to tell the two apart.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from typing import AsyncIterator, Mapping

from devti.errors import DecodeError, LLMError, StreamTerminalError
from devti.llm.provider import ProviderFormat
from devti.llm.sse import aiter_payloads
from devti.llm.transport import Transport
from devti.recording import EmptyRecording, Recording, safe_write
from devti.types import RecordingEntry, StreamState

_logger = logging.getLogger(__name__)

# Queued after the last fragment
_END = object()


class StreamingPipeline:
    """Ordered, cancellable stream of completion fragments for one call."""

    def __init__(
        self,
        transport: Transport,
        provider: ProviderFormat,
        url: str,
        body: bytes,
        prompt: str,
        headers: Mapping[str, str] | None = None,
        recording: Recording | None = None,
        queue_size: int = 16,
    ) -> None:
        self._transport = transport
        self._provider = provider
        self._url = url
        self._body = body
        self._headers = dict(headers or {})
        self._recording = recording or EmptyRecording()
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=queue_size)
        self._task: asyncio.Task[None] | None = None
        self._outcome = StreamState.COMPLETED

        self.prompt = prompt
        self.state = StreamState.IDLE
        self.error: LLMError | None = None
        self.output = ""  # every fragment read so far, concatenated

    # ------------------------------------------------------------------
    # Consumer API
    # ------------------------------------------------------------------

    def __aiter__(self) -> AsyncIterator[str]:
        return self._fragments()

    async def _fragments(self) -> AsyncIterator[str]:
        # Finalizing this generator (also after a bare `break`) closes the stream.
        try:
            while True:
                try:
                    fragment = await self.__anext__()
                except StopAsyncIteration:
                    return
                yield fragment
        finally:
            await self.aclose()

    async def __anext__(self) -> str:
        if self.state is StreamState.IDLE:
            self._start()
        if self.state.is_terminal:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            self._finish()
            raise StopAsyncIteration
        return item  # type: ignore[return-value]

    async def __aenter__(self) -> StreamingPipeline:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Abandon the stream: stop the reader and release the connection."""
        if self.state.is_terminal:
            return
        previous = self.state
        self.state = StreamState.CANCELLED
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
        _logger.debug("Stream cancelled (was %s)", previous.value)

    async def collect(self) -> str:
        """Drain the stream and return the full text."""
        async with self:
            async for _ in self:
                pass
        return self.output

    # ------------------------------------------------------------------
    # Reader task
    # ------------------------------------------------------------------

    def _start(self) -> None:
        self.state = StreamState.SENDING
        self._task = asyncio.create_task(self._read())

    async def _read(self) -> None:
        try:
            async with self._transport.open_stream(
                self._url, self._body, self._headers,
            ) as chunks:
                if self.state is StreamState.SENDING:
                    self.state = StreamState.STREAMING
                async with aclosing(aiter_payloads(chunks)) as payloads:
                    async for payload in payloads:
                        if not await self._handle(payload):
                            break
        except LLMError as e:
            _logger.error("LLM stream failed: %s", e)
            self._fail(e)
        except Exception as e:
            _logger.exception("Unexpected error while reading LLM stream")
            self._fail(StreamTerminalError(f"Unexpected stream error: {e!r}"))
        await self._queue.put(_END)

    async def _handle(self, payload: str) -> bool:
        """Forward one event's fragment.  False once the stream is over."""
        try:
            delta = self._provider.parse_stream_event(payload)
        except DecodeError as e:
            _logger.warning("Skipping malformed stream event: %s (%.200s)", e, e.payload)
            return True
        if delta is None:
            return False
        if delta.content:
            self.output += delta.content
            await self._queue.put(delta.content)
        return True

    def _fail(self, error: LLMError) -> None:
        self.error = error
        self._outcome = StreamState.FAILED

    def _finish(self) -> None:
        self.state = self._outcome
        _logger.debug(
            "Stream %s after %d chars", self.state.value, len(self.output),
        )
        safe_write(self._recording, RecordingEntry(self.prompt, self.output))
