"""Incremental Server-Sent-Events decoder.

Only the ``data`` field matters to chat-completion streams: ``event``,
``id`` and ``retry`` fields and ``:`` comment lines are ignored.  Reads
may split lines (and UTF-8 sequences) anywhere.
"""

from __future__ import annotations

import codecs
import logging
import re
from typing import AsyncIterable, AsyncIterator

from devti.llm.provider import DONE_SENTINEL

_logger = logging.getLogger(__name__)

_LINE_END = re.compile(r"\r\n|\r|\n")


class SSEDecoder:
    """Turn raw byte chunks into SSE ``data`` payloads."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._data: list[str] = []

    def feed(self, chunk: bytes) -> list[str]:
        """Consume *chunk*; return the payloads of every event it completed."""
        self._buffer += self._decoder.decode(chunk)
        return self._drain_lines()

    def flush(self) -> list[str]:
        """End of input: complete any trailing line and unterminated event."""
        self._buffer += self._decoder.decode(b"", final=True)
        payloads = self._drain_lines()
        if self._buffer:
            # a lone trailing "\r" is still a line terminator at EOF
            self._handle_line(self._buffer.rstrip("\r"), payloads)
            self._buffer = ""
        if self._data:
            payloads.append("\n".join(self._data))
            self._data = []
        return payloads

    def _drain_lines(self) -> list[str]:
        payloads: list[str] = []
        buffer = self._buffer
        start = 0
        for match in _LINE_END.finditer(buffer):
            # CRLF counts as one terminator, but only once both halves arrived
            if match.group() == "\r" and match.end() == len(buffer):
                break
            self._handle_line(buffer[start:match.start()], payloads)
            start = match.end()
        self._buffer = buffer[start:]
        return payloads

    def _handle_line(self, line: str, payloads: list[str]) -> None:
        if not line:
            if self._data:
                payloads.append("\n".join(self._data))
                self._data = []
            return
        if line.startswith(":"):
            return
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "data":
            self._data.append(value)


async def aiter_payloads(chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """Yield SSE payloads from *chunks* until ``[DONE]`` or end of input.

    Errors raised by *chunks* propagate unchanged.
    """
    decoder = SSEDecoder()
    async for chunk in chunks:
        for payload in decoder.feed(chunk):
            if payload.strip() == DONE_SENTINEL:
                _logger.debug("SSE stream reached %s", DONE_SENTINEL)
                return
            yield payload
    for payload in decoder.flush():
        if payload.strip() == DONE_SENTINEL:
            return
        yield payload


def encode_event(payload: str) -> bytes:
    """Frame *payload* as one SSE event."""
    lines = payload.split("\n")
    return ("".join(f"data: {line}\n" for line in lines) + "\n").encode("utf-8")
