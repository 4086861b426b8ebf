"""Chat client for Azure/OpenAI-compatible completion endpoints.

One :class:`ChatClient` holds one conversation.  Calls must not overlap:
the history is mutated without locking.
"""

from __future__ import annotations

import logging

from devti.config import DevtiConfig
from devti.context import ClassContext, build_prompt
from devti.conversation import ConversationState
from devti.errors import (
    ConnectError,
    DecodeError,
    HttpStatusError,
    RequestTimeoutError,
)
from devti.llm.provider import ProviderFormat, get_format
from devti.llm.stream import StreamingPipeline
from devti.llm.transport import Transport
from devti.recording import Recording, recording_for, safe_write
from devti.types import ChatRole, RecordingEntry

_logger = logging.getLogger(__name__)


class ChatClient:
    """Send prompts with conversation history, blocking or streamed.

    ``base_url``, ``api_key``, the history budget and the recording toggle
    are read from *config* on every call, so editing the config object
    takes effect on the next prompt.
    """

    def __init__(
        self,
        config: DevtiConfig | None = None,
        transport: Transport | None = None,
        recording: Recording | None = None,
        provider: ProviderFormat | None = None,
    ) -> None:
        self.config = config or DevtiConfig()
        self.history = ConversationState()
        self._owns_transport = transport is None
        self._transport = transport or Transport(timeout=self.config.llm.timeout)
        self._recording = recording
        self._provider = provider or get_format(self.config.llm.provider)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def append_local_message(self, msg: str, role: ChatRole | str = ChatRole.USER) -> None:
        """Add a turn that was produced locally (e.g. a reply shown in the UI)."""
        self.history.append(role, msg)

    def clear_message(self) -> None:
        self.history.clear()

    # ------------------------------------------------------------------
    # Blocking
    # ------------------------------------------------------------------

    async def prompt(
        self,
        instruction: str,
        input: str = "",
        context: ClassContext | None = None,
    ) -> str:
        """Send one user turn and wait for the whole answer.

        Returns ``""`` when the backend fails (non-2xx, unreachable, timed
        out, unreadable body); the failure is logged and the history kept.
        """
        prompt_text = build_prompt(f"{instruction}\n{input}", context)
        llm = self.config.llm
        if self.history.should_reset(llm.max_token_length, not self.config.coder.no_chat_history):
            self.history.clear()
        self.history.append(ChatRole.USER, prompt_text)

        body = self._provider.build_request(self.history.turns, llm.temperature, stream=False)
        try:
            raw = await self._transport.post(llm.url, body, self._auth_headers())
            content = self._provider.parse_response(raw).content
        except HttpStatusError as e:
            _logger.error("LLM request failed with status %d: %.500s", e.status, e.body)
            return ""
        except (ConnectError, RequestTimeoutError) as e:
            _logger.error("LLM request failed: %s", e)
            return ""
        except DecodeError as e:
            _logger.error("Unreadable LLM response: %s", e)
            return ""

        safe_write(self._current_recording(), RecordingEntry(prompt_text, content))
        return content

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def stream(
        self,
        prompt: str,
        system_prompt: str = "",
        keep_history: bool = True,
        context: ClassContext | None = None,
    ) -> StreamingPipeline:
        """Queue one user turn and return its (not yet started) fragment stream.

        The request goes out when the stream is first iterated.  Use it as
        ``async with client.stream(...) as s: async for text in s: ...`` so
        that leaving early releases the connection.
        """
        prompt_text = build_prompt(f"{prompt}\n", context)
        llm = self.config.llm
        if self.history.should_reset(llm.max_token_length, keep_history):
            self.history.clear()
        if system_prompt and not len(self.history):
            self.history.append(ChatRole.SYSTEM, system_prompt)
        self.history.append(ChatRole.USER, prompt_text)

        body = self._provider.build_request(self.history.turns, llm.temperature, stream=True)
        return StreamingPipeline(
            self._transport,
            self._provider,
            url=llm.url,
            body=body,
            prompt=prompt,
            headers=self._auth_headers(),
            recording=self._current_recording(),
            queue_size=self.config.stream.queue_size,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _current_recording(self) -> Recording:
        if self._recording is not None:
            return self._recording
        return recording_for(self.config)

    def _auth_headers(self) -> dict[str, str]:
        key = self.config.llm.api_key
        if not key:
            return {}
        return {"Authorization": f"Bearer {key}", "api-key": key}

    async def aclose(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport:
            await self._transport.aclose()

    async def __aenter__(self) -> ChatClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
