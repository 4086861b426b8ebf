"""Error taxonomy for LLM calls.

``httpx`` exceptions are translated into these at the transport boundary,
so nothing above ``devti.llm.transport`` needs to know about ``httpx``.
"""

from __future__ import annotations


class LLMError(Exception):
    """Base class for all failures of a single LLM call."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class EncodeError(LLMError):
    """The request body could not be serialized.  Fatal for the call."""


class ConnectError(LLMError):
    """The connection could not be established."""


class RequestTimeoutError(LLMError, TimeoutError):
    """The call exceeded the configured read timeout."""


class HttpStatusError(LLMError):
    """The backend answered with a non-2xx status."""

    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}: {body[:500]}")


class DecodeError(LLMError):
    """A response body or a single SSE event was not valid completion JSON."""

    def __init__(self, message: str, payload: str = "") -> None:
        self.payload = payload
        super().__init__(message)


class StreamTerminalError(LLMError):
    """The transport failed after the stream had started."""
