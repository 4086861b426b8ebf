"""Request/response formats of the supported chat-completion backends.

The transport and the streaming pipeline only ever talk to a
:class:`ProviderFormat`; everything backend-specific lives here.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any, Sequence

from devti.errors import DecodeError, EncodeError
from devti.types import ChatTurn, CompletionDelta

DONE_SENTINEL = "[DONE]"


class ProviderFormat(ABC):
    """Encode requests for, and decode responses from, one backend."""

    name = "base"

    def build_request(
        self,
        turns: Sequence[ChatTurn],
        temperature: float,
        stream: bool,
    ) -> bytes:
        """Serialize the request body.  Identical inputs give identical bytes."""
        payload: dict[str, Any] = {
            "messages": [turn.to_message() for turn in turns],
            "temperature": temperature,
            "stream": stream,
        }
        try:
            text = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise EncodeError(f"Cannot encode request body: {e}") from e
        return text.encode("utf-8")

    def parse_response(self, body: bytes | str) -> CompletionDelta:
        """Decode a blocking response; only the first choice is read."""
        data = _load_json(body)
        return CompletionDelta(_content(data, "message"))

    @abstractmethod
    def parse_stream_event(self, payload: str) -> CompletionDelta | None:
        """Decode one SSE ``data`` payload.  ``None`` marks end of stream."""


class AzureOpenAIFormat(ProviderFormat):
    """Azure OpenAI deployments.

    Stream events carry the fragment under ``choices[0].message``; plain
    ``delta`` chunks from newer API versions are accepted too.
    """

    name = "azure"

    def parse_stream_event(self, payload: str) -> CompletionDelta | None:
        if payload.strip() == DONE_SENTINEL:
            return None
        return CompletionDelta(_content(_load_json(payload), "message", "delta"))


class OpenAIFormat(ProviderFormat):
    """OpenAI-compatible servers (OpenAI, LM Studio, vLLM, ...)."""

    name = "openai"

    def parse_stream_event(self, payload: str) -> CompletionDelta | None:
        if payload.strip() == DONE_SENTINEL:
            return None
        return CompletionDelta(_content(_load_json(payload), "delta"))


PROVIDER_FORMATS: dict[str, type[ProviderFormat]] = {
    AzureOpenAIFormat.name: AzureOpenAIFormat,
    OpenAIFormat.name: OpenAIFormat,
}


def get_format(name: str) -> ProviderFormat:
    """Instantiate the format registered as *name* (case-insensitive)."""
    try:
        return PROVIDER_FORMATS[name.lower()]()
    except KeyError:
        raise KeyError(f"Unknown provider format: {name!r}") from None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_json(body: bytes | str) -> dict[str, Any]:
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Invalid completion JSON: {e}", payload=text) from e
    if not isinstance(data, dict):
        raise DecodeError("Completion JSON is not an object", payload=text)
    return data


def _content(data: dict[str, Any], *keys: str) -> str:
    """Text of the first non-empty *keys* entry of ``choices[0]``.

    A missing or empty ``choices`` list is an empty fragment (role-only
    and usage chunks look like that); any other shape is a DecodeError.
    """
    choices = data.get("choices")
    if choices is None or choices == []:
        return ""
    if not isinstance(choices, list):
        raise _malformed("'choices' is not a list", data)
    choice = choices[0]
    if not isinstance(choice, dict):
        raise _malformed("choice is not an object", data)

    message = next((choice[k] for k in keys if choice.get(k)), None)
    if message is None:
        return ""
    if not isinstance(message, dict):
        raise _malformed(f"{keys[0]!r} is not an object", data)
    content = message.get("content")
    if content is None:
        return ""
    if not isinstance(content, str):
        raise _malformed("'content' is not a string", data)
    return content


def _malformed(reason: str, data: dict[str, Any]) -> DecodeError:
    return DecodeError(
        f"Malformed completion JSON: {reason}",
        payload=json.dumps(data, ensure_ascii=False),
    )
