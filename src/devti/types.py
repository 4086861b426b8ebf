"""Shared data types for devti."""

from __future__ import annotations

import enum
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Conversation types
# ---------------------------------------------------------------------------

class ChatRole(str, enum.Enum):
    """Role of a chat turn, as sent to the backend."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatTurn:
    """A single turn in the conversation."""

    role: ChatRole
    content: str

    def to_message(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


# ---------------------------------------------------------------------------
# LLM types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CompletionDelta:
    """One fragment of generated text (a whole response in blocking mode)."""

    content: str = ""

    def __bool__(self) -> bool:
        return bool(self.content)


@dataclass(frozen=True)
class RecordingEntry:
    """A completed prompt/response exchange handed to a recording sink."""

    prompt: str
    full_response: str


class StreamState(enum.Enum):
    """Lifecycle of a streaming call."""

    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            StreamState.COMPLETED, StreamState.FAILED, StreamState.CANCELLED)
