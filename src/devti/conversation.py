"""Conversation history with a character-length budget."""

from __future__ import annotations

from devti.types import ChatRole, ChatTurn


class ConversationState:
    """Ordered chat turns plus the running length of their contents.

    ``history_length`` is a cheap stand-in for a token count.  Not
    thread-safe: one conversation belongs to one caller at a time.
    """

    def __init__(self) -> None:
        self._turns: list[ChatTurn] = []
        self._history_length = 0

    @property
    def turns(self) -> tuple[ChatTurn, ...]:
        return tuple(self._turns)

    @property
    def history_length(self) -> int:
        return self._history_length

    def __len__(self) -> int:
        return len(self._turns)

    def append(self, role: ChatRole | str, content: str) -> ChatTurn:
        """Add a turn to the end of the conversation."""
        turn = ChatTurn(role=ChatRole(role), content=content)
        self._turns.append(turn)
        self._history_length += len(content)
        return turn

    def clear(self) -> None:
        self._turns = []
        self._history_length = 0

    def should_reset(self, max_length: int, keep_history: bool = True) -> bool:
        """True when the next user turn must start a fresh conversation."""
        return self._history_length > max_length or not keep_history

    def to_messages(self) -> list[dict[str, str]]:
        return [turn.to_message() for turn in self._turns]
