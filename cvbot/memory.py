"""cvbot/memory.py

Rolling conversation window.

The server keeps no conversation state: the browser (or the CLI) replays
prior turns with every request. This window trims that history to the last
N turns and makes sure what reaches the model starts with a user turn.
"""

from __future__ import annotations

# Standard Library
from collections.abc import Iterable
from typing import Any

# Local Modules
from cvbot.models import ChatTurn

VALID_ROLES = ("user", "assistant")


class RollingMemory:
    """Rolling window over the last ``max_messages`` chat turns."""

    def __init__(self, max_messages: int = 10) -> None:
        """Initialize an empty window.

        Args:
            max_messages: Maximum number of turns to retain. A value of 10
                covers about five back-and-forth exchanges.
        """
        self.max_messages = max_messages
        self._messages: list[dict[str, str]] = []

    @classmethod
    def from_turns(
        cls, turns: Iterable[ChatTurn | dict[str, Any]] | None, max_messages: int = 10
    ) -> RollingMemory:
        """Build a window from replayed history, skipping malformed turns."""
        memory = cls(max_messages=max_messages)
        for turn in turns or []:
            if isinstance(turn, ChatTurn):
                memory.add_message(turn.role, turn.content)
            elif isinstance(turn, dict):
                role = turn.get("role")
                content = turn.get("content")
                if role in VALID_ROLES and isinstance(content, str) and content.strip():
                    memory.add_message(role, content)
        return memory

    def add_message(self, role: str, content: str) -> None:
        """Append a turn, dropping the oldest once the window is full.

        Args:
            role: ``"user"`` or ``"assistant"``.
            content: The message text.
        """
        if role not in VALID_ROLES:
            raise ValueError(f"Unsupported chat role: {role!r}")
        self._messages.append({"role": role, "content": content})
        if len(self._messages) > self.max_messages:
            del self._messages[: len(self._messages) - self.max_messages]

    def get_context(self) -> list[dict[str, str]]:
        """Return the window with any leading assistant turns removed."""
        start = 0
        while start < len(self._messages) and self._messages[start]["role"] != "user":
            start += 1
        return [dict(message) for message in self._messages[start:]]

    def as_contents(self) -> list[dict[str, Any]]:
        """Return the window in the model service's ``contents`` format.

        Assistant turns use the service's ``model`` role.
        """
        return [
            {
                "role": "user" if message["role"] == "user" else "model",
                "parts": [{"text": message["content"]}],
            }
            for message in self.get_context()
        ]

    def clear(self) -> None:
        self._messages.clear()

    def message_count(self) -> int:
        return len(self._messages)
