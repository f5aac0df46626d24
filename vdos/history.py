"""Bounded command history with arrow-key style recall."""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterator, List

DEFAULT_HISTORY_LIMIT = 50


class CommandHistory:
    """Ring buffer of submitted lines plus a recall cursor.

    The cursor counts back from the newest entry: ``0`` selects the most
    recent line, ``-1`` means nothing is selected (blank input).
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("History limit must be positive")
        self._entries: Deque[str] = deque(maxlen=limit)
        self._cursor = -1

    @property
    def limit(self) -> int:
        return self._entries.maxlen or 0

    @property
    def cursor(self) -> int:
        return self._cursor

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def entries(self) -> List[str]:
        return list(self._entries)

    def push(self, line: str) -> None:
        """Append *line*, evicting the oldest entry once the limit is hit."""

        self._entries.append(line)
        self._cursor = -1

    def reset_cursor(self) -> None:
        self._cursor = -1

    def recall(self, direction: str) -> str:
        """Move the cursor ``"up"`` (older) or ``"down"`` (newer).

        Returns the selected line, or ``""`` once the cursor is back at "no
        selection". Recall never modifies the stored entries.
        """

        if direction == "up":
            if self._cursor < len(self._entries) - 1:
                self._cursor += 1
        elif direction == "down":
            if self._cursor > -1:
                self._cursor -= 1
        else:
            raise ValueError(f"Unknown recall direction: {direction}")

        if self._cursor < 0:
            return ""
        return self._entries[len(self._entries) - 1 - self._cursor]


__all__ = ["CommandHistory", "DEFAULT_HISTORY_LIMIT"]
