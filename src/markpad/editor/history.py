"""Linear undo/redo history over whole-text snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

__all__ = ["ContentHistory", "HistoryPolicy"]


@dataclass(slots=True, frozen=True)
class HistoryPolicy:
    """Optional bound on how many snapshots a history retains.

    ``max_entries=None`` keeps every commit, one entry per call.
    """

    max_entries: Optional[int] = None

    def __post_init__(self) -> None:
        if self.max_entries is not None and self.max_entries < 1:
            raise ValueError("max_entries must be at least 1")


class ContentHistory:
    """Owns one document's text and a linear log of every committed value.

    ``entries[cursor]`` is always the current text. Committing discards any
    redo entries beyond the cursor before appending.
    """

    def __init__(self, initial: str = "", *, policy: HistoryPolicy | None = None) -> None:
        self._policy = policy or HistoryPolicy()
        self._entries: List[str] = [initial]
        self._cursor: int = 0

    @property
    def policy(self) -> HistoryPolicy:
        return self._policy

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def entries(self) -> tuple[str, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def current(self) -> str:
        return self._entries[self._cursor]

    def commit(self, text: str) -> int:
        """Append ``text`` as a new entry and return the new cursor."""

        if self._cursor < len(self._entries) - 1:
            del self._entries[self._cursor + 1 :]
        self._entries.append(text)
        self._cursor = len(self._entries) - 1
        self._enforce_cap()
        return self._cursor

    def can_undo(self) -> bool:
        return self._cursor > 0

    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    def undo(self) -> str:
        if self.can_undo():
            self._cursor -= 1
        return self._entries[self._cursor]

    def redo(self) -> str:
        if self.can_redo():
            self._cursor += 1
        return self._entries[self._cursor]

    def reset(self, text: str) -> None:
        """Drop every entry and reseed the history with ``text``."""

        self._entries = [text]
        self._cursor = 0

    def _enforce_cap(self) -> None:
        limit = self._policy.max_entries
        if limit is None:
            return
        overflow = len(self._entries) - limit
        if overflow <= 0:
            return
        del self._entries[:overflow]
        self._cursor = max(0, self._cursor - overflow)
