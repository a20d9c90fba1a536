"""Linear undo/redo history over full schedule snapshots."""
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class HistoryController(Generic[T]):
    """
    Snapshot stack with a cursor.

    Pushing after an undo discards the redoable entries. The stack is bounded:
    once ``max_entries`` is exceeded the oldest snapshots are dropped.
    """

    def __init__(self, max_entries: Optional[int] = None):
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.entries: list[T] = []
        self.index = -1

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def can_undo(self) -> bool:
        return self.index > 0

    @property
    def can_redo(self) -> bool:
        return self.index < len(self.entries) - 1

    @property
    def current(self) -> Optional[T]:
        if self.index < 0:
            return None
        return self.entries[self.index]

    def push(self, snapshot: T) -> None:
        self.entries = self.entries[:self.index + 1]
        self.entries.append(snapshot)
        if self.max_entries is not None and len(self.entries) > self.max_entries:
            del self.entries[:len(self.entries) - self.max_entries]
        self.index = len(self.entries) - 1

    def undo(self) -> Optional[T]:
        if not self.can_undo:
            return None
        self.index -= 1
        return self.entries[self.index]

    def redo(self) -> Optional[T]:
        if not self.can_redo:
            return None
        self.index += 1
        return self.entries[self.index]

    def reset(self, snapshot: T) -> None:
        """Start a fresh history containing only ``snapshot``."""
        self.entries = [snapshot]
        self.index = 0
