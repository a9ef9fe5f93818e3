"""
Bounded undo history for the active artifact.
"""

from collections import deque
from typing import Deque, List, Optional

DEFAULT_UNDO_CAPACITY = 20


class UndoStack:
    """Fixed-capacity stack of prior content snapshots.

    Pushing past capacity evicts the oldest snapshot from the bottom;
    pop always returns the most recent one.
    """

    def __init__(self, capacity: int = DEFAULT_UNDO_CAPACITY):
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        self.capacity = capacity
        self._frames: Deque[str] = deque(maxlen=capacity)

    def push(self, content: str) -> None:
        self._frames.append(content)

    def pop(self) -> Optional[str]:
        """Remove and return the newest snapshot, or None when empty."""
        if not self._frames:
            return None
        return self._frames.pop()

    def clear(self) -> None:
        self._frames.clear()

    def snapshots(self) -> List[str]:
        """Snapshots from oldest to newest."""
        return list(self._frames)

    def __len__(self) -> int:
        return len(self._frames)
