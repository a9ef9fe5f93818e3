"""
Tests for the bounded undo stack.
"""
import pytest

from creation_studio.core.undo import UndoStack


class TestUndoStack:
    """Test FIFO eviction with LIFO access."""

    def test_pop_returns_newest(self):
        stack = UndoStack()
        stack.push("a")
        stack.push("b")
        assert stack.pop() == "b"
        assert stack.pop() == "a"

    def test_pop_empty_returns_none(self):
        assert UndoStack().pop() is None

    def test_evicts_oldest_past_capacity(self):
        """Test pushing past capacity drops from the bottom."""
        stack = UndoStack(capacity=20)
        for i in range(25):
            stack.push(f"v{i}")
        assert len(stack) == 20
        assert stack.snapshots() == [f"v{i}" for i in range(5, 25)]
        assert stack.pop() == "v24"

    def test_clear(self):
        stack = UndoStack()
        stack.push("a")
        stack.clear()
        assert len(stack) == 0

    def test_invalid_capacity(self):
        with pytest.raises(ValueError, match="capacity must be > 0"):
            UndoStack(capacity=0)
