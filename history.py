"""Undo/redo over whole layer-stack snapshots."""

import logging
from collections import deque

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50


class HistoryManager:
    """Bounded undo and redo stacks of deep-copied layer stacks.

    Both stacks hold at most ``limit`` entries; pushing past the limit drops
    the oldest entry. Taking a new snapshot clears the redo stack.
    """

    def __init__(self, limit: int = HISTORY_LIMIT):
        self.limit = limit
        self.undo_stack = deque(maxlen=limit)
        self.redo_stack = deque(maxlen=limit)

    def snapshot(self, stack):
        """Record ``stack`` as it is right before a mutating action."""
        if len(self.undo_stack) == self.limit:
            logger.debug("Undo history full, evicting oldest entry")
        self.undo_stack.append(stack.clone())
        self.redo_stack.clear()

    def undo(self, current_stack):
        """Return the previous stack, or None if there is nothing to undo."""
        if not self.undo_stack:
            return None
        self.redo_stack.append(current_stack.clone())
        return self.undo_stack.pop()

    def redo(self, current_stack):
        """Return the next stack, or None if there is nothing to redo."""
        if not self.redo_stack:
            return None
        self.undo_stack.append(current_stack.clone())
        return self.redo_stack.pop()

    def can_undo(self) -> bool:
        return len(self.undo_stack) > 0

    def can_redo(self) -> bool:
        return len(self.redo_stack) > 0

    def get_stats(self) -> dict:
        return {
            'undo_count': len(self.undo_stack),
            'redo_count': len(self.redo_stack),
            'limit': self.limit,
            'undo_full': len(self.undo_stack) >= self.limit,
        }
