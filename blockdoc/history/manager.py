"""
Linear undo/redo history.

History entries are immutable snapshots of the full ordered block
state. The undo stack is bounded: once ``max_depth`` entries are held,
committing a new entry evicts the oldest one.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime

from ..blocks.types import BlockState

logger = logging.getLogger(__name__)

DocumentState = tuple[BlockState, ...]


@dataclass(frozen=True)
class HistoryEntry:
    """Snapshot captured before one logical user action.

    Attributes:
        states: Ordered block states to restore
        label: Name of the action (e.g. "insert", "replace")
        created_at: When the entry was recorded
    """

    states: DocumentState
    label: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class HistoryManager:
    """Bounded undo stack plus redo stack.

    The manager stores states; it does not touch documents. The
    document hands in its current state on undo/redo and restores
    whatever state comes back.
    """

    def __init__(self, max_depth: int = 100) -> None:
        """Initialize the history.

        Args:
            max_depth: Maximum number of undo entries retained
        """
        if max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {max_depth}")
        self.max_depth = max_depth
        self._undo: deque[HistoryEntry] = deque(maxlen=max_depth)
        self._redo: list[HistoryEntry] = []
        self._suspended = 0

    def commit(self, states: DocumentState, label: str = "edit") -> bool:
        """Record the state preceding a mutation.

        Clears the redo stack: a new action invalidates redo history.

        Returns:
            False if history is suspended and nothing was recorded
        """
        if self._suspended:
            return False
        if len(self._undo) == self.max_depth:
            evicted = self._undo[0]
            logger.debug(f"History full, evicting oldest entry {evicted.label!r}")
        self._undo.append(HistoryEntry(states=tuple(states), label=label))
        self._redo.clear()
        return True

    def undo(self, current: DocumentState) -> DocumentState | None:
        """Pop the newest entry, pushing the current state onto the redo stack.

        Returns:
            State to restore, or None if there is nothing to undo
        """
        if not self._undo:
            return None
        entry = self._undo.pop()
        self._redo.append(HistoryEntry(states=tuple(current), label=entry.label))
        return entry.states

    def redo(self, current: DocumentState) -> DocumentState | None:
        """Pop the newest redo entry, pushing the current state onto the undo stack.

        Returns:
            State to restore, or None if there is nothing to redo
        """
        if not self._redo:
            return None
        entry = self._redo.pop()
        self._undo.append(HistoryEntry(states=tuple(current), label=entry.label))
        return entry.states

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    @property
    def is_suspended(self) -> bool:
        return self._suspended > 0

    def undo_labels(self) -> list[str]:
        """Labels of undoable actions, newest first."""
        return [entry.label for entry in reversed(self._undo)]

    def block_types(self) -> set[str]:
        """Block type tags referenced by any undo or redo entry."""
        return {
            state.type
            for entry in (*self._undo, *self._redo)
            for state in entry.states
        }

    def clear(self) -> None:
        """Drop all undo and redo entries."""
        self._undo.clear()
        self._redo.clear()

    @contextmanager
    def suspended(self) -> Iterator[HistoryManager]:
        """Suspend recording for the duration of the block. Nests."""
        self._suspended += 1
        try:
            yield self
        finally:
            self._suspended -= 1
