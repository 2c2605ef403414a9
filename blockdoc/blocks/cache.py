"""
Per-block render cache.

Entries are keyed by block id and stamped with the configuration
version they were produced under. The owning document drops an entry
whenever the block changes and drops everything when the whole block
state is replaced (undo, redo, rollback, configuration swap).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CacheEntry:
    """A cached render result.

    Attributes:
        output: Renderer output
        stamp: Configuration version the output was produced with
    """

    output: Any
    stamp: int


class RenderCache:
    """Cached render outputs for the blocks of one document."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    def lookup(self, block_id: str, stamp: int) -> CacheEntry | None:
        """Get the entry for a block if it was produced under ``stamp``."""
        entry = self._entries.get(block_id)
        if entry is None or entry.stamp != stamp:
            return None
        return entry

    def store(self, block_id: str, output: Any, stamp: int) -> None:
        self._entries[block_id] = CacheEntry(output=output, stamp=stamp)

    def invalidate(self, block_id: str) -> None:
        """Drop one block's entry."""
        self._entries.pop(block_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, block_id: object) -> bool:
        return block_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
