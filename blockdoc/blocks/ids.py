"""
Block id allocation.

Ids have the form ``blk_{prefix}_{sequence}``. The prefix is random
per allocator unless configured, and the sequence is monotonic, so
ids minted by different documents do not collide and an id is never
handed out twice by the same allocator.
"""

from __future__ import annotations

import uuid

ID_PREFIX = "blk"


def block_id(prefix: str, sequence: int) -> str:
    """Generate a block id."""
    return f"{ID_PREFIX}_{prefix}_{sequence}"


def parse_block_id(value: str) -> tuple[str, int]:
    """Extract (prefix, sequence) from a generated block id.

    Raises ValueError on ids not produced by ``block_id``.
    """
    try:
        head, prefix, sequence = value.split("_", 2)
        if head != ID_PREFIX or not prefix or not sequence:
            raise ValueError
        return prefix, int(sequence)
    except ValueError:
        raise ValueError(f"Malformed block id: {value}") from None


class BlockIdAllocator:
    """Allocates unique block ids for one document.

    Every id handed out or observed (e.g. preserved from a snapshot or
    received from a remote operation) is remembered, so retired ids are
    never reassigned.
    """

    def __init__(self, prefix: str | None = None, start: int = 1) -> None:
        """Initialize the allocator.

        Args:
            prefix: Id prefix; defaults to 8 random hex characters
            start: First sequence number
        """
        self.prefix = prefix or uuid.uuid4().hex[:8]
        self._current = start - 1
        self._issued: set[str] = set()

    def next_id(self) -> str:
        """Allocate a fresh id."""
        while True:
            self._current += 1
            candidate = block_id(self.prefix, self._current)
            if candidate not in self._issued:
                self._issued.add(candidate)
                return candidate

    def observe(self, value: str) -> None:
        """Record an externally supplied id so it is never allocated again.

        If the id carries this allocator's prefix, the sequence is advanced
        past it.
        """
        self._issued.add(value)
        try:
            prefix, sequence = parse_block_id(value)
        except ValueError:
            return
        if prefix == self.prefix and sequence > self._current:
            self._current = sequence

    def was_issued(self, value: str) -> bool:
        """Check whether an id has been allocated or observed."""
        return value in self._issued

    def get_current(self) -> int:
        """Get current sequence (last allocated)."""
        return self._current
