"""
Conflict detection for collaborative operations.

An operation conflicts when it was created against an older document
version and its target no longer exists in a usable form:

- TARGET_REMOVED: the addressed block id is gone
- INDEX_STALE: an index-addressed target (or destination) is now out of range
- DUPLICATE_ID: an insert carries a block id the document already holds
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from ..document.document import Document
from ..exceptions import OperationConflictError
from .operations import Operation, OperationKind


class ConflictType(Enum):
    """Type of conflict detected."""

    TARGET_REMOVED = "target_removed"
    INDEX_STALE = "index_stale"
    DUPLICATE_ID = "duplicate_id"


@dataclass
class Conflict:
    """A detected conflict between an operation and the document.

    Attributes:
        operation: The conflicting operation
        conflict_type: Type of conflict
        document_version: Document version at detection time
        detected_at: When the conflict was detected
    """

    operation: Operation
    conflict_type: ConflictType
    document_version: int
    detected_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_error(self) -> OperationConflictError:
        """Build the exception reporting this conflict."""
        return OperationConflictError(
            op_id=self.operation.op_id,
            conflict_type=self.conflict_type.value,
            origin_version=self.operation.origin_version,
            document_version=self.document_version,
            target=self.operation.target,
        )

    @classmethod
    def from_error(cls, operation: Operation, error: OperationConflictError) -> Conflict:
        """Rebuild the conflict record from a raised OperationConflictError."""
        return cls(
            operation=operation,
            conflict_type=ConflictType(error.conflict_type),
            document_version=error.document_version,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "op_id": self.operation.op_id,
            "conflict_type": self.conflict_type.value,
            "origin_version": self.operation.origin_version,
            "document_version": self.document_version,
            "target": self.operation.target,
            "detected_at": self.detected_at.isoformat(),
        }


def detect_conflict(operation: Operation, document: Document) -> Conflict | None:
    """Check an operation against the document's current state.

    Operations created against the current (or a newer) version are never
    conflicts; any problem with them surfaces as an ordinary engine error
    when applied.

    Args:
        operation: Operation to check
        document: Document it would be applied to

    Returns:
        The conflict, or None if the operation can be applied
    """
    conflict_type = _classify(operation, document)
    if conflict_type is None:
        return None
    return Conflict(
        operation=operation,
        conflict_type=conflict_type,
        document_version=document.version,
    )


def _classify(operation: Operation, document: Document) -> ConflictType | None:
    length = len(document)

    if operation.kind == OperationKind.INSERT:
        block_id = operation.payload.get("block_id")
        if block_id is not None and block_id in document:
            return ConflictType.DUPLICATE_ID

    if operation.origin_version >= document.version:
        return None

    if operation.kind == OperationKind.INSERT:
        if not 0 <= operation.target_index <= length:
            return ConflictType.INDEX_STALE
        return None

    if operation.target_id is not None:
        if operation.target_id not in document:
            return ConflictType.TARGET_REMOVED
    elif not 0 <= operation.target_index < length:
        return ConflictType.INDEX_STALE

    if operation.kind == OperationKind.REORDER:
        to_index = operation.payload["to_index"]
        if not isinstance(to_index, int) or not 0 <= to_index < length:
            return ConflictType.INDEX_STALE
    return None
