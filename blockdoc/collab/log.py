"""
Collaborative operation log.

Applies local and remote operations to a Document exactly once, keeps
them for replication, and reports conflicts per operation.

Merge order is ascending origin_version with ties broken by arrival
order. This is deterministic per log but not across replicas: two
participants receiving the same operations in a different order may
converge to different documents.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..document.document import Document
from ..exceptions import BlockDocumentError, OperationConflictError
from .conflict import Conflict, detect_conflict
from .operations import Operation, OperationKind

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    """Outcome of merging a batch of operations.

    Attributes:
        applied: Operations applied, in application order
        conflicts: Operations rejected because of a conflict
        rejected: Operations the document refused for another reason
        skipped: Operations already applied earlier (same op_id)
    """

    applied: list[Operation] = field(default_factory=list)
    conflicts: list[Conflict] = field(default_factory=list)
    rejected: list[tuple[Operation, BlockDocumentError]] = field(default_factory=list)
    skipped: list[Operation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True if no operation conflicted or was rejected."""
        return not self.conflicts and not self.rejected


class OperationLog:
    """Ordered log of operations applied to one document.

    Example:
        log = OperationLog(doc, origin="alice")
        op = log.record_insert(0, "text", {"content": "hi"})
        remote = OperationLog(replica, origin="bob")
        remote.merge_operations(log.get_operations(0))
    """

    def __init__(self, document: Document, origin: str = "local") -> None:
        """Initialize the log.

        Args:
            document: Document operations are applied to
            origin: Participant name stamped on locally recorded operations
        """
        self.document = document
        self.origin = origin
        self._operations: list[Operation] = []
        self._applied_ids: set[str] = set()

    @property
    def operations(self) -> list[Operation]:
        """Retained operations in application order."""
        return list(self._operations)

    def __len__(self) -> int:
        return len(self._operations)

    def has_applied(self, op_id: str) -> bool:
        """Check if an operation id has already been applied."""
        return op_id in self._applied_ids

    def apply_operation(self, operation: Operation) -> bool:
        """Apply one operation to the document.

        Args:
            operation: Operation to apply

        Returns:
            True if applied, False if this op_id was already applied

        Raises:
            OperationConflictError: If the operation is stale and its target is gone;
                the document is left unchanged
            BlockDocumentError: If the document rejects the mutation
        """
        if operation.op_id in self._applied_ids:
            logger.debug(f"Skipping already-applied operation {operation.op_id}")
            return False

        conflict = detect_conflict(operation, self.document)
        if conflict is not None:
            logger.warning(
                f"Operation {operation.op_id} ({operation.kind.value}) conflicts: "
                f"{conflict.conflict_type.value}",
                extra=self._log_context(operation),
            )
            raise conflict.to_error()

        self._execute(operation)
        operation.applied_version = self.document.version
        self._operations.append(operation)
        self._applied_ids.add(operation.op_id)
        logger.debug(
            f"Applied {operation.kind.value} operation {operation.op_id} "
            f"from {operation.origin} at version {operation.applied_version}"
        )
        return True

    def merge_operations(self, operations: list[Operation]) -> MergeResult:
        """Apply a batch of operations in ascending origin_version order.

        Conflicts and engine errors are collected per operation; the
        remaining operations are still applied.

        Args:
            operations: Operations in arrival order

        Returns:
            MergeResult describing every operation's outcome
        """
        result = MergeResult()
        for operation in sorted(operations, key=lambda op: op.origin_version):
            try:
                applied = self.apply_operation(operation)
            except OperationConflictError as e:
                result.conflicts.append(Conflict.from_error(operation, e))
                continue
            except BlockDocumentError as e:
                logger.warning(f"Operation {operation.op_id} rejected: {e.message}", extra=self._log_context(operation))
                result.rejected.append((operation, e))
                continue
            if applied:
                result.applied.append(operation)
            else:
                result.skipped.append(operation)

        if not result.ok:
            logger.info(
                f"Merged {len(result.applied)} operation(s); "
                f"{len(result.conflicts)} conflict(s), {len(result.rejected)} rejected"
            )
        return result

    def get_operations(self, from_version: int = 0) -> list[Operation]:
        """Get retained operations created at or after a version."""
        return [op for op in self._operations if op.origin_version >= from_version]

    def compact(self, before_version: int) -> int:
        """Drop retained operations created before a version.

        Their op_ids stay known, so they are still never re-applied.

        Returns:
            Number of operations dropped
        """
        kept = [op for op in self._operations if op.origin_version >= before_version]
        dropped = len(self._operations) - len(kept)
        self._operations = kept
        if dropped:
            logger.debug(f"Compacted {dropped} operation(s) before version {before_version}")
        return dropped

    # ------------------------------------------------------------------
    # Local recording
    # ------------------------------------------------------------------

    def record_insert(self, index: int, block_type: str, raw_data: Any) -> Operation:
        """Insert a block locally and log the operation."""
        return self._record(
            Operation.insert(self.document.version, index, block_type, raw_data, origin=self.origin)
        )

    def record_remove(self, block_id: str) -> Operation:
        """Remove a block locally and log the operation."""
        return self._record(
            Operation.remove(self.document.version, block_id=block_id, origin=self.origin)
        )

    def record_update(self, block_id: str, raw_data: Any) -> Operation:
        """Replace a block's data locally and log the operation."""
        return self._record(
            Operation.update(self.document.version, raw_data, block_id=block_id, origin=self.origin)
        )

    def record_reorder(self, block_id: str, to_index: int) -> Operation:
        """Move a block locally and log the operation."""
        return self._record(
            Operation.reorder(self.document.version, to_index, block_id=block_id, origin=self.origin)
        )

    def _record(self, operation: Operation) -> Operation:
        self.apply_operation(operation)
        return operation

    def _log_context(self, operation: Operation) -> dict[str, Any]:
        return {
            "document_id": self.document.document_id,
            "document_version": self.document.version,
            "block_id": operation.target_id,
            "op_id": operation.op_id,
        }

    def _execute(self, operation: Operation) -> None:
        document = self.document
        payload = operation.payload

        if operation.kind == OperationKind.INSERT:
            block = document.insert(
                operation.target_index,
                payload["type"],
                payload["raw_data"],
                block_id=payload.get("block_id"),
            )
            # Replicas must create the block under the same id
            payload["block_id"] = block.id
            return

        if operation.target_id is not None:
            index = document.index_of(operation.target_id)
        else:
            index = operation.target_index

        if operation.kind == OperationKind.REMOVE:
            document.remove(index)
        elif operation.kind == OperationKind.UPDATE:
            document.update(index, payload["raw_data"])
        elif operation.kind == OperationKind.REORDER:
            document.reorder(index, payload["to_index"])
