"""
Operation records for collaborative editing.

An Operation is a versioned, replayable description of one document
mutation. Operations target blocks either by id (preferred, survives
concurrent reordering) or by index.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class OperationKind(Enum):
    """Kind of document mutation an operation describes."""

    INSERT = "insert"
    REMOVE = "remove"
    UPDATE = "update"
    REORDER = "reorder"


@dataclass
class Operation:
    """One replayable document mutation.

    Payload by kind:
        insert:  {"type": str, "raw_data": Any, "block_id": str (optional)}
        update:  {"raw_data": Any}
        reorder: {"to_index": int}
        remove:  {}

    Attributes:
        kind: Mutation kind
        origin_version: Document version the operation was created against
        target_index: Index addressed (insert position, or fallback target)
        target_id: Id of the addressed block
        payload: Kind-specific data
        origin: Participant that created the operation
        op_id: Unique operation identifier (idempotency key)
        timestamp: Creation time
        applied_version: Document version after local application
    """

    kind: OperationKind
    origin_version: int
    target_index: int | None = None
    target_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    origin: str = "local"
    op_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    applied_version: int | None = None

    def __post_init__(self) -> None:
        if self.origin_version < 0:
            raise ValueError(f"origin_version must be >= 0, got {self.origin_version}")
        if self.kind == OperationKind.INSERT:
            if self.target_index is None:
                raise ValueError("insert operations need a target_index")
            if "type" not in self.payload or "raw_data" not in self.payload:
                raise ValueError("insert payload needs 'type' and 'raw_data'")
        elif self.target_id is None and self.target_index is None:
            raise ValueError(f"{self.kind.value} operations need a target_id or target_index")
        if self.kind == OperationKind.UPDATE and "raw_data" not in self.payload:
            raise ValueError("update payload needs 'raw_data'")
        if self.kind == OperationKind.REORDER and "to_index" not in self.payload:
            raise ValueError("reorder payload needs 'to_index'")

    @property
    def target(self) -> str | int | None:
        """The addressed block id, or the index when no id is set."""
        return self.target_id if self.target_id is not None else self.target_index

    @classmethod
    def insert(
        cls,
        origin_version: int,
        index: int,
        block_type: str,
        raw_data: Any,
        *,
        block_id: str | None = None,
        origin: str = "local",
    ) -> Operation:
        """Create an insert operation."""
        payload: dict[str, Any] = {"type": block_type, "raw_data": copy.deepcopy(raw_data)}
        if block_id is not None:
            payload["block_id"] = block_id
        return cls(
            kind=OperationKind.INSERT,
            origin_version=origin_version,
            target_index=index,
            payload=payload,
            origin=origin,
        )

    @classmethod
    def remove(
        cls,
        origin_version: int,
        *,
        block_id: str | None = None,
        index: int | None = None,
        origin: str = "local",
    ) -> Operation:
        """Create a remove operation."""
        return cls(
            kind=OperationKind.REMOVE,
            origin_version=origin_version,
            target_index=index,
            target_id=block_id,
            origin=origin,
        )

    @classmethod
    def update(
        cls,
        origin_version: int,
        raw_data: Any,
        *,
        block_id: str | None = None,
        index: int | None = None,
        origin: str = "local",
    ) -> Operation:
        """Create an update operation replacing a block's data."""
        return cls(
            kind=OperationKind.UPDATE,
            origin_version=origin_version,
            target_index=index,
            target_id=block_id,
            payload={"raw_data": copy.deepcopy(raw_data)},
            origin=origin,
        )

    @classmethod
    def reorder(
        cls,
        origin_version: int,
        to_index: int,
        *,
        block_id: str | None = None,
        from_index: int | None = None,
        origin: str = "local",
    ) -> Operation:
        """Create an operation moving one block to ``to_index``."""
        return cls(
            kind=OperationKind.REORDER,
            origin_version=origin_version,
            target_index=from_index,
            target_id=block_id,
            payload={"to_index": to_index},
            origin=origin,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for transport."""
        return {
            "op_id": self.op_id,
            "kind": self.kind.value,
            "origin_version": self.origin_version,
            "target_index": self.target_index,
            "target_id": self.target_id,
            "payload": copy.deepcopy(self.payload),
            "origin": self.origin,
            "timestamp": self.timestamp.isoformat(),
            "applied_version": self.applied_version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Operation:
        """Create from dictionary.

        The receiver's applied_version is never taken from the sender.
        """
        timestamp = data.get("timestamp")
        return cls(
            kind=OperationKind(data["kind"]),
            origin_version=data["origin_version"],
            target_index=data.get("target_index"),
            target_id=data.get("target_id"),
            payload=copy.deepcopy(data.get("payload") or {}),
            origin=data.get("origin", "remote"),
            op_id=data["op_id"],
            timestamp=datetime.fromisoformat(timestamp) if timestamp else datetime.now(UTC),
        )
