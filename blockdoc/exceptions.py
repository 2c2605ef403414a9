"""
Custom exceptions for the block document engine.

All components raise these exceptions so callers can handle
structural violations, rendering problems and merge conflicts
consistently.
"""

from __future__ import annotations

from typing import Any


class BlockDocumentError(Exception):
    """Base exception for all block document errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class IndexOutOfBoundsError(BlockDocumentError):
    """Raised when an index does not address a valid position."""

    def __init__(self, index: int, length: int, *, allow_end: bool = False):
        upper = length if allow_end else length - 1
        super().__init__(
            f"Index {index} out of bounds for document of length {length} "
            f"(valid range: 0..{upper})",
            {"index": index, "length": length, "allow_end": allow_end},
        )
        self.index = index
        self.length = length
        self.allow_end = allow_end


class InvalidOrderError(BlockDocumentError):
    """Raised when a rearrangement is not a permutation of the current indices."""

    def __init__(self, new_order: list[int], length: int, reason: str):
        super().__init__(
            f"Invalid block order {new_order!r}: {reason}",
            {"new_order": list(new_order), "length": length, "reason": reason},
        )
        self.new_order = list(new_order)
        self.length = length
        self.reason = reason


class UnknownBlockTypeError(BlockDocumentError):
    """Raised when a block type tag is not present in the schema."""

    def __init__(self, block_type: str, known_types: list[str] | None = None):
        details: dict[str, Any] = {"block_type": block_type}
        if known_types is not None:
            details["known_types"] = sorted(known_types)
        super().__init__(f"Unknown block type: {block_type!r}", details)
        self.block_type = block_type
        self.known_types = known_types


class InvalidBlockDataError(BlockDocumentError):
    """Raised when block data fails the configured validator."""

    def __init__(self, block_type: str, reason: str | None = None, block_id: str | None = None):
        details: dict[str, Any] = {"block_type": block_type}
        if reason:
            details["reason"] = reason
        if block_id:
            details["block_id"] = block_id
        message = f"Invalid data for block type {block_type!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message, details)
        self.block_type = block_type
        self.reason = reason
        self.block_id = block_id


class BlockNotFoundError(BlockDocumentError):
    """Raised when no block with the given id is in the document."""

    def __init__(self, block_id: str):
        super().__init__(f"Block not found: {block_id}", {"block_id": block_id})
        self.block_id = block_id


class DuplicateBlockIdError(BlockDocumentError):
    """Raised when an id is already in use or was retired in this document."""

    def __init__(self, block_id: str):
        super().__init__(f"Block id already issued: {block_id}", {"block_id": block_id})
        self.block_id = block_id


class NoRendererConfiguredError(BlockDocumentError):
    """Raised when neither the current nor the legacy surface has a renderer."""

    def __init__(self, block_type: str):
        super().__init__(
            f"No renderer configured for block type {block_type!r}",
            {"block_type": block_type},
        )
        self.block_type = block_type


class MalformedSnapshotError(BlockDocumentError):
    """Raised when a persisted snapshot is structurally invalid."""

    def __init__(self, reason: str, cause: Exception | None = None):
        details: dict[str, Any] = {"reason": reason}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Malformed snapshot: {reason}", details)
        self.reason = reason
        self.cause = cause


class SnapshotIOError(BlockDocumentError):
    """Raised when reading or writing a snapshot file fails."""

    def __init__(self, operation: str, path: str | None = None, cause: Exception | None = None):
        details = {"operation": operation}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
        message = f"Snapshot I/O error during {operation}"
        if path:
            message += f": {path}"
        super().__init__(message, details)
        self.operation = operation
        self.path = path
        self.cause = cause


class OperationConflictError(BlockDocumentError):
    """Raised when a stale operation targets a block that no longer exists."""

    def __init__(
        self,
        op_id: str,
        conflict_type: str,
        origin_version: int,
        document_version: int,
        target: str | int | None = None,
    ):
        details: dict[str, Any] = {
            "op_id": op_id,
            "conflict_type": conflict_type,
            "origin_version": origin_version,
            "document_version": document_version,
        }
        if target is not None:
            details["target"] = target
        super().__init__(
            f"Operation {op_id} conflicts with document state: {conflict_type} "
            f"(origin version {origin_version}, document version {document_version})",
            details,
        )
        self.op_id = op_id
        self.conflict_type = conflict_type
        self.origin_version = origin_version
        self.document_version = document_version
        self.target = target


class FormatUnsupportedError(BlockDocumentError):
    """Raised when no converter is registered for an export/import format."""

    def __init__(self, format_name: str, available: list[str] | None = None):
        details: dict[str, Any] = {"format": format_name}
        if available is not None:
            details["available"] = sorted(available)
        super().__init__(f"Unsupported format: {format_name!r}", details)
        self.format_name = format_name
        self.available = available


class ConfigurationError(BlockDocumentError):
    """Raised when configuration or settings values are invalid."""

    def __init__(self, field: str, reason: str, value: str | None = None):
        details = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = value
        super().__init__(f"Invalid configuration for {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value


class EditorNotReadyError(BlockDocumentError):
    """Raised when the editor is used before initialization completed."""

    def __init__(self, operation: str):
        super().__init__(
            f"Editor is not initialized; cannot {operation}",
            {"operation": operation},
        )
        self.operation = operation
