"""
Document snapshots.

A snapshot is the portable representation of a document:

    {
        "format_version": 1,
        "blocks": [{"id": "...", "type": "...", "raw_data": {...}}, ...],
        "configuration_metadata": {"text": {...}}   # optional
    }

Render output is never persisted; it is always derivable from the
block data and the configuration. Renderers, validators and other
callables are never persisted either; only declarative per-type
metadata is.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..blocks.types import BlockState
from ..config.configuration import Configuration
from ..document.document import Document
from ..exceptions import DuplicateBlockIdError, MalformedSnapshotError
from ..settings import SUPPORTED_FORMAT_VERSIONS, EngineSettings
from .file_ops import read_text, write_text_atomic

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

_JSON_SCALARS = (str, int, float, bool, type(None))


def _find_non_json_value(value: Any, path: str = "raw_data") -> str | None:
    """Describe the first value JSON would not restore as-is, or None.

    Tuples, sets, non-string mapping keys and arbitrary objects are
    reported; they would decode to different values or not encode at all.
    """
    if isinstance(value, _JSON_SCALARS):
        return None
    if isinstance(value, list):
        for index, item in enumerate(value):
            found = _find_non_json_value(item, f"{path}[{index}]")
            if found is not None:
                return found
        return None
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                return f"{path} has non-string key {key!r}"
            found = _find_non_json_value(item, f"{path}.{key}")
            if found is not None:
                return found
        return None
    return f"{path} holds a {type(value).__name__}"


@dataclass
class DocumentSnapshot:
    """Serializable state of a document at one point in time.

    Attributes:
        blocks: Ordered block states
        format_version: Snapshot format version
        configuration_metadata: Declarative per-type metadata, if captured
    """

    blocks: list[BlockState] = field(default_factory=list)
    format_version: int = FORMAT_VERSION
    configuration_metadata: dict[str, dict[str, Any]] | None = None

    @classmethod
    def capture(
        cls,
        document: Document,
        *,
        include_configuration_metadata: bool = False,
        format_version: int = FORMAT_VERSION,
    ) -> DocumentSnapshot:
        """Capture a document's current state."""
        metadata = None
        if include_configuration_metadata:
            metadata = document.configuration.metadata_snapshot()
        return cls(
            blocks=list(document.capture()),
            format_version=format_version,
            configuration_metadata=metadata,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        result: dict[str, Any] = {
            "format_version": self.format_version,
            "blocks": [state.to_dict() for state in self.blocks],
        }
        if self.configuration_metadata is not None:
            result["configuration_metadata"] = self.configuration_metadata
        return result

    @classmethod
    def from_dict(cls, data: Any) -> DocumentSnapshot:
        """Deserialize from dictionary, checking structure.

        Raises:
            MalformedSnapshotError: If the structure is invalid
        """
        if not isinstance(data, Mapping):
            raise MalformedSnapshotError(f"expected an object, got {type(data).__name__}")

        format_version = data.get("format_version")
        if not isinstance(format_version, int) or isinstance(format_version, bool):
            raise MalformedSnapshotError("missing or non-integer format_version")
        if format_version not in SUPPORTED_FORMAT_VERSIONS:
            raise MalformedSnapshotError(f"unsupported format_version {format_version}")

        raw_blocks = data.get("blocks")
        if not isinstance(raw_blocks, list):
            raise MalformedSnapshotError("'blocks' must be a list")

        blocks = []
        seen_ids: set[str] = set()
        for position, raw_block in enumerate(raw_blocks):
            if not isinstance(raw_block, Mapping):
                raise MalformedSnapshotError(f"block {position} is not an object")
            block_id = raw_block.get("id")
            block_type = raw_block.get("type")
            if not isinstance(block_id, str) or not block_id:
                raise MalformedSnapshotError(f"block {position} has no valid 'id'")
            if not isinstance(block_type, str) or not block_type:
                raise MalformedSnapshotError(f"block {position} has no valid 'type'")
            if "raw_data" not in raw_block:
                raise MalformedSnapshotError(f"block {position} has no 'raw_data'")
            if block_id in seen_ids:
                raise MalformedSnapshotError(f"duplicate block id {block_id!r}")
            seen_ids.add(block_id)
            blocks.append(BlockState.from_dict(raw_block))

        metadata = data.get("configuration_metadata")
        if metadata is not None and not isinstance(metadata, Mapping):
            raise MalformedSnapshotError("'configuration_metadata' must be an object")

        return cls(
            blocks=blocks,
            format_version=format_version,
            configuration_metadata=dict(metadata) if metadata is not None else None,
        )

    def to_json(self, indent: int | None = None) -> str:
        """Encode as JSON text.

        Raises:
            MalformedSnapshotError: If block data is not plain JSON data
        """
        for state in self.blocks:
            problem = _find_non_json_value(state.raw_data)
            if problem is not None:
                raise MalformedSnapshotError(f"block {state.id!r}: {problem}, which JSON cannot round-trip")
        try:
            return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise MalformedSnapshotError("block data is not JSON-serializable", e) from e

    @classmethod
    def from_json(cls, text: str) -> DocumentSnapshot:
        """Decode JSON text.

        Raises:
            MalformedSnapshotError: If the text is not valid JSON or the structure is invalid
        """
        try:
            data = json.loads(text)
        except (TypeError, json.JSONDecodeError) as e:
            raise MalformedSnapshotError("invalid JSON", e) from e
        return cls.from_dict(data)

    def to_document(
        self,
        configuration: Configuration,
        *,
        preserve_ids: bool = True,
        settings: EngineSettings | None = None,
    ) -> Document:
        """Build a document from this snapshot.

        Raises:
            UnknownBlockTypeError: If a stored type is not in the configuration's schema
            InvalidBlockDataError: If the configuration rejects stored data
        """
        try:
            return Document.from_states(
                configuration, self.blocks, preserve_ids=preserve_ids, settings=settings
            )
        except DuplicateBlockIdError as e:
            raise MalformedSnapshotError(f"duplicate block id {e.block_id!r}", e) from e


def serialize_document(
    document: Document,
    *,
    include_configuration_metadata: bool = False,
    indent: int | None = None,
) -> str:
    """Serialize a document to snapshot JSON text."""
    snapshot = DocumentSnapshot.capture(
        document,
        include_configuration_metadata=include_configuration_metadata,
        format_version=document.settings.format_version,
    )
    return snapshot.to_json(indent=indent)


def deserialize_document(
    text: str,
    configuration: Configuration,
    *,
    preserve_ids: bool = True,
    settings: EngineSettings | None = None,
) -> Document:
    """Restore a document from snapshot JSON text.

    Args:
        text: Snapshot JSON
        configuration: Configuration to bind; every stored block must satisfy it
        preserve_ids: Keep stored block ids (default) or allocate fresh ones
        settings: Engine settings for the new document

    Raises:
        MalformedSnapshotError, UnknownBlockTypeError, InvalidBlockDataError
    """
    snapshot = DocumentSnapshot.from_json(text)
    document = snapshot.to_document(configuration, preserve_ids=preserve_ids, settings=settings)
    logger.debug(f"Deserialized document with {len(document)} block(s)")
    return document


async def save_snapshot(
    path: Path,
    document: Document,
    *,
    include_configuration_metadata: bool = True,
) -> None:
    """Persist a document snapshot to a file atomically."""
    text = serialize_document(
        document, include_configuration_metadata=include_configuration_metadata, indent=2
    )
    await write_text_atomic(Path(path), text)
    logger.info(f"Saved snapshot of {len(document)} block(s) to {path}")


async def load_snapshot(
    path: Path,
    configuration: Configuration,
    *,
    preserve_ids: bool = True,
    settings: EngineSettings | None = None,
) -> Document | None:
    """Load a document from a snapshot file.

    Returns:
        The restored document, or None if the file doesn't exist
    """
    text = await read_text(Path(path))
    if text is None:
        return None
    document = deserialize_document(
        text, configuration, preserve_ids=preserve_ids, settings=settings
    )
    logger.info(f"Loaded snapshot of {len(document)} block(s) from {path}")
    return document
