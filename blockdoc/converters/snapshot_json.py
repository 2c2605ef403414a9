"""
JSON converter using the snapshot format.
"""

from __future__ import annotations

from typing import Any

from ..config.configuration import Configuration
from ..document.document import Document
from ..serialization.snapshot import DocumentSnapshot, serialize_document
from .base import FormatConverter


class SnapshotJsonConverter(FormatConverter):
    """Exports and imports the snapshot JSON format.

    Imported blocks are inserted as new blocks; their stored ids are
    not reused.
    """

    name = "json"

    def __init__(self, indent: int | None = 2) -> None:
        self.indent = indent

    def export(self, document: Document) -> str:
        return serialize_document(document, include_configuration_metadata=True, indent=self.indent)

    def import_blocks(self, content: str, configuration: Configuration) -> list[tuple[str, Any]]:
        snapshot = DocumentSnapshot.from_json(content)
        return [state.pair() for state in snapshot.blocks]
