"""
Document snapshot serialization and persistence.
"""

from .file_ops import read_text, write_text_atomic
from .snapshot import (
    FORMAT_VERSION,
    DocumentSnapshot,
    deserialize_document,
    load_snapshot,
    save_snapshot,
    serialize_document,
)

__all__ = [
    "FORMAT_VERSION",
    "DocumentSnapshot",
    "serialize_document",
    "deserialize_document",
    "save_snapshot",
    "load_snapshot",
    # Low-level file operations
    "read_text",
    "write_text_atomic",
]
