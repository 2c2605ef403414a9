"""
Format converters for export and import.
"""

from .base import ConverterRegistry, FormatConverter
from .plain_text import PlainTextConverter
from .snapshot_json import SnapshotJsonConverter


def default_converters() -> ConverterRegistry:
    """Create a registry with the built-in json and text converters."""
    return ConverterRegistry([SnapshotJsonConverter(), PlainTextConverter()])


__all__ = [
    "FormatConverter",
    "ConverterRegistry",
    "PlainTextConverter",
    "SnapshotJsonConverter",
    "default_converters",
]
