"""
Export/import collaborator interface.

A FormatConverter turns a document's ordered blocks into text of some
external format, and parses such text back into (type, raw_data)
pairs. The set of formats is open: applications register their own
converters alongside the built-in ones.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from ..config.configuration import Configuration
from ..document.document import Document
from ..exceptions import FormatUnsupportedError

logger = logging.getLogger(__name__)


class FormatConverter(ABC):
    """Converter between documents and one external format."""

    #: Format name used to look the converter up
    name: str = ""

    @abstractmethod
    def export(self, document: Document) -> str:
        """Export a document.

        Args:
            document: Document to export

        Returns:
            Content in this converter's format
        """
        pass

    @abstractmethod
    def import_blocks(self, content: str, configuration: Configuration) -> list[tuple[str, Any]]:
        """Parse content into blocks.

        Args:
            content: Content in this converter's format
            configuration: Configuration the blocks will be inserted under

        Returns:
            Ordered (type, raw_data) pairs
        """
        pass


class ConverterRegistry:
    """Registry of format converters keyed by format name."""

    def __init__(self, converters: list[FormatConverter] | None = None) -> None:
        self._converters: dict[str, FormatConverter] = {}
        for converter in converters or []:
            self.register(converter)

    def register(self, converter: FormatConverter) -> None:
        """Register a converter, replacing any converter for the same format."""
        if not converter.name:
            raise ValueError(f"{type(converter).__name__} has no format name")
        if converter.name in self._converters:
            logger.debug(f"Replacing converter for format {converter.name!r}")
        self._converters[converter.name] = converter

    def get(self, format_name: str) -> FormatConverter:
        """Get the converter for a format.

        Raises:
            FormatUnsupportedError: If no converter handles the format
        """
        converter = self._converters.get(format_name)
        if converter is None:
            raise FormatUnsupportedError(format_name, self.formats())
        return converter

    def formats(self) -> list[str]:
        """Get registered format names."""
        return sorted(self._converters)

    def __contains__(self, format_name: object) -> bool:
        return format_name in self._converters
