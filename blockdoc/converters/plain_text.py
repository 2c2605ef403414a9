"""
Plain-text converter.

Export joins every block's text projection with blank lines. Import
splits on blank lines and creates one block of a configured text type
per paragraph.
"""

from __future__ import annotations

import re
from typing import Any

from ..config.configuration import Configuration
from ..document.document import Document
from .base import FormatConverter

_PARAGRAPH_BREAK = re.compile(r"\n[ \t]*\n")


class PlainTextConverter(FormatConverter):
    """Converts documents to and from paragraphs of plain text."""

    name = "text"

    def __init__(self, text_type: str = "text", separator: str = "\n\n") -> None:
        """Initialize the converter.

        Args:
            text_type: Block type created for each imported paragraph
            separator: Text placed between exported blocks
        """
        self.text_type = text_type
        self.separator = separator

    def export(self, document: Document) -> str:
        configuration = document.configuration
        texts = []
        for block in document.blocks():
            text = configuration.text_of(block.type, block.raw_data)
            if text:
                texts.append(text)
        return self.separator.join(texts)

    def import_blocks(self, content: str, configuration: Configuration) -> list[tuple[str, Any]]:
        """Create one text block per paragraph.

        Raises:
            UnknownBlockTypeError: If the text type is not in the schema
            ConfigurationError: If the text type cannot accept text
        """
        paragraphs = [p.strip() for p in _PARAGRAPH_BREAK.split(content.replace("\r\n", "\n"))]
        blocks = []
        for paragraph in paragraphs:
            if not paragraph:
                continue
            template = configuration.default_data(self.text_type)
            data = configuration.apply_text(self.text_type, template, paragraph)
            blocks.append((self.text_type, data))
        return blocks
