"""Tests for format converters."""

from __future__ import annotations

import json

import pytest

from blockdoc import (
    ConfigurationError,
    ConverterRegistry,
    Document,
    FormatConverter,
    FormatUnsupportedError,
    MalformedSnapshotError,
    PlainTextConverter,
    SnapshotJsonConverter,
    UnknownBlockTypeError,
    default_converters,
)


class UpperConverter(FormatConverter):
    """Toy converter used to test registration."""

    name = "upper"

    def export(self, document):
        return "|".join(block.type.upper() for block in document)

    def import_blocks(self, content, configuration):
        return [("text", {"content": part.lower()}) for part in content.split("|")]


class TestConverterRegistry:
    """Tests for ConverterRegistry."""

    def test_default_formats(self) -> None:
        """Test the built-in converters."""
        assert default_converters().formats() == ["json", "text"]

    def test_unknown_format(self) -> None:
        """Test that unknown formats raise FormatUnsupportedError."""
        with pytest.raises(FormatUnsupportedError) as exc_info:
            default_converters().get("html")

        assert exc_info.value.format_name == "html"
        assert exc_info.value.details["available"] == ["json", "text"]

    def test_register_custom(self) -> None:
        """Test registering an application converter."""
        registry = ConverterRegistry()
        registry.register(UpperConverter())

        assert "upper" in registry
        assert isinstance(registry.get("upper"), UpperConverter)

    def test_register_requires_name(self) -> None:
        """Test that nameless converters are rejected."""

        class Nameless(UpperConverter):
            name = ""

        with pytest.raises(ValueError):
            ConverterRegistry().register(Nameless())


class TestPlainTextConverter:
    """Tests for PlainTextConverter."""

    def test_export_joins_text_blocks(self, populated: Document) -> None:
        """Test that blocks with text are joined by blank lines."""
        populated.append("image", {"url": "a"})

        assert PlainTextConverter().export(populated) == "one\n\ntwo\n\nthree"

    def test_import_paragraphs(self, config) -> None:
        """Test that each paragraph becomes a text block."""
        content = "First paragraph.\n\n  Second one.  \r\n\r\n\n\nThird."

        pairs = PlainTextConverter().import_blocks(content, config)

        assert pairs == [
            ("text", {"content": "First paragraph."}),
            ("text", {"content": "Second one."}),
            ("text", {"content": "Third."}),
        ]

    def test_import_empty(self, config) -> None:
        """Test that blank content imports nothing."""
        assert PlainTextConverter().import_blocks("  \n\n ", config) == []

    def test_import_requires_text_type(self, config) -> None:
        """Test importing into a type without a text handler."""
        with pytest.raises(ConfigurationError):
            PlainTextConverter(text_type="image").import_blocks("hello", config)

        with pytest.raises(UnknownBlockTypeError):
            PlainTextConverter(text_type="paragraph").import_blocks("hello", config)


class TestSnapshotJsonConverter:
    """Tests for SnapshotJsonConverter."""

    def test_export_is_snapshot(self, populated: Document) -> None:
        """Test that exports use the snapshot format."""
        data = json.loads(SnapshotJsonConverter().export(populated))

        assert data["format_version"] == 1
        assert len(data["blocks"]) == 3

    def test_import_pairs(self, populated: Document) -> None:
        """Test that imported content yields (type, raw_data) pairs."""
        converter = SnapshotJsonConverter()

        pairs = converter.import_blocks(converter.export(populated), populated.configuration)

        assert pairs == populated.pairs()

    def test_import_malformed(self, config) -> None:
        """Test that invalid JSON raises MalformedSnapshotError."""
        with pytest.raises(MalformedSnapshotError):
            SnapshotJsonConverter().import_blocks("{", config)
