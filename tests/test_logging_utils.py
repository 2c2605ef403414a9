"""Tests for structured logging utilities."""

from __future__ import annotations

import io
import json
import logging

import pytest

from blockdoc import BlockTypeConfig, Configuration, Document, configure_structured_logging, get_engine_logger
from blockdoc.logging_utils import DocumentLoggerAdapter, StructuredJsonFormatter, StructuredStreamHandler


def make_record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="blockdoc.document",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredJsonFormatter:
    """Tests for StructuredJsonFormatter."""

    def test_basic_fields(self) -> None:
        """Test that records become single-line JSON with standard fields."""
        output = StructuredJsonFormatter().format(make_record("Render failed"))

        data = json.loads(output)
        assert data["level"] == "WARNING"
        assert data["logger"] == "blockdoc.document"
        assert data["message"] == "Render failed"
        assert data["timestamp"].endswith("+00:00")
        assert "\n" not in output

    def test_document_context_grouped(self) -> None:
        """Test that document context is nested and other extras stay at the top level."""
        output = StructuredJsonFormatter().format(
            make_record("x", document_id="doc-1", block_id="blk_a_1", block=object())
        )

        data = json.loads(output)
        assert data["document"] == {"document_id": "doc-1", "block_id": "blk_a_1"}
        assert "document_id" not in data
        assert data["block"].startswith("<object object")

    def test_no_document_key_without_context(self) -> None:
        """Test that records without document context have no document object."""
        data = json.loads(StructuredJsonFormatter().format(make_record("x", request="r1")))

        assert "document" not in data
        assert data["request"] == "r1"

    def test_timestamp_from_record(self) -> None:
        """Test that the timestamp is the record's creation time."""
        record = make_record("x")
        record.created = 0.0

        data = json.loads(StructuredJsonFormatter().format(record))

        assert data["timestamp"] == "1970-01-01T00:00:00+00:00"


class TestConfigureStructuredLogging:
    """Tests for configure_structured_logging."""

    def test_installs_single_handler(self) -> None:
        """Test that repeated configuration does not duplicate handlers."""
        logger = configure_structured_logging(logging.DEBUG, logger_name="blockdoc.test_config")
        configure_structured_logging(logging.DEBUG, logger_name="blockdoc.test_config")

        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, StructuredJsonFormatter)
        assert logger.level == logging.DEBUG
        logger.handlers.clear()

    def test_keeps_application_handlers(self) -> None:
        """Test that reconfiguring replaces only the structured handler."""
        logger = logging.getLogger("blockdoc.test_foreign")
        own = logging.NullHandler()
        logger.addHandler(own)
        stream = io.StringIO()

        configure_structured_logging("debug", logger_name="blockdoc.test_foreign")
        configure_structured_logging("debug", logger_name="blockdoc.test_foreign", stream=stream)

        structured = [h for h in logger.handlers if isinstance(h, StructuredStreamHandler)]
        assert own in logger.handlers
        assert len(structured) == 1
        assert structured[0].stream is stream
        assert logger.level == logging.DEBUG
        logger.handlers.clear()

    def test_engine_logger_names(self) -> None:
        """Test namespaced engine loggers."""
        assert get_engine_logger("rendering").name == "blockdoc.rendering"


class TestDocumentLoggerAdapter:
    """Tests for document context in log records."""

    def test_adds_document_id(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that adapter records carry the document id."""
        adapter = DocumentLoggerAdapter(logging.getLogger("blockdoc.test_adapter"), {"document_id": "doc-9"})

        with caplog.at_level(logging.INFO, logger="blockdoc.test_adapter"):
            adapter.info("hello")

        assert caplog.records[0].document_id == "doc-9"

    def test_document_mutations_log_with_context(self, config: Configuration, caplog: pytest.LogCaptureFixture) -> None:
        """Test that document mutation logs are tagged with the document id."""
        document = Document(config, document_id="doc-42")

        with caplog.at_level(logging.DEBUG, logger="blockdoc.document.document"):
            document.append("text", {"content": "hi"})

        records = [r for r in caplog.records if r.name == "blockdoc.document.document"]
        assert records
        assert all(r.document_id == "doc-42" for r in records)

    def test_version_and_bound_context(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that records carry the current version and bound block context."""
        version = {"value": 3}
        adapter = DocumentLoggerAdapter(
            logging.getLogger("blockdoc.test_adapter"),
            {"document_id": "doc-9"},
            version_source=lambda: version["value"],
        )

        with caplog.at_level(logging.INFO, logger="blockdoc.test_adapter"):
            adapter.info("first")
            version["value"] = 4
            adapter.bind(block_id="blk_a_1").info("second")

        first, second = caplog.records
        assert first.document_version == 3
        assert not hasattr(first, "block_id")
        assert second.document_version == 4
        assert second.block_id == "blk_a_1"
        assert second.document_id == "doc-9"

    def test_call_extra_wins(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that per-call extra values override the adapter context."""
        adapter = DocumentLoggerAdapter(
            logging.getLogger("blockdoc.test_adapter"), {"document_id": "doc-9", "block_id": "a"}
        )

        with caplog.at_level(logging.INFO, logger="blockdoc.test_adapter"):
            adapter.info("hello", extra={"block_id": "b"})

        assert caplog.records[0].block_id == "b"
        assert caplog.records[0].document_id == "doc-9"

    def test_hook_failure_logged_as_json(self, config: Configuration) -> None:
        """Test that a failing hook emits a JSON record with nested document context."""

        def broken(block) -> None:
            raise RuntimeError("boom")

        config.register("note", BlockTypeConfig(hooks={"on_create": broken}))
        document = Document(config, document_id="doc-7")
        stream = io.StringIO()
        logger = configure_structured_logging(logging.WARNING, logger_name="blockdoc.document", stream=stream)
        try:
            block = document.append("note", {})
        finally:
            logger.handlers.clear()
            logger.setLevel(logging.NOTSET)

        data = json.loads(stream.getvalue().splitlines()[-1])
        assert data["level"] == "WARNING"
        assert data["document"]["document_id"] == "doc-7"
        assert data["document"]["block_id"] == block.id
        assert data["document"]["block_type"] == "note"
