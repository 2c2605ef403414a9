"""
Structured JSON logging utilities.

Engine records carry document context (which document, which block,
at which document version). The JSON formatter groups those fields
under a ``document`` object so log pipelines can index them without
knowing every ad hoc ``extra`` key, and ``DocumentLoggerAdapter``
stamps them onto every record a document emits.
"""

import json
import logging
import sys
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, TextIO

_STANDARD_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "message",
}

# Record attributes describing where in a document an event happened
DOCUMENT_CONTEXT_FIELDS = ("document_id", "document_version", "block_id", "block_type", "op_id")


def _json_safe(value: Any) -> Any:
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return str(value)


class StructuredJsonFormatter(logging.Formatter):
    """
    JSON formatter for structured engine logs.

    Outputs logs as single-line JSON objects with consistent fields:
    - timestamp: ISO 8601 format in UTC, taken from the record's creation time
    - level: Log level (INFO, WARNING, ERROR, etc.)
    - logger: Logger name
    - message: Log message
    - document: Document context fields present on the record (document_id,
      document_version, block_id, block_type, op_id); omitted when none are
    - Any other extra fields, at the top level
    """

    def __init__(self, context_fields: tuple[str, ...] = DOCUMENT_CONTEXT_FIELDS) -> None:
        super().__init__()
        self.context_fields = context_fields

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_obj: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        context: dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS or key.startswith("_"):
                continue
            if key in self.context_fields:
                context[key] = _json_safe(value)
            else:
                log_obj[key] = _json_safe(value)
        if context:
            log_obj["document"] = context

        return json.dumps(log_obj, default=str)


class StructuredStreamHandler(logging.StreamHandler):
    """Stream handler installed by configure_structured_logging."""

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__(stream or sys.stdout)
        self.setFormatter(StructuredJsonFormatter())


def configure_structured_logging(
    level: int | str = logging.INFO,
    logger_name: str | None = "blockdoc",
    stream: TextIO | None = None,
) -> logging.Logger:
    """
    Configure structured JSON logging for the engine.

    Replaces a handler installed by an earlier call; handlers the
    application attached itself are left alone.

    Args:
        level: Logging level name or number (default: INFO)
        logger_name: Logger to configure (default: the "blockdoc" package logger)
        stream: Output stream (default: stdout)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    for handler in list(logger.handlers):
        if isinstance(handler, StructuredStreamHandler):
            logger.removeHandler(handler)

    logger.addHandler(StructuredStreamHandler(stream))
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    return logger


def get_engine_logger(name: str) -> logging.Logger:
    """
    Get a logger for engine components with consistent naming.

    Args:
        name: Component name (e.g., 'document', 'rendering')

    Returns:
        Logger instance with name 'blockdoc.{name}'
    """
    return logging.getLogger(f"blockdoc.{name}")


class DocumentLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that adds document context to all log messages.

    Every record gets the adapter's fixed context (typically
    ``document_id``) and, when a version source is given, the
    document's version at the time of logging as ``document_version``.
    Per-call ``extra`` values win over the adapter's context.

    Example:
        log = DocumentLoggerAdapter(logger, {"document_id": "doc-1"}, version_source=lambda: doc.version)
        log.bind(block_id="blk_a_1").debug("Updated block")
    """

    def __init__(
        self,
        logger: logging.Logger,
        extra: dict[str, Any] | None = None,
        version_source: Callable[[], int] | None = None,
    ) -> None:
        super().__init__(logger, dict(extra or {}))
        self.version_source = version_source

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """Add document context to the log record."""
        context = dict(self.extra)
        if self.version_source is not None:
            context["document_version"] = self.version_source()
        context.update(kwargs.get("extra") or {})
        kwargs["extra"] = context
        return msg, kwargs

    def bind(self, **context: Any) -> "DocumentLoggerAdapter":
        """Create an adapter carrying additional context, e.g. a block id."""
        return DocumentLoggerAdapter(
            self.logger,
            {**self.extra, **context},
            version_source=self.version_source,
        )
