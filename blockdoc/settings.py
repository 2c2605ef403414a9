"""
Engine settings.

Settings can be provided directly, read from environment variables,
or loaded from the ``blockdoc`` section of a YAML settings file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError
from .logging_utils import configure_structured_logging

logger = logging.getLogger(__name__)

SUPPORTED_FORMAT_VERSIONS = (1,)


@dataclass
class EngineSettings:
    """Settings for a block document engine.

    Environment Variables:
        BLOCKDOC_HISTORY_DEPTH: Maximum number of undo entries (default: 100)
        BLOCKDOC_FORMAT_VERSION: Snapshot format version to write (default: 1)
        BLOCKDOC_ID_PREFIX: Prefix for generated block ids (default: random)
        BLOCKDOC_STRUCTURED_LOGGING: "true" to emit JSON logs
        BLOCKDOC_LOG_LEVEL: Log level name (default: INFO)

    YAML file (``settings.yaml``):

    ```yaml
    blockdoc:
      history_depth: 50
      format_version: 1
      id_prefix: "doc1"
      structured_logging: true
      log_level: DEBUG
    ```

    Attributes:
        history_depth: Maximum number of retained undo entries
        format_version: Snapshot format version written by the serializer
        id_prefix: Prefix for generated block ids; None picks a random one
        structured_logging: Whether apply_logging() installs the JSON formatter
        log_level: Log level name for the "blockdoc" logger
    """

    history_depth: int = 100
    format_version: int = 1
    id_prefix: str | None = None
    structured_logging: bool = False
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        """Validate settings values."""
        for name, expected in (
            ("history_depth", int),
            ("format_version", int),
            ("id_prefix", (str, type(None))),
            ("structured_logging", bool),
            ("log_level", str),
        ):
            value = getattr(self, name)
            if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
                raise ConfigurationError(name, f"unexpected type {type(value).__name__}", repr(value))
        if self.history_depth < 1:
            raise ConfigurationError(
                "history_depth", "must be at least 1", str(self.history_depth)
            )
        if self.format_version not in SUPPORTED_FORMAT_VERSIONS:
            raise ConfigurationError(
                "format_version",
                f"supported versions are {list(SUPPORTED_FORMAT_VERSIONS)}",
                str(self.format_version),
            )
        if self.id_prefix is not None and not self.id_prefix.isalnum():
            raise ConfigurationError("id_prefix", "must be alphanumeric", self.id_prefix)
        if logging.getLevelName(self.log_level.upper()) not in range(0, 60):
            raise ConfigurationError("log_level", "unknown log level", self.log_level)

    @classmethod
    def from_environment(cls) -> EngineSettings:
        """Create settings from environment variables.

        Returns:
            EngineSettings populated from BLOCKDOC_* variables
        """
        return cls(
            history_depth=_parse_int(
                "history_depth", os.environ.get("BLOCKDOC_HISTORY_DEPTH", "100")
            ),
            format_version=_parse_int(
                "format_version", os.environ.get("BLOCKDOC_FORMAT_VERSION", "1")
            ),
            id_prefix=os.environ.get("BLOCKDOC_ID_PREFIX") or None,
            structured_logging=os.environ.get("BLOCKDOC_STRUCTURED_LOGGING", "").lower() == "true",
            log_level=os.environ.get("BLOCKDOC_LOG_LEVEL", "INFO"),
        )

    @classmethod
    def from_yaml(cls, config_path: Path) -> EngineSettings:
        """Load settings from the ``blockdoc`` section of a YAML file.

        A missing file or missing section yields the defaults.

        Args:
            config_path: Path to the YAML settings file

        Returns:
            EngineSettings populated from the file
        """
        config_path = Path(config_path)
        if not config_path.exists():
            logger.debug(f"Settings file not found, using defaults: {config_path}")
            return cls()

        try:
            with open(config_path, encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError("settings_file", f"invalid YAML: {e}", str(config_path)) from e

        section = config.get("blockdoc", {}) if isinstance(config, dict) else {}
        if not isinstance(section, dict):
            raise ConfigurationError("blockdoc", "section must be a mapping", str(config_path))

        return cls.from_dict(section)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineSettings:
        """Create settings from a dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError("blockdoc", f"unknown settings: {sorted(unknown)}")
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "history_depth": self.history_depth,
            "format_version": self.format_version,
            "id_prefix": self.id_prefix,
            "structured_logging": self.structured_logging,
            "log_level": self.log_level,
        }

    def apply_logging(self) -> logging.Logger:
        """Configure the "blockdoc" logger according to these settings."""
        level = self.log_level.upper()
        if self.structured_logging:
            return configure_structured_logging(level=level, logger_name="blockdoc")
        package_logger = logging.getLogger("blockdoc")
        package_logger.setLevel(level)
        return package_logger


def _parse_int(field_name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(field_name, "must be an integer", value) from None
