"""
Shared test configuration and fixtures.

Provides a two-type configuration (text and image) matching the
common document scenario, and documents bound to it.
"""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from blockdoc import BlockShape, Configuration, Document, EngineSettings, FieldSpec

logger = logging.getLogger(__name__)

TEXT_SHAPE = BlockShape({"content": FieldSpec(str)}, description="Paragraph of text")
IMAGE_SHAPE = BlockShape(
    {"url": FieldSpec(str), "alt": FieldSpec(str, required=False)},
    description="Image reference",
)


def render_text(data: dict) -> str:
    return f"<p>{data['content']}</p>"


def render_image(data: dict) -> str:
    return f"<img src='{data['url']}' alt='{data.get('alt', '')}'>"


def make_config(**overrides) -> Configuration:
    """Build the text/image configuration, with optional from_mapping overrides."""
    options = {
        "block_types": {"text": {"content": ""}, "image": {"url": "", "alt": ""}},
        "renderers": {"text": render_text, "image": render_image},
        "shapes": {"text": TEXT_SHAPE, "image": IMAGE_SHAPE},
        "text_fields": {"text": "content"},
    }
    options.update(overrides)
    return Configuration.from_mapping(**options)


@pytest.fixture
def config_factory() -> Callable[..., Configuration]:
    """Factory building the text/image configuration with from_mapping overrides."""
    return make_config


@pytest.fixture
def config() -> Configuration:
    """Text/image configuration with shape validators and renderers."""
    return make_config()


@pytest.fixture
def settings() -> EngineSettings:
    """Settings with a fixed id prefix for readable ids."""
    return EngineSettings(id_prefix="test", history_depth=20)


@pytest.fixture
def document(config: Configuration, settings: EngineSettings) -> Document:
    """Empty document bound to the text/image configuration."""
    return Document(config, settings=settings)


@pytest.fixture
def populated(document: Document) -> Document:
    """Document holding three text blocks: one, two, three."""
    for word in ("one", "two", "three"):
        document.append("text", {"content": word})
    return document


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
