"""Tests for block type configuration and plugins."""

from __future__ import annotations

import pytest

from blockdoc import (
    BlockShape,
    BlockTypeConfig,
    ConfigurationError,
    Configuration,
    FieldSpec,
    InvalidBlockDataError,
    NoRendererConfiguredError,
    Plugin,
    UnknownBlockTypeError,
)
from blockdoc.blocks import BlockTypeSchema


class TestFromMapping:
    """Tests for building configurations from per-surface mappings."""

    def test_builds_schema_from_block_types(self, config: Configuration) -> None:
        """Test that block_types keys define the schema."""
        assert config.schema.tags() == ["text", "image"]

    def test_renderer_for_unknown_type(self) -> None:
        """Test that surfaces referencing undefined tags are rejected."""
        with pytest.raises(UnknownBlockTypeError) as exc_info:
            Configuration.from_mapping(
                block_types={"text": {"content": ""}},
                renderers={"video": lambda data: "<video>"},
            )

        assert exc_info.value.block_type == "video"

    def test_shapes_become_validators(self, config: Configuration) -> None:
        """Test that declared shapes validate data when no validator is given."""
        assert config.validate("text", {"content": "hi"}) is True
        assert config.validate("text", {"content": 5}) is False
        assert config.validate("image", {"alt": "no url"}) is False

    def test_explicit_validator_wins_over_shape(self) -> None:
        """Test that an explicit validator replaces the shape check."""
        config = Configuration.from_mapping(
            block_types={"text": {"content": ""}},
            shapes={"text": BlockShape({"content": FieldSpec(str)})},
            validators={"text": lambda data: data.get("content") != "forbidden"},
        )

        assert config.validate("text", {"content": 5}) is True
        assert config.validate("text", {"content": "forbidden"}) is False

    def test_metadata_and_default_values(self) -> None:
        """Test that metadata and default-value partials are carried over."""
        config = Configuration.from_mapping(
            block_types={"heading": {"text": "", "level": 1}},
            metadata={"heading": {"label": "Heading", "icon": "h"}},
            default_values={"heading": {"level": 2}},
        )

        assert config.metadata_snapshot() == {"heading": {"label": "Heading", "icon": "h"}}
        assert config.default_data("heading") == {"text": "", "level": 2}


class TestRegister:
    """Tests for registering block types at runtime."""

    def test_register_requires_schema_tag(self) -> None:
        """Test that registering a tag outside the schema fails without a shape."""
        config = Configuration(BlockTypeSchema({"text": BlockShape()}))

        with pytest.raises(UnknownBlockTypeError):
            config.register("quote", BlockTypeConfig())

    def test_register_with_shape_extends_schema(self) -> None:
        """Test that registering with a shape adds the tag to the schema."""
        config = Configuration()
        config.register("quote", BlockTypeConfig(renderer=str), shape=BlockShape())

        assert "quote" in config.schema
        assert config.resolve_renderer("quote") is str

    def test_register_replaces_handlers(self, config: Configuration) -> None:
        """Test that re-registering a tag replaces its active renderer."""
        config.register("text", BlockTypeConfig(renderer=lambda data: data["content"].upper()))

        assert config.resolve_renderer("text")({"content": "hi"}) == "HI"

    def test_version_bumps_on_change(self, config: Configuration) -> None:
        """Test that every change advances the configuration version."""
        before = config.version
        config.register("text", BlockTypeConfig())
        config.add_plugin(Plugin(name="noop"))

        assert config.version == before + 2

    def test_subscribe_and_unsubscribe(self, config: Configuration) -> None:
        """Test change notifications."""
        seen = []
        unsubscribe = config.subscribe(lambda changed: seen.append(changed.version))

        config.register("text", BlockTypeConfig())
        unsubscribe()
        config.register("image", BlockTypeConfig())

        assert seen == [config.version - 1]

    def test_schema_is_copied(self) -> None:
        """Test that a configuration does not share its schema with the caller."""
        schema = BlockTypeSchema({"text": BlockShape()})
        config = Configuration(schema)
        config.register("quote", shape=BlockShape())

        assert "quote" not in schema


class TestResolve:
    """Tests for handler and renderer resolution."""

    def test_resolve_unknown_tag(self, config: Configuration) -> None:
        """Test that unknown tags raise UnknownBlockTypeError."""
        with pytest.raises(UnknownBlockTypeError):
            config.resolve("video")

    def test_unregistered_schema_tag_resolves_empty(self) -> None:
        """Test that a schema tag without handlers accepts data unchecked."""
        config = Configuration(BlockTypeSchema({"raw": BlockShape()}))

        assert config.resolve("raw").validator is None
        assert config.validate("raw", object()) is True

    def test_legacy_renderer_fallback(self) -> None:
        """Test that the legacy surface is used when the current one is empty."""
        config = Configuration.from_mapping(
            block_types={"text": {}},
            legacy_renderers={"text": lambda data: "legacy"},
        )

        assert config.resolve_renderer("text")({}) == "legacy"

    def test_current_renderer_preferred_over_legacy(self) -> None:
        """Test that the current surface wins when both are configured."""
        config = Configuration.from_mapping(
            block_types={"text": {}},
            renderers={"text": lambda data: "current"},
            legacy_renderers={"text": lambda data: "legacy"},
        )

        assert config.resolve_renderer("text")({}) == "current"

    def test_no_renderer(self) -> None:
        """Test that a type without any renderer raises NoRendererConfiguredError."""
        config = Configuration.from_mapping(block_types={"text": {}})

        with pytest.raises(NoRendererConfiguredError) as exc_info:
            config.resolve_renderer("text")

        assert exc_info.value.block_type == "text"


class TestValidation:
    """Tests for validate and check."""

    def test_check_raises_with_reason(self, config: Configuration) -> None:
        """Test that check raises InvalidBlockDataError for rejected data."""
        with pytest.raises(InvalidBlockDataError) as exc_info:
            config.check("text", {"content": 1}, block_id="blk_x_1")

        assert exc_info.value.block_type == "text"
        assert exc_info.value.block_id == "blk_x_1"

    def test_validator_exception_is_rejection(self) -> None:
        """Test that a validator raising an exception rejects the data."""

        def explode(data):
            raise KeyError("content")

        config = Configuration.from_mapping(block_types={"text": {}}, validators={"text": explode})

        assert config.validate("text", {}) is False
        with pytest.raises(InvalidBlockDataError, match="validator raised KeyError"):
            config.check("text", {})


class TestDefaults:
    """Tests for default data construction."""

    def test_factory_called_each_time(self) -> None:
        """Test that factory defaults produce fresh data per call."""
        config = Configuration.from_mapping(block_types={"list": lambda: {"items": []}})

        first = config.default_data("list")
        first["items"].append("x")

        assert config.default_data("list") == {"items": []}

    def test_template_deep_copied(self) -> None:
        """Test that value defaults are deep-copied."""
        config = Configuration.from_mapping(block_types={"list": {"items": []}})

        config.default_data("list")["items"].append("x")

        assert config.default_data("list") == {"items": []}

    def test_overrides_merge_last(self, config: Configuration) -> None:
        """Test that overrides are merged over defaults and partials."""
        config.set_default_values("image", {"alt": "untitled"})

        data = config.default_data("image", {"url": "a.png"})

        assert data == {"url": "a.png", "alt": "untitled"}

    def test_overrides_on_scalar_default(self) -> None:
        """Test that overrides cannot be merged into non-mapping defaults."""
        config = Configuration.from_mapping(block_types={"counter": 0})

        with pytest.raises(ConfigurationError):
            config.default_data("counter", {"value": 1})

    def test_no_default(self) -> None:
        """Test that types without defaults start with None or overrides only."""
        config = Configuration.from_mapping(block_types={"raw": None})

        assert config.default_data("raw") is None
        assert config.default_data("raw", {"a": 1}) == {"a": 1}


class TestBlockTypeConfig:
    """Tests for BlockTypeConfig validation and text projection."""

    def test_unknown_hook_name(self) -> None:
        """Test that unknown hook names are rejected."""
        with pytest.raises(ConfigurationError, match="unknown hook names"):
            BlockTypeConfig(hooks={"on_save": lambda block: None})

    def test_metadata_must_be_json(self) -> None:
        """Test that non-serializable metadata is rejected."""
        with pytest.raises(ConfigurationError):
            BlockTypeConfig(metadata={"callback": print})

    def test_text_field_projection(self, config: Configuration) -> None:
        """Test the text_field shorthand."""
        assert config.text_of("text", {"content": "hello"}) == "hello"
        assert config.apply_text("text", {"content": "hello"}, "bye") == {"content": "bye"}
        assert config.text_of("image", {"url": "a"}) is None
        assert not config.can_apply_text("image")

    def test_apply_text_without_handler(self, config: Configuration) -> None:
        """Test that apply_text fails for types without a text handler."""
        with pytest.raises(ConfigurationError):
            config.apply_text("image", {"url": "a"}, "text")


class TestPlugins:
    """Tests for plugin registration."""

    def test_plugin_order(self) -> None:
        """Test that plugins keep registration order."""
        config = Configuration.from_mapping(
            block_types={"text": {}},
            plugins=[Plugin(name="a"), Plugin(name="b")],
        )

        assert [plugin.name for plugin in config.plugins] == ["a", "b"]

    def test_duplicate_plugin_name(self, config: Configuration) -> None:
        """Test that plugin names must be unique."""
        config.add_plugin(Plugin(name="spell"))

        with pytest.raises(ConfigurationError):
            config.add_plugin(Plugin(name="spell"))

    def test_remove_plugin(self, config: Configuration) -> None:
        """Test removing plugins by name."""
        config.add_plugin(Plugin(name="spell"))

        assert config.remove_plugin("spell") is True
        assert config.remove_plugin("spell") is False
        assert config.plugins == ()

    def test_plugin_requires_name(self) -> None:
        """Test that plugins need a name."""
        with pytest.raises(ValueError):
            Plugin(name="")
