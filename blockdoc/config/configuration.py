"""
Per-type block configuration.

A Configuration binds a BlockTypeSchema to the handlers an embedding
application supplies for each type: validator, renderer (current and
legacy surfaces), default-value template, metadata, lifecycle hooks and
the text projection used by search and plain-text export.

Configurations are versioned values. Every ``register`` bumps
``version``, which the rendering dispatcher uses to invalidate cached
output.
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from ..blocks.types import BlockShape, BlockTypeSchema
from ..exceptions import (
    ConfigurationError,
    InvalidBlockDataError,
    NoRendererConfiguredError,
    UnknownBlockTypeError,
)
from .plugins import Plugin

logger = logging.getLogger(__name__)

OutputT = TypeVar("OutputT")

HOOK_NAMES = frozenset({"on_create", "on_update", "on_remove"})


@dataclass
class BlockTypeConfig(Generic[OutputT]):
    """Handlers for one block type.

    Attributes:
        validator: Returns True if data is acceptable; None accepts unchecked
        renderer: Current renderer, raw_data -> output
        legacy_renderer: Renderer from the legacy surface, used when renderer is None
        default_value: Template data, or a zero-argument factory producing it
        metadata: Declarative, JSON-serializable metadata
        hooks: Lifecycle callbacks keyed by on_create / on_update / on_remove
        text_field: Shorthand text projection reading/writing one mapping key
        extract_text: raw_data -> text (None if the block has no text)
        apply_text: (raw_data, new_text) -> new raw_data
    """

    validator: Callable[[Any], bool] | None = None
    renderer: Callable[[Any], OutputT] | None = None
    legacy_renderer: Callable[[Any], OutputT] | None = None
    default_value: Any = None
    metadata: dict[str, Any] = field(default_factory=dict)
    hooks: dict[str, Callable[..., Any]] = field(default_factory=dict)
    text_field: str | None = None
    extract_text: Callable[[Any], str | None] | None = None
    apply_text: Callable[[Any, str], Any] | None = None

    def __post_init__(self) -> None:
        """Check hook names and metadata, derive the text projection."""
        unknown_hooks = set(self.hooks) - HOOK_NAMES
        if unknown_hooks:
            raise ConfigurationError(
                "hooks", f"unknown hook names {sorted(unknown_hooks)}; expected {sorted(HOOK_NAMES)}"
            )
        try:
            json.dumps(self.metadata)
        except (TypeError, ValueError) as e:
            raise ConfigurationError("metadata", f"must be JSON-serializable: {e}") from e

        if self.text_field is not None:
            text_field = self.text_field
            if self.extract_text is None:
                self.extract_text = lambda data: _read_text_field(data, text_field)
            if self.apply_text is None:
                self.apply_text = lambda data, text: _write_text_field(data, text_field, text)

    @property
    def active_renderer(self) -> Callable[[Any], OutputT] | None:
        """Current renderer if set, otherwise the legacy renderer."""
        return self.renderer if self.renderer is not None else self.legacy_renderer


def _read_text_field(data: Any, name: str) -> str | None:
    if isinstance(data, Mapping):
        value = data.get(name)
        if isinstance(value, str):
            return value
    return None


def _write_text_field(data: Any, name: str, text: str) -> Any:
    updated = dict(data) if isinstance(data, Mapping) else {}
    updated[name] = text
    return updated


class Configuration(Generic[OutputT]):
    """The active set of handlers bound to a block type schema.

    Example:
        config = Configuration.from_mapping(
            block_types={"text": {"content": ""}, "image": {"url": "", "alt": ""}},
            renderers={
                "text": lambda data: f"<p>{data['content']}</p>",
                "image": lambda data: f"<img src='{data['url']}' alt='{data['alt']}'>",
            },
            text_fields={"text": "content"},
        )
    """

    def __init__(
        self,
        schema: BlockTypeSchema | None = None,
        types: Mapping[str, BlockTypeConfig[OutputT]] | None = None,
        *,
        default_values: Mapping[str, Mapping[str, Any]] | None = None,
        plugins: list[Plugin] | None = None,
    ) -> None:
        """Initialize the configuration.

        Args:
            schema: Block type schema; every configured tag must exist in it
            types: Per-type handlers
            default_values: Per-type partial data merged over the default template
            plugins: Ordered plugin list
        """
        self._schema = schema.copy() if schema is not None else BlockTypeSchema()
        self._types: dict[str, BlockTypeConfig[OutputT]] = {}
        self._default_values: dict[str, dict[str, Any]] = {}
        self._plugins: list[Plugin] = []
        self._listeners: list[Callable[[Configuration[OutputT]], None]] = []
        self._version = 0

        for tag, type_config in (types or {}).items():
            self.register(tag, type_config)
        for tag, partial in (default_values or {}).items():
            self.set_default_values(tag, partial)
        for plugin in plugins or []:
            self.add_plugin(plugin)

    @classmethod
    def from_mapping(
        cls,
        block_types: Mapping[str, Any],
        renderers: Mapping[str, Callable[[Any], OutputT]] | None = None,
        *,
        legacy_renderers: Mapping[str, Callable[[Any], OutputT]] | None = None,
        validators: Mapping[str, Callable[[Any], bool]] | None = None,
        default_values: Mapping[str, Mapping[str, Any]] | None = None,
        plugins: list[Plugin] | None = None,
        shapes: Mapping[str, BlockShape] | None = None,
        metadata: Mapping[str, dict[str, Any]] | None = None,
        text_fields: Mapping[str, str] | None = None,
    ) -> Configuration[OutputT]:
        """Build a configuration from per-surface mappings keyed by type tag.

        ``block_types`` defines the schema: each tag maps to its default
        value (or a factory). Every other mapping may only reference tags
        defined there or in ``shapes``.
        """
        schema = BlockTypeSchema()
        for tag in block_types:
            schema.register(tag, (shapes or {}).get(tag))
        for tag, shape in (shapes or {}).items():
            if tag not in schema:
                schema.register(tag, shape)

        surfaces = {
            "renderers": renderers or {},
            "legacy_renderers": legacy_renderers or {},
            "validators": validators or {},
            "metadata": metadata or {},
            "text_fields": text_fields or {},
        }
        for surface, mapping in surfaces.items():
            for tag in mapping:
                if tag not in schema:
                    logger.warning(f"{surface} references unknown block type {tag!r}")
                    raise UnknownBlockTypeError(tag, schema.tags())

        validators = dict(surfaces["validators"])
        for tag, shape in (shapes or {}).items():
            validators.setdefault(tag, shape.as_validator())

        types = {
            tag: BlockTypeConfig(
                validator=validators.get(tag),
                renderer=surfaces["renderers"].get(tag),
                legacy_renderer=surfaces["legacy_renderers"].get(tag),
                default_value=block_types.get(tag),
                metadata=dict(surfaces["metadata"].get(tag, {})),
                text_field=surfaces["text_fields"].get(tag),
            )
            for tag in schema
        }
        return cls(schema, types, default_values=default_values, plugins=plugins)

    @property
    def schema(self) -> BlockTypeSchema:
        """The block type schema in use."""
        return self._schema

    @property
    def version(self) -> int:
        """Monotonic counter bumped by every change to this configuration."""
        return self._version

    @property
    def plugins(self) -> tuple[Plugin, ...]:
        """Plugins in registration order."""
        return tuple(self._plugins)

    def register(
        self,
        tag: str,
        type_config: BlockTypeConfig[OutputT] | None = None,
        shape: BlockShape | None = None,
    ) -> None:
        """Add or replace the handlers for a block type.

        Args:
            tag: Block type tag
            type_config: Handlers; None registers an empty handler set
            shape: If given, the tag is (re)registered in the schema first

        Raises:
            UnknownBlockTypeError: If no shape is given and the tag is not in the schema
        """
        if shape is not None:
            self._schema.register(tag, shape)
        else:
            self._schema.require(tag)
        self._types[tag] = type_config or BlockTypeConfig()
        self._changed(f"registered block type {tag!r}")

    def resolve(self, tag: str) -> BlockTypeConfig[OutputT]:
        """Get the active handlers for a tag.

        A tag present in the schema without registered handlers resolves
        to an empty handler set (no validator, no renderer).

        Raises:
            UnknownBlockTypeError: If the tag is not in the schema
        """
        self._schema.require(tag)
        return self._types.get(tag) or BlockTypeConfig()

    def resolve_renderer(self, tag: str) -> Callable[[Any], OutputT]:
        """Get the renderer for a tag: current surface first, then legacy.

        Raises:
            UnknownBlockTypeError: If the tag is not in the schema
            NoRendererConfiguredError: If neither surface has a renderer
        """
        renderer = self.resolve(tag).active_renderer
        if renderer is None:
            raise NoRendererConfiguredError(tag)
        return renderer

    def validate(self, tag: str, data: Any) -> bool:
        """Check data against the tag's validator. No validator accepts anything."""
        try:
            self.check(tag, data)
        except InvalidBlockDataError:
            return False
        return True

    def check(self, tag: str, data: Any, block_id: str | None = None) -> None:
        """Raise InvalidBlockDataError if the validator rejects the data.

        Exceptions raised by the validator itself count as a rejection.
        """
        validator = self.resolve(tag).validator
        if validator is None:
            return
        try:
            accepted = validator(data)
        except Exception as e:
            raise InvalidBlockDataError(tag, f"validator raised {type(e).__name__}: {e}", block_id) from e
        if not accepted:
            raise InvalidBlockDataError(tag, "rejected by validator", block_id)

    def set_default_values(self, tag: str, partial: Mapping[str, Any]) -> None:
        """Set the partial data merged over a type's default template."""
        self._schema.require(tag)
        self._default_values[tag] = copy.deepcopy(dict(partial))
        self._changed(f"default values for {tag!r}")

    def default_data(self, tag: str, overrides: Mapping[str, Any] | None = None) -> Any:
        """Build initial data for a new block of a type.

        The template (or the result of calling the factory) is deep-copied,
        then the configured default-value partial and the overrides are
        merged over it when the data is a mapping.
        """
        template = self.resolve(tag).default_value
        data = template() if callable(template) else copy.deepcopy(template)

        partial = self._default_values.get(tag)
        if data is None and (partial or overrides):
            data = {}
        if isinstance(data, Mapping):
            data = dict(data)
            data.update(copy.deepcopy(partial or {}))
            data.update(copy.deepcopy(dict(overrides or {})))
        elif overrides:
            raise ConfigurationError(
                "overrides", f"block type {tag!r} has non-mapping default data"
            )
        return data

    def text_of(self, tag: str, data: Any) -> str | None:
        """Project block data to text, or None if the type has no text projection."""
        extract = self.resolve(tag).extract_text
        return extract(data) if extract is not None else None

    def can_apply_text(self, tag: str) -> bool:
        """Check whether text can be written back into blocks of this type."""
        return self.resolve(tag).apply_text is not None

    def apply_text(self, tag: str, data: Any, text: str) -> Any:
        """Write text back into block data.

        Raises:
            ConfigurationError: If the type has no apply_text handler
        """
        apply = self.resolve(tag).apply_text
        if apply is None:
            raise ConfigurationError("apply_text", f"block type {tag!r} cannot accept text")
        return apply(data, text)

    def add_plugin(self, plugin: Plugin) -> None:
        """Append a plugin; plugin names must be unique."""
        if any(existing.name == plugin.name for existing in self._plugins):
            raise ConfigurationError("plugins", f"duplicate plugin name {plugin.name!r}")
        self._plugins.append(plugin)
        self._changed(f"added plugin {plugin.name!r}")

    def remove_plugin(self, name: str) -> bool:
        """Remove a plugin by name. Returns False if it was not registered."""
        for plugin in self._plugins:
            if plugin.name == name:
                self._plugins.remove(plugin)
                self._changed(f"removed plugin {name!r}")
                return True
        return False

    def metadata_snapshot(self) -> dict[str, dict[str, Any]]:
        """Get the declarative per-type metadata, safe to persist."""
        return {
            tag: copy.deepcopy(type_config.metadata)
            for tag, type_config in self._types.items()
            if type_config.metadata
        }

    def subscribe(self, listener: Callable[[Configuration[OutputT]], None]) -> Callable[[], None]:
        """Register a callback invoked after every change.

        Returns:
            A function that unregisters the callback
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)

    def _changed(self, reason: str) -> None:
        self._version += 1
        logger.debug(f"Configuration v{self._version}: {reason}")
        for listener in list(self._listeners):
            listener(self)
