"""
Block types and the block type schema.

A document is an ordered sequence of typed blocks. Each block's
type tag must be registered in a BlockTypeSchema, which maps the tag
to a BlockShape describing the block's data.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..exceptions import UnknownBlockTypeError


@dataclass(frozen=True)
class FieldSpec:
    """Expected type of one named field in block data.

    Attributes:
        types: Accepted Python type(s) for the value
        required: Whether the field must be present
    """

    types: type | tuple[type, ...] = object
    required: bool = True


@dataclass(frozen=True)
class BlockShape:
    """Data-shape descriptor for one block type.

    An empty ``fields`` mapping describes a shape without structural
    constraints: any data is accepted.

    Example:
        text_shape = BlockShape({"content": FieldSpec(str)})
        image_shape = BlockShape({
            "url": FieldSpec(str),
            "alt": FieldSpec(str, required=False),
        })
    """

    fields: Mapping[str, FieldSpec] = field(default_factory=dict)
    description: str | None = None

    def check(self, data: Any) -> list[str]:
        """Return a list of structural problems with ``data`` (empty if valid)."""
        if not self.fields:
            return []
        if not isinstance(data, Mapping):
            return [f"expected a mapping, got {type(data).__name__}"]

        problems = []
        for name, spec in self.fields.items():
            if name not in data:
                if spec.required:
                    problems.append(f"missing required field {name!r}")
                continue
            value = data[name]
            if not isinstance(value, spec.types):
                problems.append(
                    f"field {name!r} has type {type(value).__name__}, "
                    f"expected {_type_names(spec.types)}"
                )
        return problems

    def as_validator(self) -> Callable[[Any], bool]:
        """Turn this shape into a validator callable usable in a BlockTypeConfig."""

        def validator(data: Any) -> bool:
            return not self.check(data)

        return validator


def _type_names(types: type | tuple[type, ...]) -> str:
    if isinstance(types, tuple):
        return " | ".join(t.__name__ for t in types)
    return types.__name__


class BlockTypeSchema:
    """Registry of block type tags to their data shapes.

    Tags are unique; registering an existing tag replaces its shape.
    """

    def __init__(self, shapes: Mapping[str, BlockShape] | None = None) -> None:
        self._shapes: dict[str, BlockShape] = {}
        for tag, shape in (shapes or {}).items():
            self.register(tag, shape)

    def register(self, tag: str, shape: BlockShape | None = None) -> None:
        """Add or replace a block type.

        Args:
            tag: Block type tag (non-empty string)
            shape: Data-shape descriptor; None registers an unconstrained shape
        """
        if not isinstance(tag, str) or not tag:
            raise ValueError(f"Block type tag must be a non-empty string, got {tag!r}")
        self._shapes[tag] = shape or BlockShape()

    def resolve(self, tag: str) -> BlockShape:
        """Get the shape for a tag.

        Raises:
            UnknownBlockTypeError: If the tag is not registered
        """
        try:
            return self._shapes[tag]
        except KeyError:
            raise UnknownBlockTypeError(tag, list(self._shapes)) from None

    def require(self, tag: str) -> None:
        """Raise UnknownBlockTypeError unless the tag is registered."""
        if tag not in self._shapes:
            raise UnknownBlockTypeError(tag, list(self._shapes))

    def tags(self) -> list[str]:
        """Get registered tags in registration order."""
        return list(self._shapes)

    def copy(self) -> BlockTypeSchema:
        """Create an independent copy of this schema."""
        return BlockTypeSchema(dict(self._shapes))

    def __contains__(self, tag: object) -> bool:
        return tag in self._shapes

    def __iter__(self) -> Iterator[str]:
        return iter(self._shapes)

    def __len__(self) -> int:
        return len(self._shapes)


@dataclass(frozen=True)
class Block:
    """A single block in a document.

    Blocks are frozen records. A document stores its own copies and
    hands out detached ones, so editing a returned block's ``raw_data``
    never reaches the document; changes go through ``Document.update``.

    Attributes:
        id: Unique identifier, never reused within a document
        type: Block type tag registered in the schema
        raw_data: Type-specific payload
    """

    id: str
    type: str
    raw_data: Any

    def detached(self) -> Block:
        """Create a copy whose raw_data shares nothing with this block."""
        return Block(id=self.id, type=self.type, raw_data=copy.deepcopy(self.raw_data))

    def state(self) -> BlockState:
        """Capture an immutable copy of this block's persistent state."""
        return BlockState(id=self.id, type=self.type, raw_data=copy.deepcopy(self.raw_data))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for snapshots."""
        return {
            "id": self.id,
            "type": self.type,
            "raw_data": copy.deepcopy(self.raw_data),
        }


@dataclass(frozen=True)
class BlockState:
    """Immutable persistent state of one block.

    Used by history entries and snapshots. ``raw_data`` is a private
    deep copy; ``to_block`` hands out another copy so the state stays
    untouched by later edits.
    """

    id: str
    type: str
    raw_data: Any

    def to_block(self) -> Block:
        """Create a Block from this state."""
        return Block(id=self.id, type=self.type, raw_data=copy.deepcopy(self.raw_data))

    def pair(self) -> tuple[str, Any]:
        """Get the (type, raw_data) pair."""
        return self.type, copy.deepcopy(self.raw_data)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {"id": self.id, "type": self.type, "raw_data": copy.deepcopy(self.raw_data)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BlockState:
        """Deserialize from dictionary."""
        return cls(id=data["id"], type=data["type"], raw_data=copy.deepcopy(data["raw_data"]))
