"""
Rendering dispatch.

Maps each block to the renderer its type is configured with. A failing
renderer never aborts a whole-document render: its output is replaced
by a RenderErrorOutput placeholder, a render_failed event is emitted,
and rendering continues with the remaining blocks.

Successful outputs are kept in the document's render cache, stamped
with the configuration version they were produced with.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from ..blocks.types import Block
from ..document.document import Document
from ..events import EventType

logger = logging.getLogger(__name__)

OutputT = TypeVar("OutputT")


@dataclass(frozen=True)
class RenderErrorOutput:
    """Placeholder output for a block that failed to render.

    Attributes:
        block_type: Type tag of the failing block
        message: Human-readable description of the failure
        error_type: Exception class name
        block_id: Id of the failing block (None for plugin-rewritten input)
    """

    block_type: str
    message: str
    error_type: str
    block_id: str | None = None

    def __str__(self) -> str:
        return f"Error rendering block: {self.message}"


@dataclass
class RenderedDocument(Generic[OutputT]):
    """Ordered render result of a whole document.

    ``outputs[i]`` is the output (or error placeholder) for the i-th
    rendered block; ``block_ids[i]`` is its id when known.
    """

    outputs: list[OutputT | RenderErrorOutput] = field(default_factory=list)
    block_ids: list[str | None] = field(default_factory=list)
    configuration_version: int = 0

    @property
    def errors(self) -> list[RenderErrorOutput]:
        """Error placeholders, in document order."""
        return [output for output in self.outputs if isinstance(output, RenderErrorOutput)]

    @property
    def ok(self) -> bool:
        """True if every block rendered successfully."""
        return not self.errors

    def __iter__(self) -> Iterator[OutputT | RenderErrorOutput]:
        return iter(self.outputs)

    def __len__(self) -> int:
        return len(self.outputs)

    def __getitem__(self, index: int) -> OutputT | RenderErrorOutput:
        return self.outputs[index]


class RenderDispatcher(Generic[OutputT]):
    """Renders blocks of one document through its bound configuration.

    Renderers are invoked one at a time, in document order.
    """

    def __init__(self, document: Document) -> None:
        """Initialize the dispatcher.

        Args:
            document: Document whose blocks are rendered
        """
        self.document = document
        self.cache_hits = 0
        self.cache_misses = 0

    def render_one(self, index: int) -> OutputT | RenderErrorOutput:
        """Render the block at an index (cached)."""
        return self._render_block(self.document.get(index))

    def render_by_id(self, block_id: str) -> OutputT | RenderErrorOutput:
        """Render a block by id (cached)."""
        return self._render_block(self.document.get_by_id(block_id))

    def render_all(self) -> RenderedDocument[OutputT]:
        """Render every block in document order.

        Plugins' before_render hooks may rewrite the (type, raw_data) list
        first; rewritten input is rendered without the cache. Plugins'
        after_render hooks then post-process the assembled result.
        """
        configuration = self.document.configuration
        blocks = self.document.blocks()
        rewriters = [plugin for plugin in configuration.plugins if plugin.before_render]

        if rewriters:
            pairs = [(block.type, copy.deepcopy(block.raw_data)) for block in blocks]
            for plugin in rewriters:
                pairs = list(plugin.before_render(pairs))
                logger.debug(f"Plugin {plugin.name!r} rewrote render input to {len(pairs)} block(s)")
            if len(pairs) == len(blocks):
                block_ids: list[str | None] = [block.id for block in blocks]
            else:
                block_ids = [None] * len(pairs)
            outputs = [
                self._render_data(block_type, raw_data, block_id)
                for (block_type, raw_data), block_id in zip(pairs, block_ids)
            ]
        else:
            block_ids = [block.id for block in blocks]
            outputs = [self._render_block(block) for block in blocks]

        result: RenderedDocument[OutputT] = RenderedDocument(
            outputs=outputs,
            block_ids=block_ids,
            configuration_version=configuration.version,
        )
        for plugin in configuration.plugins:
            if plugin.after_render:
                result = plugin.after_render(result)

        if not isinstance(result, RenderedDocument):
            return result
        failures = len(result.errors)
        if failures:
            logger.info(f"Rendered {len(result)} block(s) with {failures} failure(s)")
        return result

    def invalidate_cache(self) -> None:
        """Force full recomputation on the next render."""
        self.document.invalidate_render_cache()

    def _render_block(self, block: Block) -> OutputT | RenderErrorOutput:
        version = self.document.configuration.version
        entry = self.document.render_cache.lookup(block.id, version)
        if entry is not None:
            self.cache_hits += 1
            return entry.output

        self.cache_misses += 1
        output = self._render_data(block.type, block.raw_data, block.id)
        if not isinstance(output, RenderErrorOutput):
            self.document.render_cache.store(block.id, output, version)
        return output

    def _render_data(self, block_type: str, raw_data: Any, block_id: str | None) -> OutputT | RenderErrorOutput:
        try:
            renderer = self.document.configuration.resolve_renderer(block_type)
            return renderer(raw_data)
        except Exception as e:
            placeholder = RenderErrorOutput(
                block_type=block_type,
                message=str(e) or type(e).__name__,
                error_type=type(e).__name__,
                block_id=block_id,
            )
            logger.warning(
                f"Error rendering {block_type} block {block_id}: {placeholder.message}",
                extra={
                    "document_id": self.document.document_id,
                    "document_version": self.document.version,
                    "block_id": block_id,
                    "block_type": block_type,
                },
            )
            self.document.events.emit(
                EventType.RENDER_FAILED,
                {
                    "block_id": block_id,
                    "block_type": block_type,
                    "message": placeholder.message,
                    "error_type": placeholder.error_type,
                },
                self.document.version,
            )
            return placeholder
