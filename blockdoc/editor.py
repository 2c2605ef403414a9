"""
Editor façade.

Composes a Document with its rendering, search, history, serialization,
operation log and format converters, and owns the asynchronous
initialization phase (plugin initialize hooks, optional snapshot load).
Until initialization completes, mutations raise EditorNotReadyError.

Example:
    async with await Editor.create(config) as editor:
        editor.insert(0, "text", {"content": "Hi there"})
        html = editor.render_all()
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable, Iterator, Mapping
from contextlib import AbstractContextManager
from pathlib import Path
from typing import Any, Generic, TypeVar

from .blocks.types import Block
from .collab.log import MergeResult, OperationLog
from .collab.operations import Operation
from .config.configuration import Configuration
from .config.plugins import Plugin
from .converters import ConverterRegistry, default_converters
from .document.document import Document
from .events import EventType, Listener
from .exceptions import EditorNotReadyError
from .logging_utils import get_engine_logger
from .rendering.dispatcher import RenderDispatcher, RenderedDocument, RenderErrorOutput
from .search.engine import BlockMatches, SearchEngine
from .serialization.snapshot import load_snapshot, save_snapshot, serialize_document
from .settings import EngineSettings

logger = get_engine_logger("editor")

OutputT = TypeVar("OutputT")


class Editor(Generic[OutputT]):
    """Block document editor composed of the engine components."""

    def __init__(
        self,
        configuration: Configuration[OutputT],
        settings: EngineSettings | None = None,
        *,
        converters: ConverterRegistry | None = None,
        origin: str = "local",
    ) -> None:
        """Initialize the editor (not yet ready; call initialize()).

        Args:
            configuration: Configuration for the document
            settings: Engine settings
            converters: Export/import converters; defaults to json and text
            origin: Participant name for locally recorded operations
        """
        self.settings = settings or EngineSettings()
        self.converters = converters or default_converters()
        self.origin = origin
        self._ready = False
        self._initialized_plugins: list[Plugin] = []
        self._bind(Document(configuration, settings=self.settings))

    @classmethod
    async def create(
        cls,
        configuration: Configuration[OutputT],
        settings: EngineSettings | None = None,
        *,
        snapshot_path: Path | None = None,
        converters: ConverterRegistry | None = None,
        origin: str = "local",
    ) -> Editor[OutputT]:
        """Create and initialize an editor."""
        editor = cls(configuration, settings, converters=converters, origin=origin)
        await editor.initialize(snapshot_path)
        return editor

    async def __aenter__(self) -> Editor[OutputT]:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def initialize(self, snapshot_path: Path | None = None) -> None:
        """Run plugin initialize hooks and optionally load a snapshot.

        If any step fails or is cancelled, plugins initialized so far are
        cleaned up and the editor stays not ready.

        Args:
            snapshot_path: Snapshot file to load; a missing file leaves the document empty
        """
        if self._ready:
            return

        if self.settings.structured_logging:
            self.settings.apply_logging()
        try:
            if snapshot_path is not None:
                loaded = await load_snapshot(
                    Path(snapshot_path), self.document.configuration, settings=self.settings
                )
                if loaded is not None:
                    self._bind(loaded)

            for plugin in self.document.configuration.plugins:
                if plugin.initialize is not None:
                    await _maybe_await(plugin.initialize(self))
                self._initialized_plugins.append(plugin)
                logger.debug(f"Initialized plugin {plugin.name!r}")
        except (Exception, asyncio.CancelledError):
            logger.warning("Editor initialization failed; cleaning up initialized plugins")
            await self._cleanup_plugins()
            raise

        self._ready = True
        logger.info(
            f"Editor ready with {len(self.document)} block(s) and "
            f"{len(self._initialized_plugins)} plugin(s)"
        )

    async def close(self) -> None:
        """Run plugin cleanup hooks in reverse order. The editor is no longer ready."""
        self._ready = False
        await self._cleanup_plugins()

    async def _cleanup_plugins(self) -> None:
        first_error: Exception | None = None
        while self._initialized_plugins:
            plugin = self._initialized_plugins.pop()
            if plugin.cleanup is None:
                continue
            try:
                await _maybe_await(plugin.cleanup())
            except Exception as e:
                logger.error(f"Cleanup of plugin {plugin.name!r} failed: {e}")
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error

    def _require_ready(self, operation: str) -> None:
        if not self._ready:
            raise EditorNotReadyError(operation)

    def _bind(self, document: Document) -> None:
        previous = getattr(self, "document", None)
        if previous is not None:
            # Keep listeners registered before the swap
            document.events = previous.events
            previous.detach()
        self.document = document
        self.renderer: RenderDispatcher[OutputT] = RenderDispatcher(document)
        self.search = SearchEngine(document)
        self.operation_log = OperationLog(document, origin=self.origin)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def configuration(self) -> Configuration[OutputT]:
        return self.document.configuration

    @property
    def version(self) -> int:
        return self.document.version

    def __len__(self) -> int:
        return len(self.document)

    def __iter__(self) -> Iterator[Block]:
        return iter(self.document)

    def get(self, index: int) -> Block:
        return self.document.get(index)

    def get_by_id(self, block_id: str) -> Block:
        return self.document.get_by_id(block_id)

    def on(self, event_type: EventType | None, listener: Listener) -> Callable[[], None]:
        """Register an event listener; returns a function that unregisters it."""
        return self.document.events.on(event_type, listener)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def insert(self, index: int, block_type: str, raw_data: Any) -> Block:
        self._require_ready("insert")
        return self.document.insert(index, block_type, raw_data)

    def append(self, block_type: str, raw_data: Any) -> Block:
        self._require_ready("append")
        return self.document.append(block_type, raw_data)

    def create_block(
        self,
        block_type: str,
        index: int | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> Block:
        """Insert a block populated from the type's defaults."""
        self._require_ready("create_block")
        return self.document.create(block_type, index, overrides)

    def remove(self, index: int) -> Block:
        self._require_ready("remove")
        return self.document.remove(index)

    def remove_by_id(self, block_id: str) -> Block:
        self._require_ready("remove_by_id")
        return self.document.remove_by_id(block_id)

    def update(self, index: int, raw_data: Any) -> Block:
        self._require_ready("update")
        return self.document.update(index, raw_data)

    def update_by_id(self, block_id: str, changes: Any, *, merge: bool = True) -> Block:
        self._require_ready("update_by_id")
        return self.document.update_by_id(block_id, changes, merge=merge)

    def reorder(self, from_index: int, to_index: int) -> None:
        self._require_ready("reorder")
        self.document.reorder(from_index, to_index)

    def rearrange(self, new_order: list[int]) -> None:
        self._require_ready("rearrange")
        self.document.rearrange(new_order)

    def rearrange_by_ids(self, new_order_ids: list[str]) -> None:
        self._require_ready("rearrange_by_ids")
        self.document.rearrange_by_ids(new_order_ids)

    def move_up(self, block_id: str) -> bool:
        self._require_ready("move_up")
        return self.document.move_up(block_id)

    def move_down(self, block_id: str) -> bool:
        self._require_ready("move_down")
        return self.document.move_down(block_id)

    def duplicate(self, index: int) -> Block:
        self._require_ready("duplicate")
        return self.document.duplicate(index)

    def clear(self) -> int:
        self._require_ready("clear")
        return self.document.clear()

    def select(self, block_id: str | None) -> None:
        self.document.select(block_id)

    def focus(self, block_id: str | None) -> None:
        self.document.focus(block_id)

    def batch(self, label: str = "batch") -> AbstractContextManager[Document]:
        """Group mutations into one undoable action, rolled back on error."""
        self._require_ready("batch")
        return self.document.batch(label)

    def undo(self) -> bool:
        self._require_ready("undo")
        return self.document.undo()

    def redo(self) -> bool:
        self._require_ready("redo")
        return self.document.redo()

    def set_configuration(self, configuration: Configuration[OutputT]) -> None:
        """Swap the bound configuration; all render caches are invalidated."""
        self.document.set_configuration(configuration)

    # ------------------------------------------------------------------
    # Rendering and search
    # ------------------------------------------------------------------

    def render_all(self) -> RenderedDocument[OutputT]:
        return self.renderer.render_all()

    def render_one(self, index: int) -> OutputT | RenderErrorOutput:
        return self.renderer.render_one(index)

    def find(self, query: str, *, case_sensitive: bool = False, whole_word: bool = False) -> list[BlockMatches]:
        return self.search.find(query, case_sensitive=case_sensitive, whole_word=whole_word)

    def replace(
        self,
        query: str,
        replacement: str,
        *,
        case_sensitive: bool = False,
        whole_word: bool = False,
        replace_all: bool = True,
    ) -> int:
        self._require_ready("replace")
        return self.search.replace(
            query,
            replacement,
            case_sensitive=case_sensitive,
            whole_word=whole_word,
            replace_all=replace_all,
        )

    # ------------------------------------------------------------------
    # Collaboration
    # ------------------------------------------------------------------

    def apply_operation(self, operation: Operation) -> bool:
        self._require_ready("apply_operation")
        return self.operation_log.apply_operation(operation)

    def merge_operations(self, operations: list[Operation]) -> MergeResult:
        self._require_ready("merge_operations")
        return self.operation_log.merge_operations(operations)

    def get_operations(self, from_version: int = 0) -> list[Operation]:
        return self.operation_log.get_operations(from_version)

    # ------------------------------------------------------------------
    # Persistence, export and import
    # ------------------------------------------------------------------

    def serialize(self, *, include_configuration_metadata: bool = False) -> str:
        return serialize_document(
            self.document, include_configuration_metadata=include_configuration_metadata
        )

    async def save(self, path: Path) -> None:
        """Save a snapshot of the document to a file."""
        await save_snapshot(Path(path), self.document)

    def export_to(self, format_name: str) -> str:
        """Export the document through the converter for a format.

        Raises:
            FormatUnsupportedError: If no converter handles the format
        """
        return self.converters.get(format_name).export(self.document)

    def import_from(self, content: str, format_name: str, *, replace: bool = True) -> list[Block]:
        """Import content through the converter for a format.

        All inserted blocks form one undoable action. If any imported block
        is rejected, the document is left unchanged.

        Args:
            content: Content in the given format
            format_name: Registered format name
            replace: Clear the document first; otherwise append

        Returns:
            The inserted blocks

        Raises:
            FormatUnsupportedError: If no converter handles the format
        """
        self._require_ready("import_from")
        converter = self.converters.get(format_name)
        pairs = converter.import_blocks(content, self.document.configuration)
        with self.document.batch(f"import {format_name}"):
            if replace:
                self.document.clear()
            blocks = [self.document.append(block_type, raw_data) for block_type, raw_data in pairs]
        logger.info(f"Imported {len(blocks)} block(s) from {format_name}")
        return blocks


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result
