"""
Document mutation engine.

A Document owns an ordered sequence of blocks. Every mutation either
fails without changing anything, or commits: the pre-mutation state is
recorded in history, the version counter advances, affected render
cache entries are dropped, the block type's lifecycle hook runs and events
are emitted, in that order. A failing lifecycle hook is logged and does
not undo the commit.

Blocks handed out by a Document are detached copies.
"""

from __future__ import annotations

import copy
import logging
import uuid
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from ..blocks.cache import RenderCache
from ..blocks.ids import BlockIdAllocator
from ..blocks.types import Block, BlockState
from ..config.configuration import BlockTypeConfig, Configuration
from ..events import EventEmitter, EventType
from ..exceptions import (
    BlockNotFoundError,
    DuplicateBlockIdError,
    IndexOutOfBoundsError,
    InvalidBlockDataError,
    InvalidOrderError,
    UnknownBlockTypeError,
)
from ..history.manager import DocumentState, HistoryManager
from ..logging_utils import DocumentLoggerAdapter
from ..settings import EngineSettings

logger = logging.getLogger(__name__)


def _noop() -> None:
    pass


class Document:
    """Ordered, mutable collection of blocks bound to a Configuration.

    Example:
        doc = Document(config)
        doc.insert(0, "text", {"content": "hi"})
        doc.insert(1, "image", {"url": "a", "alt": "b"})
        doc.remove(0)
        assert doc.get(0).type == "image"
        doc.undo()
    """

    def __init__(
        self,
        configuration: Configuration,
        *,
        settings: EngineSettings | None = None,
        history: HistoryManager | None = None,
        id_allocator: BlockIdAllocator | None = None,
        document_id: str | None = None,
    ) -> None:
        """Initialize an empty document.

        Args:
            configuration: Configuration to validate and render with
            settings: Engine settings (history depth, id prefix)
            history: History manager; defaults to one sized from settings
            id_allocator: Block id allocator; defaults to one using settings.id_prefix
            document_id: Identifier used in logs; random if omitted
        """
        self.settings = settings or EngineSettings()
        self.document_id = document_id or uuid.uuid4().hex
        self.history = history or HistoryManager(max_depth=self.settings.history_depth)
        self.events = EventEmitter()
        self.render_cache = RenderCache()
        self._allocator = id_allocator or BlockIdAllocator(prefix=self.settings.id_prefix)
        self._blocks: list[Block] = []
        self._version = 0
        self._in_batch = False
        self._selected_id: str | None = None
        self._focused_id: str | None = None
        self._log = DocumentLoggerAdapter(
            logger, {"document_id": self.document_id}, version_source=lambda: self._version
        )

        self._configuration = configuration
        self._unsubscribe_configuration = configuration.subscribe(self._on_configuration_changed)

    @classmethod
    def from_states(
        cls,
        configuration: Configuration,
        states: Iterable[BlockState],
        *,
        preserve_ids: bool = True,
        settings: EngineSettings | None = None,
    ) -> Document:
        """Build a document from stored block states without recording history.

        Args:
            configuration: Configuration every block must satisfy
            states: Ordered block states
            preserve_ids: Keep stored ids; otherwise allocate fresh ones
            settings: Engine settings

        Raises:
            UnknownBlockTypeError: If a state's type is not in the schema
            InvalidBlockDataError: If the configuration rejects a state's data
            DuplicateBlockIdError: If preserved ids repeat
        """
        document = cls(configuration, settings=settings)
        try:
            for state in states:
                configuration.check(state.type, state.raw_data, state.id)
                if preserve_ids:
                    if document._allocator.was_issued(state.id):
                        raise DuplicateBlockIdError(state.id)
                    document._allocator.observe(state.id)
                    new_id = state.id
                else:
                    new_id = document._allocator.next_id()
                document._blocks.append(Block(id=new_id, type=state.type, raw_data=copy.deepcopy(state.raw_data)))
        except BaseException:
            document.detach()
            raise
        return document

    def detach(self) -> None:
        """Stop following configuration changes.

        Call this when a document is discarded while its configuration
        lives on.
        """
        self._unsubscribe_configuration()
        self._unsubscribe_configuration = _noop

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def configuration(self) -> Configuration:
        """The currently bound configuration."""
        return self._configuration

    @property
    def version(self) -> int:
        """Monotonic counter advanced by every committed mutation."""
        return self._version

    @property
    def selected_id(self) -> str | None:
        return self._selected_id

    @property
    def focused_id(self) -> str | None:
        return self._focused_id

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self) -> Iterator[Block]:
        return iter([block.detached() for block in self._blocks])

    def __contains__(self, block_id: object) -> bool:
        return any(block.id == block_id for block in self._blocks)

    def get(self, index: int) -> Block:
        """Get a copy of the block at an index."""
        self._check_index(index)
        return self._blocks[index].detached()

    def get_by_id(self, block_id: str) -> Block:
        """Get a copy of a block by id."""
        return self._blocks[self.index_of(block_id)].detached()

    def index_of(self, block_id: str) -> int:
        """Get the current index of a block.

        Raises:
            BlockNotFoundError: If no block has this id
        """
        for index, block in enumerate(self._blocks):
            if block.id == block_id:
                return index
        raise BlockNotFoundError(block_id)

    def blocks(self) -> tuple[Block, ...]:
        """Get copies of the blocks in order."""
        return tuple(block.detached() for block in self._blocks)

    def ids(self) -> list[str]:
        """Get block ids in order."""
        return [block.id for block in self._blocks]

    def pairs(self) -> list[tuple[str, Any]]:
        """Get (type, raw_data) pairs in order, as independent copies."""
        return [(block.type, copy.deepcopy(block.raw_data)) for block in self._blocks]

    def capture(self) -> DocumentState:
        """Capture the full ordered block state."""
        return tuple(block.state() for block in self._blocks)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def insert(self, index: int, block_type: str, raw_data: Any, *, block_id: str | None = None) -> Block:
        """Insert a new block at an index, shifting later blocks.

        Args:
            index: Position in [0, len]
            block_type: Schema tag
            raw_data: Block payload (deep-copied)
            block_id: Explicit id, e.g. from a remote operation; must never have been issued

        Returns:
            The inserted block

        Raises:
            UnknownBlockTypeError, InvalidBlockDataError, IndexOutOfBoundsError,
            DuplicateBlockIdError
        """
        type_config = self._resolve(block_type)
        self._validate(block_type, raw_data)
        self._check_index(index, allow_end=True)
        if block_id is not None and self._allocator.was_issued(block_id):
            raise DuplicateBlockIdError(block_id)

        before = self.capture()
        if block_id is None:
            block_id = self._allocator.next_id()
        else:
            self._allocator.observe(block_id)
        block = Block(id=block_id, type=block_type, raw_data=copy.deepcopy(raw_data))
        self._blocks.insert(index, block)
        self._commit("insert", before)

        self._log.debug(f"Inserted {block_type} block {block.id} at {index}")
        self._run_hook(type_config, "on_create", block)
        self._emit(EventType.BLOCK_ADDED, {"block_id": block.id, "index": index, "type": block_type})
        self._emit_content_changed("insert")
        return block.detached()

    def append(self, block_type: str, raw_data: Any) -> Block:
        """Insert a block at the end."""
        return self.insert(len(self._blocks), block_type, raw_data)

    def create(
        self,
        block_type: str,
        index: int | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> Block:
        """Insert a block populated from the type's default data.

        Args:
            block_type: Schema tag
            index: Position; defaults to the end
            overrides: Values merged over the defaults
        """
        data = self._configuration.default_data(block_type, overrides)
        return self.insert(len(self._blocks) if index is None else index, block_type, data)

    def remove(self, index: int) -> Block:
        """Remove the block at an index. Its id is retired.

        Returns:
            The removed block
        """
        self._check_index(index)
        type_config = self._resolve(self._blocks[index].type)

        before = self.capture()
        block = self._blocks.pop(index)
        self.render_cache.invalidate(block.id)
        self._commit("remove", before)

        self._log.debug(f"Removed {block.type} block {block.id} from {index}")
        self._run_hook(type_config, "on_remove", block)
        self._emit(EventType.BLOCK_REMOVED, {"block_id": block.id, "index": index, "type": block.type})
        self._drop_stale_selection()
        self._emit_content_changed("remove")
        return block

    def remove_by_id(self, block_id: str) -> Block:
        """Remove a block by id."""
        return self.remove(self.index_of(block_id))

    def update(self, index: int, raw_data: Any) -> Block:
        """Replace a block's data, re-validating against its type.

        On validation failure the document is left unchanged.
        """
        self._check_index(index)
        block = self._blocks[index]
        type_config = self._resolve(block.type)
        self._validate(block.type, raw_data, block.id)

        before = self.capture()
        block = Block(id=block.id, type=block.type, raw_data=copy.deepcopy(raw_data))
        self._blocks[index] = block
        self.render_cache.invalidate(block.id)
        self._commit("update", before)

        self._log.debug(f"Updated {block.type} block {block.id} at {index}")
        self._run_hook(type_config, "on_update", block)
        self._emit(EventType.BLOCK_UPDATED, {"block_id": block.id, "index": index, "type": block.type})
        self._emit_content_changed("update")
        return block.detached()

    def update_by_id(self, block_id: str, changes: Any, *, merge: bool = True) -> Block:
        """Update a block by id.

        Args:
            block_id: Block to update
            changes: New data, or a partial mapping when merging
            merge: Merge ``changes`` over mapping data instead of replacing it
        """
        index = self.index_of(block_id)
        current = self._blocks[index].raw_data
        if merge and isinstance(current, Mapping) and isinstance(changes, Mapping):
            new_data = copy.deepcopy(dict(current))
            new_data.update(copy.deepcopy(dict(changes)))
        else:
            new_data = changes
        return self.update(index, new_data)

    def reorder(self, from_index: int, to_index: int) -> None:
        """Move one block so it ends up at ``to_index``."""
        self._check_index(from_index)
        self._check_index(to_index)
        order = list(range(len(self._blocks)))
        order.insert(to_index, order.pop(from_index))
        self.rearrange(order)

    def rearrange(self, new_order: list[int]) -> None:
        """Permute blocks: ``new_order[i]`` is the current index of the block that moves to ``i``.

        Raises:
            IndexOutOfBoundsError: If any index is out of bounds
            InvalidOrderError: If the order is not a bijection over current indices
        """
        length = len(self._blocks)
        new_order = list(new_order)
        for index in new_order:
            if not isinstance(index, int) or isinstance(index, bool):
                raise InvalidOrderError(new_order, length, f"index {index!r} is not an integer")
            self._check_index(index)
        if len(new_order) != length:
            raise InvalidOrderError(
                new_order, length, f"expected {length} indices, got {len(new_order)}"
            )
        if len(set(new_order)) != length:
            raise InvalidOrderError(new_order, length, "indices must appear exactly once")
        if new_order == list(range(length)):
            return

        before = self.capture()
        self._blocks = [self._blocks[index] for index in new_order]
        self._commit("rearrange", before)

        self._log.debug(f"Rearranged blocks: {new_order}")
        self._emit(EventType.BLOCKS_REORDERED, {"order": self.ids(), "new_order": new_order})
        self._emit_content_changed("rearrange")

    def rearrange_by_ids(self, new_order_ids: list[str]) -> None:
        """Permute blocks given the desired order of ids."""
        if len(set(new_order_ids)) != len(new_order_ids):
            raise InvalidOrderError([], len(self._blocks), "ids must appear exactly once")
        self.rearrange([self.index_of(block_id) for block_id in new_order_ids])

    def move_up(self, block_id: str) -> bool:
        """Swap a block with its predecessor. Returns False if already first."""
        index = self.index_of(block_id)
        if index == 0:
            return False
        self.reorder(index, index - 1)
        return True

    def move_down(self, block_id: str) -> bool:
        """Swap a block with its successor. Returns False if already last."""
        index = self.index_of(block_id)
        if index == len(self._blocks) - 1:
            return False
        self.reorder(index, index + 1)
        return True

    def duplicate(self, index: int) -> Block:
        """Insert an independent deep copy of a block right after it, with a fresh id."""
        self._check_index(index)
        source = self._blocks[index]
        block = self.insert(index + 1, source.type, copy.deepcopy(source.raw_data))
        self._log.debug(f"Duplicated block {source.id} as {block.id}")
        return block

    def clear(self) -> int:
        """Remove all blocks. Their ids are retired.

        Returns:
            Number of removed blocks
        """
        if not self._blocks:
            return 0
        type_configs = [self._resolve(block.type) for block in self._blocks]

        before = self.capture()
        removed = self._blocks
        self._blocks = []
        self.render_cache.clear()
        self._commit("clear", before)

        for index, (block, type_config) in enumerate(zip(removed, type_configs)):
            self._run_hook(type_config, "on_remove", block)
            self._emit(EventType.BLOCK_REMOVED, {"block_id": block.id, "index": index, "type": block.type})
        self._drop_stale_selection()
        self._emit_content_changed("clear")
        return len(removed)

    # ------------------------------------------------------------------
    # Selection and focus
    # ------------------------------------------------------------------

    def select(self, block_id: str | None) -> None:
        """Select a block (None clears the selection)."""
        if block_id is not None:
            self.index_of(block_id)
        if block_id == self._selected_id:
            return
        previous, self._selected_id = self._selected_id, block_id
        self._emit(EventType.SELECTION_CHANGED, {"block_id": block_id, "previous": previous})

    def focus(self, block_id: str | None) -> None:
        """Focus a block (None clears focus)."""
        if block_id is not None:
            self.index_of(block_id)
        if block_id == self._focused_id:
            return
        previous, self._focused_id = self._focused_id, block_id
        self._emit(EventType.FOCUS_CHANGED, {"block_id": block_id, "previous": previous})

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def undo(self) -> bool:
        """Restore the state before the last committed action.

        Returns:
            False if there was nothing to undo
        """
        state = self.history.undo(self.capture())
        if state is None:
            return False
        self._restore(state, "undo")
        return True

    def redo(self) -> bool:
        """Re-apply the last undone action.

        Returns:
            False if there was nothing to redo
        """
        state = self.history.redo(self.capture())
        if state is None:
            return False
        self._restore(state, "redo")
        return True

    @contextmanager
    def batch(self, label: str = "batch") -> Iterator[Document]:
        """Group mutations into a single undoable action.

        If the body raises or is interrupted, the document is rolled back
        to its state before the batch and the exception propagates. Nested batches
        join the outermost one.
        """
        if self._in_batch:
            yield self
            return

        before = self.capture()
        start_version = self._version
        self._in_batch = True
        try:
            with self.history.suspended():
                yield self
        except BaseException:
            self._in_batch = False
            if self._version != start_version:
                self._log.debug(f"Rolling back batch {label!r}")
                self._blocks = [state.to_block() for state in before]
                self.render_cache.clear()
                self._version += 1
                self._drop_stale_selection()
                self._emit_content_changed("rollback")
            raise
        finally:
            self._in_batch = False

        if self._version != start_version:
            self.history.commit(before, label)
            self._emit(EventType.HISTORY_CHANGED, self._history_payload(label))

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_configuration(self, configuration: Configuration) -> None:
        """Bind a different configuration, atomically.

        History entries holding a type the new schema lacks could never be
        restored, so in that case undo and redo history is cleared.

        Raises:
            UnknownBlockTypeError: If a block's type is missing from the new schema;
                the previous configuration stays bound
        """
        for block in self._blocks:
            if block.type not in configuration.schema:
                raise UnknownBlockTypeError(block.type, configuration.schema.tags())
        orphaned = sorted(tag for tag in self.history.block_types() if tag not in configuration.schema)

        self._unsubscribe_configuration()
        self._configuration = configuration
        self._unsubscribe_configuration = configuration.subscribe(self._on_configuration_changed)
        self.invalidate_render_cache()
        self._log.info(f"Configuration swapped (configuration version {configuration.version})")
        if orphaned:
            self.history.clear()
            self._log.warning(f"Cleared history referencing types missing from the new schema: {orphaned}")
            self._emit(EventType.HISTORY_CHANGED, self._history_payload("set_configuration"))
        self._emit(EventType.CONFIGURATION_CHANGED, {"configuration_version": configuration.version})

    def invalidate_render_cache(self) -> None:
        """Drop the cached render output of every block."""
        self.render_cache.clear()

    def _on_configuration_changed(self, configuration: Configuration) -> None:
        self.invalidate_render_cache()
        self._emit(EventType.CONFIGURATION_CHANGED, {"configuration_version": configuration.version})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_index(self, index: int, *, allow_end: bool = False) -> None:
        length = len(self._blocks)
        upper = length if allow_end else length - 1
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index <= upper:
            raise IndexOutOfBoundsError(index, length, allow_end=allow_end)

    def _resolve(self, block_type: str) -> BlockTypeConfig:
        return self._configuration.resolve(block_type)

    def _validate(self, block_type: str, raw_data: Any, block_id: str | None = None) -> None:
        try:
            self._configuration.check(block_type, raw_data, block_id)
        except InvalidBlockDataError as e:
            self._log.debug(f"Validation failed for {block_type}: {e.reason}")
            self._emit(
                EventType.VALIDATION_FAILED,
                {"block_type": block_type, "block_id": block_id, "reason": e.reason},
            )
            raise

    def _commit(self, label: str, before: DocumentState) -> None:
        self._version += 1
        if not self._in_batch and self.history.commit(before, label):
            self._emit(EventType.HISTORY_CHANGED, self._history_payload(label))

    def _restore(self, state: DocumentState, label: str) -> None:
        self._blocks = [block_state.to_block() for block_state in state]
        for block in self._blocks:
            self._allocator.observe(block.id)
        self.render_cache.clear()
        self._version += 1
        self._log.debug(f"Restored {len(self._blocks)} block(s) via {label}")
        self._drop_stale_selection()
        self._emit(EventType.HISTORY_CHANGED, self._history_payload(label))
        self._emit_content_changed(label)

    def _history_payload(self, label: str) -> dict[str, Any]:
        return {
            "action": label,
            "can_undo": self.history.can_undo,
            "can_redo": self.history.can_redo,
        }

    def _drop_stale_selection(self) -> None:
        present = set(self.ids())
        if self._selected_id is not None and self._selected_id not in present:
            previous, self._selected_id = self._selected_id, None
            self._emit(EventType.SELECTION_CHANGED, {"block_id": None, "previous": previous})
        if self._focused_id is not None and self._focused_id not in present:
            previous, self._focused_id = self._focused_id, None
            self._emit(EventType.FOCUS_CHANGED, {"block_id": None, "previous": previous})

    def _run_hook(self, type_config: BlockTypeConfig, name: str, block: Block) -> None:
        hook = type_config.hooks.get(name)
        if hook is None:
            return
        try:
            hook(block.detached())
        except Exception as e:
            self._log.bind(block_id=block.id, block_type=block.type).warning(f"{name} hook failed: {e}")

    def _emit(self, event_type: EventType, data: dict[str, Any]) -> None:
        self.events.emit(event_type, data, self._version)

    def _emit_content_changed(self, action: str) -> None:
        self._emit(EventType.CONTENT_CHANGED, {"action": action, "length": len(self._blocks)})
