"""
blockdoc

Block document engine: an ordered collection of typed content blocks,
validated and rendered through per-type handlers supplied by the
embedding application.

Provides:
- Block type schema and versioned, swappable configuration
- Document mutation engine with events, selection and atomic batches
- Rendering dispatch with per-block error isolation and caching
- Snapshot serialization and async file persistence
- Bounded undo/redo history
- Search/replace over block text projections
- Collaborative operation log with merge and conflict reporting

Usage:

    >>> from blockdoc import BlockTypeConfig, Configuration, Editor
    >>> config = Configuration.from_mapping(
    ...     block_types={"text": {"content": ""}, "image": {"url": "", "alt": ""}},
    ...     renderers={
    ...         "text": lambda data: f"<p>{data['content']}</p>",
    ...         "image": lambda data: f"<img src={data['url']!r}>",
    ...     },
    ...     text_fields={"text": "content"},
    ... )
    >>> async with await Editor.create(config) as editor:
    ...     editor.insert(0, "text", {"content": "Hi there"})
    ...     editor.find("hi")
    ...     editor.render_all().outputs

Lower-level components can be used without the editor:

    from blockdoc.document import Document
    from blockdoc.rendering import RenderDispatcher
    from blockdoc.serialization import serialize_document, deserialize_document
    from blockdoc.collab import Operation, OperationLog
"""

# Block model
from .blocks import Block, BlockShape, BlockState, BlockTypeSchema, FieldSpec, RenderCache

# Collaboration
from .collab import Conflict, ConflictType, MergeResult, Operation, OperationKind, OperationLog

# Configuration
from .config import BlockTypeConfig, Configuration, Plugin

# Converters
from .converters import (
    ConverterRegistry,
    FormatConverter,
    PlainTextConverter,
    SnapshotJsonConverter,
    default_converters,
)

# Document
from .document import Document
from .editor import Editor
from .events import Event, EventEmitter, EventType

# Exceptions
from .exceptions import (
    BlockDocumentError,
    BlockNotFoundError,
    ConfigurationError,
    DuplicateBlockIdError,
    EditorNotReadyError,
    FormatUnsupportedError,
    IndexOutOfBoundsError,
    InvalidBlockDataError,
    InvalidOrderError,
    MalformedSnapshotError,
    NoRendererConfiguredError,
    OperationConflictError,
    SnapshotIOError,
    UnknownBlockTypeError,
)

# History
from .history import HistoryManager

# Logging
from .logging_utils import configure_structured_logging, get_engine_logger

# Rendering
from .rendering import RenderDispatcher, RenderedDocument, RenderErrorOutput

# Search
from .search import BlockMatches, SearchEngine

# Serialization
from .serialization import (
    DocumentSnapshot,
    deserialize_document,
    load_snapshot,
    save_snapshot,
    serialize_document,
)
from .settings import EngineSettings

__version__ = "0.1.0"

__all__ = [
    # Block model
    "Block",
    "BlockShape",
    "BlockState",
    "BlockTypeSchema",
    "FieldSpec",
    "RenderCache",
    # Configuration
    "BlockTypeConfig",
    "Configuration",
    "Plugin",
    "EngineSettings",
    # Document and events
    "Document",
    "Event",
    "EventEmitter",
    "EventType",
    # Components
    "Editor",
    "HistoryManager",
    "RenderDispatcher",
    "RenderedDocument",
    "RenderErrorOutput",
    "SearchEngine",
    "BlockMatches",
    # Serialization
    "DocumentSnapshot",
    "serialize_document",
    "deserialize_document",
    "save_snapshot",
    "load_snapshot",
    # Collaboration
    "Operation",
    "OperationKind",
    "OperationLog",
    "MergeResult",
    "Conflict",
    "ConflictType",
    # Converters
    "FormatConverter",
    "ConverterRegistry",
    "PlainTextConverter",
    "SnapshotJsonConverter",
    "default_converters",
    # Exceptions
    "BlockDocumentError",
    "BlockNotFoundError",
    "ConfigurationError",
    "DuplicateBlockIdError",
    "EditorNotReadyError",
    "FormatUnsupportedError",
    "IndexOutOfBoundsError",
    "InvalidBlockDataError",
    "InvalidOrderError",
    "MalformedSnapshotError",
    "NoRendererConfiguredError",
    "OperationConflictError",
    "SnapshotIOError",
    "UnknownBlockTypeError",
    # Logging
    "configure_structured_logging",
    "get_engine_logger",
]
