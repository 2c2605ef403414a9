"""
Undo/redo history for documents.
"""

from .manager import DocumentState, HistoryEntry, HistoryManager

__all__ = [
    "DocumentState",
    "HistoryEntry",
    "HistoryManager",
]
