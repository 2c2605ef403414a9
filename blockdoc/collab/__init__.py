"""
Collaborative operation log: versioned operations, merge and conflicts.
"""

from .conflict import Conflict, ConflictType, detect_conflict
from .log import MergeResult, OperationLog
from .operations import Operation, OperationKind

__all__ = [
    "Operation",
    "OperationKind",
    "OperationLog",
    "MergeResult",
    "Conflict",
    "ConflictType",
    "detect_conflict",
]
