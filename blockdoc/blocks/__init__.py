"""
Block model: typed blocks, their schema and id allocation.
"""

from .cache import CacheEntry, RenderCache
from .ids import BlockIdAllocator, block_id, parse_block_id
from .types import Block, BlockShape, BlockState, BlockTypeSchema, FieldSpec

__all__ = [
    # Block types
    "Block",
    "BlockState",
    # Schema
    "BlockShape",
    "BlockTypeSchema",
    "FieldSpec",
    # Render cache
    "CacheEntry",
    "RenderCache",
    # Utilities
    "BlockIdAllocator",
    "block_id",
    "parse_block_id",
]
