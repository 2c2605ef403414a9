"""
Search and replace across block text projections.
"""

from .engine import BlockMatches, SearchEngine, compile_query

__all__ = ["SearchEngine", "BlockMatches", "compile_query"]
