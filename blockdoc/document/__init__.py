"""
Ordered block documents and their mutation engine.
"""

from .document import Document

__all__ = ["Document"]
