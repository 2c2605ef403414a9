"""
Rendering dispatch with per-block error isolation.
"""

from .dispatcher import RenderDispatcher, RenderedDocument, RenderErrorOutput

__all__ = [
    "RenderDispatcher",
    "RenderedDocument",
    "RenderErrorOutput",
]
