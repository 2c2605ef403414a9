"""
Editor plugins.

A plugin is a named, ordered set of optional hooks:

- initialize(editor): runs during async editor initialization; may be a coroutine
- cleanup(): runs when the editor closes, in reverse registration order
- before_render(pairs): rewrites the ordered (type, raw_data) list before dispatch
- after_render(rendered): post-processes the assembled RenderedDocument
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

RenderPairs = list[tuple[str, Any]]


@dataclass(frozen=True)
class Plugin:
    """A structured plugin hook set."""

    name: str
    initialize: Callable[[Any], Any] | None = None
    cleanup: Callable[[], Any] | None = None
    before_render: Callable[[RenderPairs], RenderPairs] | None = None
    after_render: Callable[[Any], Any] | None = None

    def __post_init__(self) -> None:
        """Validate the plugin name."""
        if not self.name:
            raise ValueError("Plugin name must be a non-empty string")
