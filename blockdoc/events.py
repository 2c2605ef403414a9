"""
Document event notifications.

Listeners are invoked synchronously, inside the mutation call that
produced the event, in the order events are emitted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Named notifications exposed to collaborators."""

    CONTENT_CHANGED = "content_changed"
    SELECTION_CHANGED = "selection_changed"
    FOCUS_CHANGED = "focus_changed"
    BLOCK_ADDED = "block_added"
    BLOCK_REMOVED = "block_removed"
    BLOCK_UPDATED = "block_updated"
    BLOCKS_REORDERED = "blocks_reordered"
    CONFIGURATION_CHANGED = "configuration_changed"
    HISTORY_CHANGED = "history_changed"
    VALIDATION_FAILED = "validation_failed"
    RENDER_FAILED = "render_failed"


@dataclass(frozen=True)
class Event:
    """A single notification.

    Attributes:
        type: Kind of event
        data: Event-specific payload
        version: Document version at emission time
    """

    type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    version: int = 0


Listener = Callable[[Event], None]


class EventEmitter:
    """Synchronous publish/subscribe for document events.

    A listener registered with ``event_type=None`` receives every event.
    """

    def __init__(self) -> None:
        self._listeners: dict[EventType | None, list[Listener]] = {}

    def on(self, event_type: EventType | None, listener: Listener) -> Callable[[], None]:
        """Register a listener.

        Args:
            event_type: Event to listen for, or None for all events
            listener: Callable receiving the Event

        Returns:
            A function that unregisters the listener
        """
        self._listeners.setdefault(event_type, []).append(listener)

        def unsubscribe() -> None:
            self.off(event_type, listener)

        return unsubscribe

    def off(self, event_type: EventType | None, listener: Listener) -> bool:
        """Unregister a listener. Returns False if it was not registered."""
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def emit(self, event_type: EventType, data: dict[str, Any] | None = None, version: int = 0) -> Event:
        """Deliver an event to its listeners, then to catch-all listeners."""
        event = Event(type=event_type, data=data or {}, version=version)
        listeners = list(self._listeners.get(event_type, [])) + list(self._listeners.get(None, []))
        for listener in listeners:
            listener(event)
        logger.debug(f"Emitted {event_type.value} to {len(listeners)} listener(s)")
        return event

    def listener_count(self, event_type: EventType | None = None) -> int:
        """Count listeners registered for an event type."""
        return len(self._listeners.get(event_type, []))
