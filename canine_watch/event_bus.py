"""Thread-safe publish/subscribe bus for events."""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from canine_watch.events import Event, EventSeverity

EventHandler = Callable[[Event], None]

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventSubscription:
    """Handle returned by a subscription; id 0 means no subscription."""

    id: int = 0

    def is_valid(self) -> bool:
        return self.id != 0


@dataclass(frozen=True)
class _HandlerEntry:
    id: int
    handler: EventHandler
    min_severity: Optional[EventSeverity]


class EventBus:
    """Delivers published events synchronously to subscribers in subscription order.

    A handler that raises is logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: list[_HandlerEntry] = []
        self._ids = itertools.count(1)

    def publish(self, event: Event) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for entry in handlers:
            if entry.min_severity is not None and event.severity < entry.min_severity:
                continue
            try:
                entry.handler(event)
            except Exception:
                _log.exception("Event handler raised an exception")

    def _add(self, handler: EventHandler, min_severity: Optional[EventSeverity]) -> EventSubscription:
        with self._lock:
            ident = next(self._ids)
            self._handlers.append(_HandlerEntry(ident, handler, min_severity))
        return EventSubscription(ident)

    def subscribe(self, handler: EventHandler) -> EventSubscription:
        """Subscribe a handler to every event."""
        return self._add(handler, None)

    def subscribe_severity(self, min_severity: EventSeverity, handler: EventHandler) -> EventSubscription:
        """Subscribe a handler to events of at least the given severity."""
        return self._add(handler, EventSeverity(min_severity))

    def unsubscribe(self, subscription: EventSubscription) -> None:
        """Remove a subscription; invalid or unknown handles are ignored."""
        if not subscription.is_valid():
            return
        with self._lock:
            self._handlers = [e for e in self._handlers if e.id != subscription.id]

    def subscription_count(self) -> int:
        with self._lock:
            return len(self._handlers)