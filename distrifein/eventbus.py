"""A synchronous publish/subscribe bus keyed by event type."""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Callable

from distrifein.event import Event, EventType

EventCallback = Callable[[Event], None]


class EventBus:
    """Dispatches each published event to the callbacks subscribed to its type."""

    def __init__(self) -> None:
        self._subscribers: defaultdict[EventType, list[EventCallback]] = defaultdict(list)
        self._lock = threading.RLock()

    def subscribe(self, event_type: EventType, callback: EventCallback) -> None:
        """Register a callback for an event type; callbacks run in subscription order."""
        with self._lock:
            self._subscribers[event_type].append(callback)

    def publish(self, event: Event) -> None:
        """Call every callback subscribed to the event's type, in the calling thread."""
        with self._lock:
            for callback in list(self._subscribers.get(event.type, ())):
                callback(event)

    def rebroadcast(self, source: EventType, target: EventType) -> None:
        """Republish every event of type source as an event of type target."""
        self.subscribe(source, lambda event: self.publish(Event(target, event.payload)))