"""Best-effort broadcast over the point-to-point layer."""

from __future__ import annotations

from typing import Iterable

from distrifein.event import Event, EventType
from distrifein.eventbus import EventBus
from distrifein.network import TcpServer


class BestEffortBroadcaster:
    """Delivers to itself and sends to all peers; delivers whatever peers send."""

    def __init__(
        self,
        server: TcpServer,
        event_bus: EventBus,
        deliver_events: Iterable[EventType] = (),
        send_events: Iterable[EventType] = (),
    ) -> None:
        self._server = server
        self._event_bus = event_bus
        self.deliver_events = list(deliver_events)
        self.send_events = list(send_events)

        for event_type in self.deliver_events:
            event_bus.subscribe(event_type, self.deliver)
        for event_type in self.send_events:
            event_bus.subscribe(event_type, self.broadcast)

    @property
    def server(self) -> TcpServer:
        return self._server

    def broadcast(self, event: Event) -> None:
        """Deliver the payload locally, then hand it to the transport for all peers."""
        self._event_bus.publish(Event(EventType.BEB_DELIVER_EVENT, event.payload))
        self._event_bus.publish(Event(EventType.BEB_SEND_EVENT, event.payload))

    def deliver(self, event: Event) -> None:
        """Deliver a payload received from a peer."""
        self._event_bus.publish(Event(EventType.BEB_DELIVER_EVENT, event.payload))