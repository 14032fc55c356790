"""Reliable broadcast: messages of crashed senders are relayed by survivors."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from distrifein.beb import BestEffortBroadcaster
from distrifein.event import Event, EventType
from distrifein.eventbus import EventBus
from distrifein.fd import FailureDetector
from distrifein.logger import get_logger
from distrifein.message import (
    HEADER_SIZE,
    Message,
    MessageType,
    ProcessCrashEvent,
    deserialize_message,
)
from distrifein.network import TcpServer
from distrifein.orderedset import OrderedSet


def _payload_text(payload: bytes) -> str:
    return payload.split(b"\0", 1)[0].decode("utf-8", errors="replace")


class ReliableBroadcaster:
    """Lazy reliable broadcast driven by a perfect failure detector.

    Each message is delivered at most once per message id. Messages received
    from a process are remembered, and relayed to everyone when that process
    is reported to have crashed.
    """

    def __init__(
        self,
        beb: BestEffortBroadcaster,
        fd: FailureDetector,
        peer_ids: Iterable[int],
        event_bus: EventBus,
        node_id: int,
    ) -> None:
        self._log = get_logger()
        self._beb = beb
        self._fd = fd
        self._event_bus = event_bus
        self.node_id = node_id
        self.peer_ids = list(peer_ids)
        self._delivered: set[str] = set()
        self._from: dict[int, OrderedSet[Message]] = {
            peer_id: OrderedSet() for peer_id in self.peer_ids
        }
        self._correct: set[int] = set(self.peer_ids)
        self._correct.add(node_id)

        event_bus.subscribe(EventType.BEB_DELIVER_EVENT, self.handle_beb_deliver_event)
        event_bus.subscribe(EventType.APP_SEND_EVENT, self.broadcast)
        event_bus.subscribe(EventType.PROCESS_CRASH_EVENT, self.handle_crash_event)

        self._log.log("[RB] Initialized with subscriptions...")

    @property
    def server(self) -> TcpServer:
        return self._beb.server

    @property
    def correct(self) -> frozenset[int]:
        """Processes not reported as crashed, this node included."""
        return frozenset(self._correct)

    @property
    def delivered(self) -> frozenset[str]:
        """Ids of the messages delivered so far."""
        return frozenset(self._delivered)

    def messages_from(self, process_id: int) -> list[Message]:
        """Messages received directly from process_id, in arrival order."""
        return list(self._from.get(process_id, ()))

    def broadcast(self, event: Event) -> None:
        """Deliver an application message locally and send it to all processes."""
        message = deserialize_message(event.payload)
        self._delivered.add(message.header.message_id)
        self.deliver(event)
        self._event_bus.publish(Event(EventType.RB_SEND_EVENT, event.payload))

    def deliver(self, event: Event) -> None:
        """Hand the payload up as an RB_DELIVER_EVENT."""
        self._event_bus.publish(Event(EventType.RB_DELIVER_EVENT, event.payload))

    def handle_crash_event(self, event: Event) -> None:
        """Mark the process crashed and relay every message received from it."""
        crashed_id = ProcessCrashEvent.from_bytes(event.payload).process_id
        self._correct.discard(crashed_id)
        self._log.log(f"[RB] Process {crashed_id} has crashed.")
        self._log.log("[RB] Correct set: ")
        for peer_id in self._correct:
            self._log.log(f"[RB] {peer_id}")

        relayed = self._from.setdefault(crashed_id, OrderedSet())
        self._log.log(f"[RB] Messages from crashed process:{len(relayed)}")

        for message in relayed:
            relay = Message(replace(message.header, sender_id=self.node_id), message.payload)
            self._log.log(
                f"[RB] Broadcasting message from crashed process {crashed_id}: "
                f"{_payload_text(relay.payload)}"
            )
            self._event_bus.publish(Event(EventType.RB_SEND_EVENT, relay.to_bytes()))

    def handle_beb_deliver_event(self, event: Event) -> None:
        """Deliver a message the first time it is seen; relay it if its sender crashed."""
        if len(event.payload) < HEADER_SIZE:
            return
        message = deserialize_message(event.payload)
        header = message.header
        if header.type is MessageType.HEARTBEAT_MESSAGE:
            return

        self._log.log(f"[RB] SID: {header.sender_id}, Org SID: {header.original_sender_id}")
        self._log.log(
            f"[RB] Current Message ID: {header.message_id},size: {len(message.payload)}"
        )
        for message_id in self._delivered:
            self._log.log(f"[RB] Delivered Message ID: {message_id}")

        if header.message_id in self._delivered:
            self._log.log("[RB] Message already delivered, ignoring.")
            return

        self._log.log("[RB] Message not delivered, processing...")
        self._delivered.add(header.message_id)
        self.deliver(event)

        if header.sender_id not in self._correct:
            self._event_bus.publish(Event(EventType.RB_SEND_EVENT, event.payload))
        else:
            self._from.setdefault(header.sender_id, OrderedSet()).add(message)