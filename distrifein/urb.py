"""Uniform reliable broadcast: deliver only what every correct process has seen."""

from __future__ import annotations

from dataclasses import replace
from typing import AbstractSet, Iterable

from distrifein.beb import BestEffortBroadcaster
from distrifein.event import Event, EventType
from distrifein.eventbus import EventBus
from distrifein.fd import FailureDetector
from distrifein.logger import get_logger
from distrifein.message import (
    HASH_PREFIX_LIMIT,
    Message,
    MessageType,
    ProcessCrashEvent,
    deserialize_message,
    payload_hash,
)
from distrifein.network import TcpServer


def is_subset(subset: Iterable, superset: AbstractSet) -> bool:
    """Tell whether every element of subset is in superset."""
    return all(element in superset for element in subset)


def _ack_key(message: Message) -> int:
    return payload_hash(message.payload[:HASH_PREFIX_LIMIT], message.header.original_sender_id)


def _pending_key(message: Message) -> tuple[int, bytes]:
    return message.header.original_sender_id, message.payload


class UniformReliableBroadcaster:
    """All-ack uniform reliable broadcast driven by a perfect failure detector.

    A message is pending once seen and is relayed on first sight; it is
    delivered when every process still believed correct has acknowledged it.
    """

    def __init__(
        self,
        beb: BestEffortBroadcaster,
        fd: FailureDetector,
        peers: Iterable[int],
        node_id: int,
        event_bus: EventBus,
    ) -> None:
        self._log = get_logger()
        self._beb = beb
        self._fd = fd
        self._event_bus = event_bus
        self.node_id = node_id
        self.peer_ids = list(peers)
        self._correct: set[int] = set(self.peer_ids)
        self._correct.add(node_id)
        self._delivered: set[Message] = set()
        self._pending: dict[tuple[int, bytes], Message] = {}
        self._ack: dict[int, set[int]] = {}

        event_bus.subscribe(EventType.BEB_DELIVER_EVENT, self.handle_beb_deliver_event)
        event_bus.subscribe(EventType.APP_SEND_EVENT, self.broadcast)
        event_bus.subscribe(EventType.PROCESS_CRASH_EVENT, self.handle_crash_event)

        self._log.log("[URB] Initialized with subscriptions...")

    @property
    def server(self) -> TcpServer:
        return self._beb.server

    @property
    def correct(self) -> frozenset[int]:
        """Processes not reported as crashed, this node included."""
        return frozenset(self._correct)

    @property
    def pending(self) -> list[Message]:
        """Messages seen but not necessarily delivered, in the order first seen."""
        return list(self._pending.values())

    @property
    def delivered(self) -> list[Message]:
        return list(self._delivered)

    def acks(self, message: Message) -> frozenset[int]:
        """Processes known to have relayed message."""
        return frozenset(self._ack.get(_ack_key(message), ()))

    def _add_pending(self, message: Message) -> None:
        self._pending.setdefault(_pending_key(message), message)

    def broadcast(self, event: Event) -> None:
        """Mark an application message pending and send it to all processes."""
        self._log.log("[URB] Broadcasting Message!")
        self._add_pending(deserialize_message(event.payload))
        self._event_bus.publish(Event(EventType.URB_SEND_EVENT, event.payload))

    def deliver(self, event: Event) -> None:
        """Hand the payload up as a URB_DELIVER_EVENT."""
        self._log.log("[URB] Delivering Message!")
        self._event_bus.publish(Event(EventType.URB_DELIVER_EVENT, event.payload))

    def handle_crash_event(self, event: Event) -> None:
        """Drop the crashed process from the correct set and retry delivery."""
        crashed_id = ProcessCrashEvent.from_bytes(event.payload).process_id
        self._correct.discard(crashed_id)
        self._log.log(f"[URB] Process {crashed_id} has crashed.")
        self._log.log("[URB] Correct set: ")
        for peer_id in self._correct:
            self._log.log(f"[URB] {peer_id}")
        self.try_delivery()

    def try_delivery(self) -> None:
        """Deliver every pending message acknowledged by all correct processes."""
        self._log.log("[URB] Message delivey attempt")
        for message in list(self._pending.values()):
            acked = self._ack.setdefault(_ack_key(message), set())
            acked.add(message.header.sender_id)
            if is_subset(self._correct, acked) and message not in self._delivered:
                self._log.log("[URB] Message is being delivered!")
                self._delivered.add(message)
                self.deliver(Event(EventType.URB_DELIVER_EVENT, message.to_bytes()))
            else:
                self._log.log("[URB] Message can't be delivered yet!")

    def handle_beb_deliver_event(self, event: Event) -> None:
        """Record the acknowledgement; relay the message on first sight, else try delivery."""
        message = deserialize_message(event.payload)
        header = message.header
        if header.type is MessageType.HEARTBEAT_MESSAGE:
            return

        self._ack.setdefault(_ack_key(message), set()).add(header.sender_id)

        self._log.log(f"[RB] SID: {header.sender_id}, Org SID: {header.original_sender_id}")
        self._log.log(
            f"[RB] Current Message ID: {header.message_id},size: {len(message.payload)}"
        )
        for delivered in self._delivered:
            self._log.log(f"[RB] Delivered Message ID: {delivered.header.message_id}")
        for waiting in self._pending.values():
            self._log.log(f"[RB] Pending Message ID: {waiting.header.message_id}")

        if _pending_key(message) not in self._pending:
            self._log.log("[URB] Message not in pending {}")
            self._add_pending(message)
            relay = Message(replace(header, sender_id=self.node_id), message.payload)
            self._event_bus.publish(Event(EventType.URB_SEND_EVENT, relay.to_bytes()))
        else:
            self._log.log("[URB] Message in pending {}")
            self.try_delivery()