"""Heartbeat-based failure detector."""

from __future__ import annotations

import threading
import time
from typing import Callable, Iterable

from distrifein.event import Event, EventType
from distrifein.eventbus import EventBus
from distrifein.logger import get_logger
from distrifein.message import (
    HEADER_SIZE,
    MessageType,
    ProcessCrashEvent,
    deserialize_message,
    new_message,
)
from distrifein.network import TcpServer

HEARTBEAT_TEXT = b"heartbeat\0"


class FailureDetector:
    """Sends periodic heartbeats and suspects peers that stay silent too long.

    A peer is suspected once no message from it has arrived for more than
    timeout_ms; each suspicion is announced once as a PROCESS_CRASH_EVENT.
    """

    def __init__(
        self,
        server: TcpServer,
        event_bus: EventBus,
        deliver_events: Iterable[EventType] = (),
        send_events: Iterable[EventType] = (),
        timeout_ms: int = 5000,
        interval_ms: int = 2000,
        *,
        startup_delay_ms: int = 10000,
        check_interval_ms: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._log = get_logger()
        self._server = server
        self._event_bus = event_bus
        self.timeout_ms = timeout_ms
        self.interval_ms = interval_ms
        self.startup_delay_ms = startup_delay_ms
        self.check_interval_ms = check_interval_ms
        self._clock = clock
        self._last_heartbeat: dict[int, float] = {}
        self._suspected: set[int] = set()
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._stopped.set()

        self._log.log(
            f"[FD] Initialized with timeout: {timeout_ms}ms, interval: {interval_ms}ms"
        )

        for event_type in deliver_events:
            event_bus.subscribe(event_type, self.handle_message)
        for event_type in send_events:
            event_bus.subscribe(event_type, self._unexpected_send)

    @property
    def running(self) -> bool:
        return not self._stopped.is_set()

    @property
    def suspected(self) -> frozenset[int]:
        with self._lock:
            return frozenset(self._suspected)

    def _unexpected_send(self, event: Event) -> None:
        self._log.log("[FD] unexpected subscription sending message!")

    def start(self) -> None:
        """Start sending heartbeats and monitoring peers in background threads."""
        self._log.log("[FD] Starting failure detector...")
        self._stopped.clear()
        threading.Thread(target=self._send_heartbeats, daemon=True).start()
        threading.Thread(target=self._monitor_heartbeats, daemon=True).start()

    def stop(self) -> None:
        self._stopped.set()

    def _send_heartbeats(self) -> None:
        heartbeat = new_message(MessageType.HEARTBEAT_MESSAGE, self._server.self_id, HEARTBEAT_TEXT)
        event = Event(EventType.FD_SEND_EVENT, heartbeat.to_bytes())
        while not self._stopped.is_set():
            self._event_bus.publish(event)
            self._stopped.wait(self.interval_ms / 1000)

    def _monitor_heartbeats(self) -> None:
        if self._stopped.wait(self.startup_delay_ms / 1000):
            return
        while not self._stopped.is_set():
            self.check_peers()
            self._stopped.wait(self.check_interval_ms / 1000)

    def check_peers(self) -> list[int]:
        """Suspect every silent peer not yet suspected; return the newly suspected ids."""
        now = self._clock()
        newly_suspected = []
        for peer_id in self._server.peer_ids:
            with self._lock:
                last = self._last_heartbeat.get(peer_id)
                missing = last is None or (now - last) * 1000 > self.timeout_ms
                if not missing or peer_id in self._suspected:
                    continue
                self._suspected.add(peer_id)
            newly_suspected.append(peer_id)
            self._event_bus.publish(
                Event(EventType.PROCESS_CRASH_EVENT, ProcessCrashEvent(peer_id).to_bytes())
            )
        return newly_suspected

    def handle_message(self, event: Event) -> None:
        """Record that the message's sender is alive now."""
        if len(event.payload) < HEADER_SIZE:
            self._log.log("[FD] Error: Payload size is less than expected.")
            return
        message = deserialize_message(event.payload)
        with self._lock:
            self._last_heartbeat[message.header.sender_id] = self._clock()