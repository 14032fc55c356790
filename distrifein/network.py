"""Point-to-point TCP transport between the nodes of a group."""

from __future__ import annotations

import ipaddress
import socket
import threading
from typing import Iterable, Mapping

from distrifein.event import Event, EventType
from distrifein.eventbus import EventBus
from distrifein.logger import get_logger
from distrifein.message import ProcessCrashEvent
from distrifein.utils import ID_TO_PORT

PEER_HOST = "127.0.0.1"
LISTEN_BACKLOG = 10
READ_CHUNK = 1024
_ACCEPT_POLL_SECONDS = 0.2


class TcpServer:
    """Listens for peers' connections and sends events' payloads to peers.

    Every connection carries exactly one payload: the sender writes it and
    closes, the receiver reads until end of stream and publishes a
    P2P_DELIVER_EVENT with the bytes it read.
    """

    def __init__(
        self,
        node_id: int,
        peer_ids: Iterable[int],
        event_bus: EventBus,
        deliver_events: Iterable[EventType] = (),
        send_events: Iterable[EventType] = (),
        ports: Mapping[int, int] | None = None,
    ) -> None:
        self._log = get_logger()
        self._node_id = node_id
        self._peer_ids = list(peer_ids)
        self._event_bus = event_bus
        port_map = dict(ID_TO_PORT if ports is None else ports)
        self._self_port = self._port_of(port_map, node_id)
        self._peer_ports = {peer_id: self._port_of(port_map, peer_id) for peer_id in self._peer_ids}
        self._crashed_peer_ids: set[int] = set()
        self._stopped = threading.Event()
        self._listener: socket.socket | None = None

        self._log.log(
            f"[P2P] Initialized with port: {self._self_port}, peers: {len(self._peer_ids)}"
        )

        for event_type in deliver_events:
            event_bus.subscribe(event_type, self._unexpected_delivery)
        for event_type in send_events:
            event_bus.subscribe(event_type, self.broadcast)
        event_bus.subscribe(EventType.PROCESS_CRASH_EVENT, self._on_crash)

    @staticmethod
    def _port_of(ports: Mapping[int, int], node_id: int) -> int:
        try:
            return ports[node_id]
        except KeyError:
            raise ValueError(f"no port known for node {node_id}") from None

    @property
    def self_id(self) -> int:
        return self._node_id

    @property
    def self_port(self) -> int:
        """Port this node listens on; the actual port once the server is bound."""
        return self._self_port

    @property
    def peer_ids(self) -> list[int]:
        return list(self._peer_ids)

    @property
    def peer_ports(self) -> list[int]:
        return [self._peer_ports[peer_id] for peer_id in self._peer_ids]

    @property
    def crashed_peer_ids(self) -> frozenset[int]:
        return frozenset(self._crashed_peer_ids)

    @property
    def running(self) -> bool:
        return not self._stopped.is_set()

    def _unexpected_delivery(self, event: Event) -> None:
        self._log.log("[P2P] unexpected subscription Delivering message!")

    def _on_crash(self, event: Event) -> None:
        crash = ProcessCrashEvent.from_bytes(event.payload)
        self._crashed_peer_ids.add(crash.process_id)

    def start_server(self) -> None:
        """Bind the listening socket and accept connections in a background thread."""
        self._log.log("[P2P] Starting tcp server...")
        try:
            listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError:
            self._log.log("[P2P] Socket creation failed.")
            return

        listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if hasattr(socket, "SO_REUSEPORT"):
            try:
                listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            except OSError:
                pass

        try:
            listener.bind(("", self._self_port))
        except OSError:
            self._log.log("[P2P] Bind failed.")
            listener.close()
            return

        try:
            listener.listen(LISTEN_BACKLOG)
        except OSError:
            self._log.log("[P2P] Listen failed.")
            listener.close()
            return

        self._self_port = listener.getsockname()[1]
        self._log.log(f"[P2P] Listening on port {self._self_port}")
        listener.settimeout(_ACCEPT_POLL_SECONDS)
        self._listener = listener
        self._stopped.clear()
        threading.Thread(target=self._serve, args=(listener,), daemon=True).start()

    def stop(self) -> None:
        """Stop accepting connections; the accept thread exits shortly after."""
        self._stopped.set()

    def _serve(self, listener: socket.socket) -> None:
        try:
            while not self._stopped.is_set():
                try:
                    connection, _ = listener.accept()
                except socket.timeout:
                    continue
                except OSError:
                    if self._stopped.is_set():
                        break
                    continue
                connection.settimeout(None)
                threading.Thread(target=self.deliver, args=(connection,), daemon=True).start()
        finally:
            self._log.log("[P2P] Thread exiting.")
            listener.close()
            if self._listener is listener:
                self._listener = None

    def deliver(self, connection: socket.socket) -> None:
        """Read a whole payload from connection and publish it, then close it."""
        chunks = []
        with connection:
            while True:
                try:
                    data = connection.recv(READ_CHUNK)
                except OSError:
                    break
                if not data:
                    break
                chunks.append(data)

        received = b"".join(chunks)
        if received:
            self._event_bus.publish(Event(EventType.P2P_DELIVER_EVENT, received))
        else:
            self._log.log("[P2P] Read failed or empty.")

    def broadcast(self, event: Event) -> None:
        """Send the event's payload to every peer not known to have crashed."""
        if event.type is not EventType.FD_SEND_EVENT:
            self._log.log("[P2P] Broadcasting Message!")
        for peer_id in self._peer_ids:
            if peer_id in self._crashed_peer_ids:
                self._log.log(f"[P2P] Skipping crashed peer: {peer_id}")
                continue
            self.send_message(PEER_HOST, self._peer_ports[peer_id], event)

    def send_message(self, ip: str, port: int, event: Event) -> None:
        """Open a connection to ip:port, write the payload and close; failures are logged."""
        try:
            ipaddress.IPv4Address(ip)
        except ValueError:
            self._log.log("[P2P] Invalid address or address not supported.")
            return

        try:
            with socket.create_connection((ip, port)) as connection:
                connection.sendall(event.payload)
        except OSError:
            self._log.log(f"[P2P] Connection Failed to {ip}:{port}")