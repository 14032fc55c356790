import socket
import threading

import pytest

from distrifein.event import Event, EventType
from distrifein.eventbus import EventBus
from distrifein.message import ProcessCrashEvent
from distrifein.network import TcpServer
from distrifein.utils import ID_TO_PORT


def _listener():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(5)
    sock.settimeout(5)
    return sock


def _read_all(conn):
    chunks = []
    while True:
        data = conn.recv(1024)
        if not data:
            break
        chunks.append(data)
    return b"".join(chunks)


def test_default_ports_come_from_node_table():
    server = TcpServer(1, [2, 3], EventBus())
    assert server.self_id == 1
    assert server.self_port == ID_TO_PORT[1]
    assert server.peer_ids == [2, 3]
    assert server.peer_ports == [ID_TO_PORT[2], ID_TO_PORT[3]]


def test_unknown_node_raises():
    with pytest.raises(ValueError):
        TcpServer(0, [42], EventBus(), ports={0: 9000})


def test_crash_event_marks_peer_crashed():
    bus = EventBus()
    server = TcpServer(0, [1, 2], bus, ports={0: 0, 1: 1, 2: 2})
    bus.publish(Event(EventType.PROCESS_CRASH_EVENT, ProcessCrashEvent(2).to_bytes()))
    assert server.crashed_peer_ids == frozenset({2})


def test_deliver_publishes_received_bytes():
    bus = EventBus()
    server = TcpServer(0, [], bus, ports={0: 0})
    received = []
    bus.subscribe(EventType.P2P_DELIVER_EVENT, lambda e: received.append(e.payload))
    left, right = socket.socketpair()
    payload = bytes(range(256)) * 10
    left.sendall(payload)
    left.close()
    server.deliver(right)
    assert received == [payload]
    assert right.fileno() == -1


def test_deliver_empty_connection_publishes_nothing(capsys):
    bus = EventBus()
    server = TcpServer(0, [], bus, ports={0: 0})
    received = []
    bus.subscribe(EventType.P2P_DELIVER_EVENT, received.append)
    left, right = socket.socketpair()
    left.close()
    server.deliver(right)
    assert received == []
    assert "Read failed or empty." in capsys.readouterr().out


def test_send_message_writes_payload(capsys):
    server = TcpServer(0, [], EventBus(), ports={0: 0})
    listener = _listener()
    try:
        port = listener.getsockname()[1]
        server.send_message("127.0.0.1", port, Event(EventType.BEB_SEND_EVENT, b"hello"))
        conn, _ = listener.accept()
        try:
            data = _read_all(conn)
        finally:
            conn.close()
    finally:
        listener.close()
    assert data == b"hello"
    assert "Connection Failed" not in capsys.readouterr().out


def test_send_message_invalid_address_is_logged(capsys):
    server = TcpServer(0, [], EventBus(), ports={0: 0})
    server.send_message("not-an-ip", 1, Event(EventType.BEB_SEND_EVENT, b"x"))
    assert "Invalid address" in capsys.readouterr().out


def test_broadcast_sends_on_send_event_and_skips_crashed(capsys):
    bus = EventBus()
    listener = _listener()
    try:
        live_port = listener.getsockname()[1]
        server = TcpServer(
            0,
            [1, 2],
            bus,
            send_events=[EventType.BEB_SEND_EVENT],
            ports={0: 0, 1: live_port, 2: 1},
        )
        bus.publish(Event(EventType.PROCESS_CRASH_EVENT, ProcessCrashEvent(2).to_bytes()))
        bus.publish(Event(EventType.BEB_SEND_EVENT, b"payload"))
        conn, _ = listener.accept()
        with conn:
            assert _read_all(conn) == b"payload"
        assert server.crashed_peer_ids == frozenset({2})
        assert "Skipping crashed peer: 2" in capsys.readouterr().out
    finally:
        listener.close()


def test_started_server_delivers_incoming_payload():
    bus = EventBus()
    server = TcpServer(0, [], bus, ports={0: 0})
    received = []
    arrived = threading.Event()

    def on_deliver(event):
        received.append(event.payload)
        arrived.set()

    bus.subscribe(EventType.P2P_DELIVER_EVENT, on_deliver)
    server.start_server()
    try:
        assert server.self_port > 0
        server.send_message("127.0.0.1", server.self_port, Event(EventType.APP_SEND_EVENT, b"over the wire"))
        assert arrived.wait(5)
        assert received == [b"over the wire"]
    finally:
        server.stop()
    assert server.running is False