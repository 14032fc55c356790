"""Command line entry point that starts one node of the group."""

from __future__ import annotations

import sys
from typing import Sequence

from distrifein.app import Application
from distrifein.beb import BestEffortBroadcaster
from distrifein.event import EventType
from distrifein.eventbus import EventBus
from distrifein.fd import FailureDetector
from distrifein.network import TcpServer
from distrifein.rb import ReliableBroadcaster
from distrifein.urb import UniformReliableBroadcaster
from distrifein.utils import split_peers_string

USAGE = "Usage: distrifein <node_id> <peer_node_ids_comma_separated> <test_type>"

_SERVER_SEND_EVENTS = (EventType.BEB_SEND_EVENT, EventType.FD_SEND_EVENT)


def main(argv: Sequence[str] | None = None) -> int:
    """Run a node: test type 0 is BEB, 1 is RB, 2 is URB."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 3:
        print(USAGE)
        return 1

    try:
        node_id = int(args[0])
        peer_ids = split_peers_string(args[1], ",")
        test_type = int(args[2])
    except ValueError as exc:
        print(f"Invalid argument: {exc}")
        print(USAGE)
        return 1

    if test_type not in (0, 1, 2):
        print("Invalid test type. Use 0 for BEB, 1 for RB or 2 for URB.")
        return 1

    event_bus = EventBus()
    try:
        server = TcpServer(node_id, peer_ids, event_bus, (), _SERVER_SEND_EVENTS)
    except ValueError as exc:
        print(f"Invalid argument: {exc}")
        return 1

    detector: FailureDetector | None = None
    if test_type == 0:
        beb = BestEffortBroadcaster(
            server, event_bus, [EventType.P2P_DELIVER_EVENT], [EventType.APP_SEND_EVENT]
        )
        app = Application(beb, event_bus, node_id)
    elif test_type == 1:
        beb = BestEffortBroadcaster(
            server, event_bus, [EventType.P2P_DELIVER_EVENT], [EventType.RB_SEND_EVENT]
        )
        detector = FailureDetector(server, event_bus, [EventType.P2P_DELIVER_EVENT], [])
        rb = ReliableBroadcaster(beb, detector, peer_ids, event_bus, node_id)
        app = Application(rb, event_bus, node_id)
    else:
        beb = BestEffortBroadcaster(
            server, event_bus, [EventType.P2P_DELIVER_EVENT], [EventType.URB_SEND_EVENT]
        )
        detector = FailureDetector(server, event_bus, [EventType.P2P_DELIVER_EVENT], [])
        urb = UniformReliableBroadcaster(beb, detector, peer_ids, node_id, event_bus)
        app = Application(urb, event_bus, node_id)

    server.start_server()
    if detector is not None:
        detector.start()
    try:
        app.run()
    finally:
        if detector is not None:
            detector.stop()
        server.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())