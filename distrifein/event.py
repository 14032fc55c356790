"""Event types and the event record passed along the event bus."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class EventType(Enum):
    """Kinds of events exchanged between the layers of a node."""

    MESSAGE_RECEIVED = auto()
    P2P_MESSAGE_RECEIVED = auto()
    P2P_MESSAGE_SENT = auto()
    BEB_MESSAGE_RECEIVED = auto()
    BEB_MESSAGE_SENT = auto()

    P2P_DELIVER_EVENT = auto()
    P2P_SEND_EVENT = auto()

    BEB_DELIVER_EVENT = auto()
    BEB_SEND_EVENT = auto()

    FD_DELIVER_EVENT = auto()
    FD_SEND_EVENT = auto()

    RB_DELIVER_EVENT = auto()
    RB_SEND_EVENT = auto()

    URB_SEND_EVENT = auto()
    URB_DELIVER_EVENT = auto()

    APP_SEND_EVENT = auto()

    CLIENT_CONNECTED = auto()
    CLIENT_DISCONNECTED = auto()
    PROCESS_CRASH_EVENT = auto()
    PROCESS_RESTORE_EVENT = auto()


@dataclass(frozen=True)
class Event:
    """An event of a given type carrying raw bytes."""

    type: EventType
    payload: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", bytes(self.payload))