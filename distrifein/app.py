"""Interactive application that sends and receives messages through a broadcaster."""

from __future__ import annotations

import os
import sys
import threading
from enum import Enum
from pathlib import Path
from typing import IO, Union

from distrifein.beb import BestEffortBroadcaster
from distrifein.event import Event, EventType
from distrifein.eventbus import EventBus
from distrifein.logger import get_logger
from distrifein.message import Message, MessageType, deserialize_message, new_message
from distrifein.rb import ReliableBroadcaster
from distrifein.urb import UniformReliableBroadcaster

Broadcaster = Union[BestEffortBroadcaster, ReliableBroadcaster, UniformReliableBroadcaster]

MENU = "[App] Select Message Type: \n1. Text Message\n2. Image Message\n3. Exit"


class BroadcasterType(Enum):
    """Which broadcast abstraction the application sits on."""

    UNIFORM_RELIABLE_BROADCAST = "urb"
    RELIABLE_BROADCAST = "rb"
    BEST_EFFORT_BROADCAST = "beb"
    UNKNOWN = "unknown"


_KINDS: tuple[tuple[type, BroadcasterType, EventType], ...] = (
    (UniformReliableBroadcaster, BroadcasterType.UNIFORM_RELIABLE_BROADCAST, EventType.URB_DELIVER_EVENT),
    (ReliableBroadcaster, BroadcasterType.RELIABLE_BROADCAST, EventType.RB_DELIVER_EVENT),
    (BestEffortBroadcaster, BroadcasterType.BEST_EFFORT_BROADCAST, EventType.BEB_DELIVER_EVENT),
)


def _text_of(payload: bytes) -> str:
    return payload.split(b"\0", 1)[0].decode("utf-8", errors="replace")


class Application:
    """Reads commands from a console, publishes messages and stores what is delivered.

    Delivered text is logged; delivered images are written under
    <output_dir>/node_<id>/received_<timestamp>.ppm.
    """

    def __init__(
        self,
        broadcaster: object,
        event_bus: EventBus,
        node_id: int,
        *,
        output_dir: str | os.PathLike[str] = ".",
        input_stream: IO[str] | None = None,
        output_stream: IO[str] | None = None,
    ) -> None:
        self._log = get_logger()
        self.broadcaster = broadcaster
        self.node_id = node_id
        self.output_dir = Path(output_dir)
        self._event_bus = event_bus
        self._input = input_stream if input_stream is not None else sys.stdin
        self._output = output_stream if output_stream is not None else sys.stdout
        self._running = threading.Event()
        self._running.set()

        self.broadcaster_type = BroadcasterType.UNKNOWN
        for cls, kind, deliver_type in _KINDS:
            if isinstance(broadcaster, cls):
                self.broadcaster_type = kind
                event_bus.subscribe(deliver_type, self.decode)
                break
        else:
            self._log.log("[Error] Unknown broadcaster type.")

        self._log.log(f"[App] Initialized with {type(broadcaster).__name__}...")

    @property
    def running(self) -> bool:
        return self._running.is_set()

    def decode(self, event: Event) -> Message:
        """Handle a delivered message: log text, save images; return the message."""
        message = deserialize_message(event.payload)
        kind = message.header.type
        if kind is MessageType.TEXT_MESSAGE:
            self._log.log(f"[App] Delivering text message:{_text_of(message.payload)}")
        elif kind is MessageType.IMAGE_MESSAGE:
            folder = self.output_dir / f"node_{self.node_id}"
            folder.mkdir(parents=True, exist_ok=True)
            target = folder / f"received_{message.header.timestamp}.ppm"
            target.write_bytes(message.payload)
            self._log.log(f"[App] Delivering image message and saved to {target}")
        else:
            self._log.log("[App] Delivering some other message type.")
        return message

    def _publish(self, message: Message) -> Message:
        self._event_bus.publish(Event(EventType.APP_SEND_EVENT, message.to_bytes()))
        return message

    def send_text(self, text: str) -> Message | None:
        """Publish text as a null-terminated text message; empty text is ignored."""
        if not text:
            return None
        payload = text.encode("utf-8") + b"\0"
        return self._publish(new_message(MessageType.TEXT_MESSAGE, self.node_id, payload))

    def send_image(self, path: str | os.PathLike[str]) -> Message | None:
        """Publish the file's bytes as an image message; None if it cannot be read."""
        try:
            data = Path(path).read_bytes()
        except OSError:
            print(f"Error: Could not open file {os.fspath(path)}", file=sys.stderr)
            return None
        return self._publish(new_message(MessageType.IMAGE_MESSAGE, self.node_id, data))

    def _prompt(self, text: str) -> str | None:
        self._output.write(text)
        self._output.flush()
        return self._read_line()

    def _read_line(self) -> str | None:
        line = self._input.readline()
        if not line:
            return None
        return line.rstrip("\r\n")

    def run(self) -> None:
        """Serve the console menu until exit is chosen or input ends."""
        self._log.log("[App] Entering input loop. Type 'exit' to quit.")
        while self._running.is_set():
            self._log.log(MENU)
            choice = self._read_line()
            if choice is None:
                self._running.clear()
                break
            if choice == "1":
                text = self._prompt("Enter text message: ")
                if text:
                    self.send_text(text)
            elif choice == "2":
                filename = self._prompt("Enter image filename (e.g., image.ppm): ")
                if filename:
                    self._output.write(f"PPM filename found: {filename}\n")
                    self.send_image(filename)
            elif choice == "3":
                self._log.log("[App] Exit requested.")
                self._running.clear()
                break