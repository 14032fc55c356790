"""Message wire format: a packed header followed by a raw payload."""

from __future__ import annotations

import struct
import time
from dataclasses import dataclass, field
from enum import IntEnum

from distrifein.utils import generate_message_id

HEADER_FORMAT = "<iBB41sQIIIQB"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)
MESSAGE_ID_SIZE = 41
HASH_PREFIX_LIMIT = 512

_CRASH_FORMAT = "<i"
_MASK = (1 << 64) - 1
_GOLDEN = 0x9E3779B9


class MessageType(IntEnum):
    """Kind of content a message carries."""

    TEXT_MESSAGE = 0
    IMAGE_MESSAGE = 1
    VIDEO_MESSAGE = 2
    AUDIO_MESSAGE = 3
    HEARTBEAT_MESSAGE = 4


@dataclass
class MessageHeader:
    """Fixed-size header that precedes every payload on the wire."""

    type: MessageType = MessageType.TEXT_MESSAGE
    sender_id: int = 0
    recipient_id: int = 0
    message_id: str = ""
    timestamp: int = 0
    chunk_index: int = 0
    total_chunks: int = 1
    crc32: int = 0
    payload_size: int = 0
    original_sender_id: int = 0

    def pack(self) -> bytes:
        """Encode the header in its packed little-endian layout."""
        encoded_id = self.message_id.encode("ascii")
        if len(encoded_id) >= MESSAGE_ID_SIZE:
            raise ValueError(f"message id longer than {MESSAGE_ID_SIZE - 1} bytes")
        try:
            return struct.pack(
                HEADER_FORMAT,
                int(self.type),
                self.sender_id,
                self.recipient_id,
                encoded_id,
                self.timestamp,
                self.chunk_index,
                self.total_chunks,
                self.crc32,
                self.payload_size,
                self.original_sender_id,
            )
        except struct.error as exc:
            raise ValueError(f"header field out of range: {exc}") from exc

    @classmethod
    def unpack(cls, data: bytes) -> MessageHeader:
        """Decode a header from the start of data."""
        if len(data) < HEADER_SIZE:
            raise ValueError("Invalid message: too small for header")
        (
            type_value,
            sender_id,
            recipient_id,
            raw_id,
            timestamp,
            chunk_index,
            total_chunks,
            crc32,
            payload_size,
            original_sender_id,
        ) = struct.unpack_from(HEADER_FORMAT, data)
        return cls(
            type=MessageType(type_value),
            sender_id=sender_id,
            recipient_id=recipient_id,
            message_id=raw_id.split(b"\0", 1)[0].decode("ascii", errors="replace"),
            timestamp=timestamp,
            chunk_index=chunk_index,
            total_chunks=total_chunks,
            crc32=crc32,
            payload_size=payload_size,
            original_sender_id=original_sender_id,
        )


@dataclass(eq=False)
class Message:
    """A header and its payload; messages compare and hash by payload alone."""

    header: MessageHeader = field(default_factory=MessageHeader)
    payload: bytes = b""

    def __post_init__(self) -> None:
        self.payload = bytes(self.payload)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Message):
            return NotImplemented
        return self.payload == other.payload

    def __hash__(self) -> int:
        return hash(self.payload[:HASH_PREFIX_LIMIT])

    def to_bytes(self) -> bytes:
        """Encode header and payload as they travel on the wire."""
        return self.header.pack() + self.payload


@dataclass(frozen=True)
class ProcessCrashEvent:
    """Payload announcing that a process is suspected to have crashed."""

    process_id: int

    def to_bytes(self) -> bytes:
        return struct.pack(_CRASH_FORMAT, self.process_id)

    @classmethod
    def from_bytes(cls, data: bytes) -> ProcessCrashEvent:
        size = struct.calcsize(_CRASH_FORMAT)
        if len(data) < size:
            raise ValueError("Invalid crash event: too small")
        (process_id,) = struct.unpack_from(_CRASH_FORMAT, data)
        return cls(process_id)


def deserialize_message(raw: bytes) -> Message:
    """Parse a header and the payload_size bytes that follow it."""
    header = MessageHeader.unpack(raw)
    payload = b""
    if header.payload_size > 0:
        end = HEADER_SIZE + header.payload_size
        if len(raw) < end:
            raise ValueError("Incomplete payload")
        payload = bytes(raw[HEADER_SIZE:end])
    return Message(header, payload)


def payload_hash(payload: bytes, original_sender_id: int) -> int:
    """Combine the payload bytes and the original sender into a 64-bit hash."""
    value = 0
    for byte in payload:
        value ^= (byte + _GOLDEN + (value << 6) + (value >> 2)) & _MASK
    value ^= ((original_sender_id & _MASK) + _GOLDEN + (value << 6) + (value >> 2)) & _MASK
    return value & _MASK


def new_message(message_type: MessageType, node_id: int, payload: bytes) -> Message:
    """Build a single-chunk message originating at node_id with a fresh id."""
    payload = bytes(payload)
    header = MessageHeader(
        type=message_type,
        sender_id=node_id,
        recipient_id=0,
        message_id=generate_message_id(),
        timestamp=time.time_ns(),
        chunk_index=0,
        total_chunks=1,
        crc32=0,
        payload_size=len(payload),
        original_sender_id=node_id,
    )
    return Message(header, payload)