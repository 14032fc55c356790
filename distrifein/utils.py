"""Node addressing and small string helpers."""

from __future__ import annotations

import re
import uuid

ID_TO_PORT: dict[int, int] = {node_id: 8000 + node_id for node_id in range(8)}
PORT_TO_ID: dict[int, int] = {port: node_id for node_id, port in ID_TO_PORT.items()}

_LEADING_INT = re.compile(r"-?\d+")
_PPM_NAME = re.compile(r"([\w\-.]+\.ppm)", re.IGNORECASE | re.ASCII)


def split_peers_string(text: str, delim: str = ",") -> list[int]:
    """Split text on delim and read the integer at the start of each piece."""
    peers = []
    for piece in text.split(delim):
        match = _LEADING_INT.match(piece)
        if match is None:
            raise ValueError(f"not a node id: {piece!r}")
        peers.append(int(match.group()))
    return peers


def generate_message_id() -> str:
    """Return a fresh identifier of the form msg-<random uuid>."""
    return f"msg-{uuid.uuid4()}"


def extract_ppm_filename(line: str) -> str | None:
    """Return the first .ppm file name found in line, or None."""
    match = _PPM_NAME.search(line)
    return match.group(1) if match else None


def contains_ppm(line: str) -> bool:
    """Tell whether line mentions .ppm."""
    return ".ppm" in line