# distrifein

Use distrifein to try out broadcast algorithms between processes on one machine.
The components of a node talk to each other through a synchronous, in-process
`EventBus`. Nodes send raw message bytes to each other over TCP. Each connection
carries one payload: the sender writes it and then closes the connection.

Every node listens on all interfaces and sends to its peers at `127.0.0.1`.
Node ids `0` to `7` map to ports `8000` to `8007` (`distrifein.utils.ID_TO_PORT`).
A `TcpServer` rejects a node id that has no port with `ValueError`. If you build a
`TcpServer` yourself, you can pass your own `ports` mapping.

## Installation

```
pip install .
```

## Running a node

```
distrifein <node_id> <peer_ids_comma_separated> <test_type>
```

`test_type` selects the protocol stack:

| value | stack |
|-------|-------|
| `0` | best-effort broadcast |
| `1` | reliable broadcast with failure detector |
| `2` | uniform reliable broadcast with failure detector |

The command prints a usage line and exits with status 1 in these cases:

- there are fewer than three arguments
- an argument is not a number
- the test type is unknown
- a node id has no port

For example, to run three nodes with reliable broadcast, start one in each terminal:

```
distrifein 0 1,2 1
distrifein 1 0,2 1
distrifein 2 0,1 1
```

Each node reads its menu choices from standard input:

1. **Text message:** prompts for a line of text and broadcasts it.
2. **Image message:** prompts for a file path and broadcasts the bytes of that file.
3. **Exit:** stops the node. End of input also stops it.

Log lines are written to standard output with a millisecond timestamp.

When a node delivers a text message, it logs the text. When it delivers an image,
it writes the image to `node_<id>/received_<timestamp>.ppm` in the current
directory.

### Failure detector timing

The failure detector publishes a heartbeat every 2 seconds. After a 10 second grace
period, it checks the peers once a second. It suspects a peer after more than
5 seconds without any message from that peer. It announces each suspicion once,
as a `PROCESS_CRASH_EVENT`. After that, the TCP layer stops sending to the
suspected peer.

## Modules

### Messaging and the event bus

- `distrifein.event`: `EventType` and `Event`, an immutable record that holds a type
  and a bytes payload.
- `distrifein.eventbus`: `EventBus` with these methods:
  - `subscribe(event_type, callback)` registers a callback.
  - `publish(event)` calls every callback for the event's type, in the calling
    thread and in the order they subscribed.
  - `rebroadcast(source, target)` republishes every `source` event as a `target`
    event.
- `distrifein.message`: the message format on the wire.
  - `MessageHeader` is a packed little-endian header. Use `pack()` to encode it and
    `MessageHeader.unpack(data)` to decode it.
  - `Message` holds a header and a payload. `to_bytes()` encodes both. Two messages
    are equal when their payloads are equal, whatever their headers hold.
  - `MessageType` gives the kind of message.
  - `ProcessCrashEvent` is the payload of a crash announcement.
  - `new_message(message_type, node_id, payload)` builds a single-chunk message with
    a fresh `msg-<uuid>` id.
  - `deserialize_message(raw)` decodes a message. It raises `ValueError` if the data
    is shorter than a header or the payload is incomplete.
  - `payload_hash(payload, original_sender_id)` returns a 64-bit hash.

### Transport and failure detection

- `distrifein.network`: `TcpServer` with these methods:
  - `start_server()` and `stop()` start and stop the listener.
  - `broadcast(event)` sends to every peer that has not crashed.
  - `send_message(ip, port, event)` sends to one address. It logs failures and does
    not raise them.
  - `deliver(connection)` reads a payload and publishes it as `P2P_DELIVER_EVENT`.
- `distrifein.fd`: `FailureDetector`.
  - `start()` and `stop()` control it.
  - `handle_message(event)` records that a sender is alive.
  - `check_peers()` runs one check and returns the ids it newly suspects.
  - The timeout, heartbeat interval, grace period, check interval and clock can all
    be set in the constructor.

### Broadcast algorithms

- `distrifein.beb`: `BestEffortBroadcaster`.
  - `broadcast` delivers locally, then hands the payload to the transport.
  - `deliver` delivers what peers send.
- `distrifein.rb`: `ReliableBroadcaster`, lazy reliable broadcast.
  - It delivers each message id once.
  - It remembers the messages it received from each process. When that process is
    reported crashed, it relays those messages.
- `distrifein.urb`: `UniformReliableBroadcaster`, all-ack uniform reliable broadcast.
  - It delivers a pending message once every process still believed correct has
    acknowledged it.
  - `is_subset(subset, superset)` is a small helper.

### Application, logging and helpers

- `distrifein.app`: `Application` and `BroadcasterType`, the console front end. It
  has these methods:
  - `send_text(text)`
  - `send_image(path)`
  - `decode(event)`
  - `run()`

  Input and output streams and the output directory can be injected.
- `distrifein.logger`: `get_logger()` returns the process-wide `Logger`. It has
  these methods:
  - `log(message)`
  - `set_output_file(filename)` appends to a file instead of standard output.
  - `close()`
- `distrifein.orderedset`: `OrderedSet`, a set that keeps insertion order.
- `distrifein.utils`:
  - `split_peers_string(text, delim)`
  - `generate_message_id()`
  - `extract_ppm_filename(line)`
  - `contains_ppm(line)`
- `distrifein.cli`: `main(argv=None)`, the `distrifein` command.

## Using the library

Send an event over the bus:

```python
from distrifein.event import Event, EventType
from distrifein.eventbus import EventBus

bus = EventBus()
bus.subscribe(EventType.BEB_DELIVER_EVENT, lambda e: print(e.payload))
bus.publish(Event(EventType.BEB_DELIVER_EVENT, b"hello"))
```

Encode a message and decode it again:

```python
from distrifein.message import MessageType, deserialize_message, new_message

msg = new_message(MessageType.TEXT_MESSAGE, 1, b"hi\0")
again = deserialize_message(msg.to_bytes())
assert again.header.message_id == msg.header.message_id
```

## Limitations

- Peers are always reached at `127.0.0.1`, so all nodes must run on one machine.
- Messages are never split into chunks. The header's `chunk_index`, `total_chunks`
  and `crc32` fields are always written as 0, 1 and 0, and nothing checks them.
- A suspected process stays suspected. `PROCESS_RESTORE_EVENT` exists but nothing
  publishes or handles it.
- The command has no option to log to a file. `Logger.set_output_file` is available
  to library users only.

## Tests

```
pip install .[test]
pytest
```