import threading

from distrifein.event import Event, EventType
from distrifein.eventbus import EventBus


def test_publish_reaches_subscribers_in_order():
    bus = EventBus()
    seen = []
    bus.subscribe(EventType.APP_SEND_EVENT, lambda e: seen.append(("a", e.payload)))
    bus.subscribe(EventType.APP_SEND_EVENT, lambda e: seen.append(("b", e.payload)))
    bus.publish(Event(EventType.APP_SEND_EVENT, b"m"))
    assert seen == [("a", b"m"), ("b", b"m")]


def test_publish_ignores_other_types():
    bus = EventBus()
    seen = []
    bus.subscribe(EventType.RB_DELIVER_EVENT, seen.append)
    bus.publish(Event(EventType.BEB_DELIVER_EVENT, b"m"))
    assert seen == []


def test_rebroadcast_changes_type_and_keeps_payload():
    bus = EventBus()
    seen = []
    bus.subscribe(EventType.BEB_DELIVER_EVENT, seen.append)
    bus.rebroadcast(EventType.P2P_DELIVER_EVENT, EventType.BEB_DELIVER_EVENT)
    bus.publish(Event(EventType.P2P_DELIVER_EVENT, b"payload"))
    assert seen == [Event(EventType.BEB_DELIVER_EVENT, b"payload")]


def test_nested_publish_from_callback():
    bus = EventBus()
    seen = []
    bus.subscribe(
        EventType.APP_SEND_EVENT,
        lambda e: bus.publish(Event(EventType.RB_SEND_EVENT, e.payload + b"!")),
    )
    bus.subscribe(EventType.RB_SEND_EVENT, seen.append)
    bus.publish(Event(EventType.APP_SEND_EVENT, b"hi"))
    assert [e.payload for e in seen] == [b"hi!"]


def test_concurrent_publish_delivers_every_event():
    bus = EventBus()
    seen = []
    bus.subscribe(EventType.FD_SEND_EVENT, seen.append)

    def worker():
        for _ in range(100):
            bus.publish(Event(EventType.FD_SEND_EVENT, b"hb"))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(seen) == 400