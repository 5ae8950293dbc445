from __future__ import annotations

import threading

from src.people_ops.people_ops.common.events import DomainEvent, EventOutbox


class Switch:
    def __init__(self):
        self.broken = True
        self.seen = []

    def __call__(self, event):
        if self.broken:
            raise RuntimeError(f"down for {event.payload['n']}")
        self.seen.append(event.payload["n"])


def _event(n, tenant_id="t1"):
    return DomainEvent(name="thing.happened", tenant_id=tenant_id, payload={"n": n})


def test_failure_log_keeps_only_the_newest():
    outbox = EventOutbox(max_failed=2)
    outbox.subscribe("thing.happened", Switch())
    for n in range(3):
        outbox.publish(_event(n))

    assert outbox.flush() == 3
    assert [f.error for f in outbox.failed] == ["down for 1", "down for 2"]
    assert outbox.dropped_failures == 1


def test_retry_can_be_limited_to_one_tenant():
    outbox = EventOutbox()
    handler = Switch()
    outbox.subscribe("thing.happened", handler)
    outbox.publish(_event(1, "t1"))
    outbox.publish(_event(2, "t2"))
    outbox.flush()

    handler.broken = False
    assert outbox.retry_failed("t1") == 0
    assert handler.seen == [1]
    assert [f.event.tenant_id for f in outbox.failed] == ["t2"]

    assert outbox.retry_failed() == 0
    assert handler.seen == [1, 2]
    assert outbox.failed == []


def test_handlers_may_publish_while_flushing():
    outbox = EventOutbox()
    delivered = []

    def chain(event):
        delivered.append(event.payload["n"])
        if event.payload["n"] == 0:
            outbox.publish(_event(1))

    outbox.subscribe("thing.happened", chain)
    outbox.publish(_event(0))

    assert outbox.flush() == 0
    assert [e.payload["n"] for e in outbox.pending] == [1]
    outbox.flush()
    assert delivered == [0, 1]


def test_concurrent_publishers_lose_nothing():
    outbox = EventOutbox()
    delivered = []
    outbox.subscribe("thing.happened", lambda e: delivered.append(e.payload["n"]))

    def worker(offset):
        for n in range(200):
            outbox.publish(_event(offset + n))
            if n % 50 == 0:
                outbox.flush()

    threads = [threading.Thread(target=worker, args=(i * 1000,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    outbox.flush()

    assert sorted(delivered) == sorted(i * 1000 + n for i in range(8) for n in range(200))
