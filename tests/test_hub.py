from __future__ import annotations

import asyncio
import threading
from datetime import datetime, timezone
from typing import List

from datastore.base import StoreUnavailable
from datastore.json_file import JsonFileReadingStore
from models.records import Reading
from services.hub import INITIAL_DATA, NEW_READING, HubMessage, LiveHub, QueueObserver


class RecordingObserver:
    def __init__(self, observer_id: str, accept: bool = True) -> None:
        self.observer_id = observer_id
        self.accept = accept
        self.messages: List[HubMessage] = []
        self.closed = False

    def offer(self, message: HubMessage) -> bool:
        if not self.accept:
            return False
        self.messages.append(message)
        return True

    def close(self) -> None:
        self.closed = True

    def received_ids(self) -> List[str]:
        ids: List[str] = []
        for message in self.messages:
            if message.event == INITIAL_DATA:
                ids.extend(reading.id for reading in message.data)
            else:
                ids.append(message.data.id)
        return ids


def _reading(steps: int) -> Reading:
    return Reading(
        steps=steps,
        power_mw=1.0,
        voltage_v=2.0,
        current_ma=3.0,
        timestamp=datetime(2024, 1, 1, 0, steps, tzinfo=timezone.utc),
    )


def test_connect_sends_snapshot_then_registers() -> None:
    store = JsonFileReadingStore(None)
    existing = store.append(_reading(1))
    hub = LiveHub(snapshot=store.list_all)
    observer = RecordingObserver("a")

    asyncio.run(hub.connect(observer))

    assert hub.observer_count == 1
    assert [message.event for message in observer.messages] == [INITIAL_DATA]
    assert observer.messages[0].data == [existing]


def test_publish_broadcasts_in_append_order() -> None:
    store = JsonFileReadingStore(None)
    hub = LiveHub(snapshot=store.list_all)
    first, second = RecordingObserver("a"), RecordingObserver("b")

    async def scenario() -> None:
        await hub.connect(first)
        await hub.connect(second)
        for steps in range(3):
            await hub.publish(lambda steps=steps: store.append(_reading(steps)))

    asyncio.run(scenario())

    expected = [reading.id for reading in store.list_all()]
    for observer in (first, second):
        assert [message.event for message in observer.messages] == [INITIAL_DATA] + [NEW_READING] * 3
        assert observer.received_ids() == expected


def test_observer_connecting_during_append_sees_reading_exactly_once() -> None:
    store = JsonFileReadingStore(None)
    hub = LiveHub(snapshot=store.list_all)
    early, late = RecordingObserver("early"), RecordingObserver("late")
    started = threading.Event()
    release = threading.Event()

    def slow_append():
        started.set()
        release.wait(timeout=5)
        return store.append(_reading(1))

    async def scenario() -> None:
        await hub.connect(early)
        publish = asyncio.create_task(hub.publish(slow_append))
        while not started.is_set():
            await asyncio.sleep(0.01)
        connect = asyncio.create_task(hub.connect(late))
        await asyncio.sleep(0.05)
        # Registration waits for the in-flight append/broadcast pair.
        assert late.messages == []
        release.set()
        await publish
        await connect

    asyncio.run(scenario())

    stored_id = store.list_all()[0].id
    assert early.received_ids() == [stored_id]
    assert [message.event for message in early.messages] == [INITIAL_DATA, NEW_READING]
    assert late.received_ids() == [stored_id]
    assert [message.event for message in late.messages] == [INITIAL_DATA]


def test_failed_append_is_not_broadcast() -> None:
    store = JsonFileReadingStore(None)
    hub = LiveHub(snapshot=store.list_all)
    observer = RecordingObserver("a")

    def broken_append():
        raise StoreUnavailable("disk gone")

    async def scenario() -> None:
        await hub.connect(observer)
        try:
            await hub.publish(broken_append)
        except StoreUnavailable:
            return
        raise AssertionError("publish should propagate store failures")

    asyncio.run(scenario())

    assert [message.event for message in observer.messages] == [INITIAL_DATA]


def test_observer_that_refuses_is_dropped_without_failing_publish() -> None:
    store = JsonFileReadingStore(None)
    hub = LiveHub(snapshot=store.list_all)
    healthy, stuck = RecordingObserver("healthy"), RecordingObserver("stuck")

    async def scenario() -> None:
        await hub.connect(healthy)
        await hub.connect(stuck)
        stuck.accept = False
        await hub.publish(lambda: store.append(_reading(1)))
        await hub.publish(lambda: store.append(_reading(2)))

    asyncio.run(scenario())

    assert hub.observer_count == 1
    assert stuck.closed is True
    assert len(healthy.messages) == 3


def test_disconnect_is_idempotent() -> None:
    hub = LiveHub(snapshot=list)
    observer = RecordingObserver("a")

    asyncio.run(hub.connect(observer))
    hub.disconnect(observer)
    hub.disconnect(observer)

    assert hub.observer_count == 0


def test_snapshot_failure_still_registers_with_empty_history() -> None:
    def failing_snapshot():
        raise StoreUnavailable("offline")

    hub = LiveHub(snapshot=failing_snapshot)
    observer = RecordingObserver("a")

    asyncio.run(hub.connect(observer))

    assert observer.messages == [HubMessage(INITIAL_DATA, [])]
    assert hub.observer_count == 1


def test_queue_observer_delivers_in_order_and_stops_on_close() -> None:
    delivered: List[HubMessage] = []

    async def deliver(message: HubMessage) -> None:
        delivered.append(message)

    async def scenario() -> None:
        observer = QueueObserver(deliver, queue_size=2)
        assert observer.offer(HubMessage(NEW_READING, 1))
        assert observer.offer(HubMessage(NEW_READING, 2))
        assert not observer.offer(HubMessage(NEW_READING, 3))
        pump = asyncio.create_task(observer.pump())
        await asyncio.sleep(0.01)
        observer.close()
        await asyncio.wait_for(pump, timeout=1)
        assert not observer.offer(HubMessage(NEW_READING, 4))

    asyncio.run(scenario())

    assert [message.data for message in delivered] == [1, 2]
