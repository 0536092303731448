"""Event bus tests."""

from __future__ import annotations

import gc
import logging

from inlineref.ui.events import ContentChanged, EventBus, ResourceRemoved


class Subscriber:
    def __init__(self) -> None:
        self.received: list[str] = []

    def on_removed(self, event: ResourceRemoved) -> None:
        self.received.append(event.resource_id)


def test_handlers_run_in_subscription_order():
    bus = EventBus()
    calls: list[str] = []
    bus.subscribe(ResourceRemoved, lambda event: calls.append(f"first:{event.resource_id}"))
    bus.subscribe(ResourceRemoved, lambda event: calls.append(f"second:{event.resource_id}"))
    bus.publish(ResourceRemoved(resource_id="r1"))
    assert calls == ["first:r1", "second:r1"]


def test_events_only_reach_their_type():
    bus = EventBus()
    calls: list[object] = []
    bus.subscribe(ContentChanged, calls.append)
    bus.publish(ResourceRemoved(resource_id="r1"))
    assert calls == []


def test_failing_handler_does_not_block_others(caplog):
    caplog.set_level(logging.ERROR, logger="inlineref.ui.events")
    bus = EventBus()
    calls: list[str] = []

    def broken(_event: ResourceRemoved) -> None:
        raise ValueError("nope")

    bus.subscribe(ResourceRemoved, broken)
    bus.subscribe(ResourceRemoved, lambda event: calls.append(event.resource_id))
    bus.publish(ResourceRemoved(resource_id="r1"))
    assert calls == ["r1"]
    assert "broken" in caplog.text


def test_bound_method_handlers_are_weak():
    bus = EventBus()
    subscriber = Subscriber()
    bus.subscribe(ResourceRemoved, subscriber.on_removed)
    bus.publish(ResourceRemoved(resource_id="a"))
    assert subscriber.received == ["a"]

    del subscriber
    gc.collect()
    bus.publish(ResourceRemoved(resource_id="b"))
    assert bus.handler_count(ResourceRemoved) == 0


def test_unsubscribe_removes_first_registration():
    bus = EventBus()
    calls: list[object] = []
    bus.subscribe(ContentChanged, calls.append)
    bus.subscribe(ContentChanged, calls.append)
    bus.unsubscribe(ContentChanged, calls.append)
    bus.publish(ContentChanged(storage="x"))
    assert calls == [ContentChanged(storage="x")]

    bus.clear()
    assert bus.handler_count() == 0
