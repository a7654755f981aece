"""Tests for the event bus."""

import asyncio

from practical.core.entities import EntityType
from practical.events import EventBus


class TestEventBus:
    def test_publish_to_subscribers(self):
        bus = EventBus()
        received = []
        bus.subscribe(received.append)

        bus.changed(EntityType.TASK, "t1")
        bus.delegation_settled(EntityType.ACTIVITY, "a1", "rejected")
        bus.capacity_exceeded("list")

        assert received == [
            {"type": "changed", "entity_type": EntityType.TASK, "id": "t1"},
            {"type": "delegation-settled", "entity_type": EntityType.ACTIVITY, "id": "a1", "outcome": "rejected"},
            {"type": "capacity-exceeded", "resource": "list"},
        ]
        assert bus.events_published == 3

    def test_unsubscribe(self):
        bus = EventBus()
        received = []
        unsubscribe = bus.subscribe(received.append)

        unsubscribe()
        unsubscribe()
        bus.changed(EntityType.GOAL, "g1")

        assert received == []

    def test_failing_handler_does_not_block_others(self):
        bus = EventBus()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(received.append)
        bus.changed(EntityType.TASK, "t1")

        assert len(received) == 1

    def test_async_handler_scheduled_on_loop(self):
        bus = EventBus()
        received = []

        async def handler(event):
            received.append(event["id"])

        bus.subscribe(handler)

        async def publish():
            bus.changed(EntityType.TASK, "t1")
            await asyncio.sleep(0)

        asyncio.run(publish())

        assert received == ["t1"]
