"""Shared fixtures: in-memory service doubles and a seeded engine."""

import asyncio
import itertools
from datetime import date

import pytest

from practical.config import Config
from practical.core.entities import EntityType
from practical.engine import Engine
from practical.ports import Services


class FakeResource:
    """
    Stand-in for one remote collection.

    Mutating calls are recorded in ``calls``. Set ``error`` to make them fail,
    ``gate`` to hold them until the event is set, ``response`` to override
    what update returns. ``records`` backs get/list for refetches.
    """

    def __init__(self, prefix: str = "srv"):
        self.calls: list[tuple] = []
        self.error: BaseException | None = None
        self.gate: asyncio.Event | None = None
        self.response: dict | None = None
        self.records: dict[str, dict] = {}
        self._ids = itertools.count(1)
        self._prefix = prefix

    async def _hit(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error

    async def create(self, fields: dict) -> dict:
        await self._hit("create", fields)
        return {**fields, "id": fields.get("id") or f"{self._prefix}-{next(self._ids)}"}

    async def update(self, entity_id: str, changes: dict) -> dict:
        await self._hit("update", entity_id, changes)
        return dict(changes) if self.response is None else dict(self.response)

    async def remove(self, entity_id: str) -> None:
        await self._hit("remove", entity_id)

    async def reorder(self, positions: dict) -> None:
        await self._hit("reorder", positions)

    async def get(self, entity_id: str) -> dict | None:
        return self.records.get(entity_id)

    async def list_by_goal(self, goal_id: str) -> list[dict]:
        return [r for r in self.records.values() if r.get("goal_id") == goal_id]

    async def list(self, *args) -> list[dict]:
        return [*self.records.values()]


class FakeDelegations:
    def __init__(self):
        self.calls: list[tuple] = []
        self.error: BaseException | None = None
        self.response: dict = {}
        self.delegated_to_me: dict[EntityType, list[dict]] = {}

    async def _hit(self, *args) -> dict:
        self.calls.append(args)
        if self.error is not None:
            raise self.error
        return dict(self.response)

    async def delegate(self, entity_type, entity_id, to_user_id):
        return await self._hit("delegate", entity_type, entity_id, to_user_id)

    async def accept(self, entity_type, entity_id):
        return await self._hit("accept", entity_type, entity_id)

    async def reject(self, entity_type, entity_id, reason=""):
        return await self._hit("reject", entity_type, entity_id, reason)

    async def revoke(self, entity_type, entity_id):
        return await self._hit("revoke", entity_type, entity_id)

    async def list_delegated_to_me(self, entity_type):
        return self.delegated_to_me.get(entity_type, [])


@pytest.fixture
def today():
    return date(2025, 1, 15)


@pytest.fixture
def services():
    return Services(
        tasks=FakeResource("task"),
        goals=FakeResource("goal"),
        milestones=FakeResource("ms"),
        key_areas=FakeResource("ka"),
        activities=FakeResource("act"),
        delegations=FakeDelegations(),
    )


@pytest.fixture
def engine(services, today):
    config = Config(current_user_id="alice", request_timeout=1.0)
    return Engine(services, config, clock=lambda: today)


@pytest.fixture
def events(engine):
    received = []
    engine.bus.subscribe(received.append)
    return received


@pytest.fixture
def seeded(engine):
    """Engine with two key areas, the default area, a goal, a task and an activity."""
    ingest = engine.coordinator.ingest
    ingest(
        EntityType.KEY_AREA,
        [
            {"id": "ka-ideas", "title": "Ideas", "is_default": True, "position": 10},
            {"id": "ka-work", "title": "Work", "position": 1, "list_names": {1: "Inbox", 2: "Projects"}},
            {"id": "ka-home", "title": "Home", "position": 2},
        ],
    )
    ingest(EntityType.GOAL, [{"id": "g1", "title": "Ship v1", "status": "active"}])
    ingest(
        EntityType.MILESTONE,
        [
            {"id": "m1", "goal_id": "g1", "title": "Design", "weight": 1.0, "done": True, "sort_order": 1},
            {"id": "m2", "goal_id": "g1", "title": "Build", "weight": 3.0, "score": 0.0, "sort_order": 2},
        ],
    )
    ingest(
        EntityType.TASK,
        [
            {"id": "t1", "key_area_id": "ka-work", "title": "Write docs", "priority": "high", "assignee": "alice"},
            {"id": "t2", "key_area_id": "ka-home", "title": "Fix sink", "priority": "low"},
        ],
    )
    ingest(EntityType.ACTIVITY, [{"id": "a1", "task_id": "t1", "text": "Outline chapters"}])
    return engine
