"""Composition root - wires the store, event bus, coordinator and ordering service."""

import asyncio
import logging
from datetime import date, datetime
from typing import Any, Callable

from .commands import (
    AcceptDelegation,
    Command,
    Create,
    Delegate,
    Delete,
    RejectDelegation,
    RevokeDelegation,
    Update,
)
from .config import Config
from .coordinator import MutationCoordinator
from .core.classification import Quadrant, quadrant, sort_by_priority
from .core.entities import Activity, EntityType, Goal, Milestone, Task, TaskStatus
from .core.progress import GoalStatistics, goal_progress, goal_statistics
from .events import EventBus
from .guards import Limits, require
from .ordering import OrderingService
from .ports import Services
from .store import EntityStore

logger = logging.getLogger(__name__)


class Engine:
    """
    Client-side synchronization and business-rule engine.

    Views read from ``store`` (or the derived helpers below), subscribe to
    ``bus`` and change state only by dispatching commands through ``apply``.
    """

    def __init__(
        self,
        services: Services,
        config: Config | None = None,
        bus: EventBus | None = None,
        clock: Callable[[], date] = date.today,
    ):
        self.config = config or Config()
        self.services = services
        self.store = EntityStore()
        self.bus = bus or EventBus()
        self.clock = clock
        self.coordinator = MutationCoordinator(
            self.store,
            services,
            self.bus,
            current_user_id=self.config.current_user_id or None,
            timeout=self.config.request_timeout,
            limits=Limits(self.config.max_key_areas, self.config.max_lists),
            clock=clock,
        )
        self.ordering = OrderingService(self.coordinator)

    async def apply(self, command: Command) -> Any:
        return await self.coordinator.apply(command)

    # ============== Loading ==============

    async def hydrate(self) -> None:
        """Load every entity type from the services into the store."""
        areas, goals, tasks, activities = await asyncio.gather(
            self.services.key_areas.list(),
            self.services.goals.list(),
            self.services.tasks.list(),
            self.services.activities.list(),
        )
        self.coordinator.ingest(EntityType.KEY_AREA, areas)
        loaded_goals = self.coordinator.ingest(EntityType.GOAL, goals)
        self.coordinator.ingest(EntityType.TASK, tasks)
        self.coordinator.ingest(EntityType.ACTIVITY, activities)

        milestone_lists = await asyncio.gather(
            *(self.services.milestones.list_by_goal(g.id) for g in loaded_goals)
        )
        for milestones in milestone_lists:
            self.coordinator.ingest(EntityType.MILESTONE, milestones)

        logger.info(
            f"Hydrated {len(areas)} key areas, {len(goals)} goals, "
            f"{len(tasks)} tasks, {len(activities)} activities"
        )

    async def load_delegated_to_me(self) -> list[Task | Activity]:
        tasks, activities = await asyncio.gather(
            self.services.delegations.list_delegated_to_me(EntityType.TASK),
            self.services.delegations.list_delegated_to_me(EntityType.ACTIVITY),
        )
        return self.coordinator.ingest(EntityType.TASK, tasks) + self.coordinator.ingest(
            EntityType.ACTIVITY, activities
        )

    # ============== Derived reads ==============

    def activity(self, activity_id: str) -> Activity:
        """Activity with key area, list, assignee and goal filled from its task."""
        activity = require(self.store, EntityType.ACTIVITY, activity_id)
        parent = self.store.get(EntityType.TASK, activity.task_id) if activity.task_id else None
        return activity.inherit(parent)

    def quadrant(
        self,
        entity_type: EntityType,
        entity_id: str,
        now: date | datetime | None = None,
    ) -> Quadrant:
        if entity_type is EntityType.ACTIVITY:
            item = self.activity(entity_id)
        else:
            item = require(self.store, EntityType.TASK, entity_id)
        return quadrant(item, now or self.clock(), self.config.urgent_days)

    def goal_progress(self, goal_id: str) -> int:
        goal = require(self.store, EntityType.GOAL, goal_id)
        return goal_progress(goal, self.store.milestones_for_goal(goal_id))

    def goal_statistics(self) -> GoalStatistics:
        goals = self.store.all(EntityType.GOAL)
        progress = {g.id: goal_progress(g, self.store.milestones_for_goal(g.id)) for g in goals}
        return goal_statistics(goals, progress)

    def tasks(self, key_area_id: str | None = None) -> list[Task]:
        """Tasks sorted by priority then deadline."""
        if key_area_id:
            tasks = self.store.tasks_in_key_area(key_area_id)
        else:
            tasks = self.store.all(EntityType.TASK)
        return sort_by_priority(tasks)

    # ============== Commands ==============

    async def create_task(self, key_area_id: str, title: str, **fields: Any) -> Task:
        return await self.apply(Create(EntityType.TASK, {"key_area_id": key_area_id, "title": title, **fields}))

    async def update_task(self, task_id: str, **changes: Any) -> Task:
        return await self.apply(Update(EntityType.TASK, task_id, changes))

    async def complete_task(self, task_id: str) -> Task:
        return await self.update_task(task_id, status=TaskStatus.COMPLETED)

    async def delete_task(self, task_id: str) -> None:
        await self.apply(Delete(EntityType.TASK, task_id))

    async def create_goal(self, title: str, **fields: Any) -> Goal:
        return await self.apply(Create(EntityType.GOAL, {"title": title, **fields}))

    async def add_milestone(self, goal_id: str, title: str, weight: float = 1.0, **fields: Any) -> Milestone:
        return await self.apply(
            Create(EntityType.MILESTONE, {"goal_id": goal_id, "title": title, "weight": weight, **fields})
        )

    async def complete_milestone(self, milestone_id: str) -> Milestone:
        return await self.apply(Update(EntityType.MILESTONE, milestone_id, {"done": True}))

    async def delegate(self, entity_type: EntityType, entity_id: str, to_user_id: str) -> Task | Activity:
        return await self.apply(Delegate(entity_type, entity_id, to_user_id))

    async def accept_delegation(self, entity_type: EntityType, entity_id: str) -> Task | Activity:
        return await self.apply(AcceptDelegation(entity_type, entity_id))

    async def reject_delegation(self, entity_type: EntityType, entity_id: str, reason: str = "") -> Task | Activity:
        return await self.apply(RejectDelegation(entity_type, entity_id, reason))

    async def revoke_delegation(self, entity_type: EntityType, entity_id: str) -> Task | Activity:
        return await self.apply(RevokeDelegation(entity_type, entity_id))
