"""Normalized in-memory entity tables - the single source of truth for views."""

import copy
from collections import defaultdict
from typing import Any, Iterable

from .core.entities import Activity, EntityType, Milestone, Task

Snapshot = dict[EntityType, dict[str, Any]]
EntityKey = tuple[EntityType, str]


class EntityStore:
    """
    One table per entity type, keyed by id, plus lookup indices.

    Records are held as-is; derived values (progress, quadrant) are computed
    by callers on read and never stored here.
    """

    def __init__(self):
        self._reset()

    def _reset(self) -> None:
        self._tables: Snapshot = {t: {} for t in EntityType}
        self._tasks_by_key_area: dict[str, set[str]] = defaultdict(set)
        self._tasks_by_list: dict[tuple[str, int], set[str]] = defaultdict(set)
        self._activities_by_task: dict[str, set[str]] = defaultdict(set)
        self._milestones_by_goal: dict[str, set[str]] = defaultdict(set)

    def get(self, entity_type: EntityType, entity_id: str) -> Any | None:
        return self._tables[entity_type].get(entity_id)

    def all(self, entity_type: EntityType) -> list[Any]:
        return list(self._tables[entity_type].values())

    def count(self, entity_type: EntityType) -> int:
        return len(self._tables[entity_type])

    def upsert(self, entity_type: EntityType, record: Any) -> Any:
        table = self._tables[entity_type]
        old = table.get(record.id)
        if old is not None:
            self._unindex(entity_type, old)
        table[record.id] = record
        self._index(entity_type, record)
        return record

    def remove(self, entity_type: EntityType, entity_id: str) -> Any | None:
        record = self._tables[entity_type].pop(entity_id, None)
        if record is not None:
            self._unindex(entity_type, record)
        return record

    def snapshot(self) -> Snapshot:
        """Deep copy of every table, for rollback."""
        return copy.deepcopy(self._tables)

    def restore(self, snapshot: Snapshot, keys: Iterable[EntityKey] | None = None) -> None:
        """
        Put entities back to their snapshot state.

        With ``keys``, only those entities are restored (and removed if they
        did not exist at snapshot time); everything else is left alone.
        """
        if keys is None:
            self._reset()
            for entity_type, table in snapshot.items():
                for record in table.values():
                    self.upsert(entity_type, copy.deepcopy(record))
            return

        for entity_type, entity_id in keys:
            saved = snapshot[entity_type].get(entity_id)
            if saved is None:
                self.remove(entity_type, entity_id)
            else:
                self.upsert(entity_type, copy.deepcopy(saved))

    # ============== Indices ==============

    def tasks_in_key_area(self, key_area_id: str) -> list[Task]:
        return self._lookup(EntityType.TASK, self._tasks_by_key_area.get(key_area_id))

    def tasks_in_list(self, key_area_id: str, list_index: int) -> list[Task]:
        return self._lookup(EntityType.TASK, self._tasks_by_list.get((key_area_id, list_index)))

    def activities_for_task(self, task_id: str) -> list[Activity]:
        return self._lookup(EntityType.ACTIVITY, self._activities_by_task.get(task_id))

    def milestones_for_goal(self, goal_id: str) -> list[Milestone]:
        """Milestones of a goal in sort order."""
        milestones = self._lookup(EntityType.MILESTONE, self._milestones_by_goal.get(goal_id))
        return sorted(milestones, key=lambda m: (m.sort_order, m.id))

    def tasks_for_goal(self, goal_id: str) -> list[Task]:
        return [t for t in self._tables[EntityType.TASK].values() if t.goal_id == goal_id]

    def _lookup(self, entity_type: EntityType, ids: set[str] | None) -> list[Any]:
        table = self._tables[entity_type]
        return [table[i] for i in sorted(ids or ())]

    def _index_entries(self, entity_type: EntityType, record: Any) -> list[tuple[dict, Any]]:
        match entity_type:
            case EntityType.TASK:
                return [
                    (self._tasks_by_key_area, record.key_area_id),
                    (self._tasks_by_list, (record.key_area_id, record.list_index)),
                ]
            case EntityType.ACTIVITY if record.task_id is not None:
                return [(self._activities_by_task, record.task_id)]
            case EntityType.MILESTONE:
                return [(self._milestones_by_goal, record.goal_id)]
        return []

    def _index(self, entity_type: EntityType, record: Any) -> None:
        for index, key in self._index_entries(entity_type, record):
            index[key].add(record.id)

    def _unindex(self, entity_type: EntityType, record: Any) -> None:
        for index, key in self._index_entries(entity_type, record):
            ids = index.get(key)
            if ids is None:
                continue
            ids.discard(record.id)
            if not ids:
                del index[key]
