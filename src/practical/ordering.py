"""Ordering service - key area positions and per-area lists."""

from .commands import Create, Delete, MoveKeyArea, Update
from .coordinator import MutationCoordinator
from .core import ordering
from .core.entities import EntityType, KeyArea
from .core.errors import CapacityError
from .guards import require


class OrderingService:
    """
    Turns drag-and-drop and list edits into coordinator commands.

    The default key area is excluded from every reorderable set and keeps
    position 10; non-default areas always hold positions 1..N.
    """

    def __init__(self, coordinator: MutationCoordinator):
        self.coordinator = coordinator
        self.store = coordinator.store

    def key_areas(self) -> list[KeyArea]:
        return ordering.display_order(self.store.all(EntityType.KEY_AREA))

    def lists(self, key_area_id: str) -> list[tuple[int, str]]:
        """(index, name) for every list in a key area."""
        area = require(self.store, EntityType.KEY_AREA, key_area_id)
        tasks = self.store.tasks_in_key_area(key_area_id)
        return [(i, ordering.list_name(area, i)) for i in ordering.list_indices(area, tasks)]

    # ============== Key areas ==============

    async def reorder_key_areas(self, dragged_id: str, target_id: str) -> list[KeyArea]:
        return await self.coordinator.apply(MoveKeyArea(dragged_id, target_id))

    async def create_key_area(self, title: str, color: str | None = None, description: str = "") -> KeyArea:
        fields = {"title": title, "description": description}
        if color:
            fields["color"] = color
        return await self.coordinator.apply(Create(EntityType.KEY_AREA, fields))

    async def rename_key_area(self, key_area_id: str, title: str) -> KeyArea:
        return await self.coordinator.apply(Update(EntityType.KEY_AREA, key_area_id, {"title": title}))

    async def delete_key_area(self, key_area_id: str) -> None:
        """Delete an empty area and close the gap it leaves."""
        await self.coordinator.apply(Delete(EntityType.KEY_AREA, key_area_id))

    # ============== Lists ==============

    async def add_list(self, key_area_id: str, name: str | None = None) -> KeyArea:
        area = require(self.store, EntityType.KEY_AREA, key_area_id)
        tasks = self.store.tasks_in_key_area(key_area_id)
        try:
            index = ordering.check_add_list(area, tasks, self.coordinator.limits.max_lists)
        except CapacityError as e:
            self.coordinator.bus.capacity_exceeded(e.resource)
            raise
        label = ordering.check_rename_list(area, index, name or f"List {index}", tasks)
        return await self._set_list_names(area, {**area.list_names, index: label})

    async def rename_list(self, key_area_id: str, index: int, name: str) -> KeyArea:
        area = require(self.store, EntityType.KEY_AREA, key_area_id)
        tasks = self.store.tasks_in_key_area(key_area_id)
        label = ordering.check_rename_list(area, index, name, tasks)
        return await self._set_list_names(area, {**area.list_names, index: label})

    async def delete_list(self, key_area_id: str, index: int) -> KeyArea:
        """Remove an empty list."""
        area = require(self.store, EntityType.KEY_AREA, key_area_id)
        ordering.check_delete_list(area, index, self.store.tasks_in_key_area(key_area_id))
        names = {i: n for i, n in area.list_names.items() if i != index}
        return await self._set_list_names(area, names)

    async def _set_list_names(self, area: KeyArea, names: dict[int, str]) -> KeyArea:
        return await self.coordinator.apply(Update(EntityType.KEY_AREA, area.id, {"list_names": names}))
