"""Goal and milestone service interfaces."""

from typing import Protocol


class GoalService(Protocol):
    async def create(self, fields: dict) -> dict:
        ...

    async def update(self, goal_id: str, changes: dict) -> dict:
        ...

    async def remove(self, goal_id: str) -> None:
        ...

    async def list(self) -> list[dict]:
        ...

    async def get(self, goal_id: str) -> dict | None:
        ...


class MilestoneService(Protocol):
    """Milestones are only listed through their owning goal."""

    async def create(self, fields: dict) -> dict:
        ...

    async def update(self, milestone_id: str, changes: dict) -> dict:
        ...

    async def remove(self, milestone_id: str) -> None:
        ...

    async def list_by_goal(self, goal_id: str) -> list[dict]:
        ...
