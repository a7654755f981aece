"""Activity service interface."""

from typing import Protocol


class ActivityService(Protocol):
    async def create(self, fields: dict) -> dict:
        ...

    async def update(self, activity_id: str, changes: dict) -> dict:
        ...

    async def remove(self, activity_id: str) -> None:
        ...

    async def list(self, task_id: str | None = None) -> list[dict]:
        ...

    async def get(self, activity_id: str) -> dict | None:
        ...
