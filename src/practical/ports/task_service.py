"""Task service interface."""

from typing import Protocol


class TaskService(Protocol):
    """Remote task operations. Payloads use canonical field names."""

    async def create(self, fields: dict) -> dict:
        """Create a task. Returns the server's canonical fields."""
        ...

    async def update(self, task_id: str, changes: dict) -> dict:
        """Apply changes. Returns the fields the server sent back."""
        ...

    async def remove(self, task_id: str) -> None:
        ...

    async def list(self, key_area_id: str | None = None) -> list[dict]:
        ...

    async def get(self, task_id: str) -> dict | None:
        """Fetch one task. Returns None if it no longer exists."""
        ...
