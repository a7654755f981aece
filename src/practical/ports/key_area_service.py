"""Key area service interface."""

from typing import Protocol


class KeyAreaService(Protocol):
    async def create(self, fields: dict) -> dict:
        ...

    async def update(self, key_area_id: str, changes: dict) -> dict:
        ...

    async def remove(self, key_area_id: str) -> None:
        ...

    async def reorder(self, positions: dict[str, int]) -> list[dict] | None:
        """Persist a batch of positions. May return the updated areas."""
        ...

    async def list(self) -> list[dict]:
        ...
