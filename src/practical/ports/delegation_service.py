"""Delegation service interface."""

from typing import Protocol

from practical.core.entities import EntityType


class DelegationService(Protocol):
    """Delegation endpoints for tasks and activities. Each returns the entity's fields."""

    async def delegate(self, entity_type: EntityType, entity_id: str, to_user_id: str) -> dict:
        ...

    async def accept(self, entity_type: EntityType, entity_id: str) -> dict:
        ...

    async def reject(self, entity_type: EntityType, entity_id: str, reason: str = "") -> dict:
        ...

    async def revoke(self, entity_type: EntityType, entity_id: str) -> dict:
        ...

    async def list_delegated_to_me(self, entity_type: EntityType) -> list[dict]:
        ...
