"""Mutation coordinator - optimistic writes against the store, reconciled with the server.

Every command goes through the same ``apply`` algorithm:

1. Wait for any earlier command on the same entity to settle.
2. Validate and plan (no writes yet, so errors here need no rollback).
3. Snapshot, then write the expected outcome into the store.
4. Run the remote call under a timeout.
5. Success: merge the server's fields over the optimistic record.
   Failure: restore exactly the touched entities from the snapshot.
"""

import asyncio
import contextlib
import logging
from dataclasses import fields as dataclass_fields, replace
from datetime import date
from typing import Any, AsyncIterator, Callable

from . import normalize
from .commands import (
    AcceptDelegation,
    Command,
    Create,
    Delegate,
    Delete,
    MoveKeyArea,
    RejectDelegation,
    Reorder,
    RevokeDelegation,
    Update,
)
from .core import ordering
from .core.entities import EntityType
from .core.errors import CapacityError, ConflictError, EngineError, TransientError
from .events import EventBus
from .guards import Limits, Plan, is_temp_id, new_temp_id, plan as plan_command
from .ports import Services
from .store import EntityKey, EntityStore, Snapshot

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

# Serializes key-area creation, deletion and reordering against each other.
KEY_AREA_COLLECTION: EntityKey = (EntityType.KEY_AREA, "*")


def merge(record: Any, server_fields: dict | None) -> Any:
    """Server wins on every field it returns."""
    if not server_fields:
        return record
    names = {f.name for f in dataclass_fields(record)}
    return replace(record, **{k: v for k, v in server_fields.items() if k in names})


class MutationCoordinator:
    """
    The only writer of the entity store.

    Commands on the same entity are queued behind each other; commands on
    different entities may be in flight together.
    """

    def __init__(
        self,
        store: EntityStore,
        services: Services,
        bus: EventBus | None = None,
        current_user_id: str | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
        limits: Limits | None = None,
        clock: Callable[[], date] = date.today,
    ):
        self.store = store
        self.services = services
        self.bus = bus or EventBus()
        self.current_user_id = current_user_id
        self.timeout = timeout
        self.limits = limits or Limits()
        self.clock = clock
        self._locks: dict[EntityKey, asyncio.Lock] = {}
        self._in_flight: set[EntityKey] = set()
        # temp id -> id the server assigned, for commands queued behind a create
        self._server_ids: dict[EntityKey, str] = {}

    def is_in_flight(self, entity_type: EntityType, entity_id: str) -> bool:
        return (entity_type, entity_id) in self._in_flight

    async def apply(self, command: Command) -> Any:
        """
        Apply a command optimistically and settle it against the server.

        Returns the reconciled record (a list of key areas for Reorder and
        MoveKeyArea, None for Delete). Raises an EngineError subclass on
        failure, after the store has been put back into a correct state.
        """
        if isinstance(command, Create) and not command.fields.get("id"):
            command = replace(command, fields={**command.fields, "id": new_temp_id()})

        async with self._hold(self._lock_keys(command)):
            settled = self._follow_server_ids(command)
            if settled is command:
                return await self._run(command)
        # Queued behind a create that has since been given its server id
        logger.debug(f"Retargeting {type(command).__name__} at server ids")
        return await self.apply(settled)

    # ============== Locking ==============

    def _lock_keys(self, command: Command) -> list[EntityKey]:
        match command:
            case Create(entity_type=EntityType.KEY_AREA):
                return [KEY_AREA_COLLECTION, (EntityType.KEY_AREA, command.fields["id"])]
            case Create():
                return [(command.entity_type, command.fields["id"])]
            case Reorder():
                return [KEY_AREA_COLLECTION] + [(EntityType.KEY_AREA, i) for i in command.positions]
            # Both may shift the position of any non-default area
            case MoveKeyArea():
                named = [command.dragged_id, command.target_id]
                return [KEY_AREA_COLLECTION] + self._key_area_keys(named)
            case Delete(entity_type=EntityType.KEY_AREA):
                return [KEY_AREA_COLLECTION] + self._key_area_keys([command.entity_id])
        return [(command.entity_type, command.entity_id)]

    def _key_area_keys(self, named: list[str]) -> list[EntityKey]:
        ids = set(named) | {a.id for a in self.store.all(EntityType.KEY_AREA) if not a.is_default}
        return [(EntityType.KEY_AREA, i) for i in ids]

    def _server_id(self, entity_type: EntityType, entity_id: str) -> str:
        return self._server_ids.get((entity_type, entity_id), entity_id)

    def _follow_server_ids(self, command: Command) -> Command:
        """Same command aimed at server ids, or the command itself if none changed."""
        area = EntityType.KEY_AREA
        match command:
            case Create():
                return command
            case Reorder():
                positions = {self._server_id(area, i): p for i, p in command.positions.items()}
                changed = positions.keys() != command.positions.keys()
                return replace(command, positions=positions) if changed else command
            case MoveKeyArea():
                dragged = self._server_id(area, command.dragged_id)
                target = self._server_id(area, command.target_id)
                if (dragged, target) == (command.dragged_id, command.target_id):
                    return command
                return replace(command, dragged_id=dragged, target_id=target)
        server_id = self._server_id(command.entity_type, command.entity_id)
        return command if server_id == command.entity_id else replace(command, entity_id=server_id)

    @contextlib.asynccontextmanager
    async def _hold(self, keys: list[EntityKey]) -> AsyncIterator[None]:
        # A fixed acquisition order keeps multi-entity commands deadlock free
        ordered = sorted(set(keys), key=lambda k: (k[0].value, k[1]))
        async with contextlib.AsyncExitStack() as stack:
            for key in ordered:
                lock = self._locks.setdefault(key, asyncio.Lock())
                await stack.enter_async_context(lock)
            yield

    # ============== Apply ==============

    async def _run(self, command: Command) -> Any:
        try:
            plan = plan_command(
                self.store,
                command,
                current_user_id=self.current_user_id,
                today=self.clock(),
                limits=self.limits,
            )
        except CapacityError as e:
            self.bus.capacity_exceeded(e.resource)
            raise

        if plan.noop:
            logger.debug(f"No-op {type(command).__name__} on {plan.primary}")
            return self._result(command, plan.record)

        snapshot = self.store.snapshot()
        affected = plan.affected
        self._write(plan)
        self._in_flight.update(affected)
        logger.debug(f"Optimistic {type(command).__name__} on {plan.primary}")

        try:
            response = await self._call(self._remote(command, plan))
        except asyncio.CancelledError:
            logger.warning(f"{type(command).__name__} on {plan.primary} cancelled, rolling back")
            self._rollback(snapshot, affected)
            raise
        except ConflictError:
            await self._resolve_conflict(plan, snapshot)
            raise
        except EngineError as e:
            logger.warning(f"{type(command).__name__} on {plan.primary} failed ({e}), rolling back")
            self._rollback(snapshot, affected)
            raise
        except asyncio.TimeoutError as e:
            logger.warning(f"{type(command).__name__} on {plan.primary} timed out, rolling back")
            self._rollback(snapshot, affected)
            raise TransientError(f"Remote call timed out after {self.timeout}s") from e
        except Exception as e:
            logger.warning(f"{type(command).__name__} on {plan.primary} failed ({e}), rolling back")
            self._rollback(snapshot, affected)
            raise TransientError(str(e) or type(e).__name__) from e
        finally:
            self._in_flight.difference_update(affected)

        record = self._reconcile(command, plan, response)
        if plan.outcome:
            self.bus.delegation_settled(plan.primary[0], plan.primary[1], plan.outcome)
        return record

    async def _call(self, awaitable) -> Any:
        if self.timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=self.timeout)

    def _write(self, plan: Plan) -> None:
        for entity_type, entity_id, record in plan.writes:
            if record is None:
                self.store.remove(entity_type, entity_id)
            else:
                self.store.upsert(entity_type, record)
            self.bus.changed(entity_type, entity_id)

    def _rollback(self, snapshot: Snapshot, affected: list[EntityKey]) -> None:
        self.store.restore(snapshot, affected)
        for entity_type, entity_id in affected:
            self.bus.changed(entity_type, entity_id)

    def _result(self, command: Command, record: Any) -> Any:
        if isinstance(command, (Reorder, MoveKeyArea)):
            return ordering.display_order(self.store.all(EntityType.KEY_AREA))
        return record

    # ============== Remote ==============

    def _service(self, entity_type: EntityType) -> Any:
        return {
            EntityType.GOAL: self.services.goals,
            EntityType.MILESTONE: self.services.milestones,
            EntityType.KEY_AREA: self.services.key_areas,
            EntityType.TASK: self.services.tasks,
            EntityType.ACTIVITY: self.services.activities,
        }[entity_type]

    async def _remote(self, command: Command, plan: Plan) -> Any:
        delegations = self.services.delegations
        match command:
            case Create():
                return await self._service(command.entity_type).create(plan.changes)
            case Update():
                return await self._service(command.entity_type).update(command.entity_id, plan.changes)
            case Delete():
                await self._service(command.entity_type).remove(command.entity_id)
                if command.entity_type is EntityType.KEY_AREA and plan.changes:
                    await self.services.key_areas.reorder(dict(plan.changes))
                return None
            case Delegate():
                return await delegations.delegate(command.entity_type, command.entity_id, command.to_user_id)
            case AcceptDelegation():
                return await delegations.accept(command.entity_type, command.entity_id)
            case RejectDelegation():
                return await delegations.reject(command.entity_type, command.entity_id, command.reason)
            case RevokeDelegation():
                return await delegations.revoke(command.entity_type, command.entity_id)
            case Reorder() | MoveKeyArea():
                return await self.services.key_areas.reorder(dict(plan.changes))
        raise TypeError(f"Unsupported command: {command!r}")

    async def fetch(self, entity_type: EntityType, entity_id: str, record: Any = None) -> dict | None:
        """Fetch the server's current fields for one entity."""
        match entity_type:
            case EntityType.MILESTONE:
                goal_id = record.goal_id if record is not None else None
                if goal_id is None:
                    return None
                items = await self.services.milestones.list_by_goal(goal_id)
            case EntityType.KEY_AREA:
                items = await self.services.key_areas.list()
            case _:
                return await self._service(entity_type).get(entity_id)
        return next((item for item in items if item.get("id") == entity_id), None)

    async def _resolve_conflict(self, plan: Plan, snapshot: Snapshot) -> None:
        """Refetch the diverged entity and take the server's copy."""
        entity_type, entity_id = plan.primary
        affected = plan.affected
        if is_temp_id(entity_id):
            self._rollback(snapshot, affected)
            return

        logger.warning(f"Conflict on {entity_type.value} {entity_id}, refetching")
        base = snapshot[entity_type].get(entity_id) or plan.record
        try:
            server_fields = await self._call(self.fetch(entity_type, entity_id, base))
        except (asyncio.CancelledError, Exception) as e:
            logger.warning(f"Refetch of {entity_type.value} {entity_id} failed ({e!r}), rolling back")
            self._rollback(snapshot, affected)
            if isinstance(e, asyncio.CancelledError):
                raise
            return

        self._rollback(snapshot, [key for key in affected if key != plan.primary])
        if server_fields is None:
            self.store.remove(entity_type, entity_id)
        elif base is not None:
            self.store.upsert(entity_type, merge(base, server_fields))
        else:
            self.store.upsert(entity_type, normalize.build(entity_type, server_fields))
        self.bus.changed(entity_type, entity_id)

    # ============== Reconcile ==============

    def _reconcile(self, command: Command, plan: Plan, response: Any) -> Any:
        entity_type, entity_id = plan.primary

        match command:
            case Delete():
                for key in plan.affected:
                    self.bus.changed(*key)
                return None
            case Reorder() | MoveKeyArea():
                for item in response or []:
                    current = self.store.get(EntityType.KEY_AREA, item.get("id"))
                    if current is not None:
                        self.store.upsert(EntityType.KEY_AREA, merge(current, item))
                for key in plan.affected:
                    self.bus.changed(*key)
                return self._result(command, None)
            case Create():
                record = merge(plan.record, response)
                if record.id != entity_id:
                    self._server_ids[(entity_type, entity_id)] = record.id
                    self.store.remove(entity_type, entity_id)
                    self.bus.changed(entity_type, entity_id)
                self.store.upsert(entity_type, record)
                self.bus.changed(entity_type, record.id)
                logger.debug(f"Created {entity_type.value} {record.id}")
                return record

        current = self.store.get(entity_type, entity_id) or plan.record
        record = merge(current, response)
        self.store.upsert(entity_type, record)
        self.bus.changed(entity_type, entity_id)
        logger.debug(f"Settled {type(command).__name__} on {entity_type.value} {entity_id}")
        return record

    # ============== Ingest ==============

    def ingest(self, entity_type: EntityType, items: list[dict]) -> list[Any]:
        """
        Merge records fetched from the server into the store.

        Entities with a command in flight are skipped so the server copy
        cannot clobber an unsettled optimistic write.
        """
        records = []
        for item in items:
            entity_id = item.get("id")
            if not entity_id or (entity_type, entity_id) in self._in_flight:
                continue
            existing = self.store.get(entity_type, entity_id)
            try:
                item = normalize.canonicalize(entity_type, item)
                record = merge(existing, item) if existing else normalize.build(entity_type, item)
            except EngineError as e:
                logger.warning(f"Skipping malformed {entity_type.value} {entity_id}: {e}")
                continue
            self.store.upsert(entity_type, record)
            self.bus.changed(entity_type, entity_id)
            records.append(record)
        return records
