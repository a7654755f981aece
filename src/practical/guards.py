"""Pre-mutation checks.

``plan`` validates a command against the current store and works out the
optimistic writes it implies. It never mutates anything, so every error it
raises leaves the store untouched.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any

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
from .core import delegation, ordering
from .core.entities import (
    DELEGABLE_TYPES,
    MAX_MILESTONE_WEIGHT,
    MIN_MILESTONE_WEIGHT,
    EntityType,
    KeyArea,
    Milestone,
    Task,
    TaskStatus,
)
from .core.errors import CapacityError, GuardViolation, ValidationError
from .store import EntityKey, EntityStore

TEMP_ID_PREFIX = "tmp-"


@dataclass
class Limits:
    max_key_areas: int = ordering.MAX_KEY_AREAS
    max_lists: int = ordering.MAX_LISTS


@dataclass
class Plan:
    """Optimistic outcome of a command, computed before any write."""

    primary: EntityKey
    record: Any | None = None
    changes: dict = field(default_factory=dict)
    # (entity_type, id, new record); a None record means removal
    writes: list[tuple[EntityType, str, Any | None]] = field(default_factory=list)
    noop: bool = False
    outcome: str | None = None

    @property
    def affected(self) -> list[EntityKey]:
        return [(t, i) for t, i, _ in self.writes]


def new_temp_id() -> str:
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"


def is_temp_id(entity_id: str) -> bool:
    return entity_id.startswith(TEMP_ID_PREFIX)


def plan(
    store: EntityStore,
    command: Command,
    current_user_id: str | None = None,
    today: date | None = None,
    limits: Limits | None = None,
) -> Plan:
    today = today or date.today()
    limits = limits or Limits()

    match command:
        case Create():
            return _plan_create(store, command, today, limits)
        case Update():
            return _plan_update(store, command, today, limits)
        case Delete():
            return _plan_delete(store, command)
        case Delegate() | AcceptDelegation() | RejectDelegation() | RevokeDelegation():
            return _plan_delegation(store, command, current_user_id)
        case Reorder():
            return _plan_reorder(store, command)
        case MoveKeyArea():
            return _plan_move(store, command)
    raise ValidationError(f"Unsupported command: {command!r}")


def require(store: EntityStore, entity_type: EntityType, entity_id: str | None) -> Any:
    record = store.get(entity_type, entity_id) if entity_id else None
    if record is None:
        raise ValidationError(f"Unknown {entity_type.value}: {entity_id}")
    return record


# ============== Record validation ==============


def _require_text(value: str | None, label: str) -> None:
    if not (value or "").strip():
        raise ValidationError(f"{label} cannot be empty")


def _check_milestone(store: EntityStore, milestone: Milestone) -> Milestone:
    _require_text(milestone.title, "Milestone title")
    require(store, EntityType.GOAL, milestone.goal_id)
    if not MIN_MILESTONE_WEIGHT <= milestone.weight <= MAX_MILESTONE_WEIGHT:
        raise ValidationError(
            f"Milestone weight must be between {MIN_MILESTONE_WEIGHT} and {MAX_MILESTONE_WEIGHT}"
        )
    if not 0.0 <= milestone.score <= 1.0:
        raise ValidationError("Milestone score must be between 0 and 1")
    if milestone.done and milestone.score != 1.0:
        milestone = replace(milestone, score=1.0)
    return milestone


def _check_task(store: EntityStore, task: Task) -> None:
    _require_text(task.title, "Task title")
    require(store, EntityType.KEY_AREA, task.key_area_id)
    if task.list_index < 1:
        raise ValidationError("List index must be a positive integer")


def _check_record(store: EntityStore, entity_type: EntityType, record: Any) -> Any:
    match entity_type:
        case EntityType.GOAL:
            _require_text(record.title, "Goal title")
        case EntityType.MILESTONE:
            return _check_milestone(store, record)
        case EntityType.TASK:
            _check_task(store, record)
        case EntityType.ACTIVITY:
            _require_text(record.text, "Activity text")
            if record.task_id is not None:
                require(store, EntityType.TASK, record.task_id)
            if record.list_index is not None and record.list_index < 1:
                raise ValidationError("List index must be a positive integer")
        case EntityType.KEY_AREA:
            _require_text(record.title, "Key area title")
    return record


def _completion_date(old_status: TaskStatus | None, task: Task, today: date) -> date | None:
    """Stamp on the transition into completed, clear on the way out."""
    if task.status is not TaskStatus.COMPLETED:
        return None
    if old_status is TaskStatus.COMPLETED:
        return task.completion_date or today
    return today


# ============== Create / Update / Delete ==============


def _plan_create(store: EntityStore, command: Create, today: date, limits: Limits) -> Plan:
    entity_type = command.entity_type
    data = normalize.canonicalize(entity_type, command.fields, strict=True)
    entity_id = data.pop("id", None) or new_temp_id()

    match entity_type:
        case EntityType.KEY_AREA:
            if ordering.is_default_title(data.get("title")) or data.get("is_default"):
                raise GuardViolation("The default key area already exists")
            data["position"] = ordering.check_key_area_capacity(
                store.all(EntityType.KEY_AREA), limits.max_key_areas
            )
        case EntityType.MILESTONE if "sort_order" not in data and data.get("goal_id"):
            siblings = store.milestones_for_goal(data["goal_id"])
            data["sort_order"] = max((m.sort_order for m in siblings), default=0) + 1

    record = _check_record(store, entity_type, normalize.build(entity_type, {"id": entity_id, **data}))

    if entity_type is EntityType.KEY_AREA:
        _check_list_names(store, record, limits)
    if entity_type is EntityType.TASK:
        record = replace(record, completion_date=_completion_date(None, record, today))

    changes = {k: v for k, v in normalize.record_fields(record).items() if k != "id" or not is_temp_id(v)}
    return Plan(
        primary=(entity_type, entity_id),
        record=record,
        changes=changes,
        writes=[(entity_type, entity_id, record)],
    )


def _check_key_area_update(old: KeyArea, new: KeyArea) -> None:
    if old.is_default:
        if new.title != old.title or new.position != old.position or not new.is_default:
            raise GuardViolation("The default key area cannot be renamed or moved")
        if new.list_names:
            raise GuardViolation("The default key area has no user lists")
        return
    if new.is_default:
        raise GuardViolation("Only one key area can be the default")
    if ordering.is_default_title(new.title):
        raise GuardViolation(f"'{new.title}' is reserved for the default key area")
    if new.position != old.position:
        raise GuardViolation("Key area positions change only through reordering")


def _check_list_names(store: EntityStore, area: KeyArea, limits: Limits, old: KeyArea | None = None) -> None:
    tasks = store.tasks_in_key_area(area.id)
    if old is not None:
        for index in set(old.list_names) - set(area.list_names):
            ordering.check_delete_list(old, index, tasks)
    seen: dict[str, int] = {}
    for index, name in area.list_names.items():
        if index < 1:
            raise ValidationError("List index must be a positive integer")
        cleaned = name.strip().lower()
        if not cleaned:
            raise ValidationError("List name cannot be empty")
        if cleaned in seen:
            raise GuardViolation(f"A list named '{name.strip()}' already exists in {area.title}")
        seen[cleaned] = index
    if len(ordering.list_indices(area, tasks)) > limits.max_lists:
        raise CapacityError("list", f"At most {limits.max_lists} lists per key area")


def _plan_update(store: EntityStore, command: Update, today: date, limits: Limits) -> Plan:
    entity_type = command.entity_type
    existing = require(store, entity_type, command.entity_id)
    changes = normalize.canonicalize(entity_type, command.changes, strict=True)
    changes.pop("id", None)
    primary = (entity_type, existing.id)

    if not changes:
        return Plan(primary=primary, record=existing, noop=True)

    updated = _check_record(store, entity_type, replace(existing, **changes))

    match entity_type:
        case EntityType.KEY_AREA:
            _check_key_area_update(existing, updated)
            if updated.list_names != existing.list_names:
                _check_list_names(store, updated, limits, old=existing)
        case EntityType.TASK:
            updated = replace(updated, completion_date=_completion_date(existing.status, updated, today))
            if updated.completion_date != existing.completion_date:
                changes["completion_date"] = updated.completion_date
        case EntityType.MILESTONE:
            # Reopening drops the score that completion forced to 1.0
            if existing.done and not updated.done and "score" not in changes:
                updated = replace(updated, score=0.0)
            if updated.score != existing.score:
                changes["score"] = updated.score

    if updated == existing:
        return Plan(primary=primary, record=existing, noop=True)

    return Plan(
        primary=primary,
        record=updated,
        changes=changes,
        writes=[(entity_type, existing.id, updated)],
    )


def _plan_delete(store: EntityStore, command: Delete) -> Plan:
    entity_type = command.entity_type
    existing = require(store, entity_type, command.entity_id)
    writes: list[tuple[EntityType, str, Any | None]] = [(entity_type, existing.id, None)]
    changes: dict = {}

    match entity_type:
        case EntityType.TASK:
            activities = store.activities_for_task(existing.id)
            if activities:
                raise GuardViolation(
                    f"Task '{existing.title}' still has {len(activities)} activit{'y' if len(activities) == 1 else 'ies'}"
                )
        case EntityType.KEY_AREA:
            if existing.is_default:
                raise GuardViolation("The default key area cannot be deleted")
            tasks = store.tasks_in_key_area(existing.id)
            if tasks:
                raise GuardViolation(f"Key area '{existing.title}' still holds {len(tasks)} task(s)")
            # Close the gap in the same command; changes carry the new positions
            remaining = [a for a in store.all(EntityType.KEY_AREA) if a.id != existing.id]
            by_id = {a.id: a for a in remaining}
            changes = ordering.changed_positions(remaining, ordering.compacted_positions(remaining))
            for area_id, position in changes.items():
                writes.append((EntityType.KEY_AREA, area_id, replace(by_id[area_id], position=position)))
        case EntityType.GOAL:
            for milestone in store.milestones_for_goal(existing.id):
                writes.append((EntityType.MILESTONE, milestone.id, None))
            for task in store.tasks_for_goal(existing.id):
                writes.append((EntityType.TASK, task.id, replace(task, goal_id=None)))

    return Plan(primary=(entity_type, existing.id), record=None, changes=changes, writes=writes)


# ============== Delegation ==============

_OUTCOMES = {
    AcceptDelegation: "accepted",
    RejectDelegation: "rejected",
    RevokeDelegation: "revoked",
}


def _plan_delegation(store: EntityStore, command: Command, current_user_id: str | None) -> Plan:
    entity_type = command.entity_type
    if entity_type not in DELEGABLE_TYPES:
        raise ValidationError(f"A {entity_type.value} cannot be delegated")
    if not current_user_id:
        raise ValidationError("Delegation requires a current user")
    existing = require(store, entity_type, command.entity_id)

    match command:
        case Delegate():
            changes = delegation.delegate(existing, command.to_user_id, current_user_id)
        case AcceptDelegation():
            changes = delegation.accept(existing, current_user_id)
        case RejectDelegation():
            changes = delegation.reject(existing, current_user_id)
        case RevokeDelegation():
            changes = delegation.revoke(existing, current_user_id)

    primary = (entity_type, existing.id)
    if not changes:
        return Plan(primary=primary, record=existing, noop=True)

    updated = replace(existing, **changes)
    return Plan(
        primary=primary,
        record=updated,
        changes=changes,
        writes=[(entity_type, existing.id, updated)],
        outcome=_OUTCOMES.get(type(command)),
    )


# ============== Reorder ==============


def _plan_reorder(store: EntityStore, command: Reorder) -> Plan:
    areas = store.all(EntityType.KEY_AREA)
    by_id = {a.id: a for a in areas}
    for area_id in command.positions:
        if is_temp_id(area_id):
            raise ValidationError(f"Key area {area_id} has not been saved yet")
        area = require(store, EntityType.KEY_AREA, area_id)
        if area.is_default:
            raise GuardViolation("The default key area cannot be reordered")

    movable = ordering.reorderable(areas)
    final = {a.id: command.positions.get(a.id, a.position) for a in movable}
    if sorted(final.values()) != list(range(1, len(movable) + 1)):
        raise ValidationError("Key area positions must be a permutation of 1..N")

    writes = [
        (EntityType.KEY_AREA, area_id, replace(by_id[area_id], position=position))
        for area_id, position in ordering.changed_positions(areas, command.positions).items()
    ]
    primary = (EntityType.KEY_AREA, next(iter(command.positions), "*"))
    return Plan(primary=primary, changes=dict(command.positions), writes=writes, noop=not writes)


def _plan_move(store: EntityStore, command: MoveKeyArea) -> Plan:
    """Drag-and-drop, resolved against the store as it is when the command runs."""
    for area_id in (command.dragged_id, command.target_id):
        if is_temp_id(area_id):
            raise ValidationError(f"Key area {area_id} has not been saved yet")
    areas = store.all(EntityType.KEY_AREA)
    positions = ordering.move_key_area(areas, command.dragged_id, command.target_id)
    return _plan_reorder(store, Reorder(ordering.changed_positions(areas, positions)))
