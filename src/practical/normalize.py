"""Boundary layer between the canonical schema and the outside world.

Wire payloads and UI form data use camelCase, synonyms and loose types.
Everything passes through ``canonicalize`` on the way in and ``to_wire`` on
the way out, so nothing inside the engine branches on alternative names.
"""

from dataclasses import fields
from datetime import date, datetime
from enum import Enum
from typing import Any

from .core.entities import (
    ENTITY_CLASSES,
    Delegation,
    DelegationStatus,
    EntityType,
    GoalStatus,
    Priority,
    TaskStatus,
    Visibility,
)
from .core.errors import ValidationError

PRIORITY_ALIASES = {
    "1": Priority.LOW,
    "2": Priority.MEDIUM,
    "3": Priority.HIGH,
    "low": Priority.LOW,
    "medium": Priority.MEDIUM,
    "high": Priority.HIGH,
}

TASK_STATUS_ALIASES = {
    "todo": TaskStatus.TODO,
    "open": TaskStatus.TODO,
    "blocked": TaskStatus.TODO,
    "in_progress": TaskStatus.IN_PROGRESS,
    "in progress": TaskStatus.IN_PROGRESS,
    "in-progress": TaskStatus.IN_PROGRESS,
    "completed": TaskStatus.COMPLETED,
    "done": TaskStatus.COMPLETED,
    "closed": TaskStatus.COMPLETED,
    "cancelled": TaskStatus.CANCELLED,
    "canceled": TaskStatus.CANCELLED,
}

# Internal name -> wire name. Names missing here are sent unchanged.
_COMMON_WIRE_NAMES = {
    "goal_id": "goalId",
    "key_area_id": "keyAreaId",
    "task_id": "taskId",
    "start_date": "startDate",
    "end_date": "endDate",
    "due_date": "dueDate",
    "list_index": "listIndex",
    "completion_date": "completionDate",
    "sort_order": "sortOrder",
}

WIRE_NAMES: dict[EntityType, dict[str, str]] = {
    EntityType.GOAL: _COMMON_WIRE_NAMES,
    EntityType.MILESTONE: _COMMON_WIRE_NAMES,
    EntityType.TASK: _COMMON_WIRE_NAMES,
    EntityType.ACTIVITY: _COMMON_WIRE_NAMES,
    EntityType.KEY_AREA: {
        "title": "name",
        "position": "sortOrder",
        "is_default": "isSystem",
        "list_names": "listNames",
    },
}

# Extra spellings accepted on entry, on top of the wire and internal names.
_EXTRA_ALIASES: dict[EntityType, dict[str, str]] = {
    EntityType.TASK: {"dueDate": "deadline", "due_date": "deadline"},
    EntityType.ACTIVITY: {"dueDate": "deadline", "due_date": "deadline", "title": "text"},
    EntityType.KEY_AREA: {"isDefault": "is_default", "listNames": "list_names"},
    EntityType.GOAL: {},
    EntityType.MILESTONE: {},
}

# Derived values that are never accepted as input.
_IGNORED = {"progressPercent", "progressPercentage", "progress_percentage", "taskCount", "createdAt", "updatedAt"}

_DELEGATION_FLAT = {
    "delegationStatus": "status",
    "delegatedToUserId": "delegated_to_user_id",
    "delegatedByUserId": "delegated_by_user_id",
}

_DATE_FIELDS = {"start_date", "end_date", "deadline", "due_date", "completion_date"}
_INT_FIELDS = {"list_index", "position", "sort_order"}
_FLOAT_FIELDS = {"weight", "score"}
_BOOL_FIELDS = {"done", "completed", "is_default"}
_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off", ""}


def _aliases(entity_type: EntityType) -> dict[str, str]:
    names = {f.name for f in fields(ENTITY_CLASSES[entity_type])}
    aliases = {name: name for name in names}
    aliases.update({wire: internal for internal, wire in WIRE_NAMES[entity_type].items() if internal in names})
    aliases.update(_EXTRA_ALIASES[entity_type])
    return aliases


def parse_date(value: Any) -> date | None:
    """Accept YYYY-MM-DD or a full ISO timestamp; the time part is dropped."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip().split("T")[0])
    except ValueError as e:
        raise ValidationError(f"Invalid date: {value!r}") from e


def parse_bool(value: Any) -> bool:
    """Form data sends checkboxes as strings; "false" must stay false."""
    if isinstance(value, str):
        cleaned = value.strip().lower()
        if cleaned in _TRUE_STRINGS:
            return True
        if cleaned in _FALSE_STRINGS:
            return False
        raise ValidationError(f"Invalid boolean: {value!r}")
    return bool(value)


def format_date(value: date | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def parse_priority(value: Any) -> Priority:
    """Map 1|2|3 or low|medium|high to Priority. Missing means medium."""
    if isinstance(value, Priority):
        return value
    if value is None or value == "":
        return Priority.MEDIUM
    key = str(value).strip().lower()
    if key not in PRIORITY_ALIASES:
        raise ValidationError(f"Invalid priority: {value!r}")
    return PRIORITY_ALIASES[key]


def parse_task_status(value: Any) -> TaskStatus:
    if isinstance(value, TaskStatus):
        return value
    if value is None or value == "":
        return TaskStatus.TODO
    key = str(value).strip().lower()
    if key not in TASK_STATUS_ALIASES:
        raise ValidationError(f"Invalid task status: {value!r}")
    return TASK_STATUS_ALIASES[key]


def _parse_enum(enum_cls: type[Enum], value: Any) -> Enum:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as e:
        raise ValidationError(f"Invalid {enum_cls.__name__}: {value!r}") from e


def parse_delegation(value: Any) -> Delegation:
    if isinstance(value, Delegation):
        return value
    if not value:
        return Delegation()
    if not isinstance(value, dict):
        raise ValidationError(f"Invalid delegation: {value!r}")
    status = value.get("status") or value.get("delegationStatus") or "none"
    return Delegation(
        status=_parse_enum(DelegationStatus, status),
        delegated_to_user_id=value.get("delegatedToUserId", value.get("delegated_to_user_id")),
        delegated_by_user_id=value.get("delegatedByUserId", value.get("delegated_by_user_id")),
    )


def _coerce(entity_type: EntityType, name: str, value: Any) -> Any:
    if name in _DATE_FIELDS:
        return parse_date(value)
    if name == "priority":
        return parse_priority(value)
    if name == "status":
        if entity_type is EntityType.GOAL:
            return _parse_enum(GoalStatus, value or "active")
        return parse_task_status(value)
    if name == "visibility":
        return _parse_enum(Visibility, value or "public")
    if name == "delegation":
        return parse_delegation(value)
    if name == "list_names":
        try:
            return {int(k): str(v) for k, v in (value or {}).items()}
        except (TypeError, ValueError, AttributeError) as e:
            raise ValidationError(f"Invalid list names: {value!r}") from e
    if value is None:
        return None
    try:
        if name in _INT_FIELDS:
            return int(value)
        if name in _FLOAT_FIELDS:
            return float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid {name}: {value!r}") from e
    if name in _BOOL_FIELDS:
        return parse_bool(value)
    if name == "id" or name.endswith("_id") or name == "assignee":
        return str(value)
    return value


def canonicalize(entity_type: EntityType, data: dict, strict: bool = False) -> dict:
    """
    Map any accepted spelling of an entity's fields onto the internal schema.

    Only fields present in ``data`` appear in the result. With ``strict``,
    unknown keys raise ValidationError instead of being dropped.
    """
    aliases = _aliases(entity_type)
    result: dict[str, Any] = {}
    flat_delegation: dict[str, Any] = {}

    for key, value in data.items():
        if key in _IGNORED:
            continue
        if key in _DELEGATION_FLAT and entity_type in (EntityType.TASK, EntityType.ACTIVITY):
            flat_delegation[key] = value
            continue
        name = aliases.get(key)
        if name is None:
            if strict:
                raise ValidationError(f"Unknown {entity_type.value} field: {key}")
            continue
        result[name] = _coerce(entity_type, name, value)

    if flat_delegation and "delegation" not in result:
        result["delegation"] = parse_delegation(flat_delegation)
    return result


def _wire_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return format_date(value)
    if isinstance(value, Delegation):
        return {
            "status": value.status.value,
            "delegatedToUserId": value.delegated_to_user_id,
            "delegatedByUserId": value.delegated_by_user_id,
        }
    if isinstance(value, dict):
        return {str(k): _wire_value(v) for k, v in value.items()}
    return value


def to_wire(entity_type: EntityType, data: dict) -> dict:
    """Serialize canonical fields for the remote service."""
    names = WIRE_NAMES[entity_type]
    return {names.get(key, key): _wire_value(value) for key, value in data.items()}


def record_fields(record: Any) -> dict:
    """Field dict of an entity record, values left as-is."""
    return {f.name: getattr(record, f.name) for f in fields(record)}


def build(entity_type: EntityType, data: dict) -> Any:
    """Construct an entity record from canonical fields."""
    try:
        return ENTITY_CLASSES[entity_type](**data)
    except TypeError as e:
        raise ValidationError(f"Incomplete {entity_type.value}: {e}") from e
