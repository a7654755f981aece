"""Eisenhower classification - pure functions, no I/O."""

from datetime import date, datetime
from enum import Enum

from .entities import Activity, Priority, Task

URGENT_DAYS = 3


class Quadrant(Enum):
    """
    Eisenhower quadrant.

    DoFirst: Urgent + Important
    Schedule: Not Urgent + Important
    Delegate: Urgent + Not Important
    Eliminate: Not Urgent + Not Important
    """

    DO_FIRST = "DoFirst"
    SCHEDULE = "Schedule"
    DELEGATE = "Delegate"
    ELIMINATE = "Eliminate"


def _as_date(now: date | datetime | None) -> date:
    if now is None:
        return date.today()
    if isinstance(now, datetime):
        return now.date()
    return now


def days_until_deadline(item: Task | Activity, now: date | datetime | None = None) -> int | None:
    """Days until the deadline (negative if overdue)."""
    if item.deadline is None:
        return None
    return (item.deadline - _as_date(now)).days


def is_urgent(
    item: Task | Activity,
    now: date | datetime | None = None,
    urgent_days: int = URGENT_DAYS,
) -> bool:
    """Overdue or due within N days. Finished items are never urgent."""
    if item.is_terminal:
        return False
    days = days_until_deadline(item, now)
    if days is None:
        return False
    return days <= urgent_days


def is_important(item: Task | Activity) -> bool:
    """High priority, or linked to a goal."""
    return item.priority is Priority.HIGH or item.goal_id is not None


def quadrant(
    item: Task | Activity,
    now: date | datetime | None = None,
    urgent_days: int = URGENT_DAYS,
) -> Quadrant:
    important = is_important(item)
    urgent = is_urgent(item, now, urgent_days)

    if urgent and important:
        return Quadrant.DO_FIRST
    elif important:
        return Quadrant.SCHEDULE
    elif urgent:
        return Quadrant.DELEGATE
    else:
        return Quadrant.ELIMINATE


def filter_by_quadrant(
    items: list[Task | Activity],
    target: Quadrant,
    now: date | datetime | None = None,
    urgent_days: int = URGENT_DAYS,
) -> list[Task | Activity]:
    return [i for i in items if quadrant(i, now, urgent_days) is target]


def sort_by_priority(items: list[Task | Activity]) -> list[Task | Activity]:
    """
    Sort by priority (high first) then deadline (soonest first).

    Items without a deadline go last within their priority.
    """

    def sort_key(item: Task | Activity) -> tuple[int, date]:
        return (-item.priority.rank, item.deadline or date.max)

    return sorted(items, key=sort_key)
