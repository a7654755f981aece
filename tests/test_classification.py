"""Tests for Eisenhower classification."""

from datetime import date, datetime, timedelta

import pytest

from practical.core.classification import (
    Quadrant,
    days_until_deadline,
    filter_by_quadrant,
    is_important,
    is_urgent,
    quadrant,
    sort_by_priority,
)
from practical.core.entities import Activity, Priority, Task, TaskStatus


@pytest.fixture
def today():
    return date(2025, 1, 15)


def make_task(**kwargs) -> Task:
    fields = {"id": "t", "key_area_id": "ka", "title": "Task"}
    fields.update(kwargs)
    return Task(**fields)


class TestUrgency:
    def test_overdue_is_urgent(self, today):
        task = make_task(deadline=today - timedelta(days=1))
        assert is_urgent(task, today) is True

    def test_due_today_is_urgent(self, today):
        assert is_urgent(make_task(deadline=today), today) is True

    def test_window_boundary(self, today):
        assert is_urgent(make_task(deadline=today + timedelta(days=3)), today) is True
        assert is_urgent(make_task(deadline=today + timedelta(days=4)), today) is False

    def test_custom_window(self, today):
        task = make_task(deadline=today + timedelta(days=5))
        assert is_urgent(task, today, urgent_days=7) is True

    def test_no_deadline_is_not_urgent(self, today):
        assert is_urgent(make_task(), today) is False

    @pytest.mark.parametrize("status", [TaskStatus.COMPLETED, TaskStatus.CANCELLED])
    def test_terminal_task_never_urgent(self, today, status):
        task = make_task(status=status, deadline=today - timedelta(days=10))
        assert is_urgent(task, today) is False

    def test_completed_activity_never_urgent(self, today):
        activity = Activity(id="a", text="Call", completed=True, deadline=today)
        assert is_urgent(activity, today) is False

    def test_accepts_datetime(self, today):
        task = make_task(deadline=today)
        assert is_urgent(task, datetime(2025, 1, 15, 23, 59)) is True


class TestImportance:
    def test_high_priority(self):
        assert is_important(make_task(priority=Priority.HIGH)) is True

    def test_goal_linked(self):
        assert is_important(make_task(priority=Priority.LOW, goal_id="g1")) is True

    def test_medium_without_goal(self):
        assert is_important(make_task(priority=Priority.MEDIUM)) is False


class TestQuadrant:
    def test_high_priority_overdue_open_is_do_first(self, today):
        task = make_task(priority=Priority.HIGH, deadline=today - timedelta(days=1), status=TaskStatus.TODO)
        assert quadrant(task, today) is Quadrant.DO_FIRST

    def test_low_priority_far_deadline_is_eliminate(self, today):
        task = make_task(priority=Priority.LOW, deadline=today + timedelta(days=30), goal_id=None)
        assert quadrant(task, today) is Quadrant.ELIMINATE

    def test_important_not_urgent_is_schedule(self, today):
        task = make_task(priority=Priority.LOW, goal_id="g1", deadline=today + timedelta(days=10))
        assert quadrant(task, today) is Quadrant.SCHEDULE

    def test_urgent_not_important_is_delegate(self, today):
        task = make_task(priority=Priority.MEDIUM, deadline=today + timedelta(days=1))
        assert quadrant(task, today) is Quadrant.DELEGATE

    def test_completed_high_priority_is_schedule(self, today):
        task = make_task(priority=Priority.HIGH, status=TaskStatus.COMPLETED, deadline=today)
        assert quadrant(task, today) is Quadrant.SCHEDULE

    def test_deterministic(self, today):
        task = make_task(priority=Priority.HIGH, deadline=today + timedelta(days=2))
        assert quadrant(task, today) is quadrant(task, today)

    def test_labels(self):
        assert [q.value for q in Quadrant] == ["DoFirst", "Schedule", "Delegate", "Eliminate"]


class TestHelpers:
    def test_days_until_deadline(self, today):
        assert days_until_deadline(make_task(deadline=today + timedelta(days=5)), today) == 5
        assert days_until_deadline(make_task(deadline=today - timedelta(days=2)), today) == -2
        assert days_until_deadline(make_task(), today) is None

    def test_filter_by_quadrant(self, today):
        urgent = make_task(id="1", priority=Priority.HIGH, deadline=today)
        later = make_task(id="2", priority=Priority.HIGH)
        assert filter_by_quadrant([urgent, later], Quadrant.DO_FIRST, today) == [urgent]

    def test_sort_by_priority(self, today):
        low = make_task(id="low", priority=Priority.LOW, deadline=today)
        high_late = make_task(id="high-late", priority=Priority.HIGH, deadline=today + timedelta(days=9))
        high_soon = make_task(id="high-soon", priority=Priority.HIGH, deadline=today)
        high_none = make_task(id="high-none", priority=Priority.HIGH)

        ordered = sort_by_priority([low, high_none, high_late, high_soon])

        assert [t.id for t in ordered] == ["high-soon", "high-late", "high-none", "low"]
