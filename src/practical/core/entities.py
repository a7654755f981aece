"""Canonical entity records - the only schema internal code sees."""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum


class EntityType(Enum):
    GOAL = "goal"
    MILESTONE = "milestone"
    KEY_AREA = "key_area"
    TASK = "task"
    ACTIVITY = "activity"


class GoalStatus(Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ARCHIVED = "archived"


class Visibility(Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class TaskStatus(Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.CANCELLED)


class Priority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Numeric level used by forms and sorting (1=low, 3=high)."""
        return {Priority.LOW: 1, Priority.MEDIUM: 2, Priority.HIGH: 3}[self]


class DelegationStatus(Enum):
    NONE = "none"
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


DEFAULT_KEY_AREA_TITLE = "Ideas"
DEFAULT_KEY_AREA_COLOR = "#3B82F6"

MIN_MILESTONE_WEIGHT = 0.01
MAX_MILESTONE_WEIGHT = 10.0


@dataclass
class Delegation:
    """Handoff state of a task or activity."""

    status: DelegationStatus = DelegationStatus.NONE
    delegated_to_user_id: str | None = None
    delegated_by_user_id: str | None = None


@dataclass
class Goal:
    id: str
    title: str
    status: GoalStatus = GoalStatus.ACTIVE
    visibility: Visibility = Visibility.PUBLIC
    description: str = ""
    start_date: date | None = None
    due_date: date | None = None


@dataclass
class Milestone:
    """Weighted sub-goal. A done milestone always scores 1.0."""

    id: str
    goal_id: str
    title: str
    weight: float = 1.0
    done: bool = False
    score: float = 0.0
    due_date: date | None = None
    sort_order: int = 0

    @property
    def effective_score(self) -> float:
        return 1.0 if self.done else self.score


@dataclass
class KeyArea:
    id: str
    title: str
    color: str = DEFAULT_KEY_AREA_COLOR
    description: str = ""
    position: int = 0
    is_default: bool = False
    list_names: dict[int, str] = field(default_factory=dict)


@dataclass
class Task:
    id: str
    key_area_id: str
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    goal_id: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    deadline: date | None = None
    assignee: str | None = None
    list_index: int = 1
    delegation: Delegation = field(default_factory=Delegation)
    completion_date: date | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


@dataclass
class Activity:
    id: str
    text: str
    task_id: str | None = None
    completed: bool = False
    priority: Priority = Priority.MEDIUM
    start_date: date | None = None
    end_date: date | None = None
    deadline: date | None = None
    key_area_id: str | None = None
    list_index: int | None = None
    assignee: str | None = None
    goal_id: str | None = None
    delegation: Delegation = field(default_factory=Delegation)

    @property
    def is_terminal(self) -> bool:
        return self.completed

    def inherit(self, task: Task | None) -> "Activity":
        """Fill unset grouping fields from the parent task."""
        if task is None:
            return self
        return replace(
            self,
            key_area_id=self.key_area_id if self.key_area_id is not None else task.key_area_id,
            list_index=self.list_index if self.list_index is not None else task.list_index,
            assignee=self.assignee if self.assignee is not None else task.assignee,
            goal_id=self.goal_id if self.goal_id is not None else task.goal_id,
        )


ENTITY_CLASSES: dict[EntityType, type] = {
    EntityType.GOAL: Goal,
    EntityType.MILESTONE: Milestone,
    EntityType.KEY_AREA: KeyArea,
    EntityType.TASK: Task,
    EntityType.ACTIVITY: Activity,
}

DELEGABLE_TYPES = (EntityType.TASK, EntityType.ACTIVITY)
