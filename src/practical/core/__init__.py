"""Functional core - pure business logic with no I/O."""

from .entities import (
    Activity,
    Delegation,
    DelegationStatus,
    EntityType,
    Goal,
    GoalStatus,
    KeyArea,
    Milestone,
    Priority,
    Task,
    TaskStatus,
    Visibility,
)
from .errors import (
    CapacityError,
    ConflictError,
    EngineError,
    GuardViolation,
    TransientError,
    Unauthorized,
    ValidationError,
)
from .classification import Quadrant, quadrant, is_urgent, is_important, sort_by_priority
from .progress import GoalStatistics, goal_progress, goal_statistics

__all__ = [
    # Entities
    "Activity",
    "Delegation",
    "DelegationStatus",
    "EntityType",
    "Goal",
    "GoalStatus",
    "KeyArea",
    "Milestone",
    "Priority",
    "Task",
    "TaskStatus",
    "Visibility",
    # Errors
    "CapacityError",
    "ConflictError",
    "EngineError",
    "GuardViolation",
    "TransientError",
    "Unauthorized",
    "ValidationError",
    # Classification
    "Quadrant",
    "quadrant",
    "is_urgent",
    "is_important",
    "sort_by_priority",
    # Progress
    "GoalStatistics",
    "goal_progress",
    "goal_statistics",
]
