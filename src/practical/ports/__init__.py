"""Ports - interfaces/protocols for the remote service collaborators."""

from dataclasses import dataclass

from .task_service import TaskService
from .goal_service import GoalService, MilestoneService
from .key_area_service import KeyAreaService
from .activity_service import ActivityService
from .delegation_service import DelegationService


@dataclass
class Services:
    """The full set of remote collaborators injected into the coordinator."""

    tasks: TaskService
    goals: GoalService
    milestones: MilestoneService
    key_areas: KeyAreaService
    activities: ActivityService
    delegations: DelegationService


__all__ = [
    "TaskService",
    "GoalService",
    "MilestoneService",
    "KeyAreaService",
    "ActivityService",
    "DelegationService",
    "Services",
]
