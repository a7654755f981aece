"""Weighted goal progress - pure functions, no I/O."""

import math
from dataclasses import dataclass

from .entities import Goal, GoalStatus, Milestone

ON_TRACK_THRESHOLD = 70
AT_RISK_THRESHOLD = 50


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def goal_progress(goal: Goal, milestones: list[Milestone]) -> int:
    """
    Completion percentage (0-100) weighted by milestone weight.

    A goal without milestones is 0%, or 100% once the goal itself is completed.
    """
    if not milestones:
        return 100 if goal.status is GoalStatus.COMPLETED else 0

    total_weight = sum(m.weight for m in milestones)
    if total_weight <= 0:
        return 0

    weighted = sum(m.weight * m.effective_score for m in milestones)
    percent = _round_half_up(100 * weighted / total_weight)
    return max(0, min(100, percent))


@dataclass
class GoalStatistics:
    total: int = 0
    active: int = 0
    completed: int = 0
    paused: int = 0
    cancelled: int = 0
    on_track: int = 0
    at_risk: int = 0


def goal_statistics(goals: list[Goal], progress: dict[str, int]) -> GoalStatistics:
    """
    Summarize a set of goals.

    On track = active with progress >= 70. At risk = active with progress < 50.
    """
    stats = GoalStatistics(total=len(goals))
    for goal in goals:
        match goal.status:
            case GoalStatus.ACTIVE:
                stats.active += 1
                percent = progress.get(goal.id, 0)
                if percent >= ON_TRACK_THRESHOLD:
                    stats.on_track += 1
                elif percent < AT_RISK_THRESHOLD:
                    stats.at_risk += 1
            case GoalStatus.COMPLETED:
                stats.completed += 1
            case GoalStatus.PAUSED:
                stats.paused += 1
            case GoalStatus.CANCELLED:
                stats.cancelled += 1
    return stats
