"""Adapters - I/O implementations of ports."""

from .rest_api import (
    RestApiClient,
    RestActivityService,
    RestDelegationService,
    RestGoalService,
    RestKeyAreaService,
    RestMilestoneService,
    RestTaskService,
    rest_services,
)

__all__ = [
    "RestApiClient",
    "RestActivityService",
    "RestDelegationService",
    "RestGoalService",
    "RestKeyAreaService",
    "RestMilestoneService",
    "RestTaskService",
    "rest_services",
]
