"""
Delegation lifecycle - pure functions, no I/O.

    none ──delegate──> pending ──accept──> accepted
                          └─────reject──> rejected

Each transition returns the field changes to apply to the entity. An empty
dict means the call was a no-op (accept/reject on a settled delegation).
"""

from dataclasses import replace

from .entities import Activity, Delegation, DelegationStatus, Task
from .errors import GuardViolation, ValidationError


def delegate(entity: Task | Activity, to_user_id: str | None, acting_user_id: str) -> dict:
    """Hand the entity to another user. Ownership stays put until accepted."""
    current = entity.delegation
    if not to_user_id:
        raise ValidationError("A delegate is required")
    if to_user_id == acting_user_id:
        raise ValidationError("Cannot delegate to yourself")

    match current.status:
        case DelegationStatus.PENDING:
            raise GuardViolation("Delegation is already pending")
        case DelegationStatus.ACCEPTED if acting_user_id != current.delegated_to_user_id:
            raise GuardViolation("Only the current owner can hand this on")

    return {
        "delegation": Delegation(
            status=DelegationStatus.PENDING,
            delegated_to_user_id=to_user_id,
            delegated_by_user_id=acting_user_id,
        )
    }


def _check_pending_recipient(current: Delegation, acting_user_id: str) -> None:
    if current.status is DelegationStatus.NONE:
        raise GuardViolation("Nothing has been delegated")
    if acting_user_id != current.delegated_to_user_id:
        raise GuardViolation("Only the delegate can respond to a delegation")


def accept(entity: Task | Activity, acting_user_id: str) -> dict:
    """Delegate takes ownership; delegated_by is kept for history."""
    current = entity.delegation
    if current.status in (DelegationStatus.ACCEPTED, DelegationStatus.REJECTED):
        return {}
    _check_pending_recipient(current, acting_user_id)
    return {
        "delegation": replace(current, status=DelegationStatus.ACCEPTED),
        "assignee": current.delegated_to_user_id,
    }


def reject(entity: Task | Activity, acting_user_id: str) -> dict:
    """Delegate declines; ownership stays with the delegator."""
    current = entity.delegation
    if current.status in (DelegationStatus.ACCEPTED, DelegationStatus.REJECTED):
        return {}
    _check_pending_recipient(current, acting_user_id)
    return {"delegation": replace(current, status=DelegationStatus.REJECTED)}


def revoke(entity: Task | Activity, acting_user_id: str) -> dict:
    """Delegator pulls the entity back and owns it again."""
    current = entity.delegation
    if current.status in (DelegationStatus.NONE, DelegationStatus.REJECTED):
        return {}
    if acting_user_id != current.delegated_by_user_id:
        raise GuardViolation("Only the delegator can revoke a delegation")

    changes: dict = {"delegation": Delegation()}
    if current.status is DelegationStatus.ACCEPTED:
        changes["assignee"] = current.delegated_by_user_id
    return changes
