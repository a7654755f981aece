"""Command objects dispatched by views to the mutation coordinator."""

from dataclasses import dataclass, field

from .core.entities import EntityType


@dataclass(frozen=True)
class Create:
    entity_type: EntityType
    fields: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Update:
    entity_type: EntityType
    entity_id: str
    changes: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Delete:
    entity_type: EntityType
    entity_id: str


@dataclass(frozen=True)
class Delegate:
    entity_type: EntityType
    entity_id: str
    to_user_id: str


@dataclass(frozen=True)
class AcceptDelegation:
    entity_type: EntityType
    entity_id: str


@dataclass(frozen=True)
class RejectDelegation:
    entity_type: EntityType
    entity_id: str
    reason: str = ""


@dataclass(frozen=True)
class RevokeDelegation:
    entity_type: EntityType
    entity_id: str


@dataclass(frozen=True)
class Reorder:
    """New positions for key areas, keyed by id."""

    positions: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class MoveKeyArea:
    """Drop one key area onto another; positions are worked out when it runs."""

    dragged_id: str
    target_id: str


Command = (
    Create
    | Update
    | Delete
    | Delegate
    | AcceptDelegation
    | RejectDelegation
    | RevokeDelegation
    | Reorder
    | MoveKeyArea
)
