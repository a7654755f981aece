"""Key area and list ordering rules - pure functions, no I/O."""

from .entities import DEFAULT_KEY_AREA_TITLE, KeyArea, Task
from .errors import CapacityError, GuardViolation, ValidationError

MAX_KEY_AREAS = 9
MAX_LISTS = 10


def is_default_title(title: str | None) -> bool:
    return (title or "").strip().lower() == DEFAULT_KEY_AREA_TITLE.lower()


def reorderable(areas: list[KeyArea]) -> list[KeyArea]:
    """Non-default areas by position, then title."""
    movable = [a for a in areas if not a.is_default]
    return sorted(movable, key=lambda a: (a.position, a.title.lower()))


def display_order(areas: list[KeyArea]) -> list[KeyArea]:
    """Areas as shown to the user: the default area always last."""
    return reorderable(areas) + [a for a in areas if a.is_default]


def sequential_positions(ids: list[str]) -> dict[str, int]:
    return {area_id: index for index, area_id in enumerate(ids, start=1)}


def move_key_area(areas: list[KeyArea], dragged_id: str, target_id: str) -> dict[str, int]:
    """
    Move the dragged area to the target's slot and renumber 1..N.

    Dragging down lands after the target, dragging up lands before it.
    """
    by_id = {a.id: a for a in areas}
    for area_id in (dragged_id, target_id):
        if area_id not in by_id:
            raise ValidationError(f"Unknown key area: {area_id}")
        if by_id[area_id].is_default:
            raise GuardViolation("The default key area cannot be reordered")

    ids = [a.id for a in reorderable(areas)]
    if dragged_id != target_id:
        target_index = ids.index(target_id)
        ids.remove(dragged_id)
        ids.insert(target_index, dragged_id)
    return sequential_positions(ids)


def compacted_positions(areas: list[KeyArea]) -> dict[str, int]:
    """Positions that close any gaps left behind by a deletion."""
    return sequential_positions([a.id for a in reorderable(areas)])


def changed_positions(areas: list[KeyArea], positions: dict[str, int]) -> dict[str, int]:
    current = {a.id: a.position for a in areas}
    return {area_id: pos for area_id, pos in positions.items() if current.get(area_id) != pos}


def check_key_area_capacity(areas: list[KeyArea], max_areas: int = MAX_KEY_AREAS) -> int:
    """Return the position for a new area, or raise when full."""
    count = len(reorderable(areas))
    if count >= max_areas:
        raise CapacityError("key_area", f"At most {max_areas} key areas are allowed")
    return count + 1


def list_indices(area: KeyArea, tasks: list[Task]) -> list[int]:
    """Indices of every list in an area: named ones plus any a task points at."""
    indices = set(area.list_names)
    indices.update(t.list_index for t in tasks if t.key_area_id == area.id)
    if not indices and not area.is_default:
        indices.add(1)
    return sorted(indices)


def list_name(area: KeyArea, index: int) -> str:
    return area.list_names.get(index) or f"List {index}"


def check_add_list(area: KeyArea, tasks: list[Task], max_lists: int = MAX_LISTS) -> int:
    """Return the index for a new list, or raise."""
    if area.is_default:
        raise GuardViolation("The default key area has no user lists")
    indices = list_indices(area, tasks)
    if len(indices) >= max_lists:
        raise CapacityError("list", f"At most {max_lists} lists per key area")
    return max(indices, default=0) + 1


def check_rename_list(area: KeyArea, index: int, name: str, tasks: list[Task]) -> str:
    """Return the cleaned name, or raise if it clashes with a sibling list."""
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("List name cannot be empty")
    if area.is_default:
        raise GuardViolation("The default key area has no user lists")
    for other in list_indices(area, tasks):
        if other != index and list_name(area, other).lower() == cleaned.lower():
            raise GuardViolation(f"A list named '{cleaned}' already exists in {area.title}")
    return cleaned


def check_delete_list(area: KeyArea, index: int, tasks: list[Task]) -> None:
    in_use = [t for t in tasks if t.key_area_id == area.id and t.list_index == index]
    if in_use:
        raise GuardViolation(
            f"List {list_name(area, index)} still holds {len(in_use)} task(s)"
        )
