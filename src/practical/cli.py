"""Practical CLI - drive the engine against the REST API."""

import asyncio
import json
import logging
import sys
from typing import Any, Awaitable, Callable

import click

from .adapters.rest_api import rest_services
from .config import load_config
from .core.classification import days_until_deadline
from .core.entities import EntityType
from .core.errors import EngineError
from .engine import Engine

ENTITY_CHOICE = click.Choice(["task", "activity"])


def _run(action: Callable[[Engine], Awaitable[Any]] | None = None) -> tuple[Engine, Any]:
    """Hydrate an engine, run one action on the same loop, exit 1 on engine errors."""
    config = load_config()
    engine = Engine(rest_services(config), config)

    async def _go() -> Any:
        await engine.hydrate()
        if action is None:
            return None
        return await action(engine)

    try:
        return engine, asyncio.run(_go())
    except EngineError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _due_label(days: int | None) -> str:
    if days is None:
        return ""
    if days < 0:
        return f"OVERDUE by {-days}d"
    if days == 0:
        return "due TODAY"
    return f"due in {days}d"


@click.group()
@click.version_option()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """Practical - goals, key areas and tasks from the command line."""
    if debug:
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            level=logging.DEBUG,
        )


@main.command()
@click.option("--key-area", "key_area_id", default=None, help="Only tasks in this key area")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def tasks(key_area_id: str | None, as_json: bool):
    """List tasks with their Eisenhower quadrant."""
    engine, _ = _run()
    items = engine.tasks(key_area_id)
    today = engine.clock()

    if as_json:
        click.echo(
            json.dumps(
                [
                    {
                        "id": t.id,
                        "title": t.title,
                        "status": t.status.value,
                        "priority": t.priority.value,
                        "deadline": t.deadline.isoformat() if t.deadline else None,
                        "key_area_id": t.key_area_id,
                        "quadrant": engine.quadrant(EntityType.TASK, t.id, today).value,
                    }
                    for t in items
                ],
                indent=2,
            )
        )
        return

    if not items:
        click.echo("No tasks.")
        return

    for task in items:
        label = engine.quadrant(EntityType.TASK, task.id, today).value
        due = _due_label(days_until_deadline(task, today))
        suffix = f" ({due})" if due else ""
        click.echo(f"[{label:9}] {task.title}{suffix}  #{task.id}")


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def goals(as_json: bool):
    """List goals with weighted progress."""
    engine, _ = _run()
    items = engine.store.all(EntityType.GOAL)

    if as_json:
        click.echo(
            json.dumps(
                [
                    {
                        "id": g.id,
                        "title": g.title,
                        "status": g.status.value,
                        "progress": engine.goal_progress(g.id),
                    }
                    for g in items
                ],
                indent=2,
            )
        )
        return

    if not items:
        click.echo("No goals.")
        return

    for goal in items:
        click.echo(f"{engine.goal_progress(goal.id):3}%  {goal.title} [{goal.status.value}]")

    stats = engine.goal_statistics()
    click.echo()
    click.echo(f"{stats.active} active, {stats.on_track} on track, {stats.at_risk} at risk, {stats.completed} completed")


@main.command("key-areas")
def key_areas():
    """Show key areas and their lists in display order."""
    engine, _ = _run()
    for area in engine.ordering.key_areas():
        lock = " (locked)" if area.is_default else ""
        click.echo(f"{area.position:2}. {area.title}{lock}  #{area.id}")
        for index, name in engine.ordering.lists(area.id):
            click.echo(f"      {index}: {name}")


@main.command()
@click.argument("task_id")
def complete(task_id: str):
    """Mark a task completed."""
    _, task = _run(lambda engine: engine.complete_task(task_id))
    click.echo(f"Completed: {task.title}")


@main.command()
@click.argument("entity_type", type=ENTITY_CHOICE)
@click.argument("entity_id")
@click.argument("to_user_id")
def delegate(entity_type: str, entity_id: str, to_user_id: str):
    """Delegate a task or activity to another user."""
    _run(lambda engine: engine.delegate(EntityType(entity_type), entity_id, to_user_id))
    click.echo(f"Delegation pending for {to_user_id}")


@main.command()
@click.argument("entity_type", type=ENTITY_CHOICE)
@click.argument("entity_id")
def accept(entity_type: str, entity_id: str):
    """Accept a delegation addressed to you."""
    _, item = _run(lambda engine: engine.accept_delegation(EntityType(entity_type), entity_id))
    click.echo(f"Delegation {item.delegation.status.value}")


@main.command()
@click.argument("entity_type", type=ENTITY_CHOICE)
@click.argument("entity_id")
@click.option("--reason", default="", help="Why you are declining")
def reject(entity_type: str, entity_id: str, reason: str):
    """Reject a delegation addressed to you."""
    _, item = _run(lambda engine: engine.reject_delegation(EntityType(entity_type), entity_id, reason))
    click.echo(f"Delegation {item.delegation.status.value}")


@main.command()
@click.argument("entity_type", type=ENTITY_CHOICE)
@click.argument("entity_id")
def revoke(entity_type: str, entity_id: str):
    """Take back something you delegated."""
    _run(lambda engine: engine.revoke_delegation(EntityType(entity_type), entity_id))
    click.echo("Delegation revoked")


@main.command()
def delegated():
    """List tasks and activities delegated to you."""
    _, items = _run(lambda engine: engine.load_delegated_to_me())
    if not items:
        click.echo("Nothing delegated to you.")
        return
    for item in items:
        text = getattr(item, "title", None) or getattr(item, "text", "")
        click.echo(f"[{item.delegation.status.value:8}] {text}  (from {item.delegation.delegated_by_user_id})")


@main.command()
@click.argument("dragged_id")
@click.argument("target_id")
def reorder(dragged_id: str, target_id: str):
    """Move a key area to where another one sits."""
    _, areas = _run(lambda engine: engine.ordering.reorder_key_areas(dragged_id, target_id))
    for area in areas:
        click.echo(f"{area.position:2}. {area.title}")


@main.command("add-list")
@click.argument("key_area_id")
@click.option("--name", default=None, help="List name")
def add_list(key_area_id: str, name: str | None):
    """Add a list to a key area."""
    _run(lambda engine: engine.ordering.add_list(key_area_id, name))
    click.echo("List added.")


@main.command("rename-list")
@click.argument("key_area_id")
@click.argument("index", type=int)
@click.argument("name")
def rename_list(key_area_id: str, index: int, name: str):
    """Rename a list within a key area."""
    _run(lambda engine: engine.ordering.rename_list(key_area_id, index, name))
    click.echo(f"List {index} renamed to {name}.")


@main.command("delete-list")
@click.argument("key_area_id")
@click.argument("index", type=int)
def delete_list(key_area_id: str, index: int):
    """Delete an empty list."""
    _run(lambda engine: engine.ordering.delete_list(key_area_id, index))
    click.echo(f"List {index} deleted.")


if __name__ == "__main__":
    main()
