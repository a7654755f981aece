"""In-memory notification bus between the engine and its views."""

import asyncio
import contextlib
import inspect
import logging
from typing import Any, Awaitable, Callable

from .core.entities import EntityType

logger = logging.getLogger(__name__)

EventHandler = Callable[[dict[str, Any]], Any]

CHANGED = "changed"
DELEGATION_SETTLED = "delegation-settled"
CAPACITY_EXCEEDED = "capacity-exceeded"


class EventBus:
    """
    Pub/sub for engine notifications.

    Handlers receive a dict with a ``type`` key plus event fields. A failing
    handler is logged and skipped so it cannot break the mutation that
    triggered it. Coroutine handlers are scheduled on the running loop.
    """

    def __init__(self):
        self._handlers: list[EventHandler] = []
        self.events_published = 0

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._handlers.remove(handler)

        return _unsubscribe

    def publish(self, event_type: str, **payload: Any) -> dict[str, Any]:
        event = {"type": event_type, **payload}
        self.events_published += 1
        self._dispatch(event)
        return event

    def changed(self, entity_type: EntityType, entity_id: str) -> dict[str, Any]:
        return self.publish(CHANGED, entity_type=entity_type, id=entity_id)

    def delegation_settled(self, entity_type: EntityType, entity_id: str, outcome: str) -> dict[str, Any]:
        return self.publish(DELEGATION_SETTLED, entity_type=entity_type, id=entity_id, outcome=outcome)

    def capacity_exceeded(self, resource: str) -> dict[str, Any]:
        return self.publish(CAPACITY_EXCEEDED, resource=resource)

    def _dispatch(self, event: dict[str, Any]) -> None:
        for handler in list(self._handlers):
            try:
                result = handler(event)
            except Exception:
                logger.exception(f"Event handler failed for {event['type']}")
                continue
            if inspect.isawaitable(result):
                self._schedule_async_handler(result)

    @staticmethod
    def _schedule_async_handler(awaitable: Awaitable[Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Async event handler dropped: no running event loop")
            return
        loop.create_task(awaitable)
