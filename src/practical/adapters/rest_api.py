"""REST API adapter - HTTP implementation of every service port."""

import asyncio
import logging
from typing import Any

import requests

from practical.config import Config, load_config
from practical.core.entities import EntityType
from practical.core.errors import (
    ConflictError,
    EngineError,
    TransientError,
    Unauthorized,
    ValidationError,
)
from practical.normalize import canonicalize, to_wire
from practical.ports import Services

logger = logging.getLogger(__name__)


def _error_message(resp: requests.Response) -> str:
    """Pull the backend's message out of an error response."""
    try:
        data = resp.json()
    except ValueError:
        return resp.text or resp.reason or f"HTTP {resp.status_code}"
    message = data.get("message") if isinstance(data, dict) else None
    if isinstance(message, list):
        return ", ".join(str(m) for m in message)
    return str(message or resp.reason or f"HTTP {resp.status_code}")


def classify_response(resp: requests.Response) -> EngineError | None:
    """Map an HTTP error status onto the engine's error taxonomy."""
    status = resp.status_code
    if status < 400:
        return None
    message = _error_message(resp)
    if status in (401, 403):
        return Unauthorized(message)
    if status in (404, 409):
        return ConflictError(message)
    if status in (400, 422):
        return ValidationError(message)
    return TransientError(message)


class RestApiClient:
    """
    Thin wrapper around one requests.Session.

    Blocking calls run in a worker thread so every service method can be
    awaited from the event loop.
    """

    def __init__(self, config: Config | None = None, session: requests.Session | None = None):
        self.config = config or load_config()
        self._session = session or requests.Session()
        if self.config.api_token:
            self._session.headers["Authorization"] = f"Bearer {self.config.api_token}"

    def request(
        self,
        method: str,
        endpoint: str,
        json: Any = None,
        params: dict | None = None,
    ) -> Any:
        """Make an API request. Raises a classified EngineError on failure."""
        url = f"{self.config.api_base_url}{endpoint}"
        try:
            resp = self._session.request(
                method,
                url,
                json=json,
                params={k: v for k, v in (params or {}).items() if v is not None} or None,
                timeout=self.config.request_timeout,
            )
        except requests.Timeout as e:
            logger.warning(f"{method} {endpoint} timed out")
            raise TransientError(f"{method} {endpoint} timed out") from e
        except requests.RequestException as e:
            logger.warning(f"{method} {endpoint} failed: {e}")
            raise TransientError(str(e)) from e

        error = classify_response(resp)
        if error is not None:
            logger.warning(f"{method} {endpoint} returned {resp.status_code}: {error}")
            raise error

        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    async def call(self, method: str, endpoint: str, json: Any = None, params: dict | None = None) -> Any:
        return await asyncio.to_thread(self.request, method, endpoint, json, params)


class _Resource:
    """CRUD over one REST collection, converting at the boundary."""

    entity_type: EntityType
    base: str

    def __init__(self, client: RestApiClient):
        self.client = client

    def _decode(self, data: Any) -> dict:
        return canonicalize(self.entity_type, data or {})

    def _decode_list(self, data: Any) -> list[dict]:
        return [self._decode(item) for item in data or []]

    async def create(self, fields: dict) -> dict:
        data = await self.client.call("POST", self.base, json=to_wire(self.entity_type, fields))
        return self._decode(data)

    async def update(self, entity_id: str, changes: dict) -> dict:
        data = await self.client.call("PUT", f"{self.base}/{entity_id}", json=to_wire(self.entity_type, changes))
        return self._decode(data)

    async def remove(self, entity_id: str) -> None:
        await self.client.call("DELETE", f"{self.base}/{entity_id}")

    async def get(self, entity_id: str) -> dict | None:
        try:
            data = await self.client.call("GET", f"{self.base}/{entity_id}")
        except ConflictError:
            return None
        return self._decode(data)


class RestTaskService(_Resource):
    entity_type = EntityType.TASK
    base = "/tasks"

    async def list(self, key_area_id: str | None = None) -> list[dict]:
        data = await self.client.call("GET", self.base, params={"keyAreaId": key_area_id})
        return self._decode_list(data)


class RestGoalService(_Resource):
    entity_type = EntityType.GOAL
    base = "/goals"

    async def list(self) -> list[dict]:
        return self._decode_list(await self.client.call("GET", self.base))


class RestMilestoneService(_Resource):
    entity_type = EntityType.MILESTONE
    base = "/milestones"

    async def create(self, fields: dict) -> dict:
        # Completion is not accepted on create
        payload = {k: v for k, v in fields.items() if k not in ("done", "score")}
        return await super().create(payload)

    async def list_by_goal(self, goal_id: str) -> list[dict]:
        data = await self.client.call("GET", f"/goals/{goal_id}/milestones")
        return [{"goal_id": goal_id, **item} for item in self._decode_list(data)]


class RestKeyAreaService(_Resource):
    entity_type = EntityType.KEY_AREA
    base = "/key-areas"

    async def reorder(self, positions: dict[str, int]) -> list[dict] | None:
        items = [{"id": area_id, "sortOrder": position} for area_id, position in positions.items()]
        try:
            await self.client.call("PATCH", f"{self.base}/reorder", json={"items": items})
        except ConflictError:
            # No bulk endpoint on this server; fall back to one update per area
            logger.info("Bulk reorder unavailable, updating key areas one by one")
            await asyncio.gather(
                *(
                    self.client.call("PUT", f"{self.base}/{item['id']}", json={"sortOrder": item["sortOrder"]})
                    for item in items
                )
            )
        return None

    async def list(self) -> list[dict]:
        data = await self.client.call("GET", self.base, params={"includeTaskCount": "true"})
        return self._decode_list(data)


class RestActivityService(_Resource):
    entity_type = EntityType.ACTIVITY
    base = "/activities"

    async def list(self, task_id: str | None = None) -> list[dict]:
        data = await self.client.call("GET", self.base, params={"taskId": task_id})
        return self._decode_list(data)


class RestDelegationService:
    """Delegation endpoints, mounted under each delegable collection."""

    BASES = {EntityType.TASK: "/tasks", EntityType.ACTIVITY: "/activities"}

    def __init__(self, client: RestApiClient):
        self.client = client

    def _base(self, entity_type: EntityType) -> str:
        if entity_type not in self.BASES:
            raise ValidationError(f"A {entity_type.value} cannot be delegated")
        return self.BASES[entity_type]

    async def delegate(self, entity_type: EntityType, entity_id: str, to_user_id: str) -> dict:
        data = await self.client.call(
            "POST",
            f"{self._base(entity_type)}/{entity_id}/delegate",
            json={"delegatedToUserId": to_user_id},
        )
        return canonicalize(entity_type, data or {})

    async def accept(self, entity_type: EntityType, entity_id: str) -> dict:
        data = await self.client.call("POST", f"{self._base(entity_type)}/{entity_id}/delegation/accept")
        return canonicalize(entity_type, data or {})

    async def reject(self, entity_type: EntityType, entity_id: str, reason: str = "") -> dict:
        data = await self.client.call(
            "POST",
            f"{self._base(entity_type)}/{entity_id}/delegation/reject",
            json={"reason": reason},
        )
        return canonicalize(entity_type, data or {})

    async def revoke(self, entity_type: EntityType, entity_id: str) -> dict:
        data = await self.client.call("DELETE", f"{self._base(entity_type)}/{entity_id}/delegation")
        return canonicalize(entity_type, data or {})

    async def list_delegated_to_me(self, entity_type: EntityType) -> list[dict]:
        data = await self.client.call("GET", f"{self._base(entity_type)}/delegated-to-me")
        return [canonicalize(entity_type, item) for item in data or []]


def rest_services(config: Config | None = None, session: requests.Session | None = None) -> Services:
    """Build the full set of REST-backed services sharing one client."""
    client = RestApiClient(config, session)
    return Services(
        tasks=RestTaskService(client),
        goals=RestGoalService(client),
        milestones=RestMilestoneService(client),
        key_areas=RestKeyAreaService(client),
        activities=RestActivityService(client),
        delegations=RestDelegationService(client),
    )
