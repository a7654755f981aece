"""Tests for the REST adapter."""

import asyncio
from datetime import date
from unittest.mock import MagicMock

import pytest
import requests

from practical.adapters.rest_api import (
    RestApiClient,
    RestDelegationService,
    RestKeyAreaService,
    RestMilestoneService,
    RestTaskService,
    classify_response,
    rest_services,
)
from practical.config import Config
from practical.core.entities import EntityType, Priority
from practical.core.errors import (
    ConflictError,
    TransientError,
    Unauthorized,
    ValidationError,
)


def make_response(status: int = 200, body=None, text: str = "") -> MagicMock:
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status
    resp.reason = "Reason"
    resp.text = text
    resp.content = b"" if body is None else b"{}"
    if body is None:
        resp.json.side_effect = ValueError("no body")
    else:
        resp.json.return_value = body
    return resp


@pytest.fixture
def session():
    session = MagicMock()
    session.headers = {}
    session.request.return_value = make_response(200, {})
    return session


@pytest.fixture
def client(session):
    config = Config(api_base_url="http://api.test", api_token="tok", request_timeout=5.0)
    return RestApiClient(config, session)


class TestClassifyResponse:
    @pytest.mark.parametrize(
        "status,error",
        [
            (401, Unauthorized),
            (403, Unauthorized),
            (404, ConflictError),
            (409, ConflictError),
            (400, ValidationError),
            (422, ValidationError),
            (500, TransientError),
            (503, TransientError),
        ],
    )
    def test_error_statuses(self, status, error):
        assert isinstance(classify_response(make_response(status, {"message": "nope"})), error)

    def test_success(self):
        assert classify_response(make_response(201, {})) is None

    def test_message_list(self):
        error = classify_response(make_response(400, {"message": ["title is empty", "weight too big"]}))
        assert str(error) == "title is empty, weight too big"

    def test_plain_text_body(self):
        error = classify_response(make_response(502, text="Bad gateway"))
        assert str(error) == "Bad gateway"


class TestRestApiClient:
    def test_sets_bearer_token(self, client, session):
        assert session.headers["Authorization"] == "Bearer tok"

    def test_request(self, client, session):
        session.request.return_value = make_response(200, [{"id": "t1"}])

        assert client.request("GET", "/tasks", params={"keyAreaId": "ka", "taskId": None}) == [{"id": "t1"}]
        session.request.assert_called_once_with(
            "GET",
            "http://api.test/tasks",
            json=None,
            params={"keyAreaId": "ka"},
            timeout=5.0,
        )

    def test_no_content(self, client, session):
        session.request.return_value = make_response(204)
        assert client.request("DELETE", "/tasks/t1") is None

    def test_timeout(self, client, session):
        session.request.side_effect = requests.Timeout("slow")
        with pytest.raises(TransientError):
            client.request("GET", "/tasks")

    def test_network_error(self, client, session):
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(TransientError):
            client.request("GET", "/tasks")

    def test_error_status_raises(self, client, session):
        session.request.return_value = make_response(409, {"message": "stale"})
        with pytest.raises(ConflictError, match="stale"):
            client.request("PUT", "/tasks/t1", json={})

    def test_async_call(self, client, session):
        session.request.return_value = make_response(200, {"ok": True})
        assert asyncio.run(client.call("GET", "/goals")) == {"ok": True}


class TestResources:
    def test_create_task(self, client, session):
        session.request.return_value = make_response(
            201,
            {"id": "t1", "keyAreaId": "ka", "title": "Docs", "priority": "high", "dueDate": "2025-01-20", "createdAt": "x"},
        )
        service = RestTaskService(client)

        task = asyncio.run(service.create({"key_area_id": "ka", "title": "Docs", "priority": Priority.HIGH}))

        assert task == {
            "id": "t1",
            "key_area_id": "ka",
            "title": "Docs",
            "priority": Priority.HIGH,
            "deadline": date(2025, 1, 20),
        }
        args, kwargs = session.request.call_args
        assert args == ("POST", "http://api.test/tasks")
        assert kwargs["json"] == {"keyAreaId": "ka", "title": "Docs", "priority": "high"}

    def test_get_missing(self, client, session):
        session.request.return_value = make_response(404, {"message": "Not found"})
        assert asyncio.run(RestTaskService(client).get("t1")) is None

    def test_milestone_create_drops_completion(self, client, session):
        session.request.return_value = make_response(201, {"id": "m1", "title": "Design"})

        asyncio.run(RestMilestoneService(client).create({"goal_id": "g1", "title": "Design", "done": False, "score": 0.0}))

        assert session.request.call_args.kwargs["json"] == {"goalId": "g1", "title": "Design"}

    def test_milestones_by_goal(self, client, session):
        session.request.return_value = make_response(200, [{"id": "m1", "title": "Design", "weight": "2"}])

        items = asyncio.run(RestMilestoneService(client).list_by_goal("g1"))

        assert items == [{"goal_id": "g1", "id": "m1", "title": "Design", "weight": 2.0}]
        assert session.request.call_args.args == ("GET", "http://api.test/goals/g1/milestones")

    def test_key_area_list(self, client, session):
        session.request.return_value = make_response(
            200, [{"id": "ka", "name": "Ideas", "isSystem": True, "sortOrder": 10, "taskCount": 4}]
        )

        items = asyncio.run(RestKeyAreaService(client).list())

        assert items == [{"id": "ka", "title": "Ideas", "is_default": True, "position": 10}]
        assert session.request.call_args.kwargs["params"] == {"includeTaskCount": "true"}

    def test_reorder(self, client, session):
        asyncio.run(RestKeyAreaService(client).reorder({"a": 1, "b": 2}))

        args, kwargs = session.request.call_args
        assert args == ("PATCH", "http://api.test/key-areas/reorder")
        assert kwargs["json"] == {"items": [{"id": "a", "sortOrder": 1}, {"id": "b", "sortOrder": 2}]}

    def test_reorder_falls_back_to_updates(self, client, session):
        session.request.side_effect = [make_response(404, {"message": "no route"}), make_response(200, {}), make_response(200, {})]

        asyncio.run(RestKeyAreaService(client).reorder({"a": 1, "b": 2}))

        puts = sorted(c.args[1] for c in session.request.call_args_list if c.args[0] == "PUT")
        assert puts == ["http://api.test/key-areas/a", "http://api.test/key-areas/b"]


class TestDelegationService:
    def test_delegate(self, client, session):
        session.request.return_value = make_response(
            200, {"id": "t1", "delegationStatus": "pending", "delegatedToUserId": "bob", "delegatedByUserId": "alice"}
        )

        data = asyncio.run(RestDelegationService(client).delegate(EntityType.TASK, "t1", "bob"))

        assert data["delegation"].delegated_to_user_id == "bob"
        args, kwargs = session.request.call_args
        assert args == ("POST", "http://api.test/tasks/t1/delegate")
        assert kwargs["json"] == {"delegatedToUserId": "bob"}

    def test_accept_and_reject_paths(self, client, session):
        service = RestDelegationService(client)

        asyncio.run(service.accept(EntityType.ACTIVITY, "a1"))
        assert session.request.call_args.args == ("POST", "http://api.test/activities/a1/delegation/accept")

        asyncio.run(service.reject(EntityType.TASK, "t1", "busy"))
        assert session.request.call_args.args == ("POST", "http://api.test/tasks/t1/delegation/reject")
        assert session.request.call_args.kwargs["json"] == {"reason": "busy"}

    def test_revoke(self, client, session):
        session.request.return_value = make_response(204)
        assert asyncio.run(RestDelegationService(client).revoke(EntityType.TASK, "t1")) == {}
        assert session.request.call_args.args == ("DELETE", "http://api.test/tasks/t1/delegation")

    def test_list_delegated_to_me(self, client, session):
        session.request.return_value = make_response(200, [{"id": "a1", "text": "Call"}])

        items = asyncio.run(RestDelegationService(client).list_delegated_to_me(EntityType.ACTIVITY))

        assert items == [{"id": "a1", "text": "Call"}]
        assert session.request.call_args.args == ("GET", "http://api.test/activities/delegated-to-me")

    def test_goal_not_delegable(self, client):
        with pytest.raises(ValidationError):
            asyncio.run(RestDelegationService(client).delegate(EntityType.GOAL, "g1", "bob"))


def test_rest_services_share_one_client(session):
    services = rest_services(Config(api_base_url="http://api.test"), session)
    assert services.tasks.client is services.delegations.client
    assert isinstance(services.key_areas, RestKeyAreaService)
