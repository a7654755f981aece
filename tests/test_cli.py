"""Tests for the command line interface."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from practical.cli import main
from practical.config import Config


@pytest.fixture
def backend(services):
    services.key_areas.records = {
        "ka-ideas": {"id": "ka-ideas", "name": "Ideas", "isSystem": True, "sortOrder": 10},
        "ka-work": {"id": "ka-work", "name": "Work", "sortOrder": 1, "listNames": {"1": "Inbox"}},
    }
    services.goals.records = {"g1": {"id": "g1", "title": "Ship v1"}}
    services.milestones.records = {"m1": {"id": "m1", "goal_id": "g1", "title": "Design", "done": True}}
    services.tasks.records = {"t1": {"id": "t1", "keyAreaId": "ka-work", "title": "Docs", "priority": "high"}}
    with (
        patch("practical.cli.load_config", return_value=Config(current_user_id="alice")),
        patch("practical.cli.rest_services", return_value=services),
    ):
        yield services


class TestCli:
    def test_tasks(self, backend):
        result = CliRunner().invoke(main, ["tasks"])

        assert result.exit_code == 0
        assert "Schedule" in result.output
        assert "Docs  #t1" in result.output

    def test_tasks_json(self, backend):
        result = CliRunner().invoke(main, ["tasks", "--json"])

        data = json.loads(result.output)
        assert data[0]["id"] == "t1"
        assert data[0]["priority"] == "high"
        assert data[0]["quadrant"] == "Schedule"

    def test_goals_json(self, backend):
        result = CliRunner().invoke(main, ["goals", "--json"])

        assert json.loads(result.output) == [{"id": "g1", "title": "Ship v1", "status": "active", "progress": 100}]

    def test_key_areas(self, backend):
        result = CliRunner().invoke(main, ["key-areas"])

        lines = result.output.splitlines()
        assert lines[0].endswith("Work  #ka-work")
        assert "1: Inbox" in lines[1]
        assert "Ideas (locked)" in lines[2]

    def test_complete(self, backend):
        result = CliRunner().invoke(main, ["complete", "t1"])

        assert result.exit_code == 0
        assert "Completed: Docs" in result.output
        assert backend.tasks.calls[0][:2] == ("update", "t1")

    def test_engine_error_exits_nonzero(self, backend):
        result = CliRunner().invoke(main, ["delete-list", "ka-work", "1"])

        assert result.exit_code == 1
        assert "Error:" in result.output
