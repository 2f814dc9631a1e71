"""Tests for ClaudeExecutor. Real SDK calls need --run-slow."""

import asyncio
import json
from dataclasses import dataclass

import pytest

from conftest import utc
from sprintboard.agents import claude as claude_module
from sprintboard.agents.claude import ClaudeExecutor
from sprintboard.planning.oracle import ClaudePlanningOracle, PlanRequest
from sprintboard.workflow.models import Task

REPLY = json.dumps({"sprintName": "Sprint 1 - Login", "recommendedTasks": ["t-1"], "totalStoryPoints": 3})


class TestExecutorFailures:
    @pytest.mark.asyncio
    async def test_timeout(self, monkeypatch):
        async def slow_query(prompt, options):
            await asyncio.sleep(5)
            yield None

        monkeypatch.setattr(claude_module, "query", slow_query)
        result = await ClaudeExecutor().run("hello", timeout=0.01)
        assert not result.success
        assert "timed out" in result.output

    @pytest.mark.asyncio
    async def test_sdk_error(self, monkeypatch):
        async def broken_query(prompt, options):
            raise ConnectionError("cli not found")
            yield  # pragma: no cover

        monkeypatch.setattr(claude_module, "query", broken_query)
        result = await ClaudeExecutor().run("hello")
        assert not result.success
        assert "cli not found" in result.output

    @pytest.mark.asyncio
    async def test_no_tools_single_turn(self, monkeypatch):
        seen = {}

        async def capture(prompt, options):
            seen["options"] = options
            return
            yield  # pragma: no cover

        monkeypatch.setattr(claude_module, "query", capture)
        result = await ClaudeExecutor(model="haiku").run("hello")
        assert result.success
        assert result.output == "(no output)"
        assert seen["options"].allowed_tools == []
        assert seen["options"].max_turns == 1
        assert seen["options"].model == "haiku"


@dataclass
class _Text:
    text: str


@dataclass
class _Assistant:
    content: list


@dataclass
class _Result:
    result: str | None
    is_error: bool = False


@pytest.fixture
def sdk_stream(monkeypatch):
    """Swap the SDK message types for light stand-ins and replay a stream."""
    monkeypatch.setattr(claude_module, "AssistantMessage", _Assistant)
    monkeypatch.setattr(claude_module, "TextBlock", _Text)
    monkeypatch.setattr(claude_module, "ResultMessage", _Result)

    def replay(*messages):
        async def fake_query(prompt, options):
            for message in messages:
                yield message

        monkeypatch.setattr(claude_module, "query", fake_query)

    return replay


class TestMessageCollection:
    @pytest.mark.asyncio
    async def test_result_repeating_assistant_text_is_dropped(self, sdk_stream):
        sdk_stream(_Assistant([_Text(REPLY)]), _Result(result=REPLY))
        result = await ClaudeExecutor().run("plan")
        assert result.success
        assert result.output == REPLY

    @pytest.mark.asyncio
    async def test_result_used_when_no_assistant_text(self, sdk_stream):
        sdk_stream(_Result(result=REPLY))
        result = await ClaudeExecutor().run("plan")
        assert result.output == REPLY

    @pytest.mark.asyncio
    async def test_error_result(self, sdk_stream):
        sdk_stream(_Result(result="rate limited", is_error=True))
        result = await ClaudeExecutor().run("plan")
        assert not result.success
        assert result.output == "rate limited"

    @pytest.mark.asyncio
    async def test_planning_oracle_over_sdk_stream(self, sdk_stream):
        sdk_stream(_Assistant([_Text(REPLY)]), _Result(result=REPLY))
        oracle = ClaudePlanningOracle(ClaudeExecutor())
        task = Task(id="t-1", team_id="alpha", title="Login", created_at=utc(2024, 3, 1))
        suggestion = await oracle.suggest(PlanRequest(team_capacity_hours=40, tasks=[task]))
        assert suggestion.sprint_name == "Sprint 1 - Login"
        assert suggestion.recommended_task_ids == ["t-1"]


@pytest.mark.slow
class TestRealExecutor:
    @pytest.mark.asyncio
    async def test_returns_json_object(self):
        result = await ClaudeExecutor(model="haiku").run(
            'Reply with exactly this JSON and nothing else: {"ok": true}', timeout=60
        )
        assert result.success
        assert '"ok"' in result.output
