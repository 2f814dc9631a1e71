"""Tests for TaskStore validation."""

from datetime import date

import pytest

from sprintboard.adapters.memory import InMemoryAdapter
from sprintboard.board.store import TaskStore
from sprintboard.workflow.exceptions import ValidationError
from sprintboard.workflow.models import Priority, TaskStatus, TaskType


@pytest.fixture
def backend():
    backend = InMemoryAdapter()
    backend.add_team_member("alpha", "u-1", "Ana")
    backend.add_team_member("beta", "u-2", "Ben")
    return backend


@pytest.fixture
def store(backend):
    return TaskStore(backend)


class TestCreateTask:
    @pytest.mark.asyncio
    async def test_minimal(self, store):
        task = await store.create_task({"team_id": "alpha", "title": "  Write docs  "})
        assert task.title == "Write docs"
        assert task.type is TaskType.TASK
        assert task.priority is Priority.MEDIUM
        assert task.story_points is None

    @pytest.mark.asyncio
    async def test_parses_string_fields(self, store):
        task = await store.create_task(
            {
                "team_id": "alpha",
                "title": "Crash on save",
                "type": "Bug",
                "priority": "high",
                "status": "in_progress",
                "story_points": 8,
                "assignee_id": "u-1",
                "due_date": "2024-03-10",
                "label_ids": ["backend", "p1"],
            }
        )
        assert task.type is TaskType.BUG
        assert task.priority is Priority.HIGH
        assert task.status is TaskStatus.IN_PROGRESS
        assert task.due_date == date(2024, 3, 10)
        assert task.label_ids == frozenset({"backend", "p1"})

    @pytest.mark.asyncio
    async def test_none_enums_use_defaults(self, store):
        task = await store.create_task({"team_id": "alpha", "title": "T", "type": None, "priority": None})
        assert task.type is TaskType.TASK
        assert task.priority is Priority.MEDIUM

    @pytest.mark.parametrize(
        "fields,message",
        [
            ({"title": "No team"}, "team"),
            ({"team_id": "alpha", "title": "   "}, "title"),
            ({"team_id": "alpha"}, "title"),
            ({"team_id": "alpha", "title": "T", "story_points": -1}, "non-negative"),
            ({"team_id": "alpha", "title": "T", "story_points": 2.5}, "non-negative"),
            ({"team_id": "alpha", "title": "T", "story_points": True}, "non-negative"),
            ({"team_id": "alpha", "title": "T", "priority": "urgent"}, "Priority"),
            ({"team_id": "alpha", "title": "T", "due_date": "next week"}, "due date"),
            ({"team_id": "alpha", "title": "T", "assignee_id": "u-2"}, "not a member"),
            ({"team_id": "alpha", "title": "T", "sprint": "sp-1"}, "Unknown task fields"),
        ],
    )
    @pytest.mark.asyncio
    async def test_rejected_before_persistence(self, store, backend, fields, message):
        with pytest.raises(ValidationError, match=message):
            await store.create_task(fields)
        assert await backend.query_tasks() == []


class TestUpdateTask:
    @pytest.mark.asyncio
    async def test_update_validates_fields(self, store):
        task = await store.create_task({"team_id": "alpha", "title": "T"})
        updated = await store.update_task(task.id, priority="low", story_points=2)
        assert updated.priority is Priority.LOW
        assert updated.story_points == 2
        with pytest.raises(ValidationError):
            await store.update_task(task.id, title="")
        with pytest.raises(ValidationError):
            await store.update_task(task.id, assignee_id="u-2")

    @pytest.mark.asyncio
    async def test_delete(self, store, backend):
        task = await store.create_task({"team_id": "alpha", "title": "T"})
        await store.delete_task(task.id)
        assert await backend.query_tasks() == []
