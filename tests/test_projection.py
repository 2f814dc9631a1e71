"""Tests for the board projection."""

from datetime import date

import pytest
import pytest_asyncio

from conftest import utc
from sprintboard.adapters.memory import InMemoryAdapter
from sprintboard.board.ledger import MembershipLedger
from sprintboard.board.projection import (
    ALL,
    BACKLOG,
    BoardFilters,
    BoardScope,
    BoardSnapshot,
    ScopeKind,
    load_snapshot,
    project,
)
from sprintboard.workflow.exceptions import ValidationError
from sprintboard.workflow.models import SprintStatus, TaskStatus


@pytest_asyncio.fixture
async def backend():
    """Team alpha: five tasks, an active and a completed sprint. Team beta: one task."""
    backend = InMemoryAdapter()
    await backend.create_task(
        "alpha", "Login page", created_at=utc(2024, 3, 1), description="OAuth redirect", epic_id="e-auth"
    )  # t-1
    await backend.create_task(
        "alpha", "Signup page", created_at=utc(2024, 3, 3), status=TaskStatus.IN_PROGRESS, label_ids=["ui"]
    )  # t-2
    await backend.create_task("alpha", "Old report", created_at=utc(2024, 2, 1), status=TaskStatus.DONE)  # t-3
    await backend.create_task("alpha", "Same time A", created_at=utc(2024, 3, 2))  # t-4
    await backend.create_task("alpha", "Same time B", created_at=utc(2024, 3, 2))  # t-5
    await backend.create_task("beta", "Billing", created_at=utc(2024, 3, 1))  # t-6
    await backend.create_sprint(
        "alpha", "Sprint 1", date(2024, 3, 4), date(2024, 3, 17), status=SprintStatus.ACTIVE
    )  # sp-1
    await backend.create_sprint(
        "alpha", "Sprint 0", date(2024, 2, 1), date(2024, 2, 14), status=SprintStatus.COMPLETED
    )  # sp-2
    await backend.attach_membership("sp-1", "t-1")
    await backend.attach_membership("sp-2", "t-3")
    return backend


async def _board(backend, scope=ALL, filters=BoardFilters()):
    snapshot = await load_snapshot(backend, "alpha")
    return project(snapshot, "alpha", scope, filters)


class TestBoardScope:
    def test_parse(self):
        assert BoardScope.parse("all") is ALL
        assert BoardScope.parse(None) is ALL
        assert BoardScope.parse("backlog") is BACKLOG
        scope = BoardScope.parse("sp-1")
        assert scope.kind is ScopeKind.SPRINT
        assert scope.sprint_id == "sp-1"
        assert str(scope) == "sp-1"

    def test_sprint_needs_id(self):
        with pytest.raises(ValidationError):
            BoardScope.sprint("")


class TestProjection:
    @pytest.mark.asyncio
    async def test_exactly_four_columns(self, backend):
        board = await _board(backend)
        assert list(board.columns) == list(TaskStatus)

    @pytest.mark.asyncio
    async def test_all_scope_is_team_only(self, backend):
        board = await _board(backend)
        assert {t.id for t in board.tasks()} == {"t-1", "t-2", "t-3", "t-4", "t-5"}
        assert board.task_count == 5

    @pytest.mark.asyncio
    async def test_columns_by_status(self, backend):
        board = await _board(backend)
        assert [t.id for t in board.column(TaskStatus.IN_PROGRESS)] == ["t-2"]
        assert [t.id for t in board.column(TaskStatus.DONE)] == ["t-3"]
        assert board.column(TaskStatus.REVIEW) == []
        assert board.column_of("t-2") is TaskStatus.IN_PROGRESS
        assert board.column_of("t-6") is None

    @pytest.mark.asyncio
    async def test_newest_first_ties_by_id(self, backend):
        board = await _board(backend)
        assert [t.id for t in board.column(TaskStatus.TODO)] == ["t-4", "t-5", "t-1"]

    @pytest.mark.asyncio
    async def test_backlog_excludes_any_sprint_row(self, backend):
        board = await _board(backend, BACKLOG)
        # t-1 is on the active sprint and t-3 on the completed one.
        assert {t.id for t in board.tasks()} == {"t-2", "t-4", "t-5"}

    @pytest.mark.asyncio
    async def test_sprint_scope(self, backend):
        board = await _board(backend, "sp-1")
        assert [t.id for t in board.tasks()] == ["t-1"]

    @pytest.mark.asyncio
    async def test_unknown_sprint_scope_is_empty(self, backend):
        board = await _board(backend, "sp-404")
        assert board.task_count == 0

    @pytest.mark.asyncio
    async def test_backlog_and_sprints_partition_team(self, backend):
        backlog = {t.id for t in (await _board(backend, BACKLOG)).tasks()}
        on_sprints = set()
        for sprint in await backend.list_sprints(team_id="alpha"):
            on_sprints |= {t.id for t in (await _board(backend, sprint.id)).tasks()}
        everything = {t.id for t in (await _board(backend)).tasks()}
        assert backlog.isdisjoint(on_sprints)
        assert backlog | on_sprints == everything


class TestFilters:
    @pytest.mark.asyncio
    async def test_text_search_title_and_description(self, backend):
        board = await _board(backend, filters=BoardFilters(text="PAGE"))
        assert {t.id for t in board.tasks()} == {"t-1", "t-2"}
        board = await _board(backend, filters=BoardFilters(text="oauth"))
        assert [t.id for t in board.tasks()] == ["t-1"]

    @pytest.mark.asyncio
    async def test_epic_and_label(self, backend):
        assert [t.id for t in (await _board(backend, filters=BoardFilters(epic_id="e-auth"))).tasks()] == ["t-1"]
        assert [t.id for t in (await _board(backend, filters=BoardFilters(label_id="ui"))).tasks()] == ["t-2"]

    @pytest.mark.asyncio
    async def test_filters_combine_with_scope(self, backend):
        board = await _board(backend, BACKLOG, BoardFilters(text="login"))
        assert board.task_count == 0


class TestDetachThenProject:
    @pytest.mark.asyncio
    async def test_detached_task_shows_in_backlog(self, backend):
        ledger = MembershipLedger(backend)
        await ledger.move("t-1", "sp-1", None)
        board = await _board(backend, BACKLOG)
        assert "t-1" in {t.id for t in board.tasks()}
        assert (await _board(backend, "sp-1")).task_count == 0


class TestSnapshot:
    @pytest.mark.asyncio
    async def test_snapshot_holds_copies(self, backend):
        snapshot = await load_snapshot(backend, "alpha")
        original = await backend.get_task("t-1")
        assert snapshot.task("t-1") is not original
        assert snapshot.sprint_of("t-1").id == "sp-1"
        assert snapshot.sprint_of("t-2") is None

    def test_project_is_pure(self):
        snapshot = BoardSnapshot(team_id="alpha")
        assert project(snapshot, "alpha").to_dict() == project(snapshot, "alpha").to_dict()

    @pytest.mark.asyncio
    async def test_to_dict(self, backend):
        data = (await _board(backend, "sp-1")).to_dict()
        assert data["scope"] == "sp-1"
        assert set(data["columns"]) == {"todo", "in_progress", "review", "done"}
        assert data["columns"]["todo"][0]["id"] == "t-1"
