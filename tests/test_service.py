"""Tests for the Workboard facade."""

from datetime import date

import pytest
import pytest_asyncio

from conftest import utc
from sprintboard.adapters.memory import InMemoryAdapter
from sprintboard.config import WorkboardConfig
from sprintboard.planning.oracle import MockPlanningOracle
from sprintboard.planning.reconciler import SprintPlan
from sprintboard.service import Workboard
from sprintboard.workflow.exceptions import InvalidTransitionError, ValidationError
from sprintboard.workflow.models import SprintStatus, TaskStatus
from sprintboard.workflow.transitions import SEQUENTIAL_TRANSITIONS


@pytest.fixture
def backend():
    backend = InMemoryAdapter()
    backend.add_team_member("alpha", "u-1", "Ana", capacity_hours=30)
    backend.add_team_member("alpha", "u-2", "Ben", capacity_hours=20)
    return backend


@pytest.fixture
def oracle():
    return MockPlanningOracle()


@pytest.fixture
def workboard(backend, oracle, clock):
    return Workboard(backend, WorkboardConfig(), planning_oracle=oracle, clock=clock)


@pytest_asyncio.fixture
async def seeded(workboard):
    await workboard.create_task({"team_id": "alpha", "title": "Login", "story_points": 5})
    await workboard.create_task({"team_id": "alpha", "title": "Signup", "story_points": 3})
    await workboard.create_sprint("alpha", "Sprint 1", date(2024, 3, 4), date(2024, 3, 17))
    return workboard


class TestSprintLifecycle:
    @pytest.mark.asyncio
    async def test_create_validates(self, workboard):
        with pytest.raises(ValidationError):
            await workboard.create_sprint("alpha", "", date(2024, 3, 4), date(2024, 3, 17))
        with pytest.raises(ValidationError):
            await workboard.create_sprint("alpha", "S", date(2024, 3, 4), date(2024, 3, 1))

    @pytest.mark.asyncio
    async def test_start_and_complete(self, seeded):
        assert (await seeded.start_sprint("sp-1")).status is SprintStatus.ACTIVE
        assert (await seeded.complete_sprint("sp-1")).status is SprintStatus.COMPLETED
        with pytest.raises(InvalidTransitionError):
            await seeded.start_sprint("sp-1")

    @pytest.mark.asyncio
    async def test_cannot_complete_planned_sprint(self, seeded):
        with pytest.raises(InvalidTransitionError):
            await seeded.complete_sprint("sp-1")


class TestBoardFlow:
    @pytest.mark.asyncio
    async def test_attach_move_detach(self, seeded, clock):
        membership = await seeded.attach_to_sprint("t-1", "sp-1")
        assert membership.added_at == clock.now

        sprint_board = await seeded.get_board("alpha", "sp-1")
        assert [t.id for t in sprint_board.tasks()] == ["t-1"]
        backlog = await seeded.get_board("alpha", "backlog")
        assert [t.id for t in backlog.tasks()] == ["t-2"]

        assert await seeded.detach_from_sprint("t-1", "sp-1") is True
        backlog = await seeded.get_board("alpha", "backlog")
        assert {t.id for t in backlog.tasks()} == {"t-1", "t-2"}

    @pytest.mark.asyncio
    async def test_move_to_sprint(self, seeded, clock):
        await seeded.create_sprint("alpha", "Sprint 2", date(2024, 3, 18), date(2024, 3, 31))
        await seeded.attach_to_sprint("t-1", "sp-1")
        clock.now = utc(2024, 3, 19)
        row = await seeded.move_to_sprint("t-1", "sp-1", "sp-2")
        assert (row.sprint_id, row.added_at) == ("sp-2", utc(2024, 3, 19))

    @pytest.mark.asyncio
    async def test_move_task_on_session(self, seeded):
        session = await seeded.open_session("alpha", "backlog")
        result = await seeded.move_task(session, "t-2", "review")
        assert result.success
        assert session.board.column_of("t-2") is TaskStatus.REVIEW

    @pytest.mark.asyncio
    async def test_custom_rules(self, backend, clock):
        workboard = Workboard(backend, clock=clock, rules=SEQUENTIAL_TRANSITIONS)
        await workboard.create_task({"team_id": "alpha", "title": "T"})
        session = await workboard.open_session("alpha")
        result = await workboard.move_task(session, "t-1", "done")
        assert not result.success

    @pytest.mark.asyncio
    async def test_board_needs_team(self, workboard):
        with pytest.raises(ValidationError):
            await workboard.get_board("")


class TestPlanning:
    def test_preview_parse(self, workboard):
        drafts = workboard.preview_parse("A [high]\nB (8)")
        assert [d.title for d in drafts] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_suggest_from_backlog(self, seeded, oracle):
        await seeded.attach_to_sprint("t-1", "sp-1")
        suggestion = await seeded.suggest_plan("alpha")
        assert suggestion.recommended_task_ids == ["t-2"]
        assert oracle.last_request.team_capacity_hours == 50
        assert oracle.last_request.sprint_duration_days == 14

    @pytest.mark.asyncio
    async def test_suggest_from_text(self, seeded, oracle):
        suggestion = await seeded.suggest_plan("alpha", raw_text="A\nB")
        assert suggestion.recommended_task_ids == ["draft-0", "draft-1"]
        assert oracle.last_request.custom

    @pytest.mark.asyncio
    async def test_suggest_from_ids(self, seeded, oracle):
        await seeded.suggest_plan("alpha", task_ids=["t-2"])
        assert [t.id for t in oracle.last_request.tasks] == ["t-2"]

    @pytest.mark.asyncio
    async def test_capacity_fallback_without_members(self, oracle):
        workboard = Workboard(InMemoryAdapter(), WorkboardConfig(member_capacity_hours=35), planning_oracle=oracle)
        await workboard.create_task({"team_id": "solo", "title": "T"})
        await workboard.suggest_plan("solo")
        assert oracle.last_request.team_capacity_hours == 35

    @pytest.mark.asyncio
    async def test_suggest_errors(self, workboard):
        with pytest.raises(ValidationError, match="No tasks available"):
            await workboard.suggest_plan("alpha")
        with pytest.raises(ValidationError, match="No tasks found"):
            await workboard.suggest_plan("alpha", raw_text="\n\n")
        with pytest.raises(ValidationError, match="No planning oracle"):
            await Workboard(InMemoryAdapter()).suggest_plan("alpha")

    @pytest.mark.asyncio
    async def test_suggest_then_commit(self, seeded):
        suggestion = await seeded.suggest_plan("alpha")
        plan = SprintPlan.from_suggestion(suggestion, "alpha", today=date(2024, 3, 1))
        result = await seeded.commit_plan(plan)
        assert result.complete
        board = await seeded.get_board("alpha", result.created_sprint_id)
        assert {t.id for t in board.tasks()} == {"t-1", "t-2"}


class TestAnalytics:
    @pytest.mark.asyncio
    async def test_scope_alerts(self, seeded, clock):
        clock.now = utc(2024, 3, 1)
        await seeded.attach_to_sprint("t-1", "sp-1")
        await seeded.start_sprint("sp-1")
        clock.now = utc(2024, 3, 6)
        await seeded.attach_to_sprint("t-2", "sp-1")
        alerts = await seeded.get_scope_alerts("alpha")
        assert len(alerts) == 1
        assert alerts[0].increase_pct == pytest.approx(60)
        assert alerts[0].added_task_titles == ["Signup"]

    @pytest.mark.asyncio
    async def test_risk_heatmap_uses_clock_date(self, workboard):
        await workboard.create_task(
            {"team_id": "alpha", "title": "Late", "due_date": "2024-02-25", "status": "in_progress"}
        )
        report = await workboard.get_risk_heatmap("alpha")
        assert report.delayed_tasks[0].days_overdue == 5
        report = await workboard.get_risk_heatmap("alpha", current_date=date(2024, 2, 26))
        assert report.delayed_tasks[0].days_overdue == 1

    @pytest.mark.asyncio
    async def test_velocity_and_forecast(self, seeded):
        await seeded.attach_to_sprint("t-1", "sp-1")
        await seeded.attach_to_sprint("t-2", "sp-1")
        await seeded.start_sprint("sp-1")
        await seeded.update_task("t-1", status="done")

        (velocity,) = await seeded.get_velocity("alpha")
        assert (velocity.planned_points, velocity.completed_points, velocity.completion_rate) == (8, 5, 63)

        forecast = await seeded.get_forecast("sp-1", current_date=date(2024, 3, 11))
        assert forecast.progress_pct == 62.5
        assert forecast.confidence == 90
        assert (await seeded.get_forecast("sp-1")).remaining_days == 13

    @pytest.mark.asyncio
    async def test_forecast_unknown_sprint(self, workboard):
        with pytest.raises(KeyError):
            await workboard.get_forecast("sp-404")
        with pytest.raises(ValidationError):
            await workboard.get_velocity("")
