"""Workboard: the operations a UI layer or tool server calls.

Every operation takes its inputs explicitly; board state lives in a
``BoardSession`` that the caller owns.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime

from .board.analytics import SprintForecast, SprintVelocity, forecast_sprint, sprint_velocity
from .board.controller import BoardSession, MoveResult, StatusTransitionController
from .board.ledger import MembershipLedger, utc_now
from .board.projection import ALL, BACKLOG, NO_FILTERS, Board, BoardFilters, BoardScope, load_snapshot, project
from .board.risk import HeuristicRiskOracle, RiskOracle, RiskReport, build_risk_request
from .board.scope import ScopeAlert, ScopeAnalyzer
from .board.store import TaskStore
from .config import WorkboardConfig
from .planning.oracle import PlanningOracle, PlanRequest, PlanSuggestion
from .planning.parser import ParserVariant, parse
from .planning.reconciler import CommitResult, SprintPlan, SprintPlanReconciler
from .workflow.exceptions import ValidationError
from .workflow.interface import TrackerBackend
from .workflow.models import DraftTask, Sprint, SprintMembership, SprintStatus, Task, TaskStatus
from .workflow.transitions import FREE_FORM_TRANSITIONS, validate_sprint_transition


class Workboard:
    def __init__(
        self,
        backend: TrackerBackend,
        config: WorkboardConfig | None = None,
        planning_oracle: PlanningOracle | None = None,
        risk_oracle: RiskOracle | None = None,
        clock: Callable[[], datetime] = utc_now,
        rules: frozenset[tuple[TaskStatus, TaskStatus]] = FREE_FORM_TRANSITIONS,
    ) -> None:
        self.backend = backend
        self.config = config or WorkboardConfig()
        self._clock = clock
        self._planning_oracle = planning_oracle
        self._risk_oracle = risk_oracle or HeuristicRiskOracle()
        self.store = TaskStore(backend)
        self.ledger = MembershipLedger(backend, clock)
        self.controller = StatusTransitionController(backend, rules)
        self.scope_analyzer = ScopeAnalyzer(backend, self.config.scope_thresholds)
        self.reconciler = SprintPlanReconciler(backend, self.store, self.ledger)

    # --- Board ---

    async def open_session(
        self,
        team_id: str,
        scope: BoardScope | str = ALL,
        filters: BoardFilters = NO_FILTERS,
    ) -> BoardSession:
        session = BoardSession(self.backend, team_id, scope, filters)
        await session.refresh()
        return session

    async def get_board(
        self,
        team_id: str,
        scope: BoardScope | str = ALL,
        filters: BoardFilters = NO_FILTERS,
    ) -> Board:
        if not team_id:
            raise ValidationError("A board needs a team")
        snapshot = await load_snapshot(self.backend, team_id)
        return project(snapshot, team_id, scope, filters)

    async def move_task(self, session: BoardSession, task_id: str, status) -> MoveResult:
        return await self.controller.move(session, task_id, status)

    # --- Tasks ---

    async def create_task(self, fields: dict) -> Task:
        return await self.store.create_task(fields)

    async def update_task(self, task_id: str, **fields) -> Task:
        return await self.store.update_task(task_id, **fields)

    async def delete_task(self, task_id: str) -> None:
        await self.store.delete_task(task_id)

    # --- Sprints and membership ---

    async def create_sprint(
        self,
        team_id: str,
        name: str,
        start_date: date,
        end_date: date,
        goal: str | None = None,
    ) -> Sprint:
        if not team_id:
            raise ValidationError("Sprint needs a team")
        if not name or not name.strip():
            raise ValidationError("Sprint name is required")
        if end_date < start_date:
            raise ValidationError("Sprint end date is before its start date")
        return await self.backend.create_sprint(
            team_id=team_id, name=name.strip(), start_date=start_date, end_date=end_date, goal=goal
        )

    async def start_sprint(self, sprint_id: str) -> Sprint:
        return await self._advance_sprint(sprint_id, SprintStatus.ACTIVE)

    async def complete_sprint(self, sprint_id: str) -> Sprint:
        return await self._advance_sprint(sprint_id, SprintStatus.COMPLETED)

    async def _advance_sprint(self, sprint_id: str, target: SprintStatus) -> Sprint:
        sprint = await self.backend.get_sprint(sprint_id)
        validate_sprint_transition(sprint_id, sprint.status, target)
        return await self.backend.update_sprint(sprint_id, status=target)

    async def attach_to_sprint(self, task_id: str, sprint_id: str) -> SprintMembership:
        return await self.ledger.attach(sprint_id, task_id)

    async def detach_from_sprint(self, task_id: str, sprint_id: str) -> bool:
        return await self.ledger.detach(sprint_id, task_id)

    async def move_to_sprint(
        self, task_id: str, from_sprint: str | None, to_sprint: str | None
    ) -> SprintMembership | None:
        return await self.ledger.move(task_id, from_sprint, to_sprint)

    # --- Planning ---

    def preview_parse(
        self, text: str, variant: ParserVariant = ParserVariant.WORKFLOW
    ) -> list[DraftTask]:
        return parse(text, variant)

    async def suggest_plan(
        self,
        team_id: str,
        *,
        raw_text: str | None = None,
        task_ids: list[str] | None = None,
    ) -> PlanSuggestion:
        """Ask the planning oracle for a sprint proposal.

        Without ``raw_text`` or ``task_ids`` the team's backlog is proposed.
        """
        if self._planning_oracle is None:
            raise ValidationError("No planning oracle configured")
        members = await self.backend.list_team_members(team_id)
        capacity = sum(m.capacity_hours for m in members) or self.config.member_capacity_hours
        duration = self.config.sprint_duration_days

        if raw_text is not None:
            drafts = parse(raw_text)
            if not drafts:
                raise ValidationError("No tasks found in the input text")
            request = PlanRequest(
                team_capacity_hours=capacity,
                sprint_duration_days=duration,
                drafts=drafts,
                raw_text=raw_text,
            )
        else:
            if task_ids is not None:
                tasks = await self.backend.query_tasks(team_id=team_id, task_ids=task_ids)
            else:
                tasks = (await self.get_board(team_id, BACKLOG)).tasks()
            if not tasks:
                raise ValidationError("No tasks available to plan")
            request = PlanRequest(
                team_capacity_hours=capacity,
                sprint_duration_days=duration,
                tasks=tasks,
            )
        return await self._planning_oracle.suggest(request)

    async def commit_plan(self, plan: SprintPlan) -> CommitResult:
        return await self.reconciler.commit(plan)

    # --- Analytics ---

    async def get_scope_alerts(self, team_id: str) -> list[ScopeAlert]:
        return await self.scope_analyzer.scope_alerts(team_id)

    async def get_risk_heatmap(self, team_id: str, current_date: date | None = None) -> RiskReport:
        current_date = current_date or self._clock().date()
        request = await build_risk_request(self.backend, team_id, current_date)
        return await self._risk_oracle.assess(request)

    async def get_velocity(self, team_id: str, since: date | None = None) -> list[SprintVelocity]:
        if not team_id:
            raise ValidationError("Velocity needs a team")
        snapshot = await load_snapshot(self.backend, team_id)
        return sprint_velocity(snapshot, since)

    async def get_forecast(self, sprint_id: str, current_date: date | None = None) -> SprintForecast:
        current_date = current_date or self._clock().date()
        sprint = await self.backend.get_sprint(sprint_id)
        snapshot = await load_snapshot(self.backend, sprint.team_id)
        members = await self.backend.list_team_members(sprint.team_id)
        return forecast_sprint(snapshot, sprint_id, current_date, member_count=len(members))
