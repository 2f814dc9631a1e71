"""Risk heatmap: overloaded members, delayed and stalled tasks.

The report shape is shared by every ``RiskOracle``. ``HeuristicRiskOracle``
answers locally with fixed rules; the Claude-backed oracle lives in
``sprintboard.planning.oracle``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time, timezone
from typing import Protocol

from ..workflow.exceptions import OracleResponseError, ValidationError
from ..workflow.interface import TrackerBackend
from ..workflow.models import Priority, RiskLevel, Task, TaskStatus, TeamMember

MAX_TASKS_PER_MEMBER = 5
MAX_POINTS_PER_MEMBER = 20
STALE_TODO_DAYS = 3


@dataclass
class RiskRequest:
    tasks: list[Task]
    team_members: list[TeamMember]
    current_date: date


@dataclass
class OverloadedMember:
    member_id: str
    member_name: str
    task_count: int
    total_story_points: int
    risk: RiskLevel
    reason: str


@dataclass
class DelayedTask:
    task_id: str
    task_title: str
    days_overdue: int
    risk: RiskLevel


@dataclass
class BlockedTask:
    task_id: str
    task_title: str
    blocking_reason: str
    risk: RiskLevel


@dataclass
class RiskReport:
    overloaded_members: list[OverloadedMember] = field(default_factory=list)
    delayed_tasks: list[DelayedTask] = field(default_factory=list)
    blocked_tasks: list[BlockedTask] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        def _plain(item) -> dict:
            data = asdict(item)
            data["risk"] = item.risk.value
            return data

        return {
            "overloaded_members": [_plain(m) for m in self.overloaded_members],
            "delayed_tasks": [_plain(t) for t in self.delayed_tasks],
            "blocked_tasks": [_plain(t) for t in self.blocked_tasks],
            "recommendations": list(self.recommendations),
        }

    @classmethod
    def from_dict(cls, payload: dict) -> RiskReport:
        """Build a report from oracle JSON, checking only its shape.

        Accepts both snake_case and the camelCase keys models tend to emit.
        """
        if not isinstance(payload, dict):
            raise OracleResponseError("Risk oracle response must be a JSON object")

        def _list(*keys: str) -> list:
            for key in keys:
                if key in payload:
                    value = payload[key]
                    if not isinstance(value, list):
                        raise OracleResponseError(f"Risk oracle field {key!r} must be a list")
                    return value
            return []

        def _get(item: dict, *keys: str, default=None):
            for key in keys:
                if key in item:
                    return item[key]
            return default

        try:
            return cls(
                overloaded_members=[
                    OverloadedMember(
                        member_id=str(_get(m, "member_id", "memberId")),
                        member_name=str(_get(m, "member_name", "memberName", default="")),
                        task_count=int(_get(m, "task_count", "taskCount", default=0)),
                        total_story_points=int(_get(m, "total_story_points", "totalStoryPoints", default=0)),
                        risk=RiskLevel.parse(_get(m, "risk", "riskLevel", default="medium")),
                        reason=str(_get(m, "reason", default="")),
                    )
                    for m in _list("overloaded_members", "overloadedMembers")
                ],
                delayed_tasks=[
                    DelayedTask(
                        task_id=str(_get(t, "task_id", "taskId")),
                        task_title=str(_get(t, "task_title", "taskTitle", default="")),
                        days_overdue=int(_get(t, "days_overdue", "daysOverdue", default=0)),
                        risk=RiskLevel.parse(_get(t, "risk", "riskLevel", default="medium")),
                    )
                    for t in _list("delayed_tasks", "delayedTasks")
                ],
                blocked_tasks=[
                    BlockedTask(
                        task_id=str(_get(t, "task_id", "taskId")),
                        task_title=str(_get(t, "task_title", "taskTitle", default="")),
                        blocking_reason=str(_get(t, "blocking_reason", "blockingReason", default="")),
                        risk=RiskLevel.parse(_get(t, "risk", "riskLevel", default="medium")),
                    )
                    for t in _list("blocked_tasks", "blockedTasks")
                ],
                recommendations=[str(r) for r in _list("recommendations")],
            )
        except (AttributeError, TypeError, ValueError, ValidationError) as e:
            raise OracleResponseError(f"Malformed risk oracle response: {e}") from e


class RiskOracle(Protocol):
    async def assess(self, request: RiskRequest) -> RiskReport: ...


async def build_risk_request(
    backend: TrackerBackend, team_id: str, current_date: date
) -> RiskRequest:
    """Collect the team's unfinished tasks and its members."""
    tasks = [
        t for t in await backend.query_tasks(team_id=team_id)
        if t.status is not TaskStatus.DONE
    ]
    members = await backend.list_team_members(team_id)
    return RiskRequest(tasks=tasks, team_members=members, current_date=current_date)


class HeuristicRiskOracle:
    """Rule-based risk assessment.

    Overloaded: more than 5 open tasks or more than 20 points per person.
    Delayed: past the due date. Blocked: still in todo more than 3 days after
    creation, or high priority and not started.
    """

    async def assess(self, request: RiskRequest) -> RiskReport:
        open_tasks = [t for t in request.tasks if t.status is not TaskStatus.DONE]
        report = RiskReport(
            overloaded_members=self._overloaded(open_tasks, request.team_members),
            delayed_tasks=self._delayed(open_tasks, request.current_date),
            blocked_tasks=self._blocked(open_tasks, request.current_date),
        )
        report.recommendations = self._recommend(report)
        return report

    def _overloaded(self, tasks: list[Task], members: list[TeamMember]) -> list[OverloadedMember]:
        result = []
        for member in members:
            mine = [t for t in tasks if t.assignee_id == member.id]
            count = len(mine)
            points = sum(t.points for t in mine)
            too_many = count > MAX_TASKS_PER_MEMBER
            too_big = points > MAX_POINTS_PER_MEMBER
            if not (too_many or too_big):
                continue
            reasons = []
            if too_many:
                reasons.append(f"{count} open tasks (limit {MAX_TASKS_PER_MEMBER})")
            if too_big:
                reasons.append(f"{points} story points (limit {MAX_POINTS_PER_MEMBER})")
            result.append(
                OverloadedMember(
                    member_id=member.id,
                    member_name=member.name,
                    task_count=count,
                    total_story_points=points,
                    risk=RiskLevel.HIGH if too_many and too_big else RiskLevel.MEDIUM,
                    reason="; ".join(reasons),
                )
            )
        return result

    def _delayed(self, tasks: list[Task], today: date) -> list[DelayedTask]:
        result = []
        for task in tasks:
            if not task.is_overdue(today):
                continue
            days = (today - task.due_date).days
            if days > 7:
                risk = RiskLevel.HIGH
            elif days > 2:
                risk = RiskLevel.MEDIUM
            else:
                risk = RiskLevel.LOW
            result.append(DelayedTask(task.id, task.title, days, risk))
        result.sort(key=lambda d: d.days_overdue, reverse=True)
        return result

    def _blocked(self, tasks: list[Task], today: date) -> list[BlockedTask]:
        now = datetime.combine(today, time.min, tzinfo=timezone.utc)
        result = []
        for task in tasks:
            if task.status is not TaskStatus.TODO:
                continue
            if task.priority is Priority.HIGH:
                result.append(
                    BlockedTask(task.id, task.title, "High priority task not started", RiskLevel.HIGH)
                )
                continue
            age = (now - task.created_at).days
            if age > STALE_TODO_DAYS:
                result.append(
                    BlockedTask(task.id, task.title, f"Still in todo after {age} days", RiskLevel.MEDIUM)
                )
        return result

    def _recommend(self, report: RiskReport) -> list[str]:
        recs = []
        for member in report.overloaded_members:
            recs.append(f"Rebalance work away from {member.member_name or member.member_id}")
        if report.delayed_tasks:
            recs.append(f"Re-plan or re-date {len(report.delayed_tasks)} overdue task(s)")
        if report.blocked_tasks:
            recs.append(f"Check {len(report.blocked_tasks)} task(s) that have not started")
        return recs
