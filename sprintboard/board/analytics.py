"""Sprint analytics derived from the membership ledger.

Velocity compares planned and completed points per sprint. The forecast
projects whether an active sprint will finish, with a short burndown. Both
are pure functions over a ``BoardSnapshot``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, timedelta

from ..workflow.exceptions import ValidationError
from ..workflow.models import Sprint, SprintStatus, Task, TaskStatus
from .projection import BoardSnapshot

BEHIND_SCHEDULE_MARGIN_PCT = 10.0
MAX_IN_PROGRESS_SHARE = 0.5
BURNDOWN_HORIZON_DAYS = 7


def _round(value: float) -> int:
    """Round half up, as dashboards show it."""
    return int(math.floor(value + 0.5))


def sprint_tasks(snapshot: BoardSnapshot, sprint_id: str) -> list[Task]:
    """Tasks with a membership row on the sprint, in row order."""
    by_id = {t.id: t for t in snapshot.tasks}
    return [by_id[m.task_id] for m in snapshot.memberships if m.sprint_id == sprint_id and m.task_id in by_id]


def _done_points(tasks: list[Task]) -> int:
    return sum(t.points for t in tasks if t.status is TaskStatus.DONE)


@dataclass
class SprintVelocity:
    sprint_id: str
    sprint_name: str
    status: SprintStatus
    planned_points: int
    completed_points: int

    @property
    def completion_rate(self) -> int:
        if self.planned_points == 0:
            return 0
        return _round(self.completed_points / self.planned_points * 100)

    def to_dict(self) -> dict:
        return {
            "sprint_id": self.sprint_id,
            "sprint_name": self.sprint_name,
            "status": self.status.value,
            "planned_points": self.planned_points,
            "completed_points": self.completed_points,
            "completion_rate": self.completion_rate,
        }


def sprint_velocity(snapshot: BoardSnapshot, since: date | None = None) -> list[SprintVelocity]:
    """Planned vs completed points for each of the team's sprints.

    Sprints are ordered by start date. ``since`` drops sprints that started
    before it.
    """
    sprints = [
        s for s in snapshot.sprints
        if s.team_id == snapshot.team_id and (since is None or s.start_date >= since)
    ]
    sprints.sort(key=lambda s: (s.start_date, s.id))
    result = []
    for sprint in sprints:
        tasks = sprint_tasks(snapshot, sprint.id)
        result.append(
            SprintVelocity(
                sprint_id=sprint.id,
                sprint_name=sprint.name,
                status=sprint.status,
                planned_points=sum(t.points for t in tasks),
                completed_points=_done_points(tasks),
            )
        )
    return result


def average_velocity(velocities: list[SprintVelocity]) -> float:
    """Mean completed points over completed sprints; 0.0 when there are none."""
    finished = [v.completed_points for v in velocities if v.status is SprintStatus.COMPLETED]
    return sum(finished) / len(finished) if finished else 0.0


@dataclass
class BurndownPoint:
    day: date
    predicted_remaining: int
    actual_remaining: int | None = None

    def to_dict(self) -> dict:
        return {
            "date": self.day.isoformat(),
            "predicted": self.predicted_remaining,
            "actual": self.actual_remaining,
        }


@dataclass
class SprintForecast:
    sprint_id: str
    sprint_name: str
    total_tasks: int
    completed_tasks: int
    total_points: int
    completed_points: int
    progress_pct: float
    time_progress_pct: float
    remaining_days: int
    completion_probability: int
    confidence: int
    risk_factors: list[str] = field(default_factory=list)
    recommended_actions: list[str] = field(default_factory=list)
    burndown: list[BurndownPoint] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "sprint_id": self.sprint_id,
            "sprint_name": self.sprint_name,
            "completion_probability": self.completion_probability,
            "confidence": self.confidence,
            "risk_factors": list(self.risk_factors),
            "recommended_actions": list(self.recommended_actions),
            "burndown": [p.to_dict() for p in self.burndown],
            "progress_pct": _round(self.progress_pct),
            "time_progress_pct": _round(self.time_progress_pct),
            "tasks_completed": self.completed_tasks,
            "total_tasks": self.total_tasks,
            "remaining_days": self.remaining_days,
        }


def _find_sprint(snapshot: BoardSnapshot, sprint_id: str) -> Sprint:
    for sprint in snapshot.sprints:
        if sprint.id == sprint_id:
            return sprint
    raise ValidationError(f"Sprint {sprint_id} is not on team {snapshot.team_id}'s board")


def forecast_sprint(
    snapshot: BoardSnapshot,
    sprint_id: str,
    today: date,
    member_count: int = 0,
) -> SprintForecast:
    """Estimate whether the sprint finishes on time.

    Progress is done points over planned points; time progress is elapsed
    days over sprint length. The probability starts at progress, is scaled
    by how far ahead or behind the sprint is, then loses 10 per risk factor
    (at most 30) and never drops below 10. Before the start date no time has
    elapsed.
    """
    sprint = _find_sprint(snapshot, sprint_id)
    tasks = sprint_tasks(snapshot, sprint_id)

    total_tasks = len(tasks)
    completed_tasks = sum(1 for t in tasks if t.status is TaskStatus.DONE)
    in_progress = sum(1 for t in tasks if t.status is TaskStatus.IN_PROGRESS)
    unassigned = sum(1 for t in tasks if not t.assignee_id)
    overdue = sum(1 for t in tasks if t.is_overdue(today))

    total_points = sum(t.points for t in tasks)
    completed_points = _done_points(tasks)
    progress = completed_points / total_points * 100 if total_points else 0.0

    total_days = (sprint.end_date - sprint.start_date).days
    elapsed_days = max(0, (today - sprint.start_date).days)
    remaining_days = max(0, total_days - elapsed_days)
    time_progress = elapsed_days / total_days * 100 if total_days > 0 else 0.0

    behind = progress < time_progress - BEHIND_SCHEDULE_MARGIN_PCT
    crowded = in_progress > total_tasks * MAX_IN_PROGRESS_SHARE

    risks: list[str] = []
    actions: list[str] = []
    if unassigned:
        risks.append(f"{unassigned} tasks without assignees")
        actions.append("Assign remaining unassigned tasks to team members")
    if behind:
        risks.append("Sprint progress behind schedule")
        actions.append("Consider reducing sprint scope or extending timeline")
    if crowded:
        risks.append("Too many tasks in progress simultaneously")
        actions.append("Focus on completing in-progress tasks before starting new ones")
    if overdue:
        risks.append(f"{overdue} overdue tasks")
        actions.append("Prioritize overdue tasks for immediate attention")
    days_to_friday = (4 - today.weekday()) % 7
    if days_to_friday <= remaining_days <= 7:
        risks.append("Weekend overlap in remaining sprint time")
    if not risks:
        actions.append("Continue with current pace - sprint is on track")

    probability = progress
    if time_progress > 80 and progress < 60:
        probability *= 0.7
    elif time_progress < 50 and progress > 70:
        probability = min(95.0, probability * 1.1)
    probability = max(10.0, probability - min(30, len(risks) * 10))

    confidence = min(95, 60 + total_tasks * 5 + member_count * 10)

    remaining_points = total_points - completed_points
    burn_rate = completed_points / max(1, elapsed_days)
    burndown = [
        BurndownPoint(
            day=today + timedelta(days=day),
            predicted_remaining=_round(max(0.0, remaining_points - burn_rate * day)),
            actual_remaining=remaining_points if day == 0 else None,
        )
        for day in range(min(remaining_days, BURNDOWN_HORIZON_DAYS) + 1)
    ]

    return SprintForecast(
        sprint_id=sprint.id,
        sprint_name=sprint.name,
        total_tasks=total_tasks,
        completed_tasks=completed_tasks,
        total_points=total_points,
        completed_points=completed_points,
        progress_pct=progress,
        time_progress_pct=time_progress,
        remaining_days=remaining_days,
        completion_probability=_round(probability),
        confidence=confidence,
        risk_factors=risks,
        recommended_actions=actions,
        burndown=burndown,
    )
