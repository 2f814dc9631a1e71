"""Scope-creep analysis for active sprints."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, time, timezone

from ..workflow.interface import TrackerBackend
from ..workflow.models import RiskLevel, Sprint, SprintMembership, SprintStatus, Task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopeThresholds:
    """Percentage increases above which an alert is raised."""

    medium_pct: float = 15.0
    high_pct: float = 25.0


DEFAULT_THRESHOLDS = ScopeThresholds()


@dataclass
class ScopeAlert:
    sprint_id: str
    sprint_name: str
    increase_pct: float
    risk: RiskLevel
    original_points: int
    current_points: int
    added_task_titles: list[str] = field(default_factory=list)
    warning: str = ""
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "sprint_id": self.sprint_id,
            "sprint_name": self.sprint_name,
            "increase_pct": round(self.increase_pct, 1),
            "risk": self.risk.value,
            "original_points": self.original_points,
            "current_points": self.current_points,
            "added_task_titles": list(self.added_task_titles),
            "warning": self.warning,
            "recommendations": list(self.recommendations),
        }


@dataclass
class ScopeReport:
    sprint: Sprint
    original_points: int
    current_points: int
    increase_pct: float | None
    risk: RiskLevel | None
    added_task_titles: list[str] = field(default_factory=list)

    @property
    def alert(self) -> ScopeAlert | None:
        if self.risk is None or self.increase_pct is None:
            return None
        return ScopeAlert(
            sprint_id=self.sprint.id,
            sprint_name=self.sprint.name,
            increase_pct=self.increase_pct,
            risk=self.risk,
            original_points=self.original_points,
            current_points=self.current_points,
            added_task_titles=list(self.added_task_titles),
            warning=(
                f"Sprint '{self.sprint.name}' grew {self.increase_pct:.0f}% "
                f"({self.original_points} → {self.current_points} points) since it started"
            ),
            recommendations=_recommendations(self.risk, self.added_task_titles),
        )


def _recommendations(risk: RiskLevel, added: list[str]) -> list[str]:
    recs = []
    if added:
        recs.append(f"Review the {len(added)} task(s) added after the sprint started")
    if risk is RiskLevel.HIGH:
        recs.append("Move lower-priority work back to the backlog or renegotiate the sprint goal")
    else:
        recs.append("Watch remaining capacity before accepting more work into the sprint")
    return recs


def sprint_start(sprint: Sprint) -> datetime:
    """Sprint start as a UTC instant (midnight of the start date)."""
    return datetime.combine(sprint.start_date, time.min, tzinfo=timezone.utc)


def classify_increase(increase_pct: float, thresholds: ScopeThresholds = DEFAULT_THRESHOLDS) -> RiskLevel | None:
    if increase_pct > thresholds.high_pct:
        return RiskLevel.HIGH
    if increase_pct > thresholds.medium_pct:
        return RiskLevel.MEDIUM
    return None


def analyze_sprint(
    sprint: Sprint,
    rows: Iterable[tuple[SprintMembership, Task]],
    thresholds: ScopeThresholds = DEFAULT_THRESHOLDS,
) -> ScopeReport:
    """Compare a sprint's points at start with its points now.

    Rows added at or before the start instant are the original scope. With no
    original points there is nothing to compare against and no risk is
    assigned.
    """
    start = sprint_start(sprint)
    rows = list(rows)
    original = [(m, t) for m, t in rows if m.added_at <= start]
    added = [(m, t) for m, t in rows if m.added_at > start]

    original_points = sum(t.points for _, t in original)
    current_points = sum(t.points for _, t in rows)
    added_titles = [t.title for _, t in sorted(added, key=lambda row: row[0].added_at)]

    if original_points == 0:
        return ScopeReport(sprint, original_points, current_points, None, None, added_titles)

    increase_pct = (current_points - original_points) / original_points * 100
    return ScopeReport(
        sprint,
        original_points,
        current_points,
        increase_pct,
        classify_increase(increase_pct, thresholds),
        added_titles,
    )


class ScopeAnalyzer:
    """Reads active sprints from the backend and reports scope creep."""

    def __init__(
        self,
        backend: TrackerBackend,
        thresholds: ScopeThresholds = DEFAULT_THRESHOLDS,
    ) -> None:
        self._backend = backend
        self._thresholds = thresholds

    async def report(self, sprint: Sprint) -> ScopeReport:
        memberships = await self._backend.query_memberships(sprint_id=sprint.id)
        tasks = {
            t.id: t
            for t in await self._backend.query_tasks(task_ids=[m.task_id for m in memberships])
        }
        rows = [(m, tasks[m.task_id]) for m in memberships if m.task_id in tasks]
        return analyze_sprint(sprint, rows, self._thresholds)

    async def scope_alerts(self, team_id: str) -> list[ScopeAlert]:
        alerts = []
        for sprint in await self._backend.list_sprints(team_id=team_id, status=SprintStatus.ACTIVE):
            report = await self.report(sprint)
            alert = report.alert
            if alert is not None:
                logger.info(
                    "Scope creep on sprint %s: %.1f%% (%s)",
                    sprint.id, alert.increase_pct, alert.risk.value,
                )
                alerts.append(alert)
        return alerts
