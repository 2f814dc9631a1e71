"""Board projection: per-status columns derived from tasks and memberships.

``project`` is a pure function over an immutable ``BoardSnapshot``. Loading
the snapshot is the only step that talks to the backend.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum

from ..workflow.exceptions import ValidationError
from ..workflow.interface import TrackerBackend
from ..workflow.models import Sprint, SprintMembership, Task, TaskStatus


class ScopeKind(Enum):
    ALL = "all"
    BACKLOG = "backlog"
    SPRINT = "sprint"


@dataclass(frozen=True)
class BoardScope:
    kind: ScopeKind
    sprint_id: str | None = None

    @classmethod
    def sprint(cls, sprint_id: str) -> BoardScope:
        if not sprint_id:
            raise ValidationError("Sprint scope needs a sprint id")
        return cls(ScopeKind.SPRINT, sprint_id)

    @classmethod
    def parse(cls, value: BoardScope | str | None) -> BoardScope:
        """Accept "all", "backlog" or a sprint id."""
        if isinstance(value, BoardScope):
            return value
        if value is None or value == ScopeKind.ALL.value:
            return ALL
        if value == ScopeKind.BACKLOG.value:
            return BACKLOG
        return cls.sprint(value)

    def __str__(self) -> str:
        return self.sprint_id if self.kind is ScopeKind.SPRINT else self.kind.value


ALL = BoardScope(ScopeKind.ALL)
BACKLOG = BoardScope(ScopeKind.BACKLOG)


@dataclass(frozen=True)
class BoardFilters:
    text: str | None = None
    epic_id: str | None = None
    label_id: str | None = None

    def matches(self, task: Task) -> bool:
        if self.text:
            needle = self.text.lower()
            haystacks = (task.title, task.description or "")
            if not any(needle in h.lower() for h in haystacks):
                return False
        if self.epic_id is not None and task.epic_id != self.epic_id:
            return False
        if self.label_id is not None and self.label_id not in task.label_ids:
            return False
        return True


NO_FILTERS = BoardFilters()


@dataclass(frozen=True)
class BoardSnapshot:
    """Point-in-time copy of one team's tasks, sprints and membership rows."""

    team_id: str
    tasks: tuple[Task, ...] = ()
    sprints: tuple[Sprint, ...] = ()
    memberships: tuple[SprintMembership, ...] = ()

    def task(self, task_id: str) -> Task | None:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None

    def sprint_of(self, task_id: str) -> Sprint | None:
        sprint_ids = {m.sprint_id for m in self.memberships if m.task_id == task_id}
        for s in self.sprints:
            if s.id in sprint_ids:
                return s
        return None

    def with_task(self, task: Task) -> BoardSnapshot:
        """Return a new snapshot with ``task`` replacing the one of the same id."""
        tasks = tuple(task if t.id == task.id else t for t in self.tasks)
        return replace(self, tasks=tasks)


@dataclass
class Board:
    team_id: str
    scope: BoardScope
    filters: BoardFilters = NO_FILTERS
    columns: dict[TaskStatus, list[Task]] = field(
        default_factory=lambda: {status: [] for status in TaskStatus}
    )

    def column(self, status: TaskStatus) -> list[Task]:
        return self.columns[status]

    def column_of(self, task_id: str) -> TaskStatus | None:
        for status, tasks in self.columns.items():
            if any(t.id == task_id for t in tasks):
                return status
        return None

    def tasks(self) -> list[Task]:
        """All tasks on the board, column by column."""
        return [t for status in TaskStatus for t in self.columns[status]]

    @property
    def task_count(self) -> int:
        return sum(len(tasks) for tasks in self.columns.values())

    def to_dict(self) -> dict:
        return {
            "team_id": self.team_id,
            "scope": str(self.scope),
            "columns": {
                status.value: [
                    {
                        "id": t.id,
                        "title": t.title,
                        "type": t.type.value,
                        "priority": t.priority.value,
                        "story_points": t.story_points,
                        "assignee_id": t.assignee_id,
                    }
                    for t in tasks
                ]
                for status, tasks in self.columns.items()
            },
        }


async def load_snapshot(backend: TrackerBackend, team_id: str) -> BoardSnapshot:
    """Read everything the projection needs for one team."""
    tasks = await backend.query_tasks(team_id=team_id)
    sprints = await backend.list_sprints(team_id=team_id)
    memberships = await backend.query_memberships(team_id=team_id)
    return BoardSnapshot(
        team_id=team_id,
        # Copies, so optimistic edits never leak into the backend's objects.
        tasks=tuple(replace(t) for t in tasks),
        sprints=tuple(replace(s) for s in sprints),
        memberships=tuple(memberships),
    )


def _scoped_tasks(snapshot: BoardSnapshot, team_id: str, scope: BoardScope) -> list[Task]:
    team_tasks = [t for t in snapshot.tasks if t.team_id == team_id]

    if scope.kind is ScopeKind.ALL:
        return team_tasks

    if scope.kind is ScopeKind.BACKLOG:
        # Any row on any of the team's sprints, whatever the sprint's status.
        team_sprints = {s.id for s in snapshot.sprints if s.team_id == team_id}
        on_sprint = {m.task_id for m in snapshot.memberships if m.sprint_id in team_sprints}
        return [t for t in team_tasks if t.id not in on_sprint]

    if scope.kind is ScopeKind.SPRINT:
        on_sprint = {m.task_id for m in snapshot.memberships if m.sprint_id == scope.sprint_id}
        return [t for t in team_tasks if t.id in on_sprint]

    raise ValueError(f"Unhandled board scope: {scope.kind}")


def project(
    snapshot: BoardSnapshot,
    team_id: str,
    scope: BoardScope | str = ALL,
    filters: BoardFilters = NO_FILTERS,
) -> Board:
    """Split the team's in-scope, filter-matching tasks into status columns.

    Columns are sorted newest first, ties broken by id.
    """
    scope = BoardScope.parse(scope)
    board = Board(team_id=team_id, scope=scope, filters=filters)
    tasks = [t for t in _scoped_tasks(snapshot, team_id, scope) if filters.matches(t)]
    tasks.sort(key=lambda t: t.id)
    tasks.sort(key=lambda t: t.created_at, reverse=True)
    for task in tasks:
        board.columns[task.status].append(task)
    return board
