"""In-memory tracker backend for testing."""

from collections.abc import Iterable
from dataclasses import fields as dataclass_fields
from datetime import date, datetime, timezone

from ..workflow.models import (
    Priority,
    Sprint,
    SprintMembership,
    SprintStatus,
    Task,
    TaskStatus,
    TaskType,
    TeamMember,
)

_TASK_FIELDS = {f.name for f in dataclass_fields(Task)} - {"id", "created_at"}
_SPRINT_FIELDS = {f.name for f in dataclass_fields(Sprint)} - {"id", "created_at"}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryAdapter:
    """TrackerBackend backed by dicts. For tests and demos."""

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}
        self._sprints: dict[str, Sprint] = {}
        # Keyed by task id: a task sits on at most one sprint.
        self._memberships: dict[str, SprintMembership] = {}
        self._members: dict[str, list[TeamMember]] = {}
        self._next_task_id = 1
        self._next_sprint_id = 1

    # --- Tasks ---

    async def create_task(
        self,
        team_id: str,
        title: str,
        *,
        description: str | None = None,
        type: TaskType = TaskType.TASK,
        status: TaskStatus = TaskStatus.TODO,
        priority: Priority = Priority.MEDIUM,
        story_points: int | None = None,
        assignee_id: str | None = None,
        due_date: date | None = None,
        epic_id: str | None = None,
        label_ids: Iterable[str] = (),
        created_at: datetime | None = None,
    ) -> Task:
        task_id = f"t-{self._next_task_id}"
        self._next_task_id += 1
        task = Task(
            id=task_id,
            team_id=team_id,
            title=title,
            created_at=created_at or _now(),
            description=description,
            type=type,
            status=status,
            priority=priority,
            story_points=story_points,
            assignee_id=assignee_id,
            due_date=due_date,
            epic_id=epic_id,
            label_ids=frozenset(label_ids),
        )
        self._tasks[task_id] = task
        return task

    async def get_task(self, task_id: str) -> Task:
        if task_id not in self._tasks:
            raise KeyError(f"Task not found: {task_id}")
        return self._tasks[task_id]

    async def update_task(self, task_id: str, **fields) -> Task:
        task = await self.get_task(task_id)
        for key in fields:
            if key not in _TASK_FIELDS:
                raise ValueError(f"Unknown task field: {key}")
        for key, value in fields.items():
            if key == "label_ids":
                value = frozenset(value)
            setattr(task, key, value)
        return task

    async def delete_task(self, task_id: str) -> None:
        await self.get_task(task_id)
        del self._tasks[task_id]
        self._memberships.pop(task_id, None)

    async def query_tasks(
        self,
        team_id: str | None = None,
        task_ids: Iterable[str] | None = None,
    ) -> list[Task]:
        tasks = list(self._tasks.values())
        if team_id is not None:
            tasks = [t for t in tasks if t.team_id == team_id]
        if task_ids is not None:
            wanted = set(task_ids)
            tasks = [t for t in tasks if t.id in wanted]
        return tasks

    # --- Sprints ---

    async def create_sprint(
        self,
        team_id: str,
        name: str,
        start_date: date,
        end_date: date,
        goal: str | None = None,
        status: SprintStatus = SprintStatus.PLANNING,
    ) -> Sprint:
        sprint_id = f"sp-{self._next_sprint_id}"
        self._next_sprint_id += 1
        sprint = Sprint(
            id=sprint_id,
            team_id=team_id,
            name=name,
            start_date=start_date,
            end_date=end_date,
            status=status,
            goal=goal,
            created_at=_now(),
        )
        self._sprints[sprint_id] = sprint
        return sprint

    async def get_sprint(self, sprint_id: str) -> Sprint:
        if sprint_id not in self._sprints:
            raise KeyError(f"Sprint not found: {sprint_id}")
        return self._sprints[sprint_id]

    async def update_sprint(self, sprint_id: str, **fields) -> Sprint:
        sprint = await self.get_sprint(sprint_id)
        for key in fields:
            if key not in _SPRINT_FIELDS:
                raise ValueError(f"Unknown sprint field: {key}")
        for key, value in fields.items():
            setattr(sprint, key, value)
        return sprint

    async def delete_sprint(self, sprint_id: str) -> None:
        await self.get_sprint(sprint_id)
        del self._sprints[sprint_id]
        self._memberships = {
            task_id: m for task_id, m in self._memberships.items() if m.sprint_id != sprint_id
        }

    async def list_sprints(
        self,
        team_id: str | None = None,
        status: SprintStatus | None = None,
    ) -> list[Sprint]:
        sprints = list(self._sprints.values())
        if team_id is not None:
            sprints = [s for s in sprints if s.team_id == team_id]
        if status is not None:
            sprints = [s for s in sprints if s.status is status]
        return sprints

    # --- Membership ledger ---

    async def attach_membership(
        self, sprint_id: str, task_id: str, added_at: datetime | None = None
    ) -> SprintMembership:
        await self.get_sprint(sprint_id)
        await self.get_task(task_id)
        existing = self._memberships.get(task_id)
        if existing is not None:
            if existing.sprint_id == sprint_id:
                return existing
            raise ValueError(
                f"Task {task_id} is already on sprint {existing.sprint_id}"
            )
        membership = SprintMembership(sprint_id, task_id, added_at or _now())
        self._memberships[task_id] = membership
        return membership

    async def detach_membership(self, sprint_id: str, task_id: str) -> bool:
        existing = self._memberships.get(task_id)
        if existing is None or existing.sprint_id != sprint_id:
            return False
        del self._memberships[task_id]
        return True

    async def reassign_membership(
        self, task_id: str, sprint_id: str, added_at: datetime | None = None
    ) -> SprintMembership:
        await self.get_sprint(sprint_id)
        await self.get_task(task_id)
        membership = SprintMembership(sprint_id, task_id, added_at or _now())
        self._memberships[task_id] = membership
        return membership

    async def query_memberships(
        self,
        sprint_id: str | None = None,
        task_id: str | None = None,
        team_id: str | None = None,
    ) -> list[SprintMembership]:
        rows = list(self._memberships.values())
        if sprint_id is not None:
            rows = [m for m in rows if m.sprint_id == sprint_id]
        if task_id is not None:
            rows = [m for m in rows if m.task_id == task_id]
        if team_id is not None:
            rows = [m for m in rows if self._sprints[m.sprint_id].team_id == team_id]
        return rows

    # --- Teams ---

    def add_team_member(
        self, team_id: str, member_id: str, name: str, capacity_hours: int = 40
    ) -> TeamMember:
        member = TeamMember(id=member_id, team_id=team_id, name=name, capacity_hours=capacity_hours)
        self._members.setdefault(team_id, []).append(member)
        return member

    async def list_team_members(self, team_id: str) -> list[TeamMember]:
        return list(self._members.get(team_id, []))
