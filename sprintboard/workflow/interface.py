"""Abstract persistence backend protocol."""

from collections.abc import Iterable
from datetime import date, datetime
from typing import Protocol

from .models import (
    Priority,
    Sprint,
    SprintMembership,
    SprintStatus,
    Task,
    TaskStatus,
    TaskType,
    TeamMember,
)


class TrackerBackend(Protocol):
    """Interface that any persistence backend must implement.

    Covers the task store, sprints, and the sprint membership ledger.
    Lookups of unknown ids raise KeyError; store faults raise RemoteError.
    """

    # Tasks

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
    ) -> Task: ...

    async def get_task(self, task_id: str) -> Task: ...

    async def update_task(self, task_id: str, **fields) -> Task: ...

    async def delete_task(self, task_id: str) -> None: ...

    async def query_tasks(
        self,
        team_id: str | None = None,
        task_ids: Iterable[str] | None = None,
    ) -> list[Task]: ...

    # Sprints

    async def create_sprint(
        self,
        team_id: str,
        name: str,
        start_date: date,
        end_date: date,
        goal: str | None = None,
        status: SprintStatus = SprintStatus.PLANNING,
    ) -> Sprint: ...

    async def get_sprint(self, sprint_id: str) -> Sprint: ...

    async def update_sprint(self, sprint_id: str, **fields) -> Sprint: ...

    async def delete_sprint(self, sprint_id: str) -> None: ...

    async def list_sprints(
        self,
        team_id: str | None = None,
        status: SprintStatus | None = None,
    ) -> list[Sprint]: ...

    # Membership ledger

    async def attach_membership(
        self, sprint_id: str, task_id: str, added_at: datetime | None = None
    ) -> SprintMembership: ...

    async def detach_membership(self, sprint_id: str, task_id: str) -> bool: ...

    async def reassign_membership(
        self, task_id: str, sprint_id: str, added_at: datetime | None = None
    ) -> SprintMembership: ...

    async def query_memberships(
        self,
        sprint_id: str | None = None,
        task_id: str | None = None,
        team_id: str | None = None,
    ) -> list[SprintMembership]: ...

    # Teams

    async def list_team_members(self, team_id: str) -> list[TeamMember]: ...
