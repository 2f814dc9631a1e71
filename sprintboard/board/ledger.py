"""Sprint membership ledger.

A membership row links one task to one sprint with the time it was added. A
task with no row is in the backlog. Rows are created on attach, deleted on
detach, and replaced in a single backend call on move.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from ..workflow.exceptions import ValidationError
from ..workflow.interface import TrackerBackend
from ..workflow.models import SprintMembership

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MembershipLedger:
    """Attach, detach and move tasks between sprints of the same team."""

    def __init__(
        self,
        backend: TrackerBackend,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._backend = backend
        self._clock = clock

    async def current_sprint(self, task_id: str) -> str | None:
        rows = await self._backend.query_memberships(task_id=task_id)
        return rows[0].sprint_id if rows else None

    async def attach(self, sprint_id: str, task_id: str) -> SprintMembership:
        """Put a backlog task on a sprint.

        Attaching a task to the sprint it is already on returns the existing
        row with its original ``added_at``.
        """
        await self._check_same_team(sprint_id, task_id)

        rows = await self._backend.query_memberships(task_id=task_id)
        if rows:
            existing = rows[0]
            if existing.sprint_id == sprint_id:
                return existing
            raise ValidationError(
                f"Task {task_id} is already on sprint {existing.sprint_id}; "
                "move it instead of attaching"
            )

        membership = await self._backend.attach_membership(sprint_id, task_id, self._clock())
        logger.info("Attached task %s to sprint %s", task_id, sprint_id)
        return membership

    async def detach(self, sprint_id: str, task_id: str) -> bool:
        """Remove a task from a sprint. Returns False if it was not on it."""
        removed = await self._backend.detach_membership(sprint_id, task_id)
        if removed:
            logger.info("Detached task %s from sprint %s", task_id, sprint_id)
        else:
            logger.debug("Task %s was not on sprint %s", task_id, sprint_id)
        return removed

    async def move(
        self,
        task_id: str,
        from_sprint: str | None,
        to_sprint: str | None,
    ) -> SprintMembership | None:
        """Move a task between sprints, or between a sprint and the backlog.

        ``None`` stands for the backlog on either side. A sprint-to-sprint
        move is one atomic reassignment keyed on the task, so a failure can
        never leave the task unlinked. The new row gets a fresh ``added_at``:
        for the destination sprint the task is new scope.
        """
        current = await self.current_sprint(task_id)
        if current != from_sprint:
            raise ValidationError(
                f"Task {task_id} is on {current or 'the backlog'}, "
                f"not {from_sprint or 'the backlog'}"
            )

        if from_sprint == to_sprint:
            if to_sprint is None:
                return None
            rows = await self._backend.query_memberships(sprint_id=to_sprint, task_id=task_id)
            return rows[0]

        if to_sprint is None:
            await self.detach(from_sprint, task_id)
            return None

        if from_sprint is None:
            return await self.attach(to_sprint, task_id)

        await self._check_same_team(to_sprint, task_id)
        membership = await self._backend.reassign_membership(task_id, to_sprint, self._clock())
        logger.info("Moved task %s from sprint %s to sprint %s", task_id, from_sprint, to_sprint)
        return membership

    async def _check_same_team(self, sprint_id: str, task_id: str) -> None:
        try:
            sprint = await self._backend.get_sprint(sprint_id)
            task = await self._backend.get_task(task_id)
        except KeyError as e:
            raise ValidationError(str(e.args[0]) if e.args else str(e)) from e
        if sprint.team_id != task.team_id:
            raise ValidationError(
                f"Task {task_id} (team {task.team_id}) cannot join sprint "
                f"{sprint_id} of team {sprint.team_id}"
            )
