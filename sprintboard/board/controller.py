"""Board sessions and the status transition controller.

A ``BoardSession`` holds the state one board view works from: the team, the
scope and filters, the loaded snapshot, and the board projected from it. The
controller moves tasks between columns optimistically: the session shows the
new column first, the backend write follows, and a failed write puts the
session back to the prior column.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from ..workflow.exceptions import InvalidTransitionError, RemoteError, ValidationError
from ..workflow.interface import TrackerBackend
from ..workflow.models import TaskStatus
from ..workflow.transitions import FREE_FORM_TRANSITIONS, validate_task_transition
from .projection import (
    ALL,
    NO_FILTERS,
    Board,
    BoardFilters,
    BoardScope,
    BoardSnapshot,
    load_snapshot,
    project,
)

logger = logging.getLogger(__name__)


class BoardSession:
    """Per-board state, passed explicitly to every operation.

    The projected board is cached and only recomputed when the snapshot,
    scope or filters change.
    """

    def __init__(
        self,
        backend: TrackerBackend,
        team_id: str,
        scope: BoardScope | str = ALL,
        filters: BoardFilters = NO_FILTERS,
    ) -> None:
        if not team_id:
            raise ValidationError("A board session needs a team")
        self._backend = backend
        self.team_id = team_id
        self._scope = BoardScope.parse(scope)
        self._filters = filters
        self._snapshot = BoardSnapshot(team_id=team_id)
        self._board: Board | None = None

    @property
    def scope(self) -> BoardScope:
        return self._scope

    @property
    def filters(self) -> BoardFilters:
        return self._filters

    @property
    def snapshot(self) -> BoardSnapshot:
        return self._snapshot

    @property
    def board(self) -> Board:
        if self._board is None:
            self._board = project(self._snapshot, self.team_id, self._scope, self._filters)
        return self._board

    async def refresh(self) -> Board:
        """Reload the snapshot from the backend."""
        self.replace_snapshot(await load_snapshot(self._backend, self.team_id))
        return self.board

    def replace_snapshot(self, snapshot: BoardSnapshot) -> None:
        self._snapshot = snapshot
        self._board = None

    def set_scope(self, scope: BoardScope | str) -> None:
        scope = BoardScope.parse(scope)
        if scope != self._scope:
            self._scope = scope
            self._board = None

    def set_filters(self, filters: BoardFilters) -> None:
        if filters != self._filters:
            self._filters = filters
            self._board = None


@dataclass
class MoveResult:
    success: bool
    task_id: str
    previous_status: TaskStatus | None = None
    status: TaskStatus | None = None
    error: Exception | None = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "task_id": self.task_id,
            "previous_status": self.previous_status.value if self.previous_status else None,
            "status": self.status.value if self.status else None,
            "error": str(self.error) if self.error else None,
        }


class StatusTransitionController:
    """Moves tasks between board columns.

    Every move returns a ``MoveResult``; callers decide how to surface a
    failure. There is no retry and no queue. Ordering inside a column is not
    persisted.
    """

    def __init__(
        self,
        backend: TrackerBackend,
        rules: frozenset[tuple[TaskStatus, TaskStatus]] = FREE_FORM_TRANSITIONS,
    ) -> None:
        self._backend = backend
        self._rules = rules

    async def move(self, session: BoardSession, task_id: str, target) -> MoveResult:
        try:
            target = TaskStatus.parse(target)
        except ValidationError as e:
            return MoveResult(success=False, task_id=task_id, error=e)

        task = session.snapshot.task(task_id)
        if task is None:
            return MoveResult(
                success=False,
                task_id=task_id,
                error=ValidationError(f"Task {task_id} is not on this board"),
            )

        previous = task.status
        try:
            validate_task_transition(task_id, previous, target, self._rules)
        except InvalidTransitionError as e:
            return MoveResult(
                success=False, task_id=task_id, previous_status=previous, status=previous, error=e
            )

        if previous is target:
            return MoveResult(success=True, task_id=task_id, previous_status=previous, status=target)

        # Optimistic apply
        session.replace_snapshot(session.snapshot.with_task(replace(task, status=target)))

        try:
            await self._backend.update_task(task_id, status=target)
        except Exception as e:
            error = e if isinstance(e, RemoteError) else RemoteError(f"Could not move task {task_id}: {e}")
            current = session.snapshot.task(task_id)
            if current is not None:
                session.replace_snapshot(
                    session.snapshot.with_task(replace(current, status=previous))
                )
            logger.warning(
                "Reverted task %s to %s after failed move to %s: %s",
                task_id, previous.value, target.value, e,
            )
            return MoveResult(
                success=False, task_id=task_id, previous_status=previous, status=previous, error=error
            )

        return MoveResult(success=True, task_id=task_id, previous_status=previous, status=target)
