"""Task store: validated task creation and field edits."""

from __future__ import annotations

import logging
from datetime import date

from ..workflow.exceptions import ValidationError
from ..workflow.interface import TrackerBackend
from ..workflow.models import Priority, Task, TaskStatus, TaskType

logger = logging.getLogger(__name__)

_ENUM_FIELDS = {
    "type": TaskType,
    "status": TaskStatus,
    "priority": Priority,
}


def _clean_title(title) -> str:
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Task title is required")
    return title.strip()


def _clean_points(points) -> int | None:
    if points is None:
        return None
    # bool is an int subclass; reject it explicitly.
    if isinstance(points, bool) or not isinstance(points, int) or points < 0:
        raise ValidationError(f"Story points must be a non-negative integer, got {points!r}")
    return points


def _clean_due_date(value) -> date | None:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid due date {value!r}") from e


class TaskStore:
    """Validates task fields before they reach the backend.

    Nothing is written when validation fails.
    """

    def __init__(self, backend: TrackerBackend) -> None:
        self._backend = backend

    async def create_task(self, fields: dict) -> Task:
        team_id = fields.get("team_id")
        if not team_id:
            raise ValidationError("Task team reference is required")
        title = _clean_title(fields.get("title"))

        unknown = set(fields) - {
            "team_id", "title", "description", "type", "status", "priority",
            "story_points", "assignee_id", "due_date", "epic_id", "label_ids",
        }
        if unknown:
            raise ValidationError(f"Unknown task fields: {', '.join(sorted(unknown))}")

        # Unset enum fields fall back to the backend defaults.
        fields = {k: v for k, v in fields.items() if not (k in _ENUM_FIELDS and v is None)}
        cleaned = self._clean(fields)
        await self._check_assignee(team_id, cleaned.get("assignee_id"))

        task = await self._backend.create_task(team_id, title, **cleaned)
        logger.debug("Created task %s on team %s", task.id, team_id)
        return task

    async def update_task(self, task_id: str, **fields) -> Task:
        if "title" in fields:
            fields["title"] = _clean_title(fields["title"])
        cleaned = self._clean(fields)
        if cleaned.get("assignee_id") is not None:
            task = await self._backend.get_task(task_id)
            await self._check_assignee(task.team_id, cleaned["assignee_id"])
        return await self._backend.update_task(task_id, **{**fields, **cleaned})

    async def delete_task(self, task_id: str) -> None:
        await self._backend.delete_task(task_id)
        logger.debug("Deleted task %s", task_id)

    def _clean(self, fields: dict) -> dict:
        cleaned: dict = {}
        for key, enum_cls in _ENUM_FIELDS.items():
            if fields.get(key) is not None:
                cleaned[key] = enum_cls.parse(fields[key])
        if "story_points" in fields:
            cleaned["story_points"] = _clean_points(fields["story_points"])
        if "due_date" in fields:
            cleaned["due_date"] = _clean_due_date(fields["due_date"])
        if "description" in fields:
            cleaned["description"] = fields["description"] or None
        for key in ("assignee_id", "epic_id"):
            if key in fields:
                cleaned[key] = fields[key] or None
        if "label_ids" in fields:
            cleaned["label_ids"] = frozenset(fields["label_ids"] or ())
        return cleaned

    async def _check_assignee(self, team_id: str, assignee_id: str | None) -> None:
        if assignee_id is None:
            return
        members = await self._backend.list_team_members(team_id)
        if assignee_id not in {m.id for m in members}:
            raise ValidationError(
                f"Assignee {assignee_id} is not a member of team {team_id}"
            )
