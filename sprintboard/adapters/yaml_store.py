"""YAML file tracker backend.

Implements TrackerBackend on top of InMemoryAdapter and persists the whole
store to a single YAML document after every mutation. State survives process
restarts, unlike InMemoryAdapter.
"""

from __future__ import annotations

import contextlib
import os
from datetime import date, datetime
from pathlib import Path

import yaml

from ..workflow.exceptions import RemoteError
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
from .memory import InMemoryAdapter


# ---------------------------------------------------------------------------
# (De)serialization helpers
# ---------------------------------------------------------------------------

def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _date(value) -> date | None:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(value)


def _datetime(value) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _task_to_dict(task: Task) -> dict:
    return {
        "id": task.id,
        "team_id": task.team_id,
        "title": task.title,
        "description": task.description,
        "type": task.type.value,
        "status": task.status.value,
        "priority": task.priority.value,
        "story_points": task.story_points,
        "assignee_id": task.assignee_id,
        "due_date": _iso(task.due_date),
        "epic_id": task.epic_id,
        "label_ids": sorted(task.label_ids),
        "created_at": _iso(task.created_at),
    }


def _task_from_dict(data: dict) -> Task:
    return Task(
        id=data["id"],
        team_id=data["team_id"],
        title=data["title"],
        created_at=_datetime(data["created_at"]),
        description=data.get("description"),
        type=TaskType(data.get("type", "task")),
        status=TaskStatus(data.get("status", "todo")),
        priority=Priority(data.get("priority", "medium")),
        story_points=data.get("story_points"),
        assignee_id=data.get("assignee_id"),
        due_date=_date(data.get("due_date")),
        epic_id=data.get("epic_id"),
        label_ids=frozenset(data.get("label_ids") or ()),
    )


def _sprint_to_dict(sprint: Sprint) -> dict:
    return {
        "id": sprint.id,
        "team_id": sprint.team_id,
        "name": sprint.name,
        "goal": sprint.goal,
        "status": sprint.status.value,
        "start_date": _iso(sprint.start_date),
        "end_date": _iso(sprint.end_date),
        "created_at": _iso(sprint.created_at),
    }


def _sprint_from_dict(data: dict) -> Sprint:
    return Sprint(
        id=data["id"],
        team_id=data["team_id"],
        name=data["name"],
        start_date=_date(data["start_date"]),
        end_date=_date(data["end_date"]),
        status=SprintStatus(data.get("status", "planning")),
        goal=data.get("goal"),
        created_at=_datetime(data.get("created_at")),
    )


# ---------------------------------------------------------------------------
# YamlFileAdapter
# ---------------------------------------------------------------------------

class YamlFileAdapter(InMemoryAdapter):
    """TrackerBackend persisted to a YAML file."""

    def __init__(self, path: Path | str = "workboard.yaml"):
        super().__init__()
        self._path = Path(path)
        self._saved: dict = {}
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        if not self._path.exists():
            self._saved = self._dump()
            return
        try:
            raw = yaml.safe_load(self._path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise RemoteError(f"Could not read workboard store {self._path}: {e}") from e
        self._apply(raw)
        self._saved = raw

    def _apply(self, raw: dict) -> None:
        self._tasks = {t["id"]: _task_from_dict(t) for t in raw.get("tasks", [])}
        self._sprints = {s["id"]: _sprint_from_dict(s) for s in raw.get("sprints", [])}
        self._memberships = {
            m["task_id"]: SprintMembership(
                sprint_id=m["sprint_id"],
                task_id=m["task_id"],
                added_at=_datetime(m["added_at"]),
            )
            for m in raw.get("memberships", [])
        }
        self._members = {}
        for m in raw.get("team_members", []):
            self._members.setdefault(m["team_id"], []).append(TeamMember(**m))
        next_ids = raw.get("next_ids", {})
        self._next_task_id = next_ids.get("task", len(self._tasks) + 1)
        self._next_sprint_id = next_ids.get("sprint", len(self._sprints) + 1)

    def _dump(self) -> dict:
        return {
            "next_ids": {"task": self._next_task_id, "sprint": self._next_sprint_id},
            "tasks": [_task_to_dict(t) for t in self._tasks.values()],
            "sprints": [_sprint_to_dict(s) for s in self._sprints.values()],
            "memberships": [
                {"sprint_id": m.sprint_id, "task_id": m.task_id, "added_at": _iso(m.added_at)}
                for m in self._memberships.values()
            ],
            "team_members": [
                {
                    "id": m.id,
                    "team_id": m.team_id,
                    "name": m.name,
                    "capacity_hours": m.capacity_hours,
                }
                for members in self._members.values()
                for m in members
            ],
        }

    def _save(self) -> None:
        """Write the store atomically; on failure restore the last saved state."""
        state = self._dump()
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(
                yaml.safe_dump(state, sort_keys=False, allow_unicode=True),
                encoding="utf-8",
            )
            os.replace(tmp, self._path)
        except (OSError, yaml.YAMLError) as e:
            self._apply(self._saved)
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise RemoteError(f"Could not write workboard store {self._path}: {e}") from e
        self._saved = state

    # --- Mutations persist after the in-memory change ---

    async def create_task(self, team_id: str, title: str, **fields) -> Task:
        task = await super().create_task(team_id, title, **fields)
        self._save()
        return task

    async def update_task(self, task_id: str, **fields) -> Task:
        task = await super().update_task(task_id, **fields)
        self._save()
        return task

    async def delete_task(self, task_id: str) -> None:
        await super().delete_task(task_id)
        self._save()

    async def create_sprint(self, team_id: str, name: str, start_date: date, end_date: date, **fields) -> Sprint:
        sprint = await super().create_sprint(team_id, name, start_date, end_date, **fields)
        self._save()
        return sprint

    async def update_sprint(self, sprint_id: str, **fields) -> Sprint:
        sprint = await super().update_sprint(sprint_id, **fields)
        self._save()
        return sprint

    async def delete_sprint(self, sprint_id: str) -> None:
        await super().delete_sprint(sprint_id)
        self._save()

    async def attach_membership(
        self, sprint_id: str, task_id: str, added_at: datetime | None = None
    ) -> SprintMembership:
        membership = await super().attach_membership(sprint_id, task_id, added_at)
        self._save()
        return membership

    async def detach_membership(self, sprint_id: str, task_id: str) -> bool:
        removed = await super().detach_membership(sprint_id, task_id)
        if removed:
            self._save()
        return removed

    async def reassign_membership(
        self, task_id: str, sprint_id: str, added_at: datetime | None = None
    ) -> SprintMembership:
        membership = await super().reassign_membership(task_id, sprint_id, added_at)
        self._save()
        return membership

    def add_team_member(
        self, team_id: str, member_id: str, name: str, capacity_hours: int = 40
    ) -> TeamMember:
        member = super().add_team_member(team_id, member_id, name, capacity_hours)
        self._save()
        return member
