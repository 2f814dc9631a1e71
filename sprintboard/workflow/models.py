"""Domain models for the sprint workboard."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from .exceptions import ValidationError


class _ParseableEnum(Enum):
    """Enum that accepts either a member or its case-insensitive value."""

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        allowed = ", ".join(m.value for m in cls)
        raise ValidationError(f"Invalid {cls.__name__} {value!r}; expected one of: {allowed}")


class TaskType(_ParseableEnum):
    STORY = "story"
    BUG = "bug"
    TASK = "task"


class TaskStatus(_ParseableEnum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    DONE = "done"


class Priority(_ParseableEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SprintStatus(_ParseableEnum):
    PLANNING = "planning"
    ACTIVE = "active"
    COMPLETED = "completed"


class RiskLevel(_ParseableEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class Task:
    id: str
    team_id: str
    title: str
    created_at: datetime
    description: str | None = None
    type: TaskType = TaskType.TASK
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    story_points: int | None = None
    assignee_id: str | None = None
    due_date: date | None = None
    epic_id: str | None = None
    label_ids: frozenset[str] = field(default_factory=frozenset)

    @property
    def points(self) -> int:
        """Story points with unestimated tasks counted as zero."""
        return self.story_points or 0

    def is_overdue(self, today: date) -> bool:
        return (
            self.due_date is not None
            and self.due_date < today
            and self.status is not TaskStatus.DONE
        )


@dataclass
class Sprint:
    id: str
    team_id: str
    name: str
    start_date: date
    end_date: date
    status: SprintStatus = SprintStatus.PLANNING
    goal: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class SprintMembership:
    """A task currently sitting on a sprint's board."""

    sprint_id: str
    task_id: str
    added_at: datetime


@dataclass(frozen=True)
class DraftTask:
    """Parser output. Never persisted directly."""

    title: str
    type: TaskType
    priority: Priority
    story_points: int
    index: int
    line_number: int
    description: str | None = None


@dataclass
class TeamMember:
    id: str
    team_id: str
    name: str
    capacity_hours: int = 40
