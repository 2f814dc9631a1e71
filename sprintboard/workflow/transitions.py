"""Task and sprint state-machine transitions defined as data."""

from itertools import permutations

from .exceptions import InvalidTransitionError
from .models import SprintStatus, TaskStatus

# Free-form kanban: any column may move to any other column.
FREE_FORM_TRANSITIONS: frozenset[tuple[TaskStatus, TaskStatus]] = frozenset(
    permutations(TaskStatus, 2)
)

# Stricter workflow that cannot skip review. Opt-in only.
SEQUENTIAL_TRANSITIONS: frozenset[tuple[TaskStatus, TaskStatus]] = frozenset(
    {
        (TaskStatus.TODO, TaskStatus.IN_PROGRESS),
        (TaskStatus.IN_PROGRESS, TaskStatus.TODO),
        (TaskStatus.IN_PROGRESS, TaskStatus.REVIEW),
        (TaskStatus.REVIEW, TaskStatus.IN_PROGRESS),
        (TaskStatus.REVIEW, TaskStatus.DONE),
        (TaskStatus.DONE, TaskStatus.REVIEW),
    }
)

SPRINT_TRANSITIONS: frozenset[tuple[SprintStatus, SprintStatus]] = frozenset(
    {
        (SprintStatus.PLANNING, SprintStatus.ACTIVE),    # start
        (SprintStatus.ACTIVE, SprintStatus.COMPLETED),   # complete
    }
)


def validate_task_transition(
    task_id: str,
    from_status: TaskStatus,
    to_status: TaskStatus,
    rules: frozenset[tuple[TaskStatus, TaskStatus]] = FREE_FORM_TRANSITIONS,
) -> None:
    """Raise InvalidTransitionError if the column move is not allowed.

    Staying in the same column is always allowed.
    """
    if from_status is to_status:
        return
    if (from_status, to_status) not in rules:
        raise InvalidTransitionError(task_id, from_status, to_status)


def validate_sprint_transition(
    sprint_id: str,
    from_status: SprintStatus,
    to_status: SprintStatus,
) -> None:
    """Raise InvalidTransitionError if the sprint lifecycle step is not allowed."""
    if (from_status, to_status) not in SPRINT_TRANSITIONS:
        raise InvalidTransitionError(sprint_id, from_status, to_status)
