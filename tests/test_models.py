"""Tests for domain models, enums and transition tables."""

from datetime import date

import pytest

from conftest import utc
from sprintboard.workflow.exceptions import InvalidTransitionError, PartialBatchError, ValidationError
from sprintboard.workflow.models import Priority, SprintStatus, Task, TaskStatus, TaskType
from sprintboard.workflow.transitions import (
    FREE_FORM_TRANSITIONS,
    SEQUENTIAL_TRANSITIONS,
    validate_sprint_transition,
    validate_task_transition,
)


class TestEnumParse:
    def test_accepts_member(self):
        assert TaskStatus.parse(TaskStatus.DONE) is TaskStatus.DONE

    def test_case_insensitive_string(self):
        assert TaskStatus.parse("In_Progress") is TaskStatus.IN_PROGRESS
        assert Priority.parse(" HIGH ") is Priority.HIGH
        assert TaskType.parse("bug") is TaskType.BUG

    def test_rejects_unknown_value(self):
        with pytest.raises(ValidationError, match="expected one of"):
            TaskStatus.parse("blocked")

    def test_rejects_non_string(self):
        with pytest.raises(ValidationError):
            Priority.parse(3)


class TestTask:
    def _task(self, **kw) -> Task:
        return Task(id="t-1", team_id="team", title="T", created_at=utc(2024, 1, 1), **kw)

    def test_defaults(self):
        task = self._task()
        assert task.type is TaskType.TASK
        assert task.status is TaskStatus.TODO
        assert task.priority is Priority.MEDIUM
        assert task.label_ids == frozenset()

    def test_points_counts_unestimated_as_zero(self):
        assert self._task().points == 0
        assert self._task(story_points=5).points == 5

    def test_is_overdue(self):
        today = date(2024, 3, 10)
        assert self._task(due_date=date(2024, 3, 9)).is_overdue(today)
        assert not self._task(due_date=date(2024, 3, 10)).is_overdue(today)
        assert not self._task(due_date=None).is_overdue(today)
        assert not self._task(
            due_date=date(2024, 3, 1), status=TaskStatus.DONE
        ).is_overdue(today)


class TestTaskTransitions:
    def test_free_form_allows_every_pair(self):
        for a in TaskStatus:
            for b in TaskStatus:
                validate_task_transition("t-1", a, b, FREE_FORM_TRANSITIONS)

    def test_same_status_always_allowed(self):
        validate_task_transition("t-1", TaskStatus.TODO, TaskStatus.TODO, frozenset())

    def test_sequential_rejects_skipping_review(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            validate_task_transition(
                "t-1", TaskStatus.IN_PROGRESS, TaskStatus.DONE, SEQUENTIAL_TRANSITIONS
            )
        assert exc_info.value.entity_id == "t-1"
        assert "in_progress → done" in str(exc_info.value)

    def test_sequential_allows_forward_step(self):
        validate_task_transition("t-1", TaskStatus.REVIEW, TaskStatus.DONE, SEQUENTIAL_TRANSITIONS)


class TestSprintTransitions:
    def test_lifecycle(self):
        validate_sprint_transition("sp-1", SprintStatus.PLANNING, SprintStatus.ACTIVE)
        validate_sprint_transition("sp-1", SprintStatus.ACTIVE, SprintStatus.COMPLETED)

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (SprintStatus.PLANNING, SprintStatus.COMPLETED),
            (SprintStatus.COMPLETED, SprintStatus.ACTIVE),
            (SprintStatus.ACTIVE, SprintStatus.PLANNING),
            (SprintStatus.ACTIVE, SprintStatus.ACTIVE),
        ],
    )
    def test_rejects_other_steps(self, from_status, to_status):
        with pytest.raises(InvalidTransitionError):
            validate_sprint_transition("sp-1", from_status, to_status)


class TestPartialBatchError:
    def test_message_and_fields(self):
        err = PartialBatchError(2, 3, ["x"])
        assert err.succeeded == 2
        assert err.requested == 3
        assert err.failures == ["x"]
        assert str(err) == "Only 2 of 3 items succeeded"
