"""Sprint plan reconciler: commits an accepted plan into durable records.

A plan creates one sprint and then fills it, either with existing tasks or
with tasks parsed from free text. Items are processed one at a time; an item
that fails is logged, recorded and skipped, and the rest carry on. Nothing
that succeeded is rolled back, and the result always reports how many items
made it onto the sprint out of how many were requested.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta

from ..board.ledger import MembershipLedger
from ..board.store import TaskStore
from ..workflow.exceptions import PartialBatchError, RemoteError, ValidationError
from ..workflow.interface import TrackerBackend
from ..workflow.models import Sprint, SprintStatus
from .oracle import PlanSuggestion
from .parser import ParserVariant, parse

logger = logging.getLogger(__name__)

DEFAULT_SPRINT_NAME = "AI Generated Sprint"


@dataclass
class SprintPlan:
    """New sprint fields plus the work to put on it.

    Exactly one of ``task_ids`` (existing-task mode) or ``raw_text``
    (custom-text mode) is set. ``selected`` optionally restricts custom-text
    mode to the drafts at those indices.
    """

    team_id: str
    name: str
    start_date: date
    end_date: date
    goal: str | None = None
    task_ids: list[str] | None = None
    raw_text: str | None = None
    selected: list[int] | None = None
    variant: ParserVariant = ParserVariant.WORKFLOW

    @property
    def custom(self) -> bool:
        return self.raw_text is not None

    def validate(self) -> None:
        if not self.team_id:
            raise ValidationError("Sprint plan needs a team")
        if not self.name or not self.name.strip():
            raise ValidationError("Sprint name is required")
        if self.start_date is None or self.end_date is None:
            raise ValidationError("Sprint start and end dates are required")
        if self.end_date < self.start_date:
            raise ValidationError("Sprint end date is before its start date")
        if (self.task_ids is None) == (self.raw_text is None):
            raise ValidationError("Sprint plan needs either task ids or raw text")
        if self.custom and not self.raw_text.strip():
            raise ValidationError("Sprint plan text is empty")

    @classmethod
    def from_suggestion(
        cls,
        suggestion: PlanSuggestion,
        team_id: str,
        *,
        raw_text: str | None = None,
        today: date | None = None,
        duration_days: int = 14,
    ) -> SprintPlan:
        """Pre-fill a plan from an oracle suggestion.

        The sprint starts tomorrow and ends ``duration_days + 1`` days from
        today. In existing-task mode the recommended task ids are used.
        """
        today = today or date.today()
        return cls(
            team_id=team_id,
            name=suggestion.sprint_name or DEFAULT_SPRINT_NAME,
            goal=suggestion.reasoning or None,
            start_date=today + timedelta(days=1),
            end_date=today + timedelta(days=duration_days + 1),
            task_ids=None if raw_text is not None else list(suggestion.recommended_task_ids),
            raw_text=raw_text,
        )


@dataclass
class ItemFailure:
    item: str
    error: str
    index: int | None = None


@dataclass
class CommitResult:
    created_sprint_id: str
    linked_task_count: int
    requested_count: int
    created_task_ids: list[str] = field(default_factory=list)
    failures: list[ItemFailure] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return self.linked_task_count == self.requested_count

    def raise_for_shortfall(self) -> None:
        if not self.complete:
            raise PartialBatchError(self.linked_task_count, self.requested_count, self.failures)

    def to_dict(self) -> dict:
        return {
            "created_sprint_id": self.created_sprint_id,
            "linked_task_count": self.linked_task_count,
            "requested_count": self.requested_count,
            "complete": self.complete,
            "created_task_ids": list(self.created_task_ids),
            "failures": [
                {"item": f.item, "index": f.index, "error": f.error} for f in self.failures
            ],
        }


class SprintPlanReconciler:
    """Turns an accepted ``SprintPlan`` into a sprint, tasks and memberships."""

    def __init__(
        self,
        backend: TrackerBackend,
        store: TaskStore | None = None,
        ledger: MembershipLedger | None = None,
    ) -> None:
        self._backend = backend
        self._store = store or TaskStore(backend)
        self._ledger = ledger or MembershipLedger(backend)

    async def commit(self, plan: SprintPlan) -> CommitResult:
        plan.validate()
        sprint = await self._create_sprint(plan)

        if plan.custom:
            result = await self._commit_drafts(sprint, plan)
        else:
            result = await self._commit_existing(sprint, plan.task_ids)

        if result.complete:
            logger.info(
                "Sprint %s created with %d task(s)", sprint.id, result.linked_task_count
            )
        else:
            logger.warning(
                "Sprint %s created with %d of %d requested task(s)",
                sprint.id, result.linked_task_count, result.requested_count,
            )
        return result

    async def _create_sprint(self, plan: SprintPlan) -> Sprint:
        try:
            return await self._backend.create_sprint(
                team_id=plan.team_id,
                name=plan.name.strip(),
                start_date=plan.start_date,
                end_date=plan.end_date,
                goal=plan.goal,
                status=SprintStatus.PLANNING,
            )
        except RemoteError:
            raise
        except Exception as e:
            raise RemoteError(f"Failed to create sprint: {e}") from e

    async def _commit_existing(self, sprint: Sprint, task_ids: list[str]) -> CommitResult:
        result = CommitResult(
            created_sprint_id=sprint.id,
            linked_task_count=0,
            requested_count=len(task_ids),
        )
        team_tasks = {
            t.id for t in await self._backend.query_tasks(team_id=sprint.team_id, task_ids=task_ids)
        }

        for index, task_id in enumerate(task_ids):
            if task_id not in team_tasks:
                self._record(result, task_id, index, f"Task {task_id} not found in team {sprint.team_id}")
                continue
            try:
                await self._ledger.attach(sprint.id, task_id)
            except Exception as e:
                self._record(result, task_id, index, str(e))
                continue
            result.linked_task_count += 1
        return result

    async def _commit_drafts(self, sprint: Sprint, plan: SprintPlan) -> CommitResult:
        # Always re-parse: the drafts shown in a preview are never trusted.
        drafts = parse(plan.raw_text, plan.variant)
        if plan.selected is not None:
            wanted = set(plan.selected)
            drafts = [d for d in drafts if d.index in wanted]

        result = CommitResult(
            created_sprint_id=sprint.id,
            linked_task_count=0,
            requested_count=len(drafts),
        )
        for draft in drafts:
            try:
                task = await self._store.create_task(
                    {
                        "team_id": sprint.team_id,
                        "title": draft.title,
                        "description": draft.description,
                        "type": draft.type,
                        "priority": draft.priority,
                        "story_points": draft.story_points,
                    }
                )
            except Exception as e:
                self._record(result, draft.title or f"line {draft.line_number}", draft.index, str(e))
                continue
            result.created_task_ids.append(task.id)

            try:
                await self._ledger.attach(sprint.id, task.id)
            except Exception as e:
                self._record(result, task.id, draft.index, f"Created but not linked: {e}")
                continue
            result.linked_task_count += 1
        return result

    def _record(self, result: CommitResult, item: str, index: int, error: str) -> None:
        logger.warning("Plan item %d (%s) skipped: %s", index, item, error)
        result.failures.append(ItemFailure(item=item, error=error, index=index))
