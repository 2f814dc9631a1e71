"""Planning and risk oracles.

An oracle turns a planning or risk request into a structured answer. The
workboard checks only the shape of what comes back, never the reasoning.
The Claude oracles prompt the model for a single JSON object and pull the
first ``{...}`` block out of its reply.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Protocol

from ..board.risk import RiskReport, RiskRequest
from ..workflow.exceptions import OracleResponseError, RemoteError, ValidationError
from ..workflow.models import DraftTask, Task

if TYPE_CHECKING:
    from ..agents.claude import ClaudeExecutor

logger = logging.getLogger(__name__)

DEFAULT_SPRINT_DURATION_DAYS = 14

_DECODER = json.JSONDecoder()


@dataclass
class PlanRequest:
    """Either existing ``tasks`` or ``raw_text`` to plan a sprint from."""

    team_capacity_hours: int
    sprint_duration_days: int = DEFAULT_SPRINT_DURATION_DAYS
    tasks: list[Task] = field(default_factory=list)
    drafts: list[DraftTask] = field(default_factory=list)
    raw_text: str | None = None

    def __post_init__(self) -> None:
        if bool(self.tasks) == bool(self.raw_text):
            raise ValidationError("A plan request needs either tasks or raw text, not both")

    @property
    def custom(self) -> bool:
        return self.raw_text is not None


@dataclass
class WorkloadShare:
    member_id: str
    task_ids: list[str] = field(default_factory=list)
    story_points: int = 0


@dataclass
class PlanSuggestion:
    sprint_name: str
    reasoning: str = ""
    recommended_task_ids: list[str] = field(default_factory=list)
    total_story_points: int = 0
    workload_distribution: list[WorkloadShare] = field(default_factory=list)
    risk_factors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def _pick(payload: dict, *keys: str, default=None):
    for key in keys:
        if key in payload:
            return payload[key]
    return default


def parse_plan_suggestion(payload) -> PlanSuggestion:
    """Check the shape of a planning oracle answer and build a suggestion.

    Accepts snake_case keys and the camelCase ones the model is prompted with.
    """
    if not isinstance(payload, dict):
        raise OracleResponseError("Planning oracle response must be a JSON object")

    name = _pick(payload, "sprint_name", "sprintName", default="")
    if not isinstance(name, str):
        raise OracleResponseError("sprintName must be a string")

    task_ids = _pick(payload, "recommended_task_ids", "recommendedTasks", "recommendedTaskIds", default=[])
    workload = _pick(payload, "workload_distribution", "workloadDistribution", default=[])
    risks = _pick(payload, "risk_factors", "riskFactors", default=[])
    for label, value in (("recommendedTasks", task_ids), ("workloadDistribution", workload), ("riskFactors", risks)):
        if not isinstance(value, list):
            raise OracleResponseError(f"{label} must be a list")
    if not all(isinstance(w, dict) for w in workload):
        raise OracleResponseError("workloadDistribution entries must be objects")

    try:
        shares = [
            WorkloadShare(
                member_id=str(_pick(w, "member_id", "memberId")),
                task_ids=[str(t) for t in _pick(w, "task_ids", "tasks", "taskIds", default=[])],
                story_points=int(_pick(w, "story_points", "storyPoints", default=0)),
            )
            for w in workload
        ]
        total = int(_pick(payload, "total_story_points", "totalStoryPoints", default=0) or 0)
    except (AttributeError, TypeError, ValueError) as e:
        raise OracleResponseError(f"Malformed planning oracle response: {e}") from e

    return PlanSuggestion(
        sprint_name=name.strip(),
        reasoning=str(_pick(payload, "reasoning", default="") or ""),
        recommended_task_ids=[str(t) for t in task_ids],
        total_story_points=total,
        workload_distribution=shares,
        risk_factors=[str(r) for r in risks],
    )


def extract_json(text: str) -> dict:
    """Pull the first JSON object out of free model output.

    Anything after the object is ignored, so a reply repeated in the SDK's
    result message does not break decoding.
    """
    start = text.find("{")
    if start == -1:
        raise OracleResponseError("Invalid oracle response format: no JSON object found")
    first_error: json.JSONDecodeError | None = None
    while start != -1:
        try:
            value, _ = _DECODER.raw_decode(text, start)
        except json.JSONDecodeError as e:
            first_error = first_error or e
        else:
            if isinstance(value, dict):
                return value
        start = text.find("{", start + 1)
    raise OracleResponseError(f"Invalid oracle response JSON: {first_error}")


class PlanningOracle(Protocol):
    async def suggest(self, request: PlanRequest) -> PlanSuggestion: ...


# ---------------------------------------------------------------------------
# Claude-backed oracles
# ---------------------------------------------------------------------------

PLANNING_PROMPT_TEMPLATE = """\
You are a sprint planning assistant. Given the following information, suggest an optimal sprint plan.

## Tasks
{tasks_json}

Team capacity: {capacity} hours total
Sprint duration: {duration} days

Respond with a single JSON object and nothing else:
{{
  "sprintName": "Suggested sprint name",
  "recommendedTasks": ["task_id_1", "task_id_2"],
  "totalStoryPoints": 0,
  "workloadDistribution": [
    {{"memberId": "member_id", "tasks": ["task_id"], "storyPoints": 0}}
  ],
  "riskFactors": ["risk"],
  "reasoning": "Brief explanation of the recommendation"
}}

Consider task priorities (high priority tasks should be included), story points
against team capacity, balanced workload, and sprint goal alignment. Name the
sprint after the work it contains, e.g. "Sprint 16 - Authentication & Performance".
"""

RISK_PROMPT_TEMPLATE = """\
Analyze the following sprint data and identify risks.

## Tasks
{tasks_json}

## Team members
{members_json}

Current date: {current_date}

Respond with a single JSON object and nothing else:
{{
  "overloadedMembers": [
    {{"memberId": "id", "memberName": "name", "taskCount": 0, "totalStoryPoints": 0,
      "riskLevel": "high|medium|low", "reason": "explanation"}}
  ],
  "delayedTasks": [
    {{"taskId": "id", "taskTitle": "title", "daysOverdue": 0, "riskLevel": "high|medium|low"}}
  ],
  "blockedTasks": [
    {{"taskId": "id", "taskTitle": "title", "blockingReason": "inferred reason",
      "riskLevel": "high|medium|low"}}
  ],
  "recommendations": ["recommendation"]
}}

Overloaded: more than 5 tasks or more than 20 story points per person.
Delayed: tasks past their due date.
Blocked: tasks in todo for more than 3 days, or high priority tasks not started.
"""


def _task_payload(task: Task) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "type": task.type.value,
        "status": task.status.value,
        "priority": task.priority.value,
        "story_points": task.story_points,
        "assignee_id": task.assignee_id,
        "due_date": task.due_date.isoformat() if task.due_date else None,
    }


def _draft_payload(draft: DraftTask) -> dict:
    return {
        "id": f"draft-{draft.index}",
        "title": draft.title,
        "type": draft.type.value,
        "priority": draft.priority.value,
        "story_points": draft.story_points,
    }


class ClaudePlanningOracle:
    """Planning oracle backed by a Claude model."""

    def __init__(self, executor: ClaudeExecutor | None = None, timeout: int = 120) -> None:
        self._executor = executor
        self._timeout = timeout

    def build_prompt(self, request: PlanRequest) -> str:
        if request.custom:
            items = [_draft_payload(d) for d in request.drafts]
        else:
            items = [_task_payload(t) for t in request.tasks]
        return PLANNING_PROMPT_TEMPLATE.format(
            tasks_json=json.dumps(items, indent=2),
            capacity=request.team_capacity_hours,
            duration=request.sprint_duration_days,
        )

    async def suggest(self, request: PlanRequest) -> PlanSuggestion:
        output = await _run(self._executor, self.build_prompt(request), self._timeout)
        return parse_plan_suggestion(extract_json(output))


class ClaudeRiskOracle:
    """Risk heatmap oracle backed by a Claude model."""

    def __init__(self, executor: ClaudeExecutor | None = None, timeout: int = 120) -> None:
        self._executor = executor
        self._timeout = timeout

    def build_prompt(self, request: RiskRequest) -> str:
        return RISK_PROMPT_TEMPLATE.format(
            tasks_json=json.dumps([_task_payload(t) for t in request.tasks], indent=2),
            members_json=json.dumps(
                [{"id": m.id, "name": m.name} for m in request.team_members], indent=2
            ),
            current_date=request.current_date.isoformat(),
        )

    async def assess(self, request: RiskRequest) -> RiskReport:
        output = await _run(self._executor, self.build_prompt(request), self._timeout)
        return RiskReport.from_dict(extract_json(output))


async def _run(executor: ClaudeExecutor | None, prompt: str, timeout: int) -> str:
    if executor is None:
        raise RuntimeError(
            "No ClaudeExecutor provided. "
            "Pass executor= to the constructor for real execution."
        )
    result = await executor.run(prompt, timeout=timeout)
    if not result.success:
        logger.warning("Oracle call failed: %s", result.output)
        raise RemoteError(result.output)
    return result.output


# ---------------------------------------------------------------------------
# Mocks
# ---------------------------------------------------------------------------

class MockPlanningOracle:
    """Planning oracle for tests. Returns a canned or derived suggestion."""

    def __init__(self, suggestion: PlanSuggestion | None = None, error: Exception | None = None) -> None:
        self._suggestion = suggestion
        self._error = error
        self.call_count: int = 0
        self.last_request: PlanRequest | None = None

    async def suggest(self, request: PlanRequest) -> PlanSuggestion:
        self.call_count += 1
        self.last_request = request
        if self._error is not None:
            raise self._error
        if self._suggestion is not None:
            return self._suggestion
        if request.custom:
            points = sum(d.story_points for d in request.drafts)
            ids = [f"draft-{d.index}" for d in request.drafts]
        else:
            points = sum(t.points for t in request.tasks)
            ids = [t.id for t in request.tasks]
        return PlanSuggestion(
            sprint_name="Mock Sprint",
            reasoning="Mock plan including every task",
            recommended_task_ids=ids,
            total_story_points=points,
        )
