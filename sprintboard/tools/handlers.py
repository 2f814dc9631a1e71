"""Pure handler functions for workboard MCP tools.

Each handler takes (args, workboard) and returns MCP result format.
No SDK dependency, so they are testable with InMemoryAdapter.
"""

import json
from datetime import date
from typing import Any

from ..board.projection import BoardFilters
from ..planning.parser import ParserVariant
from ..planning.reconciler import SprintPlan
from ..service import Workboard
from ..workflow.exceptions import RemoteError, ValidationError, WorkboardError


def _text_result(text: str) -> dict[str, Any]:
    """Build MCP tool result with a text content block."""
    return {"content": [{"type": "text", "text": text}]}


def _json_result(data: Any) -> dict[str, Any]:
    """Build MCP tool result with JSON-serialized content."""
    return _text_result(json.dumps(data, indent=2, default=str))


def _error_result(error: Exception) -> dict[str, Any]:
    if isinstance(error, KeyError):
        message = error.args[0] if error.args else str(error)
    else:
        message = str(error)
    result = _text_result(f"Error: {message}")
    result["is_error"] = True
    return result


def _list_arg(raw) -> list:
    """Lists arrive as JSON strings to fit MCP's simple schema system."""
    if raw is None or raw == "":
        return []
    if isinstance(raw, list):
        return raw
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return [item.strip() for item in str(raw).split(",") if item.strip()]
    return value if isinstance(value, list) else [value]


def _date_arg(raw, name: str) -> date:
    if isinstance(raw, date):
        return raw
    try:
        return date.fromisoformat(str(raw))
    except ValueError as e:
        raise ValidationError(f"Invalid {name}: {raw!r}") from e


def _task_dict(task) -> dict[str, Any]:
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
        "due_date": task.due_date,
        "epic_id": task.epic_id,
        "label_ids": sorted(task.label_ids),
    }


async def get_board_handler(args: dict[str, Any], workboard: Workboard) -> dict[str, Any]:
    """Get the board columns for a team and scope."""
    filters = BoardFilters(
        text=args.get("search") or None,
        epic_id=args.get("epic_id") or None,
        label_id=args.get("label_id") or None,
    )
    try:
        board = await workboard.get_board(args["team_id"], args.get("scope") or "all", filters)
    except WorkboardError as e:
        return _error_result(e)
    return _json_result(board.to_dict())


async def move_task_handler(args: dict[str, Any], workboard: Workboard) -> dict[str, Any]:
    """Move a task to another status column."""
    try:
        session = await workboard.open_session(args["team_id"])
    except WorkboardError as e:
        return _error_result(e)
    result = await workboard.move_task(session, args["task_id"], args["status"])
    return _json_result(result.to_dict())


async def create_task_handler(args: dict[str, Any], workboard: Workboard) -> dict[str, Any]:
    """Create a task from form fields."""
    fields = {k: v for k, v in args.items() if v not in (None, "")}
    if "story_points" in fields and isinstance(fields["story_points"], str):
        try:
            fields["story_points"] = int(fields["story_points"])
        except ValueError:
            return _error_result(ValidationError(f"Invalid story points: {fields['story_points']!r}"))
    if "label_ids" in fields:
        fields["label_ids"] = _list_arg(fields["label_ids"])
    try:
        task = await workboard.create_task(fields)
    except (WorkboardError, KeyError) as e:
        return _error_result(e)
    return _json_result({"created": _task_dict(task)})


async def attach_to_sprint_handler(args: dict[str, Any], workboard: Workboard) -> dict[str, Any]:
    """Add a backlog task to a sprint."""
    try:
        membership = await workboard.attach_to_sprint(args["task_id"], args["sprint_id"])
    except (WorkboardError, KeyError) as e:
        return _error_result(e)
    return _json_result(
        {
            "sprint_id": membership.sprint_id,
            "task_id": membership.task_id,
            "added_at": membership.added_at.isoformat(),
        }
    )


async def detach_from_sprint_handler(args: dict[str, Any], workboard: Workboard) -> dict[str, Any]:
    """Remove a task from a sprint, returning it to the backlog."""
    try:
        removed = await workboard.detach_from_sprint(args["task_id"], args["sprint_id"])
    except (WorkboardError, KeyError) as e:
        return _error_result(e)
    return _json_result({"removed": removed})


async def preview_parse_handler(args: dict[str, Any], workboard: Workboard) -> dict[str, Any]:
    """Parse free text into draft tasks without saving anything."""
    try:
        variant = ParserVariant(args.get("variant") or "workflow")
    except ValueError:
        return _error_result(ValidationError(f"Unknown parser variant: {args.get('variant')}"))
    drafts = workboard.preview_parse(args.get("text", ""), variant)
    return _json_result(
        [
            {
                "index": d.index,
                "title": d.title,
                "type": d.type.value,
                "priority": d.priority.value,
                "story_points": d.story_points,
            }
            for d in drafts
        ]
    )


async def commit_plan_handler(args: dict[str, Any], workboard: Workboard) -> dict[str, Any]:
    """Create a sprint and fill it with existing tasks or tasks parsed from text."""
    raw_text = args.get("raw_text") or None
    task_ids = None if raw_text is not None else [str(t) for t in _list_arg(args.get("task_ids"))]
    try:
        plan = SprintPlan(
            team_id=args.get("team_id", ""),
            name=args.get("name", ""),
            goal=args.get("goal") or None,
            start_date=_date_arg(args.get("start_date"), "start_date"),
            end_date=_date_arg(args.get("end_date"), "end_date"),
            task_ids=task_ids,
            raw_text=raw_text,
        )
        result = await workboard.commit_plan(plan)
    except WorkboardError as e:
        return _error_result(e)
    data = result.to_dict()
    if not result.complete:
        data["warning"] = (
            f"Only {result.linked_task_count} of {result.requested_count} tasks were added to the sprint"
        )
    return _json_result(data)


async def suggest_plan_handler(args: dict[str, Any], workboard: Workboard) -> dict[str, Any]:
    """Ask the planning oracle for a sprint proposal."""
    try:
        suggestion = await workboard.suggest_plan(
            args["team_id"], raw_text=args.get("raw_text") or None
        )
    except (ValidationError, RemoteError) as e:
        return _error_result(e)
    return _json_result(suggestion.to_dict())


async def get_scope_alerts_handler(args: dict[str, Any], workboard: Workboard) -> dict[str, Any]:
    """List scope-creep alerts for the team's active sprints."""
    alerts = await workboard.get_scope_alerts(args["team_id"])
    return _json_result([a.to_dict() for a in alerts])


async def get_risk_heatmap_handler(args: dict[str, Any], workboard: Workboard) -> dict[str, Any]:
    """Report overloaded members and delayed or stalled tasks."""
    try:
        report = await workboard.get_risk_heatmap(args["team_id"])
    except RemoteError as e:
        return _error_result(e)
    return _json_result(report.to_dict())


async def get_velocity_handler(args: dict[str, Any], workboard: Workboard) -> dict[str, Any]:
    """Planned vs completed points for each of the team's sprints."""
    try:
        since = _date_arg(args["since"], "since") if args.get("since") else None
        velocities = await workboard.get_velocity(args.get("team_id", ""), since)
    except WorkboardError as e:
        return _error_result(e)
    return _json_result([v.to_dict() for v in velocities])


async def get_forecast_handler(args: dict[str, Any], workboard: Workboard) -> dict[str, Any]:
    """Completion probability and burndown projection for one sprint."""
    try:
        forecast = await workboard.get_forecast(args["sprint_id"])
    except (WorkboardError, KeyError) as e:
        return _error_result(e)
    return _json_result(forecast.to_dict())
