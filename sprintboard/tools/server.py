"""MCP server factory binding handlers to a workboard."""

from typing import Any

from claude_agent_sdk import create_sdk_mcp_server, tool

from ..service import Workboard
from . import handlers


def create_workboard_server(workboard: Workboard):
    """Create an MCP server exposing the workboard operations.

    Each handler is bound to the workboard via closure so the @tool wrappers
    are clean single-argument async functions as the SDK expects.
    """

    @tool(
        "get_board",
        "Get a team's board split into todo, in_progress, review and done. "
        "scope is 'all', 'backlog' or a sprint id; search, epic_id and label_id filter further.",
        {"team_id": str, "scope": str, "search": str, "epic_id": str, "label_id": str},
    )
    async def get_board(args: dict[str, Any]) -> dict[str, Any]:
        return await handlers.get_board_handler(args, workboard)

    @tool(
        "move_task",
        "Move a task to another status column (todo, in_progress, review, done)",
        {"team_id": str, "task_id": str, "status": str},
    )
    async def move_task(args: dict[str, Any]) -> dict[str, Any]:
        return await handlers.move_task_handler(args, workboard)

    @tool(
        "create_task",
        "Create a task. team_id and title are required; label_ids is a JSON list.",
        {
            "team_id": str,
            "title": str,
            "description": str,
            "type": str,
            "priority": str,
            "story_points": str,
            "assignee_id": str,
            "due_date": str,
            "epic_id": str,
            "label_ids": str,
        },
    )
    async def create_task(args: dict[str, Any]) -> dict[str, Any]:
        return await handlers.create_task_handler(args, workboard)

    @tool(
        "attach_to_sprint",
        "Add a backlog task to a sprint of the same team",
        {"task_id": str, "sprint_id": str},
    )
    async def attach_to_sprint(args: dict[str, Any]) -> dict[str, Any]:
        return await handlers.attach_to_sprint_handler(args, workboard)

    @tool(
        "detach_from_sprint",
        "Remove a task from a sprint, returning it to the backlog",
        {"task_id": str, "sprint_id": str},
    )
    async def detach_from_sprint(args: dict[str, Any]) -> dict[str, Any]:
        return await handlers.detach_from_sprint_handler(args, workboard)

    @tool(
        "preview_parse",
        "Parse task lines like 'Fix login [high] (5) {bug}' into draft tasks without saving",
        {"text": str, "variant": str},
    )
    async def preview_parse(args: dict[str, Any]) -> dict[str, Any]:
        return await handlers.preview_parse_handler(args, workboard)

    @tool(
        "commit_plan",
        "Create a sprint and fill it. Pass task_ids (JSON list) for existing tasks "
        "or raw_text to create tasks from lines. Dates are YYYY-MM-DD.",
        {
            "team_id": str,
            "name": str,
            "goal": str,
            "start_date": str,
            "end_date": str,
            "task_ids": str,
            "raw_text": str,
        },
    )
    async def commit_plan(args: dict[str, Any]) -> dict[str, Any]:
        return await handlers.commit_plan_handler(args, workboard)

    @tool(
        "suggest_plan",
        "Ask the planning oracle for a sprint proposal from the backlog or from raw_text",
        {"team_id": str, "raw_text": str},
    )
    async def suggest_plan(args: dict[str, Any]) -> dict[str, Any]:
        return await handlers.suggest_plan_handler(args, workboard)

    @tool(
        "get_scope_alerts",
        "List scope-creep alerts for a team's active sprints",
        {"team_id": str},
    )
    async def get_scope_alerts(args: dict[str, Any]) -> dict[str, Any]:
        return await handlers.get_scope_alerts_handler(args, workboard)

    @tool(
        "get_risk_heatmap",
        "Report overloaded members, delayed tasks and tasks that have not started",
        {"team_id": str},
    )
    async def get_risk_heatmap(args: dict[str, Any]) -> dict[str, Any]:
        return await handlers.get_risk_heatmap_handler(args, workboard)

    @tool(
        "get_velocity",
        "Planned vs completed story points per sprint; since is an optional YYYY-MM-DD start-date floor",
        {"team_id": str, "since": str},
    )
    async def get_velocity(args: dict[str, Any]) -> dict[str, Any]:
        return await handlers.get_velocity_handler(args, workboard)

    @tool(
        "get_forecast",
        "Completion probability, risk factors and burndown projection for a sprint",
        {"sprint_id": str},
    )
    async def get_forecast(args: dict[str, Any]) -> dict[str, Any]:
        return await handlers.get_forecast_handler(args, workboard)

    return create_sdk_mcp_server(
        name="sprintboard",
        version="0.2.0",
        tools=[
            get_board,
            move_task,
            create_task,
            attach_to_sprint,
            detach_from_sprint,
            preview_parse,
            commit_plan,
            suggest_plan,
            get_scope_alerts,
            get_risk_heatmap,
            get_velocity,
            get_forecast,
        ],
    )
