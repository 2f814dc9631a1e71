"""CLI entry point for the sprint workboard.

Usage:
  python -m sprintboard board --team T [--scope all|backlog|<sprint>] [--search TEXT]
  python -m sprintboard add --team T --title TITLE [--type bug] [--priority high] [--points 5]
  python -m sprintboard move <task_id> <status> --team T
  python -m sprintboard create-sprint --team T --name N --start YYYY-MM-DD --end YYYY-MM-DD
  python -m sprintboard start-sprint <sprint_id> | complete-sprint <sprint_id>
  python -m sprintboard attach <task_id> <sprint_id> | detach <task_id> <sprint_id>
  python -m sprintboard parse [FILE] [--planner]
  python -m sprintboard commit --team T --name N --start D --end D (--tasks ID ... | --text-file FILE)
  python -m sprintboard suggest --team T [--text-file FILE] [--mock-oracle]
  python -m sprintboard alerts --team T
  python -m sprintboard risk --team T
  python -m sprintboard velocity --team T [--since YYYY-MM-DD]
  python -m sprintboard forecast <sprint_id>
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import date
from pathlib import Path

from .workflow.exceptions import WorkboardError


def _add_team(p: argparse.ArgumentParser) -> None:
    p.add_argument("--team", required=True, help="Team id")


def _add_sprint_fields(p: argparse.ArgumentParser) -> None:
    _add_team(p)
    p.add_argument("--name", required=True, help="Sprint name")
    p.add_argument("--start", required=True, type=date.fromisoformat, help="Start date (YYYY-MM-DD)")
    p.add_argument("--end", required=True, type=date.fromisoformat, help="End date (YYYY-MM-DD)")
    p.add_argument("--goal", default=None, help="Sprint goal")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sprint workboard CLI")
    parser.add_argument("--config", default="sprintboard.yaml", help="Config file (YAML)")
    parser.add_argument("--store", default=None, help="Store file (overrides config)")
    parser.add_argument("--mock", action="store_true", help="Use an in-memory store (nothing is saved)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command")

    board_parser = subparsers.add_parser("board", help="Show a team's board")
    _add_team(board_parser)
    board_parser.add_argument("--scope", default="all", help="'all', 'backlog' or a sprint id")
    board_parser.add_argument("--search", default=None, help="Case-insensitive title/description search")
    board_parser.add_argument("--epic", default=None, help="Epic id filter")
    board_parser.add_argument("--label", default=None, help="Label id filter")

    add_parser = subparsers.add_parser("add", help="Create a task")
    _add_team(add_parser)
    add_parser.add_argument("--title", required=True)
    add_parser.add_argument("--description", default=None)
    add_parser.add_argument("--type", default=None, help="story, bug or task")
    add_parser.add_argument("--priority", default=None, help="low, medium or high")
    add_parser.add_argument("--points", type=int, default=None, help="Story points")
    add_parser.add_argument("--assignee", default=None, help="Assignee member id")
    add_parser.add_argument("--due", default=None, help="Due date (YYYY-MM-DD)")
    add_parser.add_argument("--epic", default=None, help="Epic id")
    add_parser.add_argument("--label", action="append", default=[], help="Label id (repeatable)")

    move_parser = subparsers.add_parser("move", help="Move a task to another column")
    move_parser.add_argument("task_id")
    move_parser.add_argument("status", help="todo, in_progress, review or done")
    _add_team(move_parser)

    create_sprint_parser = subparsers.add_parser("create-sprint", help="Create an empty sprint")
    _add_sprint_fields(create_sprint_parser)

    for name, help_text in (("start-sprint", "Activate a planned sprint"), ("complete-sprint", "Complete an active sprint")):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("sprint_id")

    for name, help_text in (("attach", "Add a task to a sprint"), ("detach", "Remove a task from a sprint")):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("task_id")
        p.add_argument("sprint_id")

    parse_parser = subparsers.add_parser("parse", help="Preview task lines as drafts")
    parse_parser.add_argument("file", nargs="?", default="-", help="Text file, '-' for stdin")
    parse_parser.add_argument("--planner", action="store_true", help="Ignore {type} tags")

    commit_parser = subparsers.add_parser("commit", help="Create a sprint from a plan")
    _add_sprint_fields(commit_parser)
    source = commit_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--tasks", nargs="+", help="Existing task ids")
    source.add_argument("--text-file", help="File of task lines ('-' for stdin)")

    suggest_parser = subparsers.add_parser("suggest", help="Ask the planning oracle for a sprint plan")
    _add_team(suggest_parser)
    suggest_parser.add_argument("--text-file", default=None, help="Plan from task lines instead of the backlog")
    suggest_parser.add_argument("--mock-oracle", action="store_true", help="Use the mock planning oracle")

    alerts_parser = subparsers.add_parser("alerts", help="Scope-creep alerts for active sprints")
    _add_team(alerts_parser)

    risk_parser = subparsers.add_parser("risk", help="Risk heatmap for a team")
    _add_team(risk_parser)
    risk_parser.add_argument("--claude", action="store_true", help="Ask Claude instead of the local heuristics")

    velocity_parser = subparsers.add_parser("velocity", help="Planned vs completed points per sprint")
    _add_team(velocity_parser)
    velocity_parser.add_argument("--since", type=date.fromisoformat, default=None, help="Only sprints starting on or after (YYYY-MM-DD)")

    forecast_parser = subparsers.add_parser("forecast", help="Completion forecast for a sprint")
    forecast_parser.add_argument("sprint_id")

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        code = asyncio.run(_dispatch(args))
    except WorkboardError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyError as e:
        print(f"Not found: {e.args[0] if e.args else e}", file=sys.stderr)
        sys.exit(1)
    if code:
        sys.exit(code)


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _build_workboard(args):
    from .config import WorkboardConfig
    from .service import Workboard

    config = WorkboardConfig.load(args.config)
    if args.mock:
        from .adapters.memory import InMemoryAdapter
        backend = InMemoryAdapter()
    else:
        from .adapters.yaml_store import YamlFileAdapter
        backend = YamlFileAdapter(args.store or config.store_path)

    planning_oracle = None
    risk_oracle = None
    if getattr(args, "mock_oracle", False):
        from .planning.oracle import MockPlanningOracle
        planning_oracle = MockPlanningOracle()
    elif args.command in ("suggest", "risk") and (args.command == "suggest" or args.claude):
        from .agents.claude import ClaudeExecutor
        from .planning.oracle import ClaudePlanningOracle, ClaudeRiskOracle
        executor = ClaudeExecutor(model=config.model)
        planning_oracle = ClaudePlanningOracle(executor, timeout=config.oracle_timeout_seconds)
        risk_oracle = ClaudeRiskOracle(executor, timeout=config.oracle_timeout_seconds)

    return Workboard(backend, config, planning_oracle=planning_oracle, risk_oracle=risk_oracle)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


async def _dispatch(args) -> int:
    workboard = _build_workboard(args)
    command = args.command

    if command == "board":
        from .board.projection import BoardFilters
        filters = BoardFilters(text=args.search, epic_id=args.epic, label_id=args.label)
        board = await workboard.get_board(args.team, args.scope, filters)
        print(f"Board for team {args.team} ({board.scope}): {board.task_count} task(s)")
        for status, tasks in board.columns.items():
            print(f"\n{status.value.upper()} ({len(tasks)})")
            for t in tasks:
                points = f" ({t.story_points})" if t.story_points is not None else ""
                print(f"  {t.id}  [{t.priority.value}] {t.title}{points}")
        return 0

    if command == "add":
        task = await workboard.create_task(
            {
                "team_id": args.team,
                "title": args.title,
                "description": args.description,
                "type": args.type,
                "priority": args.priority,
                "story_points": args.points,
                "assignee_id": args.assignee,
                "due_date": args.due,
                "epic_id": args.epic,
                "label_ids": args.label,
            }
        )
        print(f"Created task {task.id}: {task.title}")
        return 0

    if command == "move":
        session = await workboard.open_session(args.team)
        result = await workboard.move_task(session, args.task_id, args.status)
        if not result.success:
            print(f"Move failed: {result.error}", file=sys.stderr)
            return 1
        print(f"Task {result.task_id}: {result.previous_status.value} → {result.status.value}")
        return 0

    if command == "create-sprint":
        sprint = await workboard.create_sprint(args.team, args.name, args.start, args.end, args.goal)
        print(f"Created sprint {sprint.id}: {sprint.name} ({sprint.start_date} → {sprint.end_date})")
        return 0

    if command in ("start-sprint", "complete-sprint"):
        if command == "start-sprint":
            sprint = await workboard.start_sprint(args.sprint_id)
        else:
            sprint = await workboard.complete_sprint(args.sprint_id)
        print(f"Sprint {sprint.id} is now {sprint.status.value}")
        return 0

    if command == "attach":
        membership = await workboard.attach_to_sprint(args.task_id, args.sprint_id)
        print(f"Task {membership.task_id} added to sprint {membership.sprint_id}")
        return 0

    if command == "detach":
        removed = await workboard.detach_from_sprint(args.task_id, args.sprint_id)
        print(f"Task {args.task_id} {'removed from' if removed else 'was not on'} sprint {args.sprint_id}")
        return 0

    if command == "parse":
        from .planning.parser import ParserVariant
        variant = ParserVariant.PLANNER if args.planner else ParserVariant.WORKFLOW
        for d in workboard.preview_parse(_read_text(args.file), variant):
            print(f"{d.index + 1:>3}. [{d.priority.value}] ({d.story_points}) {{{d.type.value}}} {d.title}")
        return 0

    if command == "commit":
        from .planning.reconciler import SprintPlan
        plan = SprintPlan(
            team_id=args.team,
            name=args.name,
            goal=args.goal,
            start_date=args.start,
            end_date=args.end,
            task_ids=args.tasks,
            raw_text=_read_text(args.text_file) if args.text_file else None,
        )
        result = await workboard.commit_plan(plan)
        print(
            f"Sprint {result.created_sprint_id}: "
            f"{result.linked_task_count}/{result.requested_count} task(s) linked"
        )
        for failure in result.failures:
            print(f"  FAILED #{failure.index}: {failure.item}: {failure.error}", file=sys.stderr)
        return 0 if result.complete else 2

    if command == "suggest":
        raw_text = _read_text(args.text_file) if args.text_file else None
        suggestion = await workboard.suggest_plan(args.team, raw_text=raw_text)
        _print_json(suggestion.to_dict())
        return 0

    if command == "alerts":
        alerts = await workboard.get_scope_alerts(args.team)
        if not alerts:
            print("No scope-creep alerts")
        for alert in alerts:
            print(f"[{alert.risk.value.upper()}] {alert.warning}")
            for title in alert.added_task_titles:
                print(f"  + {title}")
        return 0

    if command == "risk":
        report = await workboard.get_risk_heatmap(args.team)
        _print_json(report.to_dict())
        return 0

    if command == "velocity":
        velocities = await workboard.get_velocity(args.team, args.since)
        if not velocities:
            print("No sprints")
        for v in velocities:
            print(
                f"{v.sprint_id}  {v.sprint_name} [{v.status.value}]: "
                f"{v.completed_points}/{v.planned_points} points ({v.completion_rate}%)"
            )
        return 0

    if command == "forecast":
        forecast = await workboard.get_forecast(args.sprint_id)
        _print_json(forecast.to_dict())
        return 0

    raise ValueError(f"Unhandled command: {command}")


if __name__ == "__main__":
    main()
