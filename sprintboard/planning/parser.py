"""Free-text task parser.

One draft task per non-blank line. Tags may sit anywhere in the line:

    Fix login redirect [high] (5) {bug}

``[low|medium|high]`` sets the priority (default medium), ``(N)`` the story
points (default 3) and, in the workflow variant only, ``{bug|story|task}`` the
type (default task). The first match of each tag is cut out of the line and
what remains, trimmed, is the title.

``parse`` depends on nothing but its input, so the preview and the commit of
a plan always see the same drafts.
"""

from __future__ import annotations

import re
from enum import Enum

from ..workflow.models import DraftTask, Priority, TaskType

DEFAULT_PRIORITY = Priority.MEDIUM
DEFAULT_POINTS = 3
DEFAULT_TYPE = TaskType.TASK

PRIORITY_TAG = re.compile(r"\[(low|medium|high)\]", re.IGNORECASE)
POINTS_TAG = re.compile(r"\((\d+)\)")
TYPE_TAG = re.compile(r"\{(bug|story|task)\}", re.IGNORECASE)


class ParserVariant(Enum):
    WORKFLOW = "workflow"   # priority, points and type tags
    PLANNER = "planner"     # priority and points only; type is always task


def _cut(line: str, match: re.Match | None) -> str:
    if match is None:
        return line
    return line[: match.start()] + line[match.end() :]


def parse_line(
    line: str,
    index: int = 0,
    line_number: int = 1,
    variant: ParserVariant = ParserVariant.WORKFLOW,
) -> DraftTask:
    """Parse a single non-blank line into a draft."""
    priority_match = PRIORITY_TAG.search(line)
    points_match = POINTS_TAG.search(line)
    type_match = TYPE_TAG.search(line) if variant is ParserVariant.WORKFLOW else None

    priority = Priority(priority_match.group(1).lower()) if priority_match else DEFAULT_PRIORITY
    points = int(points_match.group(1)) if points_match else DEFAULT_POINTS
    task_type = TaskType(type_match.group(1).lower()) if type_match else DEFAULT_TYPE

    # Cut right-most spans first so earlier offsets stay valid.
    title = line
    for match in sorted(
        (m for m in (priority_match, points_match, type_match) if m is not None),
        key=lambda m: m.start(),
        reverse=True,
    ):
        title = _cut(title, match)

    return DraftTask(
        title=title.strip(),
        type=task_type,
        priority=priority,
        story_points=points,
        index=index,
        line_number=line_number,
        description=f"Generated from: {line.strip()}",
    )


def parse(text: str, variant: ParserVariant = ParserVariant.WORKFLOW) -> list[DraftTask]:
    """Parse free text into draft tasks, in line order, skipping blank lines."""
    drafts: list[DraftTask] = []
    for line_number, line in enumerate(text.split("\n"), start=1):
        if not line.strip():
            continue
        drafts.append(parse_line(line, len(drafts), line_number, variant))
    return drafts
