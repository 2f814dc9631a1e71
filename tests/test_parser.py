"""Tests for the free-text task parser."""

import pytest

from sprintboard.planning.parser import DEFAULT_POINTS, ParserVariant, parse, parse_line
from sprintboard.workflow.models import Priority, TaskType


class TestParse:
    def test_two_lines_with_defaults(self):
        drafts = parse("Fix bug [high] (5)\nWrite docs")
        assert [(d.title, d.priority, d.story_points, d.type) for d in drafts] == [
            ("Fix bug", Priority.HIGH, 5, TaskType.TASK),
            ("Write docs", Priority.MEDIUM, DEFAULT_POINTS, TaskType.TASK),
        ]

    def test_blank_lines_skipped_index_follows_output(self):
        drafts = parse("\n  \nFirst\n\nSecond\n")
        assert [(d.title, d.index, d.line_number) for d in drafts] == [
            ("First", 0, 3),
            ("Second", 1, 5),
        ]

    def test_empty_input(self):
        assert parse("") == []
        assert parse("\n\n   \n") == []

    def test_same_input_same_output(self):
        text = "Login [low] (2) {story}\nCrash {bug}"
        assert parse(text) == parse(text)

    def test_description_keeps_source_line(self):
        (draft,) = parse("  Ship it [high]  ")
        assert draft.description == "Generated from: Ship it [high]"

    def test_only_newline_splits_lines(self):
        drafts = parse("Alpha\x0cBeta\u2028Gamma\nDelta")
        assert [d.title for d in drafts] == ["Alpha\x0cBeta\u2028Gamma", "Delta"]

    def test_crlf_line_endings(self):
        drafts = parse("One (2)\r\nTwo\r\n")
        assert [(d.title, d.story_points) for d in drafts] == [("One", 2), ("Two", 3)]


class TestTags:
    def test_tags_anywhere_in_line(self):
        draft = parse_line("[high] Fix (8) login {bug} redirect")
        assert draft.title == "Fix  login  redirect"
        assert draft.priority is Priority.HIGH
        assert draft.story_points == 8
        assert draft.type is TaskType.BUG

    def test_tags_case_insensitive(self):
        draft = parse_line("Deploy [HIGH] {Story}")
        assert draft.priority is Priority.HIGH
        assert draft.type is TaskType.STORY

    def test_only_first_match_removed(self):
        draft = parse_line("Compare [low] and [high] (1) (2)")
        assert draft.priority is Priority.LOW
        assert draft.story_points == 1
        assert draft.title == "Compare  and [high]  (2)"

    def test_unknown_tag_values_stay_in_title(self):
        draft = parse_line("Refactor [urgent] (lots) {epic}")
        assert draft.title == "Refactor [urgent] (lots) {epic}"
        assert draft.priority is Priority.MEDIUM
        assert draft.story_points == DEFAULT_POINTS
        assert draft.type is TaskType.TASK

    def test_zero_points(self):
        assert parse_line("Tiny (0)").story_points == 0

    def test_tags_only_line_has_empty_title(self):
        draft = parse_line("[high] (3)")
        assert draft.title == ""


class TestPlannerVariant:
    def test_type_tag_left_in_title(self):
        (draft,) = parse("Crash on save [high] {bug}", ParserVariant.PLANNER)
        assert draft.type is TaskType.TASK
        assert draft.title == "Crash on save  {bug}"
        assert draft.priority is Priority.HIGH

    @pytest.mark.parametrize("variant", list(ParserVariant))
    def test_priority_and_points_in_both(self, variant):
        (draft,) = parse("X [low] (13)", variant)
        assert (draft.priority, draft.story_points) == (Priority.LOW, 13)
