from .oracle import (
    ClaudePlanningOracle,
    ClaudeRiskOracle,
    MockPlanningOracle,
    PlanningOracle,
    PlanRequest,
    PlanSuggestion,
    WorkloadShare,
    parse_plan_suggestion,
)
from .parser import ParserVariant, parse, parse_line
from .reconciler import CommitResult, ItemFailure, SprintPlan, SprintPlanReconciler

__all__ = [
    "ClaudePlanningOracle",
    "ClaudeRiskOracle",
    "CommitResult",
    "ItemFailure",
    "MockPlanningOracle",
    "ParserVariant",
    "PlanRequest",
    "PlanSuggestion",
    "PlanningOracle",
    "SprintPlan",
    "SprintPlanReconciler",
    "WorkloadShare",
    "parse",
    "parse_line",
    "parse_plan_suggestion",
]
