from .analytics import SprintForecast, SprintVelocity, forecast_sprint, sprint_velocity
from .controller import BoardSession, MoveResult, StatusTransitionController
from .ledger import MembershipLedger
from .projection import (
    ALL,
    BACKLOG,
    NO_FILTERS,
    Board,
    BoardFilters,
    BoardScope,
    BoardSnapshot,
    ScopeKind,
    load_snapshot,
    project,
)
from .risk import HeuristicRiskOracle, RiskOracle, RiskReport, RiskRequest, build_risk_request
from .scope import ScopeAlert, ScopeAnalyzer, ScopeReport, ScopeThresholds, analyze_sprint
from .store import TaskStore

__all__ = [
    "ALL",
    "BACKLOG",
    "NO_FILTERS",
    "Board",
    "BoardFilters",
    "BoardScope",
    "BoardSession",
    "BoardSnapshot",
    "HeuristicRiskOracle",
    "MembershipLedger",
    "MoveResult",
    "RiskOracle",
    "RiskReport",
    "RiskRequest",
    "ScopeAlert",
    "ScopeAnalyzer",
    "ScopeKind",
    "ScopeReport",
    "ScopeThresholds",
    "SprintForecast",
    "SprintVelocity",
    "StatusTransitionController",
    "TaskStore",
    "analyze_sprint",
    "build_risk_request",
    "forecast_sprint",
    "load_snapshot",
    "project",
    "sprint_velocity",
]
