from .exceptions import (
    InvalidTransitionError,
    OracleResponseError,
    PartialBatchError,
    RemoteError,
    ValidationError,
    WorkboardError,
)
from .interface import TrackerBackend
from .models import (
    DraftTask,
    Priority,
    RiskLevel,
    Sprint,
    SprintMembership,
    SprintStatus,
    Task,
    TaskStatus,
    TaskType,
    TeamMember,
)

__all__ = [
    "Task",
    "Sprint",
    "SprintMembership",
    "DraftTask",
    "TeamMember",
    "TaskType",
    "TaskStatus",
    "Priority",
    "SprintStatus",
    "RiskLevel",
    "TrackerBackend",
    "WorkboardError",
    "ValidationError",
    "RemoteError",
    "OracleResponseError",
    "PartialBatchError",
    "InvalidTransitionError",
]
