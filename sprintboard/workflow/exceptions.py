"""Workboard exception types."""


class WorkboardError(Exception):
    """Base class for errors surfaced through the workboard."""


class ValidationError(WorkboardError):
    """Raised before any persistence call when input is missing or malformed."""


class RemoteError(WorkboardError):
    """Raised when a persistence or oracle call fails."""


class OracleResponseError(RemoteError):
    """Raised when an oracle answers with output of the wrong shape."""


class PartialBatchError(WorkboardError):
    """Raised when some items of a batch operation failed.

    Items that succeeded are kept; ``succeeded`` and ``requested`` report the
    shortfall.
    """

    def __init__(self, succeeded: int, requested: int, failures: list | None = None):
        self.succeeded = succeeded
        self.requested = requested
        self.failures = failures or []
        super().__init__(f"Only {succeeded} of {requested} items succeeded")


class InvalidTransitionError(WorkboardError):
    """Raised when a status change is outside the allowed rule set."""

    def __init__(self, entity_id: str, from_status, to_status):
        self.entity_id = entity_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid transition for {entity_id}: "
            f"{from_status.value} → {to_status.value}"
        )
