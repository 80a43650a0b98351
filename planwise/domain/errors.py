"""Error taxonomy of the planner."""


class PlanwiseError(Exception):
    """Base class for planner errors."""


class NoWorkspaceError(PlanwiseError):
    """No project root is available; fatal to context building only."""


class ResponseValidationError(PlanwiseError):
    """Backend output is malformed. Never surfaced raw; triggers fallback."""


class BackendUnavailableError(PlanwiseError):
    """Missing credential or failed handshake. Persists until an explicit refresh."""


class FileApplyError(PlanwiseError):
    """Applying a single plan item failed. Reported per item, never aborts the batch."""

    def __init__(self, file: str, reason: str) -> None:
        super().__init__(f"{file}: {reason}")
        self.file = file
        self.reason = reason


class InputValidationError(PlanwiseError):
    """User-entered text failed length/shape checks. No state is mutated."""
