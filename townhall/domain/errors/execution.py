"""Execution result and local execution state domain errors."""

from __future__ import annotations

from townhall.domain.exceptions import TownhallError


class ExecutionError(TownhallError):
    """Base exception for execution result and state errors."""

    pass


class InvalidExecutionOutcomeError(ExecutionError):
    """Raised when an outcome cannot form a valid execution result.

    Covers status/flag combinations that break the result invariants as
    well as malformed evaluation, world-state, authority or embodiment
    blocks.
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        self.errors = list(errors or [])
        if self.errors:
            message = f"{message}: {'; '.join(self.errors)}"
        super().__init__(message)


class ResultIntegrityError(ExecutionError):
    """Raised when a result's stored id does not match its content hash."""

    def __init__(self, result_id: str, expected_result_id: str) -> None:
        self.result_id = result_id
        self.expected_result_id = expected_result_id
        super().__init__(
            f"Execution result id mismatch: stored {result_id}, "
            f"computed {expected_result_id}"
        )


class InvalidLocalStateError(ExecutionError):
    """Raised when a local execution state fails validation."""

    DEFAULT_MESSAGE: str = "Invalid local execution state"

    def __init__(self, errors: list[str] | None = None) -> None:
        self.errors = list(errors or [])
        message = self.DEFAULT_MESSAGE
        if self.errors:
            message = f"{message}: {'; '.join(self.errors)}"
        super().__init__(message)
