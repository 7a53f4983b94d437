"""Execution handoff domain errors."""

from __future__ import annotations

from townhall.domain.exceptions import TownhallError


class HandoffError(TownhallError):
    """Base exception for execution handoff errors."""

    pass


class InvalidHandoffError(HandoffError):
    """Raised when a handoff fails structural or integrity validation.

    Evaluating an invalid handoff is a caller bug, so the harness raises
    this instead of producing a result.
    """

    DEFAULT_MESSAGE: str = "Invalid execution handoff"

    def __init__(
        self,
        errors: list[str] | None = None,
        handoff_id: str | None = None,
    ) -> None:
        """Initialize InvalidHandoffError.

        Args:
            errors: Validation messages produced by the handoff validator.
            handoff_id: Optional handoff ID for context.
        """
        self.errors = list(errors or [])
        self.handoff_id = handoff_id

        message = self.DEFAULT_MESSAGE
        if self.errors:
            message = f"{message}: {'; '.join(self.errors)}"
        if handoff_id:
            message = f"{message} (handoff: {handoff_id})"

        super().__init__(message)


class HandoffIntegrityError(InvalidHandoffError):
    """Raised when a handoff is assembled with an unverifiable identity."""

    DEFAULT_MESSAGE: str = "Execution handoff failed integrity verification"
