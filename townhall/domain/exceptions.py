"""Base exception classes for the Townhall domain layer."""


class TownhallError(Exception):
    """Base exception for all domain errors.

    All domain-specific exceptions MUST inherit from this class.
    Business outcomes (duplicate, stale, rejected, executed) are never
    raised; they are returned as execution results. Subclasses signal
    caller or programmer defects only.
    """

    def __init__(self, message: str = "") -> None:
        """Initialize the exception with an optional message.

        Args:
            message: Human-readable error description.
        """
        super().__init__(message)
