"""Wire payload domain errors.

Raised when untrusted JSON arriving from outside the process cannot be
turned into a verified domain envelope.
"""

from __future__ import annotations

from townhall.domain.exceptions import TownhallError


class WireValidationError(TownhallError):
    """Raised when a wire payload fails schema or integrity validation."""

    def __init__(self, envelope: str, errors: list[str]) -> None:
        """Initialize WireValidationError.

        Args:
            envelope: Name of the envelope being parsed (e.g. "handoff").
            errors: Human-readable validation messages.
        """
        self.envelope = envelope
        self.errors = list(errors)
        super().__init__(f"Invalid {envelope} payload: {'; '.join(self.errors)}")
