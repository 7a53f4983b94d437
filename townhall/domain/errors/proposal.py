"""Proposal and command mapping domain errors.

A malformed proposal or a command that drifted from the registry mapping
is a caller defect. These errors are raised immediately and are never
folded into a rejected execution result.
"""

from __future__ import annotations

from townhall.domain.exceptions import TownhallError


class ProposalError(TownhallError):
    """Base exception for proposal and command mapping errors."""

    pass


class InvalidProposalError(ProposalError):
    """Raised when a proposal envelope fails validation.

    The full list of validation messages is kept on ``errors`` so call
    sites never need to re-derive why the proposal was refused.
    """

    DEFAULT_MESSAGE: str = "Invalid proposal envelope"

    def __init__(
        self,
        errors: list[str] | None = None,
        message: str | None = None,
    ) -> None:
        """Initialize InvalidProposalError.

        Args:
            errors: Validation messages produced by the proposal validator.
            message: Optional custom error message.
        """
        self.errors = list(errors or [])

        if message is None:
            message = self.DEFAULT_MESSAGE
            if self.errors:
                message = f"{message}: {'; '.join(self.errors)}"

        super().__init__(message)


class UnknownProposalTypeError(ProposalError):
    """Raised when no registry definition exists for a proposal type."""

    def __init__(self, proposal_type: object) -> None:
        self.proposal_type = proposal_type
        super().__init__(f"Unknown proposal type: {proposal_type}")


class InvalidCommandError(ProposalError):
    """Raised when a supplied command is not a non-empty string."""

    def __init__(self, command: object) -> None:
        self.command = command
        super().__init__(f"Invalid command text: {command!r}")


class CommandMappingDriftError(ProposalError):
    """Raised when a supplied command differs from the registry mapping.

    The command carried by a handoff is always re-derived from the
    proposal. A caller that supplies anything else has a stale or broken
    mapping and must not be allowed to hand it downstream.
    """

    def __init__(
        self,
        expected_command: str,
        supplied_command: str,
        proposal_id: str | None = None,
    ) -> None:
        """Initialize CommandMappingDriftError.

        Args:
            expected_command: Command derived from the registry.
            supplied_command: Command supplied by the caller.
            proposal_id: Optional proposal ID for context.
        """
        self.expected_command = expected_command
        self.supplied_command = supplied_command
        self.proposal_id = proposal_id

        message = (
            "Command does not match proposal mapping "
            f"(expected {expected_command!r}, got {supplied_command!r})"
        )
        if proposal_id:
            message = f"{message} (proposal: {proposal_id})"

        super().__init__(message)


class InvalidProposalRegistryError(ProposalError):
    """Raised when the proposal registry table is inconsistent."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__(f"Invalid proposal registry: {'; '.join(self.errors)}")
