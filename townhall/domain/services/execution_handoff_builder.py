"""Execution handoff builder domain service.

Turns a validated proposal into an ExecutionHandoff. A caller may supply
the command it already mapped, but the builder always re-derives it from
the registry: a mismatch is mapping drift and is fatal.
"""

from __future__ import annotations

from townhall.domain.errors.proposal import (
    CommandMappingDriftError,
    InvalidCommandError,
)
from townhall.domain.models.execution_handoff import (
    ExecutionHandoff,
    ExecutionRequirements,
    compute_handoff_id,
)
from townhall.domain.models.proposal import Proposal
from townhall.domain.services.command_mapping import proposal_to_command


def create_handoff(proposal: Proposal, command: str | None = None) -> ExecutionHandoff:
    """Create the deterministic handoff for a proposal.

    Args:
        proposal: The selected proposal.
        command: Optional command already mapped by the caller.

    Returns:
        An immutable, identity-verified ExecutionHandoff.

    Raises:
        InvalidProposalError: If the proposal is malformed.
        InvalidCommandError: If the supplied command is not a non-empty string.
        CommandMappingDriftError: If the supplied command differs from the mapping.
    """
    mapped_command = proposal_to_command(proposal)

    if command is None:
        command = mapped_command
    elif not isinstance(command, str) or not command:
        raise InvalidCommandError(command)
    elif command != mapped_command:
        raise CommandMappingDriftError(
            expected_command=mapped_command,
            supplied_command=command,
            proposal_id=proposal.proposal_id,
        )

    return ExecutionHandoff(
        handoff_id=compute_handoff_id(proposal.proposal_id, command),
        proposal_id=proposal.proposal_id,
        idempotency_key=proposal.proposal_id,
        snapshot_hash=proposal.snapshot_hash,
        decision_epoch=proposal.decision_epoch,
        proposal=proposal,
        command=command,
        execution_requirements=ExecutionRequirements(
            expected_snapshot_hash=proposal.snapshot_hash,
            expected_decision_epoch=proposal.decision_epoch,
            preconditions=proposal.effective_preconditions,
        ),
    )
