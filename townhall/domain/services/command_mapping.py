"""Command mapping domain service.

Pure, total mapping from a validated proposal to the world-engine command
string, driven entirely by the proposal registry. Nothing here executes a
command or touches world state.

Commands:
    MAYOR_ACCEPT_MISSION -> mission accept <townId> <missionId>
    PROJECT_ADVANCE      -> project advance <townId> <projectId>
    SALVAGE_PLAN         -> salvage initiate <townId> <focus>
    TOWNSFOLK_TALK       -> townsfolk talk <townId> <talkType>
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from townhall.domain.errors.proposal import InvalidProposalError
from townhall.domain.models.proposal import Proposal, validate_proposal
from townhall.domain.models.proposal_registry import render_command


@dataclass(frozen=True)
class MappedProposal:
    """A proposal paired with its command and a log-friendly description."""

    proposal: Proposal
    command: str
    description: str


def map_proposal_to_command(proposal: Proposal) -> str:
    """Derive the command for a proposal straight from the registry.

    No envelope validation happens here; callers that accept untrusted
    proposals use ``proposal_to_command``.

    Raises:
        UnknownProposalTypeError: If the proposal type is not registered.
    """
    return render_command(proposal.type, proposal.town_id, proposal.args)


def proposal_to_command(proposal: Proposal) -> str:
    """Map a proposal to its world-engine command.

    Args:
        proposal: The proposal to map.

    Returns:
        The command string (never executed here).

    Raises:
        InvalidProposalError: If the proposal envelope is malformed.
    """
    errors = validate_proposal(proposal)
    if errors:
        raise InvalidProposalError(errors)
    return map_proposal_to_command(proposal)


def proposal_to_description(proposal: Proposal | None) -> str:
    """Render ``"<type>: <reason> [tag, ...]"`` for logs and reports."""
    if proposal is None or not getattr(proposal, "type", None):
        return "Unknown proposal"

    proposal_type = getattr(proposal.type, "value", proposal.type)
    tags = f" [{', '.join(proposal.reason_tags)}]" if proposal.reason_tags else ""
    return f"{proposal_type}: {proposal.reason}{tags}"


def proposals_to_commands(proposals: Sequence[Proposal]) -> tuple[MappedProposal, ...]:
    """Batch map proposals, preserving input order.

    Raises:
        TypeError: If proposals is not a list or tuple.
        InvalidProposalError: If any proposal is malformed.
    """
    if not isinstance(proposals, (list, tuple)):
        raise TypeError(
            f"Expected array of proposals, got {type(proposals).__name__}"
        )
    return tuple(
        MappedProposal(
            proposal=proposal,
            command=proposal_to_command(proposal),
            description=proposal_to_description(proposal),
        )
        for proposal in proposals
    )
