"""Execution handoff domain model.

A handoff binds one validated proposal and its mapped command into a
replay-safe unit for the world engine. It carries the execution
requirements the engine must check before mutating anything: the world
fingerprint the proposal reasoned about and its preconditions.

Identity:
- handoff_id = "handoff_" + sha256(canonical {proposalId, command})
- idempotency_key = proposal_id, by construction, never assigned

A handoff that exists has a verified identity: construction recomputes
the command from the embedded proposal and the id from its content.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from townhall.domain.errors.handoff import HandoffIntegrityError, InvalidHandoffError
from townhall.domain.hash_utils import (
    HANDOFF_ID_PATTERN,
    HANDOFF_ID_PREFIX,
    PROPOSAL_ID_PATTERN,
    content_id,
    is_sha256_hex,
    matches,
)
from townhall.domain.models.proposal import Precondition, Proposal
from townhall.domain.models.proposal_registry import render_command
from townhall.domain.models.schema_versions import HANDOFF_SCHEMA_VERSION


def compute_handoff_id(proposal_id: str, command: str) -> str:
    """Compute the content-addressed handoff id."""
    return content_id(HANDOFF_ID_PREFIX, {"proposalId": proposal_id, "command": command})


@dataclass(frozen=True)
class ExecutionRequirements:
    """Checks the world engine must pass before executing a handoff.

    Attributes:
        expected_snapshot_hash: World fingerprint the proposal was computed from.
        expected_decision_epoch: World tick the proposal was computed from.
        preconditions: Guards to evaluate against the live world.
    """

    expected_snapshot_hash: str
    expected_decision_epoch: int
    preconditions: tuple[Precondition, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "expectedSnapshotHash": self.expected_snapshot_hash,
            "expectedDecisionEpoch": self.expected_decision_epoch,
            "preconditions": [p.to_dict() for p in self.preconditions],
        }


@dataclass(frozen=True)
class ExecutionHandoff:
    """Replay-safe handoff from the contract layer to the world engine.

    Attributes:
        handoff_id: Content-derived id (handoff_{sha256}).
        proposal_id: Id of the embedded proposal.
        idempotency_key: Always equal to proposal_id.
        snapshot_hash: Copied from the proposal.
        decision_epoch: Copied from the proposal.
        proposal: The embedded, validated proposal.
        command: Registry mapping of the proposal.
        execution_requirements: Mirrors the proposal's hash/epoch/preconditions.
        schema_version: Envelope version ("execution-handoff.v1").
        advisory: Always True; the handoff requests, it never commands.
    """

    handoff_id: str
    proposal_id: str
    idempotency_key: str
    snapshot_hash: str
    decision_epoch: int
    proposal: Proposal
    command: str
    execution_requirements: ExecutionRequirements
    schema_version: str = HANDOFF_SCHEMA_VERSION
    advisory: bool = True

    def __post_init__(self) -> None:
        """Verify the handoff identity before the value can exist.

        Raises:
            HandoffIntegrityError: If any field or derived value is wrong.
        """
        errors = validate_handoff(self)
        if errors:
            raise HandoffIntegrityError(errors, handoff_id=str(self.handoff_id))

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase wire representation."""
        return {
            "schemaVersion": self.schema_version,
            "handoffId": self.handoff_id,
            "advisory": self.advisory,
            "proposalId": self.proposal_id,
            "idempotencyKey": self.idempotency_key,
            "snapshotHash": self.snapshot_hash,
            "decisionEpoch": self.decision_epoch,
            "proposal": self.proposal.to_dict(),
            "command": self.command,
            "executionRequirements": self.execution_requirements.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExecutionHandoff:
        """Rebuild a handoff from its wire form, re-verifying its identity.

        Raises:
            InvalidProposalError: If the embedded proposal is malformed.
            InvalidHandoffError: If the payload is structurally malformed.
            HandoffIntegrityError: If any derived value does not match.
        """
        try:
            requirements = data["executionRequirements"]
            return cls(
                handoff_id=data["handoffId"],
                proposal_id=data["proposalId"],
                idempotency_key=data["idempotencyKey"],
                snapshot_hash=data["snapshotHash"],
                decision_epoch=data["decisionEpoch"],
                proposal=Proposal.from_dict(data["proposal"]),
                command=data["command"],
                execution_requirements=ExecutionRequirements(
                    expected_snapshot_hash=requirements["expectedSnapshotHash"],
                    expected_decision_epoch=requirements["expectedDecisionEpoch"],
                    preconditions=tuple(
                        Precondition.from_dict(item)
                        for item in requirements.get("preconditions", ())
                    ),
                ),
                schema_version=data["schemaVersion"],
                advisory=data["advisory"],
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise InvalidHandoffError(
                [f"malformed handoff payload: {exc}"],
                handoff_id=data.get("handoffId") if isinstance(data, Mapping) else None,
            ) from exc


def validate_handoff(handoff: object) -> list[str]:  # noqa: C901
    """Revalidate every field of a handoff and its derived values.

    Recomputes the command from the embedded proposal and the handoff id
    from {proposal_id, command}; both must match what is stored.

    Args:
        handoff: Value to validate.

    Returns:
        List of validation messages (empty if the handoff is valid).
    """
    if not isinstance(handoff, ExecutionHandoff):
        return [f"handoff must be an ExecutionHandoff, got {type(handoff).__name__}"]

    errors: list[str] = []

    if handoff.schema_version != HANDOFF_SCHEMA_VERSION:
        errors.append(f"schema_version must be '{HANDOFF_SCHEMA_VERSION}'")
    if not matches(HANDOFF_ID_PATTERN, handoff.handoff_id):
        errors.append("handoff_id must match handoff_[0-9a-f]{64}")
    if handoff.advisory is not True:
        errors.append("advisory must be True")
    if not matches(PROPOSAL_ID_PATTERN, handoff.proposal_id):
        errors.append("proposal_id must match proposal_[0-9a-f]{64}")
    if handoff.idempotency_key != handoff.proposal_id:
        errors.append("idempotency_key must equal proposal_id")
    if not is_sha256_hex(handoff.snapshot_hash):
        errors.append("snapshot_hash must be 64 lowercase hex characters")
    if (
        not isinstance(handoff.decision_epoch, int)
        or isinstance(handoff.decision_epoch, bool)
        or handoff.decision_epoch < 0
    ):
        errors.append("decision_epoch must be a non-negative integer")
    if not isinstance(handoff.command, str) or not handoff.command:
        errors.append("command must be a non-empty string")

    proposal = handoff.proposal
    if not isinstance(proposal, Proposal):
        errors.append("proposal must be a Proposal")
        return errors

    proposal_errors = proposal.validate()
    if proposal_errors:
        errors.extend(f"proposal: {message}" for message in proposal_errors)
        return errors

    if proposal.proposal_id != handoff.proposal_id:
        errors.append("proposal.proposal_id must equal proposal_id")
    if proposal.snapshot_hash != handoff.snapshot_hash:
        errors.append("proposal.snapshot_hash must equal snapshot_hash")
    if proposal.decision_epoch != handoff.decision_epoch:
        errors.append("proposal.decision_epoch must equal decision_epoch")

    mapped_command = render_command(proposal.type, proposal.town_id, proposal.args)
    if mapped_command != handoff.command:
        errors.append(
            f"command {handoff.command!r} does not match proposal mapping {mapped_command!r}"
        )

    requirements = handoff.execution_requirements
    if not isinstance(requirements, ExecutionRequirements):
        errors.append("execution_requirements must be ExecutionRequirements")
    else:
        if requirements.expected_snapshot_hash != handoff.snapshot_hash:
            errors.append("expected_snapshot_hash must equal snapshot_hash")
        if requirements.expected_decision_epoch != handoff.decision_epoch:
            errors.append("expected_decision_epoch must equal decision_epoch")
        if requirements.preconditions != proposal.effective_preconditions:
            errors.append("execution preconditions must mirror proposal preconditions")

    if isinstance(handoff.command, str) and isinstance(handoff.proposal_id, str):
        expected_id = compute_handoff_id(handoff.proposal_id, handoff.command)
        if handoff.handoff_id != expected_id:
            errors.append("handoff_id does not match content hash")

    return errors


def is_valid_handoff(handoff: object) -> bool:
    """Boolean gate over validate_handoff; never raises."""
    return not validate_handoff(handoff)
