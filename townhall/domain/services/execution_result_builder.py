"""Execution result builder domain service.

Assembles the final ExecutionResult for a handoff from an outcome
supplied by the evaluator (local harness or a real world engine). The
builder copies every contextual field from the handoff, so an outcome
only describes what happened, never which proposal it happened to.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from townhall.domain.errors.execution import InvalidExecutionOutcomeError
from townhall.domain.errors.handoff import InvalidHandoffError
from townhall.domain.hash_utils import compute_hash
from townhall.domain.models.execution_handoff import ExecutionHandoff, validate_handoff
from townhall.domain.models.execution_result import (
    DuplicateCheck,
    EmbodimentBlock,
    ExecutionEvaluation,
    ExecutionResult,
    ExecutionResultDraft,
    ExecutionStatus,
    PreconditionsCheck,
    StaleCheck,
    WorldState,
    coerce_status,
    validate_authority_commands,
    validate_embodiment,
    validate_evaluation,
    validate_execution_state,
    validate_world_state,
)


@dataclass(frozen=True)
class ExecutionOutcome:
    """What happened to a handoff, before it is bound into a result.

    Check blocks default to "not evaluated"; optional blocks default to
    absent.
    """

    status: ExecutionStatus | str
    accepted: bool
    executed: bool
    reason_code: str
    preconditions: PreconditionsCheck = field(default_factory=PreconditionsCheck)
    stale_check: StaleCheck = field(default_factory=StaleCheck)
    duplicate_check: DuplicateCheck = field(default_factory=DuplicateCheck)
    world_state: WorldState | None = None
    authority_commands: tuple[str, ...] | None = None
    embodiment: EmbodimentBlock | None = None

    @property
    def evaluation(self) -> ExecutionEvaluation:
        return ExecutionEvaluation(
            preconditions=self.preconditions,
            stale_check=self.stale_check,
            duplicate_check=self.duplicate_check,
        )


def compute_post_execution_snapshot_hash(
    handoff: ExecutionHandoff, snapshot_hash: str, decision_epoch: int
) -> str:
    """Derive the world fingerprint after a handoff executes.

    The hash covers the previous fingerprint, the next epoch, the command
    and the proposal id, so it is reproducible from the same inputs.
    """
    return compute_hash(
        {
            "previousSnapshotHash": snapshot_hash,
            "nextDecisionEpoch": decision_epoch + 1,
            "command": handoff.command,
            "proposalId": handoff.proposal_id,
        }
    )


def _check_outcome(outcome: ExecutionOutcome) -> None:
    status = coerce_status(outcome.status)
    authority_commands: Any = outcome.authority_commands
    if isinstance(authority_commands, list):
        authority_commands = tuple(authority_commands)

    checks: tuple[tuple[str, list[str]], ...] = (
        (
            "Invalid execution outcome state",
            validate_execution_state(
                status, outcome.accepted, outcome.executed, outcome.reason_code
            ),
        ),
        ("Invalid execution evaluation block", validate_evaluation(outcome.evaluation)),
        ("Invalid execution world state", validate_world_state(outcome.world_state, status)),
        ("Invalid authority commands", validate_authority_commands(authority_commands)),
        ("Invalid execution embodiment block", validate_embodiment(outcome.embodiment)),
    )
    for message, errors in checks:
        if errors:
            raise InvalidExecutionOutcomeError(message, errors)


def create_execution_result(
    handoff: ExecutionHandoff, outcome: ExecutionOutcome
) -> ExecutionResult:
    """Bind an outcome to its handoff and produce the content-addressed result.

    Args:
        handoff: The evaluated handoff; must be valid.
        outcome: What happened to it.

    Returns:
        An immutable ExecutionResult whose id is verified.

    Raises:
        InvalidHandoffError: If the handoff is not valid.
        InvalidExecutionOutcomeError: If the outcome breaks the result rules.
    """
    handoff_errors = validate_handoff(handoff)
    if handoff_errors:
        raise InvalidHandoffError(handoff_errors)

    _check_outcome(outcome)

    authority_commands = outcome.authority_commands
    if authority_commands is not None:
        authority_commands = tuple(authority_commands)

    draft = ExecutionResultDraft(
        handoff_id=handoff.handoff_id,
        proposal_id=handoff.proposal_id,
        idempotency_key=handoff.idempotency_key,
        snapshot_hash=handoff.snapshot_hash,
        decision_epoch=handoff.decision_epoch,
        actor_id=handoff.proposal.actor_id,
        town_id=handoff.proposal.town_id,
        proposal_type=handoff.proposal.type.value,
        command=handoff.command,
        status=outcome.status,  # type: ignore[arg-type]
        accepted=outcome.accepted,
        executed=outcome.executed,
        reason_code=outcome.reason_code,
        evaluation=outcome.evaluation,
        world_state=outcome.world_state,
        authority_commands=authority_commands,
        embodiment=outcome.embodiment,
    )
    return draft.freeze()
