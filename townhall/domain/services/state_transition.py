"""Local state transition domain service.

Folds an execution result back into the caller-owned local state,
producing the state the next evaluation cycle should run against.

Rules:
- Accepted results record {idempotency_key, result_id} in the ledger
- Executed results also move the world fingerprint to the result's
  world_state values
- Duplicate, stale and rejected results leave the state unchanged
"""

from __future__ import annotations

from dataclasses import replace

from townhall.domain.errors.execution import (
    InvalidExecutionOutcomeError,
    InvalidLocalStateError,
)
from townhall.domain.models.execution_result import (
    ExecutionResult,
    validate_execution_result,
)
from townhall.domain.models.local_execution_state import (
    LocalExecutionState,
    ProcessedResultEntry,
)


def advance_local_state(
    state: LocalExecutionState, result: ExecutionResult
) -> LocalExecutionState:
    """Return the state that follows ``result``.

    Args:
        state: State the result was evaluated against.
        result: Result produced for that state.

    Returns:
        The next (normalized) state; ``state`` itself when nothing changes.

    Raises:
        InvalidExecutionOutcomeError: If the result fails revalidation.
        InvalidLocalStateError: If the state is malformed or the result's
            idempotency key is already recorded.
    """
    if not isinstance(state, LocalExecutionState):
        raise InvalidLocalStateError(
            [f"state must be a LocalExecutionState, got {type(state).__name__}"]
        )
    result_errors = validate_execution_result(result)
    if result_errors:
        raise InvalidExecutionOutcomeError("Invalid execution result", result_errors)

    if not result.accepted:
        return state

    if result.idempotency_key in state.ledger_index():
        raise InvalidLocalStateError(
            [f"idempotency key already processed: {result.idempotency_key}"]
        )

    next_state = replace(
        state,
        processed_results=(
            *state.processed_results,
            ProcessedResultEntry(
                idempotency_key=result.idempotency_key,
                result_id=result.result_id,
            ),
        ),
    )

    world_state = result.world_state
    if result.executed and world_state is not None:
        next_state = replace(
            next_state,
            snapshot_hash=(
                world_state.post_execution_snapshot_hash
                if world_state.post_execution_snapshot_hash is not None
                else next_state.snapshot_hash
            ),
            decision_epoch=(
                world_state.post_execution_decision_epoch
                if world_state.post_execution_decision_epoch is not None
                else next_state.decision_epoch
            ),
        )

    return next_state.normalized()
