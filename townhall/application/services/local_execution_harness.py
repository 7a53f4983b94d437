"""Local execution harness.

Reference, side-effect-free implementation of the world-engine side of
the execution seam. It classifies a handoff against a caller-supplied
local state and reports the outcome as a content-addressed result; it
never executes the command or mutates the state.

Evaluation order (first match wins):
1. Duplicate: idempotency key already in the ledger
2. Stale: snapshot hash or decision epoch differs from the expectation
3. Preconditions: every guard evaluated, any failure rejects
4. Execute: simulated, world fingerprint advances by one epoch
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from structlog import get_logger

from townhall.config.harness_config import DEFAULT_HARNESS_CONFIG, HarnessConfig
from townhall.domain.errors.execution import InvalidLocalStateError
from townhall.domain.errors.handoff import InvalidHandoffError
from townhall.domain.models.execution_handoff import ExecutionHandoff, validate_handoff
from townhall.domain.models.execution_result import (
    DuplicateCheck,
    ExecutionResult,
    ExecutionStatus,
    PreconditionsCheck,
    ReasonCode,
    StaleCheck,
    WorldState,
)
from townhall.domain.models.local_execution_state import (
    LocalExecutionState,
    create_local_state,
)
from townhall.domain.services.execution_result_builder import (
    ExecutionOutcome,
    compute_post_execution_snapshot_hash,
    create_execution_result,
)
from townhall.domain.services.precondition_evaluator import evaluate_preconditions

logger = get_logger(__name__)

_NOT_DUPLICATE = DuplicateCheck(evaluated=True, duplicate=False, duplicate_of=None)


class LocalExecutionHarness:
    """Local world engine used for tests, replays and integration checks.

    Satisfies WorldEngineProtocol.

    Example:
        >>> harness = LocalExecutionHarness()
        >>> state = harness.create_state(snapshot_hash=proposal.snapshot_hash)
        >>> result = harness.execute(create_handoff(proposal), state)
        >>> result.status
        <ExecutionStatus.EXECUTED: 'executed'>
    """

    def __init__(self, config: HarnessConfig | None = None) -> None:
        """Initialize the harness.

        Args:
            config: Capability defaults for states created by this harness.
        """
        self._config = config or DEFAULT_HARNESS_CONFIG

    @property
    def config(self) -> HarnessConfig:
        return self._config

    def create_state(self, **overrides: Any) -> LocalExecutionState:
        """Create a normalized local state with this harness's capability defaults."""
        overrides.setdefault("supported_salvage_focuses", self._config.default_salvage_focuses)
        overrides.setdefault("supported_talk_types", self._config.default_talk_types)
        return create_local_state(**overrides)

    def execute(
        self,
        handoff: ExecutionHandoff,
        state: LocalExecutionState | Mapping[str, Any],
    ) -> ExecutionResult:
        """Evaluate a handoff against a local state.

        Args:
            handoff: A valid execution handoff.
            state: Local state, or its wire representation.

        Returns:
            The execution result; business outcomes never raise.

        Raises:
            InvalidHandoffError: If the handoff fails validation.
            InvalidLocalStateError: If the state is malformed.
        """
        handoff_errors = validate_handoff(handoff)
        if handoff_errors:
            raise InvalidHandoffError(
                handoff_errors, handoff_id=getattr(handoff, "handoff_id", None)
            )

        normalized_state = self._normalize_state(state)
        result = create_execution_result(handoff, self._classify(handoff, normalized_state))

        logger.info(
            "handoff_evaluated",
            handoff_id=handoff.handoff_id,
            proposal_id=handoff.proposal_id,
            command=handoff.command,
            status=result.status.value,
            reason_code=result.reason_code,
            result_id=result.result_id,
        )
        return result

    @staticmethod
    def _normalize_state(state: LocalExecutionState | Mapping[str, Any]) -> LocalExecutionState:
        if isinstance(state, LocalExecutionState):
            return state.normalized()
        if isinstance(state, Mapping):
            return LocalExecutionState.from_dict(state).normalized()
        raise InvalidLocalStateError(
            [f"state must be a LocalExecutionState, got {type(state).__name__}"]
        )

    @staticmethod
    def _classify(handoff: ExecutionHandoff, state: LocalExecutionState) -> ExecutionOutcome:
        duplicate_entry = state.find_processed_result(handoff.idempotency_key)
        if duplicate_entry is not None:
            return ExecutionOutcome(
                status=ExecutionStatus.DUPLICATE,
                accepted=False,
                executed=False,
                reason_code=ReasonCode.DUPLICATE_HANDOFF.value,
                duplicate_check=DuplicateCheck(
                    evaluated=True,
                    duplicate=True,
                    duplicate_of=duplicate_entry.result_id,
                ),
            )

        requirements = handoff.execution_requirements
        stale = (
            state.snapshot_hash != requirements.expected_snapshot_hash
            or state.decision_epoch != requirements.expected_decision_epoch
        )
        if stale:
            return ExecutionOutcome(
                status=ExecutionStatus.STALE,
                accepted=False,
                executed=False,
                reason_code=ReasonCode.STALE_STATE.value,
                stale_check=StaleCheck(
                    evaluated=True,
                    passed=False,
                    actual_snapshot_hash=state.snapshot_hash,
                    actual_decision_epoch=state.decision_epoch,
                ),
                duplicate_check=_NOT_DUPLICATE,
            )

        fresh = StaleCheck(
            evaluated=True,
            passed=True,
            actual_snapshot_hash=state.snapshot_hash,
            actual_decision_epoch=state.decision_epoch,
        )
        failures = evaluate_preconditions(requirements.preconditions, state)
        if failures:
            return ExecutionOutcome(
                status=ExecutionStatus.REJECTED,
                accepted=False,
                executed=False,
                reason_code=ReasonCode.PRECONDITION_FAILED.value,
                preconditions=PreconditionsCheck(evaluated=True, passed=False, failures=failures),
                stale_check=fresh,
                duplicate_check=_NOT_DUPLICATE,
            )

        return ExecutionOutcome(
            status=ExecutionStatus.EXECUTED,
            accepted=True,
            executed=True,
            reason_code=ReasonCode.EXECUTED.value,
            preconditions=PreconditionsCheck(evaluated=True, passed=True, failures=()),
            stale_check=fresh,
            duplicate_check=_NOT_DUPLICATE,
            world_state=WorldState(
                post_execution_snapshot_hash=compute_post_execution_snapshot_hash(
                    handoff, state.snapshot_hash, state.decision_epoch
                ),
                post_execution_decision_epoch=state.decision_epoch + 1,
            ),
        )


def execute_local_handoff(
    handoff: ExecutionHandoff,
    state: LocalExecutionState | Mapping[str, Any],
) -> ExecutionResult:
    """Evaluate a handoff with a default-configured local harness."""
    return LocalExecutionHarness().execute(handoff, state)
