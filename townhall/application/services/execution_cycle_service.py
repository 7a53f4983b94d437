"""Execution cycle service.

Runs one decision-to-execution cycle for a selected proposal:
proposal -> handoff -> world engine -> result -> next local state.

The cycle never executes real commands or mutates a real world; the
report states that boundary explicitly so downstream consumers cannot
mistake a simulated result for an authoritative one.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

import structlog
from structlog import get_logger

from townhall.application.services.local_execution_harness import LocalExecutionHarness
from townhall.domain.models.execution_handoff import ExecutionHandoff
from townhall.domain.models.execution_result import ExecutionResult
from townhall.domain.models.local_execution_state import LocalExecutionState
from townhall.domain.models.proposal import Proposal
from townhall.domain.services.execution_handoff_builder import create_handoff
from townhall.domain.services.state_transition import advance_local_state

if TYPE_CHECKING:
    from townhall.application.ports.world_engine import WorldEngineProtocol

logger = get_logger(__name__)

LOCAL_AUTHORITY_BOUNDARY: Mapping[str, Any] = MappingProxyType(
    {
        "execution": "local-simulated",
        "realCommandExecution": False,
        "realWorldMutation": False,
    }
)


@dataclass(frozen=True)
class ExecutionCycleReport:
    """Outcome of one execution cycle.

    Attributes:
        handoff: The handoff built for the proposal.
        result: The engine's execution result.
        next_state: Local state after folding the result in.
        authority_boundary: What the cycle was (not) allowed to do.
    """

    handoff: ExecutionHandoff
    result: ExecutionResult
    next_state: LocalExecutionState
    authority_boundary: Mapping[str, Any] = field(
        default_factory=lambda: LOCAL_AUTHORITY_BOUNDARY
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "handoff": self.handoff.to_dict(),
            "result": self.result.to_dict(),
            "nextState": self.next_state.to_dict(),
            "authorityBoundary": dict(self.authority_boundary),
        }


class ExecutionCycleService:
    """Drives proposals through the execution seam.

    Example:
        >>> service = ExecutionCycleService()
        >>> report = service.run_cycle(proposal, state)
        >>> report.next_state.decision_epoch
        5
    """

    def __init__(self, engine: WorldEngineProtocol | None = None) -> None:
        """Initialize the service.

        Args:
            engine: World engine evaluating handoffs (default: local harness).
        """
        self._engine = engine or LocalExecutionHarness()

    def run_cycle(
        self,
        proposal: Proposal,
        state: LocalExecutionState,
        command: str | None = None,
    ) -> ExecutionCycleReport:
        """Run one cycle for a proposal against a local state.

        Args:
            proposal: The selected proposal.
            state: Current local state; never mutated.
            command: Optional pre-mapped command, verified against the mapping.

        Returns:
            ExecutionCycleReport with the handoff, result and next state.

        Raises:
            InvalidProposalError: If the proposal is malformed.
            InvalidCommandError: If the supplied command is not a non-empty string.
            CommandMappingDriftError: If the supplied command differs from the mapping.
            InvalidLocalStateError: If the state is malformed.
        """
        handoff = create_handoff(proposal, command)

        with structlog.contextvars.bound_contextvars(cycle_id=handoff.handoff_id):
            result = self._engine.execute(handoff, state)
            next_state = advance_local_state(state, result)

            logger.info(
                "execution_cycle_completed",
                proposal_id=proposal.proposal_id,
                status=result.status.value,
                result_id=result.result_id,
                decision_epoch=next_state.decision_epoch,
                ledger_size=len(next_state.processed_results),
            )

        return ExecutionCycleReport(handoff=handoff, result=result, next_state=next_state)
