"""World engine port.

Contract every world-mutation engine implements: evaluate one handoff
against the engine's view of the world and report the outcome as an
execution result. The local harness is the reference implementation; a
real engine lives outside this package.

Constraints:
- Business outcomes (duplicate, stale, rejected) are results, never errors
- Structurally invalid input raises
- The supplied state is never mutated
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from townhall.domain.models.execution_handoff import ExecutionHandoff
    from townhall.domain.models.execution_result import ExecutionResult
    from townhall.domain.models.local_execution_state import LocalExecutionState


class WorldEngineProtocol(Protocol):
    """Protocol for engines that evaluate execution handoffs."""

    @abstractmethod
    def execute(
        self,
        handoff: ExecutionHandoff,
        state: LocalExecutionState,
    ) -> ExecutionResult:
        """Evaluate a handoff against a world state.

        Args:
            handoff: A valid execution handoff.
            state: The world view to evaluate against.

        Returns:
            The content-addressed execution result.

        Raises:
            InvalidHandoffError: If the handoff is structurally invalid.
            InvalidLocalStateError: If the state is malformed.
        """
        ...
