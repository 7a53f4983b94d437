"""Domain models for Townhall.

Immutable envelopes of the execution contract: proposals, handoffs,
local execution state and execution results.
"""

from townhall.domain.models.execution_handoff import ExecutionHandoff
from townhall.domain.models.execution_result import ExecutionResult, ExecutionStatus
from townhall.domain.models.local_execution_state import LocalExecutionState
from townhall.domain.models.proposal import Precondition, Proposal
from townhall.domain.models.proposal_registry import ProposalType
from townhall.domain.models.schema_versions import SchemaVersion

__all__: list[str] = [
    "ExecutionHandoff",
    "ExecutionResult",
    "ExecutionStatus",
    "LocalExecutionState",
    "Precondition",
    "Proposal",
    "ProposalType",
    "SchemaVersion",
]
