"""
API models (Pydantic wire envelopes) for Townhall.
"""

from townhall.api.models.envelopes import (
    ExecutionResultPayload,
    HandoffPayload,
    LocalExecutionStatePayload,
    ProposalPayload,
    is_valid_execution_result_payload,
    is_valid_handoff_payload,
    is_valid_local_state_payload,
    is_valid_proposal_payload,
    parse_execution_result,
    parse_handoff,
    parse_local_state,
    parse_proposal,
)

__all__: list[str] = [
    "ExecutionResultPayload",
    "HandoffPayload",
    "LocalExecutionStatePayload",
    "ProposalPayload",
    "is_valid_execution_result_payload",
    "is_valid_handoff_payload",
    "is_valid_local_state_payload",
    "is_valid_proposal_payload",
    "parse_execution_result",
    "parse_handoff",
    "parse_local_state",
    "parse_proposal",
]
