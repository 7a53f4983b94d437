"""Domain errors for Townhall.

Provides specific exception classes for different failure scenarios.
All exceptions inherit from TownhallError.
"""

from townhall.domain.errors.execution import (
    ExecutionError,
    InvalidExecutionOutcomeError,
    InvalidLocalStateError,
    ResultIntegrityError,
)
from townhall.domain.errors.handoff import (
    HandoffError,
    HandoffIntegrityError,
    InvalidHandoffError,
)
from townhall.domain.errors.proposal import (
    CommandMappingDriftError,
    InvalidCommandError,
    InvalidProposalError,
    InvalidProposalRegistryError,
    ProposalError,
    UnknownProposalTypeError,
)
from townhall.domain.errors.wire import WireValidationError

__all__: list[str] = [
    "CommandMappingDriftError",
    "ExecutionError",
    "HandoffError",
    "HandoffIntegrityError",
    "InvalidCommandError",
    "InvalidExecutionOutcomeError",
    "InvalidHandoffError",
    "InvalidLocalStateError",
    "InvalidProposalError",
    "InvalidProposalRegistryError",
    "ProposalError",
    "ResultIntegrityError",
    "UnknownProposalTypeError",
    "WireValidationError",
]
