"""Application services for Townhall."""

from townhall.application.services.execution_cycle_service import (
    ExecutionCycleReport,
    ExecutionCycleService,
)
from townhall.application.services.local_execution_harness import (
    LocalExecutionHarness,
    execute_local_handoff,
)

__all__: list[str] = [
    "ExecutionCycleReport",
    "ExecutionCycleService",
    "LocalExecutionHarness",
    "execute_local_handoff",
]
