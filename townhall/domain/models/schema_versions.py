"""Schema version identifiers for every wire envelope.

Schema Versions:
    proposal.v2: Typed governance proposal with snapshot anchoring
    execution-handoff.v1: Replay-safe handoff to the world engine
    execution-result.v1: Content-addressed outcome record (schemaVersion 1)
"""

from __future__ import annotations

from typing import Final

PROPOSAL_SCHEMA_VERSION: Final = "proposal.v2"
HANDOFF_SCHEMA_VERSION: Final = "execution-handoff.v1"
EXECUTION_RESULT_TYPE: Final = "execution-result.v1"
EXECUTION_RESULT_SCHEMA_VERSION: Final = 1


class SchemaVersion:
    """Namespace of every envelope schema identifier."""

    PROPOSAL: Final = PROPOSAL_SCHEMA_VERSION
    HANDOFF: Final = HANDOFF_SCHEMA_VERSION
    RESULT_TYPE: Final = EXECUTION_RESULT_TYPE
    RESULT: Final = EXECUTION_RESULT_SCHEMA_VERSION
