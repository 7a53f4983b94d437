"""
Pytest configuration and shared fixtures for Townhall tests.

Testing Standards:
- Unit tests go in tests/unit/, mirroring the package layers
- Envelopes are built through the public builders, never by hand-hashing
"""

from __future__ import annotations

import pytest

from townhall.domain.models.execution_handoff import ExecutionHandoff
from townhall.domain.models.local_execution_state import (
    LocalExecutionState,
    MissionRef,
    SideQuestRef,
    create_local_state,
)
from townhall.domain.models.proposal import Precondition, Proposal, build_proposal
from townhall.domain.models.proposal_registry import ProposalType
from townhall.domain.services.execution_handoff_builder import create_handoff

SNAPSHOT_HASH = "ab" * 32
DECISION_EPOCH = 4


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from townhall import __version__

    return __version__


@pytest.fixture
def snapshot_hash() -> str:
    return SNAPSHOT_HASH


@pytest.fixture
def mission_proposal() -> Proposal:
    """Mission acceptance for side quest sq-1 at epoch 4."""
    return build_proposal(
        type=ProposalType.MAYOR_ACCEPT_MISSION,
        actor_id="mayor-1",
        town_id="millbrook",
        priority=0.8,
        args={"missionId": "sq-1"},
        reason="No active mission. Authority level 80% ready to accept.",
        reason_tags=["mission_available", "authority_ready"],
        snapshot_hash=SNAPSHOT_HASH,
        decision_epoch=DECISION_EPOCH,
        preconditions=[
            Precondition(kind="mission_absent"),
            Precondition(kind="side_quest_exists", target_id="sq-1"),
        ],
    )


@pytest.fixture
def salvage_proposal() -> Proposal:
    """Salvage plan without preconditions."""
    return build_proposal(
        type=ProposalType.SALVAGE_PLAN,
        actor_id="mayor-1",
        town_id="millbrook",
        priority=0.6,
        args={"focus": "scarcity"},
        reason="Scarcity 70% requires salvage response.",
        reason_tags=["scarcity_high"],
        snapshot_hash=SNAPSHOT_HASH,
        decision_epoch=DECISION_EPOCH,
    )


@pytest.fixture
def mission_handoff(mission_proposal: Proposal) -> ExecutionHandoff:
    return create_handoff(mission_proposal)


@pytest.fixture
def ready_state() -> LocalExecutionState:
    """State matching the proposals' world view, with sq-1 available."""
    return create_local_state(
        snapshot_hash=SNAPSHOT_HASH,
        decision_epoch=DECISION_EPOCH,
        side_quests=[SideQuestRef(id="sq-1")],
    )


@pytest.fixture
def busy_state() -> LocalExecutionState:
    """Fresh state where a mission is already active and sq-1 is gone."""
    return create_local_state(
        snapshot_hash=SNAPSHOT_HASH,
        decision_epoch=DECISION_EPOCH,
        mission=MissionRef(id="sq-0"),
    )
