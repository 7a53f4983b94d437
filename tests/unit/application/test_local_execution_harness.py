"""Unit tests for LocalExecutionHarness.

Covers the evaluation order (duplicate, stale, preconditions, execute),
the audit trail of every check, and determinism of the results.
"""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from townhall.application.services.local_execution_harness import (
    LocalExecutionHarness,
    execute_local_handoff,
)
from townhall.config import HarnessConfig
from townhall.domain.errors import InvalidHandoffError, InvalidLocalStateError
from townhall.domain.hash_utils import compute_hash
from townhall.domain.models.execution_handoff import ExecutionHandoff
from townhall.domain.models.execution_result import ExecutionStatus, PreconditionFailure
from townhall.domain.models.local_execution_state import (
    LocalExecutionState,
    MissionRef,
    ProcessedResultEntry,
    SideQuestRef,
)
from townhall.domain.models.proposal import Proposal
from townhall.domain.services.execution_handoff_builder import create_handoff

PRIOR_RESULT = "result_" + "a" * 64
STALE_HASH = "f" * 64


@pytest.fixture
def harness() -> LocalExecutionHarness:
    return LocalExecutionHarness()


class TestExecute:
    """Tests for the four classification outcomes."""

    def test_executes_when_fresh_and_preconditions_hold(
        self,
        harness: LocalExecutionHarness,
        mission_handoff: ExecutionHandoff,
        ready_state: LocalExecutionState,
    ) -> None:
        result = harness.execute(mission_handoff, ready_state)

        assert result.status is ExecutionStatus.EXECUTED
        assert result.accepted is True
        assert result.executed is True
        assert result.reason_code == "EXECUTED"
        assert result.world_state is not None
        assert result.world_state.post_execution_decision_epoch == 5
        assert result.world_state.post_execution_snapshot_hash == compute_hash(
            {
                "previousSnapshotHash": ready_state.snapshot_hash,
                "nextDecisionEpoch": 5,
                "command": "mission accept millbrook sq-1",
                "proposalId": mission_handoff.proposal_id,
            }
        )

        evaluation = result.evaluation
        assert evaluation.preconditions.evaluated and evaluation.preconditions.passed
        assert evaluation.stale_check.passed
        assert evaluation.stale_check.actual_decision_epoch == 4
        assert evaluation.duplicate_check.evaluated
        assert not evaluation.duplicate_check.duplicate

    def test_duplicate_when_key_already_processed(
        self,
        harness: LocalExecutionHarness,
        mission_handoff: ExecutionHandoff,
        ready_state: LocalExecutionState,
    ) -> None:
        state = harness.create_state(
            snapshot_hash=ready_state.snapshot_hash,
            decision_epoch=ready_state.decision_epoch,
            side_quests=[SideQuestRef(id="sq-1")],
            processed_results=[
                ProcessedResultEntry(mission_handoff.idempotency_key, PRIOR_RESULT)
            ],
        )

        result = harness.execute(mission_handoff, state)

        assert result.status is ExecutionStatus.DUPLICATE
        assert (result.accepted, result.executed) == (False, False)
        assert result.reason_code == "DUPLICATE_HANDOFF"
        assert result.evaluation.duplicate_check.duplicate is True
        assert result.evaluation.duplicate_check.duplicate_of == PRIOR_RESULT
        assert result.evaluation.stale_check.evaluated is False
        assert result.evaluation.preconditions.evaluated is False
        assert result.world_state is None

    def test_stale_when_fingerprint_differs(
        self,
        harness: LocalExecutionHarness,
        mission_handoff: ExecutionHandoff,
    ) -> None:
        state = harness.create_state(snapshot_hash=STALE_HASH, decision_epoch=5)

        result = harness.execute(mission_handoff, state)

        assert result.status is ExecutionStatus.STALE
        assert result.reason_code == "STALE_STATE"
        stale_check = result.evaluation.stale_check
        assert stale_check.evaluated is True
        assert stale_check.passed is False
        assert stale_check.actual_snapshot_hash == STALE_HASH
        assert stale_check.actual_decision_epoch == 5
        assert result.evaluation.preconditions.evaluated is False
        assert result.evaluation.duplicate_check.evaluated is True

    def test_stale_when_only_epoch_differs(
        self,
        harness: LocalExecutionHarness,
        mission_handoff: ExecutionHandoff,
        ready_state: LocalExecutionState,
    ) -> None:
        state = harness.create_state(
            snapshot_hash=ready_state.snapshot_hash,
            decision_epoch=ready_state.decision_epoch + 1,
            side_quests=[SideQuestRef(id="sq-1")],
        )
        assert harness.execute(mission_handoff, state).status is ExecutionStatus.STALE

    def test_rejected_with_every_failing_precondition(
        self,
        harness: LocalExecutionHarness,
        mission_handoff: ExecutionHandoff,
        busy_state: LocalExecutionState,
    ) -> None:
        result = harness.execute(mission_handoff, busy_state)

        assert result.status is ExecutionStatus.REJECTED
        assert result.reason_code == "PRECONDITION_FAILED"
        assert result.evaluation.stale_check.passed is True
        assert result.evaluation.preconditions.evaluated is True
        assert result.evaluation.preconditions.passed is False
        assert result.evaluation.preconditions.failures == (
            PreconditionFailure("mission_absent", "Mission is already active"),
            PreconditionFailure("side_quest_exists", "Missing side quest: sq-1"),
        )

    def test_rejected_when_side_quest_missing(
        self, harness: LocalExecutionHarness, mission_handoff: ExecutionHandoff
    ) -> None:
        state = harness.create_state(snapshot_hash="ab" * 32, decision_epoch=4, side_quests=[])

        result = harness.execute(mission_handoff, state)

        assert result.status is ExecutionStatus.REJECTED
        assert result.evaluation.preconditions.failures == (
            PreconditionFailure("side_quest_exists", "Missing side quest: sq-1"),
        )

    def test_proposal_without_preconditions_executes(
        self, harness: LocalExecutionHarness, salvage_proposal: Proposal
    ) -> None:
        state = harness.create_state(
            snapshot_hash=salvage_proposal.snapshot_hash,
            decision_epoch=salvage_proposal.decision_epoch,
        )
        result = harness.execute(create_handoff(salvage_proposal), state)
        assert result.status is ExecutionStatus.EXECUTED


class TestEvaluationOrder:
    """Earlier checks take precedence over later ones."""

    def test_duplicate_wins_over_stale_and_preconditions(
        self, harness: LocalExecutionHarness, mission_handoff: ExecutionHandoff
    ) -> None:
        state = harness.create_state(
            snapshot_hash=STALE_HASH,
            decision_epoch=9,
            processed_results=[
                ProcessedResultEntry(mission_handoff.idempotency_key, PRIOR_RESULT)
            ],
        )
        assert harness.execute(mission_handoff, state).status is ExecutionStatus.DUPLICATE

    def test_stale_wins_over_preconditions(
        self, harness: LocalExecutionHarness, mission_handoff: ExecutionHandoff
    ) -> None:
        # Mission active and sq-1 missing, but the fingerprint is also wrong
        state = harness.create_state(
            snapshot_hash=STALE_HASH, decision_epoch=4, mission=MissionRef(id="m-9")
        )
        assert harness.execute(mission_handoff, state).status is ExecutionStatus.STALE


class TestHarnessContract:
    """Tests for input handling, purity and determinism."""

    def test_is_deterministic(
        self,
        harness: LocalExecutionHarness,
        mission_handoff: ExecutionHandoff,
        ready_state: LocalExecutionState,
    ) -> None:
        first = harness.execute(mission_handoff, ready_state)
        second = LocalExecutionHarness().execute(mission_handoff, ready_state)

        assert first == second
        assert first.result_id == second.result_id

    def test_does_not_mutate_state(
        self,
        harness: LocalExecutionHarness,
        mission_handoff: ExecutionHandoff,
        ready_state: LocalExecutionState,
    ) -> None:
        before = ready_state.to_dict()
        harness.execute(mission_handoff, ready_state)
        assert ready_state.to_dict() == before

    def test_accepts_wire_form_state(
        self,
        harness: LocalExecutionHarness,
        mission_handoff: ExecutionHandoff,
        ready_state: LocalExecutionState,
    ) -> None:
        from_mapping = harness.execute(mission_handoff, ready_state.to_dict())
        assert from_mapping == harness.execute(mission_handoff, ready_state)

    def test_rejects_invalid_handoff(
        self, harness: LocalExecutionHarness, ready_state: LocalExecutionState
    ) -> None:
        with pytest.raises(InvalidHandoffError):
            harness.execute({"handoffId": "x"}, ready_state)  # type: ignore[arg-type]

    def test_rejects_invalid_state(
        self, harness: LocalExecutionHarness, mission_handoff: ExecutionHandoff
    ) -> None:
        with pytest.raises(InvalidLocalStateError):
            harness.execute(mission_handoff, None)  # type: ignore[arg-type]

    def test_rejects_malformed_wire_state(
        self, harness: LocalExecutionHarness, mission_handoff: ExecutionHandoff
    ) -> None:
        with pytest.raises(InvalidLocalStateError):
            harness.execute(mission_handoff, {"snapshotHash": "nope", "decisionEpoch": 1})

    def test_rejects_wire_state_with_malformed_mission(
        self,
        harness: LocalExecutionHarness,
        mission_handoff: ExecutionHandoff,
        ready_state: LocalExecutionState,
    ) -> None:
        wire_state = {**ready_state.to_dict(), "mission": {}}
        with pytest.raises(InvalidLocalStateError):
            harness.execute(mission_handoff, wire_state)

    def test_module_level_helper_matches_harness(
        self,
        harness: LocalExecutionHarness,
        mission_handoff: ExecutionHandoff,
        ready_state: LocalExecutionState,
    ) -> None:
        assert execute_local_handoff(mission_handoff, ready_state) == harness.execute(
            mission_handoff, ready_state
        )

    def test_logs_classification(
        self,
        harness: LocalExecutionHarness,
        mission_handoff: ExecutionHandoff,
        busy_state: LocalExecutionState,
    ) -> None:
        with capture_logs() as logs:
            result = harness.execute(mission_handoff, busy_state)

        entries = [entry for entry in logs if entry["event"] == "handoff_evaluated"]
        assert len(entries) == 1
        assert entries[0]["handoff_id"] == mission_handoff.handoff_id
        assert entries[0]["status"] == "rejected"
        assert entries[0]["reason_code"] == "PRECONDITION_FAILED"
        assert entries[0]["result_id"] == result.result_id


class TestCreateState:
    """Tests for capability defaults from configuration."""

    def test_uses_config_capabilities(self) -> None:
        harness = LocalExecutionHarness(
            HarnessConfig(default_salvage_focuses=("general",), default_talk_types=("casual",))
        )

        state = harness.create_state()

        assert state.supported_salvage_focuses == ("general",)
        assert state.supported_talk_types == ("casual",)

    def test_explicit_capabilities_override_config(self) -> None:
        harness = LocalExecutionHarness(HarnessConfig(default_talk_types=("casual",)))
        state = harness.create_state(supported_talk_types=["morale-boost"])
        assert state.supported_talk_types == ("morale-boost",)

    def test_reduced_capabilities_reject_unsupported_focus(self) -> None:
        from townhall.domain.models.proposal import Precondition, build_proposal
        from townhall.domain.models.proposal_registry import ProposalType

        proposal = build_proposal(
            type=ProposalType.SALVAGE_PLAN,
            actor_id="mayor-1",
            town_id="millbrook",
            priority=0.5,
            args={"focus": "dread"},
            reason="Dread is rising.",
            reason_tags=["dread_high"],
            snapshot_hash="ab" * 32,
            decision_epoch=0,
            preconditions=[Precondition(kind="salvage_focus_supported", expected="dread")],
        )
        harness = LocalExecutionHarness(HarnessConfig(default_salvage_focuses=("general",)))
        state = harness.create_state(snapshot_hash="ab" * 32)

        result = harness.execute(create_handoff(proposal), state)

        assert result.status is ExecutionStatus.REJECTED
        assert result.evaluation.preconditions.failures == (
            PreconditionFailure("salvage_focus_supported", "Unsupported salvage focus: dread"),
        )
