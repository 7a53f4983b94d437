"""Unit tests for the LocalExecutionState domain model."""

from __future__ import annotations

from typing import Any

import pytest

from townhall.domain.errors import InvalidLocalStateError
from townhall.domain.hash_utils import GENESIS_SNAPSHOT_HASH
from townhall.domain.models.local_execution_state import (
    LocalExecutionState,
    MissionRef,
    ProcessedResultEntry,
    ProjectRef,
    ProjectStatus,
    SideQuestRef,
    create_local_state,
)

RESULT_A = "result_" + "a" * 64
RESULT_B = "result_" + "b" * 64


class TestCreateLocalState:
    """Tests for create_local_state()."""

    def test_defaults(self) -> None:
        state = create_local_state()

        assert state.snapshot_hash == GENESIS_SNAPSHOT_HASH
        assert state.decision_epoch == 0
        assert state.mission is None
        assert state.side_quests == ()
        assert state.projects == ()
        assert state.supported_salvage_focuses == ("dread", "general", "scarcity")
        assert state.supported_talk_types == ("casual", "morale-boost")
        assert state.processed_results == ()

    def test_overrides_are_applied_and_normalized(self) -> None:
        state = create_local_state(
            decision_epoch=3,
            side_quests=[SideQuestRef(id="sq-2"), SideQuestRef(id="sq-1")],
            supported_talk_types=["morale-boost", "casual", "casual"],
        )

        assert state.decision_epoch == 3
        assert [item.id for item in state.side_quests] == ["sq-1", "sq-2"]
        assert state.supported_talk_types == ("casual", "morale-boost")

    def test_unknown_override_raises_invalid_state(self) -> None:
        with pytest.raises(InvalidLocalStateError):
            create_local_state(weather="rain")


class TestLocalStateValidation:
    """Tests for field validation."""

    @pytest.mark.parametrize(
        ("overrides", "fragment"),
        [
            ({"snapshot_hash": "nope"}, "snapshot_hash"),
            ({"decision_epoch": -1}, "decision_epoch"),
            ({"decision_epoch": True}, "decision_epoch"),
            ({"mission": MissionRef(id="")}, "mission"),
            (
                {"side_quests": [SideQuestRef(id="sq-1"), SideQuestRef(id="sq-1")]},
                "duplicate side quest id: sq-1",
            ),
            (
                {"projects": [ProjectRef(id="wall"), ProjectRef(id="wall")]},
                "duplicate project id: wall",
            ),
            ({"projects": [ProjectRef(id="wall", status="abandoned")]}, "unknown status"),
            ({"supported_salvage_focuses": [1, 2]}, "supported_salvage_focuses"),
            (
                {"processed_results": [ProcessedResultEntry("proposal-a", "result_x")]},
                "processed_results",
            ),
            (
                {
                    "processed_results": [
                        ProcessedResultEntry("proposal-a", RESULT_A),
                        ProcessedResultEntry("proposal-a", RESULT_B),
                    ]
                },
                "duplicate processed idempotency key: proposal-a",
            ),
        ],
    )
    def test_invalid_fields_raise(self, overrides: dict[str, Any], fragment: str) -> None:
        with pytest.raises(InvalidLocalStateError) as exc_info:
            LocalExecutionState(**overrides)
        assert any(fragment in message for message in exc_info.value.errors)

    def test_project_status_strings_are_coerced(self) -> None:
        assert ProjectRef(id="wall", status="planning").status is ProjectStatus.PLANNING


class TestNormalization:
    """Tests for normalized() and ledger lookups."""

    def test_normalizes_deterministically(self) -> None:
        state = LocalExecutionState(
            snapshot_hash="a" * 64,
            decision_epoch=2,
            side_quests=(SideQuestRef(id="sq-2"), SideQuestRef(id="sq-1")),
            projects=(
                ProjectRef(id="proj-2", status=ProjectStatus.PLANNING),
                ProjectRef(id="proj-1"),
            ),
            supported_salvage_focuses=("general", "scarcity", "dread"),
            supported_talk_types=("morale-boost", "casual"),
            processed_results=(
                ProcessedResultEntry("proposal-b", RESULT_B),
                ProcessedResultEntry("proposal-a", RESULT_A),
            ),
        )

        normalized = state.normalized()

        assert [item.id for item in normalized.side_quests] == ["sq-1", "sq-2"]
        assert [item.id for item in normalized.projects] == ["proj-1", "proj-2"]
        assert normalized.supported_salvage_focuses == ("dread", "general", "scarcity")
        assert [entry.idempotency_key for entry in normalized.processed_results] == [
            "proposal-a",
            "proposal-b",
        ]
        assert normalized.normalized() == normalized

    def test_normalized_does_not_mutate_original(self) -> None:
        state = LocalExecutionState(side_quests=(SideQuestRef(id="b"), SideQuestRef(id="a")))
        state.normalized()
        assert [item.id for item in state.side_quests] == ["b", "a"]

    def test_ledger_lookups(self) -> None:
        state = create_local_state(
            processed_results=[ProcessedResultEntry("proposal-a", RESULT_A)]
        )

        assert state.find_processed_result("proposal-a") == ProcessedResultEntry(
            "proposal-a", RESULT_A
        )
        assert state.find_processed_result("proposal-b") is None
        assert dict(state.ledger_index()) == {"proposal-a": RESULT_A}


class TestLocalStateWireForm:
    """Tests for to_dict() / from_dict()."""

    def test_round_trip(self) -> None:
        state = create_local_state(
            mission=MissionRef(id="m-1"),
            projects=[ProjectRef(id="wall", status=ProjectStatus.BLOCKED)],
            processed_results=[ProcessedResultEntry("proposal-a", RESULT_A)],
        )

        data = state.to_dict()

        assert data["mission"] == {"id": "m-1"}
        assert data["projects"] == [{"id": "wall", "status": "blocked"}]
        assert data["processedResults"] == [
            {"idempotencyKey": "proposal-a", "resultId": RESULT_A}
        ]
        assert LocalExecutionState.from_dict(data) == state

    def test_from_dict_applies_defaults(self) -> None:
        state = LocalExecutionState.from_dict(
            {"snapshotHash": "a" * 64, "decisionEpoch": 1}
        )
        assert state.side_quests == ()
        assert state.supported_talk_types == ("casual", "morale-boost")

    def test_from_dict_rejects_malformed_entries(self) -> None:
        with pytest.raises(InvalidLocalStateError):
            LocalExecutionState.from_dict(
                {"snapshotHash": "a" * 64, "decisionEpoch": 1, "sideQuests": [{}]}
            )

    @pytest.mark.parametrize("mission", [{}, "", 0, [], {"id": ""}])
    def test_from_dict_rejects_malformed_mission(self, mission: object) -> None:
        with pytest.raises(InvalidLocalStateError):
            LocalExecutionState.from_dict(
                {"snapshotHash": "a" * 64, "decisionEpoch": 1, "mission": mission}
            )

    def test_from_dict_accepts_null_mission(self) -> None:
        state = LocalExecutionState.from_dict(
            {"snapshotHash": "a" * 64, "decisionEpoch": 1, "mission": None}
        )
        assert state.mission is None

    @pytest.mark.parametrize(
        "member",
        [
            "supportedTalkTypes",
            "supportedSalvageFocuses",
            "sideQuests",
            "projects",
            "processedResults",
        ],
    )
    def test_from_dict_rejects_non_array_members(self, member: str) -> None:
        with pytest.raises(InvalidLocalStateError, match=member):
            LocalExecutionState.from_dict(
                {"snapshotHash": "a" * 64, "decisionEpoch": 1, member: "casual"}
            )

    def test_from_dict_rejects_non_string_capabilities(self) -> None:
        with pytest.raises(InvalidLocalStateError, match="supported_talk_types"):
            LocalExecutionState.from_dict(
                {"snapshotHash": "a" * 64, "decisionEpoch": 1, "supportedTalkTypes": [1]}
            )
