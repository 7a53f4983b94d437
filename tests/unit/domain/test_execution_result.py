"""Unit tests for the execution result model and builder."""

from __future__ import annotations

import dataclasses
from typing import Any

import pytest

from townhall.domain.errors import (
    InvalidExecutionOutcomeError,
    InvalidHandoffError,
    ResultIntegrityError,
)
from townhall.domain.hash_utils import RESULT_ID_PATTERN, UNSET, compute_hash, matches
from townhall.domain.models.execution_handoff import ExecutionHandoff
from townhall.domain.models.execution_result import (
    DuplicateCheck,
    EmbodimentBlock,
    ExecutionResult,
    ExecutionStatus,
    PreconditionFailure,
    PreconditionsCheck,
    StaleCheck,
    WorldState,
    is_valid_execution_result,
    validate_execution_result,
)
from townhall.domain.services.execution_result_builder import (
    ExecutionOutcome,
    compute_post_execution_snapshot_hash,
    create_execution_result,
)

NEXT_HASH = "cd" * 32


def _executed_outcome(**overrides: Any) -> ExecutionOutcome:
    fields: dict[str, Any] = {
        "status": ExecutionStatus.EXECUTED,
        "accepted": True,
        "executed": True,
        "reason_code": "EXECUTED",
        "preconditions": PreconditionsCheck(evaluated=True, passed=True),
        "stale_check": StaleCheck(evaluated=True, passed=True),
        "duplicate_check": DuplicateCheck(evaluated=True),
        "world_state": WorldState(
            post_execution_snapshot_hash=NEXT_HASH, post_execution_decision_epoch=5
        ),
    }
    fields.update(overrides)
    return ExecutionOutcome(**fields)


class TestCreateExecutionResult:
    """Tests for create_execution_result()."""

    def test_copies_context_from_handoff(self, mission_handoff: ExecutionHandoff) -> None:
        result = create_execution_result(mission_handoff, _executed_outcome())

        assert result.type == "execution-result.v1"
        assert result.schema_version == 1
        assert result.handoff_id == mission_handoff.handoff_id
        assert result.proposal_id == mission_handoff.proposal_id
        assert result.idempotency_key == mission_handoff.idempotency_key
        assert result.snapshot_hash == mission_handoff.snapshot_hash
        assert result.decision_epoch == mission_handoff.decision_epoch
        assert result.actor_id == "mayor-1"
        assert result.town_id == "millbrook"
        assert result.proposal_type == "MAYOR_ACCEPT_MISSION"
        assert result.command == mission_handoff.command

    def test_result_id_is_content_addressed(self, mission_handoff: ExecutionHandoff) -> None:
        result = create_execution_result(mission_handoff, _executed_outcome())

        assert matches(RESULT_ID_PATTERN, result.result_id)
        assert result.execution_id == result.result_id
        assert validate_execution_result(result) == []
        assert create_execution_result(mission_handoff, _executed_outcome()) == result

    def test_covered_fields_change_the_id(self, mission_handoff: ExecutionHandoff) -> None:
        base = create_execution_result(mission_handoff, _executed_outcome())
        other_epoch = create_execution_result(
            mission_handoff,
            _executed_outcome(
                world_state=WorldState(
                    post_execution_snapshot_hash=NEXT_HASH, post_execution_decision_epoch=6
                )
            ),
        )
        with_authority = create_execution_result(
            mission_handoff, _executed_outcome(authority_commands=("mission accept",))
        )

        assert len({base.result_id, other_epoch.result_id, with_authority.result_id}) == 3

    def test_defaults_mark_checks_not_evaluated(
        self, mission_handoff: ExecutionHandoff
    ) -> None:
        result = create_execution_result(
            mission_handoff,
            ExecutionOutcome(
                status="rejected", accepted=False, executed=False, reason_code="MANUAL"
            ),
        )

        assert result.status is ExecutionStatus.REJECTED
        assert result.to_dict()["evaluation"] == {
            "preconditions": {"evaluated": False, "passed": False, "failures": []},
            "staleCheck": {
                "evaluated": False,
                "passed": False,
                "actualSnapshotHash": None,
                "actualDecisionEpoch": None,
            },
            "duplicateCheck": {"evaluated": False, "duplicate": False, "duplicateOf": None},
        }

    def test_failed_status_is_accepted_but_not_executed(
        self, mission_handoff: ExecutionHandoff
    ) -> None:
        result = create_execution_result(
            mission_handoff,
            ExecutionOutcome(
                status="failed", accepted=True, executed=False, reason_code="ENGINE_ERROR"
            ),
        )
        assert result.status is ExecutionStatus.FAILED
        assert "worldState" not in result.to_dict()

    def test_rejects_invalid_handoff(self) -> None:
        with pytest.raises(InvalidHandoffError):
            create_execution_result("handoff", _executed_outcome())  # type: ignore[arg-type]


class TestOutcomeInvariants:
    """Tests for the status/flag invariants."""

    @pytest.mark.parametrize(
        ("status", "accepted", "executed"),
        [
            ("executed", True, False),
            ("executed", False, False),
            ("failed", True, True),
            ("failed", False, False),
            ("rejected", True, False),
            ("stale", False, True),
            ("duplicate", True, True),
            ("unknown", False, False),
        ],
    )
    def test_invalid_state_combinations(
        self,
        mission_handoff: ExecutionHandoff,
        status: str,
        accepted: bool,
        executed: bool,
    ) -> None:
        outcome = ExecutionOutcome(
            status=status, accepted=accepted, executed=executed, reason_code="X"
        )
        with pytest.raises(InvalidExecutionOutcomeError, match="Invalid execution outcome state"):
            create_execution_result(mission_handoff, outcome)

    def test_world_state_only_on_executed(self, mission_handoff: ExecutionHandoff) -> None:
        outcome = ExecutionOutcome(
            status="stale",
            accepted=False,
            executed=False,
            reason_code="STALE_STATE",
            world_state=WorldState(),
        )
        with pytest.raises(InvalidExecutionOutcomeError, match="Invalid execution world state"):
            create_execution_result(mission_handoff, outcome)

    def test_rejects_malformed_evaluation(self, mission_handoff: ExecutionHandoff) -> None:
        outcome = _executed_outcome(
            preconditions=PreconditionsCheck(
                evaluated=True, passed=False, failures=(PreconditionFailure("", "x"),)
            )
        )
        with pytest.raises(
            InvalidExecutionOutcomeError, match="Invalid execution evaluation block"
        ):
            create_execution_result(mission_handoff, outcome)

    def test_rejects_bad_stale_hash(self, mission_handoff: ExecutionHandoff) -> None:
        outcome = _executed_outcome(stale_check=StaleCheck(actual_snapshot_hash="xyz"))
        with pytest.raises(InvalidExecutionOutcomeError):
            create_execution_result(mission_handoff, outcome)

    def test_rejects_empty_authority_command(self, mission_handoff: ExecutionHandoff) -> None:
        with pytest.raises(InvalidExecutionOutcomeError, match="Invalid authority commands"):
            create_execution_result(mission_handoff, _executed_outcome(authority_commands=("",)))

    def test_rejects_bad_embodiment(self, mission_handoff: ExecutionHandoff) -> None:
        outcome = _executed_outcome(embodiment=EmbodimentBlock(backend_hint=""))
        with pytest.raises(
            InvalidExecutionOutcomeError, match="Invalid execution embodiment block"
        ):
            create_execution_result(mission_handoff, outcome)

    def test_rejects_actions_that_cannot_be_hashed(
        self, mission_handoff: ExecutionHandoff
    ) -> None:
        outcome = _executed_outcome(
            embodiment=EmbodimentBlock(actions=({"text": "lone \ud800"},))
        )
        with pytest.raises(InvalidExecutionOutcomeError, match="plain JSON"):
            create_execution_result(mission_handoff, outcome)


class TestOptionalBlocks:
    """Tests for authority commands and embodiment hints."""

    def test_absent_blocks_are_omitted(self, mission_handoff: ExecutionHandoff) -> None:
        data = create_execution_result(mission_handoff, _executed_outcome()).to_dict()
        assert "authorityCommands" not in data
        assert "embodiment" not in data

    def test_preserves_authority_and_embodiment(
        self, mission_handoff: ExecutionHandoff
    ) -> None:
        result = create_execution_result(
            mission_handoff,
            _executed_outcome(
                authority_commands=["mission accept millbrook sq-1"],
                embodiment=EmbodimentBlock(
                    backend_hint="bridge", actions=[{"type": "speak", "text": "Onward"}]
                ),
            ),
        )

        data = result.to_dict()
        assert data["authorityCommands"] == ["mission accept millbrook sq-1"]
        assert data["embodiment"] == {
            "backendHint": "bridge",
            "actions": [{"type": "speak", "text": "Onward"}],
        }

    def test_unset_and_null_backend_hints_differ(
        self, mission_handoff: ExecutionHandoff
    ) -> None:
        unset = create_execution_result(
            mission_handoff, _executed_outcome(embodiment=EmbodimentBlock(backend_hint=UNSET))
        )
        null = create_execution_result(
            mission_handoff, _executed_outcome(embodiment=EmbodimentBlock(backend_hint=None))
        )

        assert unset.to_dict()["embodiment"] == {}
        assert null.to_dict()["embodiment"] == {"backendHint": None}
        assert unset.result_id != null.result_id


class TestResultIntegrity:
    """Tests for result id verification."""

    def test_tampered_id_cannot_be_constructed(
        self, mission_handoff: ExecutionHandoff
    ) -> None:
        result = create_execution_result(mission_handoff, _executed_outcome())
        with pytest.raises(ResultIntegrityError) as exc_info:
            dataclasses.replace(result, result_id="result_" + "0" * 64)
        assert exc_info.value.expected_result_id == result.result_id

    def test_tampered_covered_field_cannot_be_constructed(
        self, mission_handoff: ExecutionHandoff
    ) -> None:
        result = create_execution_result(mission_handoff, _executed_outcome())
        with pytest.raises(ResultIntegrityError):
            dataclasses.replace(result, reason_code="SOMETHING_ELSE")

    def test_validate_detects_tampering_behind_the_guard(
        self, mission_handoff: ExecutionHandoff
    ) -> None:
        result = create_execution_result(mission_handoff, _executed_outcome())

        object.__setattr__(result, "actor_id", "mayor-2")
        assert validate_execution_result(result) == ["result_id does not match content hash"]
        assert not is_valid_execution_result(result)

    @pytest.mark.parametrize("value", [None, {}, "result"])
    def test_is_valid_never_raises(self, value: object) -> None:
        assert is_valid_execution_result(value) is False

    def test_from_dict_round_trip(self, mission_handoff: ExecutionHandoff) -> None:
        result = create_execution_result(
            mission_handoff,
            _executed_outcome(
                authority_commands=("mission accept millbrook sq-1",),
                embodiment=EmbodimentBlock(actions=({"type": "wave"},)),
            ),
        )
        assert ExecutionResult.from_dict(result.to_dict()) == result

    def test_from_dict_requires_matching_execution_id(
        self, mission_handoff: ExecutionHandoff
    ) -> None:
        data = create_execution_result(mission_handoff, _executed_outcome()).to_dict()
        data["executionId"] = "result_" + "0" * 64
        with pytest.raises(InvalidExecutionOutcomeError):
            ExecutionResult.from_dict(data)

    @pytest.mark.parametrize("member", ["worldState", "embodiment"])
    def test_from_dict_rejects_null_optional_blocks(
        self, mission_handoff: ExecutionHandoff, member: str
    ) -> None:
        data = create_execution_result(
            mission_handoff, _executed_outcome(world_state=None)
        ).to_dict()
        data[member] = None
        with pytest.raises(InvalidExecutionOutcomeError, match=f"{member} must be an object"):
            ExecutionResult.from_dict(data)

    def test_results_are_hashable(self, mission_handoff: ExecutionHandoff) -> None:
        outcome = _executed_outcome(
            embodiment=EmbodimentBlock(backend_hint="bridge", actions=({"type": "wave"},))
        )
        first = create_execution_result(mission_handoff, outcome)
        second = create_execution_result(mission_handoff, outcome)

        assert hash(first) == hash(second)
        assert len({first, second}) == 1


class TestPostExecutionSnapshotHash:
    """Tests for compute_post_execution_snapshot_hash()."""

    def test_hashes_previous_fingerprint_and_next_epoch(
        self, mission_handoff: ExecutionHandoff
    ) -> None:
        expected = compute_hash(
            {
                "previousSnapshotHash": "ab" * 32,
                "nextDecisionEpoch": 5,
                "command": mission_handoff.command,
                "proposalId": mission_handoff.proposal_id,
            }
        )
        assert compute_post_execution_snapshot_hash(mission_handoff, "ab" * 32, 4) == expected
