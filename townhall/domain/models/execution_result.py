"""Execution result domain model.

The final, content-addressed outcome record of one handoff evaluation.
Downstream narrative and embodiment layers read it; nothing mutates it.

Identity:
- result_id = execution_id = "result_" + sha256(canonical covered fields)
- Covered fields: type, schemaVersion, handoffId, proposalId, actorId,
  townId, proposalType, command, authorityCommands, status, accepted,
  executed, reasonCode, evaluation, worldState, embodiment
- Absent optional blocks are omitted from the hash input

Status invariants:
- executed implies accepted
- status "executed" iff accepted and executed
- status "failed" iff accepted and not executed
- status "rejected" | "stale" | "duplicate" implies not accepted, not executed
- world_state is only present on "executed"

Construction is two-phase: an ExecutionResultDraft holds every field
except the id, ``freeze()`` hashes it and produces the ExecutionResult,
and the ExecutionResult re-verifies its own id on creation.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from townhall.domain.errors.execution import (
    InvalidExecutionOutcomeError,
    ResultIntegrityError,
)
from townhall.domain.hash_utils import (
    HANDOFF_ID_PATTERN,
    PROPOSAL_ID_PATTERN,
    RESULT_ID_PATTERN,
    RESULT_ID_PREFIX,
    UNSET,
    canonical_json,
    content_id,
    is_sha256_hex,
    is_utf8_text,
    matches,
)
from townhall.domain.models.schema_versions import (
    EXECUTION_RESULT_SCHEMA_VERSION,
    EXECUTION_RESULT_TYPE,
)


class ExecutionStatus(str, Enum):
    """Terminal classification of one handoff evaluation."""

    EXECUTED = "executed"
    REJECTED = "rejected"
    STALE = "stale"
    DUPLICATE = "duplicate"
    FAILED = "failed"


class ReasonCode(str, Enum):
    """Reason codes emitted by the local harness."""

    EXECUTED = "EXECUTED"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    STALE_STATE = "STALE_STATE"
    DUPLICATE_HANDOFF = "DUPLICATE_HANDOFF"


_STATUS_VALUES: frozenset[str] = frozenset(status.value for status in ExecutionStatus)
_NOT_ACCEPTED_STATUSES: frozenset[ExecutionStatus] = frozenset(
    {ExecutionStatus.REJECTED, ExecutionStatus.STALE, ExecutionStatus.DUPLICATE}
)


def _is_non_empty_str(value: object) -> bool:
    return is_utf8_text(value) and len(value) > 0  # type: ignore[arg-type]


def _is_epoch(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def coerce_status(status: object) -> object:
    """Map a raw status string onto ExecutionStatus; leave anything else alone."""
    if isinstance(status, str) and not isinstance(status, ExecutionStatus):
        if status in _STATUS_VALUES:
            return ExecutionStatus(status)
    return status


# ------------------------------------------------------------------
# Evaluation blocks
# ------------------------------------------------------------------


@dataclass(frozen=True)
class PreconditionFailure:
    """One failing guard and why it failed."""

    kind: str
    detail: str

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "detail": self.detail}


@dataclass(frozen=True)
class PreconditionsCheck:
    """Audit record of precondition evaluation."""

    evaluated: bool = False
    passed: bool = False
    failures: tuple[PreconditionFailure, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "evaluated": self.evaluated,
            "passed": self.passed,
            "failures": [failure.to_dict() for failure in self.failures],
        }


@dataclass(frozen=True)
class StaleCheck:
    """Audit record of the staleness check, with the observed world fingerprint."""

    evaluated: bool = False
    passed: bool = False
    actual_snapshot_hash: str | None = None
    actual_decision_epoch: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "evaluated": self.evaluated,
            "passed": self.passed,
            "actualSnapshotHash": self.actual_snapshot_hash,
            "actualDecisionEpoch": self.actual_decision_epoch,
        }


@dataclass(frozen=True)
class DuplicateCheck:
    """Audit record of the ledger lookup."""

    evaluated: bool = False
    duplicate: bool = False
    duplicate_of: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "evaluated": self.evaluated,
            "duplicate": self.duplicate,
            "duplicateOf": self.duplicate_of,
        }


@dataclass(frozen=True)
class ExecutionEvaluation:
    """Full audit trail of every check, including short-circuited ones."""

    preconditions: PreconditionsCheck = field(default_factory=PreconditionsCheck)
    stale_check: StaleCheck = field(default_factory=StaleCheck)
    duplicate_check: DuplicateCheck = field(default_factory=DuplicateCheck)

    def to_dict(self) -> dict[str, Any]:
        return {
            "preconditions": self.preconditions.to_dict(),
            "staleCheck": self.stale_check.to_dict(),
            "duplicateCheck": self.duplicate_check.to_dict(),
        }


@dataclass(frozen=True)
class WorldState:
    """Fingerprint of the world after an executed command."""

    post_execution_snapshot_hash: str | None = None
    post_execution_decision_epoch: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "postExecutionSnapshotHash": self.post_execution_snapshot_hash,
            "postExecutionDecisionEpoch": self.post_execution_decision_epoch,
        }


@dataclass(frozen=True)
class EmbodimentBlock:
    """Optional hints for the embodiment layer that acts the result out.

    Attributes:
        backend_hint: Preferred embodiment backend, None, or UNSET when absent.
        actions: Action objects, or None when absent.
    """

    backend_hint: Any = UNSET
    actions: tuple[Mapping[str, Any], ...] | None = None

    def __post_init__(self) -> None:
        if isinstance(self.actions, (list, tuple)):
            object.__setattr__(
                self,
                "actions",
                tuple(
                    MappingProxyType(dict(action)) if isinstance(action, Mapping) else action
                    for action in self.actions
                ),
            )

    def __hash__(self) -> int:
        actions = canonical_json(self.actions) if self.actions is not None else None
        return hash((self.backend_hint, actions))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.backend_hint is not UNSET:
            data["backendHint"] = self.backend_hint
        if self.actions is not None:
            data["actions"] = [dict(action) for action in self.actions]
        return data


# ------------------------------------------------------------------
# Block validators
# ------------------------------------------------------------------


def validate_execution_state(
    status: object, accepted: object, executed: object, reason_code: object
) -> list[str]:
    """Check the status/flag invariants."""
    errors: list[str] = []
    if not isinstance(accepted, bool) or not isinstance(executed, bool):
        errors.append("accepted and executed must be booleans")
        return errors
    if not isinstance(status, ExecutionStatus):
        errors.append(f"status must be one of {sorted(_STATUS_VALUES)}, got {status!r}")
        return errors
    if not _is_non_empty_str(reason_code):
        errors.append("reason_code must be a non-empty string")

    if executed and not accepted:
        errors.append("executed requires accepted")
    if status is ExecutionStatus.EXECUTED and not (accepted and executed):
        errors.append("status 'executed' requires accepted and executed")
    if status is ExecutionStatus.FAILED and not (accepted and not executed):
        errors.append("status 'failed' requires accepted and not executed")
    if status in _NOT_ACCEPTED_STATUSES and (accepted or executed):
        errors.append(f"status '{status.value}' requires not accepted and not executed")
    if status is not ExecutionStatus.EXECUTED and accepted and executed:
        errors.append("accepted and executed require status 'executed'")
    return errors


def validate_evaluation(evaluation: object) -> list[str]:  # noqa: C901
    """Check the shape of an evaluation block."""
    if not isinstance(evaluation, ExecutionEvaluation):
        return ["evaluation must be an ExecutionEvaluation"]

    errors: list[str] = []
    preconditions = evaluation.preconditions
    if not isinstance(preconditions, PreconditionsCheck):
        errors.append("evaluation.preconditions must be a PreconditionsCheck")
    else:
        if not isinstance(preconditions.evaluated, bool) or not isinstance(
            preconditions.passed, bool
        ):
            errors.append("preconditions.evaluated/passed must be booleans")
        if not isinstance(preconditions.failures, tuple) or not all(
            isinstance(failure, PreconditionFailure)
            and _is_non_empty_str(failure.kind)
            and _is_non_empty_str(failure.detail)
            for failure in preconditions.failures
        ):
            errors.append("preconditions.failures must have non-empty kind and detail")

    stale_check = evaluation.stale_check
    if not isinstance(stale_check, StaleCheck):
        errors.append("evaluation.stale_check must be a StaleCheck")
    else:
        if not isinstance(stale_check.evaluated, bool) or not isinstance(
            stale_check.passed, bool
        ):
            errors.append("stale_check.evaluated/passed must be booleans")
        if stale_check.actual_snapshot_hash is not None and not is_sha256_hex(
            stale_check.actual_snapshot_hash
        ):
            errors.append("stale_check.actual_snapshot_hash must be None or a sha256 hex")
        if stale_check.actual_decision_epoch is not None and not _is_epoch(
            stale_check.actual_decision_epoch
        ):
            errors.append("stale_check.actual_decision_epoch must be None or >= 0")

    duplicate_check = evaluation.duplicate_check
    if not isinstance(duplicate_check, DuplicateCheck):
        errors.append("evaluation.duplicate_check must be a DuplicateCheck")
    else:
        if not isinstance(duplicate_check.evaluated, bool) or not isinstance(
            duplicate_check.duplicate, bool
        ):
            errors.append("duplicate_check.evaluated/duplicate must be booleans")
        if duplicate_check.duplicate_of is not None and not _is_non_empty_str(
            duplicate_check.duplicate_of
        ):
            errors.append("duplicate_check.duplicate_of must be None or a non-empty string")

    return errors


def validate_world_state(world_state: object, status: object) -> list[str]:
    """Check the world-state block; absent (None) is always valid."""
    if world_state is None:
        return []
    if not isinstance(world_state, WorldState):
        return ["world_state must be a WorldState or None"]

    errors: list[str] = []
    if status is not ExecutionStatus.EXECUTED:
        errors.append("world_state is only present on executed results")
    if world_state.post_execution_snapshot_hash is not None and not is_sha256_hex(
        world_state.post_execution_snapshot_hash
    ):
        errors.append("post_execution_snapshot_hash must be None or a sha256 hex")
    if world_state.post_execution_decision_epoch is not None and not _is_epoch(
        world_state.post_execution_decision_epoch
    ):
        errors.append("post_execution_decision_epoch must be None or >= 0")
    return errors


def validate_authority_commands(authority_commands: object) -> list[str]:
    """Check the authority commands; absent (None) is always valid."""
    if authority_commands is None:
        return []
    if not isinstance(authority_commands, tuple) or not all(
        _is_non_empty_str(command) for command in authority_commands
    ):
        return ["authority_commands must be a tuple of non-empty strings"]
    return []


def validate_embodiment(embodiment: object) -> list[str]:
    """Check the embodiment block; absent (None) is always valid."""
    if embodiment is None:
        return []
    if not isinstance(embodiment, EmbodimentBlock):
        return ["embodiment must be an EmbodimentBlock or None"]

    errors: list[str] = []
    hint = embodiment.backend_hint
    if hint is not UNSET and hint is not None and not _is_non_empty_str(hint):
        errors.append("embodiment.backend_hint must be a non-empty string or None")
    if embodiment.actions is not None and (
        not isinstance(embodiment.actions, tuple)
        or not all(isinstance(action, Mapping) for action in embodiment.actions)
    ):
        errors.append("embodiment.actions must be a tuple of objects")
    elif embodiment.actions is not None:
        try:
            canonical_json(embodiment.actions)
        except (TypeError, ValueError) as exc:
            errors.append(f"embodiment.actions must be plain JSON: {exc}")
    return errors


# ------------------------------------------------------------------
# Result envelope
# ------------------------------------------------------------------


def _result_hash_input(result: ExecutionResultDraft | ExecutionResult) -> dict[str, Any]:
    return {
        "type": result.type,
        "schemaVersion": result.schema_version,
        "handoffId": result.handoff_id,
        "proposalId": result.proposal_id,
        "actorId": result.actor_id,
        "townId": result.town_id,
        "proposalType": result.proposal_type,
        "command": result.command,
        "authorityCommands": (
            list(result.authority_commands)
            if result.authority_commands is not None
            else UNSET
        ),
        "status": getattr(result.status, "value", result.status),
        "accepted": result.accepted,
        "executed": result.executed,
        "reasonCode": result.reason_code,
        "evaluation": result.evaluation.to_dict(),
        "worldState": result.world_state.to_dict() if result.world_state is not None else UNSET,
        "embodiment": result.embodiment.to_dict() if result.embodiment is not None else UNSET,
    }


def compute_result_id(result: ExecutionResultDraft | ExecutionResult) -> str:
    """Compute the content-addressed result id over the covered fields."""
    return content_id(RESULT_ID_PREFIX, _result_hash_input(result))


def _validate_result_fields(result: ExecutionResultDraft | ExecutionResult) -> list[str]:
    errors: list[str] = []
    if result.type != EXECUTION_RESULT_TYPE:
        errors.append(f"type must be '{EXECUTION_RESULT_TYPE}'")
    if result.schema_version != EXECUTION_RESULT_SCHEMA_VERSION:
        errors.append(f"schema_version must be {EXECUTION_RESULT_SCHEMA_VERSION}")
    if not matches(HANDOFF_ID_PATTERN, result.handoff_id):
        errors.append("handoff_id must match handoff_[0-9a-f]{64}")
    if not matches(PROPOSAL_ID_PATTERN, result.proposal_id):
        errors.append("proposal_id must match proposal_[0-9a-f]{64}")
    if result.idempotency_key != result.proposal_id:
        errors.append("idempotency_key must equal proposal_id")
    if not is_sha256_hex(result.snapshot_hash):
        errors.append("snapshot_hash must be 64 lowercase hex characters")
    if not _is_epoch(result.decision_epoch):
        errors.append("decision_epoch must be a non-negative integer")
    for name in ("actor_id", "town_id", "proposal_type", "command"):
        if not _is_non_empty_str(getattr(result, name)):
            errors.append(f"{name} must be a non-empty string")

    errors.extend(validate_authority_commands(result.authority_commands))
    errors.extend(
        validate_execution_state(
            result.status, result.accepted, result.executed, result.reason_code
        )
    )
    errors.extend(validate_evaluation(result.evaluation))
    errors.extend(validate_world_state(result.world_state, result.status))
    errors.extend(validate_embodiment(result.embodiment))
    return errors


@dataclass(frozen=True)
class ExecutionResultDraft:
    """Every result field except the id; ``freeze()`` produces the final value."""

    handoff_id: str
    proposal_id: str
    idempotency_key: str
    snapshot_hash: str
    decision_epoch: int
    actor_id: str
    town_id: str
    proposal_type: str
    command: str
    status: ExecutionStatus
    accepted: bool
    executed: bool
    reason_code: str
    evaluation: ExecutionEvaluation
    world_state: WorldState | None = None
    authority_commands: tuple[str, ...] | None = None
    embodiment: EmbodimentBlock | None = None
    type: str = EXECUTION_RESULT_TYPE
    schema_version: int = EXECUTION_RESULT_SCHEMA_VERSION

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", coerce_status(self.status))
        if isinstance(self.authority_commands, list):
            object.__setattr__(self, "authority_commands", tuple(self.authority_commands))

    def validate(self) -> list[str]:
        return _validate_result_fields(self)

    def freeze(self) -> ExecutionResult:
        """Hash the draft and produce the immutable, id-verified result.

        Raises:
            InvalidExecutionOutcomeError: If any field breaks the result rules.
        """
        errors = self.validate()
        if errors:
            raise InvalidExecutionOutcomeError("Invalid execution result", errors)
        return ExecutionResult(
            result_id=compute_result_id(self),
            handoff_id=self.handoff_id,
            proposal_id=self.proposal_id,
            idempotency_key=self.idempotency_key,
            snapshot_hash=self.snapshot_hash,
            decision_epoch=self.decision_epoch,
            actor_id=self.actor_id,
            town_id=self.town_id,
            proposal_type=self.proposal_type,
            command=self.command,
            status=self.status,
            accepted=self.accepted,
            executed=self.executed,
            reason_code=self.reason_code,
            evaluation=self.evaluation,
            world_state=self.world_state,
            authority_commands=self.authority_commands,
            embodiment=self.embodiment,
            type=self.type,
            schema_version=self.schema_version,
        )


@dataclass(frozen=True)
class ExecutionResult:
    """Content-addressed outcome of one handoff evaluation.

    Attributes:
        result_id: Content-derived id (result_{sha256}); execution_id aliases it.
        handoff_id: Id of the evaluated handoff.
        proposal_id: Id of the proposal behind the handoff.
        idempotency_key: Always equal to proposal_id.
        snapshot_hash: World fingerprint the proposal expected.
        decision_epoch: World tick the proposal expected.
        actor_id: Governing actor of the proposal.
        town_id: Town of the proposal.
        proposal_type: Proposal type value.
        command: The handoff command.
        status: Terminal classification.
        accepted: Whether the engine accepted the command.
        executed: Whether the command was applied.
        reason_code: Machine-readable explanation of the status.
        evaluation: Audit trail of every check.
        world_state: Post-execution fingerprint, only on executed results.
        authority_commands: Optional authority metadata.
        embodiment: Optional embodiment hints.
        type: Envelope type ("execution-result.v1").
        schema_version: Envelope schema version (1).
    """

    result_id: str
    handoff_id: str
    proposal_id: str
    idempotency_key: str
    snapshot_hash: str
    decision_epoch: int
    actor_id: str
    town_id: str
    proposal_type: str
    command: str
    status: ExecutionStatus
    accepted: bool
    executed: bool
    reason_code: str
    evaluation: ExecutionEvaluation
    world_state: WorldState | None = None
    authority_commands: tuple[str, ...] | None = None
    embodiment: EmbodimentBlock | None = None
    type: str = EXECUTION_RESULT_TYPE
    schema_version: int = EXECUTION_RESULT_SCHEMA_VERSION

    def __post_init__(self) -> None:
        """Verify every field and the content id before the value can exist.

        Raises:
            InvalidExecutionOutcomeError: If any field breaks the result rules.
            ResultIntegrityError: If result_id does not match the content hash.
        """
        object.__setattr__(self, "status", coerce_status(self.status))
        if isinstance(self.authority_commands, list):
            object.__setattr__(self, "authority_commands", tuple(self.authority_commands))

        errors = _validate_result_fields(self)
        if not matches(RESULT_ID_PATTERN, self.result_id):
            errors.append("result_id must match result_[0-9a-f]{64}")
        if errors:
            raise InvalidExecutionOutcomeError("Invalid execution result", errors)

        expected_result_id = compute_result_id(self)
        if self.result_id != expected_result_id:
            raise ResultIntegrityError(self.result_id, expected_result_id)

    @property
    def execution_id(self) -> str:
        return self.result_id

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase wire representation."""
        data: dict[str, Any] = {
            "type": self.type,
            "schemaVersion": self.schema_version,
            "executionId": self.execution_id,
            "resultId": self.result_id,
            "handoffId": self.handoff_id,
            "proposalId": self.proposal_id,
            "idempotencyKey": self.idempotency_key,
            "snapshotHash": self.snapshot_hash,
            "decisionEpoch": self.decision_epoch,
            "actorId": self.actor_id,
            "townId": self.town_id,
            "proposalType": self.proposal_type,
            "command": self.command,
            "status": self.status.value,
            "accepted": self.accepted,
            "executed": self.executed,
            "reasonCode": self.reason_code,
            "evaluation": self.evaluation.to_dict(),
        }
        if self.authority_commands is not None:
            data["authorityCommands"] = list(self.authority_commands)
        if self.world_state is not None:
            data["worldState"] = self.world_state.to_dict()
        if self.embodiment is not None:
            data["embodiment"] = self.embodiment.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExecutionResult:
        """Rebuild a result from its wire form, re-verifying its id.

        Raises:
            InvalidExecutionOutcomeError: If the payload is malformed.
            ResultIntegrityError: If the stored id does not match the content.
        """
        if data.get("executionId") != data.get("resultId"):
            raise InvalidExecutionOutcomeError(
                "Invalid execution result", ["executionId must equal resultId"]
            )
        for member in ("worldState", "embodiment"):
            # Absent and null are distinct payloads; only absence is allowed
            if member in data and data[member] is None:
                raise InvalidExecutionOutcomeError(
                    "Invalid execution result", [f"{member} must be an object when present"]
                )
        try:
            evaluation = data["evaluation"]
            preconditions = evaluation["preconditions"]
            stale_check = evaluation["staleCheck"]
            duplicate_check = evaluation["duplicateCheck"]
            world_state = data.get("worldState")
            embodiment = data.get("embodiment")
            authority_commands = data.get("authorityCommands")

            return cls(
                result_id=data["resultId"],
                handoff_id=data["handoffId"],
                proposal_id=data["proposalId"],
                idempotency_key=data["idempotencyKey"],
                snapshot_hash=data["snapshotHash"],
                decision_epoch=data["decisionEpoch"],
                actor_id=data["actorId"],
                town_id=data["townId"],
                proposal_type=data["proposalType"],
                command=data["command"],
                status=data["status"],
                accepted=data["accepted"],
                executed=data["executed"],
                reason_code=data["reasonCode"],
                evaluation=ExecutionEvaluation(
                    preconditions=PreconditionsCheck(
                        evaluated=preconditions["evaluated"],
                        passed=preconditions["passed"],
                        failures=tuple(
                            PreconditionFailure(kind=item["kind"], detail=item["detail"])
                            for item in preconditions["failures"]
                        ),
                    ),
                    stale_check=StaleCheck(
                        evaluated=stale_check["evaluated"],
                        passed=stale_check["passed"],
                        actual_snapshot_hash=stale_check["actualSnapshotHash"],
                        actual_decision_epoch=stale_check["actualDecisionEpoch"],
                    ),
                    duplicate_check=DuplicateCheck(
                        evaluated=duplicate_check["evaluated"],
                        duplicate=duplicate_check["duplicate"],
                        duplicate_of=duplicate_check["duplicateOf"],
                    ),
                ),
                world_state=(
                    WorldState(
                        post_execution_snapshot_hash=world_state["postExecutionSnapshotHash"],
                        post_execution_decision_epoch=world_state["postExecutionDecisionEpoch"],
                    )
                    if world_state is not None
                    else None
                ),
                authority_commands=(
                    tuple(authority_commands) if authority_commands is not None else None
                ),
                embodiment=(
                    EmbodimentBlock(
                        backend_hint=embodiment.get("backendHint", UNSET),
                        actions=embodiment.get("actions"),
                    )
                    if embodiment is not None
                    else None
                ),
                type=data["type"],
                schema_version=data["schemaVersion"],
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise InvalidExecutionOutcomeError(
                "Invalid execution result", [f"malformed result payload: {exc}"]
            ) from exc


def validate_execution_result(result: object) -> list[str]:
    """Independently revalidate a result, recomputing its content id."""
    if not isinstance(result, ExecutionResult):
        return [f"result must be an ExecutionResult, got {type(result).__name__}"]
    errors = _validate_result_fields(result)
    if not matches(RESULT_ID_PATTERN, result.result_id):
        errors.append("result_id must match result_[0-9a-f]{64}")
    elif not errors and result.result_id != compute_result_id(result):
        errors.append("result_id does not match content hash")
    return errors


def is_valid_execution_result(result: object) -> bool:
    """Boolean gate over validate_execution_result; never raises."""
    return not validate_execution_result(result)
