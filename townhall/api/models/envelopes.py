"""Wire envelope models.

Pydantic models for the JSON envelopes crossing the execution seam.
They check shape (camelCase keys, no extras, strict types, id and hash
patterns); the domain constructors they convert into then re-verify
registry rules and content-addressed ids.

Every ``parse_*`` function raises WireValidationError; every
``is_valid_*_payload`` function returns a boolean and never raises.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated, Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from townhall.domain.errors.wire import WireValidationError
from townhall.domain.exceptions import TownhallError
from townhall.domain.models.execution_handoff import ExecutionHandoff
from townhall.domain.models.execution_result import ExecutionResult
from townhall.domain.models.local_execution_state import LocalExecutionState
from townhall.domain.models.proposal import Proposal

HashHex = Annotated[str, Field(pattern=r"^[0-9a-f]{64}$")]
ProposalId = Annotated[str, Field(pattern=r"^proposal_[0-9a-f]{64}$")]
HandoffId = Annotated[str, Field(pattern=r"^handoff_[0-9a-f]{64}$")]
ResultId = Annotated[str, Field(pattern=r"^result_[0-9a-f]{64}$")]
NonEmptyStr = Annotated[str, Field(min_length=1)]
Epoch = Annotated[int, Field(ge=0)]


class WireModel(BaseModel):
    """Base for wire envelopes: immutable, strict, no unknown members."""

    model_config = ConfigDict(extra="forbid", strict=True, frozen=True)


# ------------------------------------------------------------------
# Proposal
# ------------------------------------------------------------------


class PreconditionPayload(WireModel):
    """Guard descriptor as it appears on the wire."""

    kind: NonEmptyStr
    target_id: NonEmptyStr | None = Field(default=None, alias="targetId")
    field: NonEmptyStr | None = None
    expected: NonEmptyStr | None = None


class ProposalPayload(WireModel):
    """Proposal envelope (schema "proposal.v2")."""

    schema_version: Literal["proposal.v2"] = Field(..., alias="schemaVersion")
    proposal_id: ProposalId = Field(..., alias="proposalId")
    type: NonEmptyStr
    actor_id: NonEmptyStr = Field(..., alias="actorId")
    town_id: NonEmptyStr = Field(..., alias="townId")
    priority: float = Field(..., ge=0.0, le=1.0, allow_inf_nan=False)
    args: dict[str, str]
    reason: NonEmptyStr
    reason_tags: list[str] = Field(..., alias="reasonTags")
    snapshot_hash: HashHex = Field(..., alias="snapshotHash")
    decision_epoch: Epoch = Field(..., alias="decisionEpoch")
    preconditions: list[PreconditionPayload] | None = None


# ------------------------------------------------------------------
# Handoff
# ------------------------------------------------------------------


class ExecutionRequirementsPayload(WireModel):
    expected_snapshot_hash: HashHex = Field(..., alias="expectedSnapshotHash")
    expected_decision_epoch: Epoch = Field(..., alias="expectedDecisionEpoch")
    preconditions: list[PreconditionPayload]


class HandoffPayload(WireModel):
    """Execution handoff envelope (schema "execution-handoff.v1")."""

    schema_version: Literal["execution-handoff.v1"] = Field(..., alias="schemaVersion")
    handoff_id: HandoffId = Field(..., alias="handoffId")
    advisory: Literal[True]
    proposal_id: ProposalId = Field(..., alias="proposalId")
    idempotency_key: ProposalId = Field(..., alias="idempotencyKey")
    snapshot_hash: HashHex = Field(..., alias="snapshotHash")
    decision_epoch: Epoch = Field(..., alias="decisionEpoch")
    proposal: ProposalPayload
    command: NonEmptyStr
    execution_requirements: ExecutionRequirementsPayload = Field(
        ..., alias="executionRequirements"
    )


# ------------------------------------------------------------------
# Execution result
# ------------------------------------------------------------------


class PreconditionFailurePayload(WireModel):
    kind: NonEmptyStr
    detail: NonEmptyStr


class PreconditionsCheckPayload(WireModel):
    evaluated: bool
    passed: bool
    failures: list[PreconditionFailurePayload]


class StaleCheckPayload(WireModel):
    evaluated: bool
    passed: bool
    actual_snapshot_hash: HashHex | None = Field(..., alias="actualSnapshotHash")
    actual_decision_epoch: Epoch | None = Field(..., alias="actualDecisionEpoch")


class DuplicateCheckPayload(WireModel):
    evaluated: bool
    duplicate: bool
    duplicate_of: NonEmptyStr | None = Field(..., alias="duplicateOf")


class EvaluationPayload(WireModel):
    preconditions: PreconditionsCheckPayload
    stale_check: StaleCheckPayload = Field(..., alias="staleCheck")
    duplicate_check: DuplicateCheckPayload = Field(..., alias="duplicateCheck")


class WorldStatePayload(WireModel):
    post_execution_snapshot_hash: HashHex | None = Field(..., alias="postExecutionSnapshotHash")
    post_execution_decision_epoch: Epoch | None = Field(..., alias="postExecutionDecisionEpoch")


class EmbodimentPayload(WireModel):
    """Embodiment hints; an absent backendHint differs from a null one."""

    backend_hint: NonEmptyStr | None = Field(default=None, alias="backendHint")
    actions: list[dict[str, Any]] | None = None


class ExecutionResultPayload(WireModel):
    """Execution result envelope (type "execution-result.v1", schemaVersion 1)."""

    type: Literal["execution-result.v1"]
    schema_version: Literal[1] = Field(..., alias="schemaVersion")
    execution_id: ResultId = Field(..., alias="executionId")
    result_id: ResultId = Field(..., alias="resultId")
    handoff_id: HandoffId = Field(..., alias="handoffId")
    proposal_id: ProposalId = Field(..., alias="proposalId")
    idempotency_key: ProposalId = Field(..., alias="idempotencyKey")
    snapshot_hash: HashHex = Field(..., alias="snapshotHash")
    decision_epoch: Epoch = Field(..., alias="decisionEpoch")
    actor_id: NonEmptyStr = Field(..., alias="actorId")
    town_id: NonEmptyStr = Field(..., alias="townId")
    proposal_type: NonEmptyStr = Field(..., alias="proposalType")
    command: NonEmptyStr
    authority_commands: list[NonEmptyStr] | None = Field(default=None, alias="authorityCommands")
    status: Literal["executed", "rejected", "stale", "duplicate", "failed"]
    accepted: bool
    executed: bool
    reason_code: NonEmptyStr = Field(..., alias="reasonCode")
    evaluation: EvaluationPayload
    # Optional blocks may be omitted but never null
    world_state: WorldStatePayload = Field(default=None, alias="worldState")
    embodiment: EmbodimentPayload = Field(default=None)


# ------------------------------------------------------------------
# Local execution state
# ------------------------------------------------------------------


class EntityRefPayload(WireModel):
    id: NonEmptyStr


class ProjectRefPayload(WireModel):
    id: NonEmptyStr
    status: Literal["planning", "active", "blocked", "complete"] = "active"


class ProcessedResultPayload(WireModel):
    idempotency_key: NonEmptyStr = Field(..., alias="idempotencyKey")
    result_id: ResultId = Field(..., alias="resultId")


class LocalExecutionStatePayload(WireModel):
    """Local execution state; omitted collections take the local defaults."""

    snapshot_hash: HashHex = Field(..., alias="snapshotHash")
    decision_epoch: Epoch = Field(..., alias="decisionEpoch")
    mission: EntityRefPayload | None = None
    side_quests: list[EntityRefPayload] = Field(default_factory=list, alias="sideQuests")
    projects: list[ProjectRefPayload] = Field(default_factory=list)
    supported_salvage_focuses: list[str] | None = Field(
        default=None, alias="supportedSalvageFocuses"
    )
    supported_talk_types: list[str] | None = Field(default=None, alias="supportedTalkTypes")
    processed_results: list[ProcessedResultPayload] = Field(
        default_factory=list, alias="processedResults"
    )


# ------------------------------------------------------------------
# Parsing
# ------------------------------------------------------------------

ModelT = TypeVar("ModelT", bound=WireModel)
DomainT = TypeVar("DomainT")


def _format_errors(exc: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
        for error in exc.errors()
    ]


def _parse(
    envelope: str,
    model_cls: type[ModelT],
    payload: Any,
    to_domain: Callable[[dict[str, Any]], DomainT],
) -> DomainT:
    try:
        model = model_cls.model_validate(payload)
    except ValidationError as exc:
        raise WireValidationError(envelope, _format_errors(exc)) from exc

    try:
        return to_domain(model.model_dump(by_alias=True, exclude_unset=True))
    except TownhallError as exc:
        raise WireValidationError(envelope, getattr(exc, "errors", None) or [str(exc)]) from exc


def parse_proposal(payload: Any) -> Proposal:
    """Parse a proposal payload into a validated Proposal.

    Raises:
        WireValidationError: If the payload is malformed.
    """
    return _parse("proposal", ProposalPayload, payload, Proposal.from_dict)


def parse_handoff(payload: Any) -> ExecutionHandoff:
    """Parse a handoff payload, re-verifying its command and id.

    Raises:
        WireValidationError: If the payload is malformed or its identity is wrong.
    """
    return _parse("handoff", HandoffPayload, payload, ExecutionHandoff.from_dict)


def parse_execution_result(payload: Any) -> ExecutionResult:
    """Parse a result payload, re-verifying its invariants and id.

    Raises:
        WireValidationError: If the payload is malformed or its id is wrong.
    """
    return _parse("execution result", ExecutionResultPayload, payload, ExecutionResult.from_dict)


def parse_local_state(payload: Any) -> LocalExecutionState:
    """Parse a local execution state payload.

    Raises:
        WireValidationError: If the payload is malformed.
    """

    def to_domain(data: dict[str, Any]) -> LocalExecutionState:
        # Explicit nulls mean "use the default capability set"
        for key in ("supportedSalvageFocuses", "supportedTalkTypes"):
            if data.get(key, ()) is None:
                del data[key]
        return LocalExecutionState.from_dict(data)

    return _parse("local state", LocalExecutionStatePayload, payload, to_domain)


def _is_valid(parse: Callable[[Any], object], payload: Any) -> bool:
    try:
        parse(payload)
    except WireValidationError:
        return False
    return True


def is_valid_proposal_payload(payload: Any) -> bool:
    return _is_valid(parse_proposal, payload)


def is_valid_handoff_payload(payload: Any) -> bool:
    return _is_valid(parse_handoff, payload)


def is_valid_execution_result_payload(payload: Any) -> bool:
    return _is_valid(parse_execution_result, payload)


def is_valid_local_state_payload(payload: Any) -> bool:
    return _is_valid(parse_local_state, payload)
