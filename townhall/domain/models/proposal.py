"""Proposal domain model.

A proposal is the upstream decision for one evaluation cycle: a single
typed governance action for one actor in one town, anchored to the
world view (snapshot hash + decision epoch) it was computed from.

The contract layer never scores or generates proposals; it only
validates them and reads them. Construction validates every field, so a
Proposal instance that exists is a well-formed one.

Wire Fields (camelCase):
    schemaVersion, proposalId, type, actorId, townId, priority, args,
    reason, reasonTags, snapshotHash, decisionEpoch, preconditions?
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from townhall.domain.errors.proposal import InvalidProposalError
from townhall.domain.hash_utils import (
    PROPOSAL_ID_PATTERN,
    PROPOSAL_ID_PREFIX,
    UNSET,
    content_id,
    is_sha256_hex,
    is_utf8_text,
    matches,
)
from townhall.domain.models.proposal_registry import (
    ProposalType,
    get_proposal_definition,
    is_token,
)
from townhall.domain.models.schema_versions import PROPOSAL_SCHEMA_VERSION


def _is_non_empty_str(value: object) -> bool:
    return is_utf8_text(value) and len(value) > 0  # type: ignore[arg-type]


def _is_epoch(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


@dataclass(frozen=True)
class Precondition:
    """Guard describing a fact that must hold before a command may execute.

    The kind is deliberately an open string: guards unknown to the
    evaluator still travel through the handoff and are reported as
    failures at execution time.

    Attributes:
        kind: Guard kind (e.g. "side_quest_exists").
        target_id: Optional id of the entity the guard refers to.
        field: Optional name of the field the guard inspects.
        expected: Optional expected value (e.g. a salvage focus).
    """

    kind: str
    target_id: str | None = None
    field: str | None = None
    expected: str | None = None

    def __post_init__(self) -> None:
        errors = self.validate()
        if errors:
            raise InvalidProposalError(errors)

    def validate(self) -> list[str]:
        errors: list[str] = []
        if not _is_non_empty_str(self.kind):
            errors.append("precondition kind must be a non-empty string")
        for name in ("target_id", "field", "expected"):
            value = getattr(self, name)
            if value is not None and not _is_non_empty_str(value):
                errors.append(f"precondition {name} must be a non-empty string or None")
        return errors

    def to_dict(self) -> dict[str, Any]:
        """Wire form; unset optional members are omitted."""
        data: dict[str, Any] = {"kind": self.kind}
        if self.target_id is not None:
            data["targetId"] = self.target_id
        if self.field is not None:
            data["field"] = self.field
        if self.expected is not None:
            data["expected"] = self.expected
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Precondition:
        return cls(
            kind=data.get("kind"),  # type: ignore[arg-type]
            target_id=data.get("targetId"),
            field=data.get("field"),
            expected=data.get("expected"),
        )


@dataclass(frozen=True)
class Proposal:
    """Typed governance proposal consumed by the contract layer.

    Attributes:
        proposal_id: Content-derived id (proposal_{sha256}).
        type: Action kind from the proposal registry.
        actor_id: Governing actor that produced the proposal.
        town_id: Town the action targets (token, no whitespace).
        priority: Upstream priority score in [0, 1].
        args: Kind-specific arguments, exactly as the registry requires.
        reason: Human-readable rationale.
        reason_tags: Machine-readable rationale tags.
        snapshot_hash: Fingerprint of the world view the proposal reasoned about.
        decision_epoch: Monotonic tick of that world view.
        preconditions: Optional guards; None when the proposal carries none.
        schema_version: Envelope version ("proposal.v2").
    """

    proposal_id: str
    type: ProposalType
    actor_id: str
    town_id: str
    priority: float
    args: Mapping[str, str]
    reason: str
    reason_tags: tuple[str, ...]
    snapshot_hash: str
    decision_epoch: int
    preconditions: tuple[Precondition, ...] | None = None
    schema_version: str = PROPOSAL_SCHEMA_VERSION

    def __post_init__(self) -> None:
        """Freeze collection fields and validate the envelope.

        Raises:
            InvalidProposalError: If any field is malformed.
        """
        if isinstance(self.type, str) and not isinstance(self.type, ProposalType):
            definition = get_proposal_definition(self.type)
            if definition is not None:
                object.__setattr__(self, "type", definition.type)
        if isinstance(self.args, Mapping):
            object.__setattr__(self, "args", MappingProxyType(dict(self.args)))
        if isinstance(self.reason_tags, list):
            object.__setattr__(self, "reason_tags", tuple(self.reason_tags))
        if isinstance(self.preconditions, list):
            object.__setattr__(self, "preconditions", tuple(self.preconditions))

        errors = self.validate()
        if errors:
            raise InvalidProposalError(errors)

    def __hash__(self) -> int:
        # args is a read-only mapping; the id stands in for the whole envelope
        return hash(self.proposal_id)

    def validate(self) -> list[str]:  # noqa: C901
        """Validate every field of the envelope.

        Returns:
            List of validation messages (empty if the proposal is valid).
        """
        errors: list[str] = []

        if self.schema_version != PROPOSAL_SCHEMA_VERSION:
            errors.append(
                f"schema_version must be '{PROPOSAL_SCHEMA_VERSION}', "
                f"got {self.schema_version!r}"
            )
        if not matches(PROPOSAL_ID_PATTERN, self.proposal_id):
            errors.append(
                f"proposal_id must match proposal_[0-9a-f]{{64}}, got {self.proposal_id!r}"
            )

        definition = get_proposal_definition(self.type)
        if definition is None:
            errors.append(f"type must be a registered proposal type, got {self.type!r}")
        else:
            errors.extend(definition.validate_args(self.args))

        if not _is_non_empty_str(self.actor_id):
            errors.append("actor_id must be a non-empty string")
        if not is_token(self.town_id):
            errors.append("town_id must be a non-empty string without whitespace")

        if (
            not isinstance(self.priority, (int, float))
            or isinstance(self.priority, bool)
            or not math.isfinite(self.priority)
            or not 0.0 <= self.priority <= 1.0
        ):
            errors.append(f"priority must be a number in [0, 1], got {self.priority!r}")

        if not _is_non_empty_str(self.reason):
            errors.append("reason must be a non-empty string")
        if not isinstance(self.reason_tags, tuple) or not all(
            is_utf8_text(tag) for tag in self.reason_tags
        ):
            errors.append("reason_tags must be a tuple of strings")

        if not is_sha256_hex(self.snapshot_hash):
            errors.append("snapshot_hash must be 64 lowercase hex characters")
        if not _is_epoch(self.decision_epoch):
            errors.append(
                f"decision_epoch must be a non-negative integer, got {self.decision_epoch!r}"
            )

        if self.preconditions is not None:
            if not isinstance(self.preconditions, tuple):
                errors.append("preconditions must be a tuple or None")
            else:
                for index, precondition in enumerate(self.preconditions):
                    if not isinstance(precondition, Precondition):
                        errors.append(f"preconditions[{index}] must be a Precondition")

        return errors

    @property
    def effective_preconditions(self) -> tuple[Precondition, ...]:
        """Preconditions with an absent list normalized to empty."""
        return self.preconditions or ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase wire representation."""
        data: dict[str, Any] = {
            "schemaVersion": self.schema_version,
            "proposalId": self.proposal_id,
            "type": self.type.value,
            "actorId": self.actor_id,
            "townId": self.town_id,
            "priority": self.priority,
            "args": dict(self.args),
            "reason": self.reason,
            "reasonTags": list(self.reason_tags),
            "snapshotHash": self.snapshot_hash,
            "decisionEpoch": self.decision_epoch,
        }
        if self.preconditions is not None:
            data["preconditions"] = [p.to_dict() for p in self.preconditions]
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Proposal:
        """Build a proposal from its wire representation.

        Raises:
            InvalidProposalError: If the payload is malformed.
        """
        raw_preconditions = data.get("preconditions")
        preconditions: tuple[Precondition, ...] | None = None
        if raw_preconditions is not None:
            if not isinstance(raw_preconditions, (list, tuple)) or not all(
                isinstance(item, Mapping) for item in raw_preconditions
            ):
                raise InvalidProposalError(["preconditions must be a list of objects"])
            preconditions = tuple(Precondition.from_dict(item) for item in raw_preconditions)

        reason_tags = data.get("reasonTags")
        if isinstance(reason_tags, list):
            reason_tags = tuple(reason_tags)
        return cls(
            proposal_id=data.get("proposalId"),  # type: ignore[arg-type]
            type=data.get("type"),  # type: ignore[arg-type]
            actor_id=data.get("actorId"),  # type: ignore[arg-type]
            town_id=data.get("townId"),  # type: ignore[arg-type]
            priority=data.get("priority"),  # type: ignore[arg-type]
            args=data.get("args"),  # type: ignore[arg-type]
            reason=data.get("reason"),  # type: ignore[arg-type]
            reason_tags=reason_tags,  # type: ignore[arg-type]
            snapshot_hash=data.get("snapshotHash"),  # type: ignore[arg-type]
            decision_epoch=data.get("decisionEpoch"),  # type: ignore[arg-type]
            preconditions=preconditions,
            schema_version=data.get("schemaVersion", PROPOSAL_SCHEMA_VERSION),
        )


def derive_proposal_id(fields: Mapping[str, Any]) -> str:
    """Derive a proposal id from the wire fields of a proposal.

    ``proposalId`` itself is excluded from the hash input, so the id can
    be computed before the envelope exists.
    """
    hashable = {key: value for key, value in fields.items() if key != "proposalId"}
    return content_id(PROPOSAL_ID_PREFIX, hashable)


def build_proposal(
    *,
    type: ProposalType | str,
    actor_id: str,
    town_id: str,
    priority: float,
    args: Mapping[str, str],
    reason: str,
    reason_tags: Iterable[str],
    snapshot_hash: str,
    decision_epoch: int,
    preconditions: Iterable[Precondition] | None = None,
) -> Proposal:
    """Build a proposal whose id is derived from its own content.

    Raises:
        InvalidProposalError: If any field is malformed.
    """
    precondition_tuple = tuple(preconditions) if preconditions is not None else None
    type_value = type.value if isinstance(type, ProposalType) else type
    fields: dict[str, Any] = {
        "schemaVersion": PROPOSAL_SCHEMA_VERSION,
        "type": type_value,
        "actorId": actor_id,
        "townId": town_id,
        "priority": priority,
        "args": dict(args) if isinstance(args, Mapping) else args,
        "reason": reason,
        "reasonTags": list(reason_tags) if not isinstance(reason_tags, str) else reason_tags,
        "snapshotHash": snapshot_hash,
        "decisionEpoch": decision_epoch,
        "preconditions": (
            [p.to_dict() for p in precondition_tuple]
            if precondition_tuple is not None
            else UNSET
        ),
    }
    try:
        proposal_id = derive_proposal_id(fields)
    except (TypeError, ValueError) as exc:
        raise InvalidProposalError([f"proposal is not canonicalizable: {exc}"]) from exc

    return Proposal(
        proposal_id=proposal_id,
        type=type,  # type: ignore[arg-type]
        actor_id=actor_id,
        town_id=town_id,
        priority=priority,
        args=args,
        reason=reason,
        reason_tags=fields["reasonTags"],
        snapshot_hash=snapshot_hash,
        decision_epoch=decision_epoch,
        preconditions=precondition_tuple,
    )


def validate_proposal(value: object) -> list[str]:
    """Validate any value as a proposal envelope."""
    if not isinstance(value, Proposal):
        return [f"proposal must be a Proposal, got {type(value).__name__}"]
    return value.validate()
