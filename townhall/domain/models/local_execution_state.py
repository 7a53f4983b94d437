"""Local execution state domain model.

The caller-owned world view the local harness evaluates handoffs against.
It is passed by value into every evaluation and never mutated: the
harness reports what the next state would be and the caller folds that
back in before the next cycle.

Contents:
- World fingerprint (snapshot hash + decision epoch)
- Id-only views of the active mission, side quests and projects
- Capability sets used by precondition checks
- The processed-results ledger used for duplicate detection
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Any

from townhall.domain.errors.execution import InvalidLocalStateError
from townhall.domain.hash_utils import (
    GENESIS_SNAPSHOT_HASH,
    RESULT_ID_PATTERN,
    is_sha256_hex,
    is_utf8_text,
    matches,
)
from townhall.domain.models.proposal_registry import SALVAGE_FOCUSES, TALK_TYPES


class ProjectStatus(str, Enum):
    """Lifecycle status of a town project."""

    PLANNING = "planning"
    ACTIVE = "active"
    BLOCKED = "blocked"
    COMPLETE = "complete"


_PROJECT_STATUS_VALUES: frozenset[str] = frozenset(status.value for status in ProjectStatus)


def _is_non_empty_str(value: object) -> bool:
    return is_utf8_text(value) and len(value) > 0  # type: ignore[arg-type]


@dataclass(frozen=True)
class MissionRef:
    """Id-only view of the active mission."""

    id: str


@dataclass(frozen=True)
class SideQuestRef:
    """Id-only view of an available side quest."""

    id: str


@dataclass(frozen=True)
class ProjectRef:
    """Id and status of a town project."""

    id: str
    status: ProjectStatus = ProjectStatus.ACTIVE

    def __post_init__(self) -> None:
        # Unknown statuses are left as-is and reported by LocalExecutionState
        if (
            isinstance(self.status, str)
            and not isinstance(self.status, ProjectStatus)
            and self.status in _PROJECT_STATUS_VALUES
        ):
            object.__setattr__(self, "status", ProjectStatus(self.status))


@dataclass(frozen=True)
class ProcessedResultEntry:
    """Ledger entry recording that an idempotency key already produced a result."""

    idempotency_key: str
    result_id: str

    def to_dict(self) -> dict[str, str]:
        return {"idempotencyKey": self.idempotency_key, "resultId": self.result_id}


def _duplicates(values: list[str]) -> list[str]:
    seen: set[str] = set()
    duplicates: list[str] = []
    for value in values:
        if value in seen and value not in duplicates:
            duplicates.append(value)
        seen.add(value)
    return duplicates


def _wire_list(data: Mapping[str, Any], key: str, default: tuple[Any, ...]) -> tuple[Any, ...]:
    """Read an array member of a wire payload; absent members take the default."""
    value = data.get(key, default)
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"{key} must be an array, got {type(value).__name__}")
    return tuple(value)


@dataclass(frozen=True)
class LocalExecutionState:
    """World view supplied by the caller for one handoff evaluation.

    Attributes:
        snapshot_hash: Fingerprint of the current world.
        decision_epoch: Current world tick.
        mission: Active mission, or None when no mission is active.
        side_quests: Available side quests (unique ids).
        projects: Town projects (unique ids).
        supported_salvage_focuses: Salvage focuses the engine can run.
        supported_talk_types: Talk types the engine can run.
        processed_results: Ledger of already processed idempotency keys.
    """

    snapshot_hash: str = GENESIS_SNAPSHOT_HASH
    decision_epoch: int = 0
    mission: MissionRef | None = None
    side_quests: tuple[SideQuestRef, ...] = ()
    projects: tuple[ProjectRef, ...] = ()
    supported_salvage_focuses: tuple[str, ...] = SALVAGE_FOCUSES
    supported_talk_types: tuple[str, ...] = TALK_TYPES
    processed_results: tuple[ProcessedResultEntry, ...] = ()

    def __post_init__(self) -> None:
        """Freeze collection fields and validate the state.

        Raises:
            InvalidLocalStateError: If any field is malformed.
        """
        for name in (
            "side_quests",
            "projects",
            "supported_salvage_focuses",
            "supported_talk_types",
            "processed_results",
        ):
            value = getattr(self, name)
            if isinstance(value, (list, set, frozenset)):
                object.__setattr__(self, name, tuple(value))

        errors = self.validate()
        if errors:
            raise InvalidLocalStateError(errors)

    def validate(self) -> list[str]:  # noqa: C901
        """Validate every field of the state.

        Returns:
            List of validation messages (empty if the state is valid).
        """
        errors: list[str] = []

        if not is_sha256_hex(self.snapshot_hash):
            errors.append("snapshot_hash must be 64 lowercase hex characters")
        if (
            not isinstance(self.decision_epoch, int)
            or isinstance(self.decision_epoch, bool)
            or self.decision_epoch < 0
        ):
            errors.append("decision_epoch must be a non-negative integer")

        if self.mission is not None and (
            not isinstance(self.mission, MissionRef) or not _is_non_empty_str(self.mission.id)
        ):
            errors.append("mission must be None or a MissionRef with a non-empty id")

        if not isinstance(self.side_quests, tuple) or not all(
            isinstance(item, SideQuestRef) and _is_non_empty_str(item.id)
            for item in self.side_quests
        ):
            errors.append("side_quests must be SideQuestRefs with non-empty ids")
        else:
            for duplicate in _duplicates([item.id for item in self.side_quests]):
                errors.append(f"duplicate side quest id: {duplicate}")

        if not isinstance(self.projects, tuple) or not all(
            isinstance(item, ProjectRef) and _is_non_empty_str(item.id)
            for item in self.projects
        ):
            errors.append("projects must be ProjectRefs with non-empty ids")
        else:
            for project in self.projects:
                if not isinstance(project.status, ProjectStatus):
                    errors.append(f"project {project.id} has unknown status {project.status!r}")
            for duplicate in _duplicates([item.id for item in self.projects]):
                errors.append(f"duplicate project id: {duplicate}")

        for name in ("supported_salvage_focuses", "supported_talk_types"):
            value = getattr(self, name)
            if not isinstance(value, tuple) or not all(is_utf8_text(item) for item in value):
                errors.append(f"{name} must be a tuple of strings")

        if not isinstance(self.processed_results, tuple) or not all(
            isinstance(entry, ProcessedResultEntry)
            and _is_non_empty_str(entry.idempotency_key)
            and matches(RESULT_ID_PATTERN, entry.result_id)
            for entry in self.processed_results
        ):
            errors.append(
                "processed_results entries need a non-empty idempotency_key "
                "and a result_[0-9a-f]{64} result_id"
            )
        else:
            keys = [entry.idempotency_key for entry in self.processed_results]
            for duplicate in _duplicates(keys):
                errors.append(f"duplicate processed idempotency key: {duplicate}")

        return errors

    def normalized(self) -> LocalExecutionState:
        """Return the canonical ordering of this state.

        Ids, capability sets and ledger keys are sorted so that
        equivalent states replay identically.
        """
        return replace(
            self,
            side_quests=tuple(sorted(self.side_quests, key=lambda item: item.id)),
            projects=tuple(sorted(self.projects, key=lambda item: item.id)),
            supported_salvage_focuses=tuple(sorted(set(self.supported_salvage_focuses))),
            supported_talk_types=tuple(sorted(set(self.supported_talk_types))),
            processed_results=tuple(
                sorted(self.processed_results, key=lambda entry: entry.idempotency_key)
            ),
        )

    def ledger_index(self) -> Mapping[str, str]:
        """Key-indexed view of the ledger: idempotency_key -> result_id."""
        return MappingProxyType(
            {entry.idempotency_key: entry.result_id for entry in self.processed_results}
        )

    def find_processed_result(self, idempotency_key: str) -> ProcessedResultEntry | None:
        """Find the ledger entry for a key, scanning in ledger order."""
        for entry in self.processed_results:
            if entry.idempotency_key == idempotency_key:
                return entry
        return None

    @property
    def side_quest_ids(self) -> frozenset[str]:
        return frozenset(item.id for item in self.side_quests)

    @property
    def project_ids(self) -> frozenset[str]:
        return frozenset(item.id for item in self.projects)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase wire representation."""
        return {
            "snapshotHash": self.snapshot_hash,
            "decisionEpoch": self.decision_epoch,
            "mission": {"id": self.mission.id} if self.mission else None,
            "sideQuests": [{"id": item.id} for item in self.side_quests],
            "projects": [
                {"id": item.id, "status": item.status.value} for item in self.projects
            ],
            "supportedSalvageFocuses": list(self.supported_salvage_focuses),
            "supportedTalkTypes": list(self.supported_talk_types),
            "processedResults": [entry.to_dict() for entry in self.processed_results],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LocalExecutionState:
        """Build a state from its wire representation; absent members take defaults.

        Raises:
            InvalidLocalStateError: If the payload is malformed.
        """
        try:
            mission_data = data.get("mission")
            return cls(
                snapshot_hash=data.get("snapshotHash"),  # type: ignore[arg-type]
                decision_epoch=data.get("decisionEpoch"),  # type: ignore[arg-type]
                mission=MissionRef(id=mission_data["id"]) if mission_data is not None else None,
                side_quests=tuple(
                    SideQuestRef(id=item["id"]) for item in _wire_list(data, "sideQuests", ())
                ),
                projects=tuple(
                    ProjectRef(id=item["id"], status=item.get("status", ProjectStatus.ACTIVE))
                    for item in _wire_list(data, "projects", ())
                ),
                supported_salvage_focuses=_wire_list(
                    data, "supportedSalvageFocuses", SALVAGE_FOCUSES
                ),
                supported_talk_types=_wire_list(data, "supportedTalkTypes", TALK_TYPES),
                processed_results=tuple(
                    ProcessedResultEntry(
                        idempotency_key=entry["idempotencyKey"],
                        result_id=entry["resultId"],
                    )
                    for entry in _wire_list(data, "processedResults", ())
                ),
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise InvalidLocalStateError([f"malformed state payload: {exc}"]) from exc


def create_local_state(**overrides: Any) -> LocalExecutionState:
    """Create a deterministic, normalized local state.

    Defaults: genesis snapshot hash, epoch 0, no mission, no side quests
    or projects, every registered salvage focus and talk type supported,
    empty ledger. Keyword overrides replace individual fields.

    Raises:
        InvalidLocalStateError: If the resulting state is malformed.
    """
    try:
        state = LocalExecutionState(**overrides)
    except TypeError as exc:
        raise InvalidLocalStateError([str(exc)]) from exc
    return state.normalized()
