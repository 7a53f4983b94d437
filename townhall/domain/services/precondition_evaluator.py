"""Precondition evaluator domain service.

Checks handoff preconditions against a local execution state. Every
descriptor is evaluated (no short-circuit) so the result carries the
complete list of failures, in descriptor order.

Supported kinds:
    mission_absent          -> no mission may be active
    side_quest_exists       -> target_id must be an available side quest
    project_exists          -> target_id must be a known project
    salvage_focus_supported -> expected must be a supported salvage focus
    talk_type_supported     -> expected must be a supported talk type

Any other kind fails with "Unsupported precondition kind".
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from types import MappingProxyType

from townhall.domain.models.execution_result import PreconditionFailure
from townhall.domain.models.local_execution_state import LocalExecutionState
from townhall.domain.models.proposal import Precondition

UNSUPPORTED_KIND_DETAIL: str = "Unsupported precondition kind"

# A check returns a failure detail, or None when the guard holds
PreconditionCheck = Callable[[Precondition, LocalExecutionState], str | None]


def _mission_absent(_: Precondition, state: LocalExecutionState) -> str | None:
    return "Mission is already active" if state.mission is not None else None


def _side_quest_exists(precondition: Precondition, state: LocalExecutionState) -> str | None:
    if precondition.target_id in state.side_quest_ids:
        return None
    return f"Missing side quest: {precondition.target_id}"


def _project_exists(precondition: Precondition, state: LocalExecutionState) -> str | None:
    if precondition.target_id in state.project_ids:
        return None
    return f"Missing project: {precondition.target_id}"


def _salvage_focus_supported(
    precondition: Precondition, state: LocalExecutionState
) -> str | None:
    if precondition.expected in state.supported_salvage_focuses:
        return None
    return f"Unsupported salvage focus: {precondition.expected}"


def _talk_type_supported(precondition: Precondition, state: LocalExecutionState) -> str | None:
    if precondition.expected in state.supported_talk_types:
        return None
    return f"Unsupported talk type: {precondition.expected}"


PRECONDITION_CHECKS: MappingProxyType[str, PreconditionCheck] = MappingProxyType(
    {
        "mission_absent": _mission_absent,
        "side_quest_exists": _side_quest_exists,
        "project_exists": _project_exists,
        "salvage_focus_supported": _salvage_focus_supported,
        "talk_type_supported": _talk_type_supported,
    }
)


def supported_precondition_kinds() -> tuple[str, ...]:
    """List the precondition kinds the evaluator understands."""
    return tuple(sorted(PRECONDITION_CHECKS))


def evaluate_preconditions(
    preconditions: Iterable[Precondition], state: LocalExecutionState
) -> tuple[PreconditionFailure, ...]:
    """Evaluate every precondition against the state.

    Args:
        preconditions: Guards from the handoff's execution requirements.
        state: Local execution state to check against.

    Returns:
        One PreconditionFailure per failing guard, in input order
        (empty when every guard holds).
    """
    failures: list[PreconditionFailure] = []
    for precondition in preconditions:
        check = PRECONDITION_CHECKS.get(precondition.kind)
        if check is None:
            failures.append(
                PreconditionFailure(kind=precondition.kind, detail=UNSUPPORTED_KIND_DETAIL)
            )
            continue
        detail = check(precondition, state)
        if detail is not None:
            failures.append(PreconditionFailure(kind=precondition.kind, detail=detail))
    return tuple(failures)
