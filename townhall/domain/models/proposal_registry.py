"""Proposal registry: the closed set of governance action kinds.

Each registered kind contributes exactly one definition record:
its ordering rank, its argument validator, and its command renderer.
The registry is the only place that knows how a proposal becomes a
world-engine command, so the handoff builder and every validator derive
commands from here rather than trusting a supplied string.

Guarantees:
- One definition per proposal type, unique types and orders
- Args shape is fully determined by the proposal type
- Rendering is injective: arguments are whitespace-free tokens, and each
  type renders under its own command prefix
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any

from townhall.domain.errors.proposal import (
    InvalidProposalRegistryError,
    UnknownProposalTypeError,
)
from townhall.domain.hash_utils import is_utf8_text


class ProposalType(str, Enum):
    """Governance action kinds a proposal may carry."""

    MAYOR_ACCEPT_MISSION = "MAYOR_ACCEPT_MISSION"
    PROJECT_ADVANCE = "PROJECT_ADVANCE"
    SALVAGE_PLAN = "SALVAGE_PLAN"
    TOWNSFOLK_TALK = "TOWNSFOLK_TALK"


# Argument domains for the enum-valued kinds (sorted)
SALVAGE_FOCUSES: tuple[str, ...] = ("dread", "general", "scarcity")
TALK_TYPES: tuple[str, ...] = ("casual", "morale-boost")

ArgsValidator = Callable[[Any], list[str]]
CommandRenderer = Callable[[str, Mapping[str, str]], str]


def is_token(value: object) -> bool:
    """Check if a value is a non-empty string without whitespace."""
    if not is_utf8_text(value):
        return False
    return len(value) > 0 and value.split() == [value]  # type: ignore[union-attr]


def _check_exact_keys(args: Any, keys: tuple[str, ...]) -> list[str]:
    if not isinstance(args, Mapping):
        return [f"args must be an object, got {type(args).__name__}"]
    actual = set(args)
    expected = set(keys)
    if actual != expected:
        return [
            f"args must have exactly the keys {sorted(expected)}, got {sorted(actual)}"
        ]
    return []


def exact_token_args(*keys: str) -> ArgsValidator:
    """Build a validator requiring exactly ``keys``, each a token string."""

    def validate(args: Any) -> list[str]:
        errors = _check_exact_keys(args, keys)
        if errors:
            return errors
        return [
            f"args.{key} must be a non-empty string without whitespace"
            for key in keys
            if not is_token(args[key])
        ]

    return validate


def exact_enum_arg(key: str, allowed: Iterable[str]) -> ArgsValidator:
    """Build a validator requiring exactly ``key`` with a value from ``allowed``."""
    allowed_values = tuple(allowed)

    def validate(args: Any) -> list[str]:
        errors = _check_exact_keys(args, (key,))
        if errors:
            return errors
        value = args[key]
        if not isinstance(value, str) or value not in allowed_values:
            return [f"args.{key} must be one of {list(allowed_values)}, got {value!r}"]
        return []

    return validate


@dataclass(frozen=True)
class ProposalDefinition:
    """Registry record for one proposal type.

    Attributes:
        type: The proposal type this record governs.
        order: Deterministic rank used as a tie-break by upstream scoring.
        arg_names: Names of the arguments the type requires.
        validate_args: Returns validation messages for an args object.
        to_command: Renders (town_id, args) into the world-engine command.
    """

    type: ProposalType
    order: int
    arg_names: tuple[str, ...]
    validate_args: ArgsValidator
    to_command: CommandRenderer


PROPOSAL_REGISTRY: tuple[ProposalDefinition, ...] = (
    ProposalDefinition(
        type=ProposalType.MAYOR_ACCEPT_MISSION,
        order=0,
        arg_names=("missionId",),
        validate_args=exact_token_args("missionId"),
        to_command=lambda town_id, args: f"mission accept {town_id} {args['missionId']}",
    ),
    ProposalDefinition(
        type=ProposalType.PROJECT_ADVANCE,
        order=1,
        arg_names=("projectId",),
        validate_args=exact_token_args("projectId"),
        to_command=lambda town_id, args: f"project advance {town_id} {args['projectId']}",
    ),
    ProposalDefinition(
        type=ProposalType.SALVAGE_PLAN,
        order=2,
        arg_names=("focus",),
        validate_args=exact_enum_arg("focus", SALVAGE_FOCUSES),
        to_command=lambda town_id, args: f"salvage initiate {town_id} {args['focus']}",
    ),
    ProposalDefinition(
        type=ProposalType.TOWNSFOLK_TALK,
        order=3,
        arg_names=("talkType",),
        validate_args=exact_enum_arg("talkType", TALK_TYPES),
        to_command=lambda town_id, args: f"townsfolk talk {town_id} {args['talkType']}",
    ),
)


def validate_proposal_registry(
    registry: Iterable[ProposalDefinition] = PROPOSAL_REGISTRY,
) -> list[str]:
    """Validate a registry table.

    Args:
        registry: Definition records to check.

    Returns:
        List of validation messages (empty if the registry is valid).
    """
    definitions = list(registry)
    if not definitions:
        return ["registry must contain at least one definition"]

    errors: list[str] = []
    seen_types: set[str] = set()
    seen_orders: set[int] = set()

    for index, definition in enumerate(definitions):
        if not isinstance(definition, ProposalDefinition):
            errors.append(f"registry[{index}] is not a ProposalDefinition")
            continue
        if not isinstance(definition.type, ProposalType):
            errors.append(f"registry[{index}].type must be a ProposalType")
        if (
            not isinstance(definition.order, int)
            or isinstance(definition.order, bool)
            or definition.order < 0
        ):
            errors.append(f"registry[{index}].order must be a non-negative integer")
        if not callable(definition.validate_args) or not callable(definition.to_command):
            errors.append(f"registry[{index}] must provide validate_args and to_command")
        if definition.type in seen_types:
            errors.append(
                f"duplicate registry type: {getattr(definition.type, 'value', definition.type)}"
            )
        if definition.order in seen_orders:
            errors.append(f"duplicate registry order: {definition.order}")
        seen_types.add(definition.type)
        seen_orders.add(definition.order)

    return errors


_registry_errors = validate_proposal_registry()
if _registry_errors:
    raise InvalidProposalRegistryError(_registry_errors)

_REGISTRY_BY_TYPE: Mapping[str, ProposalDefinition] = MappingProxyType(
    {definition.type.value: definition for definition in PROPOSAL_REGISTRY}
)


def get_proposal_definition(proposal_type: object) -> ProposalDefinition | None:
    """Look up the registry record for a proposal type (enum or raw string)."""
    if not isinstance(proposal_type, str):
        return None
    return _REGISTRY_BY_TYPE.get(proposal_type)


def list_proposal_types() -> list[ProposalType]:
    """List the registered proposal types in registry order."""
    return [definition.type for definition in PROPOSAL_REGISTRY]


def get_proposal_order(proposal_type: object) -> int:
    """Get the ordering rank of a type; unknown types sort last."""
    definition = get_proposal_definition(proposal_type)
    return definition.order if definition else sys.maxsize


def validate_proposal_args(proposal_type: object, args: Any) -> list[str]:
    """Validate an args object against the definition for its type."""
    definition = get_proposal_definition(proposal_type)
    if definition is None:
        return [f"unknown proposal type: {proposal_type!r}"]
    return definition.validate_args(args)


def render_command(proposal_type: object, town_id: str, args: Mapping[str, str]) -> str:
    """Render the world-engine command for already-validated arguments.

    Raises:
        UnknownProposalTypeError: If the type is not registered.
    """
    definition = get_proposal_definition(proposal_type)
    if definition is None:
        raise UnknownProposalTypeError(proposal_type)
    return definition.to_command(town_id, args)
