"""Local execution harness configuration.

Defines the capability sets fresh local states start with and the
runtime environment used for log rendering, with environment variable
overrides for deployments that run a reduced engine.

Environment Variables:
- TOWNHALL_SALVAGE_FOCUSES: Comma-separated salvage focuses (default: all registered)
- TOWNHALL_TALK_TYPES: Comma-separated talk types (default: all registered)
- TOWNHALL_ENVIRONMENT: development | test | production (default: development)
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from townhall.domain.models.proposal_registry import SALVAGE_FOCUSES, TALK_TYPES

DEFAULT_SALVAGE_FOCUSES: tuple[str, ...] = SALVAGE_FOCUSES
DEFAULT_TALK_TYPES: tuple[str, ...] = TALK_TYPES

ENVIRONMENTS: tuple[str, ...] = ("development", "test", "production")
DEFAULT_ENVIRONMENT = "development"


def _get_csv_env(key: str, default: tuple[str, ...], allowed: tuple[str, ...]) -> tuple[str, ...]:
    """Get a comma-separated environment variable as a sorted tuple.

    Args:
        key: Environment variable name.
        default: Value used when unset, empty, or containing unknown members.
        allowed: Members the value may contain.

    Returns:
        Parsed, deduplicated and sorted values, or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    members = {member.strip() for member in value.split(",") if member.strip()}
    if not members or not members <= set(allowed):
        return default
    return tuple(sorted(members))


def _get_choice_env(key: str, default: str, allowed: tuple[str, ...]) -> str:
    value = os.environ.get(key)
    if value is None:
        return default
    value = value.strip().lower()
    return value if value in allowed else default


@dataclass(frozen=True)
class HarnessConfig:
    """Configuration for the local execution harness.

    Attributes:
        default_salvage_focuses: Salvage focuses new local states support.
                                 Default: every registered focus.
        default_talk_types: Talk types new local states support.
                            Default: every registered talk type.
        environment: Runtime environment; "production" renders JSON logs.
    """

    default_salvage_focuses: tuple[str, ...] = DEFAULT_SALVAGE_FOCUSES
    default_talk_types: tuple[str, ...] = DEFAULT_TALK_TYPES
    environment: str = DEFAULT_ENVIRONMENT

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.default_salvage_focuses:
            raise ValueError("default_salvage_focuses must not be empty")
        unknown = set(self.default_salvage_focuses) - set(SALVAGE_FOCUSES)
        if unknown:
            raise ValueError(f"unknown salvage focuses: {sorted(unknown)}")

        if not self.default_talk_types:
            raise ValueError("default_talk_types must not be empty")
        unknown = set(self.default_talk_types) - set(TALK_TYPES)
        if unknown:
            raise ValueError(f"unknown talk types: {sorted(unknown)}")

        if self.environment not in ENVIRONMENTS:
            raise ValueError(
                f"environment must be one of {list(ENVIRONMENTS)}, got {self.environment!r}"
            )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_environment(cls) -> HarnessConfig:
        """Create config from environment variables with defaults.

        Unset or invalid values fall back to the defaults.

        Returns:
            HarnessConfig with values from environment or defaults.
        """
        return cls(
            default_salvage_focuses=_get_csv_env(
                "TOWNHALL_SALVAGE_FOCUSES", DEFAULT_SALVAGE_FOCUSES, SALVAGE_FOCUSES
            ),
            default_talk_types=_get_csv_env(
                "TOWNHALL_TALK_TYPES", DEFAULT_TALK_TYPES, TALK_TYPES
            ),
            environment=_get_choice_env(
                "TOWNHALL_ENVIRONMENT", DEFAULT_ENVIRONMENT, ENVIRONMENTS
            ),
        )


# Default config: every registered capability, development logging
DEFAULT_HARNESS_CONFIG = HarnessConfig()

# Testing config
TEST_HARNESS_CONFIG = HarnessConfig(environment="test")
