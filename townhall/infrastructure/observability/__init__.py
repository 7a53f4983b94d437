"""Observability infrastructure for structured logging.

Usage:
    from townhall.infrastructure.observability import configure_structlog

    # At startup
    configure_structlog(environment="production")
"""

from townhall.infrastructure.observability.logging import (
    build_processors,
    configure_from_config,
    configure_structlog,
)

__all__: list[str] = [
    "build_processors",
    "configure_from_config",
    "configure_structlog",
]
