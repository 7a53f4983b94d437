"""
Domain layer - Pure contract logic for Townhall.

This layer contains:
- Canonical hashing (content addressing)
- Envelope models (proposal, handoff, local state, result)
- The command mapping registry
- Domain services (handoff/result builders, precondition evaluation)
- Domain exceptions

CRITICAL: This layer must NOT import from application, infrastructure, or api.
Only stdlib and typing imports are allowed.
"""

from townhall.domain.exceptions import TownhallError

__all__: list[str] = ["TownhallError"]
