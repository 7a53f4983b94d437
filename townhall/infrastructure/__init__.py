"""
Infrastructure layer - Adapters and cross-cutting technical concerns.

This layer contains:
- Observability (structured logging configuration)

IMPORT RULES:
- CAN import from: application, domain, config
- CANNOT import from: api
"""
