"""
API layer - Wire envelopes for Townhall.

This layer contains:
- Pydantic models for the JSON envelopes crossing the execution seam
- Parsers turning untrusted payloads into verified domain values

IMPORT RULES:
- CAN import from: application, domain
- CANNOT import from: infrastructure directly
"""

__all__: list[str] = []
