"""
Application layer - Execution orchestration for Townhall.

This layer contains:
- The local execution harness (reference world engine)
- The execution cycle service
- Port definitions for world engines

IMPORT RULES:
- CAN import from: domain, config
- CANNOT import from: infrastructure, api
"""

from townhall.application.ports import WorldEngineProtocol

__all__: list[str] = ["WorldEngineProtocol"]
