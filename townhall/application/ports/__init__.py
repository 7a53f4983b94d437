"""Application ports - Abstract interfaces for execution adapters.

Available ports:
- WorldEngineProtocol: Evaluates execution handoffs against world state
"""

from townhall.application.ports.world_engine import WorldEngineProtocol

__all__: list[str] = ["WorldEngineProtocol"]
