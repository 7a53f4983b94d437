"""
Townhall - Execution contract layer for autonomous town governance.

Sits between the proposal generator and the world-mutation engine.
Every proposal becomes a content-addressed handoff, and every handoff
evaluation becomes a content-addressed result, so that delivery can be
retried, deduplicated and rejected against a drifted world without any
server-side transaction log.

Guarantees:
- Identical inputs always produce byte-identical envelopes
- Replays are classified as duplicates before any other check
- A world that moved on is reported as stale, never executed
- Unknown guards are failures, never silently satisfied
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
