"""Domain services for Townhall.

Pure functions over domain models: command mapping, handoff and result
construction, precondition evaluation and state folding.
"""
