"""Canonical hashing utilities for content-addressed envelopes.

Every identifier in the contract layer (proposal, handoff, result and
post-execution snapshot fingerprints) is derived from content rather
than assigned. This module provides the single canonicalization and
digest path all of them go through.

Canonical Form:
- Object keys sorted recursively
- Members whose value is UNSET omitted recursively
- Arrays keep their order
- Compact separators, non-ASCII kept verbatim
- Integral floats rendered as integers (1.0 and 1 address the same content)
- NaN and Infinity rejected
- Strings with lone surrogates rejected

Digest:
- SHA-256, rendered as 64 lowercase hexadecimal characters
"""

from __future__ import annotations

import hashlib
import json
import math
import re
from collections.abc import Mapping
from typing import Any, Final

HASH_ALG_NAME: str = "SHA-256"

# Zero fingerprint used by freshly created local states
GENESIS_SNAPSHOT_HASH: str = "0" * 64

HASH_PATTERN: re.Pattern[str] = re.compile(r"^[0-9a-f]{64}$")
PROPOSAL_ID_PATTERN: re.Pattern[str] = re.compile(r"^proposal_[0-9a-f]{64}$")
HANDOFF_ID_PATTERN: re.Pattern[str] = re.compile(r"^handoff_[0-9a-f]{64}$")
RESULT_ID_PATTERN: re.Pattern[str] = re.compile(r"^result_[0-9a-f]{64}$")

PROPOSAL_ID_PREFIX: str = "proposal"
HANDOFF_ID_PREFIX: str = "handoff"
RESULT_ID_PREFIX: str = "result"


class _Unset:
    """Marker for a member that is absent rather than null."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final = _Unset()


def is_utf8_text(value: object) -> bool:
    """Check if a value is a string that encodes to UTF-8 (no lone surrogates)."""
    if not isinstance(value, str):
        return False
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def _sanitize_for_json(data: Any) -> Any:
    """Recursively reduce data to plain JSON values in canonical shape.

    This function:
    - Drops mapping members whose value is UNSET
    - Converts tuples to lists and mappings to dicts
    - Renders integral floats as integers
    - Rejects NaN, Infinity, and -Infinity float values
    - Rejects strings that cannot be encoded as UTF-8

    Args:
        data: Any JSON-compatible data.

    Returns:
        Sanitized data safe for deterministic JSON serialization.

    Raises:
        ValueError: If data contains NaN, Infinity, -Infinity, or lone surrogates.
        TypeError: If data contains a value with no JSON representation.
    """
    if isinstance(data, str):
        if not is_utf8_text(data):
            raise ValueError(f"Cannot serialize string with lone surrogates: {data!r}")
        return data
    if data is None or isinstance(data, (bool, int)):
        return data
    if isinstance(data, float):
        if math.isnan(data) or math.isinf(data):
            raise ValueError(
                f"Cannot serialize non-finite float value: {data!r}. "
                "NaN and Infinity are not valid JSON."
            )
        if data.is_integer():
            return int(data)
        return data
    if isinstance(data, Mapping):
        sanitized: dict[str, Any] = {}
        for key, value in data.items():
            if value is UNSET:
                continue
            if not isinstance(key, str):
                raise TypeError(f"Object keys must be strings, got {type(key).__name__}")
            sanitized[_sanitize_for_json(key)] = _sanitize_for_json(value)
        return sanitized
    if isinstance(data, (list, tuple)):
        return [None if item is UNSET else _sanitize_for_json(item) for item in data]
    raise TypeError(f"Cannot canonicalize value of type {type(data).__name__}")


def canonical_json(data: Any) -> str:
    """Produce deterministic JSON representation for hashing.

    Args:
        data: Any JSON-compatible data (mapping, list, tuple, str, number,
            bool, None). Mapping members set to UNSET are omitted.

    Returns:
        Canonical JSON string suitable for hashing.

    Raises:
        ValueError: If data contains NaN, Infinity, or -Infinity values.
        TypeError: If data contains a value with no JSON representation.

    Example:
        >>> canonical_json({"b": 1, "a": 2, "c": UNSET})
        '{"a":2,"b":1}'
    """
    return json.dumps(
        _sanitize_for_json(data),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def compute_hash(data: Any) -> str:
    """Compute the SHA-256 digest of the canonical form of data.

    Args:
        data: Any JSON-compatible data.

    Returns:
        Lowercase hexadecimal SHA-256 hash (64 characters).
    """
    canonical = canonical_json(data)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def content_id(prefix: str, data: Any) -> str:
    """Build a prefixed content-addressed identifier.

    Example:
        >>> content_id("handoff", {"proposalId": "p", "command": "c"})[:8]
        'handoff_'
    """
    return f"{prefix}_{compute_hash(data)}"


def is_sha256_hex(value: object) -> bool:
    """Check if a value is a 64-character lowercase hexadecimal string."""
    return isinstance(value, str) and HASH_PATTERN.fullmatch(value) is not None


def matches(pattern: re.Pattern[str], value: object) -> bool:
    """Check if a value is a string fully matching an identifier pattern."""
    return isinstance(value, str) and pattern.fullmatch(value) is not None
