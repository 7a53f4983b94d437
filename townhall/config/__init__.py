"""Configuration module for Townhall.

Available Configurations:
- HarnessConfig: Local execution harness capability defaults and environment
"""

from townhall.config.harness_config import (
    DEFAULT_HARNESS_CONFIG,
    TEST_HARNESS_CONFIG,
    HarnessConfig,
)

__all__ = [
    "HarnessConfig",
    "DEFAULT_HARNESS_CONFIG",
    "TEST_HARNESS_CONFIG",
]
