"""Configuration for the governance engine."""

from civic_consensus.config.governance_config import (
    DEFAULT_GOVERNANCE_CONFIG,
    MAX_AUDIT_LOG_LIMIT,
    TEST_GOVERNANCE_CONFIG,
    GovernanceConfig,
)

__all__ = [
    "DEFAULT_GOVERNANCE_CONFIG",
    "MAX_AUDIT_LOG_LIMIT",
    "TEST_GOVERNANCE_CONFIG",
    "GovernanceConfig",
]
