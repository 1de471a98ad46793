"""Governance engine configuration.

Thresholds and windows used by the proposal workflow, the health
evaluator, the join request workflow and the expiry sweep, with
environment variable overrides for deployment tuning.

Environment Variables:
- PROPOSAL_VOTING_WINDOW_HOURS: Proposal lifetime in hours (default: 72, 1-720)
- BOOTSTRAP_MAX_MEMBERS: Bootstrap threshold (default: 3)
- MIN_MANAGERS: Manager-count rule (default: 2)
- PARTICIPATION_WINDOW_DAYS: Trailing participation window (default: 30)
- PARTICIPATION_FLOOR_PERCENT: Participation-rate floor (default: 50)
- RULE_COMPLIANCE_STEP: Score penalty per violated rule (default: 25)
- JOIN_MESSAGE_MAX_LENGTH: Join request message cap (default: 300)
- AUDIT_LOG_DEFAULT_LIMIT: Default audit page size (default: 50, max 200)
- EXPIRY_SWEEP_INTERVAL_SECONDS: Background sweep cadence (default: 3600)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta

DEFAULT_VOTING_WINDOW_HOURS = 72
MIN_VOTING_WINDOW_HOURS = 1
MAX_VOTING_WINDOW_HOURS = 720

DEFAULT_BOOTSTRAP_MAX_MEMBERS = 3
DEFAULT_MIN_MANAGERS = 2
DEFAULT_PARTICIPATION_WINDOW_DAYS = 30
DEFAULT_PARTICIPATION_FLOOR_PERCENT = 50
DEFAULT_RULE_COMPLIANCE_STEP = 25
DEFAULT_JOIN_MESSAGE_MAX_LENGTH = 300

DEFAULT_AUDIT_LOG_LIMIT = 50
MAX_AUDIT_LOG_LIMIT = 200

DEFAULT_SWEEP_INTERVAL_SECONDS = 3600
MIN_SWEEP_INTERVAL_SECONDS = 1
MAX_SWEEP_INTERVAL_SECONDS = 86_400


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed integer value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


@dataclass(frozen=True)
class GovernanceConfig:
    """Configuration for the governance engine.

    Attributes:
        voting_window_hours: How long a proposal stays open for votes.
        bootstrap_max_members: Groups at or below this size skip quorum.
        min_managers: Managers required outside bootstrap (founder included).
        participation_window_days: Trailing window for participation rate.
        participation_floor_percent: Rate below which health degrades.
        rule_compliance_step: Score lost per violated rule.
        join_message_max_length: Longest accepted join request message.
        audit_log_default_limit: Page size when a query gives none.
        sweep_interval_seconds: Cadence of the background expiry sweep.
    """

    voting_window_hours: int = DEFAULT_VOTING_WINDOW_HOURS
    bootstrap_max_members: int = DEFAULT_BOOTSTRAP_MAX_MEMBERS
    min_managers: int = DEFAULT_MIN_MANAGERS
    participation_window_days: int = DEFAULT_PARTICIPATION_WINDOW_DAYS
    participation_floor_percent: int = DEFAULT_PARTICIPATION_FLOOR_PERCENT
    rule_compliance_step: int = DEFAULT_RULE_COMPLIANCE_STEP
    join_message_max_length: int = DEFAULT_JOIN_MESSAGE_MAX_LENGTH
    audit_log_default_limit: int = DEFAULT_AUDIT_LOG_LIMIT
    sweep_interval_seconds: int = DEFAULT_SWEEP_INTERVAL_SECONDS

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not MIN_VOTING_WINDOW_HOURS <= self.voting_window_hours <= MAX_VOTING_WINDOW_HOURS:
            raise ValueError(
                f"voting_window_hours must be between {MIN_VOTING_WINDOW_HOURS} and "
                f"{MAX_VOTING_WINDOW_HOURS}, got {self.voting_window_hours}"
            )
        if self.bootstrap_max_members < 1:
            raise ValueError(
                f"bootstrap_max_members must be positive, got {self.bootstrap_max_members}"
            )
        if self.min_managers < 1:
            raise ValueError(f"min_managers must be positive, got {self.min_managers}")
        if self.participation_window_days < 1:
            raise ValueError(
                f"participation_window_days must be positive, "
                f"got {self.participation_window_days}"
            )
        if not 0 <= self.participation_floor_percent <= 100:
            raise ValueError(
                f"participation_floor_percent must be between 0 and 100, "
                f"got {self.participation_floor_percent}"
            )
        if not 1 <= self.rule_compliance_step <= 100:
            raise ValueError(
                f"rule_compliance_step must be between 1 and 100, "
                f"got {self.rule_compliance_step}"
            )
        if self.join_message_max_length < 0:
            raise ValueError(
                f"join_message_max_length must be non-negative, "
                f"got {self.join_message_max_length}"
            )
        if not 1 <= self.audit_log_default_limit <= MAX_AUDIT_LOG_LIMIT:
            raise ValueError(
                f"audit_log_default_limit must be between 1 and {MAX_AUDIT_LOG_LIMIT}, "
                f"got {self.audit_log_default_limit}"
            )
        if self.sweep_interval_seconds < MIN_SWEEP_INTERVAL_SECONDS:
            raise ValueError(
                f"sweep_interval_seconds must be positive, got {self.sweep_interval_seconds}"
            )

    @property
    def voting_window(self) -> timedelta:
        """Proposal lifetime as a timedelta."""
        return timedelta(hours=self.voting_window_hours)

    @property
    def participation_window(self) -> timedelta:
        return timedelta(days=self.participation_window_days)

    @classmethod
    def from_environment(cls) -> GovernanceConfig:
        """Create config from environment variables with defaults.

        Out-of-range values are clamped to the nearest valid bound.

        Returns:
            GovernanceConfig with values from environment or defaults.
        """
        window = _get_int_env("PROPOSAL_VOTING_WINDOW_HOURS", DEFAULT_VOTING_WINDOW_HOURS)
        window = _clamp(window, MIN_VOTING_WINDOW_HOURS, MAX_VOTING_WINDOW_HOURS)

        limit = _get_int_env("AUDIT_LOG_DEFAULT_LIMIT", DEFAULT_AUDIT_LOG_LIMIT)
        limit = _clamp(limit, 1, MAX_AUDIT_LOG_LIMIT)

        sweep = _get_int_env("EXPIRY_SWEEP_INTERVAL_SECONDS", DEFAULT_SWEEP_INTERVAL_SECONDS)
        sweep = _clamp(sweep, MIN_SWEEP_INTERVAL_SECONDS, MAX_SWEEP_INTERVAL_SECONDS)

        return cls(
            voting_window_hours=window,
            bootstrap_max_members=max(
                1, _get_int_env("BOOTSTRAP_MAX_MEMBERS", DEFAULT_BOOTSTRAP_MAX_MEMBERS)
            ),
            min_managers=max(1, _get_int_env("MIN_MANAGERS", DEFAULT_MIN_MANAGERS)),
            participation_window_days=max(
                1,
                _get_int_env("PARTICIPATION_WINDOW_DAYS", DEFAULT_PARTICIPATION_WINDOW_DAYS),
            ),
            participation_floor_percent=_clamp(
                _get_int_env(
                    "PARTICIPATION_FLOOR_PERCENT", DEFAULT_PARTICIPATION_FLOOR_PERCENT
                ),
                0,
                100,
            ),
            rule_compliance_step=_clamp(
                _get_int_env("RULE_COMPLIANCE_STEP", DEFAULT_RULE_COMPLIANCE_STEP), 1, 100
            ),
            join_message_max_length=max(
                0, _get_int_env("JOIN_MESSAGE_MAX_LENGTH", DEFAULT_JOIN_MESSAGE_MAX_LENGTH)
            ),
            audit_log_default_limit=limit,
            sweep_interval_seconds=sweep,
        )


# Pre-defined configurations

# Default production config
DEFAULT_GOVERNANCE_CONFIG = GovernanceConfig()

# Testing config: short sweep so worker tests finish quickly
TEST_GOVERNANCE_CONFIG = GovernanceConfig(sweep_interval_seconds=1)
