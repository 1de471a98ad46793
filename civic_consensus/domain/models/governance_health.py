"""Governance health snapshot model.

The snapshot is derived on demand from the Membership Registry and the
recent proposal and join request history. It is advisory and never
independently authoritative.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class ComplianceStatus(str, Enum):
    """Manager-count compliance as shown to managers."""

    HEALTHY = "Healthy"
    WARNING = "Warning"
    AT_RISK = "At Risk"


class GovernanceHealthStatus(str, Enum):
    """Overall health classification."""

    HEALTHY = "healthy"
    LOW_PARTICIPATION = "low_participation"
    CENTRALIZATION_RISK = "centralization_risk"


class GovernanceRule(str, Enum):
    """Rules counted by the rule-compliance score."""

    MANAGER_COUNT = "manager_count"
    MANAGER_REDUNDANCY = "manager_redundancy"
    PARTICIPATION_FLOOR = "participation_floor"


@dataclass(frozen=True)
class GovernanceHealthSnapshot:
    """Point-in-time governance health of a group.

    Attributes:
        group_id: The group evaluated.
        manager_count: Managers, founder included.
        member_count: Total members.
        is_bootstrap: True while the group has three or fewer members.
        governance_violation: Non-bootstrap group with fewer than two managers.
        compliance_status: Healthy / Warning / At Risk.
        vote_participation_rate: 0-100, share of managers who voted on
            resolved proposals in the trailing window.
        rule_compliance: 0-100 score, lower with each violated rule.
        violated_rules: Rules currently unmet.
        pending_decisions: Open proposals plus open join requests.
        status: Overall classification.
        evaluated_at: When the snapshot was computed.
    """

    group_id: str
    manager_count: int
    member_count: int
    is_bootstrap: bool
    governance_violation: bool
    compliance_status: ComplianceStatus
    vote_participation_rate: float
    rule_compliance: int
    violated_rules: tuple[GovernanceRule, ...]
    pending_decisions: int
    status: GovernanceHealthStatus
    evaluated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "group_id": self.group_id,
            "manager_count": self.manager_count,
            "member_count": self.member_count,
            "is_bootstrap": self.is_bootstrap,
            "governance_violation": self.governance_violation,
            "compliance_status": self.compliance_status.value,
            "vote_participation_rate": self.vote_participation_rate,
            "rule_compliance": self.rule_compliance,
            "violated_rules": [r.value for r in self.violated_rules],
            "pending_decisions": self.pending_decisions,
            "status": self.status.value,
            "evaluated_at": self.evaluated_at.isoformat(),
        }
