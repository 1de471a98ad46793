"""Governance health rules domain service.

Pure functions over role counts and recent voting history. No side
effects: a violation is surfaced to callers and gates only the
operations that check it explicitly.

Rules:
- Bootstrap: total members <= 3
- Violation: not bootstrap and fewer than 2 managers (founder included)
- Warning: exactly 2 managers with more than 5 members
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from civic_consensus.domain.models.governance_health import (
    ComplianceStatus,
    GovernanceHealthSnapshot,
    GovernanceHealthStatus,
    GovernanceRule,
)
from civic_consensus.domain.models.membership import RoleCounts

DEFAULT_BOOTSTRAP_MAX_MEMBERS = 3
DEFAULT_MIN_MANAGERS = 2
WARNING_MEMBER_THRESHOLD = 5
FULL_PARTICIPATION = 100.0
FULL_COMPLIANCE = 100


def is_bootstrap(counts: RoleCounts, bootstrap_max_members: int = DEFAULT_BOOTSTRAP_MAX_MEMBERS) -> bool:
    return counts.total <= bootstrap_max_members


def has_governance_violation(
    counts: RoleCounts,
    bootstrap_max_members: int = DEFAULT_BOOTSTRAP_MAX_MEMBERS,
    min_managers: int = DEFAULT_MIN_MANAGERS,
) -> bool:
    return not is_bootstrap(counts, bootstrap_max_members) and counts.manager_count < min_managers


def compliance_status(
    counts: RoleCounts,
    bootstrap_max_members: int = DEFAULT_BOOTSTRAP_MAX_MEMBERS,
    min_managers: int = DEFAULT_MIN_MANAGERS,
) -> ComplianceStatus:
    if has_governance_violation(counts, bootstrap_max_members, min_managers):
        return ComplianceStatus.AT_RISK
    if counts.manager_count == min_managers and counts.total > WARNING_MEMBER_THRESHOLD:
        return ComplianceStatus.WARNING
    return ComplianceStatus.HEALTHY


def participation_rate(
    manager_ids: Iterable[str],
    voter_ids_per_decision: Sequence[Iterable[str]],
) -> float:
    """Share of current managers who voted on at least one resolved decision.

    Args:
        manager_ids: Current managers (founder included).
        voter_ids_per_decision: Voters of each resolved proposal in the window.

    Returns:
        0-100; 100 when no decision was resolved in the window.
    """
    managers = set(manager_ids)
    if not voter_ids_per_decision or not managers:
        return FULL_PARTICIPATION
    participants: set[str] = set()
    for voters in voter_ids_per_decision:
        participants.update(voters)
    return round(len(participants & managers) / len(managers) * 100, 1)


def rule_compliance_score(violated: Sequence[GovernanceRule], step: int) -> int:
    """100 minus ``step`` per violated rule, floored at 0."""
    return max(0, 100 - step * len(violated))


def evaluate_health(
    *,
    group_id: str,
    counts: RoleCounts,
    manager_ids: Iterable[str],
    voter_ids_per_decision: Sequence[Iterable[str]],
    pending_decisions: int,
    evaluated_at: datetime,
    bootstrap_max_members: int = DEFAULT_BOOTSTRAP_MAX_MEMBERS,
    min_managers: int = DEFAULT_MIN_MANAGERS,
    participation_floor: float = 50.0,
    rule_step: int = 25,
) -> GovernanceHealthSnapshot:
    """Compute the governance health snapshot of a group.

    Rule compliance stays at 100 while the manager structure is Healthy; a
    missed participation floor is still listed in ``violated_rules``.
    """
    bootstrap = is_bootstrap(counts, bootstrap_max_members)
    violation = has_governance_violation(counts, bootstrap_max_members, min_managers)
    compliance = compliance_status(counts, bootstrap_max_members, min_managers)
    rate = participation_rate(manager_ids, voter_ids_per_decision)

    violated: list[GovernanceRule] = []
    if violation:
        violated.append(GovernanceRule.MANAGER_COUNT)
    if compliance == ComplianceStatus.WARNING:
        violated.append(GovernanceRule.MANAGER_REDUNDANCY)
    if rate < participation_floor:
        violated.append(GovernanceRule.PARTICIPATION_FLOOR)

    if compliance != ComplianceStatus.HEALTHY:
        status = GovernanceHealthStatus.CENTRALIZATION_RISK
    elif rate < participation_floor:
        status = GovernanceHealthStatus.LOW_PARTICIPATION
    else:
        status = GovernanceHealthStatus.HEALTHY

    return GovernanceHealthSnapshot(
        group_id=group_id,
        manager_count=counts.manager_count,
        member_count=counts.total,
        is_bootstrap=bootstrap,
        governance_violation=violation,
        compliance_status=compliance,
        vote_participation_rate=rate,
        rule_compliance=(
            FULL_COMPLIANCE
            if compliance == ComplianceStatus.HEALTHY
            else rule_compliance_score(violated, rule_step)
        ),
        violated_rules=tuple(violated),
        pending_decisions=pending_decisions,
        status=status,
        evaluated_at=evaluated_at,
    )
