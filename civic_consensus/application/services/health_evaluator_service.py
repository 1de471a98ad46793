"""Health Evaluator service.

Read-only: derives bootstrap mode, the manager-count violation and the
governance health snapshot from the Membership Registry plus recent
proposal and join request history. It never writes and never blocks
unrelated reads; callers decide which operations a violation gates.
"""

from __future__ import annotations

from civic_consensus.application.ports.join_request_repository import (
    JoinRequestRepositoryProtocol,
)
from civic_consensus.application.ports.proposal_repository import (
    ProposalRepositoryProtocol,
)
from civic_consensus.application.ports.time_authority import TimeAuthorityProtocol
from civic_consensus.application.services.base import LoggingMixin
from civic_consensus.application.services.membership_registry_service import (
    MembershipRegistryService,
)
from civic_consensus.config.governance_config import (
    DEFAULT_GOVERNANCE_CONFIG,
    GovernanceConfig,
)
from civic_consensus.domain.errors import GovernanceViolationError
from civic_consensus.domain.models.governance_health import GovernanceHealthSnapshot
from civic_consensus.domain.models.join_request import JoinRequestStatus
from civic_consensus.domain.models.membership import RoleCounts
from civic_consensus.domain.models.proposal import ProposalStatus
from civic_consensus.domain.services import health_rules

_OPEN_JOIN_STATUSES = frozenset({JoinRequestStatus.PENDING, JoinRequestStatus.VOTING})


class HealthEvaluatorService(LoggingMixin):
    """Computes governance health on demand."""

    def __init__(
        self,
        registry: MembershipRegistryService,
        proposal_repository: ProposalRepositoryProtocol,
        join_request_repository: JoinRequestRepositoryProtocol,
        time_authority: TimeAuthorityProtocol,
        config: GovernanceConfig = DEFAULT_GOVERNANCE_CONFIG,
    ) -> None:
        self._registry = registry
        self._proposals = proposal_repository
        self._join_requests = join_request_repository
        self._time = time_authority
        self._config = config
        self._init_logger()

    def is_bootstrap(self, counts: RoleCounts) -> bool:
        return health_rules.is_bootstrap(counts, self._config.bootstrap_max_members)

    def has_violation(self, counts: RoleCounts) -> bool:
        return health_rules.has_governance_violation(
            counts, self._config.bootstrap_max_members, self._config.min_managers
        )

    def ensure_no_violation(self, group_id: str, counts: RoleCounts) -> None:
        """Gate an operation on the manager-count rule.

        Raises:
            GovernanceViolationError: With the promotion remediation hint.
        """
        if self.has_violation(counts):
            error = GovernanceViolationError(group_id, counts.manager_count)
            self._log_rejection(
                "ensure_no_violation",
                error,
                group_id=group_id,
                manager_count=counts.manager_count,
                member_count=counts.total,
            )
            raise error

    async def get_governance_health(self, group_id: str) -> GovernanceHealthSnapshot:
        """Compute the health snapshot of a group.

        Raises:
            NotFoundError: If the group does not exist.
        """
        counts = await self._registry.require_group(group_id)
        manager_ids = await self._registry.manager_ids(group_id)
        now = self._time.now()

        resolved = await self._proposals.list_resolved_since(
            group_id, now - self._config.participation_window
        )
        active = await self._proposals.list_for_group(
            group_id, frozenset({ProposalStatus.ACTIVE})
        )
        # Past-deadline proposals are expired in effect, sweep or not
        open_proposals = [p for p in active if not p.is_past_deadline(now)]
        open_requests = await self._join_requests.list_for_group(
            group_id, _OPEN_JOIN_STATUSES
        )

        snapshot = health_rules.evaluate_health(
            group_id=group_id,
            counts=counts,
            manager_ids=manager_ids,
            voter_ids_per_decision=[[b.voter_id for b in p.votes] for p in resolved],
            pending_decisions=len(open_proposals) + len(open_requests),
            evaluated_at=now,
            bootstrap_max_members=self._config.bootstrap_max_members,
            min_managers=self._config.min_managers,
            participation_floor=float(self._config.participation_floor_percent),
            rule_step=self._config.rule_compliance_step,
        )
        self._log_operation("get_governance_health", group_id=group_id).debug(
            "governance_health_evaluated",
            status=snapshot.status.value,
            rule_compliance=snapshot.rule_compliance,
        )
        return snapshot
