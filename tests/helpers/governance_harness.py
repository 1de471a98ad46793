"""In-memory governance engine for tests.

Wires every component over the stubs and exposes the stubs so tests can
seed groups directly and inspect the ledger.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import timedelta

from civic_consensus.application.services.governance_engine import GovernanceEngine
from civic_consensus.bootstrap.governance import build_governance_engine
from civic_consensus.config.governance_config import (
    DEFAULT_GOVERNANCE_CONFIG,
    GovernanceConfig,
)
from civic_consensus.domain.models.audit_log import AuditActionType, AuditLogEntry
from civic_consensus.domain.models.membership import Member, Role
from civic_consensus.infrastructure.stubs import (
    AuditLogRepositoryStub,
    AuditSubscriberStub,
    FundCreatorStub,
    GroupSettingsStub,
    JoinRequestRepositoryStub,
    MembershipRepositoryStub,
    ProfileDirectoryStub,
    ProposalRepositoryStub,
)
from tests.helpers.fake_time_authority import FakeTimeAuthority


class GovernanceHarness:
    """A GovernanceEngine plus handles on all of its stubs."""

    def __init__(self, config: GovernanceConfig = DEFAULT_GOVERNANCE_CONFIG) -> None:
        self.config = config
        self.time = FakeTimeAuthority()
        self.memberships = MembershipRepositoryStub()
        self.join_requests = JoinRequestRepositoryStub()
        self.proposals = ProposalRepositoryStub()
        self.audit = AuditLogRepositoryStub()
        self.profiles = ProfileDirectoryStub()
        self.funds = FundCreatorStub()
        self.settings = GroupSettingsStub()
        self.subscriber = AuditSubscriberStub()
        self.engine: GovernanceEngine = build_governance_engine(
            config=config,
            time_authority=self.time,
            membership_repository=self.memberships,
            join_request_repository=self.join_requests,
            proposal_repository=self.proposals,
            audit_log_repository=self.audit,
            profile_directory=self.profiles,
            fund_creator=self.funds,
            group_settings=self.settings,
            subscribers=[self.subscriber],
        )

    def seed_group(
        self,
        group_id: str = "g1",
        *,
        founder: str = "founder",
        managers: Iterable[str] = (),
        members: Iterable[str] = (),
    ) -> None:
        """Place members directly in the registry, bypassing the ledger."""
        joined = self.time.now() - timedelta(days=1)
        self.memberships.add_member(Member(group_id, founder, Role.FOUNDER, joined))
        for user_id in managers:
            self.memberships.add_member(Member(group_id, user_id, Role.MANAGER, joined))
        for user_id in members:
            self.memberships.add_member(Member(group_id, user_id, Role.MEMBER, joined))

    async def role_of(self, group_id: str, user_id: str) -> Role | None:
        member = await self.memberships.get_member(group_id, user_id)
        return member.role if member is not None else None

    def entries_of(self, action_type: AuditActionType) -> list[AuditLogEntry]:
        return self.audit.entries_of_type(action_type)

    def action_types(self) -> list[AuditActionType]:
        """Ledger action types in append order."""
        return [e.action_type for e in self.audit.entries]
