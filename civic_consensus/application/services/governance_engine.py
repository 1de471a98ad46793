"""Governance engine facade.

Single entry point for the operation surface exposed to callers (the
HTTP layer, the expiry worker, the AutoMod peer). Each call delegates
to the component service that owns it.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from civic_consensus.application.dtos.proposal_view import ProposalView
from civic_consensus.application.services.audit_log_service import AuditLogService
from civic_consensus.application.services.health_evaluator_service import (
    HealthEvaluatorService,
)
from civic_consensus.application.services.join_request_service import (
    JoinRequestService,
)
from civic_consensus.application.services.member_management_service import (
    MemberManagementService,
)
from civic_consensus.application.services.membership_registry_service import (
    MembershipRegistryService,
)
from civic_consensus.application.services.proposal_service import ProposalService
from civic_consensus.domain.models.audit_log import (
    AuditActionType,
    AuditLogEntry,
    AuditLogFilter,
    AuditLogPage,
)
from civic_consensus.domain.models.governance_health import GovernanceHealthSnapshot
from civic_consensus.domain.models.join_request import JoinRequest
from civic_consensus.domain.models.membership import Member, Role
from civic_consensus.domain.models.proposal import Proposal, ProposalActionType
from civic_consensus.domain.models.quorum import VoteChoice


class GovernanceEngine:
    """Facade over the governance components."""

    def __init__(
        self,
        registry: MembershipRegistryService,
        members: MemberManagementService,
        health: HealthEvaluatorService,
        join_requests: JoinRequestService,
        proposals: ProposalService,
        audit_log: AuditLogService,
    ) -> None:
        self.registry = registry
        self.members = members
        self.health = health
        self.join_requests = join_requests
        self.proposals = proposals
        self.audit_log = audit_log

    # Membership

    async def create_group(self, group_id: str, founder_id: str) -> Member:
        return await self.members.create_group(group_id, founder_id)

    async def get_role(self, group_id: str, user_id: str) -> Role:
        return await self.registry.get_role(group_id, user_id)

    async def list_members(self, group_id: str) -> list[Member]:
        await self.registry.require_group(group_id)
        return await self.registry.list_members(group_id)

    async def update_member_role(
        self, group_id: str, actor_id: str, target_user_id: str, role: Role
    ) -> Member:
        return await self.members.update_member_role(group_id, actor_id, target_user_id, role)

    async def remove_member(self, group_id: str, actor_id: str, target_user_id: str) -> Member:
        return await self.members.remove_member(group_id, actor_id, target_user_id)

    async def leave_group(self, group_id: str, user_id: str) -> Member:
        return await self.members.leave_group(group_id, user_id)

    async def transfer_founder(
        self, group_id: str, actor_id: str, new_founder_id: str
    ) -> tuple[Member, Member]:
        return await self.members.transfer_founder(group_id, actor_id, new_founder_id)

    # Join requests

    async def create_join_request(
        self, group_id: str, user_id: str, message: str = ""
    ) -> JoinRequest:
        return await self.join_requests.create_join_request(group_id, user_id, message)

    async def handle_join_request(
        self, request_id: str, actor_id: str, decision: VoteChoice
    ) -> JoinRequest:
        return await self.join_requests.handle_join_request(request_id, actor_id, decision)

    async def cast_join_vote(
        self, request_id: str, voter_id: str, vote: VoteChoice
    ) -> JoinRequest:
        return await self.join_requests.cast_join_vote(request_id, voter_id, vote)

    async def list_join_requests(
        self, group_id: str, *, open_only: bool = True
    ) -> list[JoinRequest]:
        return await self.join_requests.list_join_requests(group_id, open_only=open_only)

    # Proposals

    async def create_proposal(
        self,
        *,
        group_id: str,
        proposer_id: str,
        action_type: ProposalActionType,
        target_user_id: str | None = None,
        title: str | None = None,
        description: str | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> Proposal:
        return await self.proposals.create_proposal(
            group_id=group_id,
            proposer_id=proposer_id,
            action_type=action_type,
            target_user_id=target_user_id,
            title=title,
            description=description,
            payload=payload,
        )

    async def create_revert_proposal(
        self,
        *,
        group_id: str,
        proposer_id: str,
        source_log_entry_id: str,
        reason: str | None = None,
    ) -> Proposal:
        return await self.proposals.create_revert_proposal(
            group_id=group_id,
            proposer_id=proposer_id,
            source_log_entry_id=source_log_entry_id,
            reason=reason,
        )

    async def vote_on_proposal(
        self, proposal_id: str, voter_id: str, vote: VoteChoice
    ) -> Proposal:
        return await self.proposals.vote_on_proposal(proposal_id, voter_id, vote)

    async def retry_execution(self, proposal_id: str, actor_id: str) -> Proposal:
        return await self.proposals.retry_execution(proposal_id, actor_id)

    async def get_active_proposals(self, group_id: str, viewer_id: str) -> list[ProposalView]:
        return await self.proposals.get_active_proposals(group_id, viewer_id)

    async def get_resolved_proposals(
        self, group_id: str, viewer_id: str, limit: int = 50
    ) -> list[ProposalView]:
        return await self.proposals.get_resolved_proposals(group_id, viewer_id, limit)

    async def expire_stale_proposals(self) -> list[Proposal]:
        return await self.proposals.expire_stale_proposals()

    # Health and audit

    async def get_governance_health(self, group_id: str) -> GovernanceHealthSnapshot:
        return await self.health.get_governance_health(group_id)

    async def get_audit_log(
        self,
        group_id: str,
        log_filter: AuditLogFilter = AuditLogFilter.ALL,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> AuditLogPage:
        return await self.audit_log.query(group_id, log_filter, limit, cursor)

    async def record_moderation_entry(
        self,
        *,
        group_id: str,
        action_type: AuditActionType,
        actor_id: str,
        target_id: str | None = None,
        details: str | None = None,
    ) -> AuditLogEntry:
        return await self.audit_log.record_moderation_entry(
            group_id=group_id,
            action_type=action_type,
            actor_id=actor_id,
            target_id=target_id,
            details=details,
        )
