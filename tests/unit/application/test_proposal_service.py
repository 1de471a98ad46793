"""Unit tests for the proposal workflow.

Covers creation checks, quorum resolution, early rejection, expiry,
execution failure with retry, revert proposals and per-viewer listings.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from civic_consensus.domain.errors import (
    AlreadyVotedError,
    ExecutionFailedError,
    InvalidOperationError,
    InvalidTargetError,
    NotAuthorizedError,
    NotFoundError,
)
from civic_consensus.domain.models.audit_log import SYSTEM_ACTOR_ID, AuditActionType
from civic_consensus.domain.models.membership import Role
from civic_consensus.domain.models.proposal import (
    Proposal,
    ProposalActionType,
    ProposalStatus,
)
from civic_consensus.domain.models.quorum import VoteChoice
from tests.helpers import GovernanceHarness


@pytest.fixture
def governed(harness: GovernanceHarness) -> GovernanceHarness:
    """Four managers (founder included) and two members: quorum of 2."""
    harness.seed_group("g1", founder="f", managers=["m1", "m2", "m3"], members=["u1", "u2"])
    return harness


async def _propose(
    harness: GovernanceHarness,
    action: ProposalActionType = ProposalActionType.KICK,
    target: str | None = "u1",
    proposer: str = "f",
    **kwargs,
) -> Proposal:
    return await harness.engine.create_proposal(
        group_id="g1",
        proposer_id=proposer,
        action_type=action,
        target_user_id=target,
        **kwargs,
    )


class TestCreateProposal:
    @pytest.mark.asyncio
    async def test_proposer_vote_and_frozen_quorum(self, governed: GovernanceHarness) -> None:
        proposal = await _propose(governed, description="Spamming")

        assert proposal.status == ProposalStatus.ACTIVE
        assert proposal.required_votes == 2
        assert proposal.vote_of("f") == VoteChoice.APPROVE
        assert proposal.expires_at - proposal.created_at == timedelta(hours=72)
        assert governed.action_types() == [AuditActionType.PROPOSAL_CREATED]

    @pytest.mark.asyncio
    async def test_members_cannot_propose(self, governed: GovernanceHarness) -> None:
        with pytest.raises(NotAuthorizedError):
            await _propose(governed, target="u2", proposer="u1")

    @pytest.mark.asyncio
    async def test_unknown_group(self, harness: GovernanceHarness) -> None:
        with pytest.raises(NotFoundError, match="Group"):
            await _propose(harness)

    @pytest.mark.asyncio
    async def test_self_target(self, governed: GovernanceHarness) -> None:
        with pytest.raises(InvalidTargetError):
            await _propose(governed, ProposalActionType.DEMOTE, target="m1", proposer="m1")

    @pytest.mark.asyncio
    async def test_founder_is_immune(self, governed: GovernanceHarness) -> None:
        with pytest.raises(InvalidTargetError, match="founder immune"):
            await _propose(governed, ProposalActionType.KICK, target="f", proposer="m1")

        assert await governed.proposals.list_for_group("g1") == []
        assert governed.action_types() == []

    @pytest.mark.asyncio
    async def test_target_must_be_a_member(self, governed: GovernanceHarness) -> None:
        with pytest.raises(NotFoundError):
            await _propose(governed, target="stranger")

    @pytest.mark.asyncio
    async def test_target_role_must_match_action(self, governed: GovernanceHarness) -> None:
        with pytest.raises(InvalidOperationError, match="manager"):
            await _propose(governed, ProposalActionType.DEMOTE, target="u1")
        with pytest.raises(InvalidOperationError, match="member"):
            await _propose(governed, ProposalActionType.PROMOTE, target="m1")

    @pytest.mark.asyncio
    async def test_duplicate_active_proposal(self, governed: GovernanceHarness) -> None:
        await _propose(governed)
        with pytest.raises(InvalidOperationError, match="already exists"):
            await _propose(governed, proposer="m1")

    @pytest.mark.asyncio
    async def test_transfer_founder_is_founder_only(self, governed: GovernanceHarness) -> None:
        with pytest.raises(NotAuthorizedError, match="founder"):
            await _propose(governed, ProposalActionType.TRANSFER_FOUNDER, "m2", proposer="m1")

    @pytest.mark.asyncio
    async def test_policy_validation(self, governed: GovernanceHarness) -> None:
        with pytest.raises(InvalidOperationError, match="title"):
            await _propose(governed, ProposalActionType.CUSTOM, target=None)
        with pytest.raises(InvalidOperationError, match="target"):
            await _propose(governed, ProposalActionType.CUSTOM, target="u1", title="x")
        with pytest.raises(InvalidOperationError, match="targetAmount"):
            await _propose(
                governed,
                ProposalActionType.APPROVE_FUND,
                target=None,
                title="Garden",
                payload={"title": "Garden"},
            )

    @pytest.mark.asyncio
    async def test_resolves_immediately_when_proposer_meets_quorum(
        self, harness: GovernanceHarness
    ) -> None:
        harness.seed_group("g1", founder="f", managers=["m1"], members=["u1"])

        proposal = await _propose(harness, ProposalActionType.PROMOTE)

        assert proposal.status == ProposalStatus.APPROVED
        assert await harness.role_of("g1", "u1") == Role.MANAGER
        assert harness.action_types() == [
            AuditActionType.PROPOSAL_CREATED,
            AuditActionType.PROMOTION,
            AuditActionType.PROPOSAL_APPROVED,
        ]


class TestVoteOnProposal:
    @pytest.mark.asyncio
    async def test_quorum_executes_then_commits(self, governed: GovernanceHarness) -> None:
        proposal = await _propose(governed)

        approved = await governed.engine.vote_on_proposal(proposal.id, "m1", VoteChoice.APPROVE)

        assert approved.status == ProposalStatus.APPROVED
        assert approved.resolved_at == governed.time.now()
        assert await governed.role_of("g1", "u1") is None
        assert governed.action_types() == [
            AuditActionType.PROPOSAL_CREATED,
            AuditActionType.REMOVAL,
            AuditActionType.PROPOSAL_APPROVED,
        ]

    @pytest.mark.asyncio
    async def test_target_cannot_vote(self, governed: GovernanceHarness) -> None:
        proposal = await _propose(governed, ProposalActionType.DEMOTE, target="m3")

        with pytest.raises(InvalidTargetError):
            await governed.engine.vote_on_proposal(proposal.id, "m3", VoteChoice.REJECT)

    @pytest.mark.asyncio
    async def test_members_cannot_vote(self, governed: GovernanceHarness) -> None:
        proposal = await _propose(governed)
        with pytest.raises(NotAuthorizedError):
            await governed.engine.vote_on_proposal(proposal.id, "u2", VoteChoice.APPROVE)

    @pytest.mark.asyncio
    async def test_double_vote(self, governed: GovernanceHarness) -> None:
        proposal = await _propose(governed)
        with pytest.raises(AlreadyVotedError):
            await governed.engine.vote_on_proposal(proposal.id, "f", VoteChoice.REJECT)

    @pytest.mark.asyncio
    async def test_unknown_proposal(self, governed: GovernanceHarness) -> None:
        with pytest.raises(NotFoundError):
            await governed.engine.vote_on_proposal("nope", "f", VoteChoice.APPROVE)

    @pytest.mark.asyncio
    async def test_early_rejection(self, governed: GovernanceHarness) -> None:
        proposal = await _propose(governed)

        for voter in ("m1", "m2", "m3"):
            proposal = await governed.engine.vote_on_proposal(
                proposal.id, voter, VoteChoice.REJECT
            )

        assert proposal.status == ProposalStatus.REJECTED
        assert await governed.role_of("g1", "u1") == Role.MEMBER
        assert governed.action_types()[-1] == AuditActionType.PROPOSAL_REJECTED

    @pytest.mark.asyncio
    async def test_closed_proposal_rejects_votes(self, governed: GovernanceHarness) -> None:
        proposal = await _propose(governed)
        await governed.engine.vote_on_proposal(proposal.id, "m1", VoteChoice.APPROVE)

        with pytest.raises(InvalidOperationError, match="closed"):
            await governed.engine.vote_on_proposal(proposal.id, "m2", VoteChoice.APPROVE)

    @pytest.mark.asyncio
    async def test_reconfirm_approve_removes_manager_role(
        self, governed: GovernanceHarness
    ) -> None:
        proposal = await _propose(governed, ProposalActionType.RECONFIRM_MANAGER, target="m3")

        await governed.engine.vote_on_proposal(proposal.id, "m1", VoteChoice.APPROVE)

        assert await governed.role_of("g1", "m3") == Role.MEMBER
        assert AuditActionType.DEMOTION in governed.action_types()

    @pytest.mark.asyncio
    async def test_racing_votes_resolve_once(self, governed: GovernanceHarness) -> None:
        proposal = await _propose(governed)

        results = await asyncio.gather(
            governed.engine.vote_on_proposal(proposal.id, "m1", VoteChoice.APPROVE),
            governed.engine.vote_on_proposal(proposal.id, "m2", VoteChoice.APPROVE),
            return_exceptions=True,
        )

        approved = [r for r in results if isinstance(r, Proposal)]
        refused = [r for r in results if isinstance(r, InvalidOperationError)]
        assert len(approved) == 1 and len(refused) == 1
        assert len(governed.entries_of(AuditActionType.PROPOSAL_APPROVED)) == 1
        assert len(governed.entries_of(AuditActionType.REMOVAL)) == 1


class TestExpiry:
    @pytest.mark.asyncio
    async def test_vote_after_deadline_expires(self, governed: GovernanceHarness) -> None:
        proposal = await _propose(governed)
        governed.time.advance(delta=timedelta(hours=72))

        with pytest.raises(InvalidOperationError, match="expired"):
            await governed.engine.vote_on_proposal(proposal.id, "m1", VoteChoice.APPROVE)

        [entry] = governed.entries_of(AuditActionType.PROPOSAL_EXPIRED)
        assert entry.actor_id == SYSTEM_ACTOR_ID
        stored = await governed.engine.proposals.get_proposal(proposal.id)
        assert stored.status == ProposalStatus.EXPIRED

    @pytest.mark.asyncio
    async def test_sweep_is_idempotent(self, governed: GovernanceHarness) -> None:
        await _propose(governed)
        await _propose(governed, target="u2")
        governed.time.advance(delta=timedelta(hours=73))

        first = await governed.engine.expire_stale_proposals()
        second = await governed.engine.expire_stale_proposals()

        assert len(first) == 2
        assert second == []
        assert len(governed.entries_of(AuditActionType.PROPOSAL_EXPIRED)) == 2

    @pytest.mark.asyncio
    async def test_listing_expires_lazily(self, governed: GovernanceHarness) -> None:
        await _propose(governed)
        governed.time.advance(delta=timedelta(hours=80))

        active = await governed.engine.get_active_proposals("g1", "f")
        resolved = await governed.engine.get_resolved_proposals("g1", "f")

        assert active == []
        assert [v.proposal.status for v in resolved] == [ProposalStatus.EXPIRED]

    @pytest.mark.asyncio
    async def test_resolved_listing_expires_lazily(self, governed: GovernanceHarness) -> None:
        proposal = await _propose(governed)
        governed.time.advance(delta=timedelta(hours=73))

        resolved = await governed.engine.get_resolved_proposals("g1", "m1")

        assert [v.proposal.id for v in resolved] == [proposal.id]
        assert resolved[0].proposal.status == ProposalStatus.EXPIRED
        stored = await governed.engine.proposals.get_proposal(proposal.id)
        assert stored.status == ProposalStatus.EXPIRED
        assert len(governed.entries_of(AuditActionType.PROPOSAL_EXPIRED)) == 1


class TestExecutionFailure:
    @pytest.mark.asyncio
    async def test_failed_effect_leaves_execution_failed(
        self, governed: GovernanceHarness
    ) -> None:
        proposal = await _propose(
            governed,
            ProposalActionType.APPROVE_FUND,
            target=None,
            title="Garden fund",
            payload={"title": "Garden", "description": "Seeds", "targetAmount": 500},
        )
        governed.funds.set_failure(True)

        with pytest.raises(ExecutionFailedError) as exc_info:
            await governed.engine.vote_on_proposal(proposal.id, "m1", VoteChoice.APPROVE)

        stored = await governed.engine.proposals.get_proposal(proposal.id)
        assert stored.status == ProposalStatus.EXECUTION_FAILED
        assert stored.failure_reason == exc_info.value.cause
        assert governed.action_types() == [
            AuditActionType.PROPOSAL_CREATED,
            AuditActionType.PROPOSAL_EXECUTION_FAILED,
        ]
        with pytest.raises(InvalidOperationError):
            await governed.engine.vote_on_proposal(proposal.id, "m2", VoteChoice.APPROVE)

    @pytest.mark.asyncio
    async def test_retry_applies_effect_once(self, governed: GovernanceHarness) -> None:
        proposal = await _propose(
            governed,
            ProposalActionType.APPROVE_FUND,
            target=None,
            title="Garden fund",
            payload={"title": "Garden", "description": "Seeds", "targetAmount": 500},
        )
        governed.funds.set_failure(True)
        with pytest.raises(ExecutionFailedError):
            await governed.engine.vote_on_proposal(proposal.id, "m1", VoteChoice.APPROVE)
        governed.funds.set_failure(False)

        retried = await governed.engine.retry_execution(proposal.id, "m2")

        assert retried.status == ProposalStatus.APPROVED
        assert retried.failure_reason is None
        assert len(governed.funds.funds) == 1
        assert governed.action_types()[-2:] == [
            AuditActionType.FUND_APPROVED,
            AuditActionType.PROPOSAL_APPROVED,
        ]

    @pytest.mark.asyncio
    async def test_retry_only_for_failed(self, governed: GovernanceHarness) -> None:
        proposal = await _propose(governed)
        with pytest.raises(InvalidOperationError, match="Only failed executions"):
            await governed.engine.retry_execution(proposal.id, "f")


class TestStaleTargets:
    @pytest.mark.asyncio
    async def test_kick_of_target_promoted_meanwhile_is_rejected(
        self, governed: GovernanceHarness
    ) -> None:
        proposal = await _propose(governed)
        await governed.engine.update_member_role("g1", "f", "u1", Role.MANAGER)

        resolved = await governed.engine.vote_on_proposal(proposal.id, "m1", VoteChoice.APPROVE)

        assert resolved.status == ProposalStatus.REJECTED
        assert await governed.role_of("g1", "u1") == Role.MANAGER
        assert governed.entries_of(AuditActionType.REMOVAL) == []
        [entry] = governed.entries_of(AuditActionType.PROPOSAL_REJECTED)
        assert entry.subject_id == proposal.id
        assert "target is now manager" in entry.details

    @pytest.mark.asyncio
    async def test_promote_of_target_already_manager_is_rejected(
        self, governed: GovernanceHarness
    ) -> None:
        proposal = await _propose(governed, ProposalActionType.PROMOTE, target="u2")
        await governed.engine.update_member_role("g1", "f", "u2", Role.MANAGER)

        resolved = await governed.engine.vote_on_proposal(proposal.id, "m1", VoteChoice.APPROVE)

        assert resolved.status == ProposalStatus.REJECTED
        assert resolved.failure_reason is None
        assert len(governed.entries_of(AuditActionType.PROMOTION)) == 1
        assert governed.entries_of(AuditActionType.PROPOSAL_EXECUTION_FAILED) == []

    @pytest.mark.asyncio
    async def test_retry_with_stale_target_resolves_rejected(
        self, governed: GovernanceHarness
    ) -> None:
        proposal = await _propose(governed, ProposalActionType.PROMOTE, target="u1")
        await governed.proposals.save(
            proposal.transition(
                ProposalStatus.EXECUTION_FAILED, governed.time.now(), "registry unavailable"
            )
        )
        await governed.engine.update_member_role("g1", "f", "u1", Role.MANAGER)

        resolved = await governed.engine.retry_execution(proposal.id, "m1")

        assert resolved.status == ProposalStatus.REJECTED
        stored = await governed.engine.proposals.get_proposal(proposal.id)
        assert stored.status == ProposalStatus.REJECTED
        assert len(governed.entries_of(AuditActionType.PROMOTION)) == 1
        with pytest.raises(InvalidOperationError, match="Only failed executions"):
            await governed.engine.retry_execution(proposal.id, "m1")

    @pytest.mark.asyncio
    async def test_applied_result_is_released_after_commit(
        self, governed: GovernanceHarness
    ) -> None:
        proposal = await _propose(governed)

        await governed.engine.vote_on_proposal(proposal.id, "m1", VoteChoice.APPROVE)

        assert not governed.engine.proposals._executor.has_applied(proposal.id)


class TestRevertProposals:
    @pytest.mark.asyncio
    async def test_revert_promotion(self, governed: GovernanceHarness) -> None:
        await governed.engine.update_member_role("g1", "f", "u1", Role.MANAGER)
        [promotion] = governed.entries_of(AuditActionType.PROMOTION)

        proposal = await governed.engine.create_revert_proposal(
            group_id="g1", proposer_id="m1", source_log_entry_id=promotion.id
        )
        await governed.engine.vote_on_proposal(proposal.id, "m2", VoteChoice.APPROVE)
        await governed.engine.vote_on_proposal(proposal.id, "m3", VoteChoice.APPROVE)

        assert proposal.action_type == ProposalActionType.REVERT_PROMOTION
        assert proposal.source_log_entry_id == promotion.id
        assert await governed.role_of("g1", "u1") == Role.MEMBER

    @pytest.mark.asyncio
    async def test_revert_removal_reinstates(self, governed: GovernanceHarness) -> None:
        await governed.engine.remove_member("g1", "f", "u1")
        [removal] = governed.entries_of(AuditActionType.REMOVAL)

        proposal = await governed.engine.create_revert_proposal(
            group_id="g1", proposer_id="m1", source_log_entry_id=removal.id, reason="Mistake"
        )
        await governed.engine.vote_on_proposal(proposal.id, "m2", VoteChoice.APPROVE)

        assert proposal.description == "Mistake"
        assert await governed.role_of("g1", "u1") == Role.MEMBER
        assert len(governed.entries_of(AuditActionType.REVERT_REMOVAL)) == 1

    @pytest.mark.asyncio
    async def test_only_role_and_removal_entries(self, governed: GovernanceHarness) -> None:
        entry = await governed.engine.audit_log.record(
            group_id="g1", action_type=AuditActionType.JOIN, actor_id="f", target_id="u1"
        )
        with pytest.raises(InvalidOperationError, match="cannot be reverted"):
            await governed.engine.create_revert_proposal(
                group_id="g1", proposer_id="f", source_log_entry_id=entry.id
            )

    @pytest.mark.asyncio
    async def test_entry_from_another_group(self, governed: GovernanceHarness) -> None:
        entry = await governed.engine.audit_log.record(
            group_id="g2", action_type=AuditActionType.PROMOTION, actor_id="x", target_id="y"
        )
        with pytest.raises(NotFoundError):
            await governed.engine.create_revert_proposal(
                group_id="g1", proposer_id="f", source_log_entry_id=entry.id
            )


class TestProposalViews:
    @pytest.mark.asyncio
    async def test_viewer_context(self, governed: GovernanceHarness) -> None:
        await _propose(governed, ProposalActionType.RECONFIRM_MANAGER, target="m3")

        [for_target] = await governed.engine.get_active_proposals("g1", "m3")
        [for_manager] = await governed.engine.get_active_proposals("g1", "m1")
        [for_member] = await governed.engine.get_active_proposals("g1", "u1")
        [for_proposer] = await governed.engine.get_active_proposals("g1", "f")

        assert for_target.is_target and not for_target.can_vote
        assert for_manager.can_vote
        assert not for_member.can_vote
        assert for_proposer.my_vote == VoteChoice.APPROVE and not for_proposer.can_vote
        assert for_manager.approve_label == "Approve = Remove from manager role"

    @pytest.mark.asyncio
    async def test_non_members_cannot_list(self, governed: GovernanceHarness) -> None:
        with pytest.raises(NotAuthorizedError):
            await governed.engine.get_active_proposals("g1", "stranger")

    @pytest.mark.asyncio
    async def test_resolved_limit(self, governed: GovernanceHarness) -> None:
        for target in ("u1", "u2"):
            proposal = await _propose(governed, target=target)
            await governed.engine.vote_on_proposal(proposal.id, "m1", VoteChoice.REJECT)
            await governed.engine.vote_on_proposal(proposal.id, "m2", VoteChoice.REJECT)
            await governed.engine.vote_on_proposal(proposal.id, "m3", VoteChoice.REJECT)

        resolved = await governed.engine.get_resolved_proposals("g1", "f", limit=1)

        assert len(resolved) == 1
        assert resolved[0].proposal.status == ProposalStatus.REJECTED
