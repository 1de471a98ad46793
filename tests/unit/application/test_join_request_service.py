"""Unit tests for the join request workflow.

Bootstrap groups resolve requests with a single manager decision;
larger groups vote, and violation blocks voting.
"""

from __future__ import annotations

import pytest

from civic_consensus.config.governance_config import GovernanceConfig
from civic_consensus.domain.errors import (
    AlreadyVotedError,
    GovernanceViolationError,
    InvalidOperationError,
    NotAuthorizedError,
    NotFoundError,
)
from civic_consensus.domain.models.audit_log import AuditActionType
from civic_consensus.domain.models.join_request import JoinRequestStatus
from civic_consensus.domain.models.membership import Role
from civic_consensus.domain.models.quorum import VoteChoice
from tests.helpers import GovernanceHarness


class TestCreateJoinRequest:
    @pytest.mark.asyncio
    async def test_bootstrap_request_is_pending(self, harness: GovernanceHarness) -> None:
        harness.seed_group("g1", founder="f", members=["u1"])

        request = await harness.engine.create_join_request("g1", "newcomer", "  Hello  ")

        assert request.status == JoinRequestStatus.PENDING
        assert request.required_votes is None
        assert request.message == "Hello"
        assert harness.action_types() == [AuditActionType.JOIN_REQUEST_CREATED]

    @pytest.mark.asyncio
    async def test_governed_request_starts_voting(self, harness: GovernanceHarness) -> None:
        harness.seed_group("g1", founder="f", managers=["m1", "m2"], members=["u1"])

        request = await harness.engine.create_join_request("g1", "newcomer")

        assert request.status == JoinRequestStatus.VOTING
        assert request.required_votes == 2

    @pytest.mark.asyncio
    async def test_members_and_duplicates_rejected(self, harness: GovernanceHarness) -> None:
        harness.seed_group("g1", founder="f", members=["u1"])
        with pytest.raises(InvalidOperationError, match="already a member"):
            await harness.engine.create_join_request("g1", "u1")

        await harness.engine.create_join_request("g1", "newcomer")
        with pytest.raises(InvalidOperationError, match="pending request"):
            await harness.engine.create_join_request("g1", "newcomer")

    @pytest.mark.asyncio
    async def test_message_length_limit(self) -> None:
        harness = GovernanceHarness(GovernanceConfig(join_message_max_length=5))
        harness.seed_group("g1", founder="f")

        with pytest.raises(InvalidOperationError, match="at most 5"):
            await harness.engine.create_join_request("g1", "newcomer", "too long")

    @pytest.mark.asyncio
    async def test_unknown_group(self, harness: GovernanceHarness) -> None:
        with pytest.raises(NotFoundError):
            await harness.engine.create_join_request("nope", "newcomer")


class TestBootstrapHandling:
    @pytest.mark.asyncio
    async def test_single_manager_approves(self, harness: GovernanceHarness) -> None:
        harness.seed_group("g1", founder="f", members=["u1"])
        request = await harness.engine.create_join_request("g1", "newcomer")

        resolved = await harness.engine.handle_join_request(
            request.id, "f", VoteChoice.APPROVE
        )

        assert resolved.status == JoinRequestStatus.APPROVED
        assert await harness.role_of("g1", "newcomer") == Role.MEMBER
        assert harness.action_types() == [
            AuditActionType.JOIN_REQUEST_CREATED,
            AuditActionType.JOIN,
        ]

    @pytest.mark.asyncio
    async def test_single_manager_declines(self, harness: GovernanceHarness) -> None:
        harness.seed_group("g1", founder="f")
        request = await harness.engine.create_join_request("g1", "newcomer")

        resolved = await harness.engine.handle_join_request(request.id, "f", VoteChoice.REJECT)

        assert resolved.status == JoinRequestStatus.REJECTED
        assert await harness.role_of("g1", "newcomer") is None
        assert harness.action_types()[-1] == AuditActionType.VOTE_RESOLUTION_REJECTED

    @pytest.mark.asyncio
    async def test_members_cannot_decide(self, harness: GovernanceHarness) -> None:
        harness.seed_group("g1", founder="f", members=["u1"])
        request = await harness.engine.create_join_request("g1", "newcomer")

        with pytest.raises(NotAuthorizedError):
            await harness.engine.handle_join_request(request.id, "u1", VoteChoice.APPROVE)

    @pytest.mark.asyncio
    async def test_cast_vote_refused_in_bootstrap(self, harness: GovernanceHarness) -> None:
        harness.seed_group("g1", founder="f")
        request = await harness.engine.create_join_request("g1", "newcomer")

        with pytest.raises(InvalidOperationError, match="bootstrap"):
            await harness.engine.cast_join_vote(request.id, "f", VoteChoice.APPROVE)

    @pytest.mark.asyncio
    async def test_resolved_request_is_immutable(self, harness: GovernanceHarness) -> None:
        harness.seed_group("g1", founder="f")
        request = await harness.engine.create_join_request("g1", "newcomer")
        await harness.engine.handle_join_request(request.id, "f", VoteChoice.REJECT)

        with pytest.raises(InvalidOperationError, match="already rejected"):
            await harness.engine.handle_join_request(request.id, "f", VoteChoice.APPROVE)


class TestQuorumVoting:
    @pytest.fixture
    def governed(self, harness: GovernanceHarness) -> GovernanceHarness:
        harness.seed_group(
            "g1", founder="f", managers=["m1", "m2", "m3"], members=["u1"]
        )
        return harness

    @pytest.mark.asyncio
    async def test_approved_at_quorum(self, governed: GovernanceHarness) -> None:
        request = await governed.engine.create_join_request("g1", "newcomer")

        after_one = await governed.engine.cast_join_vote(request.id, "m1", VoteChoice.APPROVE)
        after_two = await governed.engine.cast_join_vote(request.id, "m2", VoteChoice.APPROVE)

        assert after_one.status == JoinRequestStatus.VOTING
        assert after_two.status == JoinRequestStatus.APPROVED
        assert await governed.role_of("g1", "newcomer") == Role.MEMBER
        [entry] = governed.entries_of(AuditActionType.VOTE_RESOLUTION_APPROVED)
        assert entry.subject_id == request.id

    @pytest.mark.asyncio
    async def test_early_rejection(self, governed: GovernanceHarness) -> None:
        request = await governed.engine.create_join_request("g1", "newcomer")

        for voter in ("f", "m1", "m2"):
            request = await governed.engine.cast_join_vote(
                request.id, voter, VoteChoice.REJECT
            )

        assert request.status == JoinRequestStatus.REJECTED
        assert len(governed.entries_of(AuditActionType.VOTE_RESOLUTION_REJECTED)) == 1

    @pytest.mark.asyncio
    async def test_double_vote(self, governed: GovernanceHarness) -> None:
        request = await governed.engine.create_join_request("g1", "newcomer")
        await governed.engine.cast_join_vote(request.id, "m1", VoteChoice.APPROVE)

        with pytest.raises(AlreadyVotedError):
            await governed.engine.cast_join_vote(request.id, "m1", VoteChoice.REJECT)

    @pytest.mark.asyncio
    async def test_handle_counts_as_a_vote(self, governed: GovernanceHarness) -> None:
        request = await governed.engine.create_join_request("g1", "newcomer")

        after = await governed.engine.handle_join_request(request.id, "f", VoteChoice.APPROVE)

        assert after.status == JoinRequestStatus.VOTING
        assert after.has_voted("f")

    @pytest.mark.asyncio
    async def test_violation_blocks_voting(self, harness: GovernanceHarness) -> None:
        harness.seed_group("g1", founder="f", members=["u1", "u2", "u3"])
        request = await harness.engine.create_join_request("g1", "newcomer")

        with pytest.raises(GovernanceViolationError) as exc_info:
            await harness.engine.cast_join_vote(request.id, "f", VoteChoice.APPROVE)

        assert exc_info.value.remediation_hint
        stored = await harness.engine.join_requests.get_join_request(request.id)
        assert stored.votes == ()


class TestEscalation:
    @pytest.mark.asyncio
    async def test_pending_request_escalates_after_bootstrap(
        self, harness: GovernanceHarness
    ) -> None:
        harness.seed_group("g1", founder="f", managers=["m1"], members=["u1"])
        request = await harness.engine.create_join_request("g1", "newcomer")
        await harness.engine.registry.add_member("g1", "u2", actor_id="f")

        after = await harness.engine.handle_join_request(request.id, "f", VoteChoice.APPROVE)

        assert after.status == JoinRequestStatus.APPROVED
        assert after.required_votes == 1
        assert harness.action_types()[-2:] == [
            AuditActionType.JOIN_REQUEST_ESCALATED,
            AuditActionType.VOTE_RESOLUTION_APPROVED,
        ]

    @pytest.mark.asyncio
    async def test_escalation_refused_during_violation(
        self, harness: GovernanceHarness
    ) -> None:
        harness.seed_group("g1", founder="f", members=["u1"])
        request = await harness.engine.create_join_request("g1", "newcomer")
        await harness.engine.registry.add_member("g1", "u2", actor_id="f")
        await harness.engine.registry.add_member("g1", "u3", actor_id="f")

        with pytest.raises(GovernanceViolationError):
            await harness.engine.handle_join_request(request.id, "f", VoteChoice.APPROVE)

        stored = await harness.engine.join_requests.get_join_request(request.id)
        assert stored.status == JoinRequestStatus.PENDING


class TestListJoinRequests:
    @pytest.mark.asyncio
    async def test_open_only_by_default(self, harness: GovernanceHarness) -> None:
        harness.seed_group("g1", founder="f")
        first = await harness.engine.create_join_request("g1", "a")
        second = await harness.engine.create_join_request("g1", "b")
        await harness.engine.handle_join_request(first.id, "f", VoteChoice.REJECT)

        open_requests = await harness.engine.list_join_requests("g1")
        all_requests = await harness.engine.list_join_requests("g1", open_only=False)

        assert [r.id for r in open_requests] == [second.id]
        assert len(all_requests) == 2
