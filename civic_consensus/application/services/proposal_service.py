"""Proposal Workflow service.

General-purpose quorum-voted decisions: member actions (promote, demote,
kick, reverts, reconfirmation, founder transfer) and policy actions
(fund approval, visibility, description, custom).

Lifecycle: ``active -> {approved, rejected, expired}``. When the effect
of an approved proposal fails, the proposal moves to
``execution_failed`` instead and a manager may retry the execution.

Governance Rules:
- ``required_votes = ceil(managers / 2)`` frozen at creation
- The proposer's approve vote is recorded with creation
- The target never votes; the founder is never a member-action target
- Early rejection once outstanding managers cannot reach the quorum
- Execute, then commit: a proposal is marked approved only after its
  effect was applied
- A member action whose target changed role before execution is
  rejected, never applied
- Past-deadline proposals are expired on read, on vote and by the sweep
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping
from typing import Any
from uuid import uuid4

from civic_consensus.application.dtos.proposal_view import ProposalView
from civic_consensus.application.ports.proposal_repository import (
    ProposalRepositoryProtocol,
)
from civic_consensus.application.ports.time_authority import TimeAuthorityProtocol
from civic_consensus.application.services.audit_log_service import AuditLogService
from civic_consensus.application.services.base import LoggingMixin
from civic_consensus.application.services.group_locks import GroupLockRegistry
from civic_consensus.application.services.membership_registry_service import (
    MembershipRegistryService,
)
from civic_consensus.application.services.resolution_executor_service import (
    ResolutionExecutorService,
)
from civic_consensus.config.governance_config import (
    DEFAULT_GOVERNANCE_CONFIG,
    GovernanceConfig,
)
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
    PROPOSAL_SUBJECT,
    REVERT_ACTIONS,
    PolicyPayload,
    Proposal,
    ProposalActionType,
    ProposalCategory,
    ProposalStatus,
    TargetRequirement,
    parse_policy_payload,
    role_satisfies,
)
from civic_consensus.domain.models.quorum import (
    Ballot,
    QuorumOutcome,
    VoteChoice,
    required_votes,
    tally,
)

ACTIVE = frozenset({ProposalStatus.ACTIVE})
RESOLVED = frozenset(
    {
        ProposalStatus.APPROVED,
        ProposalStatus.REJECTED,
        ProposalStatus.EXPIRED,
        ProposalStatus.EXECUTION_FAILED,
    }
)


class ProposalService(LoggingMixin):
    """Creates, votes on, resolves and expires proposals.

    Example:
        >>> proposal = await service.create_proposal(
        ...     group_id="g1",
        ...     proposer_id="manager-1",
        ...     action_type=ProposalActionType.KICK,
        ...     target_user_id="member-7",
        ... )
        >>> proposal = await service.vote_on_proposal(
        ...     proposal.id, "manager-2", VoteChoice.APPROVE
        ... )
    """

    def __init__(
        self,
        repository: ProposalRepositoryProtocol,
        registry: MembershipRegistryService,
        executor: ResolutionExecutorService,
        audit_log: AuditLogService,
        locks: GroupLockRegistry,
        time_authority: TimeAuthorityProtocol,
        config: GovernanceConfig = DEFAULT_GOVERNANCE_CONFIG,
    ) -> None:
        self._repository = repository
        self._registry = registry
        self._executor = executor
        self._audit = audit_log
        self._locks = locks
        self._time = time_authority
        self._config = config
        self._init_logger()

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

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
        source_log_entry_id: str | None = None,
    ) -> Proposal:
        """Create a proposal with the proposer's approve vote.

        Nothing is persisted when validation fails. A proposal whose
        quorum is met by the proposer alone resolves immediately.

        Raises:
            NotAuthorizedError: If the proposer is not a manager, or not
                the founder for a founder-only action.
            InvalidTargetError: For self-targeting or a founder target.
            NotFoundError: If the target is required to be a member and is not.
            InvalidOperationError: For a target whose role does not fit the
                action, a duplicate active proposal, or a malformed policy
                proposal.
            ExecutionFailedError: If immediate resolution fails to apply.
        """
        spec = action_type.spec
        async with self._locks.hold(group_id):
            proposer_role = await self._registry.find_role(group_id, proposer_id)
            if proposer_role is None or not proposer_role.is_manager:
                if not await self._registry.group_exists(group_id):
                    raise NotFoundError("group", group_id)
                raise NotAuthorizedError("Only managers can create proposals")
            if spec.founder_only and proposer_role != Role.FOUNDER:
                raise NotAuthorizedError(f"Only the founder can propose: {spec.label}")

            policy_payload: PolicyPayload | None = None
            if spec.category == ProposalCategory.MEMBER_ACTION:
                await self._validate_member_target(
                    group_id, proposer_id, action_type, target_user_id
                )
            else:
                if target_user_id:
                    raise InvalidOperationError("Policy proposals do not take a target")
                if not title or not title.strip():
                    raise InvalidOperationError("Policy proposals require a title")
                try:
                    policy_payload = parse_policy_payload(action_type, payload)
                except ValueError as e:
                    raise InvalidOperationError(str(e)) from e

            counts = await self._registry.count_by_role(group_id)
            now = self._time.now()
            proposal = Proposal(
                id=str(uuid4()),
                group_id=group_id,
                proposer_id=proposer_id,
                action_type=action_type,
                required_votes=required_votes(counts.manager_count),
                created_at=now,
                expires_at=now + self._config.voting_window,
                target_user_id=target_user_id,
                title=title.strip() if title else None,
                description=description,
                policy_payload=policy_payload,
                votes=(Ballot(voter_id=proposer_id, vote=VoteChoice.APPROVE, cast_at=now),),
                source_log_entry_id=source_log_entry_id,
            )

            await self._audit.record(
                group_id=group_id,
                action_type=AuditActionType.PROPOSAL_CREATED,
                actor_id=proposer_id,
                target_id=target_user_id,
                details=proposal.title or spec.label,
                subject_id=proposal.id,
            )
            await self._repository.save(proposal)
            self._log_operation(
                "create_proposal", group_id=group_id, proposal_id=proposal.id
            ).info(
                "proposal_created",
                action_type=action_type.value,
                required_votes=proposal.required_votes,
            )
            return await self._resolve_if_decided(proposal, proposer_id)

    async def create_revert_proposal(
        self,
        *,
        group_id: str,
        proposer_id: str,
        source_log_entry_id: str,
        reason: str | None = None,
    ) -> Proposal:
        """Propose undoing a logged promotion, demotion or removal.

        Raises:
            NotFoundError: If the entry does not exist in this group.
            InvalidOperationError: If the entry type cannot be reverted.
            (plus everything ``create_proposal`` raises)
        """
        entry = await self._audit.get_entry(source_log_entry_id)
        if entry.group_id != group_id:
            raise NotFoundError("audit_log_entry", source_log_entry_id)
        action_type = REVERT_ACTIONS.get(entry.action_type)
        if action_type is None or entry.target_id is None:
            raise InvalidOperationError(
                f"A {entry.action_type.value} entry cannot be reverted"
            )
        description = reason or (
            f"Revert {entry.action_type.value} of {entry.target_id} "
            f"(log entry {entry.id})"
        )
        return await self.create_proposal(
            group_id=group_id,
            proposer_id=proposer_id,
            action_type=action_type,
            target_user_id=entry.target_id,
            description=description,
            source_log_entry_id=entry.id,
        )

    # -------------------------------------------------------------------------
    # Voting
    # -------------------------------------------------------------------------

    async def vote_on_proposal(
        self,
        proposal_id: str,
        voter_id: str,
        vote: VoteChoice,
    ) -> Proposal:
        """Cast a manager's vote and resolve the proposal if decided.

        Raises:
            NotFoundError: If the proposal does not exist.
            InvalidOperationError: If voting has closed (including expiry).
            InvalidTargetError: If the voter is the proposal's target.
            NotAuthorizedError: If the voter is not a manager.
            AlreadyVotedError: If the voter already voted.
            ExecutionFailedError: If the approved effect failed to apply.
        """
        group_id = (await self.get_proposal(proposal_id)).group_id
        async with self._locks.hold(group_id):
            proposal = await self._expire_if_due(await self.get_proposal(proposal_id))
            if not proposal.is_active:
                raise InvalidOperationError(
                    f"Voting has closed: proposal is {proposal.status.value}"
                )
            if voter_id == proposal.target_user_id:
                raise InvalidTargetError("You cannot vote on a proposal about yourself")
            role = await self._registry.find_role(group_id, voter_id)
            if role is None or not role.is_manager:
                raise NotAuthorizedError("Only managers can vote on proposals")
            if proposal.has_voted(voter_id):
                raise AlreadyVotedError(proposal.id, voter_id)

            proposal = proposal.with_vote(
                Ballot(voter_id=voter_id, vote=vote, cast_at=self._time.now())
            )
            self._log_operation(
                "vote_on_proposal", group_id=group_id, proposal_id=proposal.id
            ).info("proposal_vote_recorded", voter_id=voter_id, vote=vote.value)
            return await self._resolve_if_decided(proposal, voter_id)

    async def retry_execution(self, proposal_id: str, actor_id: str) -> Proposal:
        """Re-apply the effect of a proposal stuck in ``execution_failed``.

        A member action whose target no longer holds the required role is
        resolved as rejected instead.

        Raises:
            NotFoundError: If the proposal does not exist.
            InvalidOperationError: If the proposal is not in execution_failed.
            NotAuthorizedError: If the caller is not a manager.
            ExecutionFailedError: If the effect fails again.
        """
        group_id = (await self.get_proposal(proposal_id)).group_id
        async with self._locks.hold(group_id):
            proposal = await self.get_proposal(proposal_id)
            if proposal.status != ProposalStatus.EXECUTION_FAILED:
                raise InvalidOperationError(
                    f"Only failed executions can be retried; proposal is {proposal.status.value}"
                )
            role = await self._registry.find_role(group_id, actor_id)
            if role is None or not role.is_manager:
                raise NotAuthorizedError("Only managers can retry an execution")
            self._log_operation(
                "retry_execution", group_id=group_id, proposal_id=proposal.id
            ).info("proposal_execution_retry")
            stale = await self._reject_if_target_stale(proposal, actor_id)
            if stale is not None:
                return stale
            return await self._execute_and_commit(proposal, actor_id)

    # -------------------------------------------------------------------------
    # Expiry
    # -------------------------------------------------------------------------

    async def expire_stale_proposals(self) -> list[Proposal]:
        """Expire every active proposal whose window has closed.

        Idempotent: a proposal is expired, and its entry written, once.

        Returns:
            The proposals expired by this call.
        """
        candidates = await self._repository.list_expiring(self._time.now())
        by_group: defaultdict[str, list[str]] = defaultdict(list)
        for proposal in candidates:
            by_group[proposal.group_id].append(proposal.id)

        expired: list[Proposal] = []
        for group_id, proposal_ids in by_group.items():
            async with self._locks.hold(group_id):
                for proposal_id in proposal_ids:
                    current = await self._repository.get(proposal_id)
                    if current is None:
                        continue
                    after = await self._expire_if_due(current)
                    if after.status == ProposalStatus.EXPIRED and current.is_active:
                        expired.append(after)

        if expired:
            self._log_operation("expire_stale_proposals").info(
                "proposals_expired", count=len(expired)
            )
        return expired

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_proposal(self, proposal_id: str) -> Proposal:
        proposal = await self._repository.get(proposal_id)
        if proposal is None:
            raise NotFoundError(PROPOSAL_SUBJECT, proposal_id)
        return proposal

    async def get_active_proposals(self, group_id: str, viewer_id: str) -> list[ProposalView]:
        """Active proposals of a group, newest first, for one member.

        Raises:
            NotAuthorizedError: If the viewer is not a member.
        """
        role = await self._require_member(group_id, viewer_id)
        async with self._locks.hold(group_id):
            for proposal in await self._repository.list_for_group(group_id, ACTIVE):
                await self._expire_if_due(proposal)
            active = await self._repository.list_for_group(group_id, ACTIVE)
        return [ProposalView.for_viewer(p, viewer_id, role.is_manager) for p in active]

    async def get_resolved_proposals(
        self,
        group_id: str,
        viewer_id: str,
        limit: int = 50,
    ) -> list[ProposalView]:
        """Resolved proposals of a group, newest first, for one member.

        Raises:
            NotAuthorizedError: If the viewer is not a member.
        """
        role = await self._require_member(group_id, viewer_id)
        async with self._locks.hold(group_id):
            for proposal in await self._repository.list_for_group(group_id, ACTIVE):
                await self._expire_if_due(proposal)
            resolved = await self._repository.list_for_group(group_id, RESOLVED)
        return [
            ProposalView.for_viewer(p, viewer_id, role.is_manager) for p in resolved[:limit]
        ]

    # -------------------------------------------------------------------------
    # Internals (caller holds the group lock)
    # -------------------------------------------------------------------------

    async def _validate_member_target(
        self,
        group_id: str,
        proposer_id: str,
        action_type: ProposalActionType,
        target_user_id: str | None,
    ) -> None:
        spec = action_type.spec
        if not target_user_id:
            raise InvalidOperationError(f"{spec.label} requires a target member")
        if target_user_id == proposer_id:
            raise InvalidTargetError("You cannot create a proposal about yourself")

        target_role = await self._registry.find_role(group_id, target_user_id)
        if target_role == Role.FOUNDER:
            raise InvalidTargetError("InvalidTarget: founder immune")
        if target_role is None and spec.target != TargetRequirement.NON_MEMBER:
            raise NotFoundError("member", target_user_id)
        if not role_satisfies(spec.target, target_role):
            raise InvalidOperationError(
                f"{spec.label} requires a target who is a "
                f"{spec.target.value.replace('_', '-')}"
            )

        for existing in await self._repository.list_for_group(group_id, ACTIVE):
            if (
                existing.target_user_id == target_user_id
                and existing.action_type == action_type
                and not existing.is_past_deadline(self._time.now())
            ):
                raise InvalidOperationError(
                    f"An active {spec.label.lower()} proposal already exists for this member"
                )

    async def _resolve_if_decided(self, proposal: Proposal, actor_id: str) -> Proposal:
        eligible = [
            m
            for m in await self._registry.manager_ids(proposal.group_id)
            if m != proposal.target_user_id
        ]
        result = tally(proposal.votes, eligible, proposal.required_votes)

        if result.outcome == QuorumOutcome.PENDING:
            await self._repository.save(proposal)
            return proposal

        if result.outcome == QuorumOutcome.REJECTED:
            rejected = proposal.transition(ProposalStatus.REJECTED, self._time.now())
            await self._audit.record(
                group_id=proposal.group_id,
                action_type=AuditActionType.PROPOSAL_REJECTED,
                actor_id=actor_id,
                target_id=proposal.target_user_id,
                details=(
                    f"{proposal.action_type.spec.label} rejected: {result.approve_count} "
                    f"of {result.required_votes} approvals reachable"
                ),
                subject_id=proposal.id,
            )
            await self._repository.save(rejected)
            self._log_operation(
                "resolve", group_id=proposal.group_id, proposal_id=proposal.id
            ).info("proposal_rejected", reject_count=result.reject_count)
            return rejected

        stale = await self._reject_if_target_stale(proposal, actor_id)
        if stale is not None:
            return stale
        return await self._execute_and_commit(proposal, actor_id)

    async def _reject_if_target_stale(self, proposal: Proposal, actor_id: str) -> Proposal | None:
        """Reject a member action whose target no longer holds the required role.

        The target's role may change between creation and resolution through
        another proposal or a founder transfer. Such a proposal is resolved
        as rejected instead of applying its effect to the wrong role.
        """
        spec = proposal.action_type.spec
        if proposal.category != ProposalCategory.MEMBER_ACTION:
            return None
        if self._executor.has_applied(proposal.id):
            return None
        current_role = await self._registry.find_role(proposal.group_id, proposal.target_user_id)
        if role_satisfies(spec.target, current_role):
            return None

        rejected = proposal.transition(ProposalStatus.REJECTED, self._time.now())
        await self._audit.record(
            group_id=proposal.group_id,
            action_type=AuditActionType.PROPOSAL_REJECTED,
            actor_id=actor_id,
            target_id=proposal.target_user_id,
            details=(
                f"{spec.label} not applied: target is now "
                f"{current_role.value if current_role else 'not a member'}"
            ),
            subject_id=proposal.id,
        )
        await self._repository.save(rejected)
        self._log_operation(
            "resolve", group_id=proposal.group_id, proposal_id=proposal.id
        ).info(
            "proposal_target_stale",
            required=spec.target.value,
            current_role=current_role.value if current_role else None,
        )
        return rejected

    async def _execute_and_commit(self, proposal: Proposal, actor_id: str) -> Proposal:
        log = self._log_operation(
            "execute_and_commit", group_id=proposal.group_id, proposal_id=proposal.id
        )
        try:
            await self._executor.execute(proposal, actor_id=actor_id)
        except ExecutionFailedError as e:
            failed = proposal.transition(
                ProposalStatus.EXECUTION_FAILED, self._time.now(), failure_reason=e.cause
            )
            await self._repository.save(failed)
            log.warning("proposal_execution_failed", cause=e.cause)
            raise

        approved = proposal.transition(ProposalStatus.APPROVED, self._time.now())
        await self._audit.record(
            group_id=proposal.group_id,
            action_type=AuditActionType.PROPOSAL_APPROVED,
            actor_id=actor_id,
            target_id=proposal.target_user_id,
            details=(
                f"{proposal.action_type.spec.label} approved with "
                f"{proposal.approve_count} of {proposal.required_votes} required votes"
            ),
            subject_id=proposal.id,
        )
        await self._repository.save(approved)
        self._executor.release(proposal.id)
        log.info("proposal_approved", approve_count=proposal.approve_count)
        return approved

    async def _expire_if_due(self, proposal: Proposal) -> Proposal:
        now = self._time.now()
        if not proposal.is_active or not proposal.is_past_deadline(now):
            return proposal
        expired = proposal.transition(ProposalStatus.EXPIRED, now)
        await self._audit.record(
            group_id=proposal.group_id,
            action_type=AuditActionType.PROPOSAL_EXPIRED,
            actor_id=SYSTEM_ACTOR_ID,
            target_id=proposal.target_user_id,
            details=(
                f"{proposal.action_type.spec.label} expired with "
                f"{proposal.approve_count} of {proposal.required_votes} approvals"
            ),
            subject_id=proposal.id,
        )
        await self._repository.save(expired)
        self._log_operation(
            "expire", group_id=proposal.group_id, proposal_id=proposal.id
        ).info("proposal_expired")
        return expired

    async def _require_member(self, group_id: str, user_id: str) -> Role:
        role = await self._registry.find_role(group_id, user_id)
        if role is None:
            if not await self._registry.group_exists(group_id):
                raise NotFoundError("group", group_id)
            raise NotAuthorizedError("Only members can view this group's proposals")
        return role
