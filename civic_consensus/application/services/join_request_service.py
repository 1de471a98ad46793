"""Join Request Workflow service.

Admission pipeline for new members.

States:
- Bootstrap (three or fewer members): ``pending -> {approved, rejected}``;
  any single manager resolves the request with ``handle_join_request``.
- Otherwise: ``voting -> {approved, rejected}`` by quorum. A request
  created during bootstrap and handled after it ended is escalated to
  ``voting`` first.

Governance Rules:
- One vote per manager; a second vote raises AlreadyVotedError
- Voting is refused while the group is in governance violation
- ``required_votes`` is frozen when voting starts
- Requests have no maximum lifetime; they stay open until resolved
"""

from __future__ import annotations

from uuid import uuid4

from civic_consensus.application.ports.join_request_repository import (
    JoinRequestRepositoryProtocol,
)
from civic_consensus.application.ports.time_authority import TimeAuthorityProtocol
from civic_consensus.application.services.audit_log_service import AuditLogService
from civic_consensus.application.services.base import LoggingMixin
from civic_consensus.application.services.group_locks import GroupLockRegistry
from civic_consensus.application.services.health_evaluator_service import (
    HealthEvaluatorService,
)
from civic_consensus.application.services.membership_registry_service import (
    MembershipRegistryService,
)
from civic_consensus.config.governance_config import (
    DEFAULT_GOVERNANCE_CONFIG,
    GovernanceConfig,
)
from civic_consensus.domain.errors import (
    AlreadyVotedError,
    InvalidOperationError,
    NotAuthorizedError,
    NotFoundError,
)
from civic_consensus.domain.models.audit_log import AuditActionType
from civic_consensus.domain.models.join_request import (
    JOIN_REQUEST_SUBJECT,
    JoinRequest,
    JoinRequestStatus,
)
from civic_consensus.domain.models.membership import Role, RoleCounts
from civic_consensus.domain.models.quorum import (
    Ballot,
    QuorumOutcome,
    VoteChoice,
    required_votes,
    tally,
)

OPEN_STATUSES = frozenset({JoinRequestStatus.PENDING, JoinRequestStatus.VOTING})


class JoinRequestService(LoggingMixin):
    """Creates, votes on and resolves join requests.

    Example:
        >>> request = await service.create_join_request("g1", "newcomer", "Hi")
        >>> request = await service.handle_join_request(
        ...     request.id, "founder", VoteChoice.APPROVE
        ... )
        >>> request.status
        <JoinRequestStatus.APPROVED: 'approved'>
    """

    def __init__(
        self,
        repository: JoinRequestRepositoryProtocol,
        registry: MembershipRegistryService,
        health: HealthEvaluatorService,
        audit_log: AuditLogService,
        locks: GroupLockRegistry,
        time_authority: TimeAuthorityProtocol,
        config: GovernanceConfig = DEFAULT_GOVERNANCE_CONFIG,
    ) -> None:
        self._repository = repository
        self._registry = registry
        self._health = health
        self._audit = audit_log
        self._locks = locks
        self._time = time_authority
        self._config = config
        self._init_logger()

    async def create_join_request(
        self,
        group_id: str,
        user_id: str,
        message: str = "",
    ) -> JoinRequest:
        """Ask to join a group.

        Raises:
            NotFoundError: If the group does not exist.
            InvalidOperationError: If the user is already a member, already
                has an open request, or the message is too long.
        """
        message = message.strip()
        if len(message) > self._config.join_message_max_length:
            raise InvalidOperationError(
                f"Message must be at most {self._config.join_message_max_length} characters"
            )

        async with self._locks.hold(group_id):
            counts = await self._registry.require_group(group_id)
            if await self._registry.find_role(group_id, user_id) is not None:
                raise InvalidOperationError("You are already a member of this group")
            if await self._repository.find_open(group_id, user_id) is not None:
                raise InvalidOperationError("You already have a pending request for this group")

            request_id = str(uuid4())
            if self._health.is_bootstrap(counts):
                request = JoinRequest(
                    id=request_id,
                    group_id=group_id,
                    user_id=user_id,
                    status=JoinRequestStatus.PENDING,
                    created_at=self._time.now(),
                    message=message,
                )
            else:
                request = JoinRequest(
                    id=request_id,
                    group_id=group_id,
                    user_id=user_id,
                    status=JoinRequestStatus.VOTING,
                    created_at=self._time.now(),
                    message=message,
                    required_votes=required_votes(counts.manager_count),
                )

            await self._audit.record(
                group_id=group_id,
                action_type=AuditActionType.JOIN_REQUEST_CREATED,
                actor_id=user_id,
                target_id=user_id,
                details=message or None,
                subject_id=request.id,
            )
            await self._repository.save(request)

        self._log_operation(
            "create_join_request", group_id=group_id, request_id=request.id
        ).info(
            "join_request_created",
            status=request.status.value,
            required_votes=request.required_votes,
        )
        return request

    async def handle_join_request(
        self,
        request_id: str,
        actor_id: str,
        decision: VoteChoice,
    ) -> JoinRequest:
        """A manager's decision on a join request.

        In bootstrap mode this resolves the request immediately. Outside
        it, the decision is recorded as the manager's vote (escalating a
        pending request to voting first).

        Raises:
            NotFoundError: If the request does not exist.
            NotAuthorizedError: If the caller is not a manager.
            InvalidOperationError: If the request is already resolved.
            GovernanceViolationError: If the vote path is blocked.
            AlreadyVotedError: If the manager already voted.
        """
        group_id = await self._group_of(request_id)
        async with self._locks.hold(group_id):
            request = await self._load_open(request_id)
            await self._require_manager(group_id, actor_id)
            counts = await self._registry.count_by_role(group_id)

            if request.status == JoinRequestStatus.PENDING:
                if self._health.is_bootstrap(counts):
                    return await self._resolve_bootstrap(request, actor_id, decision)
                request = await self._escalate(request, counts, actor_id)

            return await self._vote(request, actor_id, decision, counts)

    async def cast_join_vote(
        self,
        request_id: str,
        voter_id: str,
        vote: VoteChoice,
    ) -> JoinRequest:
        """Cast a manager's quorum vote on a join request.

        Raises:
            NotFoundError: If the request does not exist.
            NotAuthorizedError: If the caller is not a manager.
            InvalidOperationError: If the request is resolved, or is a
                bootstrap request that must be handled directly.
            GovernanceViolationError: While the group is in violation.
            AlreadyVotedError: If the manager already voted.
        """
        group_id = await self._group_of(request_id)
        async with self._locks.hold(group_id):
            request = await self._load_open(request_id)
            await self._require_manager(group_id, voter_id)
            counts = await self._registry.count_by_role(group_id)

            if request.status == JoinRequestStatus.PENDING:
                if self._health.is_bootstrap(counts):
                    raise InvalidOperationError(
                        "This group is in bootstrap mode; handle the request directly"
                    )
                request = await self._escalate(request, counts, voter_id)

            return await self._vote(request, voter_id, vote, counts)

    async def get_join_request(self, request_id: str) -> JoinRequest:
        request = await self._repository.get(request_id)
        if request is None:
            raise NotFoundError(JOIN_REQUEST_SUBJECT, request_id)
        return request

    async def list_join_requests(
        self,
        group_id: str,
        *,
        open_only: bool = True,
    ) -> list[JoinRequest]:
        """List a group's join requests, oldest first."""
        statuses = OPEN_STATUSES if open_only else None
        return await self._repository.list_for_group(group_id, statuses)

    # -------------------------------------------------------------------------
    # Internals (caller holds the group lock)
    # -------------------------------------------------------------------------

    async def _resolve_bootstrap(
        self,
        request: JoinRequest,
        actor_id: str,
        decision: VoteChoice,
    ) -> JoinRequest:
        if decision == VoteChoice.APPROVE:
            await self._registry.add_member(
                request.group_id,
                request.user_id,
                Role.MEMBER,
                actor_id=actor_id,
                audit_action=AuditActionType.JOIN,
                details="Join request approved",
                subject_id=request.id,
            )
            status = JoinRequestStatus.APPROVED
        else:
            await self._audit.record(
                group_id=request.group_id,
                action_type=AuditActionType.VOTE_RESOLUTION_REJECTED,
                actor_id=actor_id,
                target_id=request.user_id,
                details="Join request declined",
                subject_id=request.id,
            )
            status = JoinRequestStatus.REJECTED

        resolved = request.resolve(status, self._time.now())
        await self._repository.save(resolved)
        self._log_operation(
            "handle_join_request", group_id=request.group_id, request_id=request.id
        ).info("join_request_resolved", status=status.value, path="bootstrap")
        return resolved

    async def _escalate(
        self, request: JoinRequest, counts: RoleCounts, actor_id: str
    ) -> JoinRequest:
        self._health.ensure_no_violation(request.group_id, counts)
        escalated = request.escalate(required_votes(counts.manager_count))
        await self._audit.record(
            group_id=request.group_id,
            action_type=AuditActionType.JOIN_REQUEST_ESCALATED,
            actor_id=actor_id,
            target_id=request.user_id,
            details=f"Group left bootstrap mode; {escalated.required_votes} approvals required",
            subject_id=request.id,
        )
        await self._repository.save(escalated)
        self._log_operation(
            "escalate", group_id=request.group_id, request_id=request.id
        ).info("join_request_escalated", required_votes=escalated.required_votes)
        return escalated

    async def _vote(
        self,
        request: JoinRequest,
        voter_id: str,
        vote: VoteChoice,
        counts: RoleCounts,
    ) -> JoinRequest:
        self._health.ensure_no_violation(request.group_id, counts)
        if request.has_voted(voter_id):
            raise AlreadyVotedError(request.id, voter_id)

        now = self._time.now()
        request = request.with_vote(Ballot(voter_id=voter_id, vote=vote, cast_at=now))
        required = request.required_votes or required_votes(counts.manager_count)
        result = tally(
            request.votes,
            await self._registry.manager_ids(request.group_id),
            required,
        )
        log = self._log_operation(
            "vote", group_id=request.group_id, request_id=request.id
        )
        log.info(
            "join_vote_recorded",
            vote=vote.value,
            approve_count=result.approve_count,
            required_votes=result.required_votes,
        )

        if result.outcome == QuorumOutcome.APPROVED:
            await self._registry.add_member(
                request.group_id,
                request.user_id,
                Role.MEMBER,
                actor_id=voter_id,
                audit_action=AuditActionType.VOTE_RESOLUTION_APPROVED,
                details=(
                    f"Approved with {result.approve_count} of "
                    f"{result.required_votes} required votes"
                ),
                subject_id=request.id,
            )
            request = request.resolve(JoinRequestStatus.APPROVED, now)
        elif result.outcome == QuorumOutcome.REJECTED:
            await self._audit.record(
                group_id=request.group_id,
                action_type=AuditActionType.VOTE_RESOLUTION_REJECTED,
                actor_id=voter_id,
                target_id=request.user_id,
                details=f"Rejected with {result.reject_count} reject votes",
                subject_id=request.id,
            )
            request = request.resolve(JoinRequestStatus.REJECTED, now)

        await self._repository.save(request)
        if request.status.is_terminal:
            log.info("join_request_resolved", status=request.status.value, path="quorum")
        return request

    async def _group_of(self, request_id: str) -> str:
        return (await self.get_join_request(request_id)).group_id

    async def _load_open(self, request_id: str) -> JoinRequest:
        request = await self.get_join_request(request_id)
        if not request.is_open:
            raise InvalidOperationError(f"Join request is already {request.status.value}")
        return request

    async def _require_manager(self, group_id: str, user_id: str) -> None:
        role = await self._registry.find_role(group_id, user_id)
        if role is None or not role.is_manager:
            raise NotAuthorizedError("Only managers can decide on join requests")
