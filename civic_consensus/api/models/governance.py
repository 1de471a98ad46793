"""Request and response models for the governance API.

Wire fields are camelCase; Python attributes stay snake_case and either
form is accepted on input.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from civic_consensus.application.dtos.proposal_view import ProposalView
from civic_consensus.domain.models.audit_log import (
    AuditActionType,
    AuditLogEntry,
    AuditLogPage,
)
from civic_consensus.domain.models.governance_health import (
    ComplianceStatus,
    GovernanceHealthSnapshot,
    GovernanceHealthStatus,
    GovernanceRule,
)
from civic_consensus.domain.models.join_request import JoinRequest, JoinRequestStatus
from civic_consensus.domain.models.membership import Member, Role
from civic_consensus.domain.models.proposal import (
    Proposal,
    ProposalActionType,
    ProposalCategory,
    ProposalStatus,
)
from civic_consensus.domain.models.quorum import Ballot, VoteChoice

DateTimeWithZ = Annotated[
    datetime,
    PlainSerializer(lambda v: v.isoformat().replace("+00:00", "Z"), return_type=str),
]


class ApiModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    """Error body carried in ``detail`` of every rejected call."""

    code: str = Field(description="Stable error code, e.g. ALREADY_VOTED")
    reason: str = Field(description="Human-readable reason")
    remediation_hint: str | None = Field(
        default=None, description="How to clear a governance violation"
    )


class HealthResponse(ApiModel):
    status: str = Field(description="Service status")


# =============================================================================
# Membership
# =============================================================================


class CreateGroupRequest(ApiModel):
    group_id: str | None = Field(
        default=None, description="Group id to use; generated when omitted"
    )


class UpdateRoleRequest(ApiModel):
    role: Role = Field(description="New role (manager or member)")


class TransferFounderRequest(ApiModel):
    new_founder_id: str = Field(min_length=1, description="Manager to become founder")


class MemberResponse(ApiModel):
    group_id: str
    user_id: str
    role: Role
    joined_at: DateTimeWithZ

    @classmethod
    def from_domain(cls, member: Member) -> MemberResponse:
        return cls(
            group_id=member.group_id,
            user_id=member.user_id,
            role=member.role,
            joined_at=member.joined_at,
        )


class FounderTransferResponse(ApiModel):
    previous_founder: MemberResponse
    new_founder: MemberResponse


# =============================================================================
# Votes and join requests
# =============================================================================


class VoteRequest(ApiModel):
    vote: VoteChoice = Field(description="approve or reject")


class DecisionRequest(ApiModel):
    decision: VoteChoice = Field(description="approve or reject")


class BallotResponse(ApiModel):
    voter_id: str
    vote: VoteChoice
    cast_at: DateTimeWithZ

    @classmethod
    def from_domain(cls, ballot: Ballot) -> BallotResponse:
        return cls(voter_id=ballot.voter_id, vote=ballot.vote, cast_at=ballot.cast_at)


class CreateJoinRequestRequest(ApiModel):
    message: str = Field(default="", description="Optional note to the managers")


class JoinRequestResponse(ApiModel):
    id: str
    group_id: str
    user_id: str
    message: str
    status: JoinRequestStatus
    votes: list[BallotResponse]
    required_votes: int | None
    created_at: DateTimeWithZ
    resolved_at: DateTimeWithZ | None = None

    @classmethod
    def from_domain(cls, request: JoinRequest) -> JoinRequestResponse:
        return cls(
            id=request.id,
            group_id=request.group_id,
            user_id=request.user_id,
            message=request.message,
            status=request.status,
            votes=[BallotResponse.from_domain(b) for b in request.votes],
            required_votes=request.required_votes,
            created_at=request.created_at,
            resolved_at=request.resolved_at,
        )


# =============================================================================
# Proposals
# =============================================================================


class CreateProposalRequest(ApiModel):
    action_type: ProposalActionType
    target_user_id: str | None = None
    title: str | None = None
    description: str | None = None
    payload: dict[str, Any] | None = Field(
        default=None, description="Policy payload (camelCase keys)"
    )


class CreateRevertProposalRequest(ApiModel):
    source_log_entry_id: str = Field(min_length=1)
    reason: str | None = None


class ProposalResponse(ApiModel):
    id: str
    group_id: str
    proposer_id: str
    action_type: ProposalActionType
    category: ProposalCategory
    status: ProposalStatus
    target_user_id: str | None = None
    title: str | None = None
    description: str | None = None
    payload: dict[str, Any] | None = None
    votes: list[BallotResponse]
    required_votes: int
    approve_count: int
    reject_count: int
    created_at: DateTimeWithZ
    expires_at: DateTimeWithZ
    resolved_at: DateTimeWithZ | None = None
    source_log_entry_id: str | None = None
    failure_reason: str | None = None

    @classmethod
    def fields_from(cls, proposal: Proposal) -> dict[str, Any]:
        return {
            "id": proposal.id,
            "group_id": proposal.group_id,
            "proposer_id": proposal.proposer_id,
            "action_type": proposal.action_type,
            "category": proposal.category,
            "status": proposal.status,
            "target_user_id": proposal.target_user_id,
            "title": proposal.title,
            "description": proposal.description,
            "payload": (
                proposal.policy_payload.to_dict() if proposal.policy_payload else None
            ),
            "votes": [BallotResponse.from_domain(b) for b in proposal.votes],
            "required_votes": proposal.required_votes,
            "approve_count": proposal.approve_count,
            "reject_count": proposal.reject_count,
            "created_at": proposal.created_at,
            "expires_at": proposal.expires_at,
            "resolved_at": proposal.resolved_at,
            "source_log_entry_id": proposal.source_log_entry_id,
            "failure_reason": proposal.failure_reason,
        }

    @classmethod
    def from_domain(cls, proposal: Proposal) -> ProposalResponse:
        return cls(**cls.fields_from(proposal))


class ProposalViewResponse(ProposalResponse):
    """A proposal with the caller's vote context."""

    my_vote: VoteChoice | None = None
    is_target: bool
    can_vote: bool
    approve_label: str

    @classmethod
    def from_view(cls, view: ProposalView) -> ProposalViewResponse:
        return cls(
            **cls.fields_from(view.proposal),
            my_vote=view.my_vote,
            is_target=view.is_target,
            can_vote=view.can_vote,
            approve_label=view.approve_label,
        )


# =============================================================================
# Health and audit log
# =============================================================================


class GovernanceHealthResponse(ApiModel):
    group_id: str
    manager_count: int
    member_count: int
    is_bootstrap: bool
    governance_violation: bool
    compliance_status: ComplianceStatus
    vote_participation_rate: float = Field(ge=0, le=100)
    rule_compliance: int = Field(ge=0, le=100)
    violated_rules: list[GovernanceRule]
    pending_decisions: int
    status: GovernanceHealthStatus
    evaluated_at: DateTimeWithZ

    @classmethod
    def from_domain(cls, snapshot: GovernanceHealthSnapshot) -> GovernanceHealthResponse:
        return cls(
            group_id=snapshot.group_id,
            manager_count=snapshot.manager_count,
            member_count=snapshot.member_count,
            is_bootstrap=snapshot.is_bootstrap,
            governance_violation=snapshot.governance_violation,
            compliance_status=snapshot.compliance_status,
            vote_participation_rate=snapshot.vote_participation_rate,
            rule_compliance=snapshot.rule_compliance,
            violated_rules=list(snapshot.violated_rules),
            pending_decisions=snapshot.pending_decisions,
            status=snapshot.status,
            evaluated_at=snapshot.evaluated_at,
        )


class AuditLogEntryResponse(ApiModel):
    id: str
    group_id: str
    action_type: AuditActionType
    actor_id: str
    actor_name: str | None = None
    target_id: str | None = None
    target_name: str | None = None
    details: str | None = None
    subject_id: str | None = None
    created_at: DateTimeWithZ

    @classmethod
    def from_domain(cls, entry: AuditLogEntry) -> AuditLogEntryResponse:
        return cls(
            id=entry.id,
            group_id=entry.group_id,
            action_type=entry.action_type,
            actor_id=entry.actor_id,
            actor_name=entry.actor_name,
            target_id=entry.target_id,
            target_name=entry.target_name,
            details=entry.details,
            subject_id=entry.subject_id,
            created_at=entry.created_at,
        )


class AuditLogPageResponse(ApiModel):
    entries: list[AuditLogEntryResponse]
    next_cursor: str | None = None

    @classmethod
    def from_domain(cls, page: AuditLogPage) -> AuditLogPageResponse:
        return cls(
            entries=[AuditLogEntryResponse.from_domain(e) for e in page.entries],
            next_cursor=page.next_cursor,
        )
