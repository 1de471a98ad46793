"""Proposal domain models.

A proposal is a quorum-voted decision over a member action (role change,
removal, reinstatement, reconfirmation, founder transfer) or a group
policy (fund approval, visibility, description, custom).

Lifecycle: ``active -> {approved, rejected, expired}``. An approved
proposal whose delegated effect fails moves to ``execution_failed``
instead and can be retried; it never accepts further votes. A failed
proposal whose target no longer qualifies is rejected.

Governance Rules:
- The proposer's approve vote is recorded with creation
- ``required_votes`` is frozen at creation
- The proposal's target never votes on it
- The founder is never the target of a member action
- ``reconfirm_manager``: approve means "remove from manager role"
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Final, Mapping, Union

from civic_consensus.domain.models.audit_log import AuditActionType
from civic_consensus.domain.models.membership import Role
from civic_consensus.domain.models.quorum import Ballot, VoteChoice

PROPOSAL_SUBJECT: Final[str] = "proposal"


class ProposalCategory(str, Enum):
    """Broad kind of decision."""

    MEMBER_ACTION = "member_action"
    POLICY = "policy"


class ProposalActionType(str, Enum):
    """Closed set of decisions a proposal can carry."""

    PROMOTE = "promote"
    DEMOTE = "demote"
    KICK = "kick"
    REVERT_PROMOTION = "revert_promotion"
    REVERT_DEMOTION = "revert_demotion"
    REVERT_REMOVAL = "revert_removal"
    RECONFIRM_MANAGER = "reconfirm_manager"
    TRANSFER_FOUNDER = "transfer_founder"
    APPROVE_FUND = "approve_fund"
    CHANGE_VISIBILITY = "change_visibility"
    AMEND_DESCRIPTION = "amend_description"
    CUSTOM = "custom"

    @property
    def spec(self) -> ActionSpec:
        return ACTION_SPECS[self]

    @property
    def category(self) -> ProposalCategory:
        return ACTION_SPECS[self].category


class TargetRequirement(str, Enum):
    """What the target's membership must look like at creation."""

    NONE = "none"
    MEMBER = "member"
    MANAGER = "manager"
    NON_MEMBER = "non_member"


@dataclass(frozen=True)
class ActionSpec:
    """Per-action metadata: label, eligibility and vote wording.

    Attributes:
        label: Display label.
        category: Member action or policy.
        target: Membership requirement for the target.
        approve_label: What an approve vote means for this action.
        founder_only: Only the founder may propose it.
    """

    label: str
    category: ProposalCategory
    target: TargetRequirement
    approve_label: str = "Approve"
    founder_only: bool = False


ACTION_SPECS: Final[dict[ProposalActionType, ActionSpec]] = {
    ProposalActionType.PROMOTE: ActionSpec(
        "Promote to manager", ProposalCategory.MEMBER_ACTION, TargetRequirement.MEMBER
    ),
    ProposalActionType.DEMOTE: ActionSpec(
        "Demote to member", ProposalCategory.MEMBER_ACTION, TargetRequirement.MANAGER
    ),
    ProposalActionType.KICK: ActionSpec(
        "Remove from group", ProposalCategory.MEMBER_ACTION, TargetRequirement.MEMBER
    ),
    ProposalActionType.REVERT_PROMOTION: ActionSpec(
        "Revert promotion", ProposalCategory.MEMBER_ACTION, TargetRequirement.MANAGER
    ),
    ProposalActionType.REVERT_DEMOTION: ActionSpec(
        "Revert demotion", ProposalCategory.MEMBER_ACTION, TargetRequirement.MEMBER
    ),
    ProposalActionType.REVERT_REMOVAL: ActionSpec(
        "Reinstate removed member",
        ProposalCategory.MEMBER_ACTION,
        TargetRequirement.NON_MEMBER,
    ),
    ProposalActionType.RECONFIRM_MANAGER: ActionSpec(
        "Reconfirm manager",
        ProposalCategory.MEMBER_ACTION,
        TargetRequirement.MANAGER,
        approve_label="Approve = Remove from manager role",
    ),
    ProposalActionType.TRANSFER_FOUNDER: ActionSpec(
        "Transfer founder role",
        ProposalCategory.MEMBER_ACTION,
        TargetRequirement.MANAGER,
        founder_only=True,
    ),
    ProposalActionType.APPROVE_FUND: ActionSpec(
        "Approve fund", ProposalCategory.POLICY, TargetRequirement.NONE
    ),
    ProposalActionType.CHANGE_VISIBILITY: ActionSpec(
        "Change visibility", ProposalCategory.POLICY, TargetRequirement.NONE
    ),
    ProposalActionType.AMEND_DESCRIPTION: ActionSpec(
        "Amend description", ProposalCategory.POLICY, TargetRequirement.NONE
    ),
    ProposalActionType.CUSTOM: ActionSpec(
        "Custom policy", ProposalCategory.POLICY, TargetRequirement.NONE
    ),
}

_missing = set(ProposalActionType) - set(ACTION_SPECS)
if _missing:
    raise RuntimeError(f"ACTION_SPECS missing entries for {sorted(a.value for a in _missing)}")

# Audit entry types a revert proposal can be built from
REVERT_ACTIONS: Final[dict[AuditActionType, ProposalActionType]] = {
    AuditActionType.PROMOTION: ProposalActionType.REVERT_PROMOTION,
    AuditActionType.DEMOTION: ProposalActionType.REVERT_DEMOTION,
    AuditActionType.REMOVAL: ProposalActionType.REVERT_REMOVAL,
}


def role_satisfies(requirement: TargetRequirement, role: Role | None) -> bool:
    """Check a target's current role (None = not a member) against a requirement."""
    if requirement == TargetRequirement.NONE:
        return True
    if requirement == TargetRequirement.NON_MEMBER:
        return role is None
    if requirement == TargetRequirement.MEMBER:
        return role == Role.MEMBER
    return role == Role.MANAGER


# =============================================================================
# Policy payloads
# =============================================================================


@dataclass(frozen=True)
class FundPayload:
    """Payload for ``approve_fund``: the fund to create."""

    title: str
    description: str
    target_amount: Decimal

    def __post_init__(self) -> None:
        if not self.title.strip():
            raise ValueError("fund title is required")
        if self.target_amount <= 0:
            raise ValueError(f"targetAmount must be positive, got {self.target_amount}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "targetAmount": str(self.target_amount),
        }


@dataclass(frozen=True)
class VisibilityPayload:
    """Payload for ``change_visibility``."""

    is_public: bool

    def to_dict(self) -> dict[str, Any]:
        return {"isPublic": self.is_public}


@dataclass(frozen=True)
class DescriptionPayload:
    """Payload for ``amend_description``."""

    description: str

    def __post_init__(self) -> None:
        if not self.description.strip():
            raise ValueError("description is required")

    def to_dict(self) -> dict[str, Any]:
        return {"description": self.description}


@dataclass(frozen=True)
class CustomPayload:
    """Free-form payload for ``custom`` proposals (manual follow-up)."""

    data: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return dict(self.data)


PolicyPayload = Union[FundPayload, VisibilityPayload, DescriptionPayload, CustomPayload]


def parse_policy_payload(
    action_type: ProposalActionType, raw: Mapping[str, Any] | None
) -> PolicyPayload:
    """Build the typed payload for a policy action.

    Args:
        action_type: A policy action type.
        raw: Wire payload using camelCase keys.

    Returns:
        Typed policy payload.

    Raises:
        ValueError: If the payload is missing fields or malformed.
    """
    data = dict(raw or {})
    if action_type == ProposalActionType.APPROVE_FUND:
        try:
            amount = Decimal(str(data["targetAmount"]))
        except KeyError:
            raise ValueError("approve_fund requires targetAmount") from None
        except InvalidOperation:
            raise ValueError(f"invalid targetAmount: {data['targetAmount']!r}") from None
        return FundPayload(
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
            target_amount=amount,
        )
    if action_type == ProposalActionType.CHANGE_VISIBILITY:
        if not isinstance(data.get("isPublic"), bool):
            raise ValueError("change_visibility requires boolean isPublic")
        return VisibilityPayload(is_public=data["isPublic"])
    if action_type == ProposalActionType.AMEND_DESCRIPTION:
        return DescriptionPayload(description=str(data.get("description", "")))
    if action_type == ProposalActionType.CUSTOM:
        return CustomPayload(data=data)
    raise ValueError(f"{action_type.value} is not a policy action")


# =============================================================================
# Proposal
# =============================================================================


class ProposalStatus(str, Enum):
    """Lifecycle state of a proposal."""

    ACTIVE = "active"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"
    EXECUTION_FAILED = "execution_failed"

    @property
    def is_resolved(self) -> bool:
        """True once voting has closed."""
        return self != ProposalStatus.ACTIVE


@dataclass(frozen=True)
class Proposal:
    """A quorum-voted governance decision.

    Attributes:
        id: Proposal identifier.
        group_id: Group the decision applies to.
        proposer_id: Manager who created it.
        action_type: The decision carried.
        required_votes: Quorum frozen at creation.
        created_at: Creation time.
        expires_at: End of the voting window.
        status: Lifecycle state.
        target_user_id: Subject of a member action.
        title: Display title (required for policy proposals).
        description: Reason or body text.
        policy_payload: Typed payload for policy actions.
        votes: Ballots cast, proposer's approve first.
        resolved_at: When voting closed.
        source_log_entry_id: Audit entry a revert proposal undoes.
        failure_reason: Last execution failure, if any.
    """

    id: str
    group_id: str
    proposer_id: str
    action_type: ProposalActionType
    required_votes: int
    created_at: datetime
    expires_at: datetime
    status: ProposalStatus = ProposalStatus.ACTIVE
    target_user_id: str | None = None
    title: str | None = None
    description: str | None = None
    policy_payload: PolicyPayload | None = None
    votes: tuple[Ballot, ...] = field(default_factory=tuple)
    resolved_at: datetime | None = None
    source_log_entry_id: str | None = None
    failure_reason: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("id is required")
        if self.required_votes < 1:
            raise ValueError(f"required_votes must be >= 1, got {self.required_votes}")
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be after created_at")
        if self.category == ProposalCategory.MEMBER_ACTION:
            if not self.target_user_id:
                raise ValueError(f"{self.action_type.value} requires a target_user_id")
        else:
            if self.target_user_id:
                raise ValueError("policy proposals do not take a target_user_id")
            if self.policy_payload is None:
                raise ValueError(f"{self.action_type.value} requires a policy payload")
        if self.target_user_id and any(
            b.voter_id == self.target_user_id for b in self.votes
        ):
            raise ValueError("the proposal target cannot appear among its voters")

    @property
    def category(self) -> ProposalCategory:
        return self.action_type.category

    @property
    def is_active(self) -> bool:
        return self.status == ProposalStatus.ACTIVE

    @property
    def approve_count(self) -> int:
        return sum(1 for b in self.votes if b.vote == VoteChoice.APPROVE)

    @property
    def reject_count(self) -> int:
        return sum(1 for b in self.votes if b.vote == VoteChoice.REJECT)

    def has_voted(self, voter_id: str) -> bool:
        return any(b.voter_id == voter_id for b in self.votes)

    def vote_of(self, voter_id: str) -> VoteChoice | None:
        for ballot in self.votes:
            if ballot.voter_id == voter_id:
                return ballot.vote
        return None

    def is_past_deadline(self, now: datetime) -> bool:
        return now >= self.expires_at

    def with_vote(self, ballot: Ballot) -> Proposal:
        if ballot.voter_id == self.target_user_id:
            raise ValueError("the proposal target cannot vote on it")
        return replace(self, votes=self.votes + (ballot,))

    def transition(
        self,
        status: ProposalStatus,
        at: datetime,
        failure_reason: str | None = None,
    ) -> Proposal:
        """Return the proposal in a new lifecycle state.

        Raises:
            ValueError: If the move is not allowed from the current state.
        """
        allowed = _TRANSITIONS[self.status]
        if status not in allowed:
            raise ValueError(
                f"Invalid proposal transition: {self.status.value} -> {status.value}"
            )
        return replace(self, status=status, resolved_at=at, failure_reason=failure_reason)


_TRANSITIONS: Final[dict[ProposalStatus, frozenset[ProposalStatus]]] = {
    ProposalStatus.ACTIVE: frozenset(
        {
            ProposalStatus.APPROVED,
            ProposalStatus.REJECTED,
            ProposalStatus.EXPIRED,
            ProposalStatus.EXECUTION_FAILED,
        }
    ),
    ProposalStatus.EXECUTION_FAILED: frozenset(
        {
            ProposalStatus.APPROVED,
            ProposalStatus.REJECTED,
            ProposalStatus.EXECUTION_FAILED,
        }
    ),
    ProposalStatus.APPROVED: frozenset(),
    ProposalStatus.REJECTED: frozenset(),
    ProposalStatus.EXPIRED: frozenset(),
}
