"""Audit log domain models.

The audit log is an append-only ledger: entries are never mutated or
deleted. Display names are resolved at query time; stored entries carry
ids only.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Final

SYSTEM_ACTOR_ID: Final[str] = "system"
SYSTEM_ACTOR_NAME: Final[str] = "System"
UNKNOWN_USER_NAME: Final[str] = "Unknown"


class AuditActionType(str, Enum):
    """Kinds of ledger entries."""

    # Membership mutations
    GROUP_CREATED = "group_created"
    JOIN = "join"
    LEAVE = "leave"
    PROMOTION = "promotion"
    DEMOTION = "demotion"
    REMOVAL = "removal"
    REVERT_REMOVAL = "revert_removal"
    TRANSFER_FOUNDER = "transfer_founder"

    # Join request lifecycle
    JOIN_REQUEST_CREATED = "join_request_created"
    JOIN_REQUEST_ESCALATED = "join_request_escalated"
    VOTE_RESOLUTION_APPROVED = "vote_resolution_approved"
    VOTE_RESOLUTION_REJECTED = "vote_resolution_rejected"

    # Proposal lifecycle
    PROPOSAL_CREATED = "proposal_created"
    PROPOSAL_APPROVED = "proposal_approved"
    PROPOSAL_REJECTED = "proposal_rejected"
    PROPOSAL_EXPIRED = "proposal_expired"
    PROPOSAL_EXECUTION_FAILED = "proposal_execution_failed"

    # Policy effects
    FUND_APPROVED = "fund_approved"
    VISIBILITY_CHANGED = "visibility_changed"
    DESCRIPTION_AMENDED = "description_amended"
    CUSTOM_POLICY_PENDING = "custom_policy_pending"

    # Written by the AutoMod peer
    AUTOMOD_BLOCK = "automod_block"
    TIMEOUT_LIFTED = "timeout_lifted"
    MODERATION_WARNING = "moderation_warning"


MODERATION_ACTIONS: Final[frozenset[AuditActionType]] = frozenset(
    {
        AuditActionType.AUTOMOD_BLOCK,
        AuditActionType.TIMEOUT_LIFTED,
        AuditActionType.MODERATION_WARNING,
    }
)


class AuditLogFilter(str, Enum):
    """Query filters offered to the UI."""

    ALL = "all"
    ROLES = "roles"
    MEMBERS = "members"
    PROPOSALS = "proposals"
    MODERATION = "moderation"

    @property
    def action_types(self) -> frozenset[AuditActionType] | None:
        """Action types matched by this filter (None means every type)."""
        return FILTER_ACTIONS.get(self)


FILTER_ACTIONS: Final[dict[AuditLogFilter, frozenset[AuditActionType]]] = {
    AuditLogFilter.ROLES: frozenset(
        {
            AuditActionType.PROMOTION,
            AuditActionType.DEMOTION,
            AuditActionType.TRANSFER_FOUNDER,
        }
    ),
    AuditLogFilter.MEMBERS: frozenset(
        {
            AuditActionType.GROUP_CREATED,
            AuditActionType.JOIN,
            AuditActionType.LEAVE,
            AuditActionType.REMOVAL,
            AuditActionType.REVERT_REMOVAL,
            AuditActionType.JOIN_REQUEST_CREATED,
            AuditActionType.JOIN_REQUEST_ESCALATED,
            AuditActionType.VOTE_RESOLUTION_APPROVED,
            AuditActionType.VOTE_RESOLUTION_REJECTED,
        }
    ),
    AuditLogFilter.PROPOSALS: frozenset(
        {
            AuditActionType.PROPOSAL_CREATED,
            AuditActionType.PROPOSAL_APPROVED,
            AuditActionType.PROPOSAL_REJECTED,
            AuditActionType.PROPOSAL_EXPIRED,
            AuditActionType.PROPOSAL_EXECUTION_FAILED,
            AuditActionType.FUND_APPROVED,
            AuditActionType.VISIBILITY_CHANGED,
            AuditActionType.DESCRIPTION_AMENDED,
            AuditActionType.CUSTOM_POLICY_PENDING,
        }
    ),
    AuditLogFilter.MODERATION: MODERATION_ACTIONS,
}


@dataclass(frozen=True)
class AuditLogEntry:
    """One immutable ledger entry.

    Attributes:
        id: Entry identifier.
        group_id: Group the entry belongs to.
        action_type: What happened.
        actor_id: Who did it (``system`` for sweeps).
        created_at: When it was written.
        target_id: User affected, if any.
        details: Human-readable summary.
        subject_id: Proposal or join request the entry belongs to.
        sequence: Position in the ledger, assigned on append.
        actor_name: Display name, resolved at query time only.
        target_name: Display name, resolved at query time only.
    """

    id: str
    group_id: str
    action_type: AuditActionType
    actor_id: str
    created_at: datetime
    target_id: str | None = None
    details: str | None = None
    subject_id: str | None = None
    sequence: int | None = None
    actor_name: str | None = field(default=None, compare=False)
    target_name: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("id is required")
        if not self.group_id:
            raise ValueError("group_id is required")
        if not self.actor_id:
            raise ValueError("actor_id is required")

    def with_sequence(self, sequence: int) -> AuditLogEntry:
        return replace(self, sequence=sequence)

    def with_names(self, actor_name: str, target_name: str | None) -> AuditLogEntry:
        """Return a display copy carrying resolved names."""
        return replace(self, actor_name=actor_name, target_name=target_name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "group_id": self.group_id,
            "action_type": self.action_type.value,
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "target_id": self.target_id,
            "target_name": self.target_name,
            "details": self.details,
            "subject_id": self.subject_id,
            "sequence": self.sequence,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class AuditLogPage:
    """A newest-first page of entries.

    Attributes:
        entries: Entries on this page.
        next_cursor: Cursor for the following page, None at the end.
    """

    entries: tuple[AuditLogEntry, ...]
    next_cursor: str | None = None
