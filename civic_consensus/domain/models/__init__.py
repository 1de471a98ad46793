"""Domain models for the governance engine.

Immutable value objects and entities with no infrastructure
dependencies. State changes return new instances.
"""

from civic_consensus.domain.models.audit_log import (
    AuditActionType,
    AuditLogEntry,
    AuditLogFilter,
    AuditLogPage,
)
from civic_consensus.domain.models.governance_health import (
    ComplianceStatus,
    GovernanceHealthSnapshot,
    GovernanceHealthStatus,
)
from civic_consensus.domain.models.join_request import JoinRequest, JoinRequestStatus
from civic_consensus.domain.models.membership import Member, Role, RoleCounts
from civic_consensus.domain.models.proposal import (
    Proposal,
    ProposalActionType,
    ProposalCategory,
    ProposalStatus,
)
from civic_consensus.domain.models.quorum import Ballot, VoteChoice

__all__: list[str] = [
    "AuditActionType",
    "AuditLogEntry",
    "AuditLogFilter",
    "AuditLogPage",
    "Ballot",
    "ComplianceStatus",
    "GovernanceHealthSnapshot",
    "GovernanceHealthStatus",
    "JoinRequest",
    "JoinRequestStatus",
    "Member",
    "Proposal",
    "ProposalActionType",
    "ProposalCategory",
    "ProposalStatus",
    "Role",
    "RoleCounts",
    "VoteChoice",
]
