"""Application services for the governance engine."""

from civic_consensus.application.services.audit_log_service import AuditLogService
from civic_consensus.application.services.governance_engine import GovernanceEngine
from civic_consensus.application.services.group_locks import GroupLockRegistry
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
from civic_consensus.application.services.resolution_executor_service import (
    ResolutionExecutorService,
)

__all__ = [
    "AuditLogService",
    "GovernanceEngine",
    "GroupLockRegistry",
    "HealthEvaluatorService",
    "JoinRequestService",
    "MemberManagementService",
    "MembershipRegistryService",
    "ProposalService",
    "ResolutionExecutorService",
]
