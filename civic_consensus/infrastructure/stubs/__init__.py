"""In-memory stub implementations of the ports.

Used by the default wiring and by the test suite. Each stub exposes a
few control methods (``clear``, failure injection) for tests.
"""

from civic_consensus.infrastructure.stubs.audit_log_repository_stub import (
    AuditLogRepositoryStub,
)
from civic_consensus.infrastructure.stubs.audit_subscriber_stub import (
    AuditSubscriberStub,
)
from civic_consensus.infrastructure.stubs.join_request_repository_stub import (
    JoinRequestRepositoryStub,
)
from civic_consensus.infrastructure.stubs.membership_repository_stub import (
    MembershipRepositoryStub,
)
from civic_consensus.infrastructure.stubs.policy_collaborator_stubs import (
    FundCreatorStub,
    GroupSettingsStub,
)
from civic_consensus.infrastructure.stubs.profile_directory_stub import (
    ProfileDirectoryStub,
)
from civic_consensus.infrastructure.stubs.proposal_repository_stub import (
    ProposalRepositoryStub,
)

__all__: list[str] = [
    "AuditLogRepositoryStub",
    "AuditSubscriberStub",
    "FundCreatorStub",
    "GroupSettingsStub",
    "JoinRequestRepositoryStub",
    "MembershipRepositoryStub",
    "ProfileDirectoryStub",
    "ProposalRepositoryStub",
]
