"""Bootstrap wiring for the governance engine.

Builds the component services over their ports. In-memory stubs back
every port by default; when DATABASE_URL is set the audit log is
persisted through SqlAuditLogRepository.
"""

from __future__ import annotations

from collections.abc import Iterable

from dotenv import load_dotenv

from civic_consensus.application.ports.audit_log_repository import (
    AuditLogRepositoryProtocol,
)
from civic_consensus.application.ports.audit_subscriber import (
    AuditLogSubscriberProtocol,
)
from civic_consensus.application.ports.join_request_repository import (
    JoinRequestRepositoryProtocol,
)
from civic_consensus.application.ports.membership_repository import (
    MembershipRepositoryProtocol,
)
from civic_consensus.application.ports.policy_collaborators import (
    FundCreatorProtocol,
    GroupSettingsProtocol,
)
from civic_consensus.application.ports.profile_directory import (
    ProfileDirectoryProtocol,
)
from civic_consensus.application.ports.proposal_repository import (
    ProposalRepositoryProtocol,
)
from civic_consensus.application.ports.time_authority import TimeAuthorityProtocol
from civic_consensus.application.services import (
    AuditLogService,
    GovernanceEngine,
    GroupLockRegistry,
    HealthEvaluatorService,
    JoinRequestService,
    MemberManagementService,
    MembershipRegistryService,
    ProposalService,
    ResolutionExecutorService,
)
from civic_consensus.bootstrap.database import get_database_url, get_engine
from civic_consensus.config.governance_config import GovernanceConfig
from civic_consensus.infrastructure.adapters.persistence import SqlAuditLogRepository
from civic_consensus.infrastructure.adapters.system_time_authority import (
    SystemTimeAuthority,
)
from civic_consensus.infrastructure.stubs import (
    AuditLogRepositoryStub,
    FundCreatorStub,
    GroupSettingsStub,
    JoinRequestRepositoryStub,
    MembershipRepositoryStub,
    ProfileDirectoryStub,
    ProposalRepositoryStub,
)

_engine: GovernanceEngine | None = None
_config: GovernanceConfig | None = None
_audit_repository: AuditLogRepositoryProtocol | None = None


def build_governance_engine(
    *,
    config: GovernanceConfig,
    time_authority: TimeAuthorityProtocol,
    membership_repository: MembershipRepositoryProtocol,
    join_request_repository: JoinRequestRepositoryProtocol,
    proposal_repository: ProposalRepositoryProtocol,
    audit_log_repository: AuditLogRepositoryProtocol,
    profile_directory: ProfileDirectoryProtocol,
    fund_creator: FundCreatorProtocol,
    group_settings: GroupSettingsProtocol,
    subscribers: Iterable[AuditLogSubscriberProtocol] = (),
) -> GovernanceEngine:
    """Wire the component services into a GovernanceEngine."""
    locks = GroupLockRegistry()
    audit_log = AuditLogService(
        audit_log_repository,
        time_authority,
        profile_directory=profile_directory,
        subscribers=subscribers,
        default_limit=config.audit_log_default_limit,
    )
    registry = MembershipRegistryService(membership_repository, audit_log, time_authority)
    health = HealthEvaluatorService(
        registry,
        proposal_repository,
        join_request_repository,
        time_authority,
        config,
    )
    members = MemberManagementService(registry, health, locks, config.min_managers)
    join_requests = JoinRequestService(
        join_request_repository,
        registry,
        health,
        audit_log,
        locks,
        time_authority,
        config,
    )
    executor = ResolutionExecutorService(registry, audit_log, fund_creator, group_settings)
    proposals = ProposalService(
        proposal_repository,
        registry,
        executor,
        audit_log,
        locks,
        time_authority,
        config,
    )
    return GovernanceEngine(
        registry=registry,
        members=members,
        health=health,
        join_requests=join_requests,
        proposals=proposals,
        audit_log=audit_log,
    )


def get_governance_config() -> GovernanceConfig:
    """Get the configuration (loaded from the environment and .env once)."""
    global _config
    if _config is None:
        load_dotenv()
        _config = GovernanceConfig.from_environment()
    return _config


def get_audit_log_repository() -> AuditLogRepositoryProtocol:
    """SQL-backed ledger when DATABASE_URL is set, in-memory otherwise."""
    global _audit_repository
    if _audit_repository is None:
        get_governance_config()
        if get_database_url():
            _audit_repository = SqlAuditLogRepository(get_engine())
        else:
            _audit_repository = AuditLogRepositoryStub()
    return _audit_repository


async def init_governance_storage() -> None:
    """Create persistent storage schemas (call once at startup)."""
    repository = get_audit_log_repository()
    if isinstance(repository, SqlAuditLogRepository):
        await repository.ensure_schema()


def get_governance_engine() -> GovernanceEngine:
    """Get the governance engine singleton."""
    global _engine
    if _engine is None:
        _engine = build_governance_engine(
            config=get_governance_config(),
            time_authority=SystemTimeAuthority(),
            membership_repository=MembershipRepositoryStub(),
            join_request_repository=JoinRequestRepositoryStub(),
            proposal_repository=ProposalRepositoryStub(),
            audit_log_repository=get_audit_log_repository(),
            profile_directory=ProfileDirectoryStub(),
            fund_creator=FundCreatorStub(),
            group_settings=GroupSettingsStub(),
        )
    return _engine


def set_governance_engine(engine: GovernanceEngine) -> None:
    """Set a custom engine for testing."""
    global _engine
    _engine = engine


def reset_governance_dependencies() -> None:
    """Reset all singleton instances for testing."""
    global _engine, _config, _audit_repository
    _engine = None
    _config = None
    _audit_repository = None
