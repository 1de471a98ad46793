"""Governance health and audit log routes."""

from fastapi import APIRouter, Depends, Query

from civic_consensus.api.dependencies.governance import get_caller_id, get_engine
from civic_consensus.api.errors import ERROR_RESPONSES, to_http_exception
from civic_consensus.api.models.governance import (
    AuditLogPageResponse,
    GovernanceHealthResponse,
)
from civic_consensus.application.services.governance_engine import GovernanceEngine
from civic_consensus.domain.exceptions import GovernanceEngineError
from civic_consensus.domain.models.audit_log import AuditLogFilter

router = APIRouter(
    prefix="/v1/groups/{group_id}",
    tags=["governance"],
    responses=ERROR_RESPONSES,
)


@router.get("/governance/health", response_model=GovernanceHealthResponse)
async def get_governance_health(
    group_id: str,
    caller_id: str = Depends(get_caller_id),
    engine: GovernanceEngine = Depends(get_engine),
) -> GovernanceHealthResponse:
    """Advisory health snapshot for the group's managers."""
    try:
        snapshot = await engine.get_governance_health(group_id)
    except GovernanceEngineError as e:
        raise to_http_exception(e) from None
    return GovernanceHealthResponse.from_domain(snapshot)


@router.get("/audit-log", response_model=AuditLogPageResponse)
async def get_audit_log(
    group_id: str,
    log_filter: AuditLogFilter = Query(default=AuditLogFilter.ALL, alias="filter"),
    limit: int | None = Query(default=None),
    cursor: str | None = Query(default=None),
    caller_id: str = Depends(get_caller_id),
    engine: GovernanceEngine = Depends(get_engine),
) -> AuditLogPageResponse:
    """Newest-first page of the group's audit log."""
    try:
        page = await engine.get_audit_log(group_id, log_filter, limit, cursor)
    except GovernanceEngineError as e:
        raise to_http_exception(e) from None
    return AuditLogPageResponse.from_domain(page)
