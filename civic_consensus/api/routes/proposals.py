"""Proposal routes.

Votes that complete a quorum apply the proposal's effect in the same
request. A failed effect answers 502 and leaves the proposal in
``execution_failed`` for ``retry-execution``.
"""

from fastapi import APIRouter, Depends, Query

from civic_consensus.api.dependencies.governance import get_caller_id, get_engine
from civic_consensus.api.errors import ERROR_RESPONSES, to_http_exception
from civic_consensus.api.models.governance import (
    CreateProposalRequest,
    CreateRevertProposalRequest,
    ErrorResponse,
    ProposalResponse,
    ProposalViewResponse,
    VoteRequest,
)
from civic_consensus.application.services.governance_engine import GovernanceEngine
from civic_consensus.domain.exceptions import GovernanceEngineError

router = APIRouter(
    prefix="/v1",
    tags=["proposals"],
    responses={
        **ERROR_RESPONSES,
        502: {"model": ErrorResponse, "description": "Approved but the effect failed"},
    },
)


@router.post(
    "/groups/{group_id}/proposals",
    response_model=ProposalResponse,
    status_code=201,
)
async def create_proposal(
    group_id: str,
    request_data: CreateProposalRequest,
    caller_id: str = Depends(get_caller_id),
    engine: GovernanceEngine = Depends(get_engine),
) -> ProposalResponse:
    """Open a proposal; the caller's approve vote is recorded with it."""
    try:
        proposal = await engine.create_proposal(
            group_id=group_id,
            proposer_id=caller_id,
            action_type=request_data.action_type,
            target_user_id=request_data.target_user_id,
            title=request_data.title,
            description=request_data.description,
            payload=request_data.payload,
        )
    except GovernanceEngineError as e:
        raise to_http_exception(e) from None
    return ProposalResponse.from_domain(proposal)


@router.post(
    "/groups/{group_id}/proposals/revert",
    response_model=ProposalResponse,
    status_code=201,
)
async def create_revert_proposal(
    group_id: str,
    request_data: CreateRevertProposalRequest,
    caller_id: str = Depends(get_caller_id),
    engine: GovernanceEngine = Depends(get_engine),
) -> ProposalResponse:
    """Propose undoing a promotion, demotion or removal from the audit log."""
    try:
        proposal = await engine.create_revert_proposal(
            group_id=group_id,
            proposer_id=caller_id,
            source_log_entry_id=request_data.source_log_entry_id,
            reason=request_data.reason,
        )
    except GovernanceEngineError as e:
        raise to_http_exception(e) from None
    return ProposalResponse.from_domain(proposal)


@router.get(
    "/groups/{group_id}/proposals/active",
    response_model=list[ProposalViewResponse],
)
async def get_active_proposals(
    group_id: str,
    caller_id: str = Depends(get_caller_id),
    engine: GovernanceEngine = Depends(get_engine),
) -> list[ProposalViewResponse]:
    try:
        views = await engine.get_active_proposals(group_id, caller_id)
    except GovernanceEngineError as e:
        raise to_http_exception(e) from None
    return [ProposalViewResponse.from_view(v) for v in views]


@router.get(
    "/groups/{group_id}/proposals/resolved",
    response_model=list[ProposalViewResponse],
)
async def get_resolved_proposals(
    group_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    caller_id: str = Depends(get_caller_id),
    engine: GovernanceEngine = Depends(get_engine),
) -> list[ProposalViewResponse]:
    try:
        views = await engine.get_resolved_proposals(group_id, caller_id, limit)
    except GovernanceEngineError as e:
        raise to_http_exception(e) from None
    return [ProposalViewResponse.from_view(v) for v in views]


@router.post("/proposals/{proposal_id}/votes", response_model=ProposalResponse)
async def vote_on_proposal(
    proposal_id: str,
    request_data: VoteRequest,
    caller_id: str = Depends(get_caller_id),
    engine: GovernanceEngine = Depends(get_engine),
) -> ProposalResponse:
    try:
        proposal = await engine.vote_on_proposal(proposal_id, caller_id, request_data.vote)
    except GovernanceEngineError as e:
        raise to_http_exception(e) from None
    return ProposalResponse.from_domain(proposal)


@router.post("/proposals/{proposal_id}/retry-execution", response_model=ProposalResponse)
async def retry_execution(
    proposal_id: str,
    caller_id: str = Depends(get_caller_id),
    engine: GovernanceEngine = Depends(get_engine),
) -> ProposalResponse:
    """Re-apply the effect of a proposal left in execution_failed."""
    try:
        proposal = await engine.retry_execution(proposal_id, caller_id)
    except GovernanceEngineError as e:
        raise to_http_exception(e) from None
    return ProposalResponse.from_domain(proposal)
