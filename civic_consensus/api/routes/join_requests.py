"""Join request routes.

In bootstrap mode a single manager resolves a request with ``handle``;
afterwards requests are decided by manager votes.
"""

from fastapi import APIRouter, Depends, Query

from civic_consensus.api.dependencies.governance import get_caller_id, get_engine
from civic_consensus.api.errors import ERROR_RESPONSES, to_http_exception
from civic_consensus.api.models.governance import (
    CreateJoinRequestRequest,
    DecisionRequest,
    JoinRequestResponse,
    VoteRequest,
)
from civic_consensus.application.services.governance_engine import GovernanceEngine
from civic_consensus.domain.exceptions import GovernanceEngineError

router = APIRouter(prefix="/v1", tags=["join-requests"], responses=ERROR_RESPONSES)


@router.post(
    "/groups/{group_id}/join-requests",
    response_model=JoinRequestResponse,
    status_code=201,
)
async def create_join_request(
    group_id: str,
    request_data: CreateJoinRequestRequest,
    caller_id: str = Depends(get_caller_id),
    engine: GovernanceEngine = Depends(get_engine),
) -> JoinRequestResponse:
    """Ask to join a group."""
    try:
        request = await engine.create_join_request(group_id, caller_id, request_data.message)
    except GovernanceEngineError as e:
        raise to_http_exception(e) from None
    return JoinRequestResponse.from_domain(request)


@router.get("/groups/{group_id}/join-requests", response_model=list[JoinRequestResponse])
async def list_join_requests(
    group_id: str,
    open_only: bool = Query(default=True, alias="open"),
    caller_id: str = Depends(get_caller_id),
    engine: GovernanceEngine = Depends(get_engine),
) -> list[JoinRequestResponse]:
    """List a group's join requests, oldest first."""
    try:
        requests = await engine.list_join_requests(group_id, open_only=open_only)
    except GovernanceEngineError as e:
        raise to_http_exception(e) from None
    return [JoinRequestResponse.from_domain(r) for r in requests]


@router.post("/join-requests/{request_id}/handle", response_model=JoinRequestResponse)
async def handle_join_request(
    request_id: str,
    request_data: DecisionRequest,
    caller_id: str = Depends(get_caller_id),
    engine: GovernanceEngine = Depends(get_engine),
) -> JoinRequestResponse:
    """Approve or decline a request (counts as a vote outside bootstrap)."""
    try:
        request = await engine.handle_join_request(
            request_id, caller_id, request_data.decision
        )
    except GovernanceEngineError as e:
        raise to_http_exception(e) from None
    return JoinRequestResponse.from_domain(request)


@router.post("/join-requests/{request_id}/votes", response_model=JoinRequestResponse)
async def cast_join_vote(
    request_id: str,
    request_data: VoteRequest,
    caller_id: str = Depends(get_caller_id),
    engine: GovernanceEngine = Depends(get_engine),
) -> JoinRequestResponse:
    try:
        request = await engine.cast_join_vote(request_id, caller_id, request_data.vote)
    except GovernanceEngineError as e:
        raise to_http_exception(e) from None
    return JoinRequestResponse.from_domain(request)
