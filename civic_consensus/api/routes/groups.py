"""Group membership routes.

Direct member management by managers and the founder. Role changes,
removals and founder transfers decided by vote go through proposals.
"""

from uuid import uuid4

from fastapi import APIRouter, Depends

from civic_consensus.api.dependencies.governance import get_caller_id, get_engine
from civic_consensus.api.errors import ERROR_RESPONSES, to_http_exception
from civic_consensus.api.models.governance import (
    CreateGroupRequest,
    FounderTransferResponse,
    MemberResponse,
    TransferFounderRequest,
    UpdateRoleRequest,
)
from civic_consensus.application.services.governance_engine import GovernanceEngine
from civic_consensus.domain.exceptions import GovernanceEngineError

router = APIRouter(prefix="/v1/groups", tags=["groups"], responses=ERROR_RESPONSES)


@router.post("", response_model=MemberResponse, status_code=201, summary="Create a group")
async def create_group(
    request_data: CreateGroupRequest,
    caller_id: str = Depends(get_caller_id),
    engine: GovernanceEngine = Depends(get_engine),
) -> MemberResponse:
    """Create a group with the caller as founder."""
    group_id = request_data.group_id or str(uuid4())
    try:
        founder = await engine.create_group(group_id, caller_id)
    except GovernanceEngineError as e:
        raise to_http_exception(e) from None
    return MemberResponse.from_domain(founder)


@router.get("/{group_id}/members", response_model=list[MemberResponse])
async def list_members(
    group_id: str,
    caller_id: str = Depends(get_caller_id),
    engine: GovernanceEngine = Depends(get_engine),
) -> list[MemberResponse]:
    try:
        members = await engine.list_members(group_id)
    except GovernanceEngineError as e:
        raise to_http_exception(e) from None
    return [MemberResponse.from_domain(m) for m in members]


@router.post("/{group_id}/leave", response_model=MemberResponse, summary="Leave a group")
async def leave_group(
    group_id: str,
    caller_id: str = Depends(get_caller_id),
    engine: GovernanceEngine = Depends(get_engine),
) -> MemberResponse:
    """Leave the group. The founder must transfer the role first."""
    try:
        member = await engine.leave_group(group_id, caller_id)
    except GovernanceEngineError as e:
        raise to_http_exception(e) from None
    return MemberResponse.from_domain(member)


@router.put("/{group_id}/members/{user_id}/role", response_model=MemberResponse)
async def update_member_role(
    group_id: str,
    user_id: str,
    request_data: UpdateRoleRequest,
    caller_id: str = Depends(get_caller_id),
    engine: GovernanceEngine = Depends(get_engine),
) -> MemberResponse:
    """Promote or demote a member directly (managers only)."""
    try:
        member = await engine.update_member_role(
            group_id, caller_id, user_id, request_data.role
        )
    except GovernanceEngineError as e:
        raise to_http_exception(e) from None
    return MemberResponse.from_domain(member)


@router.delete("/{group_id}/members/{user_id}", response_model=MemberResponse)
async def remove_member(
    group_id: str,
    user_id: str,
    caller_id: str = Depends(get_caller_id),
    engine: GovernanceEngine = Depends(get_engine),
) -> MemberResponse:
    """Remove a plain member directly (managers only)."""
    try:
        member = await engine.remove_member(group_id, caller_id, user_id)
    except GovernanceEngineError as e:
        raise to_http_exception(e) from None
    return MemberResponse.from_domain(member)


@router.post("/{group_id}/founder/transfer", response_model=FounderTransferResponse)
async def transfer_founder(
    group_id: str,
    request_data: TransferFounderRequest,
    caller_id: str = Depends(get_caller_id),
    engine: GovernanceEngine = Depends(get_engine),
) -> FounderTransferResponse:
    """Hand the founder role to a manager (founder only)."""
    try:
        previous, new = await engine.transfer_founder(
            group_id, caller_id, request_data.new_founder_id
        )
    except GovernanceEngineError as e:
        raise to_http_exception(e) from None
    return FounderTransferResponse(
        previous_founder=MemberResponse.from_domain(previous),
        new_founder=MemberResponse.from_domain(new),
    )
