"""Governance API dependencies.

Caller identity is issued upstream and arrives in ``X-User-Id``; the
engine trusts it as-is.
"""

from fastapi import Header, HTTPException

from civic_consensus.application.services.governance_engine import GovernanceEngine
from civic_consensus.bootstrap.governance import get_governance_engine

USER_ID_HEADER = "X-User-Id"


def get_engine() -> GovernanceEngine:
    """Get the governance engine (override via set_governance_engine in tests)."""
    return get_governance_engine()


def get_caller_id(
    x_user_id: str | None = Header(default=None, alias=USER_ID_HEADER),
) -> str:
    """Identify the caller.

    Raises:
        HTTPException 401: If no caller identity was supplied.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=401,
            detail={
                "code": "UNAUTHENTICATED",
                "reason": f"Missing {USER_ID_HEADER} header",
            },
        )
    return x_user_id.strip()
