"""Mapping of governance errors onto HTTP responses.

The error body keeps the domain's ``code`` and ``reason`` (and the
remediation hint for violations) under ``detail``.
"""

from typing import Any, Final

from fastapi import HTTPException

from civic_consensus.api.models.governance import ErrorResponse
from civic_consensus.domain.exceptions import GovernanceEngineError

STATUS_BY_CODE: Final[dict[str, int]] = {
    "NOT_FOUND": 404,
    "NOT_AUTHORIZED": 403,
    "ALREADY_VOTED": 409,
    "INVALID_OPERATION": 409,
    "GOVERNANCE_VIOLATION": 409,
    "INVALID_TARGET": 422,
    "EXECUTION_FAILED": 502,
}

ERROR_RESPONSES: Final[dict[int | str, dict[str, Any]]] = {
    401: {"model": ErrorResponse, "description": "Missing caller identity"},
    403: {"model": ErrorResponse, "description": "Caller lacks the required role"},
    404: {"model": ErrorResponse, "description": "Group, member or record not found"},
    409: {
        "model": ErrorResponse,
        "description": "Already voted, invalid operation or governance violation",
    },
    422: {"model": ErrorResponse, "description": "Invalid target or malformed body"},
}


def to_http_exception(error: GovernanceEngineError) -> HTTPException:
    """Build the HTTPException for a rejected governance operation."""
    return HTTPException(
        status_code=STATUS_BY_CODE.get(error.code, 400),
        detail=error.to_dict(),
    )
