"""Liveness endpoint."""

from fastapi import APIRouter

from civic_consensus.api.models.governance import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return 200 while the process is serving."""
    return HealthResponse(status="healthy")
