"""FastAPI application entry point for the governance engine."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from civic_consensus.api.middleware.logging_middleware import LoggingMiddleware
from civic_consensus.api.routes.governance import router as governance_router
from civic_consensus.api.routes.groups import router as groups_router
from civic_consensus.api.routes.health import router as health_router
from civic_consensus.api.routes.join_requests import router as join_requests_router
from civic_consensus.api.routes.proposals import router as proposals_router
from civic_consensus.bootstrap.database import close_database_engine
from civic_consensus.bootstrap.governance import (
    get_governance_config,
    get_governance_engine,
    init_governance_storage,
)
from civic_consensus.bootstrap.logging import configure_structlog
from civic_consensus.workers.proposal_expiry_worker import ProposalExpiryWorker


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_structlog()
    await init_governance_storage()
    worker = ProposalExpiryWorker(
        get_governance_engine().proposals,
        interval_seconds=get_governance_config().sweep_interval_seconds,
    )
    await worker.start()
    try:
        yield
    finally:
        await worker.stop()
        await close_database_engine()


app = FastAPI(
    title="Civic Consensus Governance API",
    description="Quorum-based governance for community groups",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(LoggingMiddleware)
app.include_router(health_router)
app.include_router(groups_router)
app.include_router(join_requests_router)
app.include_router(proposals_router)
app.include_router(governance_router)
