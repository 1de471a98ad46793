"""Structured logging configuration with structlog.

Production renders one JSON object per line; development renders
colored console output. Both carry an ISO timestamp, the level and the
correlation id of the governance command being handled.

Log Entry Format (production):
    {
        "timestamp": "2026-01-01T00:00:00.000000Z",
        "level": "info",
        "event": "proposal_created",
        "correlation_id": "uuid",
        "service": "ProposalService",
        "group_id": "...",
        ...
    }
"""

import logging
import os
from typing import cast

import structlog
from structlog.typing import Processor

from civic_consensus.infrastructure.observability.correlation import (
    correlation_id_processor,
)

LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"
PRODUCTION = "production"


def _get_log_level() -> int:
    """Resolve the LOG_LEVEL environment variable to a logging level."""
    level_name = os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).upper()
    return getattr(logging, level_name, logging.INFO)


def build_processors(environment: str) -> list[Processor]:
    """Build the processor chain for an environment.

    Args:
        environment: ``production`` for JSON, anything else for console.

    Returns:
        Ordered structlog processors, renderer last.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        cast(Processor, correlation_id_processor),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if environment == PRODUCTION:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    return processors


def configure_structlog(environment: str = PRODUCTION) -> None:
    """Configure structlog once at startup.

    Args:
        environment: ``production`` (JSON) or ``development`` (console).
    """
    structlog.configure(
        processors=build_processors(environment),
        wrapper_class=structlog.make_filtering_bound_logger(_get_log_level()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger_for_service(
    service_name: str, component: str = "governance"
) -> structlog.BoundLogger:
    """Get a logger pre-bound with service and component names."""
    return structlog.get_logger().bind(service=service_name, component=component)
