"""Bootstrap wiring for logging configuration."""

from __future__ import annotations

import os

from civic_consensus.infrastructure.observability import (
    configure_structlog as _configure_structlog,
)


def get_environment() -> str:
    """Deployment environment from GOVERNANCE_ENV (default: development)."""
    return os.environ.get("GOVERNANCE_ENV", "development")


def configure_structlog(environment: str | None = None) -> None:
    """Configure structlog for the given environment."""
    _configure_structlog(environment=environment or get_environment())


__all__ = ["configure_structlog", "get_environment"]
