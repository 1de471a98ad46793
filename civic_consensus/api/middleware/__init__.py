"""API middleware."""

from civic_consensus.api.middleware.logging_middleware import (
    CORRELATION_HEADER,
    LoggingMiddleware,
)

__all__ = ["CORRELATION_HEADER", "LoggingMiddleware"]
