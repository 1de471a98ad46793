"""Correlation ID management for request tracing.

Correlation ids live in a ContextVar so every log line written while a
governance command is handled carries the id of the request that issued
it, across awaits.
"""

from contextvars import ContextVar
from typing import Any
from uuid import uuid4

# Empty string means "no request context"
_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    """Generate a new correlation ID (UUID4)."""
    return str(uuid4())


def get_correlation_id() -> str:
    """Get the current correlation ID, or an empty string if unset."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current context."""
    _correlation_id.set(correlation_id)


def correlation_id_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor adding ``correlation_id`` to every entry.

    Args:
        logger: Unused, required by structlog.
        method_name: Unused, required by structlog.
        event_dict: The event dictionary to modify.

    Returns:
        The event dictionary, with correlation_id when one is set.
    """
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict
