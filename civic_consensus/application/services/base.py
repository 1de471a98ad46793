"""Structured logging shared by the governance services.

Log lines from a service carry ``service`` (the class name) and
``component``; per-operation loggers add the operation name, the
request's correlation id and whatever group/proposal context the
caller binds.
"""

import structlog

from civic_consensus.domain.exceptions import GovernanceEngineError
from civic_consensus.infrastructure.observability.correlation import get_correlation_id


class LoggingMixin:
    """Mixin giving a service a bound structlog logger.

    Call ``_init_logger()`` at the end of ``__init__``.
    """

    _log: structlog.BoundLogger

    def _init_logger(self, component: str = "governance") -> None:
        self._log = structlog.get_logger().bind(
            service=type(self).__name__,
            component=component,
        )

    def _log_operation(self, operation: str, **context: object) -> structlog.BoundLogger:
        """Logger for one operation, e.g. ``self._log_operation("vote", group_id=g)``."""
        return self._log.bind(
            operation=operation,
            correlation_id=get_correlation_id(),
            **context,
        )

    def _log_rejection(
        self, operation: str, error: GovernanceEngineError, **context: object
    ) -> None:
        """Record a refused command at warning level with its error code."""
        self._log_operation(operation, **context).warning(
            "operation_rejected",
            code=error.code,
            reason=error.reason,
        )
