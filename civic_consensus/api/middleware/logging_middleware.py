"""Per-request log context for the governance API.

The correlation id comes from ``X-Correlation-ID`` (one is generated
when absent) and is echoed on the response. The id, the caller from
``X-User-Id`` and the route are bound as structlog context variables,
so service log lines written while the request runs carry them too.
"""

import time
from typing import Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from civic_consensus.api.dependencies.governance import USER_ID_HEADER
from civic_consensus.infrastructure.observability.correlation import (
    generate_correlation_id,
    set_correlation_id,
)

CORRELATION_HEADER = "X-Correlation-ID"

logger = structlog.get_logger()


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Binds request context and logs each governance call once it ends."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or generate_correlation_id()
        set_correlation_id(correlation_id)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            caller_id=request.headers.get(USER_ID_HEADER),
            route=f"{request.method} {request.url.path}",
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request_failed", duration_ms=_elapsed_ms(started))
            raise
        finally:
            structlog.contextvars.clear_contextvars()

        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "request_completed",
            caller_id=request.headers.get(USER_ID_HEADER),
            route=f"{request.method} {request.url.path}",
            status_code=response.status_code,
            duration_ms=_elapsed_ms(started),
        )
        response.headers[CORRELATION_HEADER] = correlation_id
        return response
