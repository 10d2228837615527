"""
Request middleware: correlation IDs, request context for logs, timing.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from slotbook.core.logging import get_logger

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
RESPONSE_TIME_HEADER = "X-Response-Time"


def _correlation_id(request: Request) -> str:
    """Reuse the caller's correlation ID when it is a valid UUID."""
    header = request.headers.get(CORRELATION_HEADER, "")
    try:
        return str(uuid.UUID(header))
    except ValueError:
        return str(uuid.uuid4())


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Binds correlation_id, method and path into structlog's contextvars so
    every log line written while serving the request carries them, then
    logs one `request_completed` (or `request_failed`) entry with the
    status and duration. The correlation ID is echoed back to the caller.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = _correlation_id(request)
        start_time = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            correlation_id=correlation_id,
            method=request.method,
            path=request.url.path,
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "request_failed",
                error=str(exc),
                duration_ms=_elapsed_ms(start_time),
                user_agent=request.headers.get("user-agent"),
            )
            raise

        duration_ms = _elapsed_ms(start_time)
        log = logger.warning if response.status_code >= 500 else logger.info
        log("request_completed", status_code=response.status_code, duration_ms=duration_ms)

        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers[RESPONSE_TIME_HEADER] = f"{duration_ms}ms"
        return response
