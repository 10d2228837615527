"""
Slot Booking API - Main Application Entry Point

A booking backend for dated, capacity-limited inventory:
- Capacity-safe reservations (row lock + recount in one transaction)
- Live vacancy derived from booked units, never stored
- Problem-details (RFC 7807) error responses
- Structured logging with request correlation
"""

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.core.config import get_settings
from slotbook.core.errors import (
    STORE_ERRORS,
    ErrorCode,
    InvalidParam,
    InvalidRequestError,
    ServiceError,
)
from slotbook.core.logging import setup_logging, get_logger
from slotbook.core.metrics import metrics_endpoint
from slotbook.api.router import api_router
from slotbook.api.middleware import RequestLoggingMiddleware
from slotbook.db.session import engine, get_db, ping
from slotbook.schemas.common import InvalidParamResponse, ProblemResponse
from slotbook.services.cache_service import get_redis, close_redis, get_cache_stats
from slotbook.services.ticketing_factory import get_ticket_issuer

settings = get_settings()
logger = get_logger(__name__)

PROBLEM_CONTENT_TYPE = "application/problem+json"

_PROBLEMS = {
    ErrorCode.INVALID_REQUEST: (
        status.HTTP_400_BAD_REQUEST,
        "https://datatracker.ietf.org/doc/html/rfc7231#section-6.5.1",
        "Request parameters did not validate",
    ),
    ErrorCode.NOT_FOUND: (
        status.HTTP_404_NOT_FOUND,
        "https://datatracker.ietf.org/doc/html/rfc7231#section-6.5.4",
        "Resource not found",
    ),
    ErrorCode.UNAVAILABLE: (
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "https://datatracker.ietf.org/doc/html/rfc7231#section-6.6.4",
        "The server is unavailable",
    ),
    ErrorCode.INTERNAL: (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "https://datatracker.ietf.org/doc/html/rfc7231#section-6.6.1",
        "Internal Server Error",
    ),
}


def problem_response(error: ServiceError) -> JSONResponse:
    status_code, problem_type, title = _PROBLEMS[error.code]
    invalid_params = None
    if isinstance(error, InvalidRequestError):
        invalid_params = [InvalidParamResponse(**p.to_dict()) for p in error.invalid_params]
    elif error.code is ErrorCode.NOT_FOUND:
        title = error.message

    problem = ProblemResponse(
        status=status_code,
        type=problem_type,
        title=title,
        invalid_params=invalid_params,
    )
    return JSONResponse(
        status_code=status_code,
        content=problem.model_dump(by_alias=True, exclude_none=True),
        media_type=PROBLEM_CONTENT_TYPE,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(
        "slotbook_starting",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        database=engine.dialect.name,
        ticket_issuer=settings.TICKET_ISSUER,
    )

    # Fails startup on an unknown TICKET_ISSUER rather than at the first confirmation
    get_ticket_issuer()

    # The catalog cache is optional; bookings never depend on it
    if await get_redis() is None:
        logger.warning("product_cache_disabled", redis_enabled=settings.REDIS_ENABLED)

    try:
        yield
    finally:
        await close_redis()
        await engine.dispose()
        logger.info("slotbook_stopped")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Booking API for dated, capacity-limited inventory",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "X-Correlation-ID"],
    expose_headers=["X-Correlation-ID", "X-Response-Time"],
)
app.add_middleware(RequestLoggingMiddleware)
app.include_router(api_router)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.code is ErrorCode.INTERNAL:
        logger.error("request_internal_error", error=str(exc), exc_info=exc)
    elif exc.code is ErrorCode.UNAVAILABLE:
        logger.error("request_store_unavailable", error=str(exc))
    return problem_response(exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and path parameters are 400s, like business-rule violations."""
    invalid_params = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "path", "query")]
        invalid_params.append(
            InvalidParam(name=".".join(location) or "body", reason=error.get("msg", "invalid value"))
        )
    return problem_response(InvalidRequestError(*invalid_params))


@app.get("/health", tags=["Health"])
@app.get("/api/v1/health", tags=["Health"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """Liveness plus store reachability. 503 when the database cannot be reached."""
    try:
        await ping(db)
    except STORE_ERRORS as exc:
        logger.error("health_db_unreachable", error=str(exc))
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable", "database": "unreachable"},
        )

    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "database": "ok",
        "cache": await get_cache_stats(),
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
def metrics():
    return metrics_endpoint()
