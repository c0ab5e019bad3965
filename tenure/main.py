"""ASGI application: routers, middleware, lifespan and error rendering.

Middleware runs in reverse order of registration. A request passes through
SlowAPIMiddleware first, then LoggingMiddleware (request id and timing),
then CORSMiddleware, and finally reaches the router.

Every error leaves the service as::

    {"status_code": 422, "error_code": "RULE_VIOLATION", "message": "...", "details": [...]}

with ``details`` present only when there is something to add.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi_pagination import add_pagination
from pydantic import ValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from tenure.api.routes import router as api_router
from tenure.core.config import ConfigurationError, settings
from tenure.core.exceptions import TenureError
from tenure.core.logging import LoggingMiddleware, configure_logging
from tenure.core.metrics import metrics_app
from tenure.db.session import engine, is_sqlite_url

logger = logging.getLogger(__name__)

configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:  # noqa: ARG001
    """Refuse to start on bad configuration or an unreachable database."""
    try:
        for warning in settings.validate_config():
            logger.warning("Configuration warning: %s", warning)
    except ConfigurationError:
        logger.exception("Configuration validation failed")
        raise

    try:
        async with engine.begin() as connection:
            await connection.execute(text("SELECT 1"))
    except Exception as exc:
        msg = f"Failed to connect to database on startup: {exc}"
        raise RuntimeError(msg) from exc
    # Host and database name only; credentials precede the "@"
    logger.info("database_connected", extra={"database": str(settings.database_url).split("@")[-1]})

    yield

    # Disposing the in-memory SQLite pool would drop the database with it.
    if not is_sqlite_url(settings.database_url):
        await engine.dispose()
    logger.info("shutdown_complete")


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.include_router(api_router)
add_pagination(app)

if settings.enable_metrics:
    app.mount("/metrics", metrics_app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", settings.request_id_header],
)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[
        f"{settings.rate_limit_per_minute}/minute",
        f"{settings.rate_limit_per_hour}/hour",
    ],
    enabled=settings.rate_limit_enabled,
)
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(LoggingMiddleware)


def error_response(
    status_code: int, error_code: str, message: str, details: Any = None
) -> JSONResponse:
    content: dict[str, Any] = {
        "status_code": status_code,
        "error_code": error_code,
        "message": message,
    }
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def jsonable_errors(errors: list) -> list:
    """Drop ``ctx`` and ``input`` from pydantic errors; either may hold objects JSON cannot encode."""
    return [{key: value for key, value in error.items() if key not in {"ctx", "input"}} for error in errors]


async def tenure_exception_handler(request: Request, exc: TenureError) -> JSONResponse:  # noqa: ARG001
    status_code = int(exc.status_code)
    logger.info("domain_error", extra={"error_code": exc.error_code, "status_code": status_code})
    return error_response(status_code, exc.error_code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:  # noqa: ARG001
    """Router 404/400s and routing errors, in the same body as domain errors."""
    try:
        error_code = HTTPStatus(exc.status_code).name
    except ValueError:
        error_code = "HTTP_ERROR"
    response = error_response(exc.status_code, error_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    response = error_response(
        status.HTTP_429_TOO_MANY_REQUESTS,
        "RATE_LIMITED",
        f"Rate limit exceeded: {exc.detail}",
    )
    # Retry-After and X-RateLimit-* headers, as slowapi's own handler adds them
    return request.app.state.limiter._inject_headers(  # noqa: SLF001
        response, request.state.view_rate_limit
    )


async def validation_exception_handler(
    request: Request,  # noqa: ARG001
    exc: RequestValidationError,
) -> JSONResponse:
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        "Request validation failed",
        jsonable_errors(exc.errors()),
    )


async def pydantic_validation_exception_handler(
    request: Request,  # noqa: ARG001
    exc: ValidationError,
) -> JSONResponse:
    """Models built inside a service failed validation."""
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        "Data validation failed",
        jsonable_errors(exc.errors()),
    )


async def value_error_exception_handler(request: Request, exc: ValueError) -> JSONResponse:  # noqa: ARG001
    """Inputs that pass the schema but break the arithmetic, e.g. deductions above the payout."""
    message = str(exc) or "Invalid value provided"
    logger.warning("ValueError in request: %s", message, exc_info=exc)
    return error_response(status.HTTP_400_BAD_REQUEST, "INVALID_VALUE", message)


async def type_error_exception_handler(request: Request, exc: TypeError) -> JSONResponse:  # noqa: ARG001
    message = str(exc) or "Invalid type provided"
    logger.warning("TypeError in request: %s", message, exc_info=exc)
    return error_response(status.HTTP_400_BAD_REQUEST, "INVALID_TYPE", message)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # noqa: ARG001
    """Log the full error; the client only learns that something failed."""
    logger.exception("Unhandled exception in request", exc_info=exc)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "An internal server error occurred",
    )


app.add_exception_handler(TenureError, tenure_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(ValidationError, pydantic_validation_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(ValueError, value_error_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(TypeError, type_error_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(Exception, generic_exception_handler)
