"""ECS-formatted logging and the request correlation id.

Services log snake_case event names and put their data in ``extra``:

    logger.info(
        "payment_recorded",
        extra={**get_logging_context(), "member_id": str(payment.member_id)},
    )

``get_logging_context`` carries the id of the request being served, so every
line written while handling one request can be joined up afterwards.
"""

from __future__ import annotations

import logging
import logging.config
import time
import uuid
from collections.abc import Awaitable, Callable
from contextvars import ContextVar
from typing import Any

from ecs_logging import StdlibFormatter
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from tenure.core.config import settings

LOGGER = logging.getLogger(__name__)

_request_id: ContextVar[str | None] = ContextVar("tenure_request_id", default=None)

# uvicorn installs its own handlers; route them through ours instead.
_SERVER_LOGGERS = ("uvicorn", "uvicorn.access")


def configure_logging(level: str) -> None:
    level = level.upper()
    loggers: dict[str, dict[str, Any]] = {
        name: {"handlers": ["stdout"], "level": level, "propagate": False}
        for name in _SERVER_LOGGERS
    }
    loggers["uvicorn.error"] = {"level": level}
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"ecs": {"()": StdlibFormatter}},
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "formatter": "ecs",
                    "stream": "ext://sys.stdout",
                }
            },
            "root": {"handlers": ["stdout"], "level": level},
            "loggers": loggers,
        }
    )


def get_request_id() -> str | None:
    return _request_id.get()


def get_logging_context() -> dict[str, str | None]:
    return {"request_id": _request_id.get()}


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    extra: dict[str, Any] | None = None,
) -> None:
    """Log ``message`` with the request id added to ``extra``."""
    logger.log(level, message, extra={**get_logging_context(), **(extra or {})})


class LoggingMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id, time it, and echo the id back.

    A caller-supplied id in the configured header is reused so a client can
    trace a payout approval across its own logs and ours.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        header = settings.request_id_header
        request_id = request.headers.get(header) or str(uuid.uuid4())
        token = _request_id.set(request_id)
        started = time.perf_counter()
        verbose = settings.include_request_context_in_logs
        try:
            if verbose:
                LOGGER.info(
                    "request_started",
                    extra={
                        "request_id": request_id,
                        "method": request.method,
                        "path": request.url.path,
                        "client_host": request.client.host if request.client else None,
                    },
                )
            response = await call_next(request)
            if verbose:
                LOGGER.info(
                    "request_completed",
                    extra={
                        "request_id": request_id,
                        "method": request.method,
                        "path": request.url.path,
                        "status_code": response.status_code,
                        "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    },
                )
        finally:
            _request_id.reset(token)

        response.headers[header] = request_id
        return response
