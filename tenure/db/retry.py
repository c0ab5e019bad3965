"""Retry transient database failures with tenacity.

``db_retry`` wraps the read-only queue snapshot load behind the queue and
business-rule reads. Only reads and idempotent work belong under it: a
retried call runs again on the same session.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import ParamSpec, TypeVar

from sqlalchemy.exc import OperationalError
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from tenure.core.logging import get_logging_context

LOGGER = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

RetryDecorator = Callable[[Callable[P, T]], Callable[P, T]]


def _before_sleep(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    next_action = retry_state.next_action
    LOGGER.warning(
        "db_operation_retry",
        extra={
            **get_logging_context(),
            "function": getattr(retry_state.fn, "__qualname__", None),
            "attempt": retry_state.attempt_number,
            "wait_seconds": next_action.sleep if next_action else 0,
            "exception_type": type(error).__name__ if error else None,
        },
    )


def create_db_retry(
    *,
    max_attempts: int = 3,
    wait_multiplier: float = 1,
    min_wait: float = 1,
    max_wait: float = 10,
) -> RetryDecorator:
    """Retry on ``OperationalError`` with exponential backoff, then re-raise it."""
    return retry(
        retry=retry_if_exception_type(OperationalError),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=wait_multiplier, min=min_wait, max=max_wait),
        before_sleep=_before_sleep,
        reraise=True,
    )


db_retry: RetryDecorator = create_db_retry()
