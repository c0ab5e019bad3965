"""Domain errors raised by services and rendered by the global handlers in main."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any


class TenureError(Exception):
    """Base class for domain failures with an HTTP mapping."""

    status_code: int = HTTPStatus.BAD_REQUEST
    error_code: str = "TENURE_ERROR"

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(TenureError):
    status_code = HTTPStatus.NOT_FOUND
    error_code = "NOT_FOUND"


class ConflictError(TenureError):
    status_code = HTTPStatus.CONFLICT
    error_code = "CONFLICT"


class RuleViolationError(TenureError):
    """A business rule rejected the operation (fund not ready, KYC missing, ...)."""

    status_code = HTTPStatus.UNPROCESSABLE_ENTITY
    error_code = "RULE_VIOLATION"
