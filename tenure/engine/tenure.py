"""Tenure start and continuity (BR-6, BR-9).

All functions are pure: they take payment records already loaded by a
service and never touch the database.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from tenure.engine.rules import BusinessRules
from tenure.models.payment import PaymentStatus, PaymentType


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    SQLite hands back naive datetimes even for timezone-aware columns; those
    are taken to be UTC already.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class PaymentRecord(BaseModel):
    """The fields of a payment row the rule engine reads."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID | None = None
    payment_type: PaymentType
    status: PaymentStatus
    amount: Decimal
    payment_date: datetime

    @field_validator("payment_date")
    @classmethod
    def normalize_payment_date(cls, value: datetime) -> datetime:
        return as_utc(value)

    @property
    def is_qualifying(self) -> bool:
        return self.status == PaymentStatus.COMPLETED and self.amount > 0


def qualifying_payments(payments: Iterable[PaymentRecord]) -> list[PaymentRecord]:
    """Completed, non-zero payments in date order."""
    return sorted(
        (payment for payment in payments if payment.is_qualifying),
        key=lambda payment: payment.payment_date,
    )


def current_tenure_payments(
    payments: Iterable[PaymentRecord], rules: BusinessRules
) -> list[PaymentRecord]:
    """Qualifying payments since the member last lapsed, in date order.

    A gap between two qualifying payments longer than the default window
    means the member defaulted in between. Paying again after that starts a
    new tenure, so only the payments after the last such gap count.
    """
    ordered = qualifying_payments(payments)
    first = 0
    for index, (previous, current) in enumerate(zip(ordered, ordered[1:]), start=1):
        if (current.payment_date - previous.payment_date).days > rules.default_after_days:
            first = index
    return ordered[first:]


def tenure_start_payment(payments: Iterable[PaymentRecord]) -> PaymentRecord | None:
    ordered = qualifying_payments(payments)
    return ordered[0] if ordered else None


def tenure_start(payments: Iterable[PaymentRecord]) -> datetime | None:
    """Date of the earliest qualifying payment, in practice the joining fee."""
    first = tenure_start_payment(payments)
    return first.payment_date if first else None


def months_between(start: datetime, end: datetime) -> int:
    """Whole calendar months from ``start`` to ``end``, never negative."""
    start, end = as_utc(start), as_utc(end)
    months = (end.year - start.year) * 12 + (end.month - start.month)
    return max(0, months)


def continuous_tenure_months(start: datetime | None, now: datetime) -> int:
    if start is None:
        return 0
    return months_between(start, now)


def has_continuous_tenure(
    payments: Iterable[PaymentRecord], now: datetime, rules: BusinessRules
) -> bool:
    """True when no gap between qualifying payments exceeds the default window.

    The walk starts at the tenure start and ends at ``now``, so a member who
    stopped paying loses continuity once the window passes even if every
    historical gap was fine. A member with no qualifying payment has no
    tenure to be continuous.
    """
    ordered = qualifying_payments(payments)
    if not ordered:
        return False

    limit = rules.default_after_days
    checkpoints = [payment.payment_date for payment in ordered] + [as_utc(now)]
    for previous, current in zip(checkpoints, checkpoints[1:]):
        if (current - previous).days > limit:
            return False
    return True
