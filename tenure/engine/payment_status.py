"""Payment health of a single member (BR-1, BR-2, BR-8)."""

from __future__ import annotations

import enum
from collections.abc import Iterable
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel

from tenure.engine.rules import BusinessRules
from tenure.engine.tenure import PaymentRecord, as_utc
from tenure.models.payment import PaymentStatus, PaymentType


class PaymentHealth(str, enum.Enum):
    PENDING = "pending"
    CURRENT = "current"
    OVERDUE = "overdue"
    DEFAULTED = "defaulted"


class PaymentStatusReport(BaseModel):
    member_id: UUID
    has_joining_fee: bool
    joining_fee_date: datetime | None
    last_monthly_payment: datetime | None
    total_paid: Decimal
    monthly_payment_count: int
    days_since_last_payment: int | None
    next_payment_due: datetime | None
    is_in_default: bool
    days_until_default: int
    grace_period_days: int
    status: PaymentHealth


def evaluate_payment_status(
    member_id: UUID,
    payments: Iterable[PaymentRecord],
    now: datetime,
    rules: BusinessRules,
) -> PaymentStatusReport:
    """Classify a member's payment history.

    Days are counted from the last completed monthly fee, falling back to the
    joining fee. A member without a completed joining fee is ``pending`` and
    can never be in default.
    """
    now = as_utc(now)
    completed = sorted(
        (payment for payment in payments if payment.status == PaymentStatus.COMPLETED),
        key=lambda payment: payment.payment_date,
    )
    joining_fees = [p for p in completed if p.payment_type == PaymentType.JOINING_FEE]
    monthly_fees = [p for p in completed if p.payment_type == PaymentType.MONTHLY_FEE]

    joining_fee_date = joining_fees[0].payment_date if joining_fees else None
    last_monthly = monthly_fees[-1].payment_date if monthly_fees else None
    reference = last_monthly or joining_fee_date

    days_since: int | None = None
    if reference is not None:
        days_since = max(0, (now - reference).days)

    is_in_default = (
        joining_fee_date is not None
        and days_since is not None
        and days_since > rules.default_after_days
    )

    next_due: datetime | None = None
    days_until_default = 0
    if reference is not None and days_since is not None and not is_in_default:
        next_due = reference + timedelta(days=rules.billing_cycle_days)
        days_until_default = max(0, rules.default_after_days - days_since)

    if joining_fee_date is None:
        status = PaymentHealth.PENDING
    elif is_in_default:
        status = PaymentHealth.DEFAULTED
    elif days_since is not None and days_since > rules.billing_cycle_days:
        status = PaymentHealth.OVERDUE
    else:
        status = PaymentHealth.CURRENT

    return PaymentStatusReport(
        member_id=member_id,
        has_joining_fee=joining_fee_date is not None,
        joining_fee_date=joining_fee_date,
        last_monthly_payment=last_monthly,
        total_paid=sum((p.amount for p in completed), Decimal("0")),
        monthly_payment_count=len(monthly_fees),
        days_since_last_payment=days_since,
        next_payment_due=next_due,
        is_in_default=is_in_default,
        days_until_default=days_until_default,
        grace_period_days=rules.payment_grace_days,
        status=status,
    )
