from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

from tenure.engine.payment_status import PaymentHealth, evaluate_payment_status
from tenure.engine.rules import BusinessRules
from tenure.engine.tenure import PaymentRecord
from tenure.models.payment import PaymentStatus, PaymentType

RULES = BusinessRules()
JOINED = datetime(2024, 3, 1, tzinfo=UTC)


def joining_fee(when: datetime = JOINED) -> PaymentRecord:
    return PaymentRecord(
        payment_type=PaymentType.JOINING_FEE,
        status=PaymentStatus.COMPLETED,
        amount=Decimal("300"),
        payment_date=when,
    )


def monthly_fee(when: datetime, status: PaymentStatus = PaymentStatus.COMPLETED) -> PaymentRecord:
    return PaymentRecord(
        payment_type=PaymentType.MONTHLY_FEE,
        status=status,
        amount=Decimal("25"),
        payment_date=when,
    )


def test_pending_without_joining_fee() -> None:
    report = evaluate_payment_status(uuid4(), [], JOINED, RULES)

    assert report.status == PaymentHealth.PENDING
    assert report.has_joining_fee is False
    assert report.days_since_last_payment is None
    assert report.is_in_default is False
    assert report.total_paid == Decimal("0")


def test_current_right_after_joining() -> None:
    now = JOINED + timedelta(days=10)

    report = evaluate_payment_status(uuid4(), [joining_fee()], now, RULES)

    assert report.status == PaymentHealth.CURRENT
    assert report.days_since_last_payment == 10
    assert report.next_payment_due == JOINED + timedelta(days=30)
    assert report.days_until_default == 50
    assert report.grace_period_days == 30


def test_days_counted_from_last_monthly_fee() -> None:
    last = JOINED + timedelta(days=60)
    payments = [joining_fee(), monthly_fee(JOINED + timedelta(days=30)), monthly_fee(last)]

    report = evaluate_payment_status(uuid4(), payments, last + timedelta(days=5), RULES)

    assert report.last_monthly_payment == last
    assert report.monthly_payment_count == 2
    assert report.days_since_last_payment == 5
    assert report.total_paid == Decimal("350")


def test_overdue_inside_grace_period() -> None:
    now = JOINED + timedelta(days=45)

    report = evaluate_payment_status(uuid4(), [joining_fee()], now, RULES)

    assert report.status == PaymentHealth.OVERDUE
    assert report.is_in_default is False
    assert report.days_until_default == 15


def test_default_after_cycle_plus_grace() -> None:
    now = JOINED + timedelta(days=61)

    report = evaluate_payment_status(uuid4(), [joining_fee()], now, RULES)

    assert report.status == PaymentHealth.DEFAULTED
    assert report.is_in_default is True
    assert report.next_payment_due is None
    assert report.days_until_default == 0


def test_exactly_sixty_days_is_not_default() -> None:
    now = JOINED + timedelta(days=60)

    report = evaluate_payment_status(uuid4(), [joining_fee()], now, RULES)

    assert report.is_in_default is False
    assert report.status == PaymentHealth.OVERDUE


def test_failed_monthly_fee_is_ignored() -> None:
    payments = [joining_fee(), monthly_fee(JOINED + timedelta(days=30), PaymentStatus.FAILED)]

    report = evaluate_payment_status(uuid4(), payments, JOINED + timedelta(days=65), RULES)

    assert report.monthly_payment_count == 0
    assert report.is_in_default is True


def test_monthly_fees_without_joining_fee_stay_pending() -> None:
    payments = [monthly_fee(JOINED)]

    report = evaluate_payment_status(uuid4(), payments, JOINED + timedelta(days=200), RULES)

    assert report.status == PaymentHealth.PENDING
    assert report.is_in_default is False
