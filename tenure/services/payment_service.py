"""Payment event records and payment aggregates."""

import logging
from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col

from tenure.core.config import settings
from tenure.core.exceptions import RuleViolationError
from tenure.core.logging import get_logging_context, log_with_context
from tenure.core.metrics import payments_recorded_total
from tenure.models.payment import Payment, PaymentCreate, PaymentStatus, PaymentUpdate
from tenure.services.subscription_service import get_subscription

LOGGER = logging.getLogger(__name__)


async def get_payment(session: AsyncSession, payment_id: UUID) -> Payment | None:
    result = await session.execute(select(Payment).where(col(Payment.id) == payment_id))
    return result.scalar_one_or_none()


async def list_member_payments(session: AsyncSession, member_id: UUID) -> list[Payment]:
    result = await session.execute(
        select(Payment)
        .where(col(Payment.member_id) == member_id)
        .order_by(col(Payment.payment_date), col(Payment.id))
    )
    return list(result.scalars().all())


async def payments_by_member(
    session: AsyncSession, member_ids: Sequence[UUID]
) -> dict[UUID, list[Payment]]:
    if not member_ids:
        return {}
    result = await session.execute(
        select(Payment)
        .where(col(Payment.member_id).in_(member_ids))
        .order_by(col(Payment.payment_date), col(Payment.id))
    )
    grouped: dict[UUID, list[Payment]] = {member_id: [] for member_id in member_ids}
    for payment in result.scalars().all():
        grouped[payment.member_id].append(payment)
    return grouped


async def total_revenue(session: AsyncSession) -> Decimal:
    """Sum of every completed payment; this is the payout fund."""
    result = await session.execute(
        select(func.coalesce(func.sum(col(Payment.amount)), 0)).where(
            col(Payment.status) == PaymentStatus.COMPLETED
        )
    )
    return Decimal(str(result.scalar_one()))


async def record_payment(session: AsyncSession, payload: PaymentCreate) -> Payment:
    """Store a payment event.

    The caller has already checked that the member exists. A referenced
    subscription must belong to the same member.
    """
    if payload.subscription_id is not None:
        subscription = await get_subscription(session, payload.subscription_id)
        if subscription is None or subscription.member_id != payload.member_id:
            msg = "Subscription does not belong to this member"
            raise RuleViolationError(msg)

    payment = Payment(**payload.model_dump())
    session.add(payment)
    await session.commit()
    await session.refresh(payment)

    payments_recorded_total.labels(
        environment=settings.environment, payment_type=payment.payment_type.value
    ).inc()
    LOGGER.info(
        "payment_recorded",
        extra={
            **get_logging_context(),
            "payment_id": str(payment.id),
            "member_id": str(payment.member_id),
            "payment_type": payment.payment_type.value,
            "payment_status": payment.status.value,
        },
    )
    return payment


async def update_payment_status(
    session: AsyncSession, payment: Payment, payload: PaymentUpdate
) -> Payment:
    previous = payment.status
    payment.status = payload.status
    session.add(payment)
    await session.commit()
    await session.refresh(payment)
    log_with_context(
        LOGGER,
        logging.INFO,
        "payment_status_changed",
        {
            "payment_id": str(payment.id),
            "from_status": previous.value,
            "to_status": payment.status.value,
        },
    )
    return payment
