"""Read-only business rule evaluations for a member or the whole fund."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from tenure.engine.payment_status import PaymentStatusReport, evaluate_payment_status
from tenure.engine.payout import PayoutConditions, evaluate_payout_conditions
from tenure.engine.queue import QueueEntry
from tenure.engine.rules import BusinessRules
from tenure.engine.tenure import PaymentRecord, current_tenure_payments
from tenure.services.payment_service import list_member_payments, total_revenue


class TenureStart(BaseModel):
    member_id: UUID
    tenure_start: datetime | None
    payment_id: UUID | None = None
    amount: Decimal | None = None
    message: str | None = None


async def member_payment_records(session: AsyncSession, member_id: UUID) -> list[PaymentRecord]:
    payments = await list_member_payments(session, member_id)
    return [PaymentRecord.model_validate(payment) for payment in payments]


async def get_tenure_start(
    session: AsyncSession, member_id: UUID, rules: BusinessRules
) -> TenureStart:
    """First qualifying payment of the current tenure, as the queue ranks it."""
    current = current_tenure_payments(await member_payment_records(session, member_id), rules)
    if not current:
        return TenureStart(
            member_id=member_id,
            tenure_start=None,
            message="No qualifying payment found. Tenure has not started yet.",
        )
    first = current[0]
    return TenureStart(
        member_id=member_id,
        tenure_start=first.payment_date,
        payment_id=first.id,
        amount=first.amount,
    )


async def get_payment_status(
    session: AsyncSession, member_id: UUID, now: datetime, rules: BusinessRules
) -> PaymentStatusReport:
    records = await member_payment_records(session, member_id)
    return evaluate_payment_status(member_id, records, now, rules)


async def get_payout_conditions(
    session: AsyncSession,
    entries: list[QueueEntry],
    now: datetime,
    rules: BusinessRules,
) -> PayoutConditions:
    revenue = await total_revenue(session)
    eligible = sum(1 for entry in entries if entry.is_eligible)
    return evaluate_payout_conditions(revenue, eligible, len(entries), now, rules)
