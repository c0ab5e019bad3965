"""Row builders for database-backed tests.

Every builder commits, so rows are visible to request sessions opened by the
test client.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from tenure.models.member import KycStatus, Member, MemberStatus
from tenure.models.payment import Payment, PaymentStatus, PaymentType
from tenure.models.payout import Payout, PayoutStatus
from tenure.models.subscription import Subscription, SubscriptionStatus

JOINING_FEE = Decimal("300")
MONTHLY_FEE = Decimal("25")
BILLING_CYCLE = timedelta(days=30)


async def make_member(
    session: AsyncSession,
    *,
    email: str | None = None,
    first_name: str = "Ada",
    last_name: str = "Lovelace",
    middle_name: str | None = None,
    status: MemberStatus = MemberStatus.ACTIVE,
    kyc_status: KycStatus = KycStatus.VERIFIED,
    has_tax_form: bool = True,
) -> Member:
    member = Member(
        email=email or f"member-{uuid4().hex[:10]}@example.com",
        first_name=first_name,
        middle_name=middle_name,
        last_name=last_name,
        status=status,
        kyc_status=kyc_status,
        has_tax_form=has_tax_form,
    )
    session.add(member)
    await session.commit()
    await session.refresh(member)
    return member


async def make_subscription(
    session: AsyncSession,
    member: Member,
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
) -> Subscription:
    subscription = Subscription(member_id=member.id, status=status)
    session.add(subscription)
    await session.commit()
    await session.refresh(subscription)
    return subscription


async def make_payment(
    session: AsyncSession,
    member: Member,
    *,
    payment_date: datetime,
    payment_type: PaymentType = PaymentType.MONTHLY_FEE,
    amount: Decimal = MONTHLY_FEE,
    status: PaymentStatus = PaymentStatus.COMPLETED,
) -> Payment:
    payment = Payment(
        member_id=member.id,
        payment_type=payment_type,
        amount=amount,
        status=status,
        payment_date=payment_date,
    )
    session.add(payment)
    await session.commit()
    await session.refresh(payment)
    return payment


async def make_paying_member(
    session: AsyncSession,
    *,
    joined_at: datetime,
    paid_until: datetime | None = None,
    subscription_status: SubscriptionStatus | None = SubscriptionStatus.ACTIVE,
    **member_fields: object,
) -> Member:
    """Member with a joining fee at ``joined_at`` and monthly fees every cycle up to ``paid_until``."""
    member = await make_member(session, **member_fields)  # type: ignore[arg-type]
    if subscription_status is not None:
        await make_subscription(session, member, subscription_status)
    await make_payment(
        session,
        member,
        payment_date=joined_at,
        payment_type=PaymentType.JOINING_FEE,
        amount=JOINING_FEE,
    )
    paid_at = joined_at + BILLING_CYCLE
    while paid_until is not None and paid_at <= paid_until:
        await make_payment(session, member, payment_date=paid_at)
        paid_at += BILLING_CYCLE
    return member


async def make_completed_payout(
    session: AsyncSession,
    member: Member,
    *,
    completed_at: datetime,
    removal_date: datetime,
    amount: Decimal = Decimal("500"),
) -> Payout:
    payout = Payout(
        member_id=member.id,
        queue_position=1,
        amount=amount,
        status=PayoutStatus.COMPLETED,
        completed_at=completed_at,
        membership_removal_date=removal_date,
    )
    member.status = MemberStatus.WON
    session.add(payout)
    session.add(member)
    await session.commit()
    await session.refresh(payout)
    return payout
