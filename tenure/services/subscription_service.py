"""Subscription event records.

A member may have several subscription rows over time; the most recently
created one is the member's current subscription.
"""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col

from tenure.models.subscription import (
    Subscription,
    SubscriptionCreate,
    SubscriptionStatus,
    SubscriptionUpdate,
)


async def get_subscription(session: AsyncSession, subscription_id: UUID) -> Subscription | None:
    result = await session.execute(
        select(Subscription).where(col(Subscription.id) == subscription_id)
    )
    return result.scalar_one_or_none()


async def create_subscription(
    session: AsyncSession, payload: SubscriptionCreate
) -> Subscription:
    subscription = Subscription(**payload.model_dump())
    session.add(subscription)
    await session.commit()
    await session.refresh(subscription)
    return subscription


async def update_subscription(
    session: AsyncSession, subscription: Subscription, payload: SubscriptionUpdate
) -> Subscription:
    updates = payload.model_dump(exclude_unset=True)
    for field, value in updates.items():
        setattr(subscription, field, value)
    session.add(subscription)
    await session.commit()
    await session.refresh(subscription)
    return subscription


async def current_subscription_statuses(
    session: AsyncSession, member_ids: Sequence[UUID]
) -> dict[UUID, SubscriptionStatus]:
    """Status of each member's most recently created subscription."""
    if not member_ids:
        return {}
    result = await session.execute(
        select(Subscription)
        .where(col(Subscription.member_id).in_(member_ids))
        .order_by(col(Subscription.created_at))
    )
    statuses: dict[UUID, SubscriptionStatus] = {}
    for subscription in result.scalars().all():
        statuses[subscription.member_id] = subscription.status
    return statuses
