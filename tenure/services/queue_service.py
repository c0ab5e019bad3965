"""Load member snapshots and rank the queue.

The ranking itself lives in ``tenure.engine.queue``; this module only reads
rows and hands them over.
"""

import logging
import time
from collections.abc import Sequence
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col

from tenure.core.config import settings
from tenure.core.logging import get_logging_context
from tenure.core.metrics import eligible_members_gauge, queue_build_duration_seconds, queue_size_gauge
from tenure.db.retry import db_retry
from tenure.engine.queue import MemberSnapshot, QueueEntry, rank_queue
from tenure.engine.rules import BusinessRules
from tenure.engine.tenure import PaymentRecord
from tenure.models.member import Member, MemberStatus
from tenure.models.payout import Payout, PayoutStatus
from tenure.services.payment_service import payments_by_member
from tenure.services.subscription_service import current_subscription_statuses

LOGGER = logging.getLogger(__name__)


async def active_members(session: AsyncSession, *, for_update: bool = False) -> list[Member]:
    """Members in ``active`` status; locks the rows when ``for_update`` is set.

    SQLite silently ignores the lock.
    """
    query = (
        select(Member)
        .where(col(Member.status) == MemberStatus.ACTIVE)
        .order_by(col(Member.id))
    )
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    return list(result.scalars().all())


async def paid_out_member_ids(session: AsyncSession, member_ids: Sequence[UUID]) -> set[UUID]:
    if not member_ids:
        return set()
    result = await session.execute(
        select(col(Payout.member_id))
        .where(col(Payout.member_id).in_(member_ids))
        .where(col(Payout.status) == PayoutStatus.COMPLETED)
        .distinct()
    )
    return set(result.scalars().all())


async def count_received_payouts(session: AsyncSession) -> int:
    result = await session.execute(
        select(func.count(func.distinct(col(Payout.member_id)))).where(
            col(Payout.status) == PayoutStatus.COMPLETED
        )
    )
    return int(result.scalar_one())


async def build_snapshots(session: AsyncSession, members: Sequence[Member]) -> list[MemberSnapshot]:
    member_ids = [member.id for member in members]
    payments = await payments_by_member(session, member_ids)
    subscriptions = await current_subscription_statuses(session, member_ids)
    paid_out = await paid_out_member_ids(session, member_ids)

    return [
        MemberSnapshot(
            member_id=member.id,
            email=member.email,
            first_name=member.first_name,
            middle_name=member.middle_name,
            last_name=member.last_name,
            status=member.status,
            kyc_status=member.kyc_status,
            subscription_status=subscriptions.get(member.id),
            payments=[PaymentRecord.model_validate(p) for p in payments.get(member.id, [])],
            has_received_payout=member.id in paid_out,
        )
        for member in members
    ]


@db_retry
async def load_member_snapshots(session: AsyncSession) -> list[MemberSnapshot]:
    members = await active_members(session)
    return await build_snapshots(session, members)


def rank_snapshots(
    snapshots: Sequence[MemberSnapshot], now: datetime, rules: BusinessRules
) -> list[QueueEntry]:
    """Rank and record queue gauges."""
    entries = rank_queue(snapshots, now, rules)
    queue_size_gauge.labels(environment=settings.environment).set(len(entries))
    eligible_members_gauge.labels(environment=settings.environment).set(
        sum(1 for entry in entries if entry.is_eligible)
    )
    return entries


async def build_queue(
    session: AsyncSession, now: datetime, rules: BusinessRules
) -> list[QueueEntry]:
    started = time.perf_counter()
    snapshots = await load_member_snapshots(session)
    entries = rank_snapshots(snapshots, now, rules)
    duration = time.perf_counter() - started
    queue_build_duration_seconds.observe(duration)
    LOGGER.debug(
        "queue_built",
        extra={
            **get_logging_context(),
            "queue_size": len(entries),
            "duration_seconds": round(duration, 3),
        },
    )
    return entries
