"""Business rule enforcement run.

One call walks every rule that changes member state and reports what the
queue and fund look like afterwards:

1. payment defaults (BR-8) move overdue members out of the queue
2. the queue is rebuilt from the remaining active members (BR-5, BR-9)
3. payout conditions are evaluated (BR-3, BR-4, BR-6)
4. the top of the queue is previewed
5. paid-out members past their removal date are removed

Everything runs in the caller's session and is committed once at the end,
so a failure part way leaves no member half-processed. Active member rows
are locked for the duration on databases that support it.
"""

import logging
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col

from tenure.core.activity_logging import log_activity
from tenure.core.config import settings
from tenure.core.logging import get_logging_context
from tenure.core.metrics import defaults_enforced_total, memberships_removed_total
from tenure.engine.payment_status import evaluate_payment_status
from tenure.engine.payout import PayoutConditions, select_winners
from tenure.engine.queue import QueueEntry, QueueStatistics, queue_statistics
from tenure.engine.rules import BusinessRules
from tenure.engine.tenure import as_utc
from tenure.models.activity_log import ActivityAction
from tenure.models.member import Member, MemberStatus
from tenure.models.payout import Payout, PayoutStatus
from tenure.services.business_rules_service import get_payout_conditions
from tenure.services.queue_service import (
    active_members,
    build_snapshots,
    count_received_payouts,
    rank_snapshots,
)

LOGGER = logging.getLogger(__name__)

TOP_CANDIDATES_PREVIEW = 5


class DefaultEnforcement(BaseModel):
    processed: int
    defaulted: int
    defaulted_member_ids: list[UUID]


class RemovalEnforcement(BaseModel):
    processed: int
    removed: int
    removed_member_ids: list[UUID]


class EnforcementReport(BaseModel):
    enforced_at: datetime
    payment_defaults: DefaultEnforcement
    queue: QueueStatistics
    payout_conditions: PayoutConditions
    top_candidates: list[QueueEntry]
    membership_removals: RemovalEnforcement


async def enforce_payment_defaults(
    session: AsyncSession, members: list[Member], now: datetime, rules: BusinessRules
) -> DefaultEnforcement:
    snapshots = await build_snapshots(session, members)
    by_id = {member.id: member for member in members}
    defaulted: list[UUID] = []

    for snapshot in snapshots:
        report = evaluate_payment_status(snapshot.member_id, snapshot.payments, now, rules)
        if not report.is_in_default:
            continue
        member = by_id[snapshot.member_id]
        member.status = MemberStatus.DEFAULTED
        session.add(member)
        defaulted.append(member.id)
        await log_activity(
            ActivityAction.DEFAULT,
            "member",
            member.id,
            {
                "days_since_last_payment": report.days_since_last_payment,
                "default_after_days": rules.default_after_days,
            },
            session=session,
        )

    return DefaultEnforcement(
        processed=len(snapshots),
        defaulted=len(defaulted),
        defaulted_member_ids=defaulted,
    )


async def enforce_membership_removals(
    session: AsyncSession, now: datetime
) -> RemovalEnforcement:
    """Remove members whose completed payout is past its removal date."""
    result = await session.execute(
        select(Payout, Member)
        .join(Member, col(Member.id) == col(Payout.member_id))
        .where(col(Payout.status) == PayoutStatus.COMPLETED)
        .where(col(Payout.membership_removal_date).is_not(None))
        .where(col(Member.status) != MemberStatus.REMOVED)
        .with_for_update()
    )
    rows = result.all()
    removed: list[UUID] = []
    now = as_utc(now)
    for payout, member in rows:
        if payout.membership_removal_date is None or as_utc(payout.membership_removal_date) > now:
            continue
        if member.id in removed:
            continue
        member.status = MemberStatus.REMOVED
        session.add(member)
        removed.append(member.id)
        await log_activity(
            ActivityAction.REMOVE,
            "member",
            member.id,
            {"payout_id": str(payout.id)},
            session=session,
        )

    return RemovalEnforcement(processed=len(rows), removed=len(removed), removed_member_ids=removed)


async def enforce_business_rules(
    session: AsyncSession, now: datetime, rules: BusinessRules
) -> EnforcementReport:
    members = await active_members(session, for_update=True)
    defaults = await enforce_payment_defaults(session, members, now, rules)

    still_active = [member for member in members if member.status == MemberStatus.ACTIVE]
    entries = rank_snapshots(await build_snapshots(session, still_active), now, rules)
    statistics = queue_statistics(
        entries, rules, received_payouts=await count_received_payouts(session)
    )
    conditions = await get_payout_conditions(session, entries, now, rules)
    top_candidates = select_winners(entries, TOP_CANDIDATES_PREVIEW)
    removals = await enforce_membership_removals(session, now)

    await log_activity(
        ActivityAction.ENFORCE,
        "business_rules",
        None,
        {
            "defaulted": defaults.defaulted,
            "removed": removals.removed,
            "queue_size": statistics.total_members,
            "eligible_members": statistics.eligible_members,
            "payout_ready": conditions.payout_ready,
        },
        session=session,
    )
    await session.commit()

    defaults_enforced_total.labels(environment=settings.environment).inc(defaults.defaulted)
    memberships_removed_total.labels(environment=settings.environment).inc(removals.removed)
    LOGGER.info(
        "business_rules_enforced",
        extra={
            **get_logging_context(),
            "defaulted": defaults.defaulted,
            "removed": removals.removed,
            "queue_size": statistics.total_members,
            "payout_ready": conditions.payout_ready,
        },
    )

    return EnforcementReport(
        enforced_at=as_utc(now),
        payment_defaults=defaults,
        queue=statistics,
        payout_conditions=conditions,
        top_candidates=top_candidates,
        membership_removals=removals,
    )
