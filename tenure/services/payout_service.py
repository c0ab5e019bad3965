"""Payout workflow: winner selection, approvals, payment processing and completion.

Each operation runs in one transaction. Winner selection locks the active
member rows it ranks, so two concurrent rounds cannot pick the same member.
"""

import logging
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col

from tenure.core.activity_logging import log_activity
from tenure.core.config import settings
from tenure.core.exceptions import NotFoundError, RuleViolationError
from tenure.core.logging import get_logging_context
from tenure.core.metrics import (
    payouts_completed_total,
    payouts_created_total,
    payouts_failed_total,
)
from tenure.engine.payout import (
    PayoutConditions,
    WinnerValidation,
    apply_approval,
    calculate_net_payout,
    check_transition,
    membership_removal_date,
    select_winners,
    validate_schedule_date,
    validate_winner,
)
from tenure.engine.rules import BusinessRules
from tenure.engine.tenure import as_utc
from tenure.models.activity_log import ActivityAction
from tenure.models.member import Member, MemberStatus
from tenure.models.payout import (
    ApprovalCreate,
    ApprovalDecision,
    PaymentFailure,
    PaymentSent,
    Payout,
    PayoutCreate,
    PayoutRead,
    PayoutSchedule,
    PayoutStatus,
)
from tenure.services.business_rules_service import get_payout_conditions
from tenure.services.queue_service import active_members, build_snapshots, rank_snapshots

LOGGER = logging.getLogger(__name__)

class PayoutRound(BaseModel):
    payout_conditions: PayoutConditions
    created: list[PayoutRead]
    skipped: list[WinnerValidation]


async def get_payout(session: AsyncSession, payout_id: UUID, *, for_update: bool = False) -> Payout | None:
    query = select(Payout).where(col(Payout.id) == payout_id)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def get_payout_for_update(session: AsyncSession, payout_id: UUID) -> Payout:
    payout = await get_payout(session, payout_id, for_update=True)
    if payout is None:
        msg = f"Payout {payout_id} not found"
        raise NotFoundError(msg)
    return payout


def list_payouts_query(
    status: PayoutStatus | None = None, member_id: UUID | None = None
) -> Select[tuple[Payout]]:
    query = select(Payout).order_by(col(Payout.created_at), col(Payout.queue_position))
    if status is not None:
        query = query.where(col(Payout.status) == status)
    if member_id is not None:
        query = query.where(col(Payout.member_id) == member_id)
    return query


async def create_payouts(
    session: AsyncSession, payload: PayoutCreate, now: datetime, rules: BusinessRules
) -> PayoutRound:
    """Open a payout round for the top eligible members.

    Raises:
        RuleViolationError: the fund or time condition is not met, or no
            member is eligible.
    """
    members = await active_members(session, for_update=True)
    by_id = {member.id: member for member in members}
    entries = rank_snapshots(await build_snapshots(session, members), now, rules)
    conditions = await get_payout_conditions(session, entries, now, rules)

    if not conditions.payout_ready:
        msg = "Payout conditions are not met"
        raise RuleViolationError(msg, details=conditions.reasons)

    count = min(conditions.potential_winners, rules.max_winners_per_payout)
    winners = select_winners(entries, count)
    if not winners:
        msg = "No eligible members for a payout"
        raise RuleViolationError(msg, details=conditions.reasons)

    created: list[Payout] = []
    skipped: list[WinnerValidation] = []
    for entry in winners:
        member = by_id[entry.member_id]
        validation = validate_winner(entry, member.kyc_status, entry.subscription_status)
        if not validation.is_valid:
            skipped.append(validation)
            LOGGER.warning(
                "payout_winner_rejected",
                extra={
                    **get_logging_context(),
                    "member_id": str(entry.member_id),
                    "errors": validation.errors,
                },
            )
            continue

        payout = Payout(
            member_id=member.id,
            queue_position=entry.queue_position,
            amount=rules.reward_per_winner,
            status=PayoutStatus.PENDING_APPROVAL,
            eligibility_snapshot={
                **entry.model_dump(mode="json"),
                "validated_at": as_utc(now).isoformat(),
            },
            approvals=[],
            initiated_by=payload.initiated_by,
            notes=payload.notes,
        )
        member.status = MemberStatus.WON
        session.add(payout)
        session.add(member)
        created.append(payout)
        await log_activity(
            ActivityAction.CREATE,
            "payout",
            payout.id,
            {
                "member_id": str(member.id),
                "queue_position": entry.queue_position,
                "initiated_by": payload.initiated_by,
            },
            session=session,
        )

    await session.commit()
    for payout in created:
        await session.refresh(payout)

    payouts_created_total.labels(environment=settings.environment).inc(len(created))
    LOGGER.info(
        "payout_round_created",
        extra={
            **get_logging_context(),
            "created": len(created),
            "skipped": len(skipped),
            "initiated_by": payload.initiated_by,
        },
    )
    return PayoutRound(
        payout_conditions=conditions,
        created=[PayoutRead.model_validate(payout) for payout in created],
        skipped=skipped,
    )


async def submit_approval(
    session: AsyncSession,
    payout_id: UUID,
    payload: ApprovalCreate,
    now: datetime,
    rules: BusinessRules,
) -> Payout:
    """Record an admin decision.

    A rejection cancels the payout and puts the member back in the queue.
    """
    payout = await get_payout_for_update(session, payout_id)

    outcome = apply_approval(
        payout.approvals,
        payout.status,
        payload.admin_id,
        payload.decision,
        rules.required_payout_approvals,
        now,
        reason=payload.reason,
    )
    payout.approvals = outcome.approvals
    payout.status = outcome.status
    session.add(payout)

    if outcome.status == PayoutStatus.CANCELLED:
        member = await session.get(Member, payout.member_id, with_for_update=True)
        if member is not None and member.status == MemberStatus.WON:
            member.status = MemberStatus.ACTIVE
            session.add(member)

    action = (
        ActivityAction.REJECT
        if payload.decision == ApprovalDecision.REJECTED
        else ActivityAction.APPROVE
    )
    await log_activity(
        action,
        "payout",
        payout.id,
        {
            "admin_id": payload.admin_id,
            "status": outcome.status.value,
            "approvals_received": outcome.approvals_received,
            "approvals_required": outcome.approvals_required,
        },
        session=session,
    )
    await session.commit()
    await session.refresh(payout)
    return payout


async def complete_payout(
    session: AsyncSession, payout_id: UUID, now: datetime, rules: BusinessRules
) -> Payout:
    """Mark a payout as paid and schedule the membership removal.

    Approved and scheduled payouts may be completed directly, without a
    separate processing step.
    """
    payout = await get_payout_for_update(session, payout_id)
    check_transition(payout.status, PayoutStatus.COMPLETED)

    member = await session.get(Member, payout.member_id)
    if member is None:
        msg = f"Member {payout.member_id} not found"
        raise NotFoundError(msg)

    net = calculate_net_payout(payout.amount, member.has_tax_form, rules)
    completed_at = as_utc(now)
    payout.retention_fee = net.retention_fee
    payout.tax_withholding = net.tax_withholding
    payout.net_amount = net.net_amount
    payout.completed_at = completed_at
    payout.membership_removal_date = membership_removal_date(completed_at, rules)
    payout.status = PayoutStatus.COMPLETED
    session.add(payout)

    await log_activity(
        ActivityAction.COMPLETE,
        "payout",
        payout.id,
        {
            "member_id": str(member.id),
            "net_amount": str(net.net_amount),
            "tax_withholding": str(net.tax_withholding),
        },
        session=session,
    )
    await session.commit()
    await session.refresh(payout)

    payouts_completed_total.labels(environment=settings.environment).inc()
    return payout


async def schedule_payout(
    session: AsyncSession, payout_id: UUID, payload: PayoutSchedule, now: datetime
) -> Payout:
    payout = await get_payout_for_update(session, payout_id)
    check_transition(payout.status, PayoutStatus.SCHEDULED)
    validate_schedule_date(payload.scheduled_date, now)

    payout.scheduled_date = payload.scheduled_date
    payout.status = PayoutStatus.SCHEDULED
    session.add(payout)
    await log_activity(
        ActivityAction.SCHEDULE,
        "payout",
        payout.id,
        {"admin_id": payload.admin_id, "scheduled_date": payload.scheduled_date.isoformat()},
        session=session,
    )
    await session.commit()
    await session.refresh(payout)
    return payout


async def mark_payment_sent(
    session: AsyncSession, payout_id: UUID, payload: PaymentSent, now: datetime
) -> Payout:
    """Move a payout to ``processing`` once the money is on its way.

    A failed payout can be sent again; the last failure reason stays on the
    row for the record.
    """
    payout = await get_payout_for_update(session, payout_id)
    previous = payout.status
    check_transition(previous, PayoutStatus.PROCESSING)

    payout.sent_at = as_utc(now)
    payout.payment_reference = payload.payment_reference
    payout.status = PayoutStatus.PROCESSING
    session.add(payout)
    await log_activity(
        ActivityAction.SEND,
        "payout",
        payout.id,
        {
            "admin_id": payload.admin_id,
            "from_status": previous.value,
            "payment_reference": payload.payment_reference,
        },
        session=session,
    )
    await session.commit()
    await session.refresh(payout)
    return payout


async def record_payment_failure(
    session: AsyncSession, payout_id: UUID, payload: PaymentFailure, now: datetime
) -> Payout:
    """Mark the payment as failed. The member keeps ``won`` status."""
    payout = await get_payout_for_update(session, payout_id)
    previous = payout.status
    check_transition(previous, PayoutStatus.FAILED)

    payout.failed_at = as_utc(now)
    payout.failure_reason = payload.reason
    payout.status = PayoutStatus.FAILED
    session.add(payout)
    await log_activity(
        ActivityAction.FAIL,
        "payout",
        payout.id,
        {"admin_id": payload.admin_id, "from_status": previous.value, "reason": payload.reason},
        session=session,
    )
    await session.commit()
    await session.refresh(payout)

    payouts_failed_total.labels(environment=settings.environment).inc()
    LOGGER.warning(
        "payout_payment_failed",
        extra={
            **get_logging_context(),
            "payout_id": str(payout.id),
            "member_id": str(payout.member_id),
            "reason": payload.reason,
        },
    )
    return payout
