"""Payout readiness, winner selection and payout arithmetic (BR-3, BR-4, BR-7).

``check_transition`` guards every status change after approval.
"""

from __future__ import annotations

import calendar
import math
from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field

from tenure.core.exceptions import ConflictError
from tenure.engine.queue import QueueEntry
from tenure.engine.rules import BusinessRules
from tenure.engine.tenure import as_utc
from tenure.models.member import KycStatus
from tenure.models.payout import ApprovalDecision, PayoutStatus
from tenure.models.subscription import GOOD_STANDING_STATUSES, SubscriptionStatus

CENT = Decimal("0.01")
SECONDS_PER_DAY = 86400

DateT = TypeVar("DateT", bound=date)


def add_months(value: DateT, months: int) -> DateT:
    """Shift ``value`` by calendar months, clamping to the end of short months."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


class PayoutConditions(BaseModel):
    fund_ready: bool
    time_ready: bool
    payout_ready: bool
    total_revenue: Decimal
    payout_threshold: Decimal
    fund_progress: Decimal
    remaining_to_threshold: Decimal
    launch_date: date
    required_date: date
    days_until_time_ready: int
    potential_winners: int
    reward_per_winner: Decimal
    eligible_members: int
    total_members: int
    next_payout_date: date | None
    reasons: list[str] = Field(default_factory=list)


def evaluate_payout_conditions(
    total_revenue: Decimal,
    eligible_members: int,
    total_members: int,
    now: datetime,
    rules: BusinessRules,
) -> PayoutConditions:
    """Check the fund threshold and the time requirement after launch.

    Potential winners is bounded both by how many rewards the fund covers and
    by how many members are eligible.
    """
    now = as_utc(now)
    required_date = add_months(rules.business_launch_date, rules.payout_months_required)
    required_at = datetime.combine(required_date, time.min, tzinfo=UTC)

    time_ready = now >= required_at
    days_until_time_ready = 0
    if not time_ready:
        days_until_time_ready = math.ceil((required_at - now).total_seconds() / SECONDS_PER_DAY)

    fund_ready = total_revenue >= rules.payout_threshold
    rewards_covered = int(total_revenue // rules.reward_per_winner) if total_revenue > 0 else 0
    potential_winners = min(rewards_covered, eligible_members)

    progress = min(total_revenue / rules.payout_threshold * 100, Decimal("100"))
    remaining = max(Decimal("0"), rules.payout_threshold - total_revenue)

    reasons: list[str] = []
    if not fund_ready:
        reasons.append(f"Fund is {remaining} short of the {rules.payout_threshold} threshold")
    if not time_ready:
        reasons.append(f"Payouts open on {required_date.isoformat()}")
    if fund_ready and time_ready and potential_winners == 0:
        reasons.append("No eligible members in the queue")

    return PayoutConditions(
        fund_ready=fund_ready,
        time_ready=time_ready,
        payout_ready=fund_ready and time_ready,
        total_revenue=total_revenue,
        payout_threshold=rules.payout_threshold,
        fund_progress=progress.quantize(CENT, rounding=ROUND_HALF_UP),
        remaining_to_threshold=remaining,
        launch_date=rules.business_launch_date,
        required_date=required_date,
        days_until_time_ready=days_until_time_ready,
        potential_winners=potential_winners,
        reward_per_winner=rules.reward_per_winner,
        eligible_members=eligible_members,
        total_members=total_members,
        next_payout_date=None if time_ready else required_date,
        reasons=reasons,
    )


def select_winners(entries: Iterable[QueueEntry], count: int) -> list[QueueEntry]:
    """First ``count`` eligible, not yet paid entries by queue position."""
    if count <= 0:
        return []
    candidates = sorted(
        (e for e in entries if e.is_eligible and not e.has_received_payout),
        key=lambda entry: entry.queue_position,
    )
    return candidates[:count]


class WinnerValidation(BaseModel):
    member_id: UUID
    is_valid: bool
    errors: list[str]


def validate_winner(
    entry: QueueEntry,
    kyc_status: KycStatus,
    subscription_status: SubscriptionStatus | None,
) -> WinnerValidation:
    errors: list[str] = []
    if kyc_status != KycStatus.VERIFIED:
        errors.append(f"KYC verification is {kyc_status.value}, must be verified")
    if subscription_status not in GOOD_STANDING_STATUSES:
        label = subscription_status.value if subscription_status else "missing"
        errors.append(f"Subscription is {label}, must be active or trialing")
    return WinnerValidation(member_id=entry.member_id, is_valid=not errors, errors=errors)


class BreakdownItem(BaseModel):
    description: str
    amount: Decimal


class NetPayout(BaseModel):
    gross_amount: Decimal
    retention_fee: Decimal
    tax_withholding: Decimal
    net_amount: Decimal
    breakdown: list[BreakdownItem]


def calculate_net_payout(gross: Decimal, has_tax_form: bool, rules: BusinessRules) -> NetPayout:
    """Gross minus the retention fee, minus backup withholding without a tax form.

    Withholding is applied to the gross amount, not to the amount left after
    the retention fee.
    """
    retention_fee = rules.retention_fee
    tax_withholding = Decimal("0")
    if not has_tax_form:
        tax_withholding = (gross * rules.tax_withholding_rate).quantize(CENT, rounding=ROUND_HALF_UP)

    net_amount = gross - retention_fee - tax_withholding
    if net_amount < 0:
        msg = f"Deductions exceed gross payout amount {gross}"
        raise ValueError(msg)

    breakdown = [
        BreakdownItem(description="Gross payout", amount=gross),
        BreakdownItem(description="Retention fee", amount=-retention_fee),
    ]
    if tax_withholding:
        rate_percent = (rules.tax_withholding_rate * 100).normalize()
        breakdown.append(
            BreakdownItem(
                description=f"Backup tax withholding ({rate_percent}%, no tax form)",
                amount=-tax_withholding,
            )
        )
    breakdown.append(BreakdownItem(description="Net payout", amount=net_amount))

    return NetPayout(
        gross_amount=gross,
        retention_fee=retention_fee,
        tax_withholding=tax_withholding,
        net_amount=net_amount,
        breakdown=breakdown,
    )


class ApprovalOutcome(BaseModel):
    approvals: list[dict[str, Any]]
    status: PayoutStatus
    approvals_received: int
    approvals_required: int


def apply_approval(
    approvals: Sequence[dict[str, Any]],
    status: PayoutStatus,
    admin_id: str,
    decision: ApprovalDecision,
    required: int,
    now: datetime,
    reason: str | None = None,
) -> ApprovalOutcome:
    """Record one admin decision and work out the resulting payout status.

    Any rejection cancels the payout. Reaching ``required`` approvals moves it
    to ``approved``; otherwise it stays ``pending_approval``. The input list is
    not modified.
    """
    if status != PayoutStatus.PENDING_APPROVAL:
        msg = f"Approval workflow already closed with status {status.value}"
        raise ConflictError(msg)
    if any(existing.get("admin_id") == admin_id for existing in approvals):
        msg = f"Admin {admin_id} has already recorded a decision for this payout"
        raise ConflictError(msg)

    updated = [
        *approvals,
        {
            "admin_id": admin_id,
            "decision": decision.value,
            "reason": reason,
            "decided_at": as_utc(now).isoformat(),
        },
    ]
    received = sum(1 for item in updated if item["decision"] == ApprovalDecision.APPROVED.value)

    if decision == ApprovalDecision.REJECTED:
        new_status = PayoutStatus.CANCELLED
    elif received >= required:
        new_status = PayoutStatus.APPROVED
    else:
        new_status = PayoutStatus.PENDING_APPROVAL

    return ApprovalOutcome(
        approvals=updated,
        status=new_status,
        approvals_received=received,
        approvals_required=required,
    )


def membership_removal_date(completed_at: datetime, rules: BusinessRules) -> datetime:
    return add_months(as_utc(completed_at), rules.membership_removal_delay_months)


# Statuses a payout may move to once it leaves the approval workflow. A failed
# payment can be sent again; completed and cancelled payouts are final.
PAYOUT_TRANSITIONS: dict[PayoutStatus, frozenset[PayoutStatus]] = {
    PayoutStatus.APPROVED: frozenset(
        {
            PayoutStatus.SCHEDULED,
            PayoutStatus.PROCESSING,
            PayoutStatus.COMPLETED,
            PayoutStatus.FAILED,
        }
    ),
    PayoutStatus.SCHEDULED: frozenset(
        {PayoutStatus.PROCESSING, PayoutStatus.COMPLETED, PayoutStatus.FAILED}
    ),
    PayoutStatus.PROCESSING: frozenset({PayoutStatus.COMPLETED, PayoutStatus.FAILED}),
    PayoutStatus.FAILED: frozenset({PayoutStatus.PROCESSING}),
}


def check_transition(current: PayoutStatus, target: PayoutStatus) -> None:
    """Raise ``ConflictError`` unless ``current`` may move to ``target``.

    ``pending_approval`` is absent from the table: only ``apply_approval``
    moves a payout out of it.
    """
    if target not in PAYOUT_TRANSITIONS.get(current, frozenset()):
        msg = f"Payout in status {current.value} cannot move to {target.value}"
        raise ConflictError(msg)


def validate_schedule_date(scheduled_date: date, now: datetime) -> None:
    today = as_utc(now).date()
    if scheduled_date < today:
        msg = f"Scheduled date {scheduled_date.isoformat()} is before today ({today.isoformat()})"
        raise ValueError(msg)
