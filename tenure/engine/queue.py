"""Queue ranking and queue read models (BR-5, BR-6, BR-9).

``rank_queue`` is the single place where queue positions are assigned.
Everything else in this module filters or summarizes its output.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from tenure.engine.payment_status import PaymentHealth, evaluate_payment_status
from tenure.engine.rules import BusinessRules
from tenure.engine.tenure import (
    PaymentRecord,
    as_utc,
    continuous_tenure_months,
    current_tenure_payments,
    has_continuous_tenure,
    qualifying_payments,
)
from tenure.models.member import KycStatus, MemberStatus
from tenure.models.subscription import GOOD_STANDING_STATUSES, SubscriptionStatus

DEFAULT_WINDOW_RADIUS = 2


class MemberSnapshot(BaseModel):
    """Everything the ranking needs to know about one member."""

    member_id: UUID
    email: str
    first_name: str
    middle_name: str | None = None
    last_name: str
    status: MemberStatus
    kyc_status: KycStatus
    subscription_status: SubscriptionStatus | None = None
    payments: list[PaymentRecord] = Field(default_factory=list)
    has_received_payout: bool = False

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(part for part in parts if part)


class QueueEntry(BaseModel):
    member_id: UUID
    email: str
    first_name: str
    middle_name: str | None
    last_name: str
    full_name: str
    queue_position: int
    member_status: MemberStatus
    kyc_status: KycStatus
    subscription_status: SubscriptionStatus | None
    tenure_start: datetime
    last_payment_date: datetime
    total_successful_payments: int
    lifetime_payment_total: Decimal
    continuous_tenure_months: int
    has_continuous_tenure: bool
    payment_status: PaymentHealth
    is_in_default: bool
    meets_time_requirement: bool
    is_eligible: bool
    has_received_payout: bool = False

    @property
    def subscription_in_good_standing(self) -> bool:
        return self.subscription_status in GOOD_STANDING_STATUSES


class QueueStatistics(BaseModel):
    total_members: int
    active_members: int
    eligible_members: int
    meeting_time_requirement: int
    total_revenue: Decimal
    oldest_tenure_start: datetime | None
    newest_tenure_start: datetime | None
    potential_winners: int
    payout_threshold: Decimal
    received_payouts: int


class ContinuousTenureStatistics(BaseModel):
    total_eligible_members: int
    average_tenure: int
    longest_tenure: int
    active_members: int
    total_payments: Decimal


class ContinuousTenureRanking(BaseModel):
    members: list[QueueEntry]
    statistics: ContinuousTenureStatistics


def rank_queue(
    snapshots: Iterable[MemberSnapshot], now: datetime, rules: BusinessRules
) -> list[QueueEntry]:
    """Build the active queue ordered by tenure start.

    A member is queued when they are ``active``, have at least one qualifying
    payment and have not been paid out. Tenure starts at the first qualifying
    payment after the member last lapsed, so a reinstated member queues
    behind everyone who kept paying. Ties on tenure start are broken by
    member id so the order is total and repeatable. Positions run 1..N with
    no gaps.
    """
    now = as_utc(now)
    candidates: list[tuple[datetime, MemberSnapshot, list[PaymentRecord]]] = []
    for snapshot in snapshots:
        if snapshot.status != MemberStatus.ACTIVE or snapshot.has_received_payout:
            continue
        current = current_tenure_payments(snapshot.payments, rules)
        if not current:
            continue
        candidates.append((current[0].payment_date, snapshot, current))

    candidates.sort(key=lambda item: (item[0], item[1].member_id))

    return [
        _build_entry(position, start, snapshot, current, now, rules)
        for position, (start, snapshot, current) in enumerate(candidates, start=1)
    ]


def _build_entry(
    position: int,
    start: datetime,
    snapshot: MemberSnapshot,
    current: list[PaymentRecord],
    now: datetime,
    rules: BusinessRules,
) -> QueueEntry:
    # Totals and the time requirement cover the whole payment history.
    qualifying = qualifying_payments(snapshot.payments)
    report = evaluate_payment_status(snapshot.member_id, snapshot.payments, now, rules)
    continuous = has_continuous_tenure(current, now, rules)
    in_good_standing = snapshot.subscription_status in GOOD_STANDING_STATUSES
    is_eligible = (
        continuous
        and not report.is_in_default
        and in_good_standing
        and snapshot.kyc_status != KycStatus.REJECTED
    )
    return QueueEntry(
        member_id=snapshot.member_id,
        email=snapshot.email,
        first_name=snapshot.first_name,
        middle_name=snapshot.middle_name,
        last_name=snapshot.last_name,
        full_name=snapshot.full_name,
        queue_position=position,
        member_status=snapshot.status,
        kyc_status=snapshot.kyc_status,
        subscription_status=snapshot.subscription_status,
        tenure_start=start,
        last_payment_date=qualifying[-1].payment_date,
        total_successful_payments=len(qualifying),
        lifetime_payment_total=sum((p.amount for p in qualifying), Decimal("0")),
        continuous_tenure_months=continuous_tenure_months(start, now),
        has_continuous_tenure=continuous,
        payment_status=report.status,
        is_in_default=report.is_in_default,
        meets_time_requirement=len(qualifying) >= rules.time_requirement_payments,
        is_eligible=is_eligible,
    )


def find_entry(entries: Iterable[QueueEntry], member_id: UUID) -> QueueEntry | None:
    return next((entry for entry in entries if entry.member_id == member_id), None)


def queue_statistics(
    entries: Sequence[QueueEntry], rules: BusinessRules, *, received_payouts: int = 0
) -> QueueStatistics:
    eligible = sum(1 for entry in entries if entry.is_eligible)
    starts = [entry.tenure_start for entry in entries]
    return QueueStatistics(
        total_members=len(entries),
        active_members=sum(1 for entry in entries if entry.subscription_in_good_standing),
        eligible_members=eligible,
        meeting_time_requirement=sum(1 for entry in entries if entry.meets_time_requirement),
        total_revenue=sum((entry.lifetime_payment_total for entry in entries), Decimal("0")),
        oldest_tenure_start=min(starts) if starts else None,
        newest_tenure_start=max(starts) if starts else None,
        potential_winners=min(rules.max_winners_per_payout, eligible),
        payout_threshold=rules.payout_threshold,
        received_payouts=received_payouts,
    )


def search_queue(entries: Iterable[QueueEntry], term: str | None) -> list[QueueEntry]:
    """Case-insensitive match on email, any name part or member id."""
    needle = (term or "").strip().lower()
    if not needle:
        return list(entries)

    def matches(entry: QueueEntry) -> bool:
        haystack = [
            entry.email,
            entry.first_name,
            entry.middle_name or "",
            entry.last_name,
            entry.full_name,
            str(entry.member_id),
        ]
        return any(needle in value.lower() for value in haystack)

    return [entry for entry in entries if matches(entry)]


def window(
    entries: Iterable[QueueEntry],
    current_position: int,
    radius: int = DEFAULT_WINDOW_RADIUS,
) -> list[QueueEntry]:
    """Entries within ``radius`` places of ``current_position``."""
    return [
        entry for entry in entries if abs(entry.queue_position - current_position) <= radius
    ]


def paginate(entries: Sequence[QueueEntry], limit: int, offset: int) -> list[QueueEntry]:
    if limit < 1 or offset < 0:
        msg = "limit must be positive and offset non-negative"
        raise ValueError(msg)
    return list(entries[offset : offset + limit])


def continuous_tenure_ranking(entries: Iterable[QueueEntry]) -> ContinuousTenureRanking:
    """Eligible members, longest continuous tenure first, then queue position."""
    eligible = [entry for entry in entries if entry.is_eligible]
    ranked = sorted(
        eligible,
        key=lambda entry: (-entry.continuous_tenure_months, entry.queue_position),
    )

    average = 0
    if ranked:
        mean = Decimal(sum(e.continuous_tenure_months for e in ranked)) / len(ranked)
        average = int(mean.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    statistics = ContinuousTenureStatistics(
        total_eligible_members=len(ranked),
        average_tenure=average,
        longest_tenure=max((e.continuous_tenure_months for e in ranked), default=0),
        active_members=sum(1 for e in ranked if e.subscription_in_good_standing),
        total_payments=sum((e.lifetime_payment_total for e in ranked), Decimal("0")),
    )
    return ContinuousTenureRanking(members=ranked, statistics=statistics)
