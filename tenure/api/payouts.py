from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from fastapi_pagination import Page
from fastapi_pagination.ext.sqlalchemy import apaginate

from tenure.api.deps import NowDep, RulesDep
from tenure.core.pagination import ParamsDep
from tenure.db.session import SessionDep
from tenure.models.payout import (
    ApprovalCreate,
    PaymentFailure,
    PaymentSent,
    PayoutCreate,
    PayoutRead,
    PayoutSchedule,
    PayoutStatus,
)
from tenure.services.payout_service import (
    PayoutRound,
    complete_payout,
    create_payouts,
    get_payout,
    list_payouts_query,
    mark_payment_sent,
    record_payment_failure,
    schedule_payout,
    submit_approval,
)

router = APIRouter(prefix="/payouts", tags=["payouts"])


@router.post("", response_model=PayoutRound, status_code=status.HTTP_201_CREATED)
async def create_payouts_endpoint(
    payload: PayoutCreate,
    session: SessionDep,
    now: NowDep,
    rules: RulesDep,
) -> PayoutRound:
    return await create_payouts(session, payload, now, rules)


@router.get("", response_model=Page[PayoutRead])
async def list_payouts_endpoint(
    session: SessionDep,
    params: ParamsDep,
    payout_status: PayoutStatus | None = None,
    member_id: UUID | None = None,
) -> Page[PayoutRead]:
    return await apaginate(session, list_payouts_query(payout_status, member_id), params)


@router.get("/{payout_id}", response_model=PayoutRead)
async def get_payout_endpoint(payout_id: UUID, session: SessionDep) -> PayoutRead:
    payout = await get_payout(session, payout_id)
    if not payout:
        raise HTTPException(status_code=404, detail="Payout not found")
    return PayoutRead.model_validate(payout)


@router.post("/{payout_id}/approvals", response_model=PayoutRead)
async def submit_approval_endpoint(
    payout_id: UUID,
    payload: ApprovalCreate,
    session: SessionDep,
    now: NowDep,
    rules: RulesDep,
) -> PayoutRead:
    payout = await submit_approval(session, payout_id, payload, now, rules)
    return PayoutRead.model_validate(payout)


@router.post("/{payout_id}/complete", response_model=PayoutRead)
async def complete_payout_endpoint(
    payout_id: UUID,
    session: SessionDep,
    now: NowDep,
    rules: RulesDep,
) -> PayoutRead:
    payout = await complete_payout(session, payout_id, now, rules)
    return PayoutRead.model_validate(payout)


@router.post("/{payout_id}/schedule", response_model=PayoutRead)
async def schedule_payout_endpoint(
    payout_id: UUID,
    payload: PayoutSchedule,
    session: SessionDep,
    now: NowDep,
) -> PayoutRead:
    payout = await schedule_payout(session, payout_id, payload, now)
    return PayoutRead.model_validate(payout)


@router.post("/{payout_id}/processing", response_model=PayoutRead)
async def mark_payment_sent_endpoint(
    payout_id: UUID,
    payload: PaymentSent,
    session: SessionDep,
    now: NowDep,
) -> PayoutRead:
    payout = await mark_payment_sent(session, payout_id, payload, now)
    return PayoutRead.model_validate(payout)


@router.post("/{payout_id}/fail", response_model=PayoutRead)
async def record_payment_failure_endpoint(
    payout_id: UUID,
    payload: PaymentFailure,
    session: SessionDep,
    now: NowDep,
) -> PayoutRead:
    payout = await record_payment_failure(session, payout_id, payload, now)
    return PayoutRead.model_validate(payout)
