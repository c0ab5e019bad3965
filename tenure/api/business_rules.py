from uuid import UUID

from fastapi import APIRouter, HTTPException

from tenure.api.deps import NowDep, RulesDep
from tenure.db.session import SessionDep
from tenure.engine.payment_status import PaymentStatusReport
from tenure.engine.payout import PayoutConditions
from tenure.engine.queue import ContinuousTenureRanking, continuous_tenure_ranking
from tenure.services.business_rules_service import (
    TenureStart,
    get_payment_status,
    get_payout_conditions,
    get_tenure_start,
)
from tenure.services.enforcement_service import EnforcementReport, enforce_business_rules
from tenure.services.member_service import get_member
from tenure.services.queue_service import build_queue

router = APIRouter(prefix="/business-rules", tags=["business-rules"])


@router.get("/tenure-start/{member_id}", response_model=TenureStart)
async def get_tenure_start_endpoint(
    member_id: UUID, session: SessionDep, rules: RulesDep
) -> TenureStart:
    member = await get_member(session, member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    return await get_tenure_start(session, member_id, rules)


@router.get("/continuous-tenure", response_model=ContinuousTenureRanking)
async def get_continuous_tenure_endpoint(
    session: SessionDep,
    now: NowDep,
    rules: RulesDep,
) -> ContinuousTenureRanking:
    return continuous_tenure_ranking(await build_queue(session, now, rules))


@router.get("/payment-status/{member_id}", response_model=PaymentStatusReport)
async def get_payment_status_endpoint(
    member_id: UUID,
    session: SessionDep,
    now: NowDep,
    rules: RulesDep,
) -> PaymentStatusReport:
    member = await get_member(session, member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    return await get_payment_status(session, member_id, now, rules)


@router.get("/payout-conditions", response_model=PayoutConditions)
async def get_payout_conditions_endpoint(
    session: SessionDep,
    now: NowDep,
    rules: RulesDep,
) -> PayoutConditions:
    entries = await build_queue(session, now, rules)
    return await get_payout_conditions(session, entries, now, rules)


@router.post("/enforce", response_model=EnforcementReport)
async def enforce_business_rules_endpoint(
    session: SessionDep,
    now: NowDep,
    rules: RulesDep,
) -> EnforcementReport:
    """Apply defaults and membership removals, then report queue and fund state."""
    return await enforce_business_rules(session, now, rules)
