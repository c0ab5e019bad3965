from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from tenure.core.activity_logging import log_activity_decorator
from tenure.db.session import SessionDep
from tenure.models.activity_log import ActivityAction
from tenure.models.payment import PaymentCreate, PaymentRead, PaymentUpdate
from tenure.services.member_service import get_member
from tenure.services.payment_service import get_payment, record_payment, update_payment_status

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("", response_model=PaymentRead, status_code=status.HTTP_201_CREATED)
@log_activity_decorator(ActivityAction.CREATE, "payment")
async def record_payment_endpoint(
    payload: PaymentCreate,
    session: SessionDep,
) -> PaymentRead:
    member = await get_member(session, payload.member_id)
    if not member:
        raise HTTPException(status_code=400, detail="Member does not exist")
    payment = await record_payment(session, payload)
    return PaymentRead.model_validate(payment)


@router.get("/{payment_id}", response_model=PaymentRead)
async def get_payment_endpoint(
    payment_id: UUID,
    session: SessionDep,
) -> PaymentRead:
    payment = await get_payment(session, payment_id)
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    return PaymentRead.model_validate(payment)


@router.patch("/{payment_id}", response_model=PaymentRead)
@log_activity_decorator(ActivityAction.UPDATE, "payment")
async def update_payment_endpoint(
    payment_id: UUID,
    payload: PaymentUpdate,
    session: SessionDep,
) -> PaymentRead:
    payment = await get_payment(session, payment_id)
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    updated = await update_payment_status(session, payment, payload)
    return PaymentRead.model_validate(updated)
