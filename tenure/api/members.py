from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from fastapi_pagination import Page
from fastapi_pagination.ext.sqlalchemy import apaginate

from tenure.core.activity_logging import log_activity_decorator
from tenure.core.pagination import ParamsDep
from tenure.db.session import SessionDep
from tenure.models.activity_log import ActivityAction
from tenure.models.member import MemberCreate, MemberRead, MemberStatus, MemberUpdate
from tenure.models.payment import PaymentRead
from tenure.services.member_service import (
    create_member,
    get_member,
    list_members_query,
    update_member,
)
from tenure.services.payment_service import list_member_payments

router = APIRouter(prefix="/members", tags=["members"])


@router.post("", response_model=MemberRead, status_code=status.HTTP_201_CREATED)
@log_activity_decorator(ActivityAction.CREATE, "member")
async def create_member_endpoint(
    payload: MemberCreate,
    session: SessionDep,
) -> MemberRead:
    member = await create_member(session, payload)
    return MemberRead.model_validate(member)


@router.get("", response_model=Page[MemberRead])
async def list_members_endpoint(
    session: SessionDep,
    params: ParamsDep,
    member_status: MemberStatus | None = None,
) -> Page[MemberRead]:
    return await apaginate(session, list_members_query(member_status), params)


@router.get("/{member_id}", response_model=MemberRead)
async def get_member_endpoint(
    member_id: UUID,
    session: SessionDep,
) -> MemberRead:
    member = await get_member(session, member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    return MemberRead.model_validate(member)


@router.patch("/{member_id}", response_model=MemberRead)
@log_activity_decorator(ActivityAction.UPDATE, "member")
async def update_member_endpoint(
    member_id: UUID,
    payload: MemberUpdate,
    session: SessionDep,
) -> MemberRead:
    member = await get_member(session, member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    updated = await update_member(session, member, payload)
    return MemberRead.model_validate(updated)


@router.get("/{member_id}/payments", response_model=list[PaymentRead])
async def list_member_payments_endpoint(
    member_id: UUID,
    session: SessionDep,
) -> list[PaymentRead]:
    member = await get_member(session, member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    payments = await list_member_payments(session, member_id)
    return [PaymentRead.model_validate(payment) for payment in payments]
