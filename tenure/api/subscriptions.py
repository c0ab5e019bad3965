from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from tenure.core.activity_logging import log_activity_decorator
from tenure.db.session import SessionDep
from tenure.models.activity_log import ActivityAction
from tenure.models.subscription import SubscriptionCreate, SubscriptionRead, SubscriptionUpdate
from tenure.services.member_service import get_member
from tenure.services.subscription_service import (
    create_subscription,
    get_subscription,
    update_subscription,
)

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.post("", response_model=SubscriptionRead, status_code=status.HTTP_201_CREATED)
@log_activity_decorator(ActivityAction.CREATE, "subscription")
async def create_subscription_endpoint(
    payload: SubscriptionCreate,
    session: SessionDep,
) -> SubscriptionRead:
    member = await get_member(session, payload.member_id)
    if not member:
        raise HTTPException(status_code=400, detail="Member does not exist")
    subscription = await create_subscription(session, payload)
    return SubscriptionRead.model_validate(subscription)


@router.get("/{subscription_id}", response_model=SubscriptionRead)
async def get_subscription_endpoint(
    subscription_id: UUID,
    session: SessionDep,
) -> SubscriptionRead:
    subscription = await get_subscription(session, subscription_id)
    if not subscription:
        raise HTTPException(status_code=404, detail="Subscription not found")
    return SubscriptionRead.model_validate(subscription)


@router.patch("/{subscription_id}", response_model=SubscriptionRead)
@log_activity_decorator(ActivityAction.UPDATE, "subscription")
async def update_subscription_endpoint(
    subscription_id: UUID,
    payload: SubscriptionUpdate,
    session: SessionDep,
) -> SubscriptionRead:
    subscription = await get_subscription(session, subscription_id)
    if not subscription:
        raise HTTPException(status_code=404, detail="Subscription not found")
    updated = await update_subscription(session, subscription, payload)
    return SubscriptionRead.model_validate(updated)
