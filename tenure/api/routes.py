"""API router composition for the service."""

from fastapi import APIRouter

from tenure.api import (
    audit_logs,
    business_rules,
    health,
    members,
    payments,
    payouts,
    ping,
    queue,
    subscriptions,
)

router = APIRouter()
router.include_router(health.router)
router.include_router(ping.router)
router.include_router(members.router)
router.include_router(subscriptions.router)
router.include_router(payments.router)
router.include_router(queue.router)
router.include_router(business_rules.router)
router.include_router(payouts.router)
router.include_router(audit_logs.router)
