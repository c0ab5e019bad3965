"""Prometheus ASGI app for /metrics with business metrics.

Record metrics AFTER successful operations (post-commit):

    from tenure.core.metrics import payments_recorded_total
    from tenure.core.config import settings

    await session.commit()
    payments_recorded_total.labels(
        environment=settings.environment, payment_type=payment.payment_type.value
    ).inc()
"""

from prometheus_client import Counter, Gauge, Histogram, make_asgi_app

members_created_total = Counter(
    "members_created_total",
    "Total number of members created",
    ["environment"],
)

payments_recorded_total = Counter(
    "payments_recorded_total",
    "Total number of payment events recorded",
    ["environment", "payment_type"],
)

defaults_enforced_total = Counter(
    "defaults_enforced_total",
    "Total number of members moved to defaulted by enforcement",
    ["environment"],
)

memberships_removed_total = Counter(
    "memberships_removed_total",
    "Total number of memberships removed after the post-payout period",
    ["environment"],
)

payouts_created_total = Counter(
    "payouts_created_total",
    "Total number of payouts created for selected winners",
    ["environment"],
)

payouts_completed_total = Counter(
    "payouts_completed_total",
    "Total number of payouts marked completed",
    ["environment"],
)

payouts_failed_total = Counter(
    "payouts_failed_total",
    "Total number of payout payments reported as failed",
    ["environment"],
)

queue_size_gauge = Gauge(
    "queue_size",
    "Number of members in the active queue at the last rebuild",
    ["environment"],
)

eligible_members_gauge = Gauge(
    "eligible_members",
    "Number of payout-eligible members at the last rebuild",
    ["environment"],
)

queue_build_duration_seconds = Histogram(
    "queue_build_duration_seconds",
    "Time spent loading snapshots and ranking the queue",
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
)

activity_log_entries_created = Counter(
    "activity_log_entries_created",
    "Total number of activity log entries created",
    ["resource_type", "action"],
)

metrics_app = make_asgi_app()
