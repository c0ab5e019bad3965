from uuid import UUID

from sqlalchemy import Select, select
from sqlmodel import col

from tenure.models.activity_log import ActivityAction, ActivityLog


def list_activity_logs_query(
    resource_type: str | None = None,
    resource_id: UUID | None = None,
    action: ActivityAction | None = None,
) -> Select[tuple[ActivityLog]]:
    """Newest entries first."""
    query = select(ActivityLog).order_by(col(ActivityLog.created_at).desc(), col(ActivityLog.id))
    if resource_type is not None:
        query = query.where(col(ActivityLog.resource_type) == resource_type)
    if resource_id is not None:
        query = query.where(col(ActivityLog.resource_id) == resource_id)
    if action is not None:
        query = query.where(col(ActivityLog.action) == action.value)
    return query
