from uuid import UUID

from fastapi import APIRouter
from fastapi_pagination import Page
from fastapi_pagination.ext.sqlalchemy import apaginate

from tenure.core.pagination import ParamsDep
from tenure.db.session import SessionDep
from tenure.models.activity_log import ActivityAction, ActivityLogRead
from tenure.services.activity_log_service import list_activity_logs_query

router = APIRouter(prefix="/audit-logs", tags=["audit-logs"])


@router.get("", response_model=Page[ActivityLogRead])
async def list_audit_logs_endpoint(
    session: SessionDep,
    params: ParamsDep,
    resource_type: str | None = None,
    resource_id: UUID | None = None,
    action: ActivityAction | None = None,
) -> Page[ActivityLogRead]:
    query = list_activity_logs_query(resource_type, resource_id, action)
    return await apaginate(session, query, params)
