"""Audit trail for record changes and rule decisions.

Entries normally ride along in the caller's session, so an enforcement run
or a payout approval and its audit rows commit or roll back together. Without
a session the entry is written in a short session of its own.

Recording is best-effort: a failure is logged and the primary operation
carries on. ``details`` must stay free of secrets and personal data; the
endpoint decorator only records which payload fields were sent, never their
values.
"""

import logging
from collections.abc import Callable
from functools import wraps
from typing import Any
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from tenure.core.config import settings
from tenure.core.logging import get_logging_context
from tenure.core.metrics import activity_log_entries_created
from tenure.db.session import async_session_maker
from tenure.models.activity_log import ActivityAction, ActivityLog

LOGGER = logging.getLogger(__name__)


async def log_activity(
    action: ActivityAction,
    resource_type: str,
    resource_id: UUID | None = None,
    details: dict[str, Any] | None = None,
    *,
    session: AsyncSession | None = None,
) -> None:
    """Add an ``activity_log`` row for ``resource_type``/``resource_id``.

    With ``session`` the row is only added; the caller commits it.
    """
    if not settings.activity_logging_enabled:
        return

    entry = ActivityLog(
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details or {},
    )
    context = {
        **get_logging_context(),
        "action": action.value,
        "resource_type": resource_type,
        "resource_id": str(resource_id) if resource_id else None,
    }
    try:
        if session is None:
            async with async_session_maker() as own_session:
                own_session.add(entry)
                await own_session.commit()
        else:
            session.add(entry)
    except Exception:  # noqa: BLE001 - the audit trail never fails the operation it records
        LOGGER.exception("activity_logging_failed", extra=context)
        return

    activity_log_entries_created.labels(resource_type=resource_type, action=action.value).inc()
    LOGGER.debug("activity_logged", extra={**context, "own_session": session is None})


def _resource_id(result: Any, kwargs: dict[str, Any], param_name: str | None) -> UUID | None:
    found = getattr(result, "id", None)
    if found is None and isinstance(result, dict):
        found = result.get("id")
    if found is None and param_name is not None:
        found = kwargs.get(param_name)
    return found


def log_activity_decorator(
    action: ActivityAction,
    resource_type: str,
    resource_id_param_name: str | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Audit a record endpoint once it has returned successfully.

    The resource id comes from the response ``id``, else from the path
    parameter ``resource_id_param_name``. The names of the fields sent in
    the endpoint's ``payload`` are stored as ``details["fields"]``. The
    entry goes into the endpoint's ``session`` and is committed here.

    Example:
        @router.patch("/{member_id}", response_model=MemberRead)
        @log_activity_decorator(ActivityAction.UPDATE, "member")
        async def update_member_endpoint(member_id: UUID, payload: MemberUpdate, session: SessionDep):
            ...
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            result = await func(*args, **kwargs)
            session = kwargs.get("session")
            if session is None:
                return result

            details: dict[str, Any] = {}
            payload = kwargs.get("payload")
            if isinstance(payload, BaseModel):
                details["fields"] = sorted(payload.model_dump(exclude_unset=True))

            await log_activity(
                action,
                resource_type,
                _resource_id(result, kwargs, resource_id_param_name),
                details,
                session=session,
            )
            await session.commit()
            return result

        return wrapper

    return decorator
