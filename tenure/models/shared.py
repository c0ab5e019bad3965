"""Response schemas shared across routers that are not backed by a table."""

from uuid import UUID

from pydantic import BaseModel

from tenure.engine.queue import QueueEntry


class QueuePage(BaseModel):
    items: list[QueueEntry]
    total: int
    limit: int
    offset: int
    search: str | None = None
    current_position: int | None = None


class MemberPosition(BaseModel):
    member_id: UUID
    in_queue: bool
    entry: QueueEntry | None = None
    total_members: int
