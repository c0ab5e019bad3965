"""Engine, session factory and the request-scoped ``SessionDep``.

Tenure talks to PostgreSQL through asyncpg in production. The test suite
points ``DATABASE_URL`` at in-memory SQLite, which needs one shared
connection for the whole process or every new session sees an empty
database.
"""

import logging
from collections.abc import AsyncGenerator
from typing import Annotated, Any

from fastapi import Depends
from pydantic import BaseModel, Field
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from tenure.core.config import Settings, settings
from tenure.core.logging import get_logging_context

LOGGER = logging.getLogger(__name__)


class PoolConfig(BaseModel, frozen=True):
    """Connection pool sizing for server databases; ignored for SQLite."""

    size: int = Field(default=5, ge=1, le=100)
    max_overflow: int = Field(default=10, ge=0, le=100)
    timeout: float = Field(default=30.0, ge=1.0)
    recycle: int = Field(default=1800, ge=-1)
    pre_ping: bool = True

    @classmethod
    def from_settings(cls, config: Settings) -> "PoolConfig":
        return cls(
            size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            timeout=config.db_pool_timeout,
            recycle=config.db_pool_recycle,
            pre_ping=config.db_pool_pre_ping,
        )

    def engine_options(self) -> dict[str, Any]:
        return {
            "pool_size": self.size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.timeout,
            "pool_recycle": self.recycle,
            "pool_pre_ping": self.pre_ping,
        }


def is_sqlite_url(database_url: str) -> bool:
    return make_url(database_url).get_backend_name() == "sqlite"


def create_db_engine(
    database_url: str,
    *,
    echo: bool = False,
    pool: PoolConfig | None = None,
) -> AsyncEngine:
    if is_sqlite_url(database_url):
        options: dict[str, Any] = {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    else:
        options = (pool or PoolConfig()).engine_options()
    return create_async_engine(database_url, echo=echo, **options)


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Rows stay readable after commit; services return them straight to the routers.
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


engine = create_db_engine(
    settings.database_url,
    echo=settings.sqlalchemy_echo,
    pool=PoolConfig.from_settings(settings),
)
async_session_maker: async_sessionmaker[AsyncSession] = create_session_maker(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield one session per request, rolling back if the endpoint raises.

    Services commit explicitly; nothing is committed here.
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            LOGGER.warning("session_rollback", extra=get_logging_context(), exc_info=True)
            await session.rollback()
            raise


SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def init_db(db_engine: AsyncEngine | None = None) -> None:
    """Create every table from the models. Tests only; deployments run Alembic."""
    async with (db_engine or engine).begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)
