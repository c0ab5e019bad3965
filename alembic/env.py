"""Alembic environment for the tenure schema.

The URL is ``sqlalchemy.url`` when alembic.ini or a test fixture sets it,
otherwise ``DATABASE_URL`` from the service settings. SQLite URLs migrate in
batch mode so ALTER-style operations keep working there.
"""

import asyncio
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.ext.asyncio import async_engine_from_config
from sqlmodel import SQLModel
from tenure.core.config import settings
from tenure.db import base  # noqa: F401
from tenure.db.session import is_sqlite_url

alembic_config = context.config
if alembic_config.config_file_name:
    fileConfig(alembic_config.config_file_name, disable_existing_loggers=False)

database_url = alembic_config.get_main_option("sqlalchemy.url") or settings.database_url
alembic_config.set_main_option("sqlalchemy.url", database_url)


def configure_context(**options: Any) -> None:
    context.configure(
        target_metadata=SQLModel.metadata,
        compare_type=True,
        render_as_batch=is_sqlite_url(database_url),
        **options,
    )


def migrate(connection: Connection) -> None:
    configure_context(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def migrate_async() -> None:
    async_engine = async_engine_from_config(
        alembic_config.get_section(alembic_config.config_ini_section) or {},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    try:
        async with async_engine.connect() as connection:
            await connection.run_sync(migrate)
    finally:
        await async_engine.dispose()


if context.is_offline_mode():
    configure_context(url=database_url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()
else:
    # pytest-alembic passes its own synchronous engine or connection.
    provided = alembic_config.attributes.get("connection")
    if isinstance(provided, Engine):
        with provided.connect() as sync_connection:
            migrate(sync_connection)
    elif provided is not None:
        migrate(provided)
    else:
        asyncio.run(migrate_async())
