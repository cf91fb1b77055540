# alembic/env.py
import asyncio

from alembic import context
from sqlalchemy.ext.asyncio import create_async_engine

from rentals.core.config import get_settings
from rentals.db import models  # noqa: F401  registers tables on Base.metadata
from rentals.db.base import Base

target_metadata = Base.metadata


def run_migrations_offline():
    context.configure(
        url=get_settings().DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online():
    engine = create_async_engine(get_settings().DATABASE_URL)
    async with engine.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
