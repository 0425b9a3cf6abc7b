"""Alembic environment for the boardsync primary store.

Migrations run online only, over the same async engine factory the service
uses, against ``DATABASE_URL`` (or ``alembic -x url=...``).  PostgreSQL and
SQLite are the supported dialects; SQLite needs batch mode for ALTERs.
"""

import asyncio
from logging.config import fileConfig

from alembic import context

from boardsync.config import settings
from boardsync.database import Base, create_engine

import boardsync.models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def do_run_migrations(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=Base.metadata,
        render_as_batch=connection.dialect.name == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations() -> None:
    url = context.get_x_argument(as_dictionary=True).get("url", settings.DATABASE_URL)
    engine = create_engine(url, echo=False)
    async with engine.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await engine.dispose()


if context.is_offline_mode():
    raise SystemExit("boardsync migrations run online only; drop --sql")

asyncio.run(run_migrations())
