"""
Alembic environment configuration for PropCare.

Runs migrations through the async engine (asyncmy for MySQL, aiosqlite locally).
"""

import asyncio
import os
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context

# CONFIG must point at a YAML file before propcare_backend is imported
os.environ.setdefault("CONFIG", "resources/config/local.yaml")

from propcare_backend.config import settings  # noqa: E402
from propcare_backend.database import Base, connect_args  # noqa: E402

# Register every table with Base.metadata
from propcare_backend.modules.assignments import (  # noqa: E402, F401
    models as assignment_models,
)
from propcare_backend.modules.auth import models as auth_models  # noqa: E402, F401
from propcare_backend.modules.directory import (  # noqa: E402, F401
    models as directory_models,
)
from propcare_backend.modules.maintenance import (  # noqa: E402, F401
    models as maintenance_models,
)

config = context.config
config.set_main_option("sqlalchemy.url", settings.database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit migration SQL without a database connection."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        # SQLite can only alter tables by copying them
        render_as_batch=connection.dialect.name == "sqlite",
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = settings.database_url

    connectable = async_engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        connect_args=connect_args,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
