"""Alembic migration environment configuration.

- Loads SQLAlchemy models for autogenerate support
- Takes the database URL from the environment or the application settings
- Supports both online and offline migration modes
"""

import os
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import create_engine, pool

# Importing the models registers every table with the metadata
from epets.db.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _include_object(
    _obj: Any,
    _name: str | None,
    _type: str,
    _reflected: bool,
    _compare_to: Any | None,
) -> bool:
    """Include all objects in autogenerate comparisons."""
    return True


def get_url() -> str:
    """Get the synchronous database URL.

    Priority:
    1. DATABASE_URL environment variable
    2. sqlalchemy.url from alembic.ini
    3. EPETS_DATABASE__URL via the application settings
    """
    url = os.environ.get("DATABASE_URL") or config.get_main_option("sqlalchemy.url", "")
    if not url:
        from epets.core.config import Settings

        url = str(Settings().database.url)
    # Migrations run on the synchronous psycopg driver
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode.

    Generates SQL script without connecting to database.
    """
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        include_object=_include_object,
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    # NullPool closes connections as soon as migrations finish
    connectable = create_engine(get_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            include_object=_include_object,
            compare_type=True,
            compare_server_default=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
