"""Alembic environment for the health read tables.

Migrations run synchronously through psycopg. The URL comes from
``-x database_url=...`` when given, otherwise from application settings
with the async driver swapped out.
"""

from logging.config import fileConfig

from sqlalchemy import create_engine, pool

from alembic import context
from health_context.core.config import settings
from health_context.models import Base  # registers all models on Base.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

MIGRATION_OPTIONS = {
    "target_metadata": target_metadata,
    "compare_type": True,
}


def migration_url() -> str:
    """Synchronous database URL for migrations."""
    url = context.get_x_argument(as_dictionary=True).get("database_url") or settings.database_url
    return url.replace("+asyncpg", "+psycopg").replace("+aiosqlite", "")


def run_offline() -> None:
    """Emit SQL to stdout instead of executing it."""
    context.configure(
        url=migration_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **MIGRATION_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    """Apply migrations on a live connection."""
    engine = create_engine(migration_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, **MIGRATION_OPTIONS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
