"""Alembic environment for the caseintake schema.

``upgrade_head`` hands over an open connection through
``config.attributes["connection"]``; the ``alembic`` command line falls back
to ``sqlalchemy.url`` or the configured database URI.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from alembic import context
from sqlalchemy import create_engine, pool

from caseintake.adapters.sqlalchemy.mappings import mapper_registry, start_mappers
from caseintake.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

start_mappers()

config = context.config
target_metadata = mapper_registry.metadata


def _database_url() -> str:
    return config.get_main_option("sqlalchemy.url") or get_database_config().uri


def _migrate(connection: Connection) -> None:
    # SQLite cannot ALTER most columns in place.
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=True,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    context.configure(url=_database_url(), target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connection = config.attributes.get("connection")
    if connection is not None:
        _migrate(connection)
        return

    engine = create_engine(_database_url(), poolclass=pool.NullPool)
    try:
        with engine.connect() as owned:
            _migrate(owned)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
