"""Alembic environment for the completion schema.

Migrations run synchronously through psycopg2 against
``Settings.sync_database_url``; without DATABASE_URL the URL in
alembic.ini is used (offline SQL generation, local runs).
"""

from __future__ import annotations

from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context
from completion.core.config import SETTINGS
from completion.db.engine import Base

config = context.config

if SETTINGS.sync_database_url:
    config.set_main_option("sqlalchemy.url", SETTINGS.sync_database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

import completion.db.tables  # noqa: E402, F401

target_metadata = Base.metadata

_CONFIGURE_OPTS = {
    "target_metadata": target_metadata,
    "compare_type": True,
    "compare_server_default": True,
}


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_CONFIGURE_OPTS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, **_CONFIGURE_OPTS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
