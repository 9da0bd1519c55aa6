from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from factory_ops.db_migrations import to_sqlalchemy_url


config = context.config

if config.config_file_name is not None:
    # Keep factory_ops.* loggers alive when migrations run inside the app process.
    fileConfig(config.config_file_name, disable_existing_loggers=False)

# Schema is raw SQL; there is no declarative metadata to autogenerate from.
target_metadata = None


def _database_url() -> str:
    env_url = os.environ.get("DATABASE_URL")
    configured_url = config.get_main_option("sqlalchemy.url")
    return to_sqlalchemy_url(env_url or configured_url)


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def run_migrations_offline() -> None:
    url = _database_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=_is_sqlite(url),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = _database_url()
    section = config.get_section(config.config_ini_section) or {}
    section["sqlalchemy.url"] = url

    connectable = engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        future=True,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=_is_sqlite(url),
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
