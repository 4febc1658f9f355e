from __future__ import annotations

import os

from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import Connection

from alembic import context

config = context.config

target_metadata = None

_SECURITY_PG_DSN_ENV = "SECURITY_PG_DSN"


def _resolve_sqlalchemy_url() -> str | None:
    """
    Resolve SQLAlchemy URL from `SECURITY_PG_DSN` or `alembic.ini`.

    Args:
        None.
    Returns:
        str | None: URL with `postgresql+psycopg` driver, or ini value when env is unset.
    Assumptions:
        Env value may be URL or libpq conninfo DSN.
    Raises:
        ValueError: If env DSN cannot be normalized.
    Side Effects:
        Reads process environment.
    """
    raw_dsn = os.environ.get(_SECURITY_PG_DSN_ENV, "").strip()
    if not raw_dsn:
        return config.get_main_option("sqlalchemy.url")
    from apps.migrations.main import to_sqlalchemy_psycopg_url

    return to_sqlalchemy_psycopg_url(dsn=raw_dsn).render_as_string(hide_password=False)


def run_migrations_offline() -> None:
    """
    Run Alembic migrations in offline mode.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        SQL URL is provided via `SECURITY_PG_DSN` or `alembic.ini`.
    Raises:
        Exception: Alembic configuration/runtime errors.
    Side Effects:
        Emits SQL statements without opening DB connection.

    Related:
      - alembic/versions/20261019_0001_security_core_v1.py
      - apps/migrations/main.py
    """
    context.configure(
        url=_resolve_sqlalchemy_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """
    Run Alembic migrations in online mode using injected or constructed SQLAlchemy connection.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Optional injected connection comes from `apps.migrations.main` advisory-lock flow.
    Raises:
        Exception: Alembic configuration/runtime errors.
    Side Effects:
        Opens DB connection (when not injected) and applies schema changes.
    """
    injected_connection = config.attributes.get("connection")
    if isinstance(injected_connection, Connection):
        context.configure(
            connection=injected_connection,
            target_metadata=target_metadata,
        )
        with context.begin_transaction():
            context.run_migrations()
        return

    section = dict(config.get_section(config.config_ini_section, {}))
    resolved_url = _resolve_sqlalchemy_url()
    if resolved_url:
        section["sqlalchemy.url"] = resolved_url
    connectable = engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
