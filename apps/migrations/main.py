from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Mapping

from psycopg.conninfo import conninfo_to_dict
from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Connection
from sqlalchemy.engine.url import make_url

from alembic import command
from alembic.config import Config

_SECURITY_PG_DSN_ENV = "SECURITY_PG_DSN"
_DEFAULT_LOCK_KEY = 70412339105
_POSTGRES_URL_PREFIXES: tuple[str, ...] = (
    "postgresql+psycopg://",
    "postgresql://",
    "postgres://",
)
_CONNINFO_URL_KEYS = frozenset({"dbname", "host", "hostaddr", "password", "port", "user"})


def _build_parser() -> argparse.ArgumentParser:
    """
    Build CLI parser for fail-fast security schema migration runner.

    Args:
        None.
    Returns:
        argparse.ArgumentParser: Configured command parser.
    Assumptions:
        Entry point is called from repository root or any nested path.
    Raises:
        None.
    Side Effects:
        None.

    Related:
      - alembic.ini
      - alembic/env.py
    """
    parser = argparse.ArgumentParser(prog="fractown-migrations")
    parser.add_argument(
        "--dsn",
        default="",
        help=f"Postgres DSN. Falls back to ${_SECURITY_PG_DSN_ENV} when omitted.",
    )
    parser.add_argument(
        "--lock-key",
        type=int,
        default=_DEFAULT_LOCK_KEY,
        help="Advisory lock key held with pg_advisory_lock while upgrading.",
    )
    parser.add_argument(
        "--revision",
        default="head",
        help="Target Alembic revision.",
    )
    return parser


def _resolve_dsn(*, arg_dsn: str, environ: Mapping[str, str]) -> str:
    """
    Resolve Postgres DSN from CLI argument or `SECURITY_PG_DSN`.

    Args:
        arg_dsn: CLI `--dsn` value.
        environ: Environment mapping.
    Returns:
        str: Non-empty normalized DSN string.
    Assumptions:
        CLI value wins over environment.
    Raises:
        ValueError: If DSN is missing.
    Side Effects:
        None.
    """
    dsn = arg_dsn.strip() or environ.get(_SECURITY_PG_DSN_ENV, "").strip()
    if not dsn:
        raise ValueError(f"Migration DSN is required via --dsn or {_SECURITY_PG_DSN_ENV}")
    return dsn


def _build_alembic_config(*, repo_root: Path) -> Config:
    """
    Build Alembic configuration bound to repository `alembic/` scripts.

    Args:
        repo_root: Repository root path.
    Returns:
        Config: Ready-to-run Alembic configuration.
    Assumptions:
        `alembic.ini` and `alembic/` live in repository root.
    Raises:
        ValueError: If alembic.ini is missing.
    Side Effects:
        None.
    """
    alembic_ini = repo_root / "alembic.ini"
    if not alembic_ini.exists():
        raise ValueError(f"Missing Alembic config file: {alembic_ini}")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(repo_root / "alembic"))
    return config


def _upgrade_under_lock(
    *,
    config: Config,
    sqlalchemy_url: URL,
    lock_key: int,
    revision: str,
) -> None:
    """
    Run `alembic upgrade <revision>` while holding Postgres advisory lock.

    Args:
        config: Prepared Alembic config.
        sqlalchemy_url: SQLAlchemy URL with psycopg driver.
        lock_key: Advisory lock key.
        revision: Target revision.
    Returns:
        None.
    Assumptions:
        Advisory lock must be held on the same connection used by Alembic.
    Raises:
        Exception: Any DB or Alembic failure is propagated for fail-fast startup.
    Side Effects:
        Applies DB schema migrations.
    """
    engine = create_engine(sqlalchemy_url, pool_pre_ping=True)
    with engine.connect() as connection:
        _acquire_pg_advisory_lock(connection=connection, lock_key=lock_key)
        try:
            config.attributes["connection"] = connection
            print(f"Running: alembic upgrade {revision}")
            command.upgrade(config, revision)
            connection.commit()
            print("Migration success")
        except Exception:  # noqa: BLE001
            connection.rollback()
            raise
        finally:
            _release_pg_advisory_lock(connection=connection, lock_key=lock_key)
            connection.commit()


def _acquire_pg_advisory_lock(*, connection: Connection, lock_key: int) -> None:
    print(f"Acquiring pg_advisory_lock({lock_key})")
    connection.execute(text("SELECT pg_advisory_lock(:lock_key)"), {"lock_key": lock_key})


def _release_pg_advisory_lock(*, connection: Connection, lock_key: int) -> None:
    print(f"Releasing pg_advisory_lock({lock_key})")
    connection.execute(text("SELECT pg_advisory_unlock(:lock_key)"), {"lock_key": lock_key})


def to_sqlalchemy_psycopg_url(*, dsn: str) -> URL:
    """
    Normalize DSN to SQLAlchemy psycopg URL from URL DSN or libpq conninfo.

    Args:
        dsn: Raw Postgres DSN; the same value psycopg gateways connect with.
    Returns:
        URL: SQLAlchemy URL using `postgresql+psycopg` dialect.
    Assumptions:
        DSN is either PostgreSQL URL or libpq keyword-value string.
    Raises:
        ValueError: If DSN is empty or unsupported.
    Side Effects:
        None.
    """
    normalized = dsn.strip()
    if not normalized:
        raise ValueError("Postgres DSN cannot be empty")
    if normalized.startswith(_POSTGRES_URL_PREFIXES):
        parsed_url = make_url(normalized)
        if parsed_url.drivername not in {"postgresql", "postgres", "postgresql+psycopg"}:
            raise ValueError("Postgres URL DSN must use postgresql:// or postgres:// scheme")
        return parsed_url.set(drivername="postgresql+psycopg")
    return _conninfo_to_sqlalchemy_url(conninfo_dsn=normalized)


def _conninfo_to_sqlalchemy_url(*, conninfo_dsn: str) -> URL:
    """
    Convert libpq conninfo DSN (`host=... user=...`) to SQLAlchemy URL.

    Args:
        conninfo_dsn: libpq DSN in keyword-value format.
    Returns:
        URL: SQLAlchemy URL; unknown keywords become query parameters.
    Assumptions:
        `psycopg.conninfo.conninfo_to_dict` validates conninfo syntax.
    Raises:
        ValueError: If conninfo is invalid or port is not numeric.
    Side Effects:
        None.
    """
    try:
        fields = conninfo_to_dict(conninfo_dsn)
    except Exception as error:  # noqa: BLE001
        raise ValueError("Postgres DSN must be URL or libpq conninfo format") from error

    raw_port = str(fields.get("port", "")).strip()
    port: int | None = None
    if raw_port:
        try:
            port = int(raw_port)
        except ValueError as error:
            raise ValueError("Conninfo port must be numeric when provided") from error

    host = str(fields.get("host", fields.get("hostaddr", ""))).strip() or None
    return URL.create(
        "postgresql+psycopg",
        username=str(fields.get("user", "")).strip() or None,
        password=str(fields.get("password", "")).strip() or None,
        host=host,
        port=port,
        database=str(fields.get("dbname", "")).strip() or None,
        query={
            key: str(value)
            for key, value in sorted(fields.items())
            if key not in _CONNINFO_URL_KEYS and str(value)
        },
    )


def main(argv: list[str] | None = None) -> int:
    """
    Run fail-fast migration flow with advisory lock.

    Args:
        argv: Optional CLI argument list without program name.
    Returns:
        int: Zero on success, non-zero on failure.
    Assumptions:
        Deploy pipeline runs migrations before starting API workers.
    Raises:
        None.
    Side Effects:
        Reads environment, connects to Postgres, applies migrations, prints status lines.

    Related:
      - alembic/env.py
      - alembic/versions/20261019_0001_security_core_v1.py
    """
    args = _build_parser().parse_args(argv)

    try:
        dsn = _resolve_dsn(arg_dsn=args.dsn, environ=os.environ)
        sqlalchemy_url = to_sqlalchemy_psycopg_url(dsn=dsn)
        repo_root = Path(__file__).resolve().parents[2]
        config = _build_alembic_config(repo_root=repo_root)
        _upgrade_under_lock(
            config=config,
            sqlalchemy_url=sqlalchemy_url,
            lock_key=args.lock_key,
            revision=args.revision,
        )
    except Exception as error:  # noqa: BLE001
        print(f"Migration failed: {error}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
