from __future__ import annotations

from typing import Any

import pytest
from sqlalchemy.engine import URL

import apps.migrations.main as migrations_main
from alembic.config import Config


def _capture_upgrade(monkeypatch: Any) -> dict[str, object]:
    captured: dict[str, object] = {}

    def _fake_upgrade_under_lock(
        *,
        config: Config,
        sqlalchemy_url: URL,
        lock_key: int,
        revision: str,
    ) -> None:
        captured["config"] = config
        captured["sqlalchemy_url"] = sqlalchemy_url
        captured["lock_key"] = lock_key
        captured["revision"] = revision

    monkeypatch.setattr(migrations_main, "_upgrade_under_lock", _fake_upgrade_under_lock)
    return captured


def test_main_accepts_conninfo_dsn_with_raw_special_password(monkeypatch: Any) -> None:
    """
    Verify migration entrypoint accepts conninfo DSN with raw special password characters.

    Args:
        monkeypatch: Pytest monkeypatch fixture.
    Returns:
        None.
    Assumptions:
        Upgrade flow is stubbed to avoid real database connections in unit tests.
    Raises:
        AssertionError: If runner rejects conninfo DSN or parses password incorrectly.
    Side Effects:
        Monkeypatches upgrade function for test isolation.
    """
    captured = _capture_upgrade(monkeypatch)
    dsn = (
        "host=postgres port=5432 dbname=fractown user=fractown "
        "password=S3c:ret@100% sslmode=require"
    )

    exit_code = migrations_main.main(["--dsn", dsn, "--lock-key", "42"])

    assert exit_code == 0
    parsed_url = captured["sqlalchemy_url"]
    assert isinstance(parsed_url, URL)
    assert parsed_url.drivername == "postgresql+psycopg"
    assert parsed_url.username == "fractown"
    assert parsed_url.password == "S3c:ret@100%"
    assert parsed_url.host == "postgres"
    assert parsed_url.port == 5432
    assert parsed_url.database == "fractown"
    assert parsed_url.query == {"sslmode": "require"}
    assert captured["lock_key"] == 42
    assert captured["revision"] == "head"


def test_main_reads_dsn_from_environment_and_keeps_url_password_decoded(
    monkeypatch: Any,
) -> None:
    captured = _capture_upgrade(monkeypatch)
    monkeypatch.setenv("SECURITY_PG_DSN", "postgres://fractown:S3c%40ret@db:5433/security")

    exit_code = migrations_main.main(["--revision", "20261019_0001"])

    assert exit_code == 0
    parsed_url = captured["sqlalchemy_url"]
    assert isinstance(parsed_url, URL)
    assert parsed_url.drivername == "postgresql+psycopg"
    assert parsed_url.password == "S3c@ret"
    assert parsed_url.port == 5433
    captured_config = captured["config"]
    assert isinstance(captured_config, Config)
    assert "%40" not in (captured_config.get_main_option("sqlalchemy.url") or "")
    assert captured["revision"] == "20261019_0001"


def test_main_fails_without_dsn(monkeypatch: Any, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.delenv("SECURITY_PG_DSN", raising=False)

    exit_code = migrations_main.main([])

    assert exit_code == 1
    assert "Migration DSN is required" in capsys.readouterr().out


@pytest.mark.parametrize(
    "dsn",
    ["   ", "mysql://user@host/db", "host=db port=abc"],
)
def test_to_sqlalchemy_psycopg_url_rejects_unsupported_dsn(dsn: str) -> None:
    with pytest.raises(ValueError):
        migrations_main.to_sqlalchemy_psycopg_url(dsn=dsn)
