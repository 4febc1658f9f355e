from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator, Mapping
from uuid import UUID

import pytest

from fractown.contexts.security.adapters.outbound.persistence.postgres import (
    PostgresLockoutStore,
    PostgresSecurityEventStore,
    PostgresTotpSecretStore,
    PsycopgSecurityPostgresGateway,
)
from fractown.contexts.security.domain import (
    BackupCode,
    EncryptedBlob,
    EnrollmentState,
    LockoutPolicy,
    LockoutState,
    SecurityAction,
    SecurityEvent,
    TotpSecret,
)
from fractown.shared_kernel.primitives import AdminId

_NOW = datetime(2026, 10, 19, 16, 0, 0, tzinfo=timezone.utc)
_ADMIN_ID = AdminId.from_string("00000000-0000-0000-0000-000000000d01")
_SUBJECT = "00000000-0000-0000-0000-000000000d01|203.0.113.40"


class _FakeGateway:
    """
    Deterministic fake SQL gateway for security Postgres store unit tests.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/adapters/outbound/persistence/postgres/gateway.py
      - src/fractown/contexts/security/adapters/outbound/persistence/postgres/
        totp_secret_store.py
    """

    def __init__(
        self,
        *,
        fetch_one_results: list[Mapping[str, Any] | None | Exception] | None = None,
        fetch_all_results: list[tuple[Mapping[str, Any], ...]] | None = None,
    ) -> None:
        """
        Initialize fake gateway with deterministic queued responses.

        Args:
            fetch_one_results: Sequence of `fetch_one` responses or exceptions.
            fetch_all_results: Sequence of `fetch_all` responses.
        Returns:
            None.
        Assumptions:
            Test controls call order and supplies enough queued responses.
        Raises:
            None.
        Side Effects:
            Stores mutable queues and query logs.
        """
        self._fetch_one_results = list(fetch_one_results or [])
        self._fetch_all_results = list(fetch_all_results or [])
        self.fetch_one_calls: list[tuple[str, Mapping[str, Any]]] = []
        self.fetch_all_calls: list[tuple[str, Mapping[str, Any]]] = []
        self.execute_calls: list[tuple[str, Mapping[str, Any]]] = []
        self.transactions = 0

    @contextmanager
    def transaction(self) -> Iterator[_FakeGateway]:
        self.transactions += 1
        yield self

    def fetch_one(self, *, query: str, parameters: Mapping[str, Any]) -> Mapping[str, Any] | None:
        self.fetch_one_calls.append((query, dict(parameters)))
        if not self._fetch_one_results:
            return None
        result = self._fetch_one_results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def fetch_all(
        self,
        *,
        query: str,
        parameters: Mapping[str, Any],
    ) -> tuple[Mapping[str, Any], ...]:
        self.fetch_all_calls.append((query, dict(parameters)))
        if not self._fetch_all_results:
            return tuple()
        return self._fetch_all_results.pop(0)

    def execute(self, *, query: str, parameters: Mapping[str, Any]) -> None:
        self.execute_calls.append((query, dict(parameters)))


def _enabled_secret() -> TotpSecret:
    return TotpSecret(
        admin_id=_ADMIN_ID,
        encrypted_secret=EncryptedBlob(
            salt=b"\x01" * 16,
            iv=b"\x02" * 12,
            ciphertext=b"\x03" * 32,
            auth_tag=b"\x04" * 16,
            key_version=1,
        ),
        backup_codes=(BackupCode(code_hash="h0"), BackupCode(code_hash="h1", used=True)),
        backup_code_salt=b"\x05" * 16,
        enrollment_state=EnrollmentState.ENABLED,
        created_at=_NOW,
        updated_at=_NOW,
    )


def test_postgres_totp_secret_store_save_replaces_codes_in_one_transaction() -> None:
    """
    Verify save upserts enrollment and rewrites backup codes inside one transaction.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Secret material is written in storage encoding, never plaintext.
    Raises:
        AssertionError: If statements or parameters differ.
    Side Effects:
        None.
    """
    gateway = _FakeGateway()
    store = PostgresTotpSecretStore(gateway=gateway)

    store.save(admin_id=_ADMIN_ID, secret=_enabled_secret())

    assert gateway.transactions == 1
    queries = [query for query, _ in gateway.execute_calls]
    assert "ON CONFLICT (admin_id) DO UPDATE" in queries[0]
    assert "DELETE FROM security_totp_backup_codes" in queries[1]
    assert len(queries) == 4
    upsert_parameters = gateway.execute_calls[0][1]
    assert upsert_parameters["enrollment_state"] == "enabled"
    assert upsert_parameters["secret_iv"] == "AgICAgICAgICAgIC"
    assert upsert_parameters["secret_key_version"] == 1
    assert upsert_parameters["last_used_step"] is None
    assert gateway.execute_calls[3][1] == {
        "admin_id": str(_ADMIN_ID),
        "position": 1,
        "code_hash": "h1",
        "used": True,
    }


def test_postgres_totp_secret_store_saves_disabled_state_without_material() -> None:
    gateway = _FakeGateway()
    store = PostgresTotpSecretStore(gateway=gateway)

    store.save(admin_id=_ADMIN_ID, secret=_enabled_secret().wiped(updated_at=_NOW))

    upsert_parameters = gateway.execute_calls[0][1]
    assert upsert_parameters["enrollment_state"] == "disabled"
    assert upsert_parameters["secret_ciphertext"] is None
    assert upsert_parameters["backup_code_salt"] is None
    assert len(gateway.execute_calls) == 2


def test_postgres_totp_secret_store_load_maps_rows() -> None:
    secret = replace(_enabled_secret(), last_used_step=59_376_000)
    assert secret.encrypted_secret is not None
    storage = secret.encrypted_secret.to_storage()
    gateway = _FakeGateway(
        fetch_one_results=[
            {
                "admin_id": UUID(str(_ADMIN_ID)),
                "enrollment_state": "enabled",
                "secret_salt": storage["salt"],
                "secret_iv": storage["iv"],
                "secret_ciphertext": storage["ciphertext"],
                "secret_auth_tag": storage["auth_tag"],
                "secret_key_version": 1,
                "backup_code_salt": b"\x05" * 16,
                "last_used_step": 59_376_000,
                "created_at": _NOW.astimezone(timezone(timedelta(hours=3))),
                "updated_at": _NOW,
            }
        ],
        fetch_all_results=[
            (
                {"code_hash": "h0", "used": False},
                {"code_hash": "h1", "used": True},
            )
        ],
    )
    store = PostgresTotpSecretStore(gateway=gateway)

    loaded = store.load(admin_id=_ADMIN_ID)

    assert loaded == secret
    assert loaded is not None
    assert loaded.created_at.tzinfo == timezone.utc


def test_postgres_totp_secret_store_load_returns_none_for_missing_row() -> None:
    gateway = _FakeGateway(fetch_one_results=[None])
    store = PostgresTotpSecretStore(gateway=gateway)

    assert store.load(admin_id=_ADMIN_ID) is None
    assert gateway.fetch_all_calls == []


def test_postgres_totp_secret_store_consume_uses_compare_and_swap() -> None:
    gateway = _FakeGateway(fetch_one_results=[{"position": 0}, None])
    store = PostgresTotpSecretStore(gateway=gateway)

    first = store.consume_backup_code(admin_id=_ADMIN_ID, code_hash="h0", used_at=_NOW)
    second = store.consume_backup_code(admin_id=_ADMIN_ID, code_hash="h0", used_at=_NOW)

    assert first is True
    assert second is False
    query, parameters = gateway.fetch_one_calls[0]
    assert "AND used = FALSE" in query
    assert parameters["code_hash"] == "h0"


def test_postgres_totp_secret_store_records_verified_step_with_guarded_update() -> None:
    """
    Verify step commit is one UPDATE guarded by state, expected secret and step order.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        `RETURNING` yields no row when any guard fails.
    Raises:
        AssertionError: If guards or parameters are missing.
    Side Effects:
        None.
    """
    gateway = _FakeGateway(fetch_one_results=[{"admin_id": UUID(str(_ADMIN_ID))}, None])
    store = PostgresTotpSecretStore(gateway=gateway)
    expected_secret = _enabled_secret().encrypted_secret
    assert expected_secret is not None

    first = store.record_verified_step(
        admin_id=_ADMIN_ID,
        expected_secret=expected_secret,
        step=59_376_001,
        verified_at=_NOW,
    )
    second = store.record_verified_step(
        admin_id=_ADMIN_ID,
        expected_secret=expected_secret,
        step=59_376_001,
        verified_at=_NOW,
    )

    assert first is True
    assert second is False
    assert gateway.execute_calls == []
    query, parameters = gateway.fetch_one_calls[0]
    assert "enrollment_state IN ('pending_verification', 'enabled')" in query
    assert "AND secret_ciphertext = %(expected_ciphertext)s" in query
    assert "last_used_step IS NULL OR last_used_step < %(step)s" in query
    assert parameters == {
        "admin_id": str(_ADMIN_ID),
        "expected_iv": "AgICAgICAgICAgIC",
        "expected_ciphertext": expected_secret.to_storage()["ciphertext"],
        "step": 59_376_001,
        "verified_at": _NOW,
    }


def test_postgres_lockout_store_apply_locks_subject_before_reading() -> None:
    """
    Verify apply takes advisory lock, reads FOR UPDATE and upserts decided state.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        All statements share one transaction.
    Raises:
        AssertionError: If statement order differs.
    Side Effects:
        None.
    """
    gateway = _FakeGateway(fetch_one_results=[None])
    store = PostgresLockoutStore(gateway=gateway)
    policy = LockoutPolicy()

    decision = store.apply(
        subject_key=_SUBJECT,
        decide=lambda state: policy.admit(subject_key=_SUBJECT, state=state, now=_NOW),
    )

    assert decision.allowed is True
    assert gateway.transactions == 1
    assert "pg_advisory_xact_lock" in gateway.execute_calls[0][0]
    assert "FOR UPDATE" in gateway.fetch_one_calls[0][0]
    assert "ON CONFLICT (subject_key) DO UPDATE" in gateway.execute_calls[1][0]
    assert gateway.execute_calls[1][1] == {
        "subject_key": _SUBJECT,
        "failure_count": 1,
        "window_start": _NOW,
        "locked_until": None,
    }


def test_postgres_lockout_store_apply_skips_write_for_rejected_attempt() -> None:
    locked_until = _NOW + timedelta(minutes=15)
    gateway = _FakeGateway(
        fetch_one_results=[
            {
                "subject_key": _SUBJECT,
                "failure_count": 5,
                "window_start": _NOW,
                "locked_until": locked_until,
            }
        ]
    )
    store = PostgresLockoutStore(gateway=gateway)
    policy = LockoutPolicy()

    decision = store.apply(
        subject_key=_SUBJECT,
        decide=lambda state: policy.admit(
            subject_key=_SUBJECT,
            state=state,
            now=_NOW + timedelta(minutes=1),
        ),
    )

    assert decision.allowed is False
    assert decision.state == LockoutState(
        subject_key=_SUBJECT,
        failure_count=5,
        window_start=_NOW,
        locked_until=locked_until,
    )
    assert len(gateway.execute_calls) == 1


def test_postgres_lockout_store_prune_returns_deleted_count() -> None:
    gateway = _FakeGateway(fetch_one_results=[{"deleted": 3}])
    store = PostgresLockoutStore(gateway=gateway)

    deleted = store.prune_expired(now=_NOW, window=timedelta(minutes=15))

    assert deleted == 3
    assert gateway.fetch_one_calls[0][1] == {
        "now": _NOW,
        "window_floor": _NOW - timedelta(minutes=15),
    }


def test_postgres_security_event_store_append_and_list() -> None:
    gateway = _FakeGateway(
        fetch_all_results=[
            (
                {
                    "admin_id": str(_ADMIN_ID),
                    "ip": "203.0.113.40",
                    "user_agent": "pytest-agent",
                    "action": "backup_used",
                    "success": True,
                    "occurred_at": _NOW,
                    "detail": None,
                },
            )
        ]
    )
    store = PostgresSecurityEventStore(gateway=gateway)
    event = SecurityEvent(
        admin_id=_ADMIN_ID,
        ip="203.0.113.40",
        user_agent="pytest-agent",
        action=SecurityAction.BACKUP_USED,
        success=True,
        timestamp=_NOW,
    )

    store.append(event=event)
    events = store.list_recent(limit=20, admin_id=_ADMIN_ID)

    assert gateway.execute_calls[0][1]["action"] == "backup_used"
    assert gateway.execute_calls[0][1]["occurred_at"] == _NOW
    assert events == (event,)
    assert gateway.fetch_all_calls[0][1] == {"admin_id": str(_ADMIN_ID), "limit": 20}
    with pytest.raises(ValueError):
        store.list_recent(limit=0)


def test_postgres_security_event_store_summaries_and_count() -> None:
    gateway = _FakeGateway(
        fetch_one_results=[
            {"total": 4},
            {
                "total_events": 3,
                "successful": 2,
                "failed": 1,
                "unique_ips": 2,
                "unique_admins": 1,
            },
            {"total_events": 0, "oldest_event": None},
        ]
    )
    store = PostgresSecurityEventStore(gateway=gateway)

    total = store.count(
        since=_NOW - timedelta(minutes=15),
        admin_id=_ADMIN_ID,
        action=SecurityAction.GENERATE,
        success=True,
    )
    window = store.window_summary(since=_NOW - timedelta(hours=24))
    all_time = store.all_time_summary()

    assert total == 4
    assert gateway.fetch_one_calls[0][1] == {
        "since": _NOW - timedelta(minutes=15),
        "admin_id": str(_ADMIN_ID),
        "ip": None,
        "action": "generate",
        "success": True,
    }
    assert window.successful == 2
    assert window.unique_ips == 2
    assert all_time.total_events == 0
    assert all_time.oldest_event is None


def test_psycopg_gateway_rejects_blank_dsn() -> None:
    with pytest.raises(ValueError):
        PsycopgSecurityPostgresGateway(dsn="  ")
