from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from fractown.contexts.security.adapters.outbound import (
    InMemoryLockoutStore,
    InMemorySecurityEventStore,
    InMemoryTotpSecretStore,
    SystemSecurityClock,
)
from fractown.contexts.security.domain import (
    AttemptDecision,
    BackupCode,
    EncryptedBlob,
    EnrollmentState,
    LockoutState,
    SecurityAction,
    SecurityEvent,
    TotpSecret,
)
from fractown.shared_kernel.primitives import AdminId

_NOW = datetime(2026, 10, 19, 17, 0, 0, tzinfo=timezone.utc)
_ADMIN_ID = AdminId.from_string("00000000-0000-0000-0000-000000000e01")
_OTHER_ADMIN_ID = AdminId.from_string("00000000-0000-0000-0000-000000000e02")


def _secret(*, admin_id: AdminId = _ADMIN_ID) -> TotpSecret:
    return TotpSecret(
        admin_id=admin_id,
        encrypted_secret=EncryptedBlob(
            salt=b"\x01" * 16,
            iv=b"\x02" * 12,
            ciphertext=b"\x03" * 20,
            auth_tag=b"\x04" * 16,
            key_version=1,
        ),
        backup_codes=(BackupCode(code_hash="h0"), BackupCode(code_hash="h1")),
        backup_code_salt=b"\x05" * 16,
        enrollment_state=EnrollmentState.ENABLED,
        created_at=_NOW,
        updated_at=_NOW,
    )


def _event(
    *,
    minutes: int,
    admin_id: AdminId = _ADMIN_ID,
    success: bool = True,
) -> SecurityEvent:
    return SecurityEvent(
        admin_id=admin_id,
        ip="203.0.113.50",
        user_agent="pytest-agent",
        action=SecurityAction.VERIFY,
        success=success,
        timestamp=_NOW + timedelta(minutes=minutes),
    )


def test_in_memory_totp_secret_store_roundtrip_and_owner_check() -> None:
    store = InMemoryTotpSecretStore()

    store.save(admin_id=_ADMIN_ID, secret=_secret())

    assert store.load(admin_id=_ADMIN_ID) == _secret()
    assert store.load(admin_id=_OTHER_ADMIN_ID) is None
    with pytest.raises(ValueError, match="must match"):
        store.save(admin_id=_OTHER_ADMIN_ID, secret=_secret())


def test_in_memory_totp_secret_store_consumes_code_once() -> None:
    """
    Verify backup code compare-and-swap semantics of in-memory store.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Consumption returns `False` without mutation for unknown or used codes.
    Raises:
        AssertionError: If code is consumed twice.
    Side Effects:
        None.
    """
    store = InMemoryTotpSecretStore()
    store.save(admin_id=_ADMIN_ID, secret=_secret())
    used_at = _NOW + timedelta(minutes=1)

    assert store.consume_backup_code(admin_id=_ADMIN_ID, code_hash="h1", used_at=used_at)
    assert not store.consume_backup_code(admin_id=_ADMIN_ID, code_hash="h1", used_at=used_at)
    assert not store.consume_backup_code(admin_id=_ADMIN_ID, code_hash="zz", used_at=used_at)
    assert not store.consume_backup_code(admin_id=_OTHER_ADMIN_ID, code_hash="h0", used_at=used_at)

    stored = store.load(admin_id=_ADMIN_ID)
    assert stored is not None
    assert stored.remaining_backup_codes == 1
    assert stored.updated_at == used_at


def test_in_memory_totp_secret_store_records_verified_step_conditionally() -> None:
    """
    Verify step commit requires the expected secret, a verify-accepting state and a newer step.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Rejected commits leave stored snapshot untouched.
    Raises:
        AssertionError: If stale secret, disabled enrollment or reused step is committed.
    Side Effects:
        None.
    """
    store = InMemoryTotpSecretStore()
    original = _secret()
    assert original.encrypted_secret is not None
    store.save(admin_id=_ADMIN_ID, secret=original)
    verified_at = _NOW + timedelta(minutes=1)
    other_blob = EncryptedBlob(
        salt=b"\x11" * 16,
        iv=b"\x12" * 12,
        ciphertext=b"\x13" * 20,
        auth_tag=b"\x14" * 16,
        key_version=1,
    )

    assert store.record_verified_step(
        admin_id=_ADMIN_ID,
        expected_secret=original.encrypted_secret,
        step=100,
        verified_at=verified_at,
    )
    assert not store.record_verified_step(
        admin_id=_ADMIN_ID,
        expected_secret=original.encrypted_secret,
        step=100,
        verified_at=verified_at,
    )
    assert not store.record_verified_step(
        admin_id=_ADMIN_ID,
        expected_secret=other_blob,
        step=101,
        verified_at=verified_at,
    )
    assert not store.record_verified_step(
        admin_id=_OTHER_ADMIN_ID,
        expected_secret=original.encrypted_secret,
        step=101,
        verified_at=verified_at,
    )
    stored = store.load(admin_id=_ADMIN_ID)
    assert stored is not None
    assert stored.last_used_step == 100
    assert stored.updated_at == verified_at

    store.save(admin_id=_ADMIN_ID, secret=stored.wiped(updated_at=verified_at))
    assert not store.record_verified_step(
        admin_id=_ADMIN_ID,
        expected_secret=original.encrypted_secret,
        step=102,
        verified_at=verified_at,
    )
    disabled = store.load(admin_id=_ADMIN_ID)
    assert disabled is not None
    assert disabled.enrollment_state is EnrollmentState.DISABLED


def test_in_memory_lockout_store_does_not_persist_failed_decision() -> None:
    store = InMemoryLockoutStore()

    def _explode(state: LockoutState | None) -> AttemptDecision:
        raise RuntimeError("decision failed")

    with pytest.raises(RuntimeError):
        store.apply(subject_key="subject", decide=_explode)

    assert store.find(subject_key="subject") is None


def test_in_memory_security_event_store_orders_filters_and_prunes() -> None:
    store = InMemorySecurityEventStore()
    store.append(event=_event(minutes=2))
    store.append(event=_event(minutes=0, success=False))
    store.append(event=_event(minutes=1, admin_id=_OTHER_ADMIN_ID))

    newest = store.list_recent(limit=2)
    own = store.list_recent(limit=10, admin_id=_ADMIN_ID)

    assert [event.timestamp for event in newest] == [
        _NOW + timedelta(minutes=2),
        _NOW + timedelta(minutes=1),
    ]
    assert [event.admin_id for event in own] == [_ADMIN_ID, _ADMIN_ID]
    assert store.count(since=_NOW, success=False) == 1
    assert store.count(since=_NOW + timedelta(minutes=1), admin_id=_ADMIN_ID) == 1
    assert store.window_summary(since=_NOW).unique_admins == 2
    assert store.prune_older_than(cutoff=_NOW + timedelta(minutes=1)) == 1
    assert store.all_time_summary().oldest_event == _NOW + timedelta(minutes=1)
    with pytest.raises(ValueError):
        store.list_recent(limit=0)


def test_in_memory_security_event_store_keeps_only_latest_appended_events() -> None:
    store = InMemorySecurityEventStore(max_events=2)
    store.append(event=_event(minutes=0))
    store.append(event=_event(minutes=5))
    store.append(event=_event(minutes=1))

    summary = store.all_time_summary()

    assert summary.total_events == 2
    assert summary.oldest_event == _NOW + timedelta(minutes=1)
    with pytest.raises(ValueError, match="max_events"):
        InMemorySecurityEventStore(max_events=0)


def test_system_security_clock_returns_utc_now() -> None:
    now = SystemSecurityClock().now()

    assert now.tzinfo == timezone.utc
    assert abs(datetime.now(timezone.utc) - now) < timedelta(seconds=5)
