from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from fractown.contexts.security.domain import LockoutPolicy, LockoutState

_NOW = datetime(2026, 10, 19, 9, 0, 0, tzinfo=timezone.utc)
_SUBJECT = "00000000-0000-0000-0000-000000000701|203.0.113.7"


def _admit_times(*, policy: LockoutPolicy, times: int) -> list[bool]:
    state: LockoutState | None = None
    outcomes: list[bool] = []
    for _ in range(times):
        decision = policy.admit(subject_key=_SUBJECT, state=state, now=_NOW)
        outcomes.append(decision.allowed)
        state = decision.state
    return outcomes


def test_lockout_policy_admits_five_attempts_and_locks_sixth() -> None:
    """
    Verify five attempts in the window are admitted and the sixth is rejected.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Default policy is 5 failures per 15 minutes with 15 minute lock.
    Raises:
        AssertionError: If admission sequence differs.
    Side Effects:
        None.
    """
    assert _admit_times(policy=LockoutPolicy(), times=6) == [True] * 5 + [False]


def test_lockout_policy_arms_lock_on_last_admitted_attempt() -> None:
    policy = LockoutPolicy()
    state: LockoutState | None = None
    for _ in range(5):
        state = policy.admit(subject_key=_SUBJECT, state=state, now=_NOW).state

    assert state is not None
    assert state.failure_count == 5
    assert state.locked_until == _NOW + timedelta(minutes=15)
    assert state.retry_after_seconds(_NOW) == 900
    assert state.retry_after_seconds(_NOW + timedelta(seconds=899, milliseconds=500)) == 1
    assert state.retry_after_seconds(_NOW + timedelta(minutes=15)) == 0


def test_lockout_policy_rejection_keeps_state_unchanged() -> None:
    policy = LockoutPolicy()
    locked = LockoutState(
        subject_key=_SUBJECT,
        failure_count=5,
        window_start=_NOW,
        locked_until=_NOW + timedelta(minutes=15),
    )

    decision = policy.admit(subject_key=_SUBJECT, state=locked, now=_NOW + timedelta(minutes=1))

    assert decision.allowed is False
    assert decision.state is locked


def test_lockout_policy_restarts_counting_after_lock_expires() -> None:
    policy = LockoutPolicy()
    locked = LockoutState(
        subject_key=_SUBJECT,
        failure_count=5,
        window_start=_NOW,
        locked_until=_NOW + timedelta(minutes=15),
    )

    decision = policy.admit(subject_key=_SUBJECT, state=locked, now=_NOW + timedelta(minutes=15))

    assert decision.allowed is True
    assert decision.state.failure_count == 1
    assert decision.state.locked_until is None


def test_lockout_policy_restarts_counting_after_window_elapses() -> None:
    """
    Verify failures older than the rolling window no longer count.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Window starts at first counted attempt.
    Raises:
        AssertionError: If stale counter is carried over.
    Side Effects:
        None.
    """
    policy = LockoutPolicy()
    state = LockoutState(subject_key=_SUBJECT, failure_count=4, window_start=_NOW)

    inside = policy.admit(subject_key=_SUBJECT, state=state, now=_NOW + timedelta(minutes=14))
    after = policy.admit(subject_key=_SUBJECT, state=state, now=_NOW + timedelta(minutes=15))

    assert inside.state.failure_count == 5
    assert inside.state.locked_until is not None
    assert after.state.failure_count == 1
    assert after.state.window_start == _NOW + timedelta(minutes=15)


def test_lockout_policy_honors_custom_thresholds() -> None:
    policy = LockoutPolicy(max_failures=2, lock_duration=timedelta(seconds=30))

    assert _admit_times(policy=policy, times=3) == [True, True, False]


def test_lockout_policy_rejects_non_positive_thresholds() -> None:
    with pytest.raises(ValueError, match="max_failures"):
        LockoutPolicy(max_failures=0)
    with pytest.raises(ValueError, match="window"):
        LockoutPolicy(window=timedelta(0))
    with pytest.raises(ValueError, match="lock_duration"):
        LockoutPolicy(lock_duration=timedelta(seconds=-1))


def test_lockout_state_validates_invariants() -> None:
    with pytest.raises(ValueError):
        LockoutState(subject_key=" ", failure_count=1, window_start=_NOW)
    with pytest.raises(ValueError):
        LockoutState(subject_key=_SUBJECT, failure_count=0, window_start=_NOW)
    with pytest.raises(ValueError):
        LockoutState(subject_key=_SUBJECT, failure_count=1, window_start=datetime(2026, 10, 19))
    with pytest.raises(ValueError):
        LockoutState(
            subject_key=_SUBJECT,
            failure_count=1,
            window_start=_NOW,
            locked_until=_NOW - timedelta(seconds=1),
        )


def test_lockout_state_without_lock_reports_zero_retry_after() -> None:
    unlocked = LockoutState(subject_key=_SUBJECT, failure_count=3, window_start=_NOW)
    locked = LockoutState(
        subject_key=_SUBJECT,
        failure_count=5,
        window_start=_NOW,
        locked_until=_NOW + timedelta(seconds=90),
    )

    assert unlocked.retry_after_seconds(_NOW + timedelta(seconds=1)) == 0
    assert locked.retry_after_seconds(_NOW + timedelta(seconds=0.5)) == 90
    assert locked.retry_after_seconds(_NOW + timedelta(seconds=90)) == 0
