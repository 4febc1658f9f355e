from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from fractown.contexts.security.domain.entities import LockoutState

_DEFAULT_MAX_FAILURES = 5
_DEFAULT_WINDOW = timedelta(minutes=15)
_DEFAULT_LOCK_DURATION = timedelta(minutes=15)


@dataclass(frozen=True, slots=True)
class AttemptDecision:
    """
    AttemptDecision — result of one atomic lockout admission step.

    `state` is the snapshot that must be persisted after the decision.
    """

    allowed: bool
    state: LockoutState


@dataclass(frozen=True, slots=True)
class LockoutPolicy:
    """
    LockoutPolicy — pure `F failures within W lock for L` admission rules.

    Docs:
      - docs/architecture/security/security-totp-lockout-v1.md
    Related:
      - src/fractown/contexts/security/domain/entities/lockout_state.py
      - src/fractown/contexts/security/application/services/totp_attempt_limiter.py
      - src/fractown/contexts/security/application/ports/lockout_store.py

    Every admitted attempt is counted as a failure before verification runs; a
    successful verification deletes the state afterwards. The attempt that reaches
    `max_failures` arms the lock, so concurrent attempts cannot pass the check
    while a counter update is still pending.
    """

    max_failures: int = _DEFAULT_MAX_FAILURES
    window: timedelta = _DEFAULT_WINDOW
    lock_duration: timedelta = _DEFAULT_LOCK_DURATION

    def __post_init__(self) -> None:
        """
        Validate positive policy thresholds.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Durations are expressed as positive `timedelta` values.
        Raises:
            ValueError: If one of thresholds is not positive.
        Side Effects:
            None.
        """
        if self.max_failures <= 0:
            raise ValueError("LockoutPolicy.max_failures must be > 0")
        if self.window <= timedelta(0):
            raise ValueError("LockoutPolicy.window must be > 0")
        if self.lock_duration <= timedelta(0):
            raise ValueError("LockoutPolicy.lock_duration must be > 0")

    def admit(
        self,
        *,
        subject_key: str,
        state: LockoutState | None,
        now: datetime,
    ) -> AttemptDecision:
        """
        Decide whether one verification attempt may proceed and count it.

        Args:
            subject_key: Canonical `(admin, ip)` subject key.
            state: Current stored state or `None` when absent.
            now: Current UTC timestamp.
        Returns:
            AttemptDecision: Rejection with unchanged state while locked, otherwise
                admission with incremented counter (and armed lock on the last allowed try).
        Assumptions:
            Caller evaluates this inside the store's atomic read-modify-write.
        Raises:
            ValueError: If resulting state violates entity invariants.
        Side Effects:
            None.
        """
        if state is not None and state.is_locked_at(now):
            return AttemptDecision(allowed=False, state=state)

        if state is None or self.is_expired(state=state, now=now):
            failure_count = 1
            window_start = now
        else:
            failure_count = state.failure_count + 1
            window_start = state.window_start

        locked_until = now + self.lock_duration if failure_count >= self.max_failures else None
        return AttemptDecision(
            allowed=True,
            state=LockoutState(
                subject_key=subject_key,
                failure_count=failure_count,
                window_start=window_start,
                locked_until=locked_until,
            ),
        )

    def is_expired(self, *, state: LockoutState, now: datetime) -> bool:
        """
        Return `True` when state no longer influences admission and may be discarded.

        Args:
            state: Stored lockout state.
            now: Current UTC timestamp.
        Returns:
            bool: Expired flag.
        Assumptions:
            A passed lock restarts counting from a fresh window.
        Raises:
            None.
        Side Effects:
            None.
        """
        if state.locked_until is not None:
            return now >= state.locked_until
        return now - state.window_start >= self.window
