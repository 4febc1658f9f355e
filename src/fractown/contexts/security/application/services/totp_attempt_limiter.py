from __future__ import annotations

import logging
from dataclasses import dataclass

from fractown.contexts.security.application.ports.clock import SecurityClock
from fractown.contexts.security.application.ports.lockout_store import LockoutStore
from fractown.contexts.security.domain.entities import build_subject_key
from fractown.contexts.security.domain.services import LockoutPolicy
from fractown.platform.time import ensure_utc_datetime
from fractown.shared_kernel.primitives import AdminId

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LockoutAdmission:
    """
    LockoutAdmission — outcome of one counted verification attempt.
    """

    allowed: bool
    retry_after_seconds: int = 0


class TotpAttemptLimiter:
    """
    TotpAttemptLimiter — atomic `(admin, ip)` admission gate for TOTP and backup-code checks.

    Docs:
      - docs/architecture/security/security-totp-lockout-v1.md
    Related:
      - src/fractown/contexts/security/domain/services/lockout_policy.py
      - src/fractown/contexts/security/application/ports/lockout_store.py
      - src/fractown/contexts/security/application/use_cases/verify_totp_code.py
    """

    def __init__(
        self,
        *,
        store: LockoutStore,
        policy: LockoutPolicy,
        clock: SecurityClock,
    ) -> None:
        """
        Initialize limiter dependencies.

        Args:
            store: Lockout state persistence port with atomic `apply`.
            policy: Pure lockout admission rules.
            clock: UTC time source.
        Returns:
            None.
        Assumptions:
            One limiter instance is shared by every verification use case.
        Raises:
            ValueError: If required dependency is missing.
        Side Effects:
            None.
        """
        if store is None:  # type: ignore[truthy-bool]
            raise ValueError("TotpAttemptLimiter requires store")
        if policy is None:  # type: ignore[truthy-bool]
            raise ValueError("TotpAttemptLimiter requires policy")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("TotpAttemptLimiter requires clock")

        self._store = store
        self._policy = policy
        self._clock = clock

    @property
    def policy(self) -> LockoutPolicy:
        return self._policy

    def admit(self, *, admin_id: AdminId, ip: str) -> LockoutAdmission:
        """
        Check lock and count the attempt in one atomic store operation.

        Args:
            admin_id: Admin whose second factor is being verified.
            ip: Client IP of the attempt.
        Returns:
            LockoutAdmission: Allowed flag and retry delay for rejected attempts.
        Assumptions:
            Store errors must fail closed, so they propagate to the caller.
        Raises:
            ValueError: If IP is blank or clock returns non-UTC datetime.
            Exception: Store errors are propagated unchanged.
        Side Effects:
            Increments persisted failure counter and may arm the lock.
        """
        subject_key = build_subject_key(admin_id=admin_id, ip=ip)
        now = ensure_utc_datetime(value=self._clock.now(), field_name="clock.now")
        decision = self._store.apply(
            subject_key=subject_key,
            decide=lambda state: self._policy.admit(subject_key=subject_key, state=state, now=now),
        )
        if not decision.allowed:
            retry_after_seconds = decision.state.retry_after_seconds(now)
            log.info(
                "totp attempt rejected: subject is locked, retry after %s s",
                retry_after_seconds,
            )
            return LockoutAdmission(allowed=False, retry_after_seconds=retry_after_seconds)
        if decision.state.locked_until is not None:
            log.info(
                "totp subject locked after %s attempts until %s",
                decision.state.failure_count,
                decision.state.locked_until.isoformat(),
            )
        return LockoutAdmission(allowed=True)

    def record_success(self, *, admin_id: AdminId, ip: str) -> None:
        """
        Reset subject counter after successful verification.

        Args:
            admin_id: Verified admin.
            ip: Client IP of the successful attempt.
        Returns:
            None.
        Assumptions:
            Verification already succeeded, so a reset failure only leaves the
            subject more restricted than necessary.
        Raises:
            None.
        Side Effects:
            Deletes persisted lockout state; logs reset errors.
        """
        subject_key = build_subject_key(admin_id=admin_id, ip=ip)
        try:
            self._store.reset(subject_key=subject_key)
        except Exception:
            log.exception("failed to reset lockout state after successful verification")

    def prune(self) -> int:
        """
        Delete lockout states that no longer influence admission.
        """
        now = ensure_utc_datetime(value=self._clock.now(), field_name="clock.now")
        deleted = self._store.prune_expired(now=now, window=self._policy.window)
        if deleted:
            log.info("pruned %s expired lockout states", deleted)
        return deleted
