from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from fractown.platform.time import ensure_utc_datetime
from fractown.shared_kernel.primitives import AdminId


def build_subject_key(*, admin_id: AdminId, ip: str) -> str:
    """
    Build canonical lockout subject key for one `(admin, ip)` pair.
    """
    normalized_ip = ip.strip()
    if not normalized_ip:
        raise ValueError("lockout subject ip must be non-empty")
    return f"{admin_id}|{normalized_ip}"


@dataclass(frozen=True, slots=True)
class LockoutState:
    """
    LockoutState — attempt counter of one `(admin, ip)` subject inside a rolling window.

    Docs:
      - docs/architecture/security/security-totp-lockout-v1.md
    Related:
      - src/fractown/contexts/security/domain/services/lockout_policy.py
      - src/fractown/contexts/security/application/ports/lockout_store.py
      - src/fractown/contexts/security/application/services/totp_attempt_limiter.py
    """

    subject_key: str
    failure_count: int
    window_start: datetime
    locked_until: datetime | None = None

    def __post_init__(self) -> None:
        """
        Validate counter and UTC timestamps.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            State is created on first counted attempt, so `failure_count >= 1`.
        Raises:
            ValueError: If subject key is blank, count is not positive, or
                timestamps are non-UTC/inconsistent.
        Side Effects:
            None.
        """
        if not self.subject_key.strip():
            raise ValueError("LockoutState.subject_key must be non-empty")
        if self.failure_count <= 0:
            raise ValueError("LockoutState.failure_count must be > 0")
        ensure_utc_datetime(value=self.window_start, field_name="LockoutState.window_start")
        if self.locked_until is not None:
            ensure_utc_datetime(value=self.locked_until, field_name="LockoutState.locked_until")
            if self.locked_until < self.window_start:
                raise ValueError("LockoutState.locked_until cannot be before window_start")

    def is_locked_at(self, now: datetime) -> bool:
        return self.locked_until is not None and now < self.locked_until

    def retry_after_seconds(self, now: datetime) -> int:
        """
        Return whole seconds until lock expiry, rounded up, or `0` when not locked.
        """
        if self.locked_until is None or now >= self.locked_until:
            return 0
        remaining = (self.locked_until - now).total_seconds()
        return max(1, math.ceil(remaining))
