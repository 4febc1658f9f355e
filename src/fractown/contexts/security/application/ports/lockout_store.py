from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Protocol

from fractown.contexts.security.domain.entities import LockoutState
from fractown.contexts.security.domain.services import AttemptDecision


class LockoutStore(Protocol):
    """
    LockoutStore — порт атомарного хранения счётчиков неудачных попыток `(admin, ip)`.

    Docs:
      - docs/architecture/security/security-totp-lockout-v1.md
    Related:
      - src/fractown/contexts/security/domain/services/lockout_policy.py
      - src/fractown/contexts/security/application/services/totp_attempt_limiter.py
      - src/fractown/contexts/security/adapters/outbound/persistence/postgres/lockout_store.py
    """

    def apply(
        self,
        *,
        subject_key: str,
        decide: Callable[[LockoutState | None], AttemptDecision],
    ) -> AttemptDecision:
        """
        Run one atomic read-decide-write step for subject state.

        Args:
            subject_key: Canonical `(admin, ip)` subject key.
            decide: Pure decision function receiving current state.
        Returns:
            AttemptDecision: Decision whose `state` has been persisted.
        Assumptions:
            No other writer observes the subject between read and write.
        Raises:
            ValueError: If storage row cannot be mapped.
        Side Effects:
            Writes subject state.
        """
        ...

    def find(self, *, subject_key: str) -> LockoutState | None:
        """
        Read current subject state without modifying it.
        """
        ...

    def reset(self, *, subject_key: str) -> None:
        """
        Delete subject state (counter back to zero, lock disarmed).
        """
        ...

    def prune_expired(self, *, now: datetime, window: timedelta) -> int:
        """
        Delete states whose lock has passed or whose counting window elapsed.

        Args:
            now: Current UTC timestamp.
            window: Rolling failure window of the active policy.
        Returns:
            int: Number of deleted states.
        Assumptions:
            Pruned states would be treated as fresh by the policy anyway.
        Raises:
            None.
        Side Effects:
            Deletes storage records.
        """
        ...
