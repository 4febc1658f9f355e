from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Callable

from fractown.contexts.security.application.ports.lockout_store import LockoutStore
from fractown.contexts.security.domain.entities import LockoutState
from fractown.contexts.security.domain.services import AttemptDecision


class InMemoryLockoutStore(LockoutStore):
    """
    InMemoryLockoutStore — process-local lockout counters with atomic read-modify-write.

    Docs:
      - docs/architecture/security/security-totp-lockout-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/lockout_store.py
      - src/fractown/contexts/security/adapters/outbound/persistence/postgres/lockout_store.py
    """

    def __init__(self) -> None:
        self._states: dict[str, LockoutState] = {}
        self._lock = threading.Lock()

    def apply(
        self,
        *,
        subject_key: str,
        decide: Callable[[LockoutState | None], AttemptDecision],
    ) -> AttemptDecision:
        """
        Run decision on current state and persist result while holding the lock.

        Args:
            subject_key: Canonical `(admin, ip)` subject key.
            decide: Pure decision function receiving current state.
        Returns:
            AttemptDecision: Decision produced by `decide`.
        Assumptions:
            `decide` is fast and never calls back into the store.
        Raises:
            Exception: Errors from `decide` are propagated and nothing is stored.
        Side Effects:
            Replaces stored state for the subject.
        """
        with self._lock:
            decision = decide(self._states.get(subject_key))
            self._states[subject_key] = decision.state
            return decision

    def find(self, *, subject_key: str) -> LockoutState | None:
        with self._lock:
            return self._states.get(subject_key)

    def reset(self, *, subject_key: str) -> None:
        with self._lock:
            self._states.pop(subject_key, None)

    def prune_expired(self, *, now: datetime, window: timedelta) -> int:
        """
        Delete states whose lock passed or whose window elapsed.
        """
        with self._lock:
            expired = [
                key
                for key, state in self._states.items()
                if (state.locked_until is not None and now >= state.locked_until)
                or (state.locked_until is None and now - state.window_start >= window)
            ]
            for key in expired:
                del self._states[key]
            return len(expired)
