from __future__ import annotations

import threading
from datetime import datetime
from typing import Sequence

from fractown.contexts.security.application.ports.security_event_store import (
    SecurityAllTimeSummary,
    SecurityEventStore,
    SecurityWindowSummary,
)
from fractown.contexts.security.domain.entities import SecurityEvent
from fractown.contexts.security.domain.value_objects import SecurityAction
from fractown.shared_kernel.primitives import AdminId

_DEFAULT_MAX_EVENTS = 10_000


class InMemorySecurityEventStore(SecurityEventStore):
    """
    InMemorySecurityEventStore — append-only process-local audit event storage.

    Docs:
      - docs/architecture/security/security-audit-log-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/security_event_store.py
      - src/fractown/contexts/security/adapters/outbound/persistence/postgres/
        security_event_store.py
    """

    def __init__(self, *, max_events: int = _DEFAULT_MAX_EVENTS) -> None:
        if max_events <= 0:
            raise ValueError("InMemorySecurityEventStore max_events must be > 0")
        self._events: list[SecurityEvent] = []
        self._max_events = max_events
        self._lock = threading.Lock()

    def append(self, *, event: SecurityEvent) -> None:
        """
        Append event and drop the earliest appended ones above `max_events`.
        """
        with self._lock:
            self._events.append(event)
            overflow = len(self._events) - self._max_events
            if overflow > 0:
                del self._events[:overflow]

    def list_recent(
        self,
        *,
        limit: int,
        admin_id: AdminId | None = None,
    ) -> Sequence[SecurityEvent]:
        """
        Return newest-first events, optionally filtered by admin.

        Args:
            limit: Maximum number of events (> 0).
            admin_id: Optional admin filter.
        Returns:
            Sequence[SecurityEvent]: Events sorted by timestamp descending.
        Assumptions:
            Events with equal timestamps keep reverse insertion order.
        Raises:
            ValueError: If limit is not positive.
        Side Effects:
            None.
        """
        if limit <= 0:
            raise ValueError("InMemorySecurityEventStore limit must be > 0")
        with self._lock:
            events = [
                event
                for event in reversed(self._events)
                if admin_id is None or event.admin_id == admin_id
            ]
        events.sort(key=lambda event: event.timestamp, reverse=True)
        return tuple(events[:limit])

    def count(
        self,
        *,
        since: datetime,
        admin_id: AdminId | None = None,
        ip: str | None = None,
        action: SecurityAction | None = None,
        success: bool | None = None,
    ) -> int:
        with self._lock:
            return sum(
                1
                for event in self._events
                if event.timestamp >= since
                and (admin_id is None or event.admin_id == admin_id)
                and (ip is None or event.ip == ip)
                and (action is None or event.action is action)
                and (success is None or event.success is success)
            )

    def window_summary(self, *, since: datetime) -> SecurityWindowSummary:
        with self._lock:
            events = [event for event in self._events if event.timestamp >= since]
        successful = sum(1 for event in events if event.success)
        return SecurityWindowSummary(
            total_events=len(events),
            successful=successful,
            failed=len(events) - successful,
            unique_ips=len({event.ip for event in events}),
            unique_admins=len({event.admin_id for event in events}),
        )

    def all_time_summary(self) -> SecurityAllTimeSummary:
        with self._lock:
            oldest = min((event.timestamp for event in self._events), default=None)
            return SecurityAllTimeSummary(total_events=len(self._events), oldest_event=oldest)

    def prune_older_than(self, *, cutoff: datetime) -> int:
        with self._lock:
            kept = [event for event in self._events if event.timestamp >= cutoff]
            deleted = len(self._events) - len(kept)
            self._events = kept
            return deleted
