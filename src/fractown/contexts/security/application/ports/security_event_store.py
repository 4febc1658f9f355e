from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, Sequence

from fractown.contexts.security.domain.entities import SecurityEvent
from fractown.contexts.security.domain.value_objects import SecurityAction
from fractown.shared_kernel.primitives import AdminId


@dataclass(frozen=True, slots=True)
class SecurityWindowSummary:
    """
    SecurityWindowSummary — aggregated counters of events inside a trailing window.
    """

    total_events: int
    successful: int
    failed: int
    unique_ips: int
    unique_admins: int


@dataclass(frozen=True, slots=True)
class SecurityAllTimeSummary:
    """
    SecurityAllTimeSummary — retained event count and oldest retained event timestamp.
    """

    total_events: int
    oldest_event: datetime | None


class SecurityEventStore(Protocol):
    """
    SecurityEventStore — append-only порт хранения SecurityEvent и агрегатов для dashboard.

    Docs:
      - docs/architecture/security/security-audit-log-v1.md
    Related:
      - src/fractown/contexts/security/application/services/security_audit_log.py
      - src/fractown/contexts/security/adapters/outbound/persistence/in_memory/
        security_event_store.py
      - src/fractown/contexts/security/adapters/outbound/persistence/postgres/
        security_event_store.py
    """

    def append(self, *, event: SecurityEvent) -> None:
        """
        Append one immutable event.
        """
        ...

    def list_recent(
        self,
        *,
        limit: int,
        admin_id: AdminId | None = None,
    ) -> Sequence[SecurityEvent]:
        """
        Return newest events first, optionally filtered by admin.

        Args:
            limit: Maximum number of events (> 0).
            admin_id: Optional admin filter.
        Returns:
            Sequence[SecurityEvent]: Events ordered by timestamp descending.
        Assumptions:
            Caller bounds `limit`.
        Raises:
            ValueError: If limit is not positive.
        Side Effects:
            Reads storage records.
        """
        ...

    def count(
        self,
        *,
        since: datetime,
        admin_id: AdminId | None = None,
        ip: str | None = None,
        action: SecurityAction | None = None,
        success: bool | None = None,
    ) -> int:
        """
        Count events with `timestamp >= since` matching all provided filters.
        """
        ...

    def window_summary(self, *, since: datetime) -> SecurityWindowSummary:
        """
        Aggregate events with `timestamp >= since`.
        """
        ...

    def all_time_summary(self) -> SecurityAllTimeSummary:
        """
        Aggregate all retained events.
        """
        ...

    def prune_older_than(self, *, cutoff: datetime) -> int:
        """
        Delete events with `timestamp < cutoff` and return deleted count.
        """
        ...
