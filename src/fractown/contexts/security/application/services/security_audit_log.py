from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from fractown.contexts.security.application.ports.clock import SecurityClock
from fractown.contexts.security.application.ports.security_event_store import (
    SecurityEventStore,
)
from fractown.contexts.security.application.ports.security_metrics import (
    SecurityEventMetrics,
)
from fractown.contexts.security.domain.entities import SecurityEvent
from fractown.contexts.security.domain.value_objects import SecurityAction
from fractown.platform.time import ensure_utc_datetime
from fractown.shared_kernel.primitives import AdminId

log = logging.getLogger(__name__)

_STATS_WINDOW = timedelta(hours=24)
_DEFAULT_RETENTION = timedelta(days=90)
_DEFAULT_SUSPICIOUS_FAILURES = 5
_DEFAULT_SUSPICIOUS_WINDOW = timedelta(minutes=15)
_ADMIN_ID_LOG_PREFIX = 8


@dataclass(frozen=True, slots=True)
class SecurityStats:
    """
    SecurityStats — aggregated audit counters for admin security dashboard.

    Docs:
      - docs/architecture/security/security-audit-log-v1.md
    Related:
      - src/fractown/contexts/security/application/use_cases/get_security_dashboard.py
      - src/fractown/contexts/security/adapters/inbound/api/routes/security_dashboard.py
    """

    total_events_24h: int
    successful_events_24h: int
    failed_events_24h: int
    success_rate_24h: float
    unique_ips_24h: int
    unique_admins_24h: int
    total_events_all_time: int
    oldest_event: datetime | None


class SecurityAuditLog:
    """
    SecurityAuditLog — best-effort append-only recorder and reader of admin security events.

    Docs:
      - docs/architecture/security/security-audit-log-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/security_event_store.py
      - src/fractown/contexts/security/domain/entities/security_event.py
      - apps/api/wiring/modules/security.py
    """

    def __init__(
        self,
        *,
        store: SecurityEventStore,
        clock: SecurityClock,
        metrics: SecurityEventMetrics | None = None,
        retention: timedelta = _DEFAULT_RETENTION,
        suspicious_failures: int = _DEFAULT_SUSPICIOUS_FAILURES,
        suspicious_window: timedelta = _DEFAULT_SUSPICIOUS_WINDOW,
    ) -> None:
        """
        Initialize audit log dependencies and thresholds.

        Args:
            store: Append-only event persistence port.
            clock: UTC time source for event timestamps.
            metrics: Optional event counter sink.
            retention: Age after which events are pruned.
            suspicious_failures: Failed events per admin/ip that trigger warning.
            suspicious_window: Lookback window for suspicious-activity check.
        Returns:
            None.
        Assumptions:
            Retention is longer than any lockout window.
        Raises:
            ValueError: If dependency is missing or one of thresholds is not positive.
        Side Effects:
            None.
        """
        if store is None:  # type: ignore[truthy-bool]
            raise ValueError("SecurityAuditLog requires store")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("SecurityAuditLog requires clock")
        if retention <= timedelta(0):
            raise ValueError("SecurityAuditLog retention must be > 0")
        if suspicious_failures <= 0:
            raise ValueError("SecurityAuditLog suspicious_failures must be > 0")
        if suspicious_window <= timedelta(0):
            raise ValueError("SecurityAuditLog suspicious_window must be > 0")

        self._store = store
        self._clock = clock
        self._metrics = metrics
        self._retention = retention
        self._suspicious_failures = suspicious_failures
        self._suspicious_window = suspicious_window

    def record(
        self,
        *,
        admin_id: AdminId,
        ip: str,
        user_agent: str,
        action: SecurityAction,
        success: bool,
        detail: str | None = None,
    ) -> None:
        """
        Append one security event without ever aborting the calling operation.

        Args:
            admin_id: Acting admin.
            ip: Client IP.
            user_agent: Client user agent.
            action: Audited action.
            success: Outcome flag.
            detail: Optional short machine-readable reason.
        Returns:
            None.
        Assumptions:
            Lockout correctness never depends on audit records.
        Raises:
            None.
        Side Effects:
            Writes event, increments metrics, may emit suspicious-activity warning.
        """
        try:
            event = SecurityEvent(
                admin_id=admin_id,
                ip=ip,
                user_agent=user_agent,
                action=action,
                success=success,
                timestamp=ensure_utc_datetime(value=self._clock.now(), field_name="clock.now"),
                detail=detail,
            )
            self._store.append(event=event)
        except Exception:
            log.exception("failed to record security event action=%s", action.value)
            return

        if self._metrics is not None:
            try:
                self._metrics.observe(event=event)
            except Exception:
                log.exception("failed to observe security event metrics")

        if not success:
            self._check_suspicious_activity(event=event)

    def stats(self) -> SecurityStats:
        """
        Build last-24h and all-time counters.

        Args:
            None.
        Returns:
            SecurityStats: Aggregated counters; success rate is percent rounded to 2 places.
        Assumptions:
            Success rate is `0.0` when there were no events in the window.
        Raises:
            Exception: Store read errors are propagated.
        Side Effects:
            Reads event store.
        """
        now = ensure_utc_datetime(value=self._clock.now(), field_name="clock.now")
        window = self._store.window_summary(since=now - _STATS_WINDOW)
        all_time = self._store.all_time_summary()
        success_rate = 0.0
        if window.total_events > 0:
            success_rate = round(window.successful / window.total_events * 100, 2)
        return SecurityStats(
            total_events_24h=window.total_events,
            successful_events_24h=window.successful,
            failed_events_24h=window.failed,
            success_rate_24h=success_rate,
            unique_ips_24h=window.unique_ips,
            unique_admins_24h=window.unique_admins,
            total_events_all_time=all_time.total_events,
            oldest_event=all_time.oldest_event,
        )

    def recent(
        self,
        *,
        limit: int,
        admin_id: AdminId | None = None,
    ) -> tuple[SecurityEvent, ...]:
        return tuple(self._store.list_recent(limit=limit, admin_id=admin_id))

    def count_recent(
        self,
        *,
        admin_id: AdminId,
        action: SecurityAction,
        window: timedelta,
        success: bool | None = None,
    ) -> int:
        """
        Count events of one admin and action inside trailing window.

        Args:
            admin_id: Admin filter.
            action: Action filter.
            window: Trailing lookback duration.
            success: Optional outcome filter.
        Returns:
            int: Matching event count.
        Assumptions:
            Used for setup throttling, so read errors propagate (fail closed).
        Raises:
            Exception: Store read errors are propagated.
        Side Effects:
            Reads event store.
        """
        now = ensure_utc_datetime(value=self._clock.now(), field_name="clock.now")
        return self._store.count(
            since=now - window,
            admin_id=admin_id,
            action=action,
            success=success,
        )

    def prune(self) -> int:
        """
        Delete events older than retention period.
        """
        now = ensure_utc_datetime(value=self._clock.now(), field_name="clock.now")
        deleted = self._store.prune_older_than(cutoff=now - self._retention)
        if deleted:
            log.info("pruned %s security events older than %s days", deleted, self._retention.days)
        return deleted

    def _check_suspicious_activity(self, *, event: SecurityEvent) -> None:
        """
        Emit warning when one admin/ip pair accumulated too many recent failures.

        Args:
            event: Failed event that was just appended.
        Returns:
            None.
        Assumptions:
            Warning carries truncated admin id only.
        Raises:
            None.
        Side Effects:
            Reads event store; may write warning log.
        """
        try:
            failures = self._store.count(
                since=event.timestamp - self._suspicious_window,
                admin_id=event.admin_id,
                ip=event.ip,
                success=False,
            )
        except Exception:
            log.exception("failed to evaluate suspicious security activity")
            return
        if failures >= self._suspicious_failures:
            log.warning(
                "suspicious activity: %s failed attempts for admin %s... from %s in %s min",
                failures,
                str(event.admin_id)[:_ADMIN_ID_LOG_PREFIX],
                event.ip,
                int(self._suspicious_window.total_seconds() // 60),
            )
