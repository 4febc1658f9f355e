from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Sequence
from uuid import UUID

from fractown.contexts.security.adapters.outbound.persistence.postgres.gateway import (
    SecurityPostgresGateway,
)
from fractown.contexts.security.application.ports.security_event_store import (
    SecurityAllTimeSummary,
    SecurityEventStore,
    SecurityWindowSummary,
)
from fractown.contexts.security.domain.entities import SecurityEvent
from fractown.contexts.security.domain.value_objects import SecurityAction
from fractown.platform.time import coerce_utc_datetime
from fractown.shared_kernel.primitives import AdminId


class PostgresSecurityEventStore(SecurityEventStore):
    """
    PostgresSecurityEventStore — append-only Postgres storage of admin security events.

    Docs:
      - docs/architecture/security/security-audit-log-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/security_event_store.py
      - src/fractown/contexts/security/application/services/security_audit_log.py
      - alembic/versions/20261019_0001_security_core_v1.py
    """

    def __init__(
        self,
        *,
        gateway: SecurityPostgresGateway,
        events_table: str = "security_events",
    ) -> None:
        if gateway is None:  # type: ignore[truthy-bool]
            raise ValueError("PostgresSecurityEventStore requires gateway")
        normalized_table = events_table.strip()
        if not normalized_table:
            raise ValueError("PostgresSecurityEventStore requires non-empty table name")

        self._gateway = gateway
        self._table = normalized_table

    def append(self, *, event: SecurityEvent) -> None:
        query = f"""
        INSERT INTO {self._table} (
            admin_id,
            ip,
            user_agent,
            action,
            success,
            occurred_at,
            detail
        )
        VALUES (
            %(admin_id)s,
            %(ip)s,
            %(user_agent)s,
            %(action)s,
            %(success)s,
            %(occurred_at)s,
            %(detail)s
        )
        """
        self._gateway.execute(
            query=query,
            parameters={
                "admin_id": str(event.admin_id),
                "ip": event.ip,
                "user_agent": event.user_agent,
                "action": event.action.value,
                "success": event.success,
                "occurred_at": event.timestamp,
                "detail": event.detail,
            },
        )

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
            Sequence[SecurityEvent]: Events ordered by `occurred_at DESC, id DESC`.
        Assumptions:
            Index `(occurred_at DESC)` serves this query.
        Raises:
            ValueError: If limit is not positive or row mapping is malformed.
        Side Effects:
            Executes one SQL SELECT statement.
        """
        if limit <= 0:
            raise ValueError("PostgresSecurityEventStore limit must be > 0")
        query = f"""
        SELECT admin_id, ip, user_agent, action, success, occurred_at, detail
        FROM {self._table}
        WHERE (%(admin_id)s::uuid IS NULL OR admin_id = %(admin_id)s::uuid)
        ORDER BY occurred_at DESC, id DESC
        LIMIT %(limit)s
        """
        rows = self._gateway.fetch_all(
            query=query,
            parameters={
                "admin_id": None if admin_id is None else str(admin_id),
                "limit": limit,
            },
        )
        return tuple(_map_event_row(row=row) for row in rows)

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
        Count events since timestamp with optional equality filters.

        Args:
            since: Inclusive lower timestamp bound.
            admin_id: Optional admin filter.
            ip: Optional IP filter.
            action: Optional action filter.
            success: Optional outcome filter.
        Returns:
            int: Matching event count.
        Assumptions:
            `NULL` parameters disable the corresponding filter.
        Raises:
            Exception: Storage/driver exceptions.
        Side Effects:
            Executes one SQL SELECT statement.
        """
        query = f"""
        SELECT count(*) AS total
        FROM {self._table}
        WHERE occurred_at >= %(since)s
          AND (%(admin_id)s::uuid IS NULL OR admin_id = %(admin_id)s::uuid)
          AND (%(ip)s::text IS NULL OR ip = %(ip)s::text)
          AND (%(action)s::text IS NULL OR action = %(action)s::text)
          AND (%(success)s::boolean IS NULL OR success = %(success)s::boolean)
        """
        row = self._gateway.fetch_one(
            query=query,
            parameters={
                "since": since,
                "admin_id": None if admin_id is None else str(admin_id),
                "ip": ip,
                "action": None if action is None else action.value,
                "success": success,
            },
        )
        return 0 if row is None else int(row["total"])

    def window_summary(self, *, since: datetime) -> SecurityWindowSummary:
        query = f"""
        SELECT
            count(*) AS total_events,
            count(*) FILTER (WHERE success) AS successful,
            count(*) FILTER (WHERE NOT success) AS failed,
            count(DISTINCT ip) AS unique_ips,
            count(DISTINCT admin_id) AS unique_admins
        FROM {self._table}
        WHERE occurred_at >= %(since)s
        """
        row = self._gateway.fetch_one(query=query, parameters={"since": since})
        if row is None:
            return SecurityWindowSummary(
                total_events=0,
                successful=0,
                failed=0,
                unique_ips=0,
                unique_admins=0,
            )
        return SecurityWindowSummary(
            total_events=int(row["total_events"]),
            successful=int(row["successful"]),
            failed=int(row["failed"]),
            unique_ips=int(row["unique_ips"]),
            unique_admins=int(row["unique_admins"]),
        )

    def all_time_summary(self) -> SecurityAllTimeSummary:
        query = f"""
        SELECT count(*) AS total_events, min(occurred_at) AS oldest_event
        FROM {self._table}
        """
        row = self._gateway.fetch_one(query=query, parameters={})
        if row is None or row["oldest_event"] is None:
            return SecurityAllTimeSummary(total_events=0, oldest_event=None)
        return SecurityAllTimeSummary(
            total_events=int(row["total_events"]),
            oldest_event=coerce_utc_datetime(value=row["oldest_event"], field_name="oldest_event"),
        )

    def prune_older_than(self, *, cutoff: datetime) -> int:
        query = f"""
        WITH deleted AS (
            DELETE FROM {self._table}
            WHERE occurred_at < %(cutoff)s
            RETURNING 1
        )
        SELECT count(*) AS deleted FROM deleted
        """
        row = self._gateway.fetch_one(query=query, parameters={"cutoff": cutoff})
        return 0 if row is None else int(row["deleted"])


def _map_event_row(*, row: Mapping[str, Any]) -> SecurityEvent:
    """
    Map SQL row to `SecurityEvent`.

    Args:
        row: Event row mapping.
    Returns:
        SecurityEvent: Domain event.
    Assumptions:
        `action` column holds one of `SecurityAction` literals.
    Raises:
        ValueError: If row values are malformed.
    Side Effects:
        None.
    """
    raw_admin_id = row["admin_id"]
    admin_uuid = raw_admin_id if isinstance(raw_admin_id, UUID) else UUID(str(raw_admin_id))
    detail = row["detail"]
    return SecurityEvent(
        admin_id=AdminId(admin_uuid),
        ip=str(row["ip"]),
        user_agent=str(row["user_agent"]),
        action=SecurityAction(str(row["action"])),
        success=bool(row["success"]),
        timestamp=coerce_utc_datetime(value=row["occurred_at"], field_name="occurred_at"),
        detail=None if detail is None else str(detail),
    )
