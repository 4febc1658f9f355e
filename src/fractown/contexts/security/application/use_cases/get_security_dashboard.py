from __future__ import annotations

from dataclasses import dataclass

from fractown.contexts.security.application.services.security_audit_log import (
    SecurityAuditLog,
    SecurityStats,
)
from fractown.contexts.security.domain.entities import SecurityEvent
from fractown.shared_kernel.primitives import AdminId

MAX_DASHBOARD_EVENTS = 200
DEFAULT_DASHBOARD_EVENTS = 50


@dataclass(frozen=True, slots=True)
class SecurityDashboard:
    """
    SecurityDashboard — aggregated stats plus most recent security events.
    """

    stats: SecurityStats
    recent_events: tuple[SecurityEvent, ...]


class GetSecurityDashboardUseCase:
    """
    GetSecurityDashboardUseCase — read model for admin security dashboard.

    Docs:
      - docs/architecture/security/security-audit-log-v1.md
    Related:
      - src/fractown/contexts/security/application/services/security_audit_log.py
      - src/fractown/contexts/security/adapters/inbound/api/routes/security_dashboard.py
    """

    def __init__(self, *, audit_log: SecurityAuditLog) -> None:
        if audit_log is None:  # type: ignore[truthy-bool]
            raise ValueError("GetSecurityDashboardUseCase requires audit_log")
        self._audit_log = audit_log

    def get(
        self,
        *,
        limit: int = DEFAULT_DASHBOARD_EVENTS,
        admin_id: AdminId | None = None,
    ) -> SecurityDashboard:
        """
        Build dashboard snapshot with bounded event list.

        Args:
            limit: Number of recent events, `1..200`.
            admin_id: Optional admin filter for recent events.
        Returns:
            SecurityDashboard: Stats and newest-first events.
        Assumptions:
            Stats are global even when events are filtered by admin.
        Raises:
            ValueError: If limit is outside `1..200`.
        Side Effects:
            Reads event store.
        """
        if limit < 1 or limit > MAX_DASHBOARD_EVENTS:
            raise ValueError(
                f"GetSecurityDashboardUseCase limit must be in 1..{MAX_DASHBOARD_EVENTS}"
            )
        return SecurityDashboard(
            stats=self._audit_log.stats(),
            recent_events=self._audit_log.recent(limit=limit, admin_id=admin_id),
        )
