from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fractown.contexts.security.application.use_cases import (
    DEFAULT_DASHBOARD_EVENTS,
    MAX_DASHBOARD_EVENTS,
    GetSecurityDashboardUseCase,
)
from fractown.contexts.security.domain.entities import SecurityEvent
from fractown.shared_kernel.primitives import AdminId


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SecurityStatsResponse(_CamelModel):
    """
    SecurityStatsResponse — dashboard counters for last 24 hours and all time.

    Docs:
      - docs/architecture/security/security-audit-log-v1.md
    Related:
      - src/fractown/contexts/security/application/services/security_audit_log.py
      - apps/api/routes/security.py
    """

    # to_camel would render `24H`
    total_events_24h: int = Field(alias="totalEvents24h")
    successful_events_24h: int = Field(alias="successfulEvents24h")
    failed_events_24h: int = Field(alias="failedEvents24h")
    success_rate_24h: float = Field(alias="successRate24h")
    unique_ips_24h: int = Field(alias="uniqueIps24h")
    unique_admins_24h: int = Field(alias="uniqueAdmins24h")
    total_events_all_time: int
    oldest_event: datetime | None


class SecurityEventResponse(_CamelModel):
    """
    SecurityEventResponse — one audit event row for dashboard table.
    """

    admin_id: str
    ip: str
    user_agent: str
    action: str
    success: bool
    timestamp: datetime
    detail: str | None = None

    @classmethod
    def from_event(cls, event: SecurityEvent) -> SecurityEventResponse:
        return cls(
            admin_id=str(event.admin_id),
            ip=event.ip,
            user_agent=event.user_agent,
            action=event.action.value,
            success=event.success,
            timestamp=event.timestamp,
            detail=event.detail,
        )


class SecurityDashboardResponse(_CamelModel):
    """
    SecurityDashboardResponse — API response payload for `GET /security/dashboard`.
    """

    stats: SecurityStatsResponse
    recent_events: list[SecurityEventResponse]


def build_security_dashboard_router(
    *,
    dashboard_use_case: GetSecurityDashboardUseCase,
) -> APIRouter:
    """
    Build router exposing admin security dashboard read model.

    Args:
        dashboard_use_case: Dashboard read use-case.
    Returns:
        APIRouter: Router with `GET /security/dashboard`.
    Assumptions:
        Admin authentication happens in front of this router.
    Raises:
        ValueError: If dependency is missing.
    Side Effects:
        None.
    """
    if dashboard_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_security_dashboard_router requires dashboard_use_case")

    router = APIRouter(tags=["security"])

    @router.get("/security/dashboard", response_model=SecurityDashboardResponse)
    def get_security_dashboard(
        limit: int = Query(default=DEFAULT_DASHBOARD_EVENTS, ge=1, le=MAX_DASHBOARD_EVENTS),
        admin_id: UUID | None = Query(default=None, alias="adminId"),
    ) -> SecurityDashboardResponse:
        """
        Return stats and newest events, optionally filtered by admin.

        Args:
            limit: Number of recent events, `1..200`.
            admin_id: Optional admin filter for recent events.
        Returns:
            SecurityDashboardResponse: Dashboard payload.
        Assumptions:
            Out-of-range limit is rejected by query validation with 422.
        Raises:
            None.
        Side Effects:
            Reads audit storage.
        """
        dashboard = dashboard_use_case.get(
            limit=limit,
            admin_id=None if admin_id is None else AdminId(admin_id),
        )
        stats = dashboard.stats
        return SecurityDashboardResponse(
            stats=SecurityStatsResponse(
                total_events_24h=stats.total_events_24h,
                successful_events_24h=stats.successful_events_24h,
                failed_events_24h=stats.failed_events_24h,
                success_rate_24h=stats.success_rate_24h,
                unique_ips_24h=stats.unique_ips_24h,
                unique_admins_24h=stats.unique_admins_24h,
                total_events_all_time=stats.total_events_all_time,
                oldest_event=stats.oldest_event,
            ),
            recent_events=[
                SecurityEventResponse.from_event(event) for event in dashboard.recent_events
            ],
        )

    return router
