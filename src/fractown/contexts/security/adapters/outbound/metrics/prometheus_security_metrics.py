from __future__ import annotations

from prometheus_client import REGISTRY, CollectorRegistry, Counter

from fractown.contexts.security.application.ports.security_metrics import SecurityEventMetrics
from fractown.contexts.security.domain.entities import SecurityEvent


class PrometheusSecurityEventMetrics(SecurityEventMetrics):
    """
    PrometheusSecurityEventMetrics — Prometheus counter of audited security events.

    Docs:
      - docs/architecture/security/security-audit-log-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/security_metrics.py
      - src/fractown/contexts/security/application/services/security_audit_log.py
      - apps/api/main/app.py
    """

    def __init__(self, *, registry: CollectorRegistry | None = None) -> None:
        """
        Register security event counter.

        Args:
            registry: Target registry; default process registry when omitted.
        Returns:
            None.
        Assumptions:
            One instance per registry.
        Raises:
            ValueError: Propagated by prometheus client on duplicate metric names.
        Side Effects:
            Registers metric in registry.
        """
        self.events_total = Counter(
            "fractown_security_events_total",
            "Audited admin security events count",
            labelnames=("action", "success"),
            registry=REGISTRY if registry is None else registry,
        )

    def observe(self, *, event: SecurityEvent) -> None:
        self.events_total.labels(
            action=event.action.value,
            success="true" if event.success else "false",
        ).inc()
