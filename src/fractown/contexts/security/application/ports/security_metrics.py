from __future__ import annotations

from typing import Protocol

from fractown.contexts.security.domain.entities import SecurityEvent


class SecurityEventMetrics(Protocol):
    """
    SecurityEventMetrics — порт счётчиков security событий для мониторинга.

    Related:
      - src/fractown/contexts/security/adapters/outbound/metrics/prometheus_security_metrics.py
      - src/fractown/contexts/security/application/services/security_audit_log.py
    """

    def observe(self, *, event: SecurityEvent) -> None:
        ...
