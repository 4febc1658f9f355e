from __future__ import annotations

import logging
from dataclasses import dataclass

from fractown.contexts.security.application.services.security_audit_log import SecurityAuditLog
from fractown.contexts.security.application.services.totp_attempt_limiter import (
    TotpAttemptLimiter,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SecurityMaintenanceReport:
    """
    SecurityMaintenanceReport — outcome of one retention pass.
    """

    pruned_events: int
    pruned_lockout_states: int
    failed_steps: tuple[str, ...] = ()


class SecurityMaintenance:
    """
    SecurityMaintenance — periodic retention pass over audit events and lockout states.

    Docs:
      - docs/architecture/security/security-audit-log-v1.md
      - docs/architecture/security/security-totp-lockout-v1.md
    Related:
      - src/fractown/contexts/security/application/services/security_audit_log.py
      - src/fractown/contexts/security/application/services/totp_attempt_limiter.py
      - apps/api/main/app.py
    """

    def __init__(self, *, audit_log: SecurityAuditLog, limiter: TotpAttemptLimiter) -> None:
        if audit_log is None:  # type: ignore[truthy-bool]
            raise ValueError("SecurityMaintenance requires audit_log")
        if limiter is None:  # type: ignore[truthy-bool]
            raise ValueError("SecurityMaintenance requires limiter")
        self._audit_log = audit_log
        self._limiter = limiter

    def run_once(self) -> SecurityMaintenanceReport:
        """
        Prune audit events past retention and lockout states that stopped mattering.

        Args:
            None.
        Returns:
            SecurityMaintenanceReport: Deleted counts and names of failed steps.
        Assumptions:
            Both prunes are idempotent, so a failed step is retried on the next pass.
        Raises:
            None.
        Side Effects:
            Deletes storage records; logs step failures.
        """
        failed_steps: list[str] = []
        pruned_events = 0
        pruned_lockout_states = 0
        try:
            pruned_events = self._audit_log.prune()
        except Exception:  # noqa: BLE001
            failed_steps.append("audit_events")
            log.exception("security audit retention prune failed")
        try:
            pruned_lockout_states = self._limiter.prune()
        except Exception:  # noqa: BLE001
            failed_steps.append("lockout_states")
            log.exception("security lockout state prune failed")
        return SecurityMaintenanceReport(
            pruned_events=pruned_events,
            pruned_lockout_states=pruned_lockout_states,
            failed_steps=tuple(failed_steps),
        )
