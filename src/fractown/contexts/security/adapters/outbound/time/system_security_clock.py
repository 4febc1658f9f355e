from __future__ import annotations

from datetime import datetime, timezone

from fractown.contexts.security.application.ports.clock import SecurityClock


class SystemSecurityClock(SecurityClock):
    """
    SystemSecurityClock — platform реализация `SecurityClock` на системном UTC времени.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/clock.py
      - apps/api/wiring/modules/security.py
    """

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
