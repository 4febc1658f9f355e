from __future__ import annotations

from datetime import datetime
from typing import Protocol


class SecurityClock(Protocol):
    """
    SecurityClock — порт источника текущего времени для security use-cases.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/adapters/outbound/time/system_security_clock.py
      - src/fractown/contexts/security/application/use_cases/verify_totp_code.py
    """

    def now(self) -> datetime:
        """
        Return current UTC timestamp used for time-step computation and audit records.

        Args:
            None.
        Returns:
            datetime: Timezone-aware UTC datetime.
        Assumptions:
            Implementations return wall-clock progression for request flow.
        Raises:
            None.
        Side Effects:
            None.
        """
        ...
