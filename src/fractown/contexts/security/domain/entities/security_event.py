from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from fractown.contexts.security.domain.value_objects import SecurityAction
from fractown.platform.time import ensure_utc_datetime
from fractown.shared_kernel.primitives import AdminId

_MAX_USER_AGENT_LENGTH = 512
_MAX_DETAIL_LENGTH = 256


@dataclass(frozen=True, slots=True)
class SecurityEvent:
    """
    SecurityEvent — append-only audit record of one admin second-factor action.

    Docs:
      - docs/architecture/security/security-audit-log-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/security_event_store.py
      - src/fractown/contexts/security/application/services/security_audit_log.py
      - apps/api/routes/security.py

    `detail` is the only extension point; it carries a short machine-readable reason
    (for example `malformed_code`) and never secret material.
    """

    admin_id: AdminId
    ip: str
    user_agent: str
    action: SecurityAction
    success: bool
    timestamp: datetime
    detail: str | None = None

    def __post_init__(self) -> None:
        """
        Normalize free-text request attributes and validate UTC timestamp.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            IP and user agent come from untrusted request metadata.
        Raises:
            ValueError: If IP is blank, action is not a `SecurityAction`,
                or timestamp is not UTC.
        Side Effects:
            Replaces `ip`, `user_agent` and `detail` with normalized values.
        """
        if not isinstance(self.action, SecurityAction):
            raise ValueError(f"SecurityEvent.action must be SecurityAction, got {self.action!r}")
        normalized_ip = self.ip.strip()
        if not normalized_ip:
            raise ValueError("SecurityEvent.ip must be non-empty")
        ensure_utc_datetime(value=self.timestamp, field_name="SecurityEvent.timestamp")
        object.__setattr__(self, "ip", normalized_ip)
        object.__setattr__(
            self,
            "user_agent",
            self.user_agent.strip()[:_MAX_USER_AGENT_LENGTH] or "unknown",
        )
        if self.detail is not None:
            object.__setattr__(self, "detail", self.detail.strip()[:_MAX_DETAIL_LENGTH] or None)
