from __future__ import annotations

from enum import Enum


class SecurityAction(str, Enum):
    """
    Closed set of audited admin second-factor actions.

    Docs: docs/architecture/security/security-audit-log-v1.md
    Related: ..entities.security_event, ...application.services.security_audit_log
    """

    GENERATE = "generate"
    VERIFY = "verify"
    BACKUP_USED = "backup_used"
    DISABLED = "disabled"
