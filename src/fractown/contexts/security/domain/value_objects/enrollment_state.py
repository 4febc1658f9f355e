from __future__ import annotations

from enum import Enum


class EnrollmentState(str, Enum):
    """
    Admin TOTP enrollment lifecycle literal.

    `NOT_ENROLLED` is never persisted: it is represented by an absent store record.

    Docs: docs/architecture/security/security-admin-totp-v1.md
    Related: ..entities.totp_secret, ...application.use_cases.generate_totp_secret
    """

    NOT_ENROLLED = "not_enrolled"
    PENDING_VERIFICATION = "pending_verification"
    ENABLED = "enabled"
    DISABLED = "disabled"

    @property
    def accepts_generate(self) -> bool:
        return self in (EnrollmentState.NOT_ENROLLED, EnrollmentState.DISABLED)

    @property
    def accepts_verify(self) -> bool:
        return self in (EnrollmentState.PENDING_VERIFICATION, EnrollmentState.ENABLED)
