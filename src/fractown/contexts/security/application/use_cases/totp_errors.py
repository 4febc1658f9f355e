from __future__ import annotations

from typing import Any


class TotpOperationError(ValueError):
    """
    TotpOperationError — base deterministic application error for admin TOTP flows.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/application/use_cases/generate_totp_secret.py
      - src/fractown/contexts/security/application/use_cases/verify_totp_code.py
      - src/fractown/contexts/security/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(self, *, code: str, message: str, status_code: int) -> None:
        """
        Initialize stable operation error attributes for HTTP mapping.

        Args:
            code: Machine-readable deterministic error code.
            message: Human-readable deterministic message.
            status_code: HTTP status expected by inbound adapter.
        Returns:
            None.
        Assumptions:
            Messages never carry secret material or submitted codes.
        Raises:
            None.
        Side Effects:
            None.
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code

    def payload(self) -> dict[str, Any]:
        """
        Build deterministic HTTP error payload with stable key order.

        Args:
            None.
        Returns:
            dict[str, Any]: `{"error": "...", "message": "..."}` payload.
        Assumptions:
            Payload is rendered as JSONResponse body by the inbound adapter.
        Raises:
            None.
        Side Effects:
            None.
        """
        return {
            "error": self.code,
            "message": self.message,
        }


class TotpInvalidCodeError(TotpOperationError):
    """
    TotpInvalidCodeError — submitted TOTP code was malformed or did not match.
    """

    def __init__(self) -> None:
        super().__init__(
            code="invalid_totp_code",
            message="Invalid two-factor authentication code.",
            status_code=422,
        )


class TotpInvalidBackupCodeError(TotpOperationError):
    """
    TotpInvalidBackupCodeError — backup code was malformed, unknown, or already used.
    """

    def __init__(self) -> None:
        super().__init__(
            code="invalid_backup_code",
            message="Invalid backup code.",
            status_code=422,
        )


class TotpLockedOutError(TotpOperationError):
    """
    TotpLockedOutError — `(admin, ip)` subject exceeded failure budget and is locked.

    Docs:
      - docs/architecture/security/security-totp-lockout-v1.md
    Related:
      - src/fractown/contexts/security/application/services/totp_attempt_limiter.py
      - src/fractown/contexts/security/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(self, *, retry_after_seconds: int) -> None:
        """
        Initialize deterministic 429 lockout error with retry delay.

        Args:
            retry_after_seconds: Whole seconds until lock expiry.
        Returns:
            None.
        Assumptions:
            Delay is computed by limiter and already rounded up.
        Raises:
            ValueError: If delay is negative.
        Side Effects:
            None.
        """
        if retry_after_seconds < 0:
            raise ValueError("TotpLockedOutError.retry_after_seconds must be >= 0")
        super().__init__(
            code="LockedOut",
            message="Too many failed attempts. Try again later.",
            status_code=429,
        )
        self.retry_after_seconds = retry_after_seconds

    def payload(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "retryAfterSeconds": self.retry_after_seconds,
        }


class TotpNotEnrolledError(TotpOperationError):
    """
    TotpNotEnrolledError — verification requested without an active enrollment.
    """

    def __init__(self) -> None:
        super().__init__(
            code="totp_not_enrolled",
            message="Two-factor authentication is not set up.",
            status_code=422,
        )


class TotpInvalidStateError(TotpOperationError):
    """
    TotpInvalidStateError — secret generation requested while enrollment is pending or enabled.
    """

    def __init__(self) -> None:
        super().__init__(
            code="totp_invalid_state",
            message="Two-factor authentication is already set up.",
            status_code=409,
        )


class TotpSetupThrottledError(TotpOperationError):
    """
    TotpSetupThrottledError — too many secret generations for one admin in a short window.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/application/use_cases/generate_totp_secret.py
    """

    def __init__(self) -> None:
        """
        Initialize deterministic 429 setup-throttle error.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Throttle window is fixed by generate use case configuration.
        Raises:
            None.
        Side Effects:
            None.
        """
        super().__init__(
            code="totp_setup_throttled",
            message="Too many two-factor setup attempts. Try again later.",
            status_code=429,
        )
