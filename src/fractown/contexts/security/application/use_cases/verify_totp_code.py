from __future__ import annotations

import logging
from dataclasses import dataclass

from fractown.contexts.security.application.ports.clock import SecurityClock
from fractown.contexts.security.application.ports.envelope_encryption import EnvelopeEncryption
from fractown.contexts.security.application.ports.errors import SecurityCryptoError
from fractown.contexts.security.application.ports.totp_provider import TotpProvider
from fractown.contexts.security.application.ports.totp_secret_store import TotpSecretStore
from fractown.contexts.security.application.services.security_audit_log import SecurityAuditLog
from fractown.contexts.security.application.services.totp_attempt_limiter import (
    TotpAttemptLimiter,
)
from fractown.contexts.security.application.use_cases.totp_errors import (
    TotpInvalidCodeError,
    TotpLockedOutError,
    TotpNotEnrolledError,
)
from fractown.contexts.security.domain.value_objects import EnrollmentState, SecurityAction
from fractown.platform.time import ensure_utc_datetime
from fractown.shared_kernel.primitives import AdminId

log = logging.getLogger(__name__)

_TOTP_CODE_DIGITS = 6


@dataclass(frozen=True, slots=True)
class VerifyTotpCodeResult:
    """
    VerifyTotpCodeResult — output model for `/security/totp/verify` flow.
    """

    enrollment_state: EnrollmentState

    def __post_init__(self) -> None:
        if self.enrollment_state is not EnrollmentState.ENABLED:
            raise ValueError("VerifyTotpCodeResult.enrollment_state must be enabled")


class VerifyTotpCodeUseCase:
    """
    VerifyTotpCodeUseCase — verify admin TOTP code under lockout and enable pending enrollment.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
      - docs/architecture/security/security-totp-lockout-v1.md
    Related:
      - src/fractown/contexts/security/application/services/totp_attempt_limiter.py
      - src/fractown/contexts/security/application/ports/totp_provider.py
      - src/fractown/contexts/security/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(
        self,
        *,
        store: TotpSecretStore,
        encryption: EnvelopeEncryption,
        totp_provider: TotpProvider,
        limiter: TotpAttemptLimiter,
        audit_log: SecurityAuditLog,
        clock: SecurityClock,
    ) -> None:
        """
        Initialize verify use-case dependencies.

        Args:
            store: TOTP enrollment persistence port.
            encryption: Envelope encryption for TOTP secret.
            totp_provider: TOTP verification provider.
            limiter: Atomic lockout admission gate.
            audit_log: Security event recorder.
            clock: UTC time source.
        Returns:
            None.
        Assumptions:
            Dependencies are initialized and non-null.
        Raises:
            ValueError: If required dependency is missing.
        Side Effects:
            None.
        """
        if store is None:  # type: ignore[truthy-bool]
            raise ValueError("VerifyTotpCodeUseCase requires store")
        if encryption is None:  # type: ignore[truthy-bool]
            raise ValueError("VerifyTotpCodeUseCase requires encryption")
        if totp_provider is None:  # type: ignore[truthy-bool]
            raise ValueError("VerifyTotpCodeUseCase requires totp_provider")
        if limiter is None:  # type: ignore[truthy-bool]
            raise ValueError("VerifyTotpCodeUseCase requires limiter")
        if audit_log is None:  # type: ignore[truthy-bool]
            raise ValueError("VerifyTotpCodeUseCase requires audit_log")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("VerifyTotpCodeUseCase requires clock")

        self._store = store
        self._encryption = encryption
        self._totp_provider = totp_provider
        self._limiter = limiter
        self._audit_log = audit_log
        self._clock = clock

    def verify(
        self,
        *,
        admin_id: AdminId,
        ip: str,
        user_agent: str,
        code: str,
    ) -> VerifyTotpCodeResult:
        """
        Admit attempt, validate code against decrypted secret, enable pending enrollment.

        Args:
            admin_id: Admin submitting the code.
            ip: Client IP.
            user_agent: Client user agent.
            code: Submitted six-digit TOTP code.
        Returns:
            VerifyTotpCodeResult: Enabled enrollment marker.
        Assumptions:
            Every admitted attempt is counted before any secret is touched.
        Raises:
            TotpLockedOutError: If `(admin, ip)` subject is locked.
            TotpInvalidCodeError: If code is malformed, does not match, reuses an accepted
                time-step or enrollment changed concurrently.
            TotpNotEnrolledError: If admin has no pending or enabled enrollment.
            SecurityCryptoError: If stored secret cannot be decrypted.
        Side Effects:
            Updates lockout state, enables enrollment and stores accepted time-step,
            writes one audit event.
        """
        admission = self._limiter.admit(admin_id=admin_id, ip=ip)
        if not admission.allowed:
            self._record_failure(
                admin_id=admin_id,
                ip=ip,
                user_agent=user_agent,
                detail="locked_out",
            )
            raise TotpLockedOutError(retry_after_seconds=admission.retry_after_seconds)

        normalized_code = _normalize_totp_code(code=code)
        if normalized_code is None:
            self._record_failure(
                admin_id=admin_id,
                ip=ip,
                user_agent=user_agent,
                detail="malformed_code",
            )
            raise TotpInvalidCodeError()

        current = self._store.load(admin_id=admin_id)
        if (
            current is None
            or not current.enrollment_state.accepts_verify
            or current.encrypted_secret is None
        ):
            self._record_failure(
                admin_id=admin_id,
                ip=ip,
                user_agent=user_agent,
                detail="not_enrolled",
            )
            raise TotpNotEnrolledError()

        try:
            plaintext_secret = self._encryption.decrypt(
                blob=current.encrypted_secret,
                context=admin_id.to_context(),
            ).decode("ascii")
        except SecurityCryptoError:
            log.error("stored totp secret could not be decrypted")
            self._record_failure(
                admin_id=admin_id,
                ip=ip,
                user_agent=user_agent,
                detail="decryption_failure",
            )
            raise

        now = ensure_utc_datetime(value=self._clock.now(), field_name="clock.now")
        matched_step = self._totp_provider.verify_code(
            secret=plaintext_secret,
            code=normalized_code,
            at_time=now,
        )
        if matched_step is None:
            self._record_failure(
                admin_id=admin_id,
                ip=ip,
                user_agent=user_agent,
                detail="invalid_code",
            )
            raise TotpInvalidCodeError()
        if not current.accepts_step(step=matched_step):
            self._record_failure(
                admin_id=admin_id,
                ip=ip,
                user_agent=user_agent,
                detail="replayed_code",
            )
            raise TotpInvalidCodeError()

        # loses to concurrent disable/regenerate and to a parallel use of the same step
        if not self._store.record_verified_step(
            admin_id=admin_id,
            expected_secret=current.encrypted_secret,
            step=matched_step,
            verified_at=now,
        ):
            self._record_failure(
                admin_id=admin_id,
                ip=ip,
                user_agent=user_agent,
                detail="enrollment_changed",
            )
            raise TotpInvalidCodeError()

        self._limiter.record_success(admin_id=admin_id, ip=ip)
        self._audit_log.record(
            admin_id=admin_id,
            ip=ip,
            user_agent=user_agent,
            action=SecurityAction.VERIFY,
            success=True,
        )
        return VerifyTotpCodeResult(enrollment_state=EnrollmentState.ENABLED)

    def _record_failure(
        self,
        *,
        admin_id: AdminId,
        ip: str,
        user_agent: str,
        detail: str,
    ) -> None:
        self._audit_log.record(
            admin_id=admin_id,
            ip=ip,
            user_agent=user_agent,
            action=SecurityAction.VERIFY,
            success=False,
            detail=detail,
        )


def _normalize_totp_code(*, code: str) -> str | None:
    """
    Normalize TOTP code and return `None` when it is not exactly six ASCII digits.

    Args:
        code: Raw code from API payload.
    Returns:
        str | None: Normalized six-digit code or `None` for malformed input.
    Assumptions:
        Admin TOTP uses six-digit codes.
    Raises:
        None.
    Side Effects:
        None.
    """
    normalized = code.strip()
    if len(normalized) != _TOTP_CODE_DIGITS:
        return None
    if not (normalized.isascii() and normalized.isdigit()):
        return None
    return normalized
