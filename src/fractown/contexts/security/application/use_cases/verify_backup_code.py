from __future__ import annotations

from dataclasses import dataclass

from fractown.contexts.security.application.ports.backup_code_hasher import BackupCodeHasher
from fractown.contexts.security.application.ports.clock import SecurityClock
from fractown.contexts.security.application.ports.totp_secret_store import TotpSecretStore
from fractown.contexts.security.application.services.security_audit_log import SecurityAuditLog
from fractown.contexts.security.application.services.totp_attempt_limiter import (
    TotpAttemptLimiter,
)
from fractown.contexts.security.application.use_cases.totp_errors import (
    TotpInvalidBackupCodeError,
    TotpLockedOutError,
    TotpNotEnrolledError,
)
from fractown.contexts.security.domain.value_objects import EnrollmentState, SecurityAction
from fractown.platform.time import ensure_utc_datetime
from fractown.shared_kernel.primitives import AdminId


@dataclass(frozen=True, slots=True)
class VerifyBackupCodeResult:
    """
    VerifyBackupCodeResult — output model for `/security/totp/verify-backup` flow.
    """

    remaining_backup_codes: int

    def __post_init__(self) -> None:
        if self.remaining_backup_codes < 0:
            raise ValueError("VerifyBackupCodeResult.remaining_backup_codes must be >= 0")


class VerifyBackupCodeUseCase:
    """
    VerifyBackupCodeUseCase — consume one single-use backup code under lockout.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
      - docs/architecture/security/security-totp-lockout-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/totp_secret_store.py
      - src/fractown/contexts/security/application/ports/backup_code_hasher.py
      - src/fractown/contexts/security/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(
        self,
        *,
        store: TotpSecretStore,
        backup_code_hasher: BackupCodeHasher,
        limiter: TotpAttemptLimiter,
        audit_log: SecurityAuditLog,
        clock: SecurityClock,
    ) -> None:
        """
        Initialize backup-code use-case dependencies.

        Args:
            store: TOTP enrollment persistence port with atomic consumption.
            backup_code_hasher: Backup code normalizer and hasher.
            limiter: Atomic lockout admission gate.
            audit_log: Security event recorder.
            clock: UTC time source.
        Returns:
            None.
        Assumptions:
            Limiter is shared with TOTP verification so both paths spend one budget.
        Raises:
            ValueError: If required dependency is missing.
        Side Effects:
            None.
        """
        if store is None:  # type: ignore[truthy-bool]
            raise ValueError("VerifyBackupCodeUseCase requires store")
        if backup_code_hasher is None:  # type: ignore[truthy-bool]
            raise ValueError("VerifyBackupCodeUseCase requires backup_code_hasher")
        if limiter is None:  # type: ignore[truthy-bool]
            raise ValueError("VerifyBackupCodeUseCase requires limiter")
        if audit_log is None:  # type: ignore[truthy-bool]
            raise ValueError("VerifyBackupCodeUseCase requires audit_log")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("VerifyBackupCodeUseCase requires clock")

        self._store = store
        self._backup_code_hasher = backup_code_hasher
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
    ) -> VerifyBackupCodeResult:
        """
        Admit attempt, hash normalized code, atomically consume matching unused code.

        Args:
            admin_id: Admin submitting the code.
            ip: Client IP.
            user_agent: Client user agent.
            code: Submitted backup code.
        Returns:
            VerifyBackupCodeResult: Number of unused codes left after consumption.
        Assumptions:
            Backup codes are accepted only for enabled enrollments.
        Raises:
            TotpLockedOutError: If `(admin, ip)` subject is locked.
            TotpInvalidBackupCodeError: If code is malformed, unknown, or already used.
            TotpNotEnrolledError: If admin has no enabled enrollment.
        Side Effects:
            Updates lockout state, marks one code used, writes one audit event.
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

        normalized_code = self._backup_code_hasher.normalize(code=code)
        if normalized_code is None:
            self._record_failure(
                admin_id=admin_id,
                ip=ip,
                user_agent=user_agent,
                detail="malformed_backup_code",
            )
            raise TotpInvalidBackupCodeError()

        current = self._store.load(admin_id=admin_id)
        if current is None or current.enrollment_state is not EnrollmentState.ENABLED:
            self._record_failure(
                admin_id=admin_id,
                ip=ip,
                user_agent=user_agent,
                detail="not_enrolled",
            )
            raise TotpNotEnrolledError()

        now = ensure_utc_datetime(value=self._clock.now(), field_name="clock.now")
        code_hash = self._backup_code_hasher.hash_code(
            code=normalized_code,
            salt=current.backup_code_salt,
        )
        if not self._store.consume_backup_code(
            admin_id=admin_id,
            code_hash=code_hash,
            used_at=now,
        ):
            self._record_failure(
                admin_id=admin_id,
                ip=ip,
                user_agent=user_agent,
                detail="invalid_backup_code",
            )
            raise TotpInvalidBackupCodeError()

        self._limiter.record_success(admin_id=admin_id, ip=ip)
        self._audit_log.record(
            admin_id=admin_id,
            ip=ip,
            user_agent=user_agent,
            action=SecurityAction.BACKUP_USED,
            success=True,
        )
        updated = self._store.load(admin_id=admin_id)
        remaining = 0 if updated is None else updated.remaining_backup_codes
        return VerifyBackupCodeResult(remaining_backup_codes=remaining)

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
