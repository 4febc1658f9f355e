from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from fractown.contexts.security.application.ports.backup_code_hasher import BackupCodeHasher
from fractown.contexts.security.application.ports.clock import SecurityClock
from fractown.contexts.security.application.ports.envelope_encryption import EnvelopeEncryption
from fractown.contexts.security.application.ports.totp_provider import TotpProvider
from fractown.contexts.security.application.ports.totp_secret_store import TotpSecretStore
from fractown.contexts.security.application.services.security_audit_log import SecurityAuditLog
from fractown.contexts.security.application.use_cases.totp_errors import (
    TotpInvalidStateError,
    TotpSetupThrottledError,
)
from fractown.contexts.security.domain.entities import BackupCode, TotpSecret
from fractown.contexts.security.domain.value_objects import EnrollmentState, SecurityAction
from fractown.platform.time import ensure_utc_datetime
from fractown.shared_kernel.primitives import AdminId

_DEFAULT_BACKUP_CODE_COUNT = 10
_DEFAULT_SETUP_LIMIT = 3
_DEFAULT_SETUP_WINDOW = timedelta(minutes=15)


@dataclass(frozen=True, slots=True)
class GenerateTotpSecretResult:
    """
    GenerateTotpSecretResult — one-time enrollment material for `/security/totp/generate-secret`.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/application/use_cases/generate_totp_secret.py
      - src/fractown/contexts/security/adapters/inbound/api/routes/two_factor_totp.py

    Plaintext secret and backup codes exist only in this result; the store keeps
    the encrypted secret and code hashes.
    """

    secret_base32: str
    otpauth_uri: str
    backup_codes: tuple[str, ...]

    def __post_init__(self) -> None:
        """
        Validate that result contains standard otpauth URI and at least one backup code.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            UI generates QR code from returned URI.
        Raises:
            ValueError: If URI scheme is unexpected or codes are missing.
        Side Effects:
            None.
        """
        if not self.secret_base32:
            raise ValueError("GenerateTotpSecretResult.secret_base32 must be non-empty")
        if not self.otpauth_uri.startswith("otpauth://totp"):
            raise ValueError(
                "GenerateTotpSecretResult.otpauth_uri must start with 'otpauth://totp'"
            )
        if not self.backup_codes:
            raise ValueError("GenerateTotpSecretResult.backup_codes must be non-empty")


class GenerateTotpSecretUseCase:
    """
    GenerateTotpSecretUseCase — create pending admin TOTP enrollment with backup codes.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/totp_secret_store.py
      - src/fractown/contexts/security/application/ports/envelope_encryption.py
      - src/fractown/contexts/security/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(
        self,
        *,
        store: TotpSecretStore,
        encryption: EnvelopeEncryption,
        totp_provider: TotpProvider,
        backup_code_hasher: BackupCodeHasher,
        audit_log: SecurityAuditLog,
        clock: SecurityClock,
        issuer: str = "fractOWN",
        backup_code_count: int = _DEFAULT_BACKUP_CODE_COUNT,
        setup_limit: int = _DEFAULT_SETUP_LIMIT,
        setup_window: timedelta = _DEFAULT_SETUP_WINDOW,
    ) -> None:
        """
        Initialize generate use-case dependencies and enrollment policy.

        Args:
            store: TOTP enrollment persistence port.
            encryption: Envelope encryption for TOTP secret.
            totp_provider: Secret and otpauth URI provider.
            backup_code_hasher: Backup code generator and hasher.
            audit_log: Security event recorder.
            clock: UTC time source.
            issuer: Issuer label used in authenticator apps.
            backup_code_count: Number of backup codes per enrollment.
            setup_limit: Successful generations allowed per admin in `setup_window`.
            setup_window: Setup throttle window.
        Returns:
            None.
        Assumptions:
            All dependencies are initialized and non-null.
        Raises:
            ValueError: If dependencies are missing or policy values are invalid.
        Side Effects:
            None.
        """
        normalized_issuer = issuer.strip()
        if store is None:  # type: ignore[truthy-bool]
            raise ValueError("GenerateTotpSecretUseCase requires store")
        if encryption is None:  # type: ignore[truthy-bool]
            raise ValueError("GenerateTotpSecretUseCase requires encryption")
        if totp_provider is None:  # type: ignore[truthy-bool]
            raise ValueError("GenerateTotpSecretUseCase requires totp_provider")
        if backup_code_hasher is None:  # type: ignore[truthy-bool]
            raise ValueError("GenerateTotpSecretUseCase requires backup_code_hasher")
        if audit_log is None:  # type: ignore[truthy-bool]
            raise ValueError("GenerateTotpSecretUseCase requires audit_log")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("GenerateTotpSecretUseCase requires clock")
        if not normalized_issuer:
            raise ValueError("GenerateTotpSecretUseCase requires non-empty issuer")
        if backup_code_count <= 0:
            raise ValueError("GenerateTotpSecretUseCase backup_code_count must be > 0")
        if setup_limit <= 0:
            raise ValueError("GenerateTotpSecretUseCase setup_limit must be > 0")
        if setup_window <= timedelta(0):
            raise ValueError("GenerateTotpSecretUseCase setup_window must be > 0")

        self._store = store
        self._encryption = encryption
        self._totp_provider = totp_provider
        self._backup_code_hasher = backup_code_hasher
        self._audit_log = audit_log
        self._clock = clock
        self._issuer = normalized_issuer
        self._backup_code_count = backup_code_count
        self._setup_limit = setup_limit
        self._setup_window = setup_window

    def generate(
        self,
        *,
        admin_id: AdminId,
        ip: str,
        user_agent: str,
    ) -> GenerateTotpSecretResult:
        """
        Generate secret and backup codes, persist encrypted pending enrollment.

        Args:
            admin_id: Admin enrolling second factor.
            ip: Client IP.
            user_agent: Client user agent.
        Returns:
            GenerateTotpSecretResult: Plaintext secret, otpauth URI and backup codes.
        Assumptions:
            Generation is allowed from `not_enrolled` and `disabled` states only.
        Raises:
            TotpInvalidStateError: If enrollment is pending or enabled.
            TotpSetupThrottledError: If admin generated too many secrets recently.
        Side Effects:
            Writes encrypted enrollment and one `generate` audit event.
        """
        current = self._store.load(admin_id=admin_id)
        state = EnrollmentState.NOT_ENROLLED if current is None else current.enrollment_state
        if not state.accepts_generate:
            self._audit(admin_id=admin_id, ip=ip, user_agent=user_agent, detail="invalid_state")
            raise TotpInvalidStateError()

        recent_generations = self._audit_log.count_recent(
            admin_id=admin_id,
            action=SecurityAction.GENERATE,
            window=self._setup_window,
            success=True,
        )
        if recent_generations >= self._setup_limit:
            self._audit(admin_id=admin_id, ip=ip, user_agent=user_agent, detail="throttled")
            raise TotpSetupThrottledError()

        now = ensure_utc_datetime(value=self._clock.now(), field_name="clock.now")
        plaintext_secret = self._totp_provider.create_secret()
        backup_codes = self._backup_code_hasher.generate_codes(count=self._backup_code_count)
        backup_code_salt = self._backup_code_hasher.generate_salt()
        encrypted_secret = self._encryption.encrypt(
            plaintext=plaintext_secret.encode("ascii"),
            context=admin_id.to_context(),
        )
        self._store.save(
            admin_id=admin_id,
            secret=TotpSecret(
                admin_id=admin_id,
                encrypted_secret=encrypted_secret,
                backup_codes=tuple(
                    BackupCode(
                        code_hash=self._backup_code_hasher.hash_code(
                            code=code,
                            salt=backup_code_salt,
                        )
                    )
                    for code in backup_codes
                ),
                backup_code_salt=backup_code_salt,
                enrollment_state=EnrollmentState.PENDING_VERIFICATION,
                created_at=now if current is None else current.created_at,
                updated_at=now,
            ),
        )
        self._audit_log.record(
            admin_id=admin_id,
            ip=ip,
            user_agent=user_agent,
            action=SecurityAction.GENERATE,
            success=True,
        )
        return GenerateTotpSecretResult(
            secret_base32=plaintext_secret,
            otpauth_uri=self._totp_provider.build_otpauth_uri(
                secret=plaintext_secret,
                account_label=f"admin:{admin_id}",
                issuer=self._issuer,
            ),
            backup_codes=backup_codes,
        )

    def _audit(self, *, admin_id: AdminId, ip: str, user_agent: str, detail: str) -> None:
        self._audit_log.record(
            admin_id=admin_id,
            ip=ip,
            user_agent=user_agent,
            action=SecurityAction.GENERATE,
            success=False,
            detail=detail,
        )
