from __future__ import annotations

from fractown.contexts.security.application.ports.clock import SecurityClock
from fractown.contexts.security.application.ports.totp_secret_store import TotpSecretStore
from fractown.contexts.security.application.services.security_audit_log import SecurityAuditLog
from fractown.contexts.security.domain.entities import TotpSecret
from fractown.contexts.security.domain.value_objects import EnrollmentState, SecurityAction
from fractown.platform.time import ensure_utc_datetime
from fractown.shared_kernel.primitives import AdminId


class DisableTotpUseCase:
    """
    DisableTotpUseCase — wipe admin TOTP secret and backup codes.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/domain/entities/totp_secret.py
      - src/fractown/contexts/security/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(
        self,
        *,
        store: TotpSecretStore,
        audit_log: SecurityAuditLog,
        clock: SecurityClock,
    ) -> None:
        if store is None:  # type: ignore[truthy-bool]
            raise ValueError("DisableTotpUseCase requires store")
        if audit_log is None:  # type: ignore[truthy-bool]
            raise ValueError("DisableTotpUseCase requires audit_log")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("DisableTotpUseCase requires clock")

        self._store = store
        self._audit_log = audit_log
        self._clock = clock

    def disable(self, *, admin_id: AdminId, ip: str, user_agent: str) -> None:
        """
        Persist `disabled` enrollment without secret material.

        Args:
            admin_id: Admin disabling second factor.
            ip: Client IP.
            user_agent: Client user agent.
        Returns:
            None.
        Assumptions:
            Operation is idempotent: absent or already disabled enrollments succeed.
        Raises:
            Exception: Store write errors are propagated.
        Side Effects:
            Overwrites stored enrollment and writes one `disabled` audit event.
        """
        now = ensure_utc_datetime(value=self._clock.now(), field_name="clock.now")
        current = self._store.load(admin_id=admin_id)
        if current is None:
            disabled = TotpSecret(
                admin_id=admin_id,
                encrypted_secret=None,
                backup_codes=(),
                backup_code_salt=b"",
                enrollment_state=EnrollmentState.DISABLED,
                created_at=now,
                updated_at=now,
            )
        else:
            disabled = current.wiped(updated_at=now)
        self._store.save(admin_id=admin_id, secret=disabled)
        self._audit_log.record(
            admin_id=admin_id,
            ip=ip,
            user_agent=user_agent,
            action=SecurityAction.DISABLED,
            success=True,
        )
