from __future__ import annotations

import hmac
from dataclasses import dataclass, replace
from datetime import datetime

from fractown.contexts.security.domain.entities.encrypted_blob import EncryptedBlob
from fractown.contexts.security.domain.value_objects import EnrollmentState
from fractown.platform.time import ensure_utc_datetime
from fractown.shared_kernel.primitives import AdminId


@dataclass(frozen=True, slots=True)
class BackupCode:
    """
    BackupCode — salted hash of one single-use recovery code plus its `used` flag.
    """

    code_hash: str
    used: bool = False

    def __post_init__(self) -> None:
        if not self.code_hash.strip():
            raise ValueError("BackupCode.code_hash must be non-empty")


@dataclass(frozen=True, slots=True)
class TotpSecret:
    """
    TotpSecret — immutable admin TOTP enrollment snapshot owned by one admin account.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/totp_secret_store.py
      - src/fractown/contexts/security/application/use_cases/generate_totp_secret.py
      - alembic/versions/20261019_0001_security_core_v1.py
      - alembic/versions/20261019_0002_security_totp_last_used_step_v1.py
    """

    admin_id: AdminId
    encrypted_secret: EncryptedBlob | None
    backup_codes: tuple[BackupCode, ...]
    backup_code_salt: bytes
    enrollment_state: EnrollmentState
    created_at: datetime
    updated_at: datetime
    last_used_step: int | None = None

    def __post_init__(self) -> None:
        """
        Validate enrollment invariants between state, secret material and timestamps.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            `NOT_ENROLLED` is represented by a missing record and never stored.
        Raises:
            ValueError: If state/material combination, timestamps or step are invalid.
        Side Effects:
            None.
        """
        ensure_utc_datetime(value=self.created_at, field_name="TotpSecret.created_at")
        ensure_utc_datetime(value=self.updated_at, field_name="TotpSecret.updated_at")
        if self.updated_at < self.created_at:
            raise ValueError("TotpSecret.updated_at cannot be before created_at")
        object.__setattr__(self, "backup_codes", tuple(self.backup_codes))
        if self.last_used_step is not None and self.last_used_step < 0:
            raise ValueError("TotpSecret.last_used_step must be >= 0")

        if self.enrollment_state is EnrollmentState.NOT_ENROLLED:
            raise ValueError("TotpSecret cannot be stored in not_enrolled state")
        if self.enrollment_state is EnrollmentState.DISABLED:
            if self.encrypted_secret is not None or self.backup_codes or self.backup_code_salt:
                raise ValueError("Disabled TotpSecret must not keep secret material")
            if self.last_used_step is not None:
                raise ValueError("Disabled TotpSecret must not keep last_used_step")
            return
        if self.encrypted_secret is None:
            raise ValueError("TotpSecret.encrypted_secret is required while enrolled")
        if not self.backup_code_salt:
            raise ValueError("TotpSecret.backup_code_salt is required while enrolled")

    @property
    def remaining_backup_codes(self) -> int:
        return sum(1 for code in self.backup_codes if not code.used)

    def accepts_step(self, *, step: int) -> bool:
        """
        Return `True` when TOTP time-step is newer than the last accepted one.
        """
        return self.last_used_step is None or step > self.last_used_step

    def with_verified_step(self, *, step: int, updated_at: datetime) -> TotpSecret | None:
        """
        Return `ENABLED` snapshot remembering `step` as the last accepted TOTP time-step.

        Args:
            step: Time-step counter matched by the submitted code.
            updated_at: UTC timestamp of this mutation.
        Returns:
            TotpSecret | None: Updated snapshot or `None` when state does not accept verify
                or the step was already used.
        Assumptions:
            Caller performs this inside the store's critical section.
        Raises:
            None.
        Side Effects:
            None.
        """
        if not self.enrollment_state.accepts_verify or not self.accepts_step(step=step):
            return None
        return replace(
            self,
            enrollment_state=EnrollmentState.ENABLED,
            last_used_step=step,
            updated_at=updated_at,
        )

    def with_backup_code_used(self, *, code_hash: str, updated_at: datetime) -> TotpSecret | None:
        """
        Return snapshot with first unused code matching `code_hash` marked used.

        Args:
            code_hash: Hash of the submitted backup code.
            updated_at: UTC timestamp of this mutation.
        Returns:
            TotpSecret | None: Updated snapshot or `None` when no unused code matches.
        Assumptions:
            Caller performs this inside the store's critical section.
        Raises:
            None.
        Side Effects:
            None.
        """
        for index, code in enumerate(self.backup_codes):
            if not code.used and hmac.compare_digest(code.code_hash, code_hash):
                codes = list(self.backup_codes)
                codes[index] = BackupCode(code_hash=code.code_hash, used=True)
                return replace(self, backup_codes=tuple(codes), updated_at=updated_at)
        return None

    def wiped(self, *, updated_at: datetime) -> TotpSecret:
        """
        Return `DISABLED` snapshot with secret, backup codes and salt removed.
        """
        return replace(
            self,
            encrypted_secret=None,
            backup_codes=(),
            backup_code_salt=b"",
            last_used_step=None,
            enrollment_state=EnrollmentState.DISABLED,
            updated_at=updated_at,
        )
