from __future__ import annotations

from datetime import datetime
from typing import Protocol

from fractown.contexts.security.domain.entities import EncryptedBlob, TotpSecret
from fractown.shared_kernel.primitives import AdminId


class TotpSecretStore(Protocol):
    """
    TotpSecretStore — порт хранения зашифрованного TOTP секрета и хешей backup-кодов.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/domain/entities/totp_secret.py
      - src/fractown/contexts/security/adapters/outbound/persistence/in_memory/
        totp_secret_store.py
      - src/fractown/contexts/security/adapters/outbound/persistence/postgres/
        totp_secret_store.py
    """

    def save(self, *, admin_id: AdminId, secret: TotpSecret) -> None:
        """
        Create or replace full enrollment snapshot of one admin.

        Args:
            admin_id: Owning admin identifier.
            secret: Snapshot to persist; `secret.admin_id` must equal `admin_id`.
        Returns:
            None.
        Assumptions:
            Only TOTP use-cases mutate this record.
        Raises:
            ValueError: If snapshot owner differs from `admin_id`.
        Side Effects:
            Writes storage records.
        """
        ...

    def load(self, *, admin_id: AdminId) -> TotpSecret | None:
        """
        Load enrollment snapshot or `None` when admin never enrolled.

        Args:
            admin_id: Owning admin identifier.
        Returns:
            TotpSecret | None: Stored snapshot.
        Assumptions:
            Missing record means `not_enrolled`.
        Raises:
            ValueError: If storage row cannot be mapped.
        Side Effects:
            Reads storage records.
        """
        ...

    def consume_backup_code(self, *, admin_id: AdminId, code_hash: str, used_at: datetime) -> bool:
        """
        Atomically mark one matching unused backup code as used.

        Args:
            admin_id: Owning admin identifier.
            code_hash: Salted hash of the submitted code.
            used_at: UTC timestamp of consumption.
        Returns:
            bool: `True` when exactly one unused code was consumed, `False` without
                mutation otherwise.
        Assumptions:
            Two concurrent calls with the same hash yield at most one `True`.
        Raises:
            ValueError: If storage row cannot be mapped.
        Side Effects:
            Writes one storage record on success.
        """
        ...

    def record_verified_step(
        self,
        *,
        admin_id: AdminId,
        expected_secret: EncryptedBlob,
        step: int,
        verified_at: datetime,
    ) -> bool:
        """
        Atomically enable enrollment and remember last accepted TOTP time-step.

        Args:
            admin_id: Owning admin identifier.
            expected_secret: Encrypted secret the submitted code was checked against.
            step: Time-step counter matched by the submitted code.
            verified_at: UTC timestamp of verification.
        Returns:
            bool: `True` when the record still holds `expected_secret` in pending/enabled
                state and `step` is newer than the stored one, `False` without mutation
                otherwise.
        Assumptions:
            Concurrent disable, regenerate or replay of the same step make this return `False`.
        Raises:
            ValueError: If storage row cannot be mapped.
        Side Effects:
            Writes one storage record on success.
        """
        ...
