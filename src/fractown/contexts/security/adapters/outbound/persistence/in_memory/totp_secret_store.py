from __future__ import annotations

import threading
from datetime import datetime

from fractown.contexts.security.application.ports.totp_secret_store import TotpSecretStore
from fractown.contexts.security.domain.entities import EncryptedBlob, TotpSecret
from fractown.shared_kernel.primitives import AdminId


class InMemoryTotpSecretStore(TotpSecretStore):
    """
    InMemoryTotpSecretStore — process-local TOTP enrollment storage guarded by one lock.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/totp_secret_store.py
      - src/fractown/contexts/security/adapters/outbound/persistence/postgres/
        totp_secret_store.py
      - tests/unit/contexts/security/adapters/test_in_memory_security_stores.py
    """

    def __init__(self) -> None:
        self._rows: dict[str, TotpSecret] = {}
        self._lock = threading.Lock()

    def save(self, *, admin_id: AdminId, secret: TotpSecret) -> None:
        """
        Store or replace enrollment snapshot of one admin.

        Args:
            admin_id: Owning admin identifier.
            secret: Snapshot to persist.
        Returns:
            None.
        Assumptions:
            Snapshot is immutable, so it is stored by reference.
        Raises:
            ValueError: If snapshot belongs to another admin.
        Side Effects:
            Mutates in-memory dictionary row for the admin.
        """
        if secret.admin_id != admin_id:
            raise ValueError("InMemoryTotpSecretStore secret.admin_id must match admin_id")
        with self._lock:
            self._rows[str(admin_id)] = secret

    def load(self, *, admin_id: AdminId) -> TotpSecret | None:
        with self._lock:
            return self._rows.get(str(admin_id))

    def consume_backup_code(self, *, admin_id: AdminId, code_hash: str, used_at: datetime) -> bool:
        """
        Mark first unused code with matching hash as used in one critical section.

        Args:
            admin_id: Owning admin identifier.
            code_hash: Salted hash of the submitted code.
            used_at: UTC timestamp of consumption.
        Returns:
            bool: `True` when one code was consumed.
        Assumptions:
            Concurrent callers with the same code are serialized by the lock.
        Raises:
            None.
        Side Effects:
            Replaces stored snapshot on success.
        """
        with self._lock:
            current = self._rows.get(str(admin_id))
            if current is None:
                return False
            updated = current.with_backup_code_used(code_hash=code_hash, updated_at=used_at)
            if updated is None:
                return False
            self._rows[str(admin_id)] = updated
            return True

    def record_verified_step(
        self,
        *,
        admin_id: AdminId,
        expected_secret: EncryptedBlob,
        step: int,
        verified_at: datetime,
    ) -> bool:
        with self._lock:
            current = self._rows.get(str(admin_id))
            if current is None or current.encrypted_secret != expected_secret:
                return False
            updated = current.with_verified_step(step=step, updated_at=verified_at)
            if updated is None:
                return False
            self._rows[str(admin_id)] = updated
            return True
