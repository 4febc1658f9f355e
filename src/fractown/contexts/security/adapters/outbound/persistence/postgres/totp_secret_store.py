from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Sequence
from uuid import UUID

from fractown.contexts.security.adapters.outbound.persistence.postgres.gateway import (
    SecurityPostgresGateway,
)
from fractown.contexts.security.application.ports.totp_secret_store import TotpSecretStore
from fractown.contexts.security.domain.entities import BackupCode, EncryptedBlob, TotpSecret
from fractown.contexts.security.domain.value_objects import EnrollmentState
from fractown.platform.time import coerce_utc_datetime
from fractown.shared_kernel.primitives import AdminId


class PostgresTotpSecretStore(TotpSecretStore):
    """
    PostgresTotpSecretStore — Postgres adapter for admin TOTP enrollments and backup codes.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/totp_secret_store.py
      - alembic/versions/20261019_0001_security_core_v1.py
      - alembic/versions/20261019_0002_security_totp_last_used_step_v1.py
      - src/fractown/contexts/security/adapters/outbound/persistence/postgres/gateway.py
    """

    def __init__(
        self,
        *,
        gateway: SecurityPostgresGateway,
        secrets_table: str = "security_totp_secrets",
        backup_codes_table: str = "security_totp_backup_codes",
    ) -> None:
        """
        Initialize store with SQL gateway and target table names.

        Args:
            gateway: SQL gateway abstraction.
            secrets_table: Enrollment table name.
            backup_codes_table: Backup code table name.
        Returns:
            None.
        Assumptions:
            Table schema follows migrations `20261019_0001` and `20261019_0002`.
        Raises:
            ValueError: If dependencies are invalid.
        Side Effects:
            None.
        """
        if gateway is None:  # type: ignore[truthy-bool]
            raise ValueError("PostgresTotpSecretStore requires gateway")
        normalized_secrets_table = secrets_table.strip()
        normalized_codes_table = backup_codes_table.strip()
        if not normalized_secrets_table or not normalized_codes_table:
            raise ValueError("PostgresTotpSecretStore requires non-empty table names")

        self._gateway = gateway
        self._secrets_table = normalized_secrets_table
        self._codes_table = normalized_codes_table

    def save(self, *, admin_id: AdminId, secret: TotpSecret) -> None:
        """
        Upsert enrollment row and replace its backup codes in one transaction.

        Args:
            admin_id: Owning admin identifier.
            secret: Snapshot to persist.
        Returns:
            None.
        Assumptions:
            Backup code positions follow tuple order.
        Raises:
            ValueError: If snapshot belongs to another admin.
        Side Effects:
            Executes one UPSERT, one DELETE and one INSERT per backup code.
        """
        if secret.admin_id != admin_id:
            raise ValueError("PostgresTotpSecretStore secret.admin_id must match admin_id")
        blob = secret.encrypted_secret
        upsert_query = f"""
        INSERT INTO {self._secrets_table} (
            admin_id,
            enrollment_state,
            secret_salt,
            secret_iv,
            secret_ciphertext,
            secret_auth_tag,
            secret_key_version,
            backup_code_salt,
            last_used_step,
            created_at,
            updated_at
        )
        VALUES (
            %(admin_id)s,
            %(enrollment_state)s,
            %(secret_salt)s,
            %(secret_iv)s,
            %(secret_ciphertext)s,
            %(secret_auth_tag)s,
            %(secret_key_version)s,
            %(backup_code_salt)s,
            %(last_used_step)s,
            %(created_at)s,
            %(updated_at)s
        )
        ON CONFLICT (admin_id) DO UPDATE
        SET
            enrollment_state = EXCLUDED.enrollment_state,
            secret_salt = EXCLUDED.secret_salt,
            secret_iv = EXCLUDED.secret_iv,
            secret_ciphertext = EXCLUDED.secret_ciphertext,
            secret_auth_tag = EXCLUDED.secret_auth_tag,
            secret_key_version = EXCLUDED.secret_key_version,
            backup_code_salt = EXCLUDED.backup_code_salt,
            last_used_step = EXCLUDED.last_used_step,
            updated_at = EXCLUDED.updated_at
        """
        storage = blob.to_storage() if blob is not None else None
        parameters = {
            "admin_id": str(admin_id),
            "enrollment_state": secret.enrollment_state.value,
            "secret_salt": None if storage is None else storage["salt"],
            "secret_iv": None if storage is None else storage["iv"],
            "secret_ciphertext": None if storage is None else storage["ciphertext"],
            "secret_auth_tag": None if storage is None else storage["auth_tag"],
            "secret_key_version": None if storage is None else storage["key_version"],
            "backup_code_salt": secret.backup_code_salt or None,
            "last_used_step": secret.last_used_step,
            "created_at": secret.created_at,
            "updated_at": secret.updated_at,
        }
        insert_code_query = f"""
        INSERT INTO {self._codes_table} (admin_id, position, code_hash, used)
        VALUES (%(admin_id)s, %(position)s, %(code_hash)s, %(used)s)
        """
        with self._gateway.transaction() as session:
            session.execute(query=upsert_query, parameters=parameters)
            session.execute(
                query=f"DELETE FROM {self._codes_table} WHERE admin_id = %(admin_id)s",
                parameters={"admin_id": str(admin_id)},
            )
            for position, code in enumerate(secret.backup_codes):
                session.execute(
                    query=insert_code_query,
                    parameters={
                        "admin_id": str(admin_id),
                        "position": position,
                        "code_hash": code.code_hash,
                        "used": code.used,
                    },
                )

    def load(self, *, admin_id: AdminId) -> TotpSecret | None:
        """
        Load enrollment row with its backup codes.

        Args:
            admin_id: Owning admin identifier.
        Returns:
            TotpSecret | None: Persisted snapshot or `None`.
        Assumptions:
            Both reads run in one transaction for a consistent snapshot.
        Raises:
            ValueError: If row mapping is malformed.
        Side Effects:
            Executes two SQL SELECT statements.
        """
        secret_query = f"""
        SELECT
            admin_id,
            enrollment_state,
            secret_salt,
            secret_iv,
            secret_ciphertext,
            secret_auth_tag,
            secret_key_version,
            backup_code_salt,
            last_used_step,
            created_at,
            updated_at
        FROM {self._secrets_table}
        WHERE admin_id = %(admin_id)s
        """
        codes_query = f"""
        SELECT code_hash, used
        FROM {self._codes_table}
        WHERE admin_id = %(admin_id)s
        ORDER BY position
        """
        parameters = {"admin_id": str(admin_id)}
        with self._gateway.transaction() as session:
            row = session.fetch_one(query=secret_query, parameters=parameters)
            if row is None:
                return None
            code_rows = session.fetch_all(query=codes_query, parameters=parameters)
        return _map_totp_secret_row(row=row, code_rows=code_rows)

    def consume_backup_code(self, *, admin_id: AdminId, code_hash: str, used_at: datetime) -> bool:
        """
        Compare-and-swap one unused code to used.

        Args:
            admin_id: Owning admin identifier.
            code_hash: Salted hash of the submitted code.
            used_at: UTC timestamp of consumption.
        Returns:
            bool: `True` when one row transitioned from unused to used.
        Assumptions:
            Concurrent updates of the same row serialize on its row lock and the
            loser re-evaluates `used = FALSE`.
        Raises:
            Exception: Storage/driver exceptions.
        Side Effects:
            Executes one SQL UPDATE statement.
        """
        query = f"""
        UPDATE {self._codes_table}
        SET used = TRUE, used_at = %(used_at)s
        WHERE admin_id = %(admin_id)s
          AND code_hash = %(code_hash)s
          AND used = FALSE
        RETURNING position
        """
        row = self._gateway.fetch_one(
            query=query,
            parameters={
                "admin_id": str(admin_id),
                "code_hash": code_hash,
                "used_at": used_at,
            },
        )
        return row is not None

    def record_verified_step(
        self,
        *,
        admin_id: AdminId,
        expected_secret: EncryptedBlob,
        step: int,
        verified_at: datetime,
    ) -> bool:
        """
        Conditionally enable enrollment and advance `last_used_step` in one UPDATE.

        Args:
            admin_id: Owning admin identifier.
            expected_secret: Encrypted secret the code was checked against.
            step: Time-step counter matched by the submitted code.
            verified_at: UTC timestamp of verification.
        Returns:
            bool: `True` when one row matched all guards and was updated.
        Assumptions:
            IV is random per encryption, so `(iv, ciphertext)` identifies one secret version.
        Raises:
            Exception: Storage/driver exceptions.
        Side Effects:
            Executes one SQL UPDATE statement.
        """
        storage = expected_secret.to_storage()
        query = f"""
        UPDATE {self._secrets_table}
        SET
            enrollment_state = 'enabled',
            last_used_step = %(step)s,
            updated_at = %(verified_at)s
        WHERE admin_id = %(admin_id)s
          AND enrollment_state IN ('pending_verification', 'enabled')
          AND secret_iv = %(expected_iv)s
          AND secret_ciphertext = %(expected_ciphertext)s
          AND (last_used_step IS NULL OR last_used_step < %(step)s)
        RETURNING admin_id
        """
        row = self._gateway.fetch_one(
            query=query,
            parameters={
                "admin_id": str(admin_id),
                "expected_iv": storage["iv"],
                "expected_ciphertext": storage["ciphertext"],
                "step": step,
                "verified_at": verified_at,
            },
        )
        return row is not None


def _map_totp_secret_row(
    *,
    row: Mapping[str, Any],
    code_rows: Sequence[Mapping[str, Any]],
) -> TotpSecret:
    """
    Map SQL rows to `TotpSecret` domain snapshot.

    Args:
        row: Enrollment row mapping.
        code_rows: Backup code rows ordered by position.
    Returns:
        TotpSecret: Domain snapshot.
    Assumptions:
        Secret columns are either all NULL (disabled) or all present.
    Raises:
        ValueError: If row values are malformed.
    Side Effects:
        None.
    """
    encrypted_secret = None
    if row["secret_ciphertext"] is not None:
        encrypted_secret = EncryptedBlob.from_storage(
            {
                "salt": row["secret_salt"],
                "iv": row["secret_iv"],
                "ciphertext": row["secret_ciphertext"],
                "auth_tag": row["secret_auth_tag"],
                "key_version": row["secret_key_version"],
            }
        )
    raw_admin_id = row["admin_id"]
    admin_uuid = raw_admin_id if isinstance(raw_admin_id, UUID) else UUID(str(raw_admin_id))
    return TotpSecret(
        admin_id=AdminId(admin_uuid),
        encrypted_secret=encrypted_secret,
        backup_codes=tuple(
            BackupCode(code_hash=str(code_row["code_hash"]), used=bool(code_row["used"]))
            for code_row in code_rows
        ),
        backup_code_salt=bytes(row["backup_code_salt"] or b""),
        enrollment_state=EnrollmentState(str(row["enrollment_state"])),
        created_at=coerce_utc_datetime(value=row["created_at"], field_name="created_at"),
        updated_at=coerce_utc_datetime(value=row["updated_at"], field_name="updated_at"),
        last_used_step=None if row["last_used_step"] is None else int(row["last_used_step"]),
    )
