"""Create security core tables for admin TOTP enrollments, lockouts, and audit events."""

from __future__ import annotations

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """
    Apply security core v1 storage schema.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Encrypted blob parts are stored as base64 text next to their key version.
    Raises:
        Exception: Postgres execution errors from Alembic runtime.
    Side Effects:
        Creates security tables, constraints, and indexes.
    """
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS security_totp_secrets (
            admin_id UUID PRIMARY KEY,
            enrollment_state TEXT NOT NULL,
            secret_salt TEXT NULL,
            secret_iv TEXT NULL,
            secret_ciphertext TEXT NULL,
            secret_auth_tag TEXT NULL,
            secret_key_version INTEGER NULL,
            backup_code_salt BYTEA NULL,
            created_at TIMESTAMPTZ NOT NULL,
            updated_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT security_totp_secrets_state_chk
                CHECK (
                    enrollment_state IN (
                        'not_enrolled',
                        'pending_verification',
                        'enabled',
                        'disabled'
                    )
                ),
            CONSTRAINT security_totp_secrets_blob_complete_chk
                CHECK (
                    (
                        secret_salt IS NULL
                        AND secret_iv IS NULL
                        AND secret_ciphertext IS NULL
                        AND secret_auth_tag IS NULL
                        AND secret_key_version IS NULL
                    )
                    OR (
                        secret_salt IS NOT NULL
                        AND secret_iv IS NOT NULL
                        AND secret_ciphertext IS NOT NULL
                        AND secret_auth_tag IS NOT NULL
                        AND secret_key_version > 0
                    )
                )
        )
        """
    )
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS security_totp_backup_codes (
            admin_id UUID NOT NULL
                REFERENCES security_totp_secrets (admin_id) ON DELETE CASCADE,
            position INTEGER NOT NULL,
            code_hash TEXT NOT NULL,
            used BOOLEAN NOT NULL DEFAULT FALSE,
            used_at TIMESTAMPTZ NULL,
            PRIMARY KEY (admin_id, position),
            CONSTRAINT security_totp_backup_codes_position_chk CHECK (position >= 0)
        )
        """
    )
    op.execute(
        """
        CREATE INDEX IF NOT EXISTS security_totp_backup_codes_hash_idx
            ON security_totp_backup_codes (admin_id, code_hash)
        """
    )
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS security_lockout_states (
            subject_key TEXT PRIMARY KEY,
            failure_count INTEGER NOT NULL,
            window_start TIMESTAMPTZ NOT NULL,
            locked_until TIMESTAMPTZ NULL,
            CONSTRAINT security_lockout_states_failure_count_chk CHECK (failure_count >= 0)
        )
        """
    )
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS security_events (
            id BIGSERIAL PRIMARY KEY,
            admin_id UUID NOT NULL,
            ip TEXT NOT NULL,
            user_agent TEXT NOT NULL,
            action TEXT NOT NULL,
            success BOOLEAN NOT NULL,
            occurred_at TIMESTAMPTZ NOT NULL,
            detail TEXT NULL,
            CONSTRAINT security_events_action_chk
                CHECK (action IN ('generate', 'verify', 'backup_used', 'disabled'))
        )
        """
    )
    op.execute(
        """
        CREATE INDEX IF NOT EXISTS security_events_occurred_at_idx
            ON security_events (occurred_at DESC, id DESC)
        """
    )
    op.execute(
        """
        CREATE INDEX IF NOT EXISTS security_events_admin_occurred_at_idx
            ON security_events (admin_id, action, occurred_at DESC)
        """
    )


def downgrade() -> None:
    """
    Drop security core v1 tables.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Downgrade is used only on disposable environments.
    Raises:
        Exception: Postgres execution errors from Alembic runtime.
    Side Effects:
        Drops security tables with their data.
    """
    op.execute("DROP TABLE IF EXISTS security_events")
    op.execute("DROP TABLE IF EXISTS security_lockout_states")
    op.execute("DROP TABLE IF EXISTS security_totp_backup_codes")
    op.execute("DROP TABLE IF EXISTS security_totp_secrets")
