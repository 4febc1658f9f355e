"""Add last_used_step to security_totp_secrets so accepted TOTP codes cannot be replayed."""

from __future__ import annotations

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    """
    Add last accepted TOTP time-step column for admin enrollments.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Existing enrollments start without an accepted step (NULL).
    Raises:
        Exception: Database execution errors from Alembic runtime.
    Side Effects:
        Alters `security_totp_secrets` table schema.
    """
    op.execute(
        """
        ALTER TABLE security_totp_secrets
        ADD COLUMN IF NOT EXISTS last_used_step BIGINT NULL
        """
    )
    op.execute(
        """
        ALTER TABLE security_totp_secrets
        ADD CONSTRAINT security_totp_secrets_last_used_step_chk
            CHECK (last_used_step IS NULL OR last_used_step >= 0)
        """
    )


def downgrade() -> None:
    """
    Remove last accepted TOTP time-step column.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Downgrade is used only for local/test rollback flows.
    Raises:
        Exception: Database execution errors from Alembic runtime.
    Side Effects:
        Alters `security_totp_secrets` table schema.
    """
    op.execute("ALTER TABLE security_totp_secrets DROP COLUMN IF EXISTS last_used_step")
