from __future__ import annotations

from datetime import datetime
from typing import Protocol


class TotpProvider(Protocol):
    """
    TotpProvider — порт операций RFC 6238 TOTP для admin second factor.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/adapters/outbound/security/totp/pyotp_totp_provider.py
      - src/fractown/contexts/security/application/use_cases/generate_totp_secret.py
      - src/fractown/contexts/security/application/use_cases/verify_totp_code.py
    """

    def create_secret(self) -> str:
        """
        Generate new 160-bit base32 TOTP secret.
        """
        ...

    def build_otpauth_uri(self, *, secret: str, account_label: str, issuer: str) -> str:
        """
        Build standard `otpauth://totp` URI for QR rendering.

        Args:
            secret: Base32 TOTP secret.
            account_label: Authenticator account label.
            issuer: Issuer label shown in authenticator apps.
        Returns:
            str: URI starting with `otpauth://totp`.
        Assumptions:
            URI is returned to the caller once and never logged.
        Raises:
            ValueError: If secret or metadata is invalid.
        Side Effects:
            None.
        """
        ...

    def verify_code(self, *, secret: str, code: str, at_time: datetime) -> int | None:
        """
        Compare code with the current and adjacent time-step codes in constant time.

        Args:
            secret: Base32 TOTP secret in plaintext form.
            code: Normalized six-digit code.
            at_time: Current UTC timestamp.
        Returns:
            int | None: Matched time-step counter or `None` when no accepted step matches.
        Assumptions:
            Caller already rejected malformed codes and guards against step replay.
        Raises:
            ValueError: If provider receives malformed arguments.
        Side Effects:
            None.
        """
        ...
