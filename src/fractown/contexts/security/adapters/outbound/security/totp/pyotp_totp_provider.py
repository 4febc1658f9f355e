from __future__ import annotations

import hmac
from datetime import datetime

import pyotp

from fractown.contexts.security.application.ports.totp_provider import TotpProvider
from fractown.platform.time import ensure_utc_datetime

_DEFAULT_TOTP_DIGITS = 6
_DEFAULT_TOTP_PERIOD_SECONDS = 30
_DEFAULT_VALID_WINDOW = 1


class PyOtpTotpProvider(TotpProvider):
    """
    PyOtpTotpProvider — RFC 6238 TOTP secrets, otpauth URIs and window verification via pyotp.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/totp_provider.py
      - src/fractown/contexts/security/application/use_cases/generate_totp_secret.py
      - src/fractown/contexts/security/application/use_cases/verify_totp_code.py
    """

    def __init__(
        self,
        *,
        digits: int = _DEFAULT_TOTP_DIGITS,
        period_seconds: int = _DEFAULT_TOTP_PERIOD_SECONDS,
        valid_window: int = _DEFAULT_VALID_WINDOW,
    ) -> None:
        """
        Initialize TOTP provider parameters for setup URI and verification.

        Args:
            digits: Number of code digits.
            period_seconds: TOTP period in seconds.
            valid_window: Number of time-steps accepted before/after current step.
        Returns:
            None.
        Assumptions:
            Defaults align with common authenticator apps (SHA1, 6 digits, 30 s).
        Raises:
            ValueError: If arguments are outside supported ranges.
        Side Effects:
            None.
        """
        if digits <= 0:
            raise ValueError("PyOtpTotpProvider digits must be > 0")
        if period_seconds <= 0:
            raise ValueError("PyOtpTotpProvider period_seconds must be > 0")
        if valid_window < 0:
            raise ValueError("PyOtpTotpProvider valid_window must be >= 0")

        self._digits = digits
        self._period_seconds = period_seconds
        self._valid_window = valid_window

    def create_secret(self) -> str:
        """
        Generate new 160-bit base32 TOTP secret.

        Args:
            None.
        Returns:
            str: Upper-case base32 secret (32 characters).
        Assumptions:
            pyotp draws from `secrets` CSPRNG.
        Raises:
            ValueError: If generated secret is empty.
        Side Effects:
            Uses OS random source.
        """
        normalized = pyotp.random_base32().strip().upper()
        if not normalized:
            raise ValueError("PyOtpTotpProvider generated empty secret")
        return normalized

    def build_otpauth_uri(self, *, secret: str, account_label: str, issuer: str) -> str:
        """
        Build standard otpauth URI for UI QR rendering.

        Args:
            secret: Base32 TOTP secret.
            account_label: Authenticator account label.
            issuer: Issuer label shown in authenticator apps.
        Returns:
            str: URI string starting with `otpauth://totp`.
        Assumptions:
            Account label contains no PII beyond the admin id.
        Raises:
            ValueError: If secret, label or issuer is empty.
        Side Effects:
            None.
        """
        normalized_secret = secret.strip().upper()
        normalized_issuer = issuer.strip()
        normalized_label = account_label.strip()
        if not normalized_secret:
            raise ValueError("PyOtpTotpProvider requires non-empty secret")
        if not normalized_issuer:
            raise ValueError("PyOtpTotpProvider requires non-empty issuer")
        if not normalized_label:
            raise ValueError("PyOtpTotpProvider requires non-empty account label")

        uri = self._totp(secret=normalized_secret).provisioning_uri(
            name=normalized_label,
            issuer_name=normalized_issuer,
        )
        if not uri.startswith("otpauth://totp"):
            raise ValueError("PyOtpTotpProvider produced invalid otpauth URI")
        return uri

    def verify_code(self, *, secret: str, code: str, at_time: datetime) -> int | None:
        """
        Compare submitted code against every step in `[-window, +window]`.

        Args:
            secret: Base32 TOTP secret.
            code: Normalized code string.
            at_time: Current timezone-aware UTC datetime.
        Returns:
            int | None: Matched time-step counter, `None` when no accepted step matches.
        Assumptions:
            All candidates are compared so timing does not reveal the matching step.
        Raises:
            ValueError: If timestamp is not UTC or secret/code are empty.
        Side Effects:
            None.
        """
        normalized_secret = secret.strip().upper()
        normalized_code = code.strip()
        if not normalized_secret:
            raise ValueError("PyOtpTotpProvider verify requires non-empty secret")
        if not normalized_code:
            raise ValueError("PyOtpTotpProvider verify requires non-empty code")
        now = ensure_utc_datetime(value=at_time, field_name="at_time")

        totp = self._totp(secret=normalized_secret)
        current_step = int(now.timestamp()) // self._period_seconds
        matched_step: int | None = None
        for offset in range(-self._valid_window, self._valid_window + 1):
            step = current_step + offset
            if hmac.compare_digest(totp.generate_otp(step), normalized_code):
                matched_step = step
        return matched_step

    def _totp(self, *, secret: str) -> pyotp.TOTP:
        return pyotp.TOTP(secret, digits=self._digits, interval=self._period_seconds)
