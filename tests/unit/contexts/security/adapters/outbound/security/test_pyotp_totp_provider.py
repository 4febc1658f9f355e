from __future__ import annotations

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, unquote, urlparse

import pyotp
import pytest

from fractown.contexts.security.adapters.outbound.security.totp import PyOtpTotpProvider

_STEP_START = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)
_CURRENT_STEP = int(_STEP_START.timestamp()) // 30


def test_totp_provider_accepts_code_within_one_step_window() -> None:
    """
    Verify code issued at T matches its own step at T and T+29s and is rejected at T+61s.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        `T` is aligned to 30-second step boundary; window is one step on each side.
    Raises:
        AssertionError: If tolerance window or matched step differs.
    Side Effects:
        None.
    """
    provider = PyOtpTotpProvider()
    secret = provider.create_secret()
    code = pyotp.TOTP(secret).at(_STEP_START)

    assert provider.verify_code(secret=secret, code=code, at_time=_STEP_START) == _CURRENT_STEP
    assert (
        provider.verify_code(
            secret=secret,
            code=code,
            at_time=_STEP_START + timedelta(seconds=29),
        )
        == _CURRENT_STEP
    )
    assert (
        provider.verify_code(
            secret=secret,
            code=code,
            at_time=_STEP_START + timedelta(seconds=61),
        )
        is None
    )


def test_totp_provider_reports_step_of_previous_and_next_codes() -> None:
    provider = PyOtpTotpProvider()
    secret = provider.create_secret()
    totp = pyotp.TOTP(secret)
    previous_code = totp.at(_STEP_START - timedelta(seconds=30))
    next_code = totp.at(_STEP_START + timedelta(seconds=30))

    assert provider.verify_code(secret=secret, code=previous_code, at_time=_STEP_START) == (
        _CURRENT_STEP - 1
    )
    assert provider.verify_code(secret=secret, code=next_code, at_time=_STEP_START) == (
        _CURRENT_STEP + 1
    )


def test_totp_provider_with_zero_window_accepts_current_step_only() -> None:
    provider = PyOtpTotpProvider(valid_window=0)
    secret = provider.create_secret()
    code = pyotp.TOTP(secret).at(_STEP_START)

    assert provider.verify_code(secret=secret, code=code, at_time=_STEP_START) == _CURRENT_STEP
    assert (
        provider.verify_code(
            secret=secret,
            code=code,
            at_time=_STEP_START + timedelta(seconds=30),
        )
        is None
    )


def test_totp_provider_builds_standard_otpauth_uri() -> None:
    """
    Verify URI carries secret, issuer, and admin account label.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Authenticator apps parse pyotp provisioning URIs.
    Raises:
        AssertionError: If URI shape is unexpected.
    Side Effects:
        None.
    """
    provider = PyOtpTotpProvider()
    secret = provider.create_secret()

    uri = provider.build_otpauth_uri(
        secret=secret,
        account_label="admin:00000000-0000-0000-0000-000000000601",
        issuer="fractOWN",
    )

    parsed = urlparse(uri)
    query = parse_qs(parsed.query)
    assert uri.startswith("otpauth://totp/")
    assert query["secret"] == [secret]
    assert query["issuer"] == ["fractOWN"]
    assert "admin:00000000-0000-0000-0000-000000000601" in unquote(parsed.path)


def test_totp_provider_creates_base32_secrets() -> None:
    provider = PyOtpTotpProvider()

    first = provider.create_secret()
    second = provider.create_secret()

    assert len(first) == 32
    assert first != second
    assert set(first) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZ234567")


def test_totp_provider_rejects_naive_timestamp_and_invalid_arguments() -> None:
    provider = PyOtpTotpProvider()
    secret = provider.create_secret()

    with pytest.raises(ValueError):
        provider.verify_code(secret=secret, code="123456", at_time=datetime(2026, 10, 19))
    with pytest.raises(ValueError):
        provider.verify_code(secret=secret, code=" ", at_time=_STEP_START)
    with pytest.raises(ValueError):
        provider.build_otpauth_uri(secret=secret, account_label="admin:x", issuer=" ")
    with pytest.raises(ValueError):
        PyOtpTotpProvider(valid_window=-1)
