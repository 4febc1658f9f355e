from __future__ import annotations

import re

import pytest

from fractown.contexts.security.adapters.outbound.security.totp import Pbkdf2BackupCodeHasher


def test_backup_code_hasher_generates_unique_eight_char_codes() -> None:
    hasher = Pbkdf2BackupCodeHasher(iterations=1_000)

    codes = hasher.generate_codes(count=10)

    assert len(codes) == 10
    assert len(set(codes)) == 10
    assert all(re.fullmatch(r"[0-9A-F]{8}", code) for code in codes)


def test_backup_code_hasher_normalizes_whitespace_and_case() -> None:
    """
    Verify user-typed variants of one code normalize to the same canonical form.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Users may copy codes with spaces or lower-case letters.
    Raises:
        AssertionError: If normalization is inconsistent.
    Side Effects:
        None.
    """
    hasher = Pbkdf2BackupCodeHasher(iterations=1_000)

    assert hasher.normalize(code=" ab12 cd34 ") == "AB12CD34"
    assert hasher.normalize(code="ab12cd34") == "AB12CD34"
    assert hasher.normalize(code="AB12-CD34") is None
    assert hasher.normalize(code="AB12CD3") is None
    assert hasher.normalize(code="") is None


def test_backup_code_hasher_hash_depends_on_salt() -> None:
    hasher = Pbkdf2BackupCodeHasher(iterations=1_000)
    salt = hasher.generate_salt()
    other_salt = hasher.generate_salt()

    code_hash = hasher.hash_code(code="AB12CD34", salt=salt)

    assert len(salt) == 16
    assert code_hash == hasher.hash_code(code="AB12CD34", salt=salt)
    assert code_hash != hasher.hash_code(code="AB12CD34", salt=other_salt)
    assert "AB12CD34" not in code_hash


def test_backup_code_hasher_rejects_invalid_arguments() -> None:
    hasher = Pbkdf2BackupCodeHasher(iterations=1_000)

    with pytest.raises(ValueError):
        Pbkdf2BackupCodeHasher(iterations=0)
    with pytest.raises(ValueError):
        hasher.generate_codes(count=0)
    with pytest.raises(ValueError):
        hasher.hash_code(code="AB12CD34", salt=b"")
