from __future__ import annotations

import hashlib
import os
import re
import secrets

from fractown.contexts.security.application.ports.backup_code_hasher import BackupCodeHasher

_BACKUP_CODE_BYTES = 4
_BACKUP_CODE_PATTERN = re.compile(r"^[A-Z0-9]{8}$")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_SALT_LENGTH = 16
_DEFAULT_ITERATIONS = 100_000


class Pbkdf2BackupCodeHasher(BackupCodeHasher):
    """
    Pbkdf2BackupCodeHasher — 8-character hex backup codes hashed with PBKDF2-HMAC-SHA256.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/backup_code_hasher.py
      - src/fractown/contexts/security/application/use_cases/verify_backup_code.py
    """

    def __init__(self, *, iterations: int = _DEFAULT_ITERATIONS) -> None:
        if iterations <= 0:
            raise ValueError("Pbkdf2BackupCodeHasher iterations must be > 0")
        self._iterations = iterations

    def generate_codes(self, *, count: int) -> tuple[str, ...]:
        """
        Generate `count` unique upper-case hex codes.

        Args:
            count: Number of codes.
        Returns:
            tuple[str, ...]: Codes in generation order.
        Assumptions:
            Duplicates are regenerated so every code hash is distinct.
        Raises:
            ValueError: If count is not positive.
        Side Effects:
            Uses OS CSPRNG.
        """
        if count <= 0:
            raise ValueError("Pbkdf2BackupCodeHasher count must be > 0")
        codes: list[str] = []
        while len(codes) < count:
            code = secrets.token_hex(_BACKUP_CODE_BYTES).upper()
            if code not in codes:
                codes.append(code)
        return tuple(codes)

    def generate_salt(self) -> bytes:
        return os.urandom(_SALT_LENGTH)

    def normalize(self, *, code: str) -> str | None:
        """
        Strip whitespace, upper-case and validate backup code shape.
        """
        normalized = _WHITESPACE_PATTERN.sub("", code).upper()
        if _BACKUP_CODE_PATTERN.fullmatch(normalized) is None:
            return None
        return normalized

    def hash_code(self, *, code: str, salt: bytes) -> str:
        """
        Hash normalized code with per-enrollment salt.

        Args:
            code: Normalized backup code.
            salt: Per-enrollment salt.
        Returns:
            str: Hex digest.
        Assumptions:
            Code was produced by `normalize` or `generate_codes`.
        Raises:
            ValueError: If salt is empty.
        Side Effects:
            None.
        """
        if not salt:
            raise ValueError("Pbkdf2BackupCodeHasher requires non-empty salt")
        digest = hashlib.pbkdf2_hmac("sha256", code.encode("ascii"), salt, self._iterations)
        return digest.hex()
