from __future__ import annotations

from typing import Protocol


class BackupCodeHasher(Protocol):
    """
    BackupCodeHasher — порт генерации и солёного хеширования backup-кодов.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/adapters/outbound/security/totp/pbkdf2_backup_code_hasher.py
      - src/fractown/contexts/security/application/use_cases/generate_totp_secret.py
      - src/fractown/contexts/security/application/use_cases/verify_backup_code.py
    """

    def generate_codes(self, *, count: int) -> tuple[str, ...]:
        """
        Generate `count` unique plaintext backup codes.
        """
        ...

    def generate_salt(self) -> bytes:
        """
        Generate fresh per-enrollment hashing salt.
        """
        ...

    def normalize(self, *, code: str) -> str | None:
        """
        Return canonical code form or `None` when format is invalid.
        """
        ...

    def hash_code(self, *, code: str, salt: bytes) -> str:
        """
        Return salted hash of normalized code; plaintext is never stored.
        """
        ...
