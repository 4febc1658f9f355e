from __future__ import annotations

from typing import Protocol


class KeyDerivation(Protocol):
    """
    KeyDerivation — порт получения симметричного ключа из installation secret и соли.

    Docs:
      - docs/architecture/security/security-envelope-encryption-v1.md
    Related:
      - src/fractown/contexts/security/adapters/outbound/security/crypto/scrypt_key_derivation.py
      - src/fractown/contexts/security/adapters/outbound/security/crypto/
        aes_gcm_envelope_encryption_service.py
    """

    def generate_salt(self) -> bytes:
        """
        Generate fresh random per-record salt.

        Args:
            None.
        Returns:
            bytes: New salt of the adapter's fixed length.
        Assumptions:
            Salt is generated for every encryption call and never reused on purpose.
        Raises:
            None.
        Side Effects:
            Uses OS CSPRNG.
        """
        ...

    def derive_key(self, *, salt: bytes) -> bytes:
        """
        Derive 256-bit key bound to installation secret and `salt`.

        Args:
            salt: Per-record salt.
        Returns:
            bytes: 32-byte symmetric key for one encrypt/decrypt operation.
        Assumptions:
            Derived key is not cached across unrelated records.
        Raises:
            KeyDerivationError: If salt is malformed.
        Side Effects:
            CPU/memory heavy computation.
        """
        ...
