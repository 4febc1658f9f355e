from __future__ import annotations

import os

from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from fractown.contexts.security.application.ports.errors import KeyDerivationError
from fractown.contexts.security.application.ports.key_derivation import KeyDerivation
from fractown.contexts.security.domain.entities import SALT_LENGTH

_KEY_LENGTH = 32
_MIN_SECRET_BYTES = 32
_MIN_DISTINCT_BYTES = 12
_DEFAULT_SCRYPT_N = 2**14
_DEFAULT_SCRYPT_R = 8
_DEFAULT_SCRYPT_P = 1


class ScryptKeyDerivation(KeyDerivation):
    """
    ScryptKeyDerivation — memory-hard per-record key derivation from installation secret.

    Docs:
      - docs/architecture/security/security-envelope-encryption-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/key_derivation.py
      - src/fractown/contexts/security/adapters/outbound/security/crypto/
        aes_gcm_envelope_encryption_service.py
      - apps/api/wiring/modules/security.py
    """

    def __init__(
        self,
        *,
        installation_secret: str | bytes | None,
        n: int = _DEFAULT_SCRYPT_N,
        r: int = _DEFAULT_SCRYPT_R,
        p: int = _DEFAULT_SCRYPT_P,
    ) -> None:
        """
        Validate installation secret strength and scrypt cost parameters.

        Args:
            installation_secret: `MASTER_ENCRYPTION_KEY` value (text or raw bytes).
            n: Scrypt CPU/memory cost, power of two greater than 1.
            r: Scrypt block size.
            p: Scrypt parallelization factor.
        Returns:
            None.
        Assumptions:
            Construction happens once during process startup.
        Raises:
            KeyDerivationError: If secret is absent, shorter than 32 bytes, or has
                fewer than 12 distinct byte values.
            ValueError: If scrypt parameters are invalid.
        Side Effects:
            None.
        """
        if installation_secret is None:
            raise KeyDerivationError("MASTER_ENCRYPTION_KEY must be set")
        if isinstance(installation_secret, str):
            secret = installation_secret.strip().encode("utf-8")
        else:
            secret = bytes(installation_secret)
        if not secret:
            raise KeyDerivationError("MASTER_ENCRYPTION_KEY must be set")
        if len(secret) < _MIN_SECRET_BYTES:
            raise KeyDerivationError(
                f"MASTER_ENCRYPTION_KEY must be at least {_MIN_SECRET_BYTES} bytes"
            )
        if len(set(secret)) < _MIN_DISTINCT_BYTES:
            raise KeyDerivationError("MASTER_ENCRYPTION_KEY does not have enough entropy")
        if n <= 1 or n & (n - 1) != 0:
            raise ValueError("ScryptKeyDerivation n must be a power of two greater than 1")
        if r <= 0:
            raise ValueError("ScryptKeyDerivation r must be > 0")
        if p <= 0:
            raise ValueError("ScryptKeyDerivation p must be > 0")

        self._secret = secret
        self._n = n
        self._r = r
        self._p = p

    def generate_salt(self) -> bytes:
        """
        Generate fresh random salt for one envelope record.

        Args:
            None.
        Returns:
            bytes: 16 random bytes.
        Assumptions:
            Called once per encryption.
        Raises:
            None.
        Side Effects:
            Uses OS CSPRNG.
        """
        return os.urandom(SALT_LENGTH)

    def derive_key(self, *, salt: bytes) -> bytes:
        """
        Derive one-shot 256-bit key for provided salt.

        Args:
            salt: 16-byte per-record salt.
        Returns:
            bytes: 32-byte key.
        Assumptions:
            Key is discarded by caller after one AEAD operation.
        Raises:
            KeyDerivationError: If salt length is invalid.
        Side Effects:
            CPU/memory heavy computation.
        """
        if len(salt) != SALT_LENGTH:
            raise KeyDerivationError(f"Key derivation salt must be {SALT_LENGTH} bytes")
        kdf = Scrypt(salt=salt, length=_KEY_LENGTH, n=self._n, r=self._r, p=self._p)
        return kdf.derive(self._secret)

    def __repr__(self) -> str:
        return f"ScryptKeyDerivation(n={self._n}, r={self._r}, p={self._p})"
