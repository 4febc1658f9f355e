from __future__ import annotations


class SecurityCryptoError(ValueError):
    """
    SecurityCryptoError — base error of the security core cryptographic adapters.

    Messages are fixed strings: they never carry plaintext, key material or tag bytes.

    Docs:
      - docs/architecture/security/security-envelope-encryption-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/envelope_encryption.py
      - src/fractown/contexts/security/application/ports/key_derivation.py
    """


class KeyDerivationError(SecurityCryptoError):
    """
    Installation secret is absent or below the minimum entropy threshold.

    Raised while wiring the process; the API refuses to start rather than serve with
    a degraded key.
    """


class InvalidTagLength(SecurityCryptoError):
    """
    Authentication tag is not exactly 16 bytes (or is all zeros); AEAD was not attempted.
    """

    def __init__(self) -> None:
        super().__init__("Invalid authentication tag length")


class DecryptionFailure(SecurityCryptoError):
    """
    Generic authenticated-decryption failure.

    Wrong key, tampered ciphertext, mismatched context and malformed blobs are
    deliberately indistinguishable.
    """

    def __init__(self) -> None:
        super().__init__("Failed to decrypt data")
