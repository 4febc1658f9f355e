from __future__ import annotations

from typing import Protocol

from fractown.contexts.security.domain.entities import EncryptedBlob


class EnvelopeEncryption(Protocol):
    """
    EnvelopeEncryption — порт authenticated encryption для чувствительных полей.

    Docs:
      - docs/architecture/security/security-envelope-encryption-v1.md
    Related:
      - src/fractown/contexts/security/adapters/outbound/security/crypto/
        aes_gcm_envelope_encryption_service.py
      - src/fractown/contexts/security/application/use_cases/generate_totp_secret.py
      - src/fractown/contexts/security/adapters/outbound/security/crypto/sensitive_field_cipher.py
    """

    def encrypt(self, *, plaintext: bytes, context: bytes | None = None) -> EncryptedBlob:
        """
        Encrypt opaque payload with fresh salt and IV, binding optional context as AAD.

        Args:
            plaintext: Payload bytes.
            context: Owning record identity (admin id, property id) bound as AAD.
        Returns:
            EncryptedBlob: Persistable envelope record.
        Assumptions:
            Plaintext and key material are never logged.
        Raises:
            SecurityCryptoError: If inputs are invalid.
        Side Effects:
            Uses OS CSPRNG.
        """
        ...

    def decrypt(self, *, blob: EncryptedBlob, context: bytes | None = None) -> bytes:
        """
        Validate tag length, then decrypt and authenticate envelope record.

        Args:
            blob: Stored envelope record.
            context: Same context used for encryption.
        Returns:
            bytes: Plaintext payload.
        Assumptions:
            Tag length is checked before any key derivation or AEAD work.
        Raises:
            InvalidTagLength: If tag is not exactly 16 bytes or is all zeros.
            DecryptionFailure: For any other verification failure.
        Side Effects:
            None.
        """
        ...
