from __future__ import annotations

import logging
import os
from typing import Mapping

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from fractown.contexts.security.application.ports.envelope_encryption import EnvelopeEncryption
from fractown.contexts.security.application.ports.errors import (
    DecryptionFailure,
    InvalidTagLength,
)
from fractown.contexts.security.application.ports.key_derivation import KeyDerivation
from fractown.contexts.security.domain.entities import (
    AUTH_TAG_LENGTH,
    IV_LENGTH,
    SALT_LENGTH,
    EncryptedBlob,
)

log = logging.getLogger(__name__)

_AAD_PREFIX = b"fractown.security.envelope.v1|"


class AesGcmEnvelopeEncryptionService(EnvelopeEncryption):
    """
    AesGcmEnvelopeEncryptionService — AES-256-GCM envelope encryption with per-record keys.

    Docs:
      - docs/architecture/security/security-envelope-encryption-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/envelope_encryption.py
      - src/fractown/contexts/security/adapters/outbound/security/crypto/scrypt_key_derivation.py
      - apps/api/wiring/modules/security.py

    Every record gets a fresh salt (hence a fresh derived key) and a fresh 12-byte IV.
    The context, when provided, is bound as AAD after a fixed domain prefix so that
    ciphertexts cannot be moved between records.
    """

    def __init__(
        self,
        *,
        key_derivations: Mapping[int, KeyDerivation],
        active_key_version: int = 1,
    ) -> None:
        """
        Initialize service with versioned key derivations and active encryption version.

        Args:
            key_derivations: Mapping `key_version -> KeyDerivation`.
            active_key_version: Version used for new encryptions.
        Returns:
            None.
        Assumptions:
            Older versions stay in the mapping while records encrypted with them exist.
        Raises:
            ValueError: If mapping is empty, versions are not positive, or active
                version is missing.
        Side Effects:
            None.
        """
        if not key_derivations:
            raise ValueError("AesGcmEnvelopeEncryptionService requires key_derivations")
        for version in key_derivations:
            if version <= 0:
                raise ValueError("AesGcmEnvelopeEncryptionService key versions must be > 0")
        if active_key_version not in key_derivations:
            raise ValueError(
                "AesGcmEnvelopeEncryptionService active_key_version must be in key_derivations"
            )
        self._key_derivations = dict(key_derivations)
        self._active_key_version = active_key_version

    def encrypt(self, *, plaintext: bytes, context: bytes | None = None) -> EncryptedBlob:
        """
        Encrypt payload under a freshly derived key and fresh IV.

        Args:
            plaintext: Payload bytes.
            context: Optional owner identity bound as additional authenticated data.
        Returns:
            EncryptedBlob: Envelope record tagged with active key version.
        Assumptions:
            Plaintext and derived key never leave this method except as ciphertext.
        Raises:
            TypeError: If plaintext or context are not bytes.
        Side Effects:
            Uses OS CSPRNG for salt and IV.
        """
        if not isinstance(plaintext, bytes):
            raise TypeError("AesGcmEnvelopeEncryptionService plaintext must be bytes")
        aad = _build_aad(context=context)
        key_derivation = self._key_derivations[self._active_key_version]

        salt = key_derivation.generate_salt()
        iv = os.urandom(IV_LENGTH)
        key = key_derivation.derive_key(salt=salt)
        sealed = AESGCM(key).encrypt(iv, plaintext, aad)
        return EncryptedBlob(
            salt=salt,
            iv=iv,
            ciphertext=sealed[:-AUTH_TAG_LENGTH],
            auth_tag=sealed[-AUTH_TAG_LENGTH:],
            key_version=self._active_key_version,
        )

    def decrypt(self, *, blob: EncryptedBlob, context: bytes | None = None) -> bytes:
        """
        Reject malformed tags up front, then re-derive key and authenticate-decrypt.

        Args:
            blob: Stored envelope record.
            context: Context used at encryption time.
        Returns:
            bytes: Plaintext payload.
        Assumptions:
            Tag validation happens before key derivation and before AEAD.
        Raises:
            InvalidTagLength: If tag length is not 16 bytes or tag is all zeros.
            DecryptionFailure: For malformed IV/salt, unknown key version, or any
                authentication failure.
        Side Effects:
            Logs tag anomalies (length only).
        """
        tag = blob.auth_tag
        if len(tag) != AUTH_TAG_LENGTH:
            log.warning("security anomaly: rejected authentication tag of length %s", len(tag))
            raise InvalidTagLength()
        if not any(tag):
            log.warning("security anomaly: rejected all-zero authentication tag")
            raise InvalidTagLength()
        aad = _build_aad(context=context)
        if len(blob.iv) != IV_LENGTH or len(blob.salt) != SALT_LENGTH:
            raise DecryptionFailure()
        key_derivation = self._key_derivations.get(blob.key_version)
        if key_derivation is None:
            raise DecryptionFailure()

        key = key_derivation.derive_key(salt=blob.salt)
        try:
            return AESGCM(key).decrypt(blob.iv, blob.ciphertext + tag, aad)
        except InvalidTag as error:
            raise DecryptionFailure() from error


def _build_aad(*, context: bytes | None) -> bytes:
    """
    Build additional authenticated data from fixed prefix and optional context.

    Args:
        context: Optional owner identity bytes.
    Returns:
        bytes: AAD bytes; `None` and `b""` are equivalent.
    Assumptions:
        Every call site passes its owning record identity.
    Raises:
        TypeError: If context is not bytes.
    Side Effects:
        None.
    """
    if context is None:
        return _AAD_PREFIX
    if not isinstance(context, bytes):
        raise TypeError("AesGcmEnvelopeEncryptionService context must be bytes")
    return _AAD_PREFIX + context
