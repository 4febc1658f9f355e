from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Any, Mapping

SALT_LENGTH = 16
IV_LENGTH = 12
AUTH_TAG_LENGTH = 16

_STORAGE_FIELDS = ("salt", "iv", "ciphertext", "auth_tag")


@dataclass(frozen=True, slots=True)
class EncryptedBlob:
    """
    EncryptedBlob — AES-256-GCM envelope record with per-record salt and key version tag.

    Docs:
      - docs/architecture/security/security-envelope-encryption-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/envelope_encryption.py
      - src/fractown/contexts/security/adapters/outbound/security/crypto/
        aes_gcm_envelope_encryption_service.py
      - alembic/versions/20261019_0001_security_core_v1.py

    Field lengths are not enforced here: a stored blob with a truncated tag must
    still be representable so that decryption can reject it explicitly.
    """

    salt: bytes
    iv: bytes
    ciphertext: bytes
    auth_tag: bytes
    key_version: int

    def __post_init__(self) -> None:
        """
        Validate byte field types and positive key version.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Length validation is performed by the decrypting service.
        Raises:
            TypeError: If one of byte fields is not `bytes`.
            ValueError: If `key_version` is not positive.
        Side Effects:
            None.
        """
        for name in _STORAGE_FIELDS:
            if not isinstance(getattr(self, name), bytes):
                raise TypeError(f"EncryptedBlob.{name} must be bytes")
        if isinstance(self.key_version, bool) or self.key_version <= 0:
            raise ValueError("EncryptedBlob.key_version must be > 0")

    def to_storage(self) -> dict[str, Any]:
        """
        Encode blob into fixed-encoding storage mapping (base64 strings plus key version).

        Args:
            None.
        Returns:
            dict[str, Any]: `{"salt", "iv", "ciphertext", "auth_tag", "key_version"}` mapping.
        Assumptions:
            Storage layer persists strings verbatim.
        Raises:
            None.
        Side Effects:
            None.
        """
        payload: dict[str, Any] = {
            name: base64.b64encode(getattr(self, name)).decode("ascii")
            for name in _STORAGE_FIELDS
        }
        payload["key_version"] = self.key_version
        return payload

    @classmethod
    def from_storage(cls, payload: Mapping[str, Any]) -> EncryptedBlob:
        """
        Decode blob from storage mapping produced by `to_storage`.

        Args:
            payload: Storage mapping with base64 fields and integer key version.
        Returns:
            EncryptedBlob: Decoded blob.
        Assumptions:
            Field names follow `to_storage` contract.
        Raises:
            ValueError: If a field is missing or not valid base64.
        Side Effects:
            None.
        """
        decoded: dict[str, bytes] = {}
        for name in _STORAGE_FIELDS:
            raw_value = payload.get(name)
            if not isinstance(raw_value, str):
                raise ValueError(f"EncryptedBlob storage field {name!r} must be a string")
            try:
                decoded[name] = base64.b64decode(raw_value, validate=True)
            except binascii.Error as error:
                raise ValueError(
                    f"EncryptedBlob storage field {name!r} must be valid base64"
                ) from error
        try:
            key_version = int(payload["key_version"])
        except (KeyError, TypeError, ValueError) as error:
            raise ValueError(
                "EncryptedBlob storage field 'key_version' must be integer"
            ) from error
        return cls(key_version=key_version, **decoded)
