from __future__ import annotations

import json
from typing import Any, Mapping

from fractown.contexts.security.application.ports.envelope_encryption import EnvelopeEncryption
from fractown.contexts.security.application.ports.errors import DecryptionFailure
from fractown.contexts.security.domain.entities import EncryptedBlob

DEFAULT_SENSITIVE_FIELDS = ("description", "attachments")

_ENCRYPTED_SUFFIX = "_encrypted"
_FLAG_SUFFIX = "_is_encrypted"


class SensitiveFieldCipher:
    """
    SensitiveFieldCipher — envelope-encrypts selected JSON fields of a stored record.

    Docs:
      - docs/architecture/security/security-envelope-encryption-v1.md
    Related:
      - src/fractown/contexts/security/application/ports/envelope_encryption.py
      - src/fractown/contexts/security/domain/entities/encrypted_blob.py

    Each field `<name>` with a non-empty value is replaced by `<name>_encrypted`
    (storage form of the blob over its JSON encoding) and `<name>_is_encrypted`.
    """

    def __init__(
        self,
        *,
        encryption: EnvelopeEncryption,
        fields: tuple[str, ...] = DEFAULT_SENSITIVE_FIELDS,
    ) -> None:
        if encryption is None:  # type: ignore[truthy-bool]
            raise ValueError("SensitiveFieldCipher requires encryption")
        normalized_fields = tuple(field.strip() for field in fields)
        if not normalized_fields or any(not field for field in normalized_fields):
            raise ValueError("SensitiveFieldCipher requires non-empty field names")
        self._encryption = encryption
        self._fields = normalized_fields

    def encrypt_fields(self, *, record: Mapping[str, Any], context: bytes) -> dict[str, Any]:
        """
        Return copy of record with sensitive fields replaced by encrypted storage form.

        Args:
            record: Plain record mapping.
            context: Owning record identity bound as AAD (for example property id).
        Returns:
            dict[str, Any]: New mapping; input is not mutated.
        Assumptions:
            Field values are JSON-serializable.
        Raises:
            TypeError: If a field value is not JSON-serializable.
        Side Effects:
            None.
        """
        result = dict(record)
        for field in self._fields:
            value = result.get(field)
            if not value:
                continue
            payload = json.dumps(value, separators=(",", ":"), sort_keys=True)
            blob = self._encryption.encrypt(plaintext=payload.encode("utf-8"), context=context)
            del result[field]
            result[f"{field}{_ENCRYPTED_SUFFIX}"] = blob.to_storage()
            result[f"{field}{_FLAG_SUFFIX}"] = True
        return result

    def decrypt_fields(self, *, record: Mapping[str, Any], context: bytes) -> dict[str, Any]:
        """
        Return copy of record with encrypted fields restored to plain values.

        Args:
            record: Stored record mapping.
            context: Same identity used for encryption.
        Returns:
            dict[str, Any]: New mapping with plain field values.
        Assumptions:
            Fields without `<name>_is_encrypted` flag are left untouched.
        Raises:
            InvalidTagLength: If stored tag is malformed.
            DecryptionFailure: If stored form is malformed or authentication fails.
        Side Effects:
            None.
        """
        result = dict(record)
        for field in self._fields:
            if not result.get(f"{field}{_FLAG_SUFFIX}"):
                continue
            stored = result.pop(f"{field}{_ENCRYPTED_SUFFIX}", None)
            if not isinstance(stored, Mapping):
                raise DecryptionFailure()
            try:
                blob = EncryptedBlob.from_storage(stored)
            except (TypeError, ValueError) as error:
                raise DecryptionFailure() from error
            plaintext = self._encryption.decrypt(blob=blob, context=context)
            try:
                result[field] = json.loads(plaintext.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError) as error:
                raise DecryptionFailure() from error
            del result[f"{field}{_FLAG_SUFFIX}"]
        return result
