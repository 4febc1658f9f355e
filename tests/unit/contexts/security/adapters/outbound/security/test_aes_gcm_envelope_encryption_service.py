from __future__ import annotations

from dataclasses import replace

import pytest

from fractown.contexts.security.adapters.outbound.security.crypto import (
    AesGcmEnvelopeEncryptionService,
    ScryptKeyDerivation,
)
from fractown.contexts.security.application.ports import (
    DecryptionFailure,
    InvalidTagLength,
    KeyDerivation,
)
from fractown.contexts.security.domain.entities import EncryptedBlob

_MASTER_KEY = "fractown-unit-test-master-key-0123456789abcdef"
_OTHER_MASTER_KEY = "another-installation-secret-ZYXWVUTSRQPONMLK-9876"
_FAST_SCRYPT_N = 2**10
_CONTEXT = b"00000000-0000-0000-0000-000000000301"


class _SpyKeyDerivation(KeyDerivation):
    """
    Key derivation wrapper counting `derive_key` calls.
    """

    def __init__(self, *, inner: KeyDerivation) -> None:
        self._inner = inner
        self.derive_calls = 0

    def generate_salt(self) -> bytes:
        return self._inner.generate_salt()

    def derive_key(self, *, salt: bytes) -> bytes:
        self.derive_calls += 1
        return self._inner.derive_key(salt=salt)


def _build_service(*, master_key: str = _MASTER_KEY) -> AesGcmEnvelopeEncryptionService:
    return AesGcmEnvelopeEncryptionService(
        key_derivations={
            1: ScryptKeyDerivation(installation_secret=master_key, n=_FAST_SCRYPT_N),
        },
    )


def test_envelope_encryption_roundtrip_restores_plaintext() -> None:
    """
    Verify decrypt(encrypt(p, ctx), ctx) returns original plaintext.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Same service instance and context are used for both operations.
    Raises:
        AssertionError: If plaintext differs or blob layout is unexpected.
    Side Effects:
        None.
    """
    service = _build_service()

    blob = service.encrypt(plaintext=b"JBSWY3DPEHPK3PXP", context=_CONTEXT)

    assert service.decrypt(blob=blob, context=_CONTEXT) == b"JBSWY3DPEHPK3PXP"
    assert len(blob.salt) == 16
    assert len(blob.iv) == 12
    assert len(blob.auth_tag) == 16
    assert blob.key_version == 1
    assert b"JBSWY3DPEHPK3PXP" not in blob.ciphertext


def test_envelope_encryption_uses_fresh_salt_and_iv_per_record() -> None:
    """
    Verify two encryptions of the same plaintext produce unrelated blobs.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Salt and IV come from OS CSPRNG.
    Raises:
        AssertionError: If salt, IV, or ciphertext repeat.
    Side Effects:
        None.
    """
    service = _build_service()

    first = service.encrypt(plaintext=b"same-payload", context=_CONTEXT)
    second = service.encrypt(plaintext=b"same-payload", context=_CONTEXT)

    assert first.salt != second.salt
    assert first.iv != second.iv
    assert first.ciphertext != second.ciphertext


def test_envelope_encryption_supports_empty_plaintext() -> None:
    service = _build_service()

    blob = service.encrypt(plaintext=b"")

    assert blob.ciphertext == b""
    assert service.decrypt(blob=blob) == b""


@pytest.mark.parametrize("tag_length", [0, 8, 12, 20, 32])
def test_envelope_decrypt_rejects_wrong_tag_length_before_key_derivation(tag_length: int) -> None:
    """
    Verify tags of length other than 16 raise InvalidTagLength without touching the key.

    Args:
        tag_length: Length of forged authentication tag.
    Returns:
        None.
    Assumptions:
        Key derivation is the first step of any AEAD attempt.
    Raises:
        AssertionError: If error type differs or key was derived.
    Side Effects:
        None.
    """
    spy = _SpyKeyDerivation(
        inner=ScryptKeyDerivation(installation_secret=_MASTER_KEY, n=_FAST_SCRYPT_N),
    )
    service = AesGcmEnvelopeEncryptionService(key_derivations={1: spy})
    blob = service.encrypt(plaintext=b"payload", context=_CONTEXT)
    spy.derive_calls = 0
    forged = replace(blob, auth_tag=b"\x5a" * tag_length)

    with pytest.raises(InvalidTagLength):
        service.decrypt(blob=forged, context=_CONTEXT)

    assert spy.derive_calls == 0


def test_envelope_decrypt_rejects_all_zero_tag_before_key_derivation() -> None:
    spy = _SpyKeyDerivation(
        inner=ScryptKeyDerivation(installation_secret=_MASTER_KEY, n=_FAST_SCRYPT_N),
    )
    service = AesGcmEnvelopeEncryptionService(key_derivations={1: spy})
    blob = service.encrypt(plaintext=b"payload", context=_CONTEXT)
    spy.derive_calls = 0

    with pytest.raises(InvalidTagLength):
        service.decrypt(blob=replace(blob, auth_tag=bytes(16)), context=_CONTEXT)

    assert spy.derive_calls == 0


def test_envelope_decrypt_fails_for_different_context() -> None:
    """
    Verify blob bound to one record cannot be decrypted under another record identity.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Context is authenticated as AAD.
    Raises:
        AssertionError: If decryption unexpectedly succeeds.
    Side Effects:
        None.
    """
    service = _build_service()
    blob = service.encrypt(plaintext=b"payload", context=_CONTEXT)

    with pytest.raises(DecryptionFailure):
        service.decrypt(blob=blob, context=b"00000000-0000-0000-0000-000000000302")
    with pytest.raises(DecryptionFailure):
        service.decrypt(blob=blob)


def test_envelope_decrypt_treats_missing_and_empty_context_alike() -> None:
    service = _build_service()

    blob = service.encrypt(plaintext=b"payload", context=None)

    assert service.decrypt(blob=blob, context=b"") == b"payload"


@pytest.mark.parametrize("field_name", ["ciphertext", "auth_tag", "iv", "salt"])
def test_envelope_decrypt_fails_for_tampered_blob(field_name: str) -> None:
    """
    Verify any flipped bit in stored parts yields DecryptionFailure.

    Args:
        field_name: Blob field to tamper.
    Returns:
        None.
    Assumptions:
        Tampered tag keeps valid length and is not all zeros.
    Raises:
        AssertionError: If tampered blob is accepted.
    Side Effects:
        None.
    """
    service = _build_service()
    blob = service.encrypt(plaintext=b"tamper-me", context=_CONTEXT)
    tampered_value = bytearray(getattr(blob, field_name))
    tampered_value[0] ^= 0x01
    tampered = replace(blob, **{field_name: bytes(tampered_value)})

    with pytest.raises(DecryptionFailure):
        service.decrypt(blob=tampered, context=_CONTEXT)


def test_envelope_decrypt_fails_with_other_installation_secret() -> None:
    blob = _build_service().encrypt(plaintext=b"payload", context=_CONTEXT)

    with pytest.raises(DecryptionFailure):
        _build_service(master_key=_OTHER_MASTER_KEY).decrypt(blob=blob, context=_CONTEXT)


def test_envelope_decrypt_fails_for_unknown_key_version() -> None:
    service = _build_service()
    blob = service.encrypt(plaintext=b"payload", context=_CONTEXT)

    with pytest.raises(DecryptionFailure):
        service.decrypt(blob=replace(blob, key_version=7), context=_CONTEXT)


def test_envelope_decrypt_fails_for_wrong_iv_length() -> None:
    service = _build_service()
    blob = service.encrypt(plaintext=b"payload", context=_CONTEXT)

    with pytest.raises(DecryptionFailure):
        service.decrypt(blob=replace(blob, iv=blob.iv + b"\x00"), context=_CONTEXT)


def test_envelope_rotation_keeps_old_records_readable() -> None:
    """
    Verify new key version encrypts new records while old versions still decrypt.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Keyring keeps version 1 derivation after rotation.
    Raises:
        AssertionError: If rotation breaks old records or tags wrong version.
    Side Effects:
        None.
    """
    old_service = _build_service()
    old_blob = old_service.encrypt(plaintext=b"legacy", context=_CONTEXT)
    rotated_service = AesGcmEnvelopeEncryptionService(
        key_derivations={
            1: ScryptKeyDerivation(installation_secret=_MASTER_KEY, n=_FAST_SCRYPT_N),
            2: ScryptKeyDerivation(installation_secret=_OTHER_MASTER_KEY, n=_FAST_SCRYPT_N),
        },
        active_key_version=2,
    )

    new_blob = rotated_service.encrypt(plaintext=b"fresh", context=_CONTEXT)

    assert rotated_service.decrypt(blob=old_blob, context=_CONTEXT) == b"legacy"
    assert new_blob.key_version == 2
    assert rotated_service.decrypt(blob=new_blob, context=_CONTEXT) == b"fresh"


def test_envelope_blob_survives_storage_encoding() -> None:
    service = _build_service()
    blob = service.encrypt(plaintext=b"stored", context=_CONTEXT)

    storage = blob.to_storage()
    restored = EncryptedBlob.from_storage(storage)

    assert set(storage) == {"salt", "iv", "ciphertext", "auth_tag", "key_version"}
    assert all(isinstance(storage[name], str) for name in ("salt", "iv", "ciphertext", "auth_tag"))
    assert service.decrypt(blob=restored, context=_CONTEXT) == b"stored"


def test_envelope_service_rejects_invalid_keyring() -> None:
    derivation = ScryptKeyDerivation(installation_secret=_MASTER_KEY, n=_FAST_SCRYPT_N)

    with pytest.raises(ValueError, match="requires key_derivations"):
        AesGcmEnvelopeEncryptionService(key_derivations={})
    with pytest.raises(ValueError, match="active_key_version"):
        AesGcmEnvelopeEncryptionService(key_derivations={1: derivation}, active_key_version=2)
    with pytest.raises(ValueError, match="must be > 0"):
        AesGcmEnvelopeEncryptionService(key_derivations={0: derivation}, active_key_version=0)


def test_envelope_service_rejects_non_bytes_input() -> None:
    service = _build_service()

    with pytest.raises(TypeError):
        service.encrypt(plaintext="text", context=_CONTEXT)  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        service.encrypt(plaintext=b"payload", context="ctx")  # type: ignore[arg-type]
