from .aes_gcm_envelope_encryption_service import AesGcmEnvelopeEncryptionService
from .scrypt_key_derivation import ScryptKeyDerivation
from .sensitive_field_cipher import DEFAULT_SENSITIVE_FIELDS, SensitiveFieldCipher

__all__ = [
    "AesGcmEnvelopeEncryptionService",
    "DEFAULT_SENSITIVE_FIELDS",
    "ScryptKeyDerivation",
    "SensitiveFieldCipher",
]
