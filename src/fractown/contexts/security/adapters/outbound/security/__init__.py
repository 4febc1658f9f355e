from .crypto import AesGcmEnvelopeEncryptionService, ScryptKeyDerivation, SensitiveFieldCipher
from .totp import Pbkdf2BackupCodeHasher, PyOtpTotpProvider

__all__ = [
    "AesGcmEnvelopeEncryptionService",
    "Pbkdf2BackupCodeHasher",
    "PyOtpTotpProvider",
    "ScryptKeyDerivation",
    "SensitiveFieldCipher",
]
