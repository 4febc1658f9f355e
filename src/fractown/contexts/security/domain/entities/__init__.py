from .encrypted_blob import AUTH_TAG_LENGTH, IV_LENGTH, SALT_LENGTH, EncryptedBlob
from .lockout_state import LockoutState, build_subject_key
from .security_event import SecurityEvent
from .totp_secret import BackupCode, TotpSecret

__all__ = [
    "AUTH_TAG_LENGTH",
    "BackupCode",
    "EncryptedBlob",
    "IV_LENGTH",
    "LockoutState",
    "SALT_LENGTH",
    "SecurityEvent",
    "TotpSecret",
    "build_subject_key",
]
