from .entities import (
    AUTH_TAG_LENGTH,
    IV_LENGTH,
    SALT_LENGTH,
    BackupCode,
    EncryptedBlob,
    LockoutState,
    SecurityEvent,
    TotpSecret,
    build_subject_key,
)
from .services import AttemptDecision, LockoutPolicy
from .value_objects import EnrollmentState, SecurityAction

__all__ = [
    "AUTH_TAG_LENGTH",
    "AttemptDecision",
    "BackupCode",
    "EncryptedBlob",
    "EnrollmentState",
    "IV_LENGTH",
    "LockoutPolicy",
    "LockoutState",
    "SALT_LENGTH",
    "SecurityAction",
    "SecurityEvent",
    "TotpSecret",
    "build_subject_key",
]
