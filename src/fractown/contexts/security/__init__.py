from .application import (
    DecryptionFailure,
    DisableTotpUseCase,
    EnvelopeEncryption,
    GenerateTotpSecretUseCase,
    GetSecurityDashboardUseCase,
    InvalidTagLength,
    KeyDerivationError,
    SecurityAuditLog,
    TotpAttemptLimiter,
    TotpOperationError,
    VerifyBackupCodeUseCase,
    VerifyTotpCodeUseCase,
)
from .domain import EncryptedBlob, EnrollmentState, LockoutPolicy, SecurityAction, TotpSecret

__all__ = [
    "DecryptionFailure",
    "DisableTotpUseCase",
    "EncryptedBlob",
    "EnrollmentState",
    "EnvelopeEncryption",
    "GenerateTotpSecretUseCase",
    "GetSecurityDashboardUseCase",
    "InvalidTagLength",
    "KeyDerivationError",
    "LockoutPolicy",
    "SecurityAction",
    "SecurityAuditLog",
    "TotpAttemptLimiter",
    "TotpOperationError",
    "TotpSecret",
    "VerifyBackupCodeUseCase",
    "VerifyTotpCodeUseCase",
]
