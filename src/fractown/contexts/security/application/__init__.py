from .ports import (
    DecryptionFailure,
    EnvelopeEncryption,
    InvalidTagLength,
    KeyDerivation,
    KeyDerivationError,
    LockoutStore,
    SecurityClock,
    SecurityCryptoError,
    SecurityEventStore,
    TotpSecretStore,
)
from .services import (
    SecurityAuditLog,
    SecurityMaintenance,
    SecurityMaintenanceReport,
    SecurityStats,
    TotpAttemptLimiter,
)
from .use_cases import (
    DisableTotpUseCase,
    GenerateTotpSecretUseCase,
    GetSecurityDashboardUseCase,
    TotpOperationError,
    VerifyBackupCodeUseCase,
    VerifyTotpCodeUseCase,
)

__all__ = [
    "DecryptionFailure",
    "DisableTotpUseCase",
    "EnvelopeEncryption",
    "GenerateTotpSecretUseCase",
    "GetSecurityDashboardUseCase",
    "InvalidTagLength",
    "KeyDerivation",
    "KeyDerivationError",
    "LockoutStore",
    "SecurityAuditLog",
    "SecurityClock",
    "SecurityCryptoError",
    "SecurityEventStore",
    "SecurityMaintenance",
    "SecurityMaintenanceReport",
    "SecurityStats",
    "TotpAttemptLimiter",
    "TotpOperationError",
    "TotpSecretStore",
    "VerifyBackupCodeUseCase",
    "VerifyTotpCodeUseCase",
]
