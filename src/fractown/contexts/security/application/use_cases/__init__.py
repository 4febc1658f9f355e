from .disable_totp import DisableTotpUseCase
from .generate_totp_secret import GenerateTotpSecretResult, GenerateTotpSecretUseCase
from .get_security_dashboard import (
    DEFAULT_DASHBOARD_EVENTS,
    MAX_DASHBOARD_EVENTS,
    GetSecurityDashboardUseCase,
    SecurityDashboard,
)
from .totp_errors import (
    TotpInvalidBackupCodeError,
    TotpInvalidCodeError,
    TotpInvalidStateError,
    TotpLockedOutError,
    TotpNotEnrolledError,
    TotpOperationError,
    TotpSetupThrottledError,
)
from .verify_backup_code import VerifyBackupCodeResult, VerifyBackupCodeUseCase
from .verify_totp_code import VerifyTotpCodeResult, VerifyTotpCodeUseCase

__all__ = [
    "DEFAULT_DASHBOARD_EVENTS",
    "DisableTotpUseCase",
    "GenerateTotpSecretResult",
    "GenerateTotpSecretUseCase",
    "GetSecurityDashboardUseCase",
    "MAX_DASHBOARD_EVENTS",
    "SecurityDashboard",
    "TotpInvalidBackupCodeError",
    "TotpInvalidCodeError",
    "TotpInvalidStateError",
    "TotpLockedOutError",
    "TotpNotEnrolledError",
    "TotpOperationError",
    "TotpSetupThrottledError",
    "VerifyBackupCodeResult",
    "VerifyBackupCodeUseCase",
    "VerifyTotpCodeResult",
    "VerifyTotpCodeUseCase",
]
