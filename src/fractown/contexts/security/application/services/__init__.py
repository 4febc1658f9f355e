from .security_audit_log import SecurityAuditLog, SecurityStats
from .security_maintenance import SecurityMaintenance, SecurityMaintenanceReport
from .totp_attempt_limiter import LockoutAdmission, TotpAttemptLimiter

__all__ = [
    "LockoutAdmission",
    "SecurityAuditLog",
    "SecurityMaintenance",
    "SecurityMaintenanceReport",
    "SecurityStats",
    "TotpAttemptLimiter",
]
