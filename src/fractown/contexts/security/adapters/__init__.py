"""
Adapters package for security bounded context.
"""

from .inbound import build_security_dashboard_router, build_two_factor_totp_router
from .outbound import (
    AesGcmEnvelopeEncryptionService,
    InMemoryLockoutStore,
    InMemorySecurityEventStore,
    InMemoryTotpSecretStore,
    Pbkdf2BackupCodeHasher,
    PostgresLockoutStore,
    PostgresSecurityEventStore,
    PostgresTotpSecretStore,
    PrometheusSecurityEventMetrics,
    PsycopgSecurityPostgresGateway,
    PyOtpTotpProvider,
    ScryptKeyDerivation,
    SensitiveFieldCipher,
    SystemSecurityClock,
)

__all__ = [
    "AesGcmEnvelopeEncryptionService",
    "InMemoryLockoutStore",
    "InMemorySecurityEventStore",
    "InMemoryTotpSecretStore",
    "Pbkdf2BackupCodeHasher",
    "PostgresLockoutStore",
    "PostgresSecurityEventStore",
    "PostgresTotpSecretStore",
    "PrometheusSecurityEventMetrics",
    "PsycopgSecurityPostgresGateway",
    "PyOtpTotpProvider",
    "ScryptKeyDerivation",
    "SensitiveFieldCipher",
    "SystemSecurityClock",
    "build_security_dashboard_router",
    "build_two_factor_totp_router",
]
