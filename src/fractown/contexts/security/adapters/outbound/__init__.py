from .metrics import PrometheusSecurityEventMetrics
from .persistence import (
    InMemoryLockoutStore,
    InMemorySecurityEventStore,
    InMemoryTotpSecretStore,
    PostgresLockoutStore,
    PostgresSecurityEventStore,
    PostgresTotpSecretStore,
    PsycopgSecurityPostgresGateway,
    SecurityPostgresGateway,
)
from .security import (
    AesGcmEnvelopeEncryptionService,
    Pbkdf2BackupCodeHasher,
    PyOtpTotpProvider,
    ScryptKeyDerivation,
    SensitiveFieldCipher,
)
from .time import SystemSecurityClock

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
    "SecurityPostgresGateway",
    "SensitiveFieldCipher",
    "SystemSecurityClock",
]
