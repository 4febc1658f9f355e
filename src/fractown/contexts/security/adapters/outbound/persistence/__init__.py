from .in_memory import InMemoryLockoutStore, InMemorySecurityEventStore, InMemoryTotpSecretStore
from .postgres import (
    PostgresLockoutStore,
    PostgresSecurityEventStore,
    PostgresTotpSecretStore,
    PsycopgSecurityPostgresGateway,
    SecurityPostgresGateway,
)

__all__ = [
    "InMemoryLockoutStore",
    "InMemorySecurityEventStore",
    "InMemoryTotpSecretStore",
    "PostgresLockoutStore",
    "PostgresSecurityEventStore",
    "PostgresTotpSecretStore",
    "PsycopgSecurityPostgresGateway",
    "SecurityPostgresGateway",
]
