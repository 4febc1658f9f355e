from .gateway import (
    PsycopgSecurityPostgresGateway,
    SecurityPostgresGateway,
    SecurityPostgresSession,
)
from .lockout_store import PostgresLockoutStore
from .security_event_store import PostgresSecurityEventStore
from .totp_secret_store import PostgresTotpSecretStore

__all__ = [
    "PostgresLockoutStore",
    "PostgresSecurityEventStore",
    "PostgresTotpSecretStore",
    "PsycopgSecurityPostgresGateway",
    "SecurityPostgresGateway",
    "SecurityPostgresSession",
]
