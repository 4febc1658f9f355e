from .lockout_store import InMemoryLockoutStore
from .security_event_store import InMemorySecurityEventStore
from .totp_secret_store import InMemoryTotpSecretStore

__all__ = [
    "InMemoryLockoutStore",
    "InMemorySecurityEventStore",
    "InMemoryTotpSecretStore",
]
