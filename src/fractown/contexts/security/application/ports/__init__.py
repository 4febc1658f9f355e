from .backup_code_hasher import BackupCodeHasher
from .clock import SecurityClock
from .envelope_encryption import EnvelopeEncryption
from .errors import DecryptionFailure, InvalidTagLength, KeyDerivationError, SecurityCryptoError
from .key_derivation import KeyDerivation
from .lockout_store import LockoutStore
from .security_event_store import (
    SecurityAllTimeSummary,
    SecurityEventStore,
    SecurityWindowSummary,
)
from .security_metrics import SecurityEventMetrics
from .totp_provider import TotpProvider
from .totp_secret_store import TotpSecretStore

__all__ = [
    "BackupCodeHasher",
    "DecryptionFailure",
    "EnvelopeEncryption",
    "InvalidTagLength",
    "KeyDerivation",
    "KeyDerivationError",
    "LockoutStore",
    "SecurityAllTimeSummary",
    "SecurityClock",
    "SecurityCryptoError",
    "SecurityEventMetrics",
    "SecurityEventStore",
    "SecurityWindowSummary",
    "TotpProvider",
    "TotpSecretStore",
]
