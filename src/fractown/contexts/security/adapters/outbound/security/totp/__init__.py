from .pbkdf2_backup_code_hasher import Pbkdf2BackupCodeHasher
from .pyotp_totp_provider import PyOtpTotpProvider

__all__ = ["Pbkdf2BackupCodeHasher", "PyOtpTotpProvider"]
