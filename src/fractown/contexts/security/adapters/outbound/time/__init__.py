from .system_security_clock import SystemSecurityClock

__all__ = ["SystemSecurityClock"]
