from .lockout_policy import AttemptDecision, LockoutPolicy

__all__ = ["AttemptDecision", "LockoutPolicy"]
