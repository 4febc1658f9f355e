from .enrollment_state import EnrollmentState
from .security_action import SecurityAction

__all__ = ["EnrollmentState", "SecurityAction"]
