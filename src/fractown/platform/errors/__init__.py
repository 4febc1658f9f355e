from .fractown_error import FractownError

__all__ = ["FractownError"]
