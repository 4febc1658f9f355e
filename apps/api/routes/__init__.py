from .security import build_security_router

__all__ = ["build_security_router"]
