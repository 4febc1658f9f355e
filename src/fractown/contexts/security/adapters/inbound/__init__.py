from .api import build_security_dashboard_router, build_two_factor_totp_router

__all__ = ["build_security_dashboard_router", "build_two_factor_totp_router"]
