from .routes import (
    SecurityDashboardResponse,
    TotpCodeRequest,
    TotpGenerateSecretResponse,
    TotpSuccessResponse,
    build_security_dashboard_router,
    build_two_factor_totp_router,
)

__all__ = [
    "SecurityDashboardResponse",
    "TotpCodeRequest",
    "TotpGenerateSecretResponse",
    "TotpSuccessResponse",
    "build_security_dashboard_router",
    "build_two_factor_totp_router",
]
