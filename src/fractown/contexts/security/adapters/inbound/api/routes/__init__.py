from .security_dashboard import (
    SecurityDashboardResponse,
    SecurityEventResponse,
    SecurityStatsResponse,
    build_security_dashboard_router,
)
from .two_factor_totp import (
    TotpAdminRequest,
    TotpCodeRequest,
    TotpGenerateSecretResponse,
    TotpSuccessResponse,
    build_two_factor_totp_router,
)

__all__ = [
    "SecurityDashboardResponse",
    "SecurityEventResponse",
    "SecurityStatsResponse",
    "TotpAdminRequest",
    "TotpCodeRequest",
    "TotpGenerateSecretResponse",
    "TotpSuccessResponse",
    "build_security_dashboard_router",
    "build_two_factor_totp_router",
]
