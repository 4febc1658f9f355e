"""
Security API routes.

Docs:
  - docs/architecture/security/security-admin-totp-v1.md
  - docs/architecture/security/security-audit-log-v1.md
"""

from __future__ import annotations

from fastapi import APIRouter

from fractown.contexts.security.adapters.inbound.api.routes import (
    build_security_dashboard_router,
    build_two_factor_totp_router,
)
from fractown.contexts.security.application.use_cases import (
    DisableTotpUseCase,
    GenerateTotpSecretUseCase,
    GetSecurityDashboardUseCase,
    VerifyBackupCodeUseCase,
    VerifyTotpCodeUseCase,
)


def build_security_router(
    *,
    generate_use_case: GenerateTotpSecretUseCase,
    verify_use_case: VerifyTotpCodeUseCase,
    verify_backup_use_case: VerifyBackupCodeUseCase,
    disable_use_case: DisableTotpUseCase,
    dashboard_use_case: GetSecurityDashboardUseCase,
) -> APIRouter:
    """
    Build security router facade for FastAPI app composition root.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
      - docs/architecture/security/security-audit-log-v1.md
    Related:
      - src/fractown/contexts/security/adapters/inbound/api/routes/two_factor_totp.py
      - src/fractown/contexts/security/adapters/inbound/api/routes/security_dashboard.py
      - apps/api/wiring/modules/security.py

    Args:
        generate_use_case: TOTP enrollment start use-case.
        verify_use_case: TOTP code verification use-case.
        verify_backup_use_case: Backup code verification use-case.
        disable_use_case: TOTP disable use-case.
        dashboard_use_case: Security dashboard read use-case.
    Returns:
        APIRouter: Configured security router.
    Assumptions:
        Admin authentication is enforced in front of this router.
    Raises:
        ValueError: If one of use-cases is missing.
    Side Effects:
        None.
    """
    router = APIRouter()
    router.include_router(
        build_two_factor_totp_router(
            generate_use_case=generate_use_case,
            verify_use_case=verify_use_case,
            verify_backup_use_case=verify_backup_use_case,
            disable_use_case=disable_use_case,
        )
    )
    router.include_router(build_security_dashboard_router(dashboard_use_case=dashboard_use_case))
    return router
