from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from starlette.requests import Request

from fractown.contexts.security.adapters.inbound.api.routes._request_meta import (
    client_ip,
    client_user_agent,
)
from fractown.contexts.security.application.use_cases import (
    DisableTotpUseCase,
    GenerateTotpSecretUseCase,
    TotpInvalidBackupCodeError,
    TotpInvalidCodeError,
    VerifyBackupCodeUseCase,
    VerifyTotpCodeUseCase,
)
from fractown.shared_kernel.primitives import AdminId


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class TotpAdminRequest(_CamelModel):
    """
    TotpAdminRequest — API request payload for generate-secret and disable endpoints.
    """

    admin_id: UUID


class TotpCodeRequest(_CamelModel):
    """
    TotpCodeRequest — API request payload for `POST /security/totp/verify` and `/verify-backup`.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/application/use_cases/verify_totp_code.py
      - src/fractown/contexts/security/application/use_cases/verify_backup_code.py
      - apps/api/routes/security.py
    """

    admin_id: UUID
    code: str


class TotpGenerateSecretResponse(_CamelModel):
    """
    TotpGenerateSecretResponse — one-time enrollment material returned to admin UI.
    """

    secret_base32: str
    otp_uri: str
    backup_codes: list[str]


class TotpSuccessResponse(_CamelModel):
    """
    TotpSuccessResponse — `{success: bool}` payload for verify and disable endpoints.
    """

    success: bool


def build_two_factor_totp_router(
    *,
    generate_use_case: GenerateTotpSecretUseCase,
    verify_use_case: VerifyTotpCodeUseCase,
    verify_backup_use_case: VerifyBackupCodeUseCase,
    disable_use_case: DisableTotpUseCase,
) -> APIRouter:
    """
    Build router exposing admin TOTP enrollment, verification and disable endpoints.

    Args:
        generate_use_case: Secret generation use-case.
        verify_use_case: TOTP verification use-case.
        verify_backup_use_case: Backup code verification use-case.
        disable_use_case: Disable use-case.
    Returns:
        APIRouter: Router with `/security/totp/*` endpoints.
    Assumptions:
        Admin authentication happens in front of this router. Operation and crypto errors
        propagate to handlers installed by `register_api_error_handlers`.
    Raises:
        ValueError: If required dependencies are missing.
    Side Effects:
        None.
    """
    if generate_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_two_factor_totp_router requires generate_use_case")
    if verify_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_two_factor_totp_router requires verify_use_case")
    if verify_backup_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_two_factor_totp_router requires verify_backup_use_case")
    if disable_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_two_factor_totp_router requires disable_use_case")

    router = APIRouter(prefix="/security/totp", tags=["security"])

    @router.post("/generate-secret", response_model=TotpGenerateSecretResponse)
    def post_generate_secret(
        payload: TotpAdminRequest,
        request: Request,
    ) -> TotpGenerateSecretResponse:
        """
        Create pending enrollment and return secret, otpauth URI and backup codes once.

        Args:
            payload: Admin identifier payload.
            request: Incoming request (client IP and user agent).
        Returns:
            TotpGenerateSecretResponse: Enrollment material.
        Assumptions:
            Response is never cached by clients.
        Raises:
            TotpOperationError: If enrollment state or setup throttle forbids generation.
            SecurityCryptoError: If secret encryption fails.
        Side Effects:
            Persists encrypted secret and backup code hashes.
        """
        result = generate_use_case.generate(
            admin_id=AdminId(payload.admin_id),
            ip=client_ip(request),
            user_agent=client_user_agent(request),
        )
        return TotpGenerateSecretResponse(
            secret_base32=result.secret_base32,
            otp_uri=result.otpauth_uri,
            backup_codes=list(result.backup_codes),
        )

    @router.post("/verify", response_model=TotpSuccessResponse)
    def post_verify(
        payload: TotpCodeRequest,
        request: Request,
    ) -> TotpSuccessResponse:
        """
        Verify TOTP code; invalid codes answer `{success: false}`, lockout answers 429.

        Args:
            payload: Admin identifier and six-digit code.
            request: Incoming request (client IP and user agent).
        Returns:
            TotpSuccessResponse: Verification outcome.
        Assumptions:
            Submitted code is never echoed back.
        Raises:
            TotpOperationError: If admin is locked out or not enrolled.
            SecurityCryptoError: If stored secret cannot be decrypted.
        Side Effects:
            Updates lockout state, may enable enrollment, writes audit event.
        """
        try:
            verify_use_case.verify(
                admin_id=AdminId(payload.admin_id),
                ip=client_ip(request),
                user_agent=client_user_agent(request),
                code=payload.code,
            )
        except TotpInvalidCodeError:
            return TotpSuccessResponse(success=False)
        return TotpSuccessResponse(success=True)

    @router.post("/verify-backup", response_model=TotpSuccessResponse)
    def post_verify_backup(
        payload: TotpCodeRequest,
        request: Request,
    ) -> TotpSuccessResponse:
        """
        Consume backup code; invalid or used codes answer `{success: false}`.

        Args:
            payload: Admin identifier and backup code.
            request: Incoming request (client IP and user agent).
        Returns:
            TotpSuccessResponse: Verification outcome.
        Assumptions:
            Backup verification shares lockout budget with TOTP verification.
        Raises:
            TotpOperationError: If admin is locked out or not enrolled.
        Side Effects:
            Updates lockout state, marks code used, writes audit event.
        """
        try:
            verify_backup_use_case.verify(
                admin_id=AdminId(payload.admin_id),
                ip=client_ip(request),
                user_agent=client_user_agent(request),
                code=payload.code,
            )
        except TotpInvalidBackupCodeError:
            return TotpSuccessResponse(success=False)
        return TotpSuccessResponse(success=True)

    @router.post("/disable", response_model=TotpSuccessResponse)
    def post_disable(
        payload: TotpAdminRequest,
        request: Request,
    ) -> TotpSuccessResponse:
        disable_use_case.disable(
            admin_id=AdminId(payload.admin_id),
            ip=client_ip(request),
            user_agent=client_user_agent(request),
        )
        return TotpSuccessResponse(success=True)

    return router
