"""
API error handlers: FractownError contract, TOTP operation errors, opaque crypto failures
and deterministic 422 payloads.

Docs:
  - docs/architecture/api/api-errors-v1.md
  - docs/architecture/security/security-admin-totp-v1.md
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence, cast

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse

from fractown.contexts.security.application.ports.errors import SecurityCryptoError
from fractown.contexts.security.application.use_cases import (
    TotpLockedOutError,
    TotpOperationError,
)
from fractown.platform.errors import FractownError

log = logging.getLogger(__name__)

_FRACTOWN_STATUS_BY_CODE: Mapping[str, int] = {
    "validation_error": 422,
    "not_found": 404,
    "forbidden": 403,
    "conflict": 409,
    "unauthorized": 401,
    "unexpected_error": 500,
}
_OPAQUE_SECURITY_ERROR = FractownError(
    code="unexpected_error",
    message="Security operation failed",
)


def register_api_error_handlers(*, app: FastAPI) -> None:
    """
    Register global API handlers for platform, security and validation errors.

    Args:
        app: FastAPI application instance.
    Returns:
        None.
    Assumptions:
        Handlers are installed once during application startup, before routers serve traffic.
    Raises:
        ValueError: If `app` dependency is missing.
    Side Effects:
        Mutates FastAPI exception-handler registry.
    """
    if app is None:  # type: ignore[truthy-bool]
        raise ValueError("register_api_error_handlers requires app")

    app.add_exception_handler(FractownError, fractown_error_handler)
    app.add_exception_handler(TotpOperationError, totp_operation_error_handler)
    app.add_exception_handler(SecurityCryptoError, security_crypto_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)


def fractown_error_handler(_request: Request, error: Exception) -> JSONResponse:
    """
    Render FractownError as `{"error": {"code", "message", "details"}}`.

    Args:
        _request: Starlette request object (unused).
        error: Raised FractownError instance.
    Returns:
        JSONResponse: Contract payload with status from code mapping, unknown codes are 500.
    Assumptions:
        Validation details carry `errors` list that must stay sorted.
    Raises:
        None.
    Side Effects:
        Logs server-side failures (status >= 500).
    """
    fractown_error = cast(FractownError, error)
    status_code = _FRACTOWN_STATUS_BY_CODE.get(fractown_error.code, 500)
    if status_code >= 500:
        log.error("api request failed: code=%s", fractown_error.code)

    details: dict[str, Any] = {}
    for key, value in sorted((fractown_error.details or {}).items()):
        if fractown_error.code == "validation_error" and key == "errors":
            details[key] = _sorted_validation_errors(raw_errors=value)
        else:
            details[key] = _plain_payload_value(value=value)
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": fractown_error.code,
                "message": fractown_error.message,
                "details": details,
            }
        },
    )


def totp_operation_error_handler(_request: Request, error: Exception) -> JSONResponse:
    """
    Render TOTP operation error as flat `{"error", "message"}` payload.

    Args:
        _request: Starlette request object (unused).
        error: Raised TotpOperationError instance.
    Returns:
        JSONResponse: Payload with operation status; lockout adds `Retry-After` header.
    Assumptions:
        Invalid-code outcomes are answered by routes as `{success: false}` and never reach here.
    Raises:
        None.
    Side Effects:
        None.
    """
    operation_error = cast(TotpOperationError, error)
    headers: dict[str, str] = {}
    if isinstance(operation_error, TotpLockedOutError):
        headers["Retry-After"] = str(operation_error.retry_after_seconds)
    return JSONResponse(
        status_code=operation_error.status_code,
        content=operation_error.payload(),
        headers=headers,
    )


def security_crypto_error_handler(request: Request, error: Exception) -> JSONResponse:
    """
    Hide crypto failure behind opaque `unexpected_error` payload.

    Args:
        request: Incoming request, used for path in log line.
        error: Raised SecurityCryptoError instance.
    Returns:
        JSONResponse: HTTP 500 payload without crypto details.
    Assumptions:
        Exception text never carries key, tag or plaintext bytes, only its class is logged.
    Raises:
        None.
    Side Effects:
        Logs failure class and request path.
    """
    log.error(
        "security crypto failure: error=%s path=%s",
        type(error).__name__,
        request.url.path,
    )
    return fractown_error_handler(request, _OPAQUE_SECURITY_ERROR)


def request_validation_error_handler(_request: Request, error: Exception) -> JSONResponse:
    """
    Convert FastAPI RequestValidationError into `validation_error` FractownError payload.
    """
    validation_error = cast(RequestValidationError, error)
    return fractown_error_handler(
        _request,
        FractownError(
            code="validation_error",
            message="Validation failed",
            details={"errors": _sorted_validation_errors(raw_errors=validation_error.errors())},
        ),
    )


def _sorted_validation_errors(*, raw_errors: Any) -> list[dict[str, str]]:
    """
    Normalize validation errors to `{path, code, message}` items sorted by those keys.

    Args:
        raw_errors: Raw Pydantic error list or already normalized items.
    Returns:
        list[dict[str, str]]: Sorted normalized validation items.
    Assumptions:
        Unknown item shapes are stringified under `unknown` path.
    Raises:
        None.
    Side Effects:
        None.
    """
    if not isinstance(raw_errors, Sequence) or isinstance(raw_errors, (str, bytes, bytearray)):
        return []
    items = [_validation_item(raw_error=raw_error) for raw_error in raw_errors]
    return sorted(items, key=lambda item: (item["path"], item["code"], item["message"]))


def _validation_item(*, raw_error: Any) -> dict[str, str]:
    if not isinstance(raw_error, Mapping):
        return {"path": "unknown", "code": "validation_error", "message": str(raw_error)}
    if all(key in raw_error for key in ("path", "code", "message")):
        return {
            "path": str(raw_error["path"]),
            "code": str(raw_error["code"]),
            "message": str(raw_error["message"]),
        }
    return {
        "path": _error_path(loc=raw_error.get("loc")),
        "code": _error_code(raw_type=raw_error.get("type")),
        "message": str(raw_error.get("msg", "Validation error")),
    }


def _error_path(*, loc: Any) -> str:
    # ("body", "adminId") -> "body.adminId"
    if isinstance(loc, Sequence) and not isinstance(loc, (str, bytes, bytearray)) and loc:
        return ".".join(str(part) for part in loc)
    return "unknown" if loc is None else str(loc)


def _error_code(*, raw_type: Any) -> str:
    normalized = "" if raw_type is None else str(raw_type).strip().lower()
    if not normalized:
        return "validation_error"
    if normalized == "missing" or normalized.endswith(".missing"):
        return "required"
    return normalized


def _plain_payload_value(*, value: Any) -> Any:
    """
    Convert nested detail value into JSON-ready structure with sorted mapping keys.

    Args:
        value: Detail value of any type.
    Returns:
        Any: Scalar, list or dict; other objects are stringified.
    Assumptions:
        Bytes are stringified like other non-JSON values.
    Raises:
        None.
    Side Effects:
        None.
    """
    if isinstance(value, Mapping):
        return {
            str(key): _plain_payload_value(value=item)
            for key, item in sorted(value.items(), key=lambda pair: str(pair[0]))
        }
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [_plain_payload_value(value=item) for item in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)
