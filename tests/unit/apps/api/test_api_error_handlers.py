from __future__ import annotations

import logging
from uuid import UUID

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from apps.api.common import register_api_error_handlers
from fractown.contexts.security.application.ports.errors import DecryptionFailure
from fractown.contexts.security.application.use_cases import TotpLockedOutError
from fractown.platform.errors import FractownError

_ADMIN_UUID = UUID("00000000-0000-0000-0000-000000000d01")


class _CodePayload(BaseModel):
    """
    Strict camelCase payload mirroring TOTP verification request shape.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    admin_id: UUID
    code: str


def _build_app() -> FastAPI:
    app = FastAPI()
    register_api_error_handlers(app=app)

    @app.get("/conflict")
    def conflict() -> None:
        raise FractownError(
            code="conflict",
            message="Enrollment already exists",
            details={"admin_id": _ADMIN_UUID, "states": ("pending", "enabled")},
        )

    @app.get("/nested")
    def nested() -> None:
        raise FractownError(
            code="forbidden",
            message="Nested details",
            details={"payload": {2: [b"x", None], "a": {"z": 1.5, "b": True}}},
        )

    @app.get("/opaque")
    def opaque() -> None:
        raise FractownError(code="unexpected_error", message="Security operation failed")

    @app.get("/unknown")
    def unknown() -> None:
        raise FractownError(code="teapot", message="Unmapped error code")

    @app.get("/locked")
    def locked() -> None:
        raise TotpLockedOutError(retry_after_seconds=42)

    @app.get("/decrypt")
    def decrypt() -> None:
        raise DecryptionFailure()

    @app.post("/validate")
    def validate(payload: _CodePayload) -> dict[str, str]:
        return {"adminId": str(payload.admin_id)}

    return app


def test_fractown_error_handler_maps_conflict_and_normalizes_details() -> None:
    """
    Verify FractownError is converted into deterministic payload with plain details.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Non-JSON detail values are stringified, sequences become lists.
    Raises:
        AssertionError: If payload shape or HTTP status mapping is broken.
    Side Effects:
        None.
    """
    client = TestClient(_build_app())

    response = client.get("/conflict")

    assert response.status_code == 409
    assert response.json() == {
        "error": {
            "code": "conflict",
            "message": "Enrollment already exists",
            "details": {
                "admin_id": str(_ADMIN_UUID),
                "states": ["pending", "enabled"],
            },
        }
    }


def test_fractown_error_handler_renders_nested_details_with_sorted_keys() -> None:
    client = TestClient(_build_app())

    response = client.get("/nested")

    assert response.status_code == 403
    assert response.json()["error"]["details"] == {
        "payload": {"2": ["b'x'", None], "a": {"b": True, "z": 1.5}},
    }
    assert list(response.json()["error"]["details"]["payload"]) == ["2", "a"]


def test_fractown_error_handler_logs_server_failures(caplog: pytest.LogCaptureFixture) -> None:
    client = TestClient(_build_app())
    caplog.set_level(logging.ERROR, logger="apps.api.common.errors")

    opaque = client.get("/opaque")
    unknown = client.get("/unknown")

    assert opaque.status_code == 500
    assert opaque.json() == {
        "error": {
            "code": "unexpected_error",
            "message": "Security operation failed",
            "details": {},
        }
    }
    assert unknown.status_code == 500
    messages = [record.getMessage() for record in caplog.records]
    assert "api request failed: code=unexpected_error" in messages
    assert "api request failed: code=teapot" in messages


def test_request_validation_error_handler_returns_sorted_validation_errors() -> None:
    """
    Verify validation handler returns deterministic `validation_error` payload with sorted errors.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Errors are sorted lexicographically by path, then code, then message.
    Raises:
        AssertionError: If response payload differs from deterministic contract.
    Side Effects:
        None.
    """
    client = TestClient(_build_app())

    response = client.post("/validate", json={"adminId": "not-a-uuid", "secret": "x"})

    assert response.status_code == 422
    body = response.json()
    assert body["error"]["code"] == "validation_error"
    assert body["error"]["message"] == "Validation failed"
    assert [(item["path"], item["code"]) for item in body["error"]["details"]["errors"]] == [
        ("body.adminId", "uuid_parsing"),
        ("body.code", "required"),
        ("body.secret", "extra_forbidden"),
    ]


def test_register_api_error_handlers_requires_app() -> None:
    with pytest.raises(ValueError, match="requires app"):
        register_api_error_handlers(app=None)  # type: ignore[arg-type]


def test_totp_operation_error_handler_renders_lockout_with_retry_after() -> None:
    client = TestClient(_build_app())

    response = client.get("/locked")

    assert response.status_code == 429
    assert response.headers["retry-after"] == "42"
    assert response.json() == {
        "error": "LockedOut",
        "message": "Too many failed attempts. Try again later.",
        "retryAfterSeconds": 42,
    }


def test_security_crypto_error_handler_hides_failure_details(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """
    Verify crypto failures become opaque 500 payloads and log only the error class.

    Args:
        caplog: Pytest log capture fixture.
    Returns:
        None.
    Assumptions:
        Exception message is never copied into response or log line.
    Raises:
        AssertionError: If crypto details leak.
    Side Effects:
        None.
    """
    client = TestClient(_build_app())
    caplog.set_level(logging.ERROR, logger="apps.api.common.errors")

    response = client.get("/decrypt")

    assert response.status_code == 500
    assert response.json() == {
        "error": {
            "code": "unexpected_error",
            "message": "Security operation failed",
            "details": {},
        }
    }
    assert "Failed to decrypt data" not in response.text
    assert "security crypto failure: error=DecryptionFailure path=/decrypt" in [
        record.getMessage() for record in caplog.records
    ]
