from __future__ import annotations

from uuid import UUID

import pytest

from fractown.platform.errors import FractownError


def test_fractown_error_strips_fields_and_keeps_read_only_details() -> None:
    """
    Verify FractownError strips code/message and detaches details from caller mapping.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Detail keys become strings, values are kept as-is for API rendering.
    Raises:
        AssertionError: If stored fields differ or details stay mutable.
    Side Effects:
        None.
    """
    admin_uuid = UUID("00000000-0000-0000-0000-000000000f11")
    raw_details: dict[object, object] = {"admin_id": admin_uuid, 7: "enabled"}
    error = FractownError(
        code=" conflict ",
        message=" TOTP enrollment already exists ",
        details=raw_details,  # type: ignore[arg-type]
    )
    raw_details["late"] = "ignored"

    assert error.code == "conflict"
    assert error.message == "TOTP enrollment already exists"
    assert dict(error.details or {}) == {"admin_id": admin_uuid, "7": "enabled"}
    with pytest.raises(TypeError):
        error.details["late"] = "mutated"  # type: ignore[index]


def test_fractown_error_without_details_keeps_none() -> None:
    error = FractownError(code="unexpected_error", message="Security operation failed")

    assert error.details is None


@pytest.mark.parametrize(
    ("code", "message", "details", "error_type"),
    [
        ("", "message", None, ValueError),
        ("conflict", "   ", None, ValueError),
        ("conflict", "message", ["not", "mapping"], TypeError),
    ],
)
def test_fractown_error_rejects_invalid_contract(
    code: str,
    message: str,
    details: object,
    error_type: type[Exception],
) -> None:
    with pytest.raises(error_type):
        FractownError(code=code, message=message, details=details)  # type: ignore[arg-type]
