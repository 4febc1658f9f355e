from __future__ import annotations

from datetime import datetime, timezone


def ensure_utc_datetime(*, value: datetime, field_name: str) -> datetime:
    """
    Validate datetime is timezone-aware UTC and return same value.

    Args:
        value: Datetime value to validate.
        field_name: Field label for deterministic error message.
    Returns:
        datetime: Same validated datetime.
    Assumptions:
        UTC datetimes have zero offset.
    Raises:
        ValueError: If datetime is naive or non-UTC.
    Side Effects:
        None.
    """
    offset = value.utcoffset()
    if value.tzinfo is None or offset is None:
        raise ValueError(f"{field_name} must be timezone-aware UTC datetime")
    if offset.total_seconds() != 0:
        raise ValueError(f"{field_name} must be UTC datetime")
    return value


def coerce_utc_datetime(*, value: datetime, field_name: str) -> datetime:
    """
    Convert timezone-aware datetime read from storage to UTC.

    Args:
        value: Aware datetime in any offset (for example session timezone of a driver).
        field_name: Field label for deterministic error message.
    Returns:
        datetime: Same instant with UTC tzinfo.
    Assumptions:
        Naive values are never produced by `timestamptz` columns.
    Raises:
        ValueError: If datetime is naive.
    Side Effects:
        None.
    """
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{field_name} must be timezone-aware datetime")
    return value.astimezone(timezone.utc)
