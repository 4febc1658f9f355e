from .utc import coerce_utc_datetime, ensure_utc_datetime

__all__ = ["coerce_utc_datetime", "ensure_utc_datetime"]
