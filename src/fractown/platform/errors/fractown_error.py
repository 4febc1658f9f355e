from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class FractownError(Exception):
    """
    FractownError — `{code, message, details}` error rendered by API handlers.

    Docs:
      - docs/architecture/api/api-errors-v1.md
    Related:
      - apps/api/common/errors.py
    """

    code: str
    message: str
    details: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        """
        Strip code and message, and keep read-only copy of details keyed by strings.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            `code` selects HTTP status in API handler; values are rendered there.
        Raises:
            ValueError: If `code` or `message` are blank.
            TypeError: If `details` is not a mapping when provided.
        Side Effects:
            None.
        """
        code = self.code.strip()
        message = self.message.strip()
        if not code:
            raise ValueError("FractownError.code must be non-empty")
        if not message:
            raise ValueError("FractownError.message must be non-empty")
        object.__setattr__(self, "code", code)
        object.__setattr__(self, "message", message)

        if self.details is None:
            return
        if not isinstance(self.details, Mapping):
            raise TypeError("FractownError.details must be a mapping when provided")
        frozen = {str(key): value for key, value in self.details.items()}
        object.__setattr__(self, "details", MappingProxyType(frozen))
