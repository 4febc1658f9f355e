from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class AdminId:
    """
    AdminId — сквозной идентификатор администратора в формате UUID.

    Docs:
      - docs/architecture/security/security-admin-totp-v1.md
    Related:
      - src/fractown/contexts/security/domain/entities/totp_secret.py
      - src/fractown/contexts/security/domain/entities/security_event.py
    """

    value: UUID

    def __post_init__(self) -> None:
        """
        Validate UUID value type for admin identifier.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            `AdminId` must wrap concrete `uuid.UUID` value.
        Raises:
            ValueError: If `value` is not a UUID instance.
        Side Effects:
            None.
        """
        if not isinstance(self.value, UUID):
            raise ValueError(f"AdminId requires UUID value, got {self.value!r}")

    @classmethod
    def from_string(cls, raw_value: str) -> AdminId:
        """
        Parse admin identifier from canonical UUID string representation.

        Args:
            raw_value: Raw UUID string.
        Returns:
            AdminId: Parsed admin id value object.
        Assumptions:
            Input string is expected to be non-empty and UUID-compatible.
        Raises:
            ValueError: If UUID parsing fails.
        Side Effects:
            None.
        """
        stripped = raw_value.strip()
        if not stripped:
            raise ValueError("AdminId.from_string requires non-empty value")
        return cls(UUID(stripped))

    def to_context(self) -> bytes:
        """
        Return canonical UTF-8 bytes used as AEAD context binding for admin-owned records.
        """
        return str(self.value).encode("ascii")

    def __str__(self) -> str:
        return str(self.value)
