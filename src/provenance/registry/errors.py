"""Registry error taxonomy.

Every rejected registry operation is described by a RegistryError carrying:
- a semantic kind (what went wrong),
- the offending field, for validation failures,
- a stable numeric diagnostic code.

The engine raises RegistryError; the service facade converts it into a
failed RegistryResult so no domain failure escapes as an exception.
"""

from __future__ import annotations

import enum
from typing import Any, Optional


class RegistryErrorKind(str, enum.Enum):
    """Semantic classification of registry failures."""
    NOT_AUTHORIZED = "not_authorized"
    INVALID_FIELD = "invalid_field"
    ALREADY_EXISTS = "already_exists"
    NOT_FOUND = "not_found"
    AUTHORITY_NOT_CONFIGURED = "authority_not_configured"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    ALREADY_CONFIGURED = "already_configured"
    TRANSFER_FAILED = "transfer_failed"


# Diagnostic codes
ERR_NOT_AUTHORIZED = 100
ERR_INVALID_PRODUCT_ID = 101
ERR_INVALID_METADATA_HASH = 102
ERR_INVALID_DESCRIPTION = 103
ERR_PRODUCT_ALREADY_EXISTS = 104
ERR_PRODUCT_NOT_FOUND = 105
ERR_AUTHORITY_ALREADY_CONFIGURED = 106
ERR_AUTHORITY_NOT_VERIFIED = 107
ERR_INVALID_PRODUCER = 108
ERR_MAX_PRODUCTS_EXCEEDED = 110
ERR_INVALID_ORIGIN = 111
ERR_INVALID_CATEGORY = 112
ERR_INVALID_AUTHORITY = 113
ERR_INVALID_FEE = 114
ERR_TRANSFER_FAILED = 115
ERR_INVALID_HEIGHT = 116

FIELD_ERROR_CODES: dict[str, int] = {
    "product_id": ERR_INVALID_PRODUCT_ID,
    "metadata_hash": ERR_INVALID_METADATA_HASH,
    "description": ERR_INVALID_DESCRIPTION,
    "origin": ERR_INVALID_ORIGIN,
    "category": ERR_INVALID_CATEGORY,
    "authority": ERR_INVALID_AUTHORITY,
    "registration_fee": ERR_INVALID_FEE,
    "height": ERR_INVALID_HEIGHT,
}


class RegistryError(ValueError):
    """Raised when a registry operation is rejected."""

    def __init__(
        self,
        kind: RegistryErrorKind,
        message: str,
        code: int,
        field: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.code = code
        self.field = field

    @classmethod
    def invalid_field(cls, field: str, message: str) -> RegistryError:
        return cls(
            RegistryErrorKind.INVALID_FIELD,
            message,
            code=FIELD_ERROR_CODES[field],
            field=field,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "kind": self.kind.value,
            "code": self.code,
            "message": str(self),
        }
        if self.field is not None:
            data["field"] = self.field
        return data
