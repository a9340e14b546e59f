"""Field validation for product registration and update.

Pure functions: no side effects, no state access. Rules run in a fixed
order and the first failure is reported, so the same bad input always
produces the same diagnostic:

    product_id → metadata_hash → description → origin → category
"""

from __future__ import annotations

from typing import Any

from provenance.models.product import ProductCategory
from provenance.registry.errors import RegistryError


MAX_PRODUCT_ID_LENGTH = 50
MAX_METADATA_HASH_LENGTH = 64
MAX_DESCRIPTION_LENGTH = 200
MAX_ORIGIN_LENGTH = 100

# (field name, max length), in evaluation order
_TEXT_RULES: tuple[tuple[str, int], ...] = (
    ("product_id", MAX_PRODUCT_ID_LENGTH),
    ("metadata_hash", MAX_METADATA_HASH_LENGTH),
    ("description", MAX_DESCRIPTION_LENGTH),
    ("origin", MAX_ORIGIN_LENGTH),
)


def validate_text(field: str, value: Any, max_length: int) -> str:
    """Check a bounded, non-empty text field.

    Raises:
        RegistryError: INVALID_FIELD for the named field.
    """
    if not isinstance(value, str) or not value:
        raise RegistryError.invalid_field(field, f"{field} must be non-empty")
    if len(value) > max_length:
        raise RegistryError.invalid_field(
            field,
            f"{field} exceeds {max_length} characters (got {len(value)})",
        )
    return value


def validate_product_id(value: Any) -> str:
    return validate_text("product_id", value, MAX_PRODUCT_ID_LENGTH)


def validate_metadata_hash(value: Any) -> str:
    return validate_text("metadata_hash", value, MAX_METADATA_HASH_LENGTH)


def validate_description(value: Any) -> str:
    return validate_text("description", value, MAX_DESCRIPTION_LENGTH)


def validate_origin(value: Any) -> str:
    return validate_text("origin", value, MAX_ORIGIN_LENGTH)


def validate_category(value: Any) -> ProductCategory:
    """Parse a category at the registry boundary."""
    category = ProductCategory.parse(value)
    if category is None:
        allowed = ", ".join(c.value for c in ProductCategory)
        raise RegistryError.invalid_field(
            "category", f"Unknown category {value!r} (expected one of: {allowed})"
        )
    return category


def validate_registration(
    product_id: Any,
    metadata_hash: Any,
    description: Any,
    origin: Any,
    category: Any,
) -> ProductCategory:
    """Validate a registration payload; returns the parsed category."""
    values = (product_id, metadata_hash, description, origin)
    for (field, max_length), value in zip(_TEXT_RULES, values):
        validate_text(field, value, max_length)
    return validate_category(category)


def validate_amendment(
    metadata_hash: Any,
    description: Any,
    origin: Any,
) -> None:
    """Validate the mutable fields of an update (category is not amendable)."""
    validate_metadata_hash(metadata_hash)
    validate_description(description)
    validate_origin(origin)
