"""Core data models for the provenance registry."""

from provenance.models.product import (
    Identity,
    ProductCategory,
    ProductRecord,
    ProductUpdate,
)

__all__ = [
    "Identity",
    "ProductCategory",
    "ProductRecord",
    "ProductUpdate",
]
