"""Product record, update slot, and category data models.

A product record is the provenance claim a producer makes about one item:
what it is (description, category), where it came from (origin), and a
content hash of off-registry metadata. Records are:
- Created once, by an authorized producer, at a logical height.
- Owned forever by that producer: no transfer path exists.
- Amended only in their mutable fields (hash, description, origin).
- Never deleted.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional


# Opaque principal: producer, authority, or caller.
Identity = str


class ProductCategory(str, enum.Enum):
    """Closed set of product categories accepted by the registry."""
    FOOD = "food"
    PHARMA = "pharma"
    LUXURY = "luxury"
    ELECTRONICS = "electronics"

    @classmethod
    def parse(cls, value: Any) -> Optional[ProductCategory]:
        """Parse a raw category value; returns None if it is not recognised."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class ProductRecord:
    """A registered product.

    STRUCTURAL INVARIANT: producer and category are fixed at creation.
    Updates produce a new record via dataclasses.replace() that carries
    both fields over unchanged.
    """
    product_id: str
    producer: Identity
    metadata_hash: str
    description: str
    origin: str
    category: ProductCategory
    timestamp: int
    status: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "producer": self.producer,
            "metadata_hash": self.metadata_hash,
            "description": self.description,
            "origin": self.origin,
            "category": self.category.value,
            "timestamp": self.timestamp,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProductRecord:
        return cls(
            product_id=data["product_id"],
            producer=data["producer"],
            metadata_hash=data["metadata_hash"],
            description=data["description"],
            origin=data["origin"],
            category=ProductCategory(data["category"]),
            timestamp=int(data["timestamp"]),
            status=bool(data.get("status", True)),
        )


@dataclass(frozen=True)
class ProductUpdate:
    """The most recent amendment applied to a product.

    At most one exists per product; each update overwrites the previous
    slot rather than appending to a history.
    """
    metadata_hash: str
    description: str
    origin: str
    timestamp: int
    updater: Identity

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata_hash": self.metadata_hash,
            "description": self.description,
            "origin": self.origin,
            "timestamp": self.timestamp,
            "updater": self.updater,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProductUpdate:
        return cls(
            metadata_hash=data["metadata_hash"],
            description=data["description"],
            origin=data["origin"],
            timestamp=int(data["timestamp"]),
            updater=data["updater"],
        )
