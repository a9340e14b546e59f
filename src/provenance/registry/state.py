"""Registry state: configuration, counters, and the dual product indices.

RegistryState is the single owner of everything the registry persists:
- the sequential id counter and the capacity ceiling,
- the registration fee and the (set-once) authority,
- the height of the most recent record write,
- the primary index (numeric id → ProductRecord),
- the uniqueness index (product_id → numeric id),
- the update slots (numeric id → ProductUpdate).

The two indices are private and can only be changed through insert(),
which writes both together. There is no delete path: nothing is ever
pruned from either index, so they cannot diverge.

The state performs no validation or authorization of its own beyond the
structural guards that protect its invariants; that is the engine's job.
"""

from __future__ import annotations

from typing import Any, Iterator, Optional

from provenance.models.product import Identity, ProductRecord, ProductUpdate
from provenance.registry.errors import (
    ERR_AUTHORITY_ALREADY_CONFIGURED,
    ERR_MAX_PRODUCTS_EXCEEDED,
    ERR_PRODUCT_ALREADY_EXISTS,
    ERR_PRODUCT_NOT_FOUND,
    RegistryError,
    RegistryErrorKind,
)


DEFAULT_MAX_PRODUCTS = 10000
DEFAULT_REGISTRATION_FEE = 500


class RegistryState:
    """Explicit, process-owned registry state.

    Usage:
        state = RegistryState(max_products=10000, registration_fee=500)
        engine = ProductRegistryEngine(state, directory, transfer, clock)
    """

    def __init__(
        self,
        max_products: int = DEFAULT_MAX_PRODUCTS,
        registration_fee: int = DEFAULT_REGISTRATION_FEE,
    ) -> None:
        if max_products < 0:
            raise ValueError(f"max_products must be >= 0, got {max_products}")
        if registration_fee < 0:
            raise ValueError(
                f"registration_fee must be >= 0, got {registration_fee}"
            )
        self._max_products = max_products
        self.registration_fee = registration_fee
        self._authority: Optional[Identity] = None
        self._next_product_id = 0
        self._last_height = 0
        self._products: dict[int, ProductRecord] = {}
        self._ids_by_key: dict[str, int] = {}
        self._updates: dict[int, ProductUpdate] = {}

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def max_products(self) -> int:
        return self._max_products

    @property
    def next_product_id(self) -> int:
        return self._next_product_id

    @property
    def last_height(self) -> int:
        """Height of the most recent record write (0 before any)."""
        return self._last_height

    @property
    def authority(self) -> Optional[Identity]:
        return self._authority

    @property
    def at_capacity(self) -> bool:
        return self._next_product_id >= self._max_products

    def set_authority(self, principal: Identity) -> None:
        """Record the authority. Can succeed exactly once per lifetime."""
        if self._authority is not None:
            raise RegistryError(
                RegistryErrorKind.ALREADY_CONFIGURED,
                f"Authority already configured: {self._authority}",
                code=ERR_AUTHORITY_ALREADY_CONFIGURED,
            )
        self._authority = principal

    # ------------------------------------------------------------------
    # Indices
    # ------------------------------------------------------------------

    def insert(self, record: ProductRecord) -> int:
        """Insert a new record into both indices; returns its numeric id."""
        if self.at_capacity:
            raise RegistryError(
                RegistryErrorKind.CAPACITY_EXCEEDED,
                f"Registry is at capacity ({self._max_products} products)",
                code=ERR_MAX_PRODUCTS_EXCEEDED,
            )
        if record.product_id in self._ids_by_key:
            raise RegistryError(
                RegistryErrorKind.ALREADY_EXISTS,
                f"Product already registered: {record.product_id}",
                code=ERR_PRODUCT_ALREADY_EXISTS,
            )
        numeric_id = self._next_product_id
        self._products[numeric_id] = record
        self._ids_by_key[record.product_id] = numeric_id
        self._next_product_id = numeric_id + 1
        self._last_height = max(self._last_height, record.timestamp)
        return numeric_id

    def replace(
        self,
        numeric_id: int,
        record: ProductRecord,
        update: ProductUpdate,
    ) -> None:
        """Overwrite an existing record and its single update slot."""
        current = self._products.get(numeric_id)
        if current is None:
            raise RegistryError(
                RegistryErrorKind.NOT_FOUND,
                f"Product not found: {numeric_id}",
                code=ERR_PRODUCT_NOT_FOUND,
            )
        if (
            record.product_id != current.product_id
            or record.producer != current.producer
            or record.category != current.category
        ):
            raise ValueError(
                f"Product {numeric_id}: product_id, producer and category "
                f"are immutable"
            )
        self._products[numeric_id] = record
        self._updates[numeric_id] = update
        self._last_height = max(self._last_height, record.timestamp)

    def get(self, numeric_id: int) -> Optional[ProductRecord]:
        return self._products.get(numeric_id)

    def get_update(self, numeric_id: int) -> Optional[ProductUpdate]:
        return self._updates.get(numeric_id)

    def resolve(self, product_id: str) -> Optional[int]:
        """Map a business key to its numeric id."""
        return self._ids_by_key.get(product_id)

    def contains(self, product_id: str) -> bool:
        return product_id in self._ids_by_key

    def items(self) -> Iterator[tuple[int, ProductRecord]]:
        """Iterate records in id order."""
        for numeric_id in sorted(self._products):
            yield numeric_id, self._products[numeric_id]

    def key_index(self) -> dict[str, int]:
        return dict(self._ids_by_key)

    def updates(self) -> dict[int, ProductUpdate]:
        return dict(self._updates)

    def __len__(self) -> int:
        return len(self._products)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @classmethod
    def from_records(cls, data: dict[str, Any]) -> RegistryState:
        """Restore state from a persistence snapshot.

        Indices are rebuilt exactly as stored so that a corrupt snapshot
        is detectable by check_state_invariants() rather than silently
        repaired.
        """
        config = data.get("config", {})
        state = cls(
            max_products=int(config.get("max_products", DEFAULT_MAX_PRODUCTS)),
            registration_fee=int(
                config.get("registration_fee", DEFAULT_REGISTRATION_FEE)
            ),
        )
        state._authority = config.get("authority")
        state._next_product_id = int(config.get("next_product_id", 0))
        for key, pd in data.get("products", {}).items():
            state._products[int(key)] = ProductRecord.from_dict(pd)
        for product_id, numeric_id in data.get("index", {}).items():
            state._ids_by_key[product_id] = int(numeric_id)
        for key, ud in data.get("updates", {}).items():
            state._updates[int(key)] = ProductUpdate.from_dict(ud)
        state._last_height = int(config.get(
            "last_height",
            max((r.timestamp for r in state._products.values()), default=0),
        ))
        return state

    def to_records(self) -> dict[str, Any]:
        """Serialise state for persistence."""
        return {
            "config": {
                "next_product_id": self._next_product_id,
                "max_products": self._max_products,
                "registration_fee": self.registration_fee,
                "authority": self._authority,
                "last_height": self._last_height,
            },
            "products": {
                str(numeric_id): record.to_dict()
                for numeric_id, record in self.items()
            },
            "index": dict(sorted(self._ids_by_key.items())),
            "updates": {
                str(numeric_id): update.to_dict()
                for numeric_id, update in sorted(self._updates.items())
            },
        }
