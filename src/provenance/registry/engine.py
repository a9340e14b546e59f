"""Product registry engine: the registry state-transition rules.

Every mutating operation runs in the same fixed order:
    1. Validation (pure field checks, first failure reported).
    2. Authorization (producer directory, authority, ownership).
    3. Store mutation (RegistryState, both indices together).

Nothing is written until every check has passed, so a rejected
operation leaves the registry exactly as it was.

Architecture:
- ProductRegistryEngine applies the rules and raises RegistryError on
  rejection.
- The service layer wraps the engine with typed results, the audit event
  log and state persistence.
- Collaborators (producer directory, value transfer, logical clock) are
  injected; the engine holds no module-level state.

Registration order (diagnostics are deterministic):
    height → capacity → product_id → metadata_hash → description → origin →
    category → producer → authority configured → uniqueness → fee transfer
"""

from __future__ import annotations

import dataclasses
from typing import Any, Optional

from provenance.environment.clock import LogicalClock, ManualClock
from provenance.environment.transfer import TransferError, ValueTransfer
from provenance.models.product import (
    Identity,
    ProductRecord,
    ProductUpdate,
)
from provenance.registry.authorization import (
    ProducerDirectory,
    ensure_authority_configured,
    ensure_owner,
    ensure_producer,
    ensure_valid_authority,
)
from provenance.registry.errors import (
    ERR_AUTHORITY_NOT_VERIFIED,
    ERR_MAX_PRODUCTS_EXCEEDED,
    ERR_PRODUCT_ALREADY_EXISTS,
    ERR_PRODUCT_NOT_FOUND,
    ERR_TRANSFER_FAILED,
    RegistryError,
    RegistryErrorKind,
)
from provenance.registry.state import RegistryState
from provenance.registry.validation import (
    validate_amendment,
    validate_registration,
)


class ProductRegistryEngine:
    """Registration, amendment and lookup of product provenance records."""

    def __init__(
        self,
        state: RegistryState,
        directory: ProducerDirectory,
        transfer: ValueTransfer,
        clock: Optional[LogicalClock] = None,
    ) -> None:
        self._state = state
        self._directory = directory
        self._transfer = transfer
        self._clock = (
            clock if clock is not None else ManualClock(state.last_height)
        )

    @property
    def state(self) -> RegistryState:
        return self._state

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def configure_authority(self, principal: Identity) -> Identity:
        """Set the registry authority. Succeeds once per registry lifetime.

        Raises:
            RegistryError: ALREADY_CONFIGURED if an authority exists,
                INVALID_FIELD(authority) for the burn or empty principal.
        """
        ensure_valid_authority(principal)
        self._state.set_authority(principal)
        return principal

    def set_registration_fee(self, new_fee: int) -> int:
        """Change the registration fee. No upper bound is enforced.

        Raises:
            RegistryError: AUTHORITY_NOT_CONFIGURED before setup,
                INVALID_FIELD(registration_fee) if not a non-negative int.
        """
        if isinstance(new_fee, bool) or not isinstance(new_fee, int) or new_fee < 0:
            raise RegistryError.invalid_field(
                "registration_fee",
                f"Registration fee must be a non-negative integer, got {new_fee!r}",
            )
        if self._state.authority is None:
            raise RegistryError(
                RegistryErrorKind.AUTHORITY_NOT_CONFIGURED,
                "Cannot set registration fee before an authority is configured",
                code=ERR_AUTHORITY_NOT_VERIFIED,
            )
        self._state.registration_fee = new_fee
        return new_fee

    # ------------------------------------------------------------------
    # Registration and amendment
    # ------------------------------------------------------------------

    def register_product(
        self,
        caller: Identity,
        product_id: Any,
        metadata_hash: Any,
        description: Any,
        origin: Any,
        category: Any,
        height: Optional[int] = None,
    ) -> int:
        """Register a new product owned by the caller.

        Args:
            caller: Acting identity; becomes the record's producer.
            product_id: Business key, unique for the registry lifetime.
            metadata_hash: Hash of off-registry metadata.
            description: Human-readable description.
            origin: Place of origin.
            category: A ProductCategory or its string value.
            height: Logical height for the timestamp (default: clock).

        Returns:
            The sequential numeric id assigned to the product.

        Raises:
            RegistryError: on the first failing check, in the order given
                in the module docstring.
        """
        state = self._state
        timestamp = self._height(height)
        if state.at_capacity:
            raise RegistryError(
                RegistryErrorKind.CAPACITY_EXCEEDED,
                f"Registry is at capacity ({state.max_products} products)",
                code=ERR_MAX_PRODUCTS_EXCEEDED,
            )

        parsed_category = validate_registration(
            product_id, metadata_hash, description, origin, category,
        )

        ensure_producer(self._directory, caller)
        authority = ensure_authority_configured(state.authority)

        if state.contains(product_id):
            raise RegistryError(
                RegistryErrorKind.ALREADY_EXISTS,
                f"Product already registered: {product_id}",
                code=ERR_PRODUCT_ALREADY_EXISTS,
            )

        # Fee transfer is requested before any write; a refusal leaves
        # the registry untouched.
        try:
            self._transfer.transfer(
                state.registration_fee, caller, authority, timestamp,
            )
        except TransferError as e:
            raise RegistryError(
                RegistryErrorKind.TRANSFER_FAILED,
                f"Registration fee transfer failed: {e}",
                code=ERR_TRANSFER_FAILED,
            ) from e

        record = ProductRecord(
            product_id=product_id,
            producer=caller,
            metadata_hash=metadata_hash,
            description=description,
            origin=origin,
            category=parsed_category,
            timestamp=timestamp,
            status=True,
        )
        return state.insert(record)

    def update_product(
        self,
        caller: Identity,
        numeric_id: int,
        new_metadata_hash: Any,
        new_description: Any,
        new_origin: Any,
        height: Optional[int] = None,
    ) -> ProductRecord:
        """Amend the mutable fields of a product owned by the caller.

        Returns:
            The updated record.

        Raises:
            RegistryError: NOT_FOUND, NOT_AUTHORIZED (caller is not the
                producer), or INVALID_FIELD for hash/description/origin
                or for a height below the last write.
        """
        record = self._require(numeric_id)
        ensure_owner(record, caller)
        validate_amendment(new_metadata_hash, new_description, new_origin)

        timestamp = self._height(height)
        updated = dataclasses.replace(
            record,
            metadata_hash=new_metadata_hash,
            description=new_description,
            origin=new_origin,
            timestamp=timestamp,
        )
        update = ProductUpdate(
            metadata_hash=new_metadata_hash,
            description=new_description,
            origin=new_origin,
            timestamp=timestamp,
            updater=caller,
        )
        self._state.replace(numeric_id, updated, update)
        return updated

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_product(self, numeric_id: int) -> Optional[ProductRecord]:
        """Retrieve a product by numeric id. No authorization check."""
        return self._state.get(numeric_id)

    def get_product_update(self, numeric_id: int) -> Optional[ProductUpdate]:
        """Retrieve the latest amendment of a product, if any."""
        return self._state.get_update(numeric_id)

    def verify_product(self, numeric_id: int) -> bool:
        """Return a product's status flag.

        Raises:
            RegistryError: NOT_FOUND for an unknown id.
        """
        return self._require(numeric_id).status

    def get_product_count(self) -> int:
        """Total products ever registered (nothing is ever deleted)."""
        return self._state.next_product_id

    def check_product_existence(self, product_id: str) -> bool:
        """Membership test against the uniqueness index. Never raises."""
        return self._state.contains(product_id)

    def get_product_id(self, product_id: str) -> Optional[int]:
        """Resolve a business key to its numeric id."""
        return self._state.resolve(product_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, numeric_id: int) -> ProductRecord:
        record = self._state.get(numeric_id)
        if record is None:
            raise RegistryError(
                RegistryErrorKind.NOT_FOUND,
                f"Product not found: {numeric_id}",
                code=ERR_PRODUCT_NOT_FOUND,
            )
        return record

    def _height(self, height: Optional[int]) -> int:
        """Resolve the write height; it may never fall below the last write."""
        if height is None:
            height = self._clock.current_height()
        if height < 0:
            raise RegistryError.invalid_field(
                "height", f"Height must be >= 0, got {height}"
            )
        if height < self._state.last_height:
            raise RegistryError.invalid_field(
                "height",
                f"Height is non-decreasing: {height} < {self._state.last_height}",
            )
        return height
