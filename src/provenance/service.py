"""Provenance service: typed-result facade over the registry engine.

This is the primary interface for programmatic access to the registry.
It wires the engine to its collaborators and to persistence:
- Registry engine (validation, authorization, state transitions)
- Producer directory, value transfer and logical clock collaborators
- Audit event log (one event per successful mutation)
- State store (snapshot written after each successful mutation)

Every operation returns a RegistryResult. Domain failures never escape as
exceptions: the engine's RegistryError is caught at this boundary and
returned as a failed result carrying the error.

Audit and persistence happen after the engine has committed a mutation.
If either fails at that point the in-memory registry stays correct, the
result is still a success, and a warning is attached to it while
persistence_degraded is set for operator attention.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from provenance.config import RegistrySettings
from provenance.environment.clock import LogicalClock, ManualClock
from provenance.environment.transfer import TransferLedger, ValueTransfer
from provenance.models.product import Identity, ProductRecord, ProductUpdate
from provenance.persistence.event_log import EventKind, EventLog, EventRecord
from provenance.persistence.state_store import StateStore
from provenance.registry.authorization import (
    ProducerDirectory,
    StaticProducerDirectory,
)
from provenance.registry.engine import ProductRegistryEngine
from provenance.registry.errors import (
    ERR_INVALID_PRODUCER,
    RegistryError,
    RegistryErrorKind,
)
from provenance.registry.invariants import check_state_invariants
from provenance.registry.state import RegistryState


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryResult:
    """Result of a registry operation: a value on success, an error otherwise."""
    success: bool
    value: Any = None
    error: Optional[RegistryError] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def kind(self) -> Optional[RegistryErrorKind]:
        return self.error.kind if self.error is not None else None

    @property
    def code(self) -> Optional[int]:
        return self.error.code if self.error is not None else None

    @classmethod
    def ok(cls, value: Any = None, warnings: Optional[list[str]] = None) -> RegistryResult:
        return cls(success=True, value=value, warnings=list(warnings or []))

    @classmethod
    def fail(cls, error: RegistryError) -> RegistryResult:
        return cls(success=False, error=error)


class ProvenanceService:
    """Registry facade.

    Usage:
        directory = StaticProducerDirectory(["ST1PRODUCER"])
        service = ProvenanceService(directory)

        service.configure_authority("ST2AUTHORITY")
        result = service.register_product(
            "ST1PRODUCER", "PROD001", "hash...", "Organic Coffee Beans",
            "Ethiopia", "food",
        )
        result.value  # 0

    Persistence (optional):
        service = ProvenanceService(directory, event_log=log, state_store=store)
        # State is loaded from the store on construction and saved after
        # each successful mutation.
    """

    def __init__(
        self,
        directory: ProducerDirectory,
        transfer: Optional[ValueTransfer] = None,
        clock: Optional[LogicalClock] = None,
        state: Optional[RegistryState] = None,
        event_log: Optional[EventLog] = None,
        state_store: Optional[StateStore] = None,
    ) -> None:
        if state is None:
            state = state_store.load_state() if state_store is not None else RegistryState()
        self._directory = directory
        self._transfer = transfer if transfer is not None else TransferLedger()
        self._clock = (
            clock if clock is not None else ManualClock(state.last_height)
        )
        self._engine = ProductRegistryEngine(
            state, directory, self._transfer, self._clock,
        )
        self._event_log = event_log
        self._state_store = state_store
        # Initialise counter from persisted log to avoid ID collision on restart
        self._event_counter = event_log.count if event_log is not None else 0
        self._persistence_degraded = False

    @classmethod
    def from_settings(
        cls,
        settings: RegistrySettings,
        clock: Optional[LogicalClock] = None,
        transfer: Optional[ValueTransfer] = None,
    ) -> ProvenanceService:
        """Create a service with durable persistence under settings.data_dir."""
        data_dir = settings.data_dir
        data_dir.mkdir(parents=True, exist_ok=True)
        store = StateStore(storage_path=data_dir / "state.json")
        state = store.load_state(
            max_products=settings.max_products,
            registration_fee=settings.registration_fee,
        )
        directory = store.load_producers(seed=list(settings.producers))
        return cls(
            directory,
            transfer=transfer,
            clock=clock,
            state=state,
            event_log=EventLog(storage_path=data_dir / "events.jsonl"),
            state_store=store,
        )

    @property
    def engine(self) -> ProductRegistryEngine:
        return self._engine

    @property
    def state(self) -> RegistryState:
        return self._engine.state

    @property
    def directory(self) -> ProducerDirectory:
        return self._directory

    @property
    def transfer(self) -> ValueTransfer:
        return self._transfer

    @property
    def persistence_degraded(self) -> bool:
        return self._persistence_degraded

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def configure_authority(self, principal: Identity) -> RegistryResult:
        """Set the registry authority (once per registry lifetime)."""
        return self._mutate(
            "configure_authority",
            lambda: self._engine.configure_authority(principal),
            EventKind.AUTHORITY_CONFIGURED,
            actor_id=principal if isinstance(principal, str) else "system",
            payload=lambda authority: {"authority": authority},
        )

    def set_registration_fee(self, new_fee: int) -> RegistryResult:
        """Change the registration fee (requires a configured authority)."""
        previous = self.state.registration_fee
        return self._mutate(
            "set_registration_fee",
            lambda: self._engine.set_registration_fee(new_fee),
            EventKind.FEE_UPDATED,
            actor_id=self.state.authority or "system",
            payload=lambda fee: {"previous_fee": previous, "new_fee": fee},
        )

    def authorize_producer(self, identity: Identity) -> RegistryResult:
        """Add an identity to a whitelist-backed producer directory."""
        if not isinstance(self._directory, StaticProducerDirectory):
            return RegistryResult.fail(
                RegistryError(
                    RegistryErrorKind.NOT_AUTHORIZED,
                    "Producer directory is managed externally: "
                    f"{type(self._directory).__name__}",
                    code=ERR_INVALID_PRODUCER,
                    field="producer",
                )
            )
        try:
            self._directory.add(identity)
        except ValueError as e:
            return RegistryResult.fail(
                RegistryError(
                    RegistryErrorKind.INVALID_FIELD,
                    str(e),
                    code=ERR_INVALID_PRODUCER,
                    field="producer",
                )
            )
        warnings = self._after_commit(
            EventKind.PRODUCER_AUTHORIZED,
            actor_id=identity.strip(),
            payload={"producer": identity.strip()},
        )
        logger.info("Authorized producer %s", identity.strip())
        return RegistryResult.ok(identity.strip(), warnings)

    # ------------------------------------------------------------------
    # Registration and amendment
    # ------------------------------------------------------------------

    def register_product(
        self,
        caller: Identity,
        product_id: str,
        metadata_hash: str,
        description: str,
        origin: str,
        category: Any,
        height: Optional[int] = None,
    ) -> RegistryResult:
        """Register a product; the result value is its numeric id."""
        fee = self.state.registration_fee
        authority = self.state.authority

        def _payload(numeric_id: int) -> dict[str, Any]:
            record = self._engine.get_product(numeric_id)
            return {
                "numeric_id": numeric_id,
                "product": record.to_dict() if record is not None else None,
            }

        result = self._mutate(
            "register_product",
            lambda: self._engine.register_product(
                caller, product_id, metadata_hash, description, origin,
                category, height=height,
            ),
            EventKind.PRODUCT_REGISTERED,
            actor_id=caller,
            payload=_payload,
        )
        if result.success:
            warnings = self._after_commit(
                EventKind.FEE_TRANSFERRED,
                actor_id=caller,
                payload={
                    "amount": fee,
                    "sender": caller,
                    "recipient": authority,
                    "numeric_id": result.value,
                    "height": self._engine.get_product(result.value).timestamp,
                },
                persist=False,
            )
            if warnings:
                result = RegistryResult.ok(result.value, result.warnings + warnings)
        return result

    def update_product(
        self,
        caller: Identity,
        numeric_id: int,
        new_metadata_hash: str,
        new_description: str,
        new_origin: str,
        height: Optional[int] = None,
    ) -> RegistryResult:
        """Amend a product's mutable fields; the result value is True."""
        result = self._mutate(
            "update_product",
            lambda: self._engine.update_product(
                caller, numeric_id, new_metadata_hash, new_description,
                new_origin, height=height,
            ),
            EventKind.PRODUCT_UPDATED,
            actor_id=caller,
            payload=lambda record: {
                "numeric_id": numeric_id,
                "product": record.to_dict(),
            },
        )
        if result.success:
            return RegistryResult.ok(True, result.warnings)
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_product(self, numeric_id: int) -> Optional[ProductRecord]:
        """Look up a product by numeric id."""
        return self._engine.get_product(numeric_id)

    def get_product_update(self, numeric_id: int) -> Optional[ProductUpdate]:
        """Look up the latest amendment of a product."""
        return self._engine.get_product_update(numeric_id)

    def get_product_id(self, product_id: str) -> Optional[int]:
        """Resolve a business key to its numeric id."""
        return self._engine.get_product_id(product_id)

    def verify_product(self, numeric_id: int) -> RegistryResult:
        """Return the product's status flag, or NOT_FOUND."""
        try:
            return RegistryResult.ok(self._engine.verify_product(numeric_id))
        except RegistryError as e:
            return RegistryResult.fail(e)

    def get_product_count(self) -> RegistryResult:
        return RegistryResult.ok(self._engine.get_product_count())

    def check_product_existence(self, product_id: str) -> RegistryResult:
        """Membership test; always succeeds (absence is a False value)."""
        return RegistryResult.ok(self._engine.check_product_existence(product_id))

    def check_invariants(self) -> list[str]:
        return check_state_invariants(self.state)

    def status(self) -> dict[str, Any]:
        """Summary of registry configuration and health."""
        state = self.state
        data: dict[str, Any] = {
            "product_count": state.next_product_id,
            "max_products": state.max_products,
            "remaining_capacity": max(state.max_products - state.next_product_id, 0),
            "registration_fee": state.registration_fee,
            "authority": state.authority,
            "last_height": state.last_height,
            "amended_products": len(state.updates()),
            "event_count": self._event_log.count if self._event_log is not None else 0,
            "persistence_degraded": self._persistence_degraded,
        }
        if self._event_log is not None and self._event_log.last_event is not None:
            data["last_event_id"] = self._event_log.last_event.event_id
        fees = self._fees_collected()
        if fees is not None:
            data["fees_collected"] = fees
        if isinstance(self._directory, StaticProducerDirectory):
            data["authorized_producers"] = len(self._directory)
        return data

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fees_collected(self) -> Optional[int]:
        """Total registration fees, from the durable audit trail if there is one."""
        if self._event_log is not None:
            return sum(
                e.payload["amount"]
                for e in self._event_log.events(EventKind.FEE_TRANSFERRED)
            )
        if isinstance(self._transfer, TransferLedger):
            return self._transfer.total_collected()
        return None

    def _mutate(
        self,
        operation: str,
        apply: Callable[[], Any],
        event_kind: EventKind,
        actor_id: str,
        payload: Callable[[Any], dict[str, Any]],
    ) -> RegistryResult:
        """Run an engine mutation, then audit and persist on success."""
        try:
            value = apply()
        except RegistryError as e:
            logger.warning(
                "%s rejected (%s, code %d): %s",
                operation, e.kind.value, e.code, e,
            )
            return RegistryResult.fail(e)

        logger.info("%s committed by %s: %r", operation, actor_id, value)
        warnings = self._after_commit(event_kind, actor_id, payload(value))
        return RegistryResult.ok(value, warnings)

    def _after_commit(
        self,
        event_kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        persist: bool = True,
    ) -> list[str]:
        warnings: list[str] = []
        err = self._record_event(event_kind, actor_id, payload)
        if err:
            warnings.append(err)
        if persist:
            err = self._safe_persist_post_audit()
            if err:
                warnings.append(err)
        return warnings

    def _next_event_id(self) -> str:
        """Generate a monotonically increasing unique event ID."""
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _record_event(
        self,
        event_kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
    ) -> Optional[str]:
        """Append an audit event. Returns a warning string or None."""
        if self._event_log is None:
            return None
        try:
            event = EventRecord.create(
                event_id=self._next_event_id(),
                event_kind=event_kind,
                actor_id=actor_id,
                payload=payload,
            )
            self._event_log.append(event)
        except (ValueError, OSError) as e:
            self._persistence_degraded = True
            logger.error("Audit event %s not recorded: %s", event_kind.value, e)
            return f"Event log failure: {e}"
        return None

    def _safe_persist_post_audit(self) -> Optional[str]:
        """Persist state after a mutation has been committed.

        MUST NOT roll back in-memory state. On failure the snapshot is
        stale; the flag is set and a warning returned.
        """
        if self._state_store is None:
            return None
        directory = (
            self._directory
            if isinstance(self._directory, StaticProducerDirectory)
            else None
        )
        try:
            self._state_store.save(self.state, directory)
            return None
        except OSError as e:
            self._persistence_degraded = True
            logger.error("Registry snapshot not saved: %s", e)
            return f"Persistence degraded: {e}; state committed in memory but snapshot is stale"
