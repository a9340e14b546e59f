"""Registry core: validation, authorization, state, and the transition engine."""

from provenance.registry.authorization import (
    BURN_ADDRESS,
    ProducerDirectory,
    StaticProducerDirectory,
)
from provenance.registry.engine import ProductRegistryEngine
from provenance.registry.errors import RegistryError, RegistryErrorKind
from provenance.registry.invariants import check_state_invariants
from provenance.registry.state import RegistryState

__all__ = [
    "BURN_ADDRESS",
    "ProducerDirectory",
    "ProductRegistryEngine",
    "RegistryError",
    "RegistryErrorKind",
    "RegistryState",
    "StaticProducerDirectory",
    "check_state_invariants",
]
