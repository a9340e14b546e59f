"""Authorization gate: who may register, update, and administer.

Two independent facts gate registration:
    (a) the caller is listed by the ProducerDirectory, and
    (b) an authority has been configured for the registry.

Update authorization is ownership-based, not role-based: only the
producer recorded on a product may amend it. Being an authorized
producer grants no rights over another producer's records.

The producer directory is an external collaborator. The registry only
consumes a yes/no capability check through the ProducerDirectory
Protocol; StaticProducerDirectory is a whitelist implementation for
hosting processes that manage the list themselves.
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol, runtime_checkable

from provenance.models.product import Identity, ProductRecord
from provenance.registry.errors import (
    ERR_AUTHORITY_NOT_VERIFIED,
    ERR_INVALID_PRODUCER,
    ERR_NOT_AUTHORIZED,
    RegistryError,
    RegistryErrorKind,
)


# Null principal that can never hold the authority role.
BURN_ADDRESS: Identity = "SP000000000000000000002Q6VF78"


@runtime_checkable
class ProducerDirectory(Protocol):
    """Membership query for identities permitted to register products."""

    def is_authorized_producer(self, identity: Identity) -> bool:
        ...


class StaticProducerDirectory:
    """Whitelist-backed producer directory.

    Usage:
        directory = StaticProducerDirectory(["ST1PRODUCER"])
        directory.add("ST2PRODUCER")
        directory.is_authorized_producer("ST2PRODUCER")  # True
    """

    def __init__(self, producers: Iterable[Identity] = ()) -> None:
        self._producers: set[Identity] = set()
        for producer in producers:
            self.add(producer)

    def add(self, identity: Identity) -> None:
        identity = identity.strip()
        if not identity:
            raise ValueError("Producer identity cannot be empty")
        self._producers.add(identity)

    def remove(self, identity: Identity) -> None:
        self._producers.discard(identity)

    def is_authorized_producer(self, identity: Identity) -> bool:
        return identity in self._producers

    def producers(self) -> list[Identity]:
        return sorted(self._producers)

    def __len__(self) -> int:
        return len(self._producers)


def ensure_valid_authority(principal: Identity) -> None:
    """Reject principals that can never act as the registry authority."""
    if not isinstance(principal, str) or not principal.strip():
        raise RegistryError.invalid_field(
            "authority", "Authority principal cannot be empty"
        )
    if principal == BURN_ADDRESS:
        raise RegistryError.invalid_field(
            "authority", "Authority cannot be the burn address"
        )


def ensure_producer(directory: ProducerDirectory, caller: Identity) -> None:
    if not directory.is_authorized_producer(caller):
        raise RegistryError(
            RegistryErrorKind.NOT_AUTHORIZED,
            f"{caller} is not an authorized producer",
            code=ERR_INVALID_PRODUCER,
        )


def ensure_authority_configured(authority: Optional[Identity]) -> Identity:
    if authority is None:
        raise RegistryError(
            RegistryErrorKind.AUTHORITY_NOT_CONFIGURED,
            "No registry authority has been configured",
            code=ERR_AUTHORITY_NOT_VERIFIED,
        )
    return authority


def ensure_owner(record: ProductRecord, caller: Identity) -> None:
    if record.producer != caller:
        raise RegistryError(
            RegistryErrorKind.NOT_AUTHORIZED,
            f"{caller} is not the producer of {record.product_id}",
            code=ERR_NOT_AUTHORIZED,
        )
