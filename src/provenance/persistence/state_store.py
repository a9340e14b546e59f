"""JSON snapshot store for registry state and the producer whitelist.

The whole snapshot is rewritten on each save via a temporary file and an
atomic rename, so a crash mid-write leaves the previous snapshot intact.
Loading re-checks the registry invariants and refuses a corrupt snapshot.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from provenance.registry.authorization import StaticProducerDirectory
from provenance.registry.invariants import check_state_invariants
from provenance.registry.state import (
    DEFAULT_MAX_PRODUCTS,
    DEFAULT_REGISTRATION_FEE,
    RegistryState,
)


logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class StateStore:
    """File-backed registry snapshot.

    Usage:
        store = StateStore(storage_path=data_dir / "state.json")
        state = store.load_state(max_products=10000, registration_fee=500)
        ...
        store.save(state, directory)
    """

    def __init__(self, storage_path: Path) -> None:
        self._storage_path = storage_path

    @property
    def storage_path(self) -> Path:
        return self._storage_path

    def exists(self) -> bool:
        return self._storage_path.exists()

    def load_state(
        self,
        max_products: int = DEFAULT_MAX_PRODUCTS,
        registration_fee: int = DEFAULT_REGISTRATION_FEE,
    ) -> RegistryState:
        """Load registry state, or create fresh state if no snapshot exists.

        The defaults apply only to a fresh registry; a stored snapshot
        keeps its own capacity and fee.

        Raises:
            ValueError: if the snapshot is unreadable or violates invariants.
        """
        data = self._read()
        if data is None:
            return RegistryState(
                max_products=max_products,
                registration_fee=registration_fee,
            )
        state = RegistryState.from_records(data.get("registry", {}))
        violations = check_state_invariants(state)
        if violations:
            raise ValueError(
                f"Corrupt registry snapshot {self._storage_path}: "
                + "; ".join(violations)
            )
        return state

    def load_producers(
        self,
        seed: Optional[list[str]] = None,
    ) -> StaticProducerDirectory:
        """Load the producer whitelist, merged with any seeded identities."""
        data = self._read() or {}
        directory = StaticProducerDirectory(data.get("producers", []))
        for producer in seed or []:
            directory.add(producer)
        return directory

    def save(
        self,
        state: RegistryState,
        directory: Optional[StaticProducerDirectory] = None,
    ) -> None:
        """Write the snapshot atomically. Raises OSError on I/O failure."""
        snapshot: dict[str, Any] = {
            "version": SNAPSHOT_VERSION,
            "registry": state.to_records(),
            "producers": directory.producers() if directory is not None else [],
        }
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._storage_path.with_suffix(self._storage_path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(snapshot, f, indent=2, sort_keys=True)
        os.replace(tmp_path, self._storage_path)
        logger.debug("Saved registry snapshot to %s", self._storage_path)

    def _read(self) -> Optional[dict[str, Any]]:
        if not self._storage_path.exists():
            return None
        try:
            data = json.loads(self._storage_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(
                f"Unreadable registry snapshot {self._storage_path}: {e}"
            ) from e
        version = data.get("version")
        if version != SNAPSHOT_VERSION:
            raise ValueError(
                f"Unsupported snapshot version {version!r} in {self._storage_path}"
            )
        return data
