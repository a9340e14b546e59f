"""Tests for persistence: audit event log and registry snapshots.

Proves:
- Events are append-only, hashed, and replay-protected.
- A tampered JSONL log is rejected on load.
- Registry snapshots round-trip through StateStore.
- A corrupt snapshot is refused rather than silently repaired.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from provenance.models.product import ProductCategory, ProductRecord
from provenance.persistence.event_log import EventKind, EventLog, EventRecord
from provenance.persistence.state_store import StateStore
from provenance.registry.authorization import StaticProducerDirectory
from provenance.registry.state import RegistryState


def _event(event_id: str = "EVT-00000001", kind: EventKind = EventKind.PRODUCT_REGISTERED) -> EventRecord:
    return EventRecord.create(
        event_id=event_id,
        event_kind=kind,
        actor_id="ST1PRODUCER",
        payload={"numeric_id": 0, "product_id": "PROD001"},
    )


class TestEventLog:
    def test_append_and_filter(self) -> None:
        log = EventLog()
        log.append(_event("EVT-1"))
        log.append(_event("EVT-2", EventKind.FEE_TRANSFERRED))
        assert log.count == 2
        assert [e.event_id for e in log.events(EventKind.FEE_TRANSFERRED)] == ["EVT-2"]
        assert log.last_event.event_id == "EVT-2"

    def test_hash_is_deterministic(self) -> None:
        ts = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
        a = EventRecord.create("EVT-1", EventKind.FEE_UPDATED, "ST2AUTHORITY", {"new_fee": 1}, ts)
        b = EventRecord.create("EVT-1", EventKind.FEE_UPDATED, "ST2AUTHORITY", {"new_fee": 1}, ts)
        c = EventRecord.create("EVT-1", EventKind.FEE_UPDATED, "ST2AUTHORITY", {"new_fee": 2}, ts)
        assert a.event_hash.startswith("sha256:")
        assert a.event_hash == b.event_hash
        assert a.event_hash != c.event_hash
        assert a.timestamp_utc == "2026-03-01T12:00:00Z"

    def test_duplicate_id_rejected(self) -> None:
        log = EventLog()
        log.append(_event("EVT-1"))
        with pytest.raises(ValueError, match="Duplicate"):
            log.append(_event("EVT-1"))
        assert log.count == 1

    def test_file_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        log = EventLog(storage_path=path)
        log.append(_event("EVT-1"))
        log.append(_event("EVT-2"))
        reloaded = EventLog(storage_path=path)
        assert reloaded.events() == log.events()
        assert reloaded.last_event.event_id == "EVT-2"

    def test_tampered_file_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        EventLog(storage_path=path).append(_event("EVT-1"))
        data = json.loads(path.read_text(encoding="utf-8"))
        data["payload"]["product_id"] = "FORGED"
        path.write_text(json.dumps(data) + "\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Integrity check failed"):
            EventLog(storage_path=path)

    def test_replayed_line_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        EventLog(storage_path=path).append(_event("EVT-1"))
        line = path.read_text(encoding="utf-8")
        path.write_text(line + line, encoding="utf-8")
        with pytest.raises(ValueError, match="Duplicate event ID on recovery"):
            EventLog(storage_path=path)


class TestStateStore:
    def _state(self) -> RegistryState:
        state = RegistryState(max_products=5, registration_fee=10)
        state.set_authority("ST2AUTHORITY")
        state.insert(ProductRecord(
            product_id="PROD001",
            producer="ST1PRODUCER",
            metadata_hash="h" * 64,
            description="Organic Coffee Beans",
            origin="Ethiopia",
            category=ProductCategory.FOOD,
            timestamp=2,
        ))
        return state

    def test_missing_snapshot_gives_fresh_state(self, tmp_path: Path) -> None:
        store = StateStore(tmp_path / "state.json")
        assert not store.exists()
        state = store.load_state(max_products=7, registration_fee=3)
        assert state.max_products == 7
        assert state.registration_fee == 3
        assert state.next_product_id == 0

    def test_round_trip(self, tmp_path: Path) -> None:
        store = StateStore(tmp_path / "nested" / "state.json")
        store.save(self._state(), StaticProducerDirectory(["ST1PRODUCER"]))
        loaded = store.load_state(max_products=9999, registration_fee=1)
        assert loaded.max_products == 5
        assert loaded.registration_fee == 10
        assert loaded.authority == "ST2AUTHORITY"
        assert loaded.get(0).origin == "Ethiopia"
        directory = store.load_producers(seed=["ST4PRODUCER"])
        assert directory.producers() == ["ST1PRODUCER", "ST4PRODUCER"]

    def test_no_temp_file_left_behind(self, tmp_path: Path) -> None:
        store = StateStore(tmp_path / "state.json")
        store.save(self._state())
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_corrupt_snapshot_refused(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        store = StateStore(path)
        store.save(self._state())
        data = json.loads(path.read_text(encoding="utf-8"))
        data["registry"]["index"] = {}
        path.write_text(json.dumps(data), encoding="utf-8")
        with pytest.raises(ValueError, match="Corrupt registry snapshot"):
            store.load_state()

    def test_unreadable_snapshot_refused(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError, match="Unreadable"):
            StateStore(path).load_state()

    def test_unknown_version_refused(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"version": 99}), encoding="utf-8")
        with pytest.raises(ValueError, match="Unsupported snapshot version"):
            StateStore(path).load_state()
