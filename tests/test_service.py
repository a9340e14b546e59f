"""Tests for ProvenanceService: proves the facade returns typed results.

Covers:
- Every operation returns a RegistryResult; no domain failure raises.
- Successful mutations are audited in the event log.
- Rejected operations produce no events and no state change.
- State is persisted and reloaded through StateStore.
- Persistence failures degrade to warnings after commit.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from provenance.config import RegistrySettings
from provenance.environment.clock import ManualClock
from provenance.environment.transfer import TransferLedger, TransferRecord
from provenance.persistence.event_log import EventKind, EventLog
from provenance.persistence.state_store import StateStore
from provenance.registry.authorization import StaticProducerDirectory
from provenance.registry.errors import ERR_INVALID_HEIGHT, RegistryErrorKind
from provenance.service import ProvenanceService, RegistryResult


PRODUCER = "ST1PRODUCER"
AUTHORITY = "ST2AUTHORITY"
HASH_1 = "hash1234567890abcdef1234567890abcdef1234567890abcdef1234567890ab"
HASH_2 = "hashabcdef1234567890abcdef1234567890abcdef1234567890abcdef1234"


@pytest.fixture
def event_log() -> EventLog:
    return EventLog()


@pytest.fixture
def ledger() -> TransferLedger:
    return TransferLedger()


@pytest.fixture
def service(event_log: EventLog, ledger: TransferLedger) -> ProvenanceService:
    return ProvenanceService(
        StaticProducerDirectory([PRODUCER]),
        transfer=ledger,
        clock=ManualClock(),
        event_log=event_log,
    )


def _register(service: ProvenanceService, product_id: str = "PROD001",
              caller: str = PRODUCER, category: str = "food") -> RegistryResult:
    return service.register_product(
        caller, product_id, HASH_1, "Organic Coffee Beans", "Ethiopia", category,
    )


class _FailingStore(StateStore):
    def save(self, state, directory=None) -> None:
        raise OSError("disk full")


class TestAdministration:
    def test_configure_authority(self, service: ProvenanceService) -> None:
        result = service.configure_authority(AUTHORITY)
        assert result.success
        assert result.value == AUTHORITY
        second = service.configure_authority("ST3OTHER")
        assert not second.success
        assert second.kind == RegistryErrorKind.ALREADY_CONFIGURED
        assert second.code == 106

    def test_set_fee_before_authority_fails(self, service: ProvenanceService) -> None:
        result = service.set_registration_fee(1000)
        assert not result.success
        assert result.kind == RegistryErrorKind.AUTHORITY_NOT_CONFIGURED

    def test_set_fee_audited(
        self, service: ProvenanceService, event_log: EventLog,
    ) -> None:
        service.configure_authority(AUTHORITY)
        result = service.set_registration_fee(1000)
        assert result.success and result.value == 1000
        fee_events = event_log.events(EventKind.FEE_UPDATED)
        assert len(fee_events) == 1
        assert fee_events[0].payload == {"previous_fee": 500, "new_fee": 1000}
        assert fee_events[0].actor_id == AUTHORITY

    def test_authorize_producer(self, service: ProvenanceService) -> None:
        service.configure_authority(AUTHORITY)
        assert not _register(service, caller="ST4PRODUCER").success
        assert service.authorize_producer("ST4PRODUCER").success
        assert _register(service, caller="ST4PRODUCER").success

    def test_authorize_empty_producer_fails(self, service: ProvenanceService) -> None:
        result = service.authorize_producer(" ")
        assert not result.success
        assert result.kind == RegistryErrorKind.INVALID_FIELD

    def test_authorize_with_external_directory_fails(self) -> None:
        class _Directory:
            def is_authorized_producer(self, identity: str) -> bool:
                return identity == PRODUCER

        service = ProvenanceService(_Directory())
        result = service.authorize_producer("ST4PRODUCER")
        assert not result.success
        assert result.kind == RegistryErrorKind.NOT_AUTHORIZED
        assert result.code == 108


class TestRegistration:
    def test_register_returns_id(
        self, service: ProvenanceService, event_log: EventLog, ledger: TransferLedger,
    ) -> None:
        service.configure_authority(AUTHORITY)
        result = _register(service)
        assert result.success
        assert result.value == 0
        assert result.error is None
        assert result.warnings == []
        assert ledger.transfers() == [TransferRecord(500, PRODUCER, AUTHORITY, 0)]
        registered = event_log.events(EventKind.PRODUCT_REGISTERED)
        assert registered[0].payload["product"]["product_id"] == "PROD001"
        transferred = event_log.events(EventKind.FEE_TRANSFERRED)
        assert transferred[0].payload == {
            "amount": 500, "sender": PRODUCER, "recipient": AUTHORITY,
            "numeric_id": 0, "height": 0,
        }

    def test_rejections_are_results(
        self, service: ProvenanceService, event_log: EventLog,
    ) -> None:
        result = _register(service)
        assert not result.success
        assert result.kind == RegistryErrorKind.AUTHORITY_NOT_CONFIGURED
        service.configure_authority(AUTHORITY)
        events_before = event_log.count

        invalid = _register(service, category="invalid")
        assert invalid.kind == RegistryErrorKind.INVALID_FIELD
        assert invalid.error.field == "category"
        assert invalid.code == 112

        _register(service)
        events_after_first = event_log.count
        dup = _register(service)
        assert dup.kind == RegistryErrorKind.ALREADY_EXISTS
        assert event_log.count == events_after_first
        assert events_after_first == events_before + 2

    def test_non_producer_result(self, service: ProvenanceService) -> None:
        service.configure_authority(AUTHORITY)
        result = _register(service, caller="ST2FAKE")
        assert result.kind == RegistryErrorKind.NOT_AUTHORIZED
        assert result.code == 108

    def test_negative_height_is_result(
        self, service: ProvenanceService, event_log: EventLog,
    ) -> None:
        service.configure_authority(AUTHORITY)
        result = service.register_product(
            "X", "P1", "h" * 64, "d", "o", "food", height=-1,
        )
        assert not result.success
        assert result.kind == RegistryErrorKind.INVALID_FIELD
        assert result.error.field == "height"
        assert result.code == ERR_INVALID_HEIGHT
        assert event_log.events(EventKind.PRODUCT_REGISTERED) == []

    def test_backwards_height_is_result(self, service: ProvenanceService) -> None:
        service.configure_authority(AUTHORITY)
        service.register_product(
            PRODUCER, "PROD001", HASH_1, "d", "o", "food", height=10,
        )
        result = service.update_product(PRODUCER, 0, HASH_2, "d", "o", height=3)
        assert result.kind == RegistryErrorKind.INVALID_FIELD
        assert result.code == ERR_INVALID_HEIGHT
        assert service.get_product(0).timestamp == 10


class TestUpdate:
    def test_update_success(
        self, service: ProvenanceService, event_log: EventLog,
    ) -> None:
        service.configure_authority(AUTHORITY)
        _register(service)
        result = service.update_product(PRODUCER, 0, HASH_2, "Dark Roast Coffee", "Colombia")
        assert result.success
        assert result.value is True
        assert service.get_product(0).description == "Dark Roast Coffee"
        assert service.get_product_update(0).updater == PRODUCER
        assert len(event_log.events(EventKind.PRODUCT_UPDATED)) == 1

    def test_update_unknown(self, service: ProvenanceService) -> None:
        result = service.update_product(PRODUCER, 99, HASH_2, "d", "o")
        assert not result.success
        assert result.kind == RegistryErrorKind.NOT_FOUND

    def test_update_by_other_identity(self, service: ProvenanceService) -> None:
        service.configure_authority(AUTHORITY)
        _register(service)
        before = service.get_product(0)
        result = service.update_product("ST3FAKE", 0, HASH_2, "d", "o")
        assert result.kind == RegistryErrorKind.NOT_AUTHORIZED
        assert result.code == 100
        assert service.get_product(0) == before


class TestQueries:
    def test_verify(self, service: ProvenanceService) -> None:
        service.configure_authority(AUTHORITY)
        _register(service)
        assert service.verify_product(0) == RegistryResult.ok(True)
        missing = service.verify_product(99)
        assert not missing.success
        assert missing.kind == RegistryErrorKind.NOT_FOUND

    def test_count(self, service: ProvenanceService) -> None:
        service.configure_authority(AUTHORITY)
        _register(service, "PROD001")
        _register(service, "PROD002")
        result = service.get_product_count()
        assert result.success and result.value == 2

    def test_existence_never_fails(self, service: ProvenanceService) -> None:
        result = service.check_product_existence("unknown")
        assert result.success
        assert result.value is False

    def test_existence_true(self, service: ProvenanceService) -> None:
        service.configure_authority(AUTHORITY)
        _register(service)
        assert service.check_product_existence("PROD001").value is True
        assert service.get_product_id("PROD001") == 0

    def test_status(self, service: ProvenanceService) -> None:
        service.configure_authority(AUTHORITY)
        _register(service)
        status = service.status()
        assert status["product_count"] == 1
        assert status["remaining_capacity"] == 9999
        assert status["authority"] == AUTHORITY
        assert status["fees_collected"] == 500
        assert status["authorized_producers"] == 1
        assert status["persistence_degraded"] is False
        assert service.check_invariants() == []


class TestPersistence:
    def test_state_survives_restart(self, tmp_path: Path) -> None:
        settings = RegistrySettings(
            producers=(PRODUCER,), data_dir=tmp_path, registration_fee=7,
        )
        first = ProvenanceService.from_settings(settings)
        first.configure_authority(AUTHORITY)
        _register(first, "PROD001")
        first.update_product(PRODUCER, 0, HASH_2, "Dark Roast Coffee", "Colombia")

        second = ProvenanceService.from_settings(settings)
        assert second.state.authority == AUTHORITY
        assert second.get_product(0).description == "Dark Roast Coffee"
        assert second.get_product_update(0).origin == "Colombia"
        assert second.state.registration_fee == 7
        assert second.configure_authority("ST3OTHER").kind == RegistryErrorKind.ALREADY_CONFIGURED
        result = _register(second, "PROD002")
        assert result.value == 1
        # Event ids continue from the persisted log
        third = ProvenanceService.from_settings(settings)
        assert third.status()["event_count"] == 6
        assert third.status()["fees_collected"] == 14
        assert third.status()["last_event_id"] == "EVT-00000006"

    def test_persistence_failure_is_warning(self) -> None:
        service = ProvenanceService(
            StaticProducerDirectory([PRODUCER]),
            state_store=_FailingStore(Path("/nonexistent/state.json")),
        )
        result = service.configure_authority(AUTHORITY)
        assert result.success
        assert any("Persistence degraded" in w for w in result.warnings)
        assert service.persistence_degraded
        assert service.state.authority == AUTHORITY
