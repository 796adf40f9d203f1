"""Hareket defteri unit testleri."""

from datetime import datetime, timedelta

import pytest

from slotting.cache import CollectionCache
from slotting.exceptions import StoreUnavailableError, ValidationError
from slotting.models.warehouse import MovementType
from slotting.services.movements import MovementLedger
from slotting.store.memory import InMemoryDocumentStore


class _StepClock:
    """Her çağrıda bir dakika ilerleyen saat."""

    def __init__(self, start=datetime(2024, 6, 15, 8, 0)):
        self.now = start

    def __call__(self):
        self.now += timedelta(minutes=1)
        return self.now


class _BrokenStore(InMemoryDocumentStore):
    def query(self, collection, predicate=None):
        raise StoreUnavailableError("bağlantı yok")


def _create_ledger(store=None):
    store = store or InMemoryDocumentStore()
    return MovementLedger(store, CollectionCache(), clock=_StepClock()), store


class TestRecordMovement:
    """Yalnızca ekleme yapılan defter."""

    def test_record_sets_timestamp_and_id(self):
        ledger, store = _create_ledger()
        movement = ledger.record_movement("RAW-1", MovementType.IN, weight=800, reference="IC-1")
        assert movement.id
        assert movement.timestamp == "2024-06-15T08:01:00"
        doc = store.get("movements", movement.id)
        assert doc["type"] == "IN"
        assert "quantity" not in doc

    def test_quantity_movement(self):
        ledger, store = _create_ledger()
        movement = ledger.record_movement("PAL", "OUT", quantity=5, reference="PO-1")
        assert movement.type == MovementType.OUT
        assert store.get("movements", movement.id)["quantity"] == 5

    @pytest.mark.parametrize("kwargs", [
        {"item_id": " "},
        {"weight": -1},
        {"quantity": 0},
    ])
    def test_invalid_input(self, kwargs):
        ledger, store = _create_ledger()
        values = {"item_id": "RAW-1", "movement_type": MovementType.IN}
        values.update(kwargs)
        with pytest.raises(ValidationError):
            ledger.record_movement(**values)
        assert store.query("movements") == []

    def test_no_update_or_delete_api(self):
        ledger, _ = _create_ledger()
        assert not hasattr(ledger, "update_movement")
        assert not hasattr(ledger, "delete_movement")


class TestMovementReads:
    """Sıralama, limit ve tarih filtresi."""

    def test_recent_newest_first_with_limit(self):
        ledger, _ = _create_ledger()
        for i in range(25):
            ledger.record_movement(f"RAW-{i}", MovementType.IN)
        recent = ledger.get_recent_movements()
        assert len(recent) == 20
        assert recent[0].item_id == "RAW-24"
        assert recent[0].timestamp > recent[-1].timestamp

    def test_all_movements(self):
        ledger, _ = _create_ledger()
        ledger.record_movement("RAW-1", MovementType.IN)
        ledger.record_movement("RAW-1", MovementType.OUT)
        assert [m.type for m in ledger.get_all_movements()] == [MovementType.OUT, MovementType.IN]

    def test_movements_since(self):
        ledger, _ = _create_ledger()
        ledger.record_movement("RAW-1", MovementType.IN)
        ledger.record_movement("RAW-2", MovementType.IN)
        since = datetime(2024, 6, 15, 8, 2)
        assert [m.item_id for m in ledger.get_movements_since(since)] == ["RAW-2"]

    def test_new_movement_visible_after_cache(self):
        ledger, _ = _create_ledger()
        ledger.record_movement("RAW-1", MovementType.IN)
        assert len(ledger.get_recent_movements()) == 1
        ledger.record_movement("RAW-2", MovementType.IN)
        assert len(ledger.get_recent_movements()) == 2

    def test_reads_degrade(self):
        ledger, _ = _create_ledger(_BrokenStore())
        assert ledger.get_recent_movements() == []
        assert ledger.get_all_movements() == []
