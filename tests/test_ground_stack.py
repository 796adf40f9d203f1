"""Zemin yığın yöneticisi unit testleri."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from slotting.cache import CollectionCache
from slotting.exceptions import CapacityError, LocationNotFoundError, ValidationError
from slotting.models.warehouse import RejectionReason
from slotting.services.ground_stack import GroundStackManager, apply_stack_add, apply_stack_remove
from slotting.store.memory import InMemoryDocumentStore


def _create_manager(stacked=None, level="0"):
    store = InMemoryDocumentStore()
    location_id = store.create("locations", {
        "code": f"A01-{level}-1", "row": "A", "bay": "01", "level": level, "location": "1",
        "maxWeight": None if level == "0" else 1500, "currentWeight": 0,
        "available": True, "verified": True, "stackedItems": list(stacked or []),
    })
    return GroundStackManager(store, CollectionCache()), store, location_id


class TestStackMutations:
    """Saf yığın dönüşümleri."""

    def test_add_appends_in_order(self):
        doc = apply_stack_add({"stackedItems": ["A"]}, "B")
        assert doc["stackedItems"] == ["A", "B"]
        assert doc["available"] is True

    def test_add_is_idempotent_for_same_item(self):
        doc = apply_stack_add({"stackedItems": ["A"]}, "A")
        assert doc["stackedItems"] == ["A"]

    def test_sixth_item_marks_unavailable(self):
        doc = apply_stack_add({"stackedItems": list("ABCDE")}, "F")
        assert len(doc["stackedItems"]) == 6
        assert doc["available"] is False

    def test_seventh_item_rejected(self):
        with pytest.raises(CapacityError) as exc:
            apply_stack_add({"code": "A01-0-1", "stackedItems": list("ABCDEF")}, "G")
        assert exc.value.reason == RejectionReason.STACK_FULL

    def test_remove_frees_location(self):
        doc = apply_stack_remove({"stackedItems": list("ABCDEF"), "available": False}, "C")
        assert doc["stackedItems"] == list("ABDEF")
        assert doc["available"] is True

    def test_remove_missing_item_is_noop(self):
        doc = apply_stack_remove({"stackedItems": ["A"]}, "Z")
        assert doc["stackedItems"] == ["A"]
        assert doc["available"] is True


class TestGroundStackManager:
    """Store üzerinde transaction ile yığın yönetimi."""

    def test_add_and_remove(self):
        manager, store, location_id = _create_manager()
        location = manager.add(location_id, "RAW-1")
        assert location.stacked_items == ["RAW-1"]
        location = manager.remove(location_id, "RAW-1")
        assert location.stacked_items == []
        assert store.get("locations", location_id)["available"] is True

    def test_missing_location(self):
        manager, _, _ = _create_manager()
        with pytest.raises(LocationNotFoundError):
            manager.add("yok", "RAW-1")

    def test_shelf_location_rejected(self):
        manager, _, location_id = _create_manager(level="1")
        with pytest.raises(ValidationError):
            manager.add(location_id, "RAW-1")

    def test_full_stack_not_written(self):
        manager, store, location_id = _create_manager(stacked=list("ABCDEF"))
        with pytest.raises(CapacityError):
            manager.add(location_id, "G")
        assert store.get("locations", location_id)["stackedItems"] == list("ABCDEF")

    def test_concurrent_adds_never_overshoot(self):
        """Eşzamanlı eklemeler 6 ürün sınırını aşamaz."""
        manager, store, location_id = _create_manager()

        def add(i):
            try:
                manager.add(location_id, f"RAW-{i}")
                return True
            except CapacityError:
                return False

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(add, range(20)))

        doc = store.get("locations", location_id)
        assert results.count(True) == 6
        assert len(doc["stackedItems"]) == 6
        assert doc["available"] is False
