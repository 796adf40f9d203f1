"""Lokasyon doluluk store'u unit testleri."""

import math
from concurrent.futures import ThreadPoolExecutor

import pytest

from slotting.cache import CollectionCache
from slotting.exceptions import (
    CapacityError,
    LocationNotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from slotting.models.warehouse import RejectionReason
from slotting.services.occupancy import LocationOccupancyStore
from slotting.store.memory import InMemoryDocumentStore


class _BrokenStore(InMemoryDocumentStore):
    def query(self, collection, predicate=None):
        raise StoreUnavailableError("bağlantı yok")


def _create_occupancy(store=None):
    store = store or InMemoryDocumentStore()
    return LocationOccupancyStore(store, CollectionCache()), store


class TestLocationReads:
    """Okuma yolları ve normalizasyon."""

    def test_add_location_defaults(self):
        occupancy, store = _create_occupancy()
        location_id = occupancy.add_location("B", "03", "2", "1")
        doc = store.get("locations", location_id)
        assert doc["code"] == "B03-2-1"
        assert doc["maxWeight"] == 1000
        assert doc["currentWeight"] == 0
        assert doc["available"] is True
        assert doc["stackedItems"] == []

    def test_add_location_invalid_level(self):
        occupancy, _ = _create_occupancy()
        with pytest.raises(ValidationError):
            occupancy.add_location("A", "01", "7", "1")

    def test_ground_record_normalized(self):
        occupancy, store = _create_occupancy()
        location_id = store.create("locations", {
            "code": "A01-0-1", "row": "A", "bay": "01", "level": "0", "location": "1",
            "maxWeight": 0, "currentWeight": 0, "available": False, "verified": True,
        })
        location = occupancy.get_location(location_id)
        assert location.max_weight == math.inf
        assert location.stacked_items == []
        assert location.available is True

    def test_stored_available_flag_not_trusted(self):
        occupancy, store = _create_occupancy()
        store.create("locations", {
            "code": "A01-1-1", "row": "A", "bay": "01", "level": "1", "location": "1",
            "maxWeight": 1500, "currentWeight": 300, "available": True, "verified": True,
        })
        assert occupancy.get_locations()[0].available is False

    def test_get_location_by_code(self):
        occupancy, _ = _create_occupancy()
        occupancy.add_location("C", "02", "1", "3")
        assert occupancy.get_location_by_code("C02-1-3").code == "C02-1-3"
        assert occupancy.get_location_by_code("Z99-1-1") is None

    def test_get_location_missing(self):
        occupancy, _ = _create_occupancy()
        with pytest.raises(LocationNotFoundError):
            occupancy.get_location("yok")

    def test_available_locations_filter(self):
        occupancy, _ = _create_occupancy()
        occupancy.add_location("A", "01", "4", "1")
        occupancy.add_location("A", "01", "1", "1")
        occupancy.add_location("A", "01", "1", "2", verified=False)
        codes = {loc.code for loc in occupancy.get_available_locations(600)}
        assert codes == {"A01-1-1"}

    def test_reads_degrade_to_empty(self):
        occupancy, _ = _create_occupancy(_BrokenStore())
        assert occupancy.get_locations() == []
        assert occupancy.get_location_by_code("A01-1-1") is None

    def test_subscription_refreshes_cache(self):
        occupancy, store = _create_occupancy()
        received = []
        unsubscribe = occupancy.subscribe_locations(received.append)
        assert received == [[]]

        # Başka bir yazıcının doğrudan store'a yazması
        store.create("locations", {
            "code": "A01-1-1", "row": "A", "bay": "01", "level": "1", "location": "1",
            "maxWeight": 1500, "currentWeight": 0, "verified": True,
        })
        assert len(received[-1]) == 1
        assert occupancy.cache.get("locations")[0].code == "A01-1-1"

        unsubscribe()
        occupancy.add_location("A", "01", "1", "2")
        assert len(received) == 2


class TestShelfCommits:
    """Raf lokasyonlarında ağırlık commit'leri."""

    def test_placement_updates_weight_and_availability(self):
        occupancy, _ = _create_occupancy()
        location_id = occupancy.add_location("A", "01", "1", "1")
        location = occupancy.commit_placement(location_id, 200)
        assert location.current_weight == 200
        assert location.available is False

    def test_removal_clamps_to_zero(self):
        occupancy, _ = _create_occupancy()
        location_id = occupancy.add_location("A", "01", "1", "1")
        occupancy.commit_placement(location_id, 200)
        location = occupancy.commit_removal(location_id, 500)
        assert location.current_weight == 0
        assert location.available is True

    def test_weight_cap_enforced_in_transaction(self):
        occupancy, store = _create_occupancy()
        location_id = occupancy.add_location("A", "01", "4", "1")
        occupancy.commit_placement(location_id, 400)
        with pytest.raises(CapacityError) as exc:
            occupancy.commit_placement(location_id, 200)
        assert exc.value.reason == RejectionReason.WEIGHT_EXCEEDED
        assert exc.value.rejection.available_weight == 100
        assert store.get("locations", location_id)["currentWeight"] == 400

    def test_require_available_rejects_occupied(self):
        occupancy, _ = _create_occupancy()
        location_id = occupancy.add_location("A", "01", "1", "1")
        occupancy.commit_placement(location_id, 100)
        with pytest.raises(CapacityError) as exc:
            occupancy.commit_placement(location_id, 100, require_available=True)
        assert exc.value.reason == RejectionReason.NOT_AVAILABLE

    def test_commit_invalidates_cache(self):
        occupancy, _ = _create_occupancy()
        location_id = occupancy.add_location("A", "01", "1", "1")
        assert occupancy.get_locations()[0].available is True
        occupancy.commit_placement(location_id, 100)
        assert occupancy.cache.get("locations") is None
        assert occupancy.get_locations()[0].available is False

    def test_missing_location(self):
        occupancy, _ = _create_occupancy()
        with pytest.raises(LocationNotFoundError):
            occupancy.commit_placement("yok", 10)

    def test_concurrent_placements_respect_weight_cap(self):
        """Aynı rafa eşzamanlı yüklemeler kapasiteyi aşamaz."""
        occupancy, store = _create_occupancy()
        location_id = occupancy.add_location("A", "01", "4", "1")

        def place(_):
            try:
                occupancy.commit_placement(location_id, 100)
                return True
            except CapacityError:
                return False

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(place, range(12)))

        assert results.count(True) == 5
        assert store.get("locations", location_id)["currentWeight"] == 500

    def test_concurrent_exclusive_placements(self):
        """require_available ile yalnızca bir yerleştirme kazanır."""
        occupancy, _ = _create_occupancy()
        location_id = occupancy.add_location("A", "01", "1", "1")

        def place(i):
            try:
                occupancy.commit_placement(location_id, 50, f"ITEM-{i}", require_available=True)
                return True
            except CapacityError:
                return False

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(place, range(10)))

        assert results.count(True) == 1
        assert occupancy.get_location(location_id).current_weight == 50


class TestGroundCommits:
    """Zemin lokasyonlarında yığın commit'leri."""

    def test_ground_placement_stacks_item(self):
        occupancy, _ = _create_occupancy()
        location_id = occupancy.add_location("A", "01", "0", "1")
        location = occupancy.commit_placement(location_id, 800, "RAW-1")
        assert location.stacked_items == ["RAW-1"]
        assert location.current_weight == 0
        assert location.available is True

    def test_ground_requires_item_reference(self):
        occupancy, _ = _create_occupancy()
        location_id = occupancy.add_location("A", "01", "0", "1")
        with pytest.raises(ValidationError):
            occupancy.commit_placement(location_id, 800)

    def test_ground_removal(self):
        occupancy, _ = _create_occupancy()
        location_id = occupancy.add_location("A", "01", "0", "1")
        for i in range(6):
            occupancy.commit_placement(location_id, 100, f"RAW-{i}")
        assert occupancy.get_location(location_id).available is False
        location = occupancy.commit_removal(location_id, 100, "RAW-2")
        assert location.stack_count == 5
        assert location.available is True

    def test_duplicate_ground_commit_rejected(self):
        occupancy, _ = _create_occupancy()
        location_id = occupancy.add_location("A", "01", "0", "1")
        occupancy.commit_placement(location_id, 800, "RAW-1")
        with pytest.raises(ValidationError):
            occupancy.commit_placement(location_id, 800, "RAW-1")
        assert occupancy.get_location(location_id).stacked_items == ["RAW-1"]
