"""Depo servisi - yerleştirme, toplama ve Kanban akışlarının koordinasyonu.

Akış: talep -> uygunluk doğrulaması (aday başına) -> skorlama ile lokasyon
seçimi -> doluluk commit'i (transaction) -> cache invalidation. Kanban
talepleri doğrudan miktar işlemcisine gider.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from slotting.cache import CollectionCache
from slotting.config import Settings, load_settings
from slotting.exceptions import (
    CapacityError,
    CategoryNotFoundError,
    ItemNotFoundError,
    LocationNotFoundError,
    SlottingError,
    ValidationError,
)
from slotting.models.warehouse import (
    ActionType,
    Category,
    Item,
    ItemMetadata,
    ItemStatus,
    Location,
    Movement,
    MovementType,
    PlacementRejection,
    QuantityCommit,
    QuantityProposal,
    RejectionReason,
    WarehouseAction,
)
from slotting.services.actions import ActionQueue
from slotting.services.allocator import LocationAllocator
from slotting.services.categories import CategoryRepository
from slotting.services.items import ItemRegistry
from slotting.services.kanban import ConfirmCallback, KanbanQuantityTransactor, Notifier
from slotting.services.movements import MovementLedger
from slotting.services.occupancy import LocationOccupancyStore
from slotting.services.validator import require_eligible, validate_location_for_item
from slotting.store.base import DocumentStore
from slotting.store.dynamodb import DynamoDBDocumentStore

logger = logging.getLogger(__name__)

RAW_MATERIAL_PREFIX = "RAW"


@dataclass
class GoodsInResult:
    item: Item
    suggested_location: Optional[Location]


class WarehouseService:
    """Slotting motorunun dışa açılan yüzü."""

    def __init__(
        self,
        store: DocumentStore,
        settings: Optional[Settings] = None,
        cache: Optional[CollectionCache] = None,
        notifier: Optional[Notifier] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings or Settings()
        self.store = store
        self.cache = cache or CollectionCache(ttl=self.settings.cache_ttl_seconds)
        self.allocator = LocationAllocator(self.settings.scoring)
        self.locations = LocationOccupancyStore(store, self.cache)
        self.items = ItemRegistry(store, self.cache)
        self.categories = CategoryRepository(store, self.cache)
        self.movements = MovementLedger(store, self.cache, clock=clock or datetime.utcnow)
        self.actions = ActionQueue(store, self.cache)
        self.kanban = KanbanQuantityTransactor(
            store,
            self.cache,
            proposal_ttl=self.settings.proposal_ttl_seconds,
            notifier=notifier,
            max_attempts=self.settings.max_transaction_attempts,
        )
        self._clock = clock or datetime.utcnow

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        dynamodb_resource: Optional[Any] = None,
        notifier: Optional[Notifier] = None,
    ) -> "WarehouseService":
        """DynamoDB store ile servis oluşturur."""
        settings = settings or load_settings()
        store = DynamoDBDocumentStore(
            dynamodb_resource=dynamodb_resource,
            region_name=settings.region,
            table_prefix=settings.table_prefix,
            endpoint_url=settings.endpoint_url,
            max_attempts=settings.max_transaction_attempts,
        )
        return cls(store, settings=settings, notifier=notifier)

    # --- Lokasyon seçimi ---

    def find_optimal_location(
        self,
        weight: float,
        is_ground_level: bool = False,
        candidates: Optional[list[Location]] = None,
    ) -> Optional[Location]:
        if weight < 0:
            raise ValidationError(f"Geçersiz ağırlık: {weight}")
        if candidates is None:
            candidates = self.locations.get_locations()
        return self.allocator.find_optimal_location(candidates, weight, is_ground_level)

    def validate_location_for_item(
        self, location_code: str, weight: float, is_ground_level: bool
    ) -> Optional[PlacementRejection]:
        location = self.locations.get_location_by_code(location_code)
        if location is None:
            raise LocationNotFoundError(f"Lokasyon bulunamadı: {location_code}")
        return validate_location_for_item(location, weight, is_ground_level)

    # --- Tekil ürün giriş / yerleştirme / toplama ---

    def _require_category(self, category_id: str) -> Category:
        category = self.categories.get_category_by_id(category_id)
        if category is None:
            raise CategoryNotFoundError(f"Kategori bulunamadı: {category_id}")
        return category

    def receive_item(
        self,
        item_code: str,
        category_id: str,
        weight: float,
        description: str = "",
        is_ground_level: bool = False,
        coil_number: Optional[int] = None,
        coil_length: Optional[float] = None,
        operator: str = "System",
    ) -> GoodsInResult:
        """Mal kabul: ürünü pending olarak kaydeder, lokasyon önerir ve yerleştirme görevi açar."""
        category = self._require_category(category_id)
        if category.is_kanban:
            raise ValidationError(f"Kanban kategorisi adet ile kabul edilir: {category.name}")
        if weight is None or not weight > 0:
            raise ValidationError("Geçerli bir ağırlık girilmeli")

        metadata = ItemMetadata(is_ground_level=is_ground_level)
        if category.prefix == RAW_MATERIAL_PREFIX:
            if not coil_number or coil_number <= 0:
                raise ValidationError("Geçerli bir bobin sayısı girilmeli")
            if not coil_length or coil_length <= 0:
                raise ValidationError("Geçerli bir bobin uzunluğu girilmeli")
            metadata.coil_number = str(coil_number)
            metadata.coil_length = f"{coil_length:g}"
            description = f"Bobin: {coil_number}, Uzunluk: {coil_length:g}ft"
        elif not description.strip():
            raise ValidationError("Açıklama girilmeli")

        system_code = ItemRegistry.generate_system_code(category.prefix)
        item_id = self.items.add_item(
            item_code=item_code,
            system_code=system_code,
            category=category_id,
            description=description,
            weight=weight,
            metadata=metadata,
        )
        self.movements.record_movement(
            system_code,
            MovementType.IN,
            weight=weight,
            operator=operator,
            reference=item_code,
            notes=f"Mal kabul: {description}",
        )

        item = self.items.get_item(item_id)
        suggestion = self.find_optimal_location(weight, is_ground_level)
        self.actions.create_goods_in_action(item, suggestion.code if suggestion else None)
        return GoodsInResult(item=item, suggested_location=suggestion)

    def place_item(self, item_id: str, location_id: Optional[str] = None) -> Location:
        """Pending ürünü lokasyona yerleştirir.

        location_id verilmezse allocator en iyi lokasyonu seçer. Lokasyon
        taze okunur, doğrulanır ve doluluk transaction içinde commit edilir.
        Ardından ürün pending -> placed geçişi transaction içinde yapılır;
        ürün bu arada başka bir işlemle yerleştirildiyse ya da kaydı
        güncellenemezse doluluk geri alınır. Ürünün açık mal kabul görevi
        tamamlanır.
        """
        item = self.items.get_item(item_id)
        if item.status != ItemStatus.PENDING:
            raise ValidationError(f"Ürün yerleştirmeye uygun değil: {item.status.value}")

        if location_id is None:
            chosen = self.find_optimal_location(item.weight, item.is_ground_level)
            if chosen is None:
                raise CapacityError(
                    PlacementRejection(RejectionReason.NOT_AVAILABLE, "Uygun lokasyon bulunamadı")
                )
            location_id = chosen.id

        location = self.locations.get_location(location_id)
        require_eligible(location, item.weight, item.is_ground_level)

        committed = self.locations.commit_placement(
            location.id, item.weight, item.system_code, require_available=True
        )
        try:
            self.items.update_item(
                item.id,
                {
                    "status": ItemStatus.PLACED.value,
                    "location": committed.code,
                    "locationVerified": True,
                },
                expected_status=ItemStatus.PENDING,
            )
        except SlottingError:
            logger.error("Ürün güncellenemedi, doluluk geri alınıyor: %s", item.system_code)
            self.locations.commit_removal(location.id, item.weight, item.system_code)
            raise

        self._complete_actions(item, ActionType.IN)
        return committed

    def queue_pick(self, system_code: str, operator: Optional[str] = None) -> str:
        """Yerleştirilmiş ürün için toplama görevi açar."""
        item = self.items.get_item_by_system_code(system_code)
        if item is None or item.status != ItemStatus.PLACED:
            raise ItemNotFoundError(f"Yerleştirilmiş ürün bulunamadı: {system_code}")
        return self.actions.create_pick_action(item, operator)

    def pick_item(self, system_code: str, operator: str = "System") -> Movement:
        """Yerleştirilmiş ürünü lokasyondan alır, kaydını siler ve OUT hareketi yazar.

        Önce ürün placed -> removed geçişi transaction içinde yapılır; aynı
        ürünü toplayan ikinci işlem burada reddedilir. Lokasyon serbest
        bırakılamazsa ürün tekrar placed durumuna alınır. Kayıt en son silinir.
        """
        item = self.items.get_item_by_system_code(system_code)
        if item is None or item.status != ItemStatus.PLACED or not item.location:
            raise ItemNotFoundError(f"Ürün bulunamadı veya zaten çıkarılmış: {system_code}")

        location = self.locations.get_location_by_code(item.location)
        if location is None:
            raise LocationNotFoundError(f"Lokasyon bulunamadı: {item.location}")

        self.items.update_item(
            item.id,
            {"status": ItemStatus.REMOVED.value, "location": None},
            expected_status=ItemStatus.PLACED,
            purge=False,
        )
        try:
            self.locations.commit_removal(location.id, item.weight, item.system_code)
        except SlottingError:
            logger.error("Lokasyon serbest bırakılamadı, ürün geri alınıyor: %s", item.system_code)
            self.items.update_item(
                item.id,
                {"status": ItemStatus.PLACED.value, "location": item.location},
                expected_status=ItemStatus.REMOVED,
            )
            raise

        self.items.delete_item(item.id)
        self._complete_actions(item, ActionType.OUT)
        return self.movements.record_movement(
            item.system_code,
            MovementType.OUT,
            weight=item.weight,
            operator=operator,
            reference=item.item_code,
            notes=f"Depodan çıkarıldı: {item.description}",
        )

    def get_pending_actions(self) -> list[WarehouseAction]:
        return self.actions.get_pending_actions()

    def _complete_actions(self, item: Item, action_type: ActionType) -> None:
        # Doluluk ve ürün kaydı commit edildi; görev kuyruğu hatası işlemi geri almaz
        try:
            self.actions.complete_actions_for_item(item.id, action_type)
        except SlottingError as e:
            logger.warning("Görev kapatılamadı (%s): %s", item.system_code, e)

    # --- Kanban ---

    def propose_quantity_change(self, category_id: str, delta: int) -> QuantityProposal:
        return self.kanban.propose_quantity_change(category_id, delta)

    def commit_quantity_change(
        self, proposal_id: str, reference: str = "", operator: str = "System"
    ) -> QuantityCommit:
        """Öneriyi commit eder ve miktar hareketini deftere yazar."""
        result = self.kanban.commit_quantity_change(proposal_id)
        self._record_quantity_movement(result, reference, operator)
        return result

    def abort_quantity_change(self, proposal_id: str) -> QuantityProposal:
        return self.kanban.abort_quantity_change(proposal_id)

    def kanban_goods_in(
        self,
        category_id: str,
        quantity: int,
        reference: str,
        operator: str = "System",
        confirm: Optional[ConfirmCallback] = None,
    ) -> QuantityCommit:
        return self._kanban_move(category_id, quantity, reference, operator, confirm, inbound=True)

    def kanban_goods_out(
        self,
        category_id: str,
        quantity: int,
        reference: str,
        operator: str = "System",
        confirm: Optional[ConfirmCallback] = None,
    ) -> QuantityCommit:
        return self._kanban_move(category_id, quantity, reference, operator, confirm, inbound=False)

    def _kanban_move(
        self,
        category_id: str,
        quantity: int,
        reference: str,
        operator: str,
        confirm: Optional[ConfirmCallback],
        inbound: bool,
    ) -> QuantityCommit:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("Geçerli bir miktar girilmeli")
        if not reference or not reference.strip():
            raise ValidationError("Referans kodu zorunlu")

        delta = quantity if inbound else -quantity
        result = self.kanban.apply_quantity_change(category_id, delta, confirm=confirm)
        self._record_quantity_movement(result, reference, operator)
        return result

    def _record_quantity_movement(self, result: QuantityCommit, reference: str, operator: str) -> None:
        delta = result.new_quantity - result.previous_quantity
        category = self.categories.get_category_by_id(result.category_id)
        name = category.name if category else result.category_id
        inbound = delta > 0
        self.movements.record_movement(
            reference or result.category_id,
            MovementType.IN if inbound else MovementType.OUT,
            weight=0.0,
            operator=operator,
            reference=reference,
            notes=f"{abs(delta)} adet {name} {'eklendi' if inbound else 'çıkarıldı'}",
            quantity=abs(delta),
        )

    # --- Özet ---

    def get_dashboard_stats(self) -> dict:
        """Yerleşik ürün sayısı ve bugünkü giriş/çıkış hareketleri."""
        try:
            placed = self.items.get_items_by_status(ItemStatus.PLACED.value)
            today = self._clock().replace(hour=0, minute=0, second=0, microsecond=0)
            movements = self.movements.get_movements_since(today)
        except SlottingError as e:
            logger.warning("Özet istatistikler alınamadı: %s", e)
            return {"totalItems": 0, "goodsInToday": 0, "picksToday": 0}

        return {
            "totalItems": len(placed),
            "goodsInToday": sum(1 for m in movements if m.type == MovementType.IN),
            "picksToday": sum(1 for m in movements if m.type == MovementType.OUT),
        }
