"""Lokasyon doluluk durumu - currentWeight / stackedItems / available.

Lokasyon dokümanının doluluk alanlarını değiştiren tek bileşen budur.
Her commit tek doküman üzerinde store transaction'ı olarak çalışır ve
başarılı commit sonrası locations cache'i boşaltılır.

Tam uygunluk kontrolü (doğrulanmış mı, doğru seviye mi) çağıranın
sorumluluğundadır. Transaction içinde yalnızca eşzamanlı yazıcıların
bozabileceği sınırlar tekrar kontrol edilir: ağırlık kapasitesi, yığın
limiti ve (istenirse) lokasyonun hâlâ boş olması.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from slotting.exceptions import (
    CapacityError,
    LocationNotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from slotting.models.warehouse import (
    GROUND_LEVEL,
    LEVEL_MAX_WEIGHTS,
    Location,
    PlacementRejection,
    RejectionReason,
    compute_available,
)
from slotting.services.base import BaseRepository
from slotting.services.ground_stack import apply_stack_add, apply_stack_remove
from slotting.store.base import Document

logger = logging.getLogger(__name__)


class LocationOccupancyStore(BaseRepository):
    """Lokasyon okuma ve doluluk commit işlemleri."""

    collection = "locations"

    # --- Okuma ---

    def get_locations(self) -> list[Location]:
        return self._cached_query(Location.from_document)

    def get_location(self, location_id: str) -> Location:
        """Lokasyonu store'dan taze okur; yoksa LocationNotFoundError."""
        doc = self.store.get(self.collection, location_id)
        if doc is None:
            raise LocationNotFoundError(f"Lokasyon bulunamadı: {location_id}")
        return Location.from_document(location_id, doc)

    def get_location_by_code(self, code: str) -> Optional[Location]:
        cached = self.cache.get(self.collection)
        if cached is not None:
            for location in cached:
                if location.code == code:
                    return location

        try:
            docs = self.store.query(self.collection, lambda d: d.get("code") == code)
        except StoreUnavailableError as e:
            logger.warning("Lokasyon okunamadı (%s): %s", code, e)
            return None
        if not docs:
            return None
        return Location.from_document(docs[0]["id"], docs[0])

    def get_available_locations(self, required_weight: float) -> list[Location]:
        """Müsait, doğrulanmış ve (raf ise) ağırlığı taşıyabilecek lokasyonlar."""
        result = []
        for location in self.get_locations():
            if not (location.available and location.verified):
                continue
            if not location.is_ground_level and (
                location.current_weight + required_weight > location.max_weight
            ):
                continue
            result.append(location)
        return result

    def subscribe_locations(self, callback: Callable[[list[Location]], None]) -> Callable[[], None]:
        """Lokasyon değişikliklerini dinler; her bildirimde cache de yenilenir."""

        def on_change(docs: list[Document]) -> None:
            locations = [Location.from_document(d["id"], d) for d in docs]
            self.cache.set(self.collection, locations)
            callback(locations)

        return self.store.subscribe(self.collection, on_change)

    # --- Kurulum ---

    def add_location(
        self,
        row: str,
        bay: str,
        level: str,
        position: str,
        verified: bool = True,
    ) -> str:
        """Tek bir lokasyon kaydı ekler; kapasite seviye tablosundan gelir."""
        if level not in LEVEL_MAX_WEIGHTS:
            raise ValidationError(f"Geçersiz seviye: {level}")
        if not row or not row[0].isalpha():
            raise ValidationError(f"Geçersiz satır: {row!r}")

        location = Location(
            id="",
            code=Location.build_code(row, bay, level, position),
            row=row,
            bay=bay,
            level=level,
            position=position,
            max_weight=LEVEL_MAX_WEIGHTS[level],
            verified=verified,
        )
        doc = location.to_document()
        doc["lastUpdated"] = datetime.utcnow().isoformat()
        location_id = self.store.create(self.collection, doc)
        self.invalidate()
        return location_id

    # --- Doluluk commit'leri ---

    def commit_placement(
        self,
        location_id: str,
        weight_delta: float,
        item_ref: Optional[str] = None,
        require_available: bool = False,
    ) -> Location:
        """Lokasyona yük ekler (zeminde yığına ekleme)."""
        return self._commit(location_id, weight_delta, item_ref, placing=True,
                            require_available=require_available)

    def commit_removal(
        self,
        location_id: str,
        weight: float,
        item_ref: Optional[str] = None,
    ) -> Location:
        """Lokasyondan yük çıkarır (zeminde yığından çıkarma)."""
        return self._commit(location_id, -abs(weight), item_ref, placing=False)

    def _commit(
        self,
        location_id: str,
        weight_delta: float,
        item_ref: Optional[str],
        placing: bool,
        require_available: bool = False,
    ) -> Location:
        def mutation(current: Optional[Document]) -> Document:
            if current is None:
                raise LocationNotFoundError(f"Lokasyon bulunamadı: {location_id}")
            if str(current.get("level")) == GROUND_LEVEL:
                return self._mutate_ground(current, item_ref, placing)
            return self._mutate_shelf(current, weight_delta, require_available)

        doc = self.store.transact(self.collection, location_id, mutation)
        self.invalidate()

        location = Location.from_document(location_id, doc)
        logger.info(
            "Doluluk güncellendi: %s (%s) ağırlık=%s yığın=%d müsait=%s",
            location.code,
            "yerleştirme" if placing else "çıkarma",
            location.current_weight,
            location.stack_count,
            location.available,
        )
        return location

    @staticmethod
    def _mutate_ground(current: Document, item_ref: Optional[str], placing: bool) -> Document:
        if not item_ref:
            raise ValidationError("Zemin lokasyonu için ürün referansı gerekli")
        if placing:
            if item_ref in (current.get("stackedItems") or []):
                raise ValidationError(f"Ürün zaten bu yığında: {item_ref}")
            return apply_stack_add(current, item_ref)
        return apply_stack_remove(current, item_ref)

    @staticmethod
    def _mutate_shelf(current: Document, weight_delta: float, require_available: bool) -> Document:
        level = str(current.get("level"))
        current_weight = float(current.get("currentWeight") or 0)
        max_weight = current.get("maxWeight")
        max_weight = float(max_weight) if max_weight is not None else LEVEL_MAX_WEIGHTS.get(level, 0.0)
        new_weight = max(0.0, current_weight + weight_delta)

        if weight_delta > 0:
            if require_available and not compute_available(level, current_weight, []):
                raise CapacityError(
                    PlacementRejection(
                        RejectionReason.NOT_AVAILABLE,
                        f"Lokasyon dolu: {current.get('code', '')}",
                    )
                )
            if new_weight > max_weight:
                remaining = max_weight - current_weight
                raise CapacityError(
                    PlacementRejection(
                        RejectionReason.WEIGHT_EXCEEDED,
                        f"Ağırlık ({weight_delta:g}kg) lokasyon kapasitesini aşıyor "
                        f"({remaining:g}kg müsait)",
                        available_weight=remaining,
                    )
                )

        updated = dict(current)
        updated["currentWeight"] = new_weight
        updated["available"] = compute_available(level, new_weight, [])
        updated["lastUpdated"] = datetime.utcnow().isoformat()
        return updated
