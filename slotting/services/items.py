"""Tekil takip edilen ürün kayıtları (Kanban dışı kategoriler)."""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from typing import Any, Optional

from slotting.exceptions import (
    ItemNotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from slotting.models.warehouse import Item, ItemMetadata, ItemStatus
from slotting.services.base import BaseRepository
from slotting.store.base import Document

logger = logging.getLogger(__name__)

_VALID_STATUSES = {s.value for s in ItemStatus}


def _require_text(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"Zorunlu alan eksik: {field_name}")
    return str(value).strip()


class ItemRegistry(BaseRepository):
    collection = "items"

    _code_lock = threading.Lock()
    _last_code_ms = 0

    # --- Sistem kodu ---

    @classmethod
    def generate_system_code(cls, prefix: str, now_ms: Optional[int] = None) -> str:
        """<PREFIX>-<epoch ms> formatında barkod kodu üretir.

        Aynı milisaniyede üretilen kodlar çakışmasın diye sayaç monoton
        olarak ilerletilir.
        """
        prefix = _require_text(prefix, "prefix").upper()
        stamp = int(time.time() * 1000) if now_ms is None else int(now_ms)
        with cls._code_lock:
            if stamp <= cls._last_code_ms:
                stamp = cls._last_code_ms + 1
            cls._last_code_ms = stamp
        return f"{prefix}-{stamp}"

    # --- Yazma ---

    def add_item(
        self,
        item_code: str,
        system_code: str,
        category: str,
        description: str = "",
        weight: Optional[float] = None,
        metadata: Optional[ItemMetadata] = None,
        department: Optional[str] = None,
    ) -> str:
        """Yeni ürünü pending durumunda kaydeder."""
        item_code = _require_text(item_code, "itemCode")
        system_code = _require_text(system_code, "systemCode")
        category = _require_text(category, "category")
        if weight is not None and not weight > 0:
            raise ValidationError(f"Geçersiz ağırlık: {weight}")

        item = Item(
            id="",
            item_code=item_code,
            system_code=system_code,
            description=(description or "").strip(),
            weight=float(weight or 0),
            category=category,
            status=ItemStatus.PENDING,
            metadata=metadata or ItemMetadata(),
            department=department,
            last_updated=datetime.utcnow().isoformat(),
        )
        item_id = self.store.create(self.collection, item.to_document())
        self.invalidate()
        logger.info("Ürün kaydedildi: %s (%s)", item_code, system_code)
        return item_id

    def update_item(
        self,
        item_id: str,
        changes: dict[str, Any],
        expected_status: Optional[ItemStatus] = None,
        purge: bool = True,
    ) -> Optional[Item]:
        """Ürün alanlarını günceller (store alan adlarıyla).

        expected_status verilirse durum geçişi transaction içinde kontrol
        edilir; ürün o durumda değilse ValidationError fırlatılır ve hiçbir
        şey yazılmaz. Status "removed" olursa kayıt (purge=True iken)
        çalışma kümesinden silinir ve None döner.
        """
        item_id = _require_text(item_id, "itemId")
        if "weight" in changes and (changes["weight"] is None or changes["weight"] < 0):
            raise ValidationError(f"Geçersiz ağırlık: {changes['weight']}")
        status = changes.get("status")
        if isinstance(status, ItemStatus):
            changes = {**changes, "status": status.value}
            status = status.value
        if status is not None and status not in _VALID_STATUSES:
            raise ValidationError(f"Geçersiz durum: {status}")

        def mutation(current: Optional[Document]) -> Document:
            if current is None:
                raise ItemNotFoundError(f"Ürün bulunamadı: {item_id}")
            if expected_status is not None and current.get("status") != expected_status.value:
                raise ValidationError(
                    f"Ürün durumu değişmiş: {current.get('status')} (beklenen {expected_status.value})"
                )
            updated = {**current, **changes, "lastUpdated": datetime.utcnow().isoformat()}
            if updated.get("location") and updated.get("status") != ItemStatus.PLACED.value:
                raise ValidationError("Lokasyonu olan ürünün durumu placed olmalı")
            return updated

        doc = self.store.transact(self.collection, item_id, mutation)
        self.invalidate()

        if status == ItemStatus.REMOVED.value and purge:
            self.store.delete(self.collection, item_id)
            self.invalidate()
            logger.info("Ürün çıkarıldı ve silindi: %s", doc.get("systemCode"))
            return None
        return Item.from_document(item_id, doc)

    def delete_item(self, item_id: str) -> None:
        item_id = _require_text(item_id, "itemId")
        self.store.delete(self.collection, item_id)
        self.invalidate()

    # --- Okuma ---

    def get_item(self, item_id: str) -> Item:
        doc = self.store.get(self.collection, item_id)
        if doc is None:
            raise ItemNotFoundError(f"Ürün bulunamadı: {item_id}")
        return Item.from_document(item_id, doc)

    def get_items(self) -> list[Item]:
        return self._cached_query(
            Item.from_document,
            predicate=lambda d: d.get("status") != ItemStatus.REMOVED.value,
        )

    def get_items_by_location(self, location_code: str) -> list[Item]:
        location_code = _require_text(location_code, "location")
        return self._safe_query(
            Item.from_document,
            predicate=lambda d: d.get("location") == location_code
            and d.get("status") == ItemStatus.PLACED.value,
        )

    def get_items_by_status(self, status: str) -> list[Item]:
        status = _require_text(status, "status")
        if status not in _VALID_STATUSES:
            raise ValidationError(f"Geçersiz durum: {status}")
        return self._safe_query(Item.from_document, predicate=lambda d: d.get("status") == status)

    def get_item_by_system_code(self, system_code: str) -> Optional[Item]:
        system_code = _require_text(system_code, "systemCode")
        try:
            docs = self.store.query(self.collection, lambda d: d.get("systemCode") == system_code)
        except StoreUnavailableError as e:
            logger.warning("Ürün okunamadı (%s): %s", system_code, e)
            return None
        if not docs:
            return None
        return Item.from_document(docs[0]["id"], docs[0])

