"""Zemin seviyesi yığın yönetimi.

Zemin lokasyonları ağırlık yerine adet ile sınırlıdır: en fazla
MAX_GROUND_ITEMS ürün, ekleme sırasını koruyan tekrarsız liste.
Ekleme ve çıkarma tek bir lokasyon dokümanı üzerinde atomik
read-modify-write olarak uygulanır.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from slotting.cache import CollectionCache
from slotting.exceptions import CapacityError, LocationNotFoundError, ValidationError
from slotting.models.warehouse import (
    GROUND_LEVEL,
    MAX_GROUND_ITEMS,
    Location,
    PlacementRejection,
    RejectionReason,
)
from slotting.store.base import Document, DocumentStore

logger = logging.getLogger(__name__)

LOCATIONS = "locations"


def _require_ground(doc: Optional[Document], location_id: str) -> Document:
    if doc is None:
        raise LocationNotFoundError(f"Lokasyon bulunamadı: {location_id}")
    if str(doc.get("level")) != GROUND_LEVEL:
        raise ValidationError(f"Zemin lokasyonu değil: {doc.get('code', location_id)}")
    return doc


def apply_stack_add(doc: Document, item_ref: str) -> Document:
    """Dokümanın yığınına ürün ekler; yığın doluysa StackFull fırlatır."""
    stacked = list(doc.get("stackedItems") or [])
    if item_ref not in stacked:
        if len(stacked) >= MAX_GROUND_ITEMS:
            raise CapacityError(
                PlacementRejection(
                    RejectionReason.STACK_FULL,
                    f"Lokasyon dolu: {doc.get('code', '')} ({MAX_GROUND_ITEMS} ürün)",
                )
            )
        stacked.append(item_ref)
    updated = dict(doc)
    updated["stackedItems"] = stacked
    updated["available"] = len(stacked) < MAX_GROUND_ITEMS
    updated["lastUpdated"] = datetime.utcnow().isoformat()
    return updated


def apply_stack_remove(doc: Document, item_ref: str) -> Document:
    """Ürünü yığından çıkarır (yoksa değişiklik yok); lokasyon müsait olur."""
    updated = dict(doc)
    updated["stackedItems"] = [ref for ref in (doc.get("stackedItems") or []) if ref != item_ref]
    updated["available"] = True
    updated["lastUpdated"] = datetime.utcnow().isoformat()
    return updated


class GroundStackManager:
    """Zemin lokasyonlarının stackedItems listesini yönetir."""

    def __init__(self, store: DocumentStore, cache: Optional[CollectionCache] = None):
        self.store = store
        self.cache = cache or CollectionCache()

    def add(self, location_id: str, item_ref: str) -> Location:
        def mutation(current: Optional[Document]) -> Document:
            return apply_stack_add(_require_ground(current, location_id), item_ref)

        doc = self.store.transact(LOCATIONS, location_id, mutation)
        self.cache.invalidate(LOCATIONS)
        logger.info("Zemin yığınına eklendi: %s -> %s", item_ref, doc.get("code"))
        return Location.from_document(location_id, doc)

    def remove(self, location_id: str, item_ref: str) -> Location:
        def mutation(current: Optional[Document]) -> Document:
            return apply_stack_remove(_require_ground(current, location_id), item_ref)

        doc = self.store.transact(LOCATIONS, location_id, mutation)
        self.cache.invalidate(LOCATIONS)
        logger.info("Zemin yığınından çıkarıldı: %s <- %s", item_ref, doc.get("code"))
        return Location.from_document(location_id, doc)
