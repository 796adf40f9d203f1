"""Hareket defteri - yalnızca ekleme yapılır, güncelleme/silme yok."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from slotting.cache import CollectionCache
from slotting.exceptions import ValidationError
from slotting.models.warehouse import Movement, MovementType
from slotting.services.base import BaseRepository
from slotting.store.base import DocumentStore

logger = logging.getLogger(__name__)

RECENT_MOVEMENTS_LIMIT = 20


class MovementLedger(BaseRepository):
    collection = "movements"

    def __init__(
        self,
        store: DocumentStore,
        cache: Optional[CollectionCache] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        super().__init__(store, cache)
        self._clock = clock

    def record_movement(
        self,
        item_id: str,
        movement_type: MovementType,
        weight: float = 0.0,
        operator: str = "System",
        reference: str = "",
        notes: Optional[str] = None,
        quantity: Optional[int] = None,
    ) -> Movement:
        if not item_id or not item_id.strip():
            raise ValidationError("Hareket için ürün referansı zorunlu")
        if weight < 0:
            raise ValidationError(f"Geçersiz ağırlık: {weight}")
        if quantity is not None and quantity <= 0:
            raise ValidationError(f"Geçersiz miktar: {quantity}")

        movement = Movement(
            id="",
            item_id=item_id.strip(),
            type=MovementType(movement_type),
            weight=weight,
            operator=operator,
            reference=reference,
            notes=notes,
            quantity=quantity,
            timestamp=self._clock().isoformat(),
        )
        movement.id = self.store.create(self.collection, movement.to_document())
        self.invalidate()
        logger.info("Hareket kaydedildi: %s %s (%s)", movement.type.value, movement.item_id, reference)
        return movement

    def get_all_movements(self) -> list[Movement]:
        movements = self._safe_query(Movement.from_document)
        movements.sort(key=lambda m: m.timestamp, reverse=True)
        return movements

    def get_recent_movements(self, limit: int = RECENT_MOVEMENTS_LIMIT) -> list[Movement]:
        """Son hareketler, yeniden eskiye (cache'li)."""
        movements = self._cached_query(Movement.from_document)
        return sorted(movements, key=lambda m: m.timestamp, reverse=True)[:limit]

    def get_movements_since(self, since: datetime) -> list[Movement]:
        threshold = since.isoformat()
        return [m for m in self.get_all_movements() if m.timestamp >= threshold]
