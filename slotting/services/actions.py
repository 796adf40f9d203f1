"""Operatör iş kuyruğu - bekleyen yerleştirme ve toplama görevleri.

Mal kabulde her ürün için bir "in" görevi açılır, toplama listesine
eklenen ürünler "out" görevi olur. Görev tamamlandığında kayıt silinir;
kuyrukta yalnızca pending / in-progress görevler kalır.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from slotting.exceptions import NotFoundError, ValidationError
from slotting.models.warehouse import (
    ActionStatus,
    ActionType,
    Item,
    WarehouseAction,
)
from slotting.services.base import BaseRepository
from slotting.store.base import Document

logger = logging.getLogger(__name__)

_VALID_STATUSES = {s.value for s in ActionStatus}
_OPEN_STATUSES = {ActionStatus.PENDING.value, ActionStatus.IN_PROGRESS.value}


def _is_open(doc: Document) -> bool:
    return doc.get("status") in _OPEN_STATUSES


class ActionQueue(BaseRepository):
    collection = "actions"

    # --- Yazma ---

    def add_action(self, action: WarehouseAction) -> str:
        """Kuyruğa görev ekler; zorunlu alanlar boş olamaz."""
        for field_name in ("item_id", "item_code", "system_code", "category"):
            value = getattr(action, field_name)
            if value is None or not str(value).strip():
                raise ValidationError(f"Zorunlu alan eksik: {field_name}")
            setattr(action, field_name, str(value).strip())
        try:
            action.action_type = ActionType(action.action_type)
            action.status = ActionStatus(action.status)
        except ValueError as e:
            raise ValidationError(f"Geçersiz görev tipi veya durumu: {e}") from e
        action.description = (action.description or "").strip()
        action.location = (action.location or "").strip() or None
        action.operator = (action.operator or "").strip() or None
        action.timestamp = datetime.utcnow().isoformat()

        action_id = self.store.create(self.collection, action.to_document())
        self.invalidate()
        logger.info(
            "Görev eklendi: %s %s (%s)", action.action_type.value, action.system_code, action_id
        )
        return action_id

    def create_goods_in_action(self, item: Item, location: Optional[str] = None) -> str:
        return self.add_action(self._from_item(item, ActionType.IN, location))

    def create_pick_action(self, item: Item, operator: Optional[str] = None) -> str:
        action = self._from_item(item, ActionType.OUT, item.location)
        action.operator = operator
        return self.add_action(action)

    @staticmethod
    def _from_item(item: Item, action_type: ActionType, location: Optional[str]) -> WarehouseAction:
        return WarehouseAction(
            id="",
            item_id=item.id,
            item_code=item.item_code,
            system_code=item.system_code,
            category=item.category,
            action_type=action_type,
            description=item.description,
            weight=item.weight,
            location=location,
            department=item.department,
            is_ground_level=item.is_ground_level,
        )

    def update_action(self, action_id: str, changes: dict[str, Any]) -> Optional[WarehouseAction]:
        """Görev alanlarını günceller; status "completed" olursa kayıt silinir ve None döner."""
        if not action_id or not action_id.strip():
            raise ValidationError("Görev ID zorunlu")
        status = changes.get("status")
        if isinstance(status, ActionStatus):
            status = status.value
            changes = {**changes, "status": status}
        if status is not None and status not in _VALID_STATUSES:
            raise ValidationError(f"Geçersiz durum: {status}")

        def mutation(current: Optional[Document]) -> Document:
            if current is None:
                raise NotFoundError(f"Görev bulunamadı: {action_id}")
            return {**current, **changes, "timestamp": datetime.utcnow().isoformat()}

        doc = self.store.transact(self.collection, action_id, mutation)
        self.invalidate()

        if status == ActionStatus.COMPLETED.value:
            self.store.delete(self.collection, action_id)
            self.invalidate()
            logger.info("Görev tamamlandı: %s", doc.get("systemCode"))
            return None
        return WarehouseAction.from_document(action_id, doc)

    def start_action(self, action_id: str, operator: str) -> Optional[WarehouseAction]:
        return self.update_action(
            action_id, {"status": ActionStatus.IN_PROGRESS.value, "operator": operator}
        )

    def complete_action(self, action_id: str) -> None:
        self.update_action(action_id, {"status": ActionStatus.COMPLETED.value})

    def complete_actions_for_item(self, item_id: str, action_type: ActionType) -> int:
        """Ürünün açık görevlerini tamamlar; tamamlanan görev sayısını döndürür."""
        docs = self.store.query(
            self.collection,
            lambda d: _is_open(d) and d.get("itemId") == item_id
            and d.get("actionType") == action_type.value,
        )
        for doc in docs:
            self.complete_action(doc["id"])
        return len(docs)

    def delete_action(self, action_id: str) -> None:
        if not action_id or not action_id.strip():
            raise ValidationError("Görev ID zorunlu")
        self.store.delete(self.collection, action_id)
        self.invalidate()

    # --- Okuma ---

    def get_pending_actions(self) -> list[WarehouseAction]:
        """Açık görevler, yeniden eskiye (cache'li; store hatasında boş liste)."""
        actions = self._cached_query(WarehouseAction.from_document, predicate=_is_open)
        return sorted(actions, key=lambda a: a.timestamp, reverse=True)

    def subscribe_to_actions(
        self, callback: Callable[[list[WarehouseAction]], None]
    ) -> Callable[[], None]:
        def on_change(docs: list[Document]) -> None:
            actions = [WarehouseAction.from_document(d["id"], d) for d in docs]
            callback(sorted(actions, key=lambda a: a.timestamp, reverse=True))

        return self.store.subscribe(self.collection, on_change, predicate=_is_open)
