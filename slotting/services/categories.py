"""Kategori ve Kanban kural kayıtları."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from slotting.exceptions import StoreUnavailableError, ValidationError
from slotting.models.warehouse import Category, KanbanRules
from slotting.services.base import BaseRepository
from slotting.store.base import Document

logger = logging.getLogger(__name__)


def validate_kanban_rules(rules: KanbanRules) -> None:
    """Etkin Kanban kurallarının tutarlılığını doğrular."""
    if not rules.goods_in:
        return

    errors = []
    if rules.min_quantity < 0:
        errors.append("Minimum miktar negatif olamaz")
    if rules.min_quantity >= rules.max_quantity:
        errors.append("Minimum miktar maksimumdan küçük olmalı")
    if rules.reorder_point < rules.min_quantity:
        errors.append("Yeniden sipariş noktası minimum miktardan küçük olamaz")
    if rules.reorder_quantity <= 0:
        errors.append("Sipariş miktarı pozitif olmalı")
    if not 0 <= rules.current_quantity <= rules.max_quantity:
        errors.append(
            f"Mevcut miktar 0 ile {rules.max_quantity} arasında olmalı: {rules.current_quantity}"
        )
    if not rules.fixed_locations:
        errors.append("En az bir sabit lokasyon tanımlanmalı")

    if errors:
        raise ValidationError("; ".join(errors))


class CategoryRepository(BaseRepository):
    collection = "categories"

    def get_categories(self) -> list[Category]:
        return self._cached_query(Category.from_document)

    def get_category_by_id(self, category_id: str) -> Optional[Category]:
        try:
            doc = self.store.get(self.collection, category_id)
        except StoreUnavailableError as e:
            logger.warning("Kategori okunamadı (%s): %s", category_id, e)
            return None
        return Category.from_document(category_id, doc) if doc else None

    def save_category(self, category: Category) -> str:
        """Kategoriyi ekler (id boşsa) ya da üzerine yazar."""
        if not category.name.strip() or not category.prefix.strip():
            raise ValidationError("Kategori adı ve prefix zorunlu")
        if category.kanban_rules is not None:
            validate_kanban_rules(category.kanban_rules)

        doc = category.to_document()
        doc["updatedAt"] = datetime.utcnow().isoformat()
        if category.id:
            self.store.put(self.collection, category.id, doc)
            category_id = category.id
        else:
            doc["createdAt"] = doc["updatedAt"]
            category_id = self.store.create(self.collection, doc)
        self.invalidate()
        return category_id

    def subscribe_to_category(
        self, category_id: str, callback: Callable[[Category], None]
    ) -> Callable[[], None]:
        def on_change(docs: list[Document]) -> None:
            for doc in docs:
                callback(Category.from_document(doc["id"], doc))

        return self.store.subscribe(
            self.collection, on_change, predicate=lambda d: d.get("id") == category_id
        )
