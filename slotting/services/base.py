"""Store ve cache'i paylaşan servisler için temel sınıf."""

from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

from slotting.cache import CollectionCache
from slotting.exceptions import StoreUnavailableError
from slotting.store.base import Document, DocumentStore, Predicate

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseRepository:
    """Store tabanlı servislerin ortak okuma yardımcıları.

    Okuma yolları store erişilemez olduğunda boş sonuca düşer (arayüzler
    çevrimdışı da kullanılabilir kalsın diye); yazma yolları hatayı her
    zaman çağırana iletir.
    """

    collection: str = ""

    def __init__(self, store: DocumentStore, cache: Optional[CollectionCache] = None):
        self.store = store
        self.cache = cache or CollectionCache()

    def _cached_query(
        self,
        factory: Callable[[str, Document], T],
        predicate: Optional[Predicate] = None,
        cache_key: Optional[str] = None,
    ) -> list[T]:
        """Koleksiyonu cache üzerinden okur; cache boşsa store'dan doldurur."""
        key = cache_key or self.collection
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        generation = self.cache.generation(key)
        try:
            docs = self.store.query(self.collection, predicate)
        except StoreUnavailableError as e:
            logger.warning("%s okunamadı, boş liste döndürülüyor: %s", self.collection, e)
            return []

        records = [factory(d["id"], d) for d in docs]
        self.cache.set(key, records, generation=generation)
        return records

    def _safe_query(
        self,
        factory: Callable[[str, Document], T],
        predicate: Optional[Predicate] = None,
    ) -> list[T]:
        """Cache'siz okuma; store hatasında boş liste."""
        try:
            docs = self.store.query(self.collection, predicate)
        except StoreUnavailableError as e:
            logger.warning("%s sorgusu başarısız, boş liste döndürülüyor: %s", self.collection, e)
            return []
        return [factory(d["id"], d) for d in docs]

    def invalidate(self) -> None:
        self.cache.invalidate(self.collection)
