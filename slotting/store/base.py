"""Backing doküman store arayüzü."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from slotting.exceptions import NotFoundError

logger = logging.getLogger(__name__)

Document = dict
Predicate = Callable[[Document], bool]
Subscriber = Callable[[list[Document]], None]
Mutation = Callable[[Optional[Document]], Document]

COLLECTIONS = ("locations", "items", "categories", "movements", "notifications")


class DocumentStore(ABC):
    """Koleksiyon bazlı doküman store'u.

    Dokümanlar düz dict olarak döner ve her zaman "id" anahtarını içerir.
    transact() tek bir doküman üzerinde atomik read-modify-write sağlar:
    mutation fonksiyonu mevcut dokümanın kopyasını (yoksa None) alır ve
    yazılacak yeni dokümanı döndürür. Mutation içinde fırlatılan hata
    transaction'ı yazmadan iptal eder.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[tuple[Subscriber, Optional[Predicate]]]] = {}
        self._subscriber_lock = threading.Lock()

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        ...

    @abstractmethod
    def create(self, collection: str, data: Document) -> str:
        """Yeni doküman ekler, store tarafından atanan ID'yi döndürür."""
        ...

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        ...

    @abstractmethod
    def query(self, collection: str, predicate: Optional[Predicate] = None) -> list[Document]:
        ...

    @abstractmethod
    def transact(self, collection: str, doc_id: str, mutation: Mutation) -> Document:
        ...

    def put(self, collection: str, doc_id: str, data: Document) -> Document:
        """Dokümanı koşulsuz olarak verilen içerikle değiştirir."""
        return self.transact(collection, doc_id, lambda _current: dict(data))

    def update(self, collection: str, doc_id: str, changes: Document) -> Document:
        """Mevcut dokümana sığ birleştirme uygular; doküman yoksa NotFoundError."""

        def merge(current: Optional[Document]) -> Document:
            if current is None:
                raise NotFoundError(f"Doküman bulunamadı: {collection}/{doc_id}")
            merged = dict(current)
            merged.update(changes)
            return merged

        return self.transact(collection, doc_id, merge)

    # --- Değişiklik abonelikleri ---

    def subscribe(
        self,
        collection: str,
        callback: Subscriber,
        predicate: Optional[Predicate] = None,
    ) -> Callable[[], None]:
        """Koleksiyondaki her değişiklikte filtrelenmiş sonuç kümesini iletir.

        Abone olunduğu anda mevcut sonuç kümesi bir kez gönderilir.
        Dönen fonksiyon aboneliği iptal eder.
        """
        entry = (callback, predicate)
        with self._subscriber_lock:
            self._subscribers.setdefault(collection, []).append(entry)
        callback(self.query(collection, predicate))

        def unsubscribe() -> None:
            with self._subscriber_lock:
                listeners = self._subscribers.get(collection, [])
                if entry in listeners:
                    listeners.remove(entry)

        return unsubscribe

    def _notify(self, collection: str) -> None:
        with self._subscriber_lock:
            listeners = list(self._subscribers.get(collection, []))
        for callback, predicate in listeners:
            try:
                callback(self.query(collection, predicate))
            except Exception as e:
                logger.warning("Abone bildirimi başarısız (%s): %s", collection, e)
