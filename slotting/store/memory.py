"""Bellek içi doküman store'u - testler ve yerel çalışma için."""

from __future__ import annotations

import copy
import threading
import uuid
from typing import Optional

from slotting.store.base import Document, DocumentStore, Mutation, Predicate


class InMemoryDocumentStore(DocumentStore):
    """Thread-safe, doküman başına kilitli bellek içi store.

    transact() aynı doküman üzerindeki çağrıları sıraya koyar; farklı
    dokümanlar birbirini beklemez. Okuma ve yazmalar derin kopya ile yapılır,
    çağıran taraf saklanan veriyi yerinde değiştiremez.
    """

    def __init__(self) -> None:
        super().__init__()
        self._data: dict[str, dict[str, Document]] = {}
        self._versions: dict[tuple[str, str], int] = {}
        self._lock = threading.RLock()
        self._doc_locks: dict[tuple[str, str], threading.Lock] = {}

    def _doc_lock(self, collection: str, doc_id: str) -> threading.Lock:
        with self._lock:
            key = (collection, doc_id)
            if key not in self._doc_locks:
                self._doc_locks[key] = threading.Lock()
            return self._doc_locks[key]

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        with self._lock:
            doc = self._data.get(collection, {}).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def version(self, collection: str, doc_id: str) -> int:
        with self._lock:
            return self._versions.get((collection, doc_id), 0)

    def create(self, collection: str, data: Document) -> str:
        doc_id = uuid.uuid4().hex
        with self._lock:
            stored = copy.deepcopy(data)
            stored["id"] = doc_id
            self._data.setdefault(collection, {})[doc_id] = stored
            self._versions[(collection, doc_id)] = 1
        self._notify(collection)
        return doc_id

    def delete(self, collection: str, doc_id: str) -> None:
        with self._doc_lock(collection, doc_id):
            with self._lock:
                self._data.get(collection, {}).pop(doc_id, None)
                self._versions.pop((collection, doc_id), None)
        self._notify(collection)

    def query(self, collection: str, predicate: Optional[Predicate] = None) -> list[Document]:
        with self._lock:
            docs = [copy.deepcopy(d) for d in self._data.get(collection, {}).values()]
        if predicate is None:
            return docs
        return [d for d in docs if predicate(d)]

    def transact(self, collection: str, doc_id: str, mutation: Mutation) -> Document:
        with self._doc_lock(collection, doc_id):
            current = self.get(collection, doc_id)
            new_doc = copy.deepcopy(mutation(current))
            new_doc["id"] = doc_id
            with self._lock:
                self._data.setdefault(collection, {})[doc_id] = new_doc
                key = (collection, doc_id)
                self._versions[key] = self._versions.get(key, 0) + 1
            result = copy.deepcopy(new_doc)
        self._notify(collection)
        return result
