"""Koleksiyon bazlı kısa ömürlü okuma cache'i.

Her koleksiyon (locations, items, categories, movements, actions) için tek
bir snapshot tutulur. Yazan taraf commit sonrası ilgili anahtarı invalidate
etmekle yükümlüdür. Saat dışarıdan enjekte edilir, testlerde sahte saat
kullanılabilir.

Kayıtlar cache'e girerken ve çıkarken kopyalanır; okuyucuların elindeki
nesneler cache içeriğini değiştiremez. Her invalidate anahtarın nesil
sayacını artırır: okumaya invalidate'ten önce başlamış bir okuyucu
eski snapshot'ı geri yazamaz.
"""

from __future__ import annotations

import copy
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL = 30.0


@dataclass
class CacheEntry:
    data: list
    timestamp: float
    ttl: float


class CollectionCache:
    """TTL'li, açık invalidation destekli koleksiyon cache'i."""

    def __init__(self, ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic):
        if ttl < 0:
            raise ValueError("TTL negatif olamaz")
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._generations: dict[str, int] = {}
        self._global_generation = 0
        self._lock = threading.Lock()

    def generation(self, key: str) -> tuple[int, int]:
        """Anahtarın mevcut nesli; set(..., generation=...) ile birlikte kullanılır."""
        with self._lock:
            return self._global_generation, self._generations.get(key, 0)

    def get(self, key: str) -> Optional[list[Any]]:
        """Taze snapshot varsa kopyasını, yoksa None döndürür."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("Cache miss: %s", key)
                return None
            if self._clock() - entry.timestamp > entry.ttl:
                logger.debug("Cache süresi doldu: %s", key)
                del self._entries[key]
                return None
            logger.debug("Cache hit: %s (%d kayıt)", key, len(entry.data))
            return copy.deepcopy(entry.data)

    def set(
        self,
        key: str,
        data: list[Any],
        ttl: Optional[float] = None,
        generation: Optional[tuple[int, int]] = None,
    ) -> bool:
        """Snapshot'ı yazar.

        generation verilmişse ve o andan beri anahtar invalidate edildiyse
        yazma atlanır ve False döner.
        """
        snapshot = copy.deepcopy(list(data))
        with self._lock:
            current = (self._global_generation, self._generations.get(key, 0))
            if generation is not None and generation != current:
                logger.debug("Cache yazımı atlandı (arada invalidate): %s", key)
                return False
            self._entries[key] = CacheEntry(
                data=snapshot,
                timestamp=self._clock(),
                ttl=self.ttl if ttl is None else ttl,
            )
            return True

    def invalidate(self, key: Optional[str] = None) -> None:
        """Tek bir koleksiyonu ya da (key verilmezse) tüm cache'i boşaltır."""
        with self._lock:
            if key is None:
                self._entries.clear()
                self._global_generation += 1
            else:
                self._entries.pop(key, None)
                self._generations[key] = self._generations.get(key, 0) + 1
        logger.debug("Cache invalidate: %s", key or "*")
