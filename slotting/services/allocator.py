"""Lokasyon skorlama ve optimal lokasyon seçimi.

Zemin yerleştirmeleri: en az dolu yığın önce, sonra A satırı / 1. bölmeye
yakınlık. Raf yerleştirmeleri: mesafe + kapasite kullanım cezası + yükseklik
cezası toplamı en düşük olan lokasyon. Eşit skorlar lokasyon koduna göre
artan sırada çözülür; sonuç aday listesinin sırasından bağımsızdır.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from slotting.models.warehouse import MAX_GROUND_ITEMS, Location, ScoringWeights

logger = logging.getLogger(__name__)


class LocationAllocator:
    """Yerleştirme talebi için en uygun lokasyonu seçer."""

    def __init__(self, weights: Optional[ScoringWeights] = None):
        self.weights = weights or ScoringWeights()

    # --- Mesafe ---

    @staticmethod
    def ground_distance(location: Location) -> int:
        return location.row_ordinal * 100 + location.bay_number

    @staticmethod
    def shelf_distance(location: Location) -> int:
        return location.row_ordinal * 100 + (location.bay_number - 1)

    # --- Skor ---

    def level_capacity(self, location: Location) -> float:
        """Skorlamada kullanılan seviye kapasitesi (kurulumda ezilebilir)."""
        return self.weights.level_max_weights.get(location.level, location.max_weight)

    def score_location(self, location: Location, weight: float) -> float:
        """Raf lokasyonu için kompozit skor; düşük olan daha iyi."""
        new_weight = location.current_weight + weight
        utilization_penalty = (
            abs(self.level_capacity(location) - new_weight) * self.weights.utilization_weight
        )
        height_penalty = weight * location.level_number * self.weights.height_weight
        return self.shelf_distance(location) + utilization_penalty + height_penalty

    # --- Seçim ---

    def rank_ground_locations(self, candidates: Iterable[Location]) -> list[Location]:
        eligible = [
            loc for loc in candidates
            if loc.available and loc.verified
            and loc.is_ground_level and loc.stack_count < MAX_GROUND_ITEMS
        ]
        eligible.sort(key=lambda loc: (loc.stack_count, self.ground_distance(loc), loc.code))
        return eligible

    def rank_shelf_locations(self, candidates: Iterable[Location], weight: float) -> list[Location]:
        eligible = [
            loc for loc in candidates
            if loc.available and loc.verified
            and not loc.is_ground_level
            and loc.current_weight + weight <= loc.max_weight
        ]
        eligible.sort(key=lambda loc: (self.score_location(loc, weight), loc.code))
        return eligible

    def find_optimal_location(
        self,
        candidates: Iterable[Location],
        weight: float,
        is_ground_level: bool = False,
    ) -> Optional[Location]:
        """Aday listesinden en iyi lokasyonu döndürür; uygun aday yoksa None."""
        if is_ground_level:
            ranked = self.rank_ground_locations(candidates)
        else:
            ranked = self.rank_shelf_locations(candidates, weight)

        if not ranked:
            logger.debug("Uygun lokasyon bulunamadı (ağırlık=%s, zemin=%s)", weight, is_ground_level)
            return None
        return ranked[0]


def find_optimal_location(
    candidates: Iterable[Location],
    weight: float,
    is_ground_level: bool = False,
    weights: Optional[ScoringWeights] = None,
) -> Optional[Location]:
    return LocationAllocator(weights).find_optimal_location(candidates, weight, is_ground_level)
