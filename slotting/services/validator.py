"""Kapasite ve uygunluk doğrulaması.

Saf fonksiyonlar: yan etkisi yok, eşzamanlı çağrılabilir.
"""

from __future__ import annotations

from typing import Optional

from slotting.exceptions import CapacityError
from slotting.models.warehouse import (
    MAX_GROUND_ITEMS,
    Location,
    PlacementRejection,
    RejectionReason,
)


def _format_kg(value: float) -> str:
    return f"{value:g}"


def validate_location_for_item(
    location: Location, weight: float, is_ground_level: bool
) -> Optional[PlacementRejection]:
    """Lokasyonun istenen yerleştirme için uygun olup olmadığını kontrol eder.

    Uygunsa None, değilse reddin nedenini içeren PlacementRejection döndürür.
    Dolu bir zemin yığını müsait değil olarak işaretlidir; zemin talebinde
    bu durum daha belirgin olan StackFull nedeniyle raporlanır.
    """
    stack_full = location.is_ground_level and location.stack_count >= MAX_GROUND_ITEMS

    if not location.available and not (is_ground_level and stack_full):
        return PlacementRejection(RejectionReason.NOT_AVAILABLE, "Lokasyon müsait değil")

    if not location.verified:
        return PlacementRejection(RejectionReason.NOT_VERIFIED, "Lokasyon doğrulanmamış")

    if is_ground_level:
        if not location.is_ground_level:
            return PlacementRejection(
                RejectionReason.WRONG_LEVEL, "Ürün zemin seviyesinde saklanmalı"
            )
        if stack_full:
            return PlacementRejection(
                RejectionReason.STACK_FULL,
                f"Zemin lokasyonu maksimum kapasitede ({MAX_GROUND_ITEMS} ürün)",
            )
        return None

    if location.is_ground_level:
        return PlacementRejection(
            RejectionReason.WRONG_LEVEL, "Ürün zemin seviyesinde saklanamaz"
        )

    if location.current_weight + weight > location.max_weight:
        remaining = location.remaining_weight
        return PlacementRejection(
            RejectionReason.WEIGHT_EXCEEDED,
            f"Ağırlık ({_format_kg(weight)}kg) lokasyon kapasitesini aşıyor "
            f"({_format_kg(remaining)}kg müsait)",
            available_weight=remaining,
        )

    return None


def require_eligible(location: Location, weight: float, is_ground_level: bool) -> None:
    """validate_location_for_item sonucunu CapacityError olarak fırlatır."""
    rejection = validate_location_for_item(location, weight, is_ground_level)
    if rejection is not None:
        raise CapacityError(rejection)
