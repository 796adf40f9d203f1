"""Depo lokasyonu, ürün ve Kanban stok veri modelleri.

Store dokümanları camelCase alan adlarıyla saklanır (locations, items,
categories, movements, actions koleksiyonları); dataclass'lar snake_case kullanır.
Dönüşüm her modelin from_document / to_document metotlarındadır.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

GROUND_LEVEL = "0"
MAX_GROUND_ITEMS = 6

# Seviye bazında taşıma kapasitesi (kg). Zemin seviyesi ağırlıkla değil adetle sınırlı.
LEVEL_MAX_WEIGHTS: dict[str, float] = {
    "0": math.inf,
    "1": 1500.0,
    "2": 1000.0,
    "3": 750.0,
    "4": 500.0,
}


class ItemStatus(str, Enum):
    PENDING = "pending"
    PLACED = "placed"
    REMOVED = "removed"


class MovementType(str, Enum):
    IN = "IN"
    OUT = "OUT"


class ThresholdKind(str, Enum):
    REORDER = "reorder"
    CRITICAL = "critical"


class RejectionReason(str, Enum):
    NOT_AVAILABLE = "NotAvailable"
    NOT_VERIFIED = "NotVerified"
    WRONG_LEVEL = "WrongLevel"
    STACK_FULL = "StackFull"
    WEIGHT_EXCEEDED = "WeightExceeded"


def compute_available(level: str, current_weight: float, stacked_items: list[str]) -> bool:
    """Lokasyonun müsaitlik bayrağını doluluk alanlarından türetir."""
    if level == GROUND_LEVEL:
        return len(stacked_items) < MAX_GROUND_ITEMS
    return current_weight == 0


def _as_float(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    return float(value)


@dataclass
class Location:
    id: str
    code: str
    row: str
    bay: str
    level: str
    position: str
    max_weight: float
    current_weight: float = 0.0
    available: bool = True
    verified: bool = True
    stacked_items: list[str] = field(default_factory=list)

    @property
    def is_ground_level(self) -> bool:
        return self.level == GROUND_LEVEL

    @property
    def level_number(self) -> int:
        return int(self.level)

    @property
    def bay_number(self) -> int:
        return int(self.bay)

    @property
    def row_ordinal(self) -> int:
        """'A' satırı 0 olacak şekilde satır harfinin sırası."""
        return ord(self.row[0].upper()) - ord("A")

    @property
    def stack_count(self) -> int:
        return len(self.stacked_items)

    @property
    def remaining_weight(self) -> float:
        return self.max_weight - self.current_weight

    @staticmethod
    def build_code(row: str, bay: str, level: str, position: str) -> str:
        """ROW+BAY-LEVEL-POSITION formatında lokasyon kodu üretir (örn. A01-2-3)."""
        return f"{row}{bay}-{level}-{position}"

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> "Location":
        """Store dokümanından lokasyon oluşturur.

        Zemin kayıtları normalize edilir (max_weight sonsuz, stackedItems
        varsayılan boş liste) ve available bayrağı saklanan değere güvenilmeden
        yeniden hesaplanır.
        """
        level = str(data.get("level", ""))
        stacked = list(data.get("stackedItems") or [])
        current = max(0.0, _as_float(data.get("currentWeight")))
        if level == GROUND_LEVEL:
            max_weight = math.inf
        else:
            max_weight = _as_float(data.get("maxWeight"), LEVEL_MAX_WEIGHTS.get(level, 0.0))
        return cls(
            id=doc_id,
            code=data.get("code", ""),
            row=data.get("row", ""),
            bay=str(data.get("bay", "")),
            level=level,
            position=str(data.get("location", "")),
            max_weight=max_weight,
            current_weight=current,
            available=compute_available(level, current, stacked),
            verified=bool(data.get("verified", False)),
            stacked_items=stacked,
        )

    def to_document(self) -> dict:
        return {
            "code": self.code,
            "row": self.row,
            "bay": self.bay,
            "level": self.level,
            "location": self.position,
            "maxWeight": self.max_weight,
            "currentWeight": self.current_weight,
            "available": self.available,
            "verified": self.verified,
            "stackedItems": list(self.stacked_items),
        }


@dataclass
class ItemMetadata:
    coil_number: Optional[str] = None
    coil_length: Optional[str] = None
    is_ground_level: bool = False

    @classmethod
    def from_document(cls, data: Optional[dict]) -> "ItemMetadata":
        data = data or {}
        return cls(
            coil_number=data.get("coilNumber"),
            coil_length=data.get("coilLength"),
            is_ground_level=bool(data.get("isGroundLevel", False)),
        )

    def to_document(self) -> dict:
        doc: dict[str, Any] = {"isGroundLevel": self.is_ground_level}
        if self.coil_number is not None:
            doc["coilNumber"] = self.coil_number
        if self.coil_length is not None:
            doc["coilLength"] = self.coil_length
        return doc


@dataclass
class Item:
    id: str
    item_code: str
    system_code: str
    description: str
    weight: float
    category: str
    status: ItemStatus = ItemStatus.PENDING
    location: Optional[str] = None
    location_verified: bool = False
    metadata: ItemMetadata = field(default_factory=ItemMetadata)
    department: Optional[str] = None
    last_updated: Optional[str] = None

    @property
    def is_ground_level(self) -> bool:
        return self.metadata.is_ground_level

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> "Item":
        return cls(
            id=doc_id,
            item_code=data.get("itemCode", ""),
            system_code=data.get("systemCode", ""),
            description=data.get("description", ""),
            weight=_as_float(data.get("weight")),
            category=data.get("category", ""),
            status=ItemStatus(data.get("status", ItemStatus.PENDING.value)),
            location=data.get("location"),
            location_verified=bool(data.get("locationVerified", False)),
            metadata=ItemMetadata.from_document(data.get("metadata")),
            department=data.get("department"),
            last_updated=data.get("lastUpdated"),
        )

    def to_document(self) -> dict:
        return {
            "itemCode": self.item_code,
            "systemCode": self.system_code,
            "description": self.description,
            "weight": self.weight,
            "category": self.category,
            "status": self.status.value,
            "location": self.location,
            "locationVerified": self.location_verified,
            "metadata": self.metadata.to_document(),
            "department": self.department,
            "lastUpdated": self.last_updated,
        }


@dataclass
class KanbanRules:
    goods_in: bool
    min_quantity: int
    max_quantity: int
    reorder_point: int
    reorder_quantity: int
    current_quantity: int = 0
    fixed_locations: list[str] = field(default_factory=list)

    @classmethod
    def from_document(cls, data: dict) -> "KanbanRules":
        return cls(
            goods_in=bool(data.get("goodsIn", False)),
            min_quantity=int(data.get("minQuantity", 0)),
            max_quantity=int(data.get("maxQuantity", 0)),
            reorder_point=int(data.get("reorderPoint", 0)),
            reorder_quantity=int(data.get("reorderQuantity", 0)),
            current_quantity=int(data.get("currentQuantity", 0)),
            fixed_locations=list(data.get("fixedLocations") or []),
        )

    def to_document(self) -> dict:
        return {
            "goodsIn": self.goods_in,
            "minQuantity": self.min_quantity,
            "maxQuantity": self.max_quantity,
            "reorderPoint": self.reorder_point,
            "reorderQuantity": self.reorder_quantity,
            "currentQuantity": self.current_quantity,
            "fixedLocations": list(self.fixed_locations),
        }


@dataclass
class Category:
    id: str
    name: str
    prefix: str
    description: str = ""
    is_default: bool = False
    kanban_rules: Optional[KanbanRules] = None

    @property
    def is_kanban(self) -> bool:
        return self.kanban_rules is not None and self.kanban_rules.goods_in

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> "Category":
        rules = data.get("kanbanRules")
        return cls(
            id=doc_id,
            name=data.get("name", ""),
            prefix=data.get("prefix", ""),
            description=data.get("description", ""),
            is_default=bool(data.get("isDefault", False)),
            kanban_rules=KanbanRules.from_document(rules) if rules else None,
        )

    def to_document(self) -> dict:
        return {
            "name": self.name,
            "prefix": self.prefix,
            "description": self.description,
            "isDefault": self.is_default,
            "kanbanRules": self.kanban_rules.to_document() if self.kanban_rules else None,
        }


@dataclass
class Movement:
    id: str
    item_id: str
    type: MovementType
    weight: float
    operator: str
    reference: str
    notes: Optional[str] = None
    quantity: Optional[int] = None
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> "Movement":
        quantity = data.get("quantity")
        return cls(
            id=doc_id,
            item_id=data.get("itemId", ""),
            type=MovementType(data.get("type", MovementType.IN.value)),
            weight=_as_float(data.get("weight")),
            operator=data.get("operator", ""),
            reference=data.get("reference", ""),
            notes=data.get("notes"),
            quantity=int(quantity) if quantity is not None else None,
            timestamp=data.get("timestamp", ""),
        )

    def to_document(self) -> dict:
        doc: dict[str, Any] = {
            "itemId": self.item_id,
            "type": self.type.value,
            "weight": self.weight,
            "operator": self.operator,
            "reference": self.reference,
            "timestamp": self.timestamp,
        }
        if self.notes is not None:
            doc["notes"] = self.notes
        if self.quantity is not None:
            doc["quantity"] = self.quantity
        return doc


class ActionType(str, Enum):
    IN = "in"
    OUT = "out"


class ActionStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


@dataclass
class WarehouseAction:
    """Operatör iş kuyruğundaki yerleştirme / toplama görevi."""

    id: str
    item_id: str
    item_code: str
    system_code: str
    category: str
    action_type: ActionType
    status: ActionStatus = ActionStatus.PENDING
    description: str = ""
    weight: float = 0.0
    location: Optional[str] = None
    operator: Optional[str] = None
    department: Optional[str] = None
    is_ground_level: bool = False
    quantity: Optional[int] = None
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> "WarehouseAction":
        metadata = data.get("metadata") or {}
        quantity = metadata.get("quantity")
        return cls(
            id=doc_id,
            item_id=data.get("itemId", ""),
            item_code=data.get("itemCode", ""),
            system_code=data.get("systemCode", ""),
            category=data.get("category", ""),
            action_type=ActionType(data.get("actionType", ActionType.IN.value)),
            status=ActionStatus(data.get("status", ActionStatus.PENDING.value)),
            description=data.get("description") or "",
            weight=_as_float(data.get("weight")),
            location=data.get("location"),
            operator=data.get("operator"),
            department=data.get("department"),
            is_ground_level=bool(metadata.get("isGroundLevel", False)),
            quantity=int(quantity) if quantity is not None else None,
            timestamp=data.get("timestamp", ""),
        )

    def to_document(self) -> dict:
        metadata: dict[str, Any] = {"isGroundLevel": self.is_ground_level}
        if self.quantity is not None:
            metadata["quantity"] = self.quantity
        return {
            "itemId": self.item_id,
            "itemCode": self.item_code,
            "systemCode": self.system_code,
            "description": self.description,
            "category": self.category,
            "weight": self.weight,
            "location": self.location,
            "actionType": self.action_type.value,
            "status": self.status.value,
            "operator": self.operator,
            "department": self.department,
            "metadata": metadata,
            "timestamp": self.timestamp,
        }


@dataclass
class PlacementRejection:
    reason: RejectionReason
    message: str
    available_weight: Optional[float] = None


@dataclass
class ScoringWeights:
    """Raf skorlamasında kullanılan ağırlık katsayıları."""

    utilization_weight: float = 2.0
    height_weight: float = 3.0
    level_max_weights: dict[str, float] = field(
        default_factory=lambda: dict(LEVEL_MAX_WEIGHTS)
    )


@dataclass
class StockAlert:
    category_id: str
    category_name: str
    kind: ThresholdKind
    new_quantity: int
    min_quantity: int
    reorder_point: int
    reorder_quantity: int
    fixed_locations: list[str]
    subject: str
    body: str


@dataclass
class QuantityProposal:
    proposal_id: str
    category_id: str
    category_name: str
    delta: int
    current_quantity: int
    new_quantity: int
    threshold: Optional[ThresholdKind]
    created_at: float
    expires_at: float
    alert: Optional[StockAlert] = None

    @property
    def requires_confirmation(self) -> bool:
        return self.threshold is not None


@dataclass
class QuantityCommit:
    category_id: str
    previous_quantity: int
    new_quantity: int
    threshold: Optional[ThresholdKind]
    updated_at: str
    alert: Optional[StockAlert] = None
