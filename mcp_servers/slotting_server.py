"""
Slotting MCP Server

Lokasyon seçimi, uygunluk doğrulaması, doluluk commit'leri ve Kanban miktar
işlemleri için araçlar sunar. Tüm yazmalar WarehouseService üzerinden
transaction olarak yapılır.

Tables used: Locations, Items, Categories, Movements, Notifications, Actions
"""

import dataclasses
import json
import logging
import math
from enum import Enum
from typing import Dict, List, Optional

from mcp.server import Server
from mcp.types import TextContent, Tool

from slotting.exceptions import SlottingError
from slotting.services.warehouse import WarehouseService

logger = logging.getLogger(__name__)

app = Server("warehouse-slotting")

_service: Optional[WarehouseService] = None


def get_service() -> WarehouseService:
    """Servisi ilk kullanımda ortam ayarlarıyla oluşturur."""
    global _service
    if _service is None:
        _service = WarehouseService.from_settings()
    return _service


def set_service(service: Optional[WarehouseService]) -> None:
    global _service
    _service = service


def _to_json(obj):
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return _to_json(dataclasses.asdict(obj))
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, float) and math.isinf(obj):
        return None
    if isinstance(obj, dict):
        return {k: _to_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_json(i) for i in obj]
    return obj


def _result(data):
    return [TextContent(type="text", text=json.dumps(_to_json(data), indent=2, ensure_ascii=False))]


def _error(e: SlottingError) -> Dict:
    return {"success": False, "error": str(e), "code": e.code}


@app.list_tools()
async def list_tools() -> List[Tool]:
    return [
        Tool(name="find_optimal_location", description="Find the best eligible location for a placement request",
             inputSchema={"type": "object", "properties": {
                 "weight": {"type": "number", "minimum": 0},
                 "is_ground_level": {"type": "boolean", "default": False}
             }, "required": ["weight"]}),
        Tool(name="validate_location_for_item", description="Check whether a location can take the requested load",
             inputSchema={"type": "object", "properties": {
                 "location_code": {"type": "string"}, "weight": {"type": "number", "minimum": 0},
                 "is_ground_level": {"type": "boolean", "default": False}
             }, "required": ["location_code", "weight"]}),
        Tool(name="commit_placement", description="Transactionally add load (or a stacked item) to a location",
             inputSchema={"type": "object", "properties": {
                 "location_id": {"type": "string"}, "weight": {"type": "number"},
                 "item_ref": {"type": "string"}
             }, "required": ["location_id", "weight"]}),
        Tool(name="commit_removal", description="Transactionally release load (or a stacked item) from a location",
             inputSchema={"type": "object", "properties": {
                 "location_id": {"type": "string"}, "weight": {"type": "number"},
                 "item_ref": {"type": "string"}
             }, "required": ["location_id", "weight"]}),
        Tool(name="propose_quantity_change", description="Compute and classify a Kanban quantity change without writing",
             inputSchema={"type": "object", "properties": {
                 "category_id": {"type": "string"}, "delta": {"type": "integer"}
             }, "required": ["category_id", "delta"]}),
        Tool(name="commit_quantity_change", description="Commit a previously proposed Kanban quantity change",
             inputSchema={"type": "object", "properties": {
                 "proposal_id": {"type": "string"}, "reference": {"type": "string"},
                 "operator": {"type": "string"}
             }, "required": ["proposal_id"]}),
        Tool(name="abort_quantity_change", description="Discard a pending Kanban quantity proposal",
             inputSchema={"type": "object", "properties": {"proposal_id": {"type": "string"}},
                          "required": ["proposal_id"]}),
        Tool(name="get_locations", description="List locations, optionally only available ones for a weight",
             inputSchema={"type": "object", "properties": {
                 "available_for_weight": {"type": "number", "minimum": 0}
             }}),
        Tool(name="get_category", description="Get a category with its Kanban rules",
             inputSchema={"type": "object", "properties": {"category_id": {"type": "string"}},
                          "required": ["category_id"]}),
        Tool(name="get_items_by_location", description="List items placed at a location code",
             inputSchema={"type": "object", "properties": {"location_code": {"type": "string"}},
                          "required": ["location_code"]}),
        Tool(name="get_recent_movements", description="Get the most recent movement ledger entries",
             inputSchema={"type": "object", "properties": {"limit": {"type": "integer", "default": 20}}}),
        Tool(name="get_pending_actions", description="List open put-away and pick tasks, newest first",
             inputSchema={"type": "object", "properties": {}}),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: dict) -> List[TextContent]:
    handlers = {
        "find_optimal_location": lambda a: find_optimal_location(a["weight"], a.get("is_ground_level", False)),
        "validate_location_for_item": lambda a: validate_location_for_item(a["location_code"], a["weight"], a.get("is_ground_level", False)),
        "commit_placement": lambda a: commit_placement(a["location_id"], a["weight"], a.get("item_ref")),
        "commit_removal": lambda a: commit_removal(a["location_id"], a["weight"], a.get("item_ref")),
        "propose_quantity_change": lambda a: propose_quantity_change(a["category_id"], a["delta"]),
        "commit_quantity_change": lambda a: commit_quantity_change(a["proposal_id"], a.get("reference", ""), a.get("operator", "System")),
        "abort_quantity_change": lambda a: abort_quantity_change(a["proposal_id"]),
        "get_locations": lambda a: get_locations(a.get("available_for_weight")),
        "get_category": lambda a: get_category(a["category_id"]),
        "get_items_by_location": lambda a: get_items_by_location(a["location_code"]),
        "get_recent_movements": lambda a: get_recent_movements(a.get("limit", 20)),
        "get_pending_actions": lambda a: get_pending_actions(),
    }
    handler = handlers.get(name)
    if not handler:
        raise ValueError(f"Unknown tool: {name}")
    return _result(handler(arguments))


# --- Implementation ---

def find_optimal_location(weight: float, is_ground_level: bool = False) -> Dict:
    try:
        location = get_service().find_optimal_location(weight, is_ground_level)
    except SlottingError as e:
        return _error(e)
    return {"success": True, "found": location is not None, "location": location}


def validate_location_for_item(location_code: str, weight: float, is_ground_level: bool = False) -> Dict:
    try:
        rejection = get_service().validate_location_for_item(location_code, weight, is_ground_level)
    except SlottingError as e:
        return _error(e)
    return {"success": True, "eligible": rejection is None, "rejection": rejection}


def commit_placement(location_id: str, weight: float, item_ref: str = None) -> Dict:
    """Doluluk commit'i. Uygunluk kontrolü çağıranın sorumluluğunda."""
    try:
        location = get_service().locations.commit_placement(location_id, weight, item_ref)
    except SlottingError as e:
        logger.warning("Yerleştirme commit'i başarısız (%s): %s", location_id, e)
        return _error(e)
    return {"success": True, "location": location}


def commit_removal(location_id: str, weight: float, item_ref: str = None) -> Dict:
    try:
        location = get_service().locations.commit_removal(location_id, weight, item_ref)
    except SlottingError as e:
        logger.warning("Çıkarma commit'i başarısız (%s): %s", location_id, e)
        return _error(e)
    return {"success": True, "location": location}


def propose_quantity_change(category_id: str, delta: int) -> Dict:
    try:
        proposal = get_service().propose_quantity_change(category_id, delta)
    except SlottingError as e:
        return _error(e)
    return {"success": True, "requires_confirmation": proposal.requires_confirmation, "proposal": proposal}


def commit_quantity_change(proposal_id: str, reference: str = "", operator: str = "System") -> Dict:
    try:
        result = get_service().commit_quantity_change(proposal_id, reference, operator)
    except SlottingError as e:
        return _error(e)
    return {"success": True, "result": result}


def abort_quantity_change(proposal_id: str) -> Dict:
    try:
        proposal = get_service().abort_quantity_change(proposal_id)
    except SlottingError as e:
        return _error(e)
    return {"success": True, "aborted": proposal}


def get_locations(available_for_weight: float = None) -> Dict:
    locations = get_service().locations
    if available_for_weight is None:
        data = locations.get_locations()
    else:
        data = locations.get_available_locations(available_for_weight)
    return {"success": True, "count": len(data), "data": data}


def get_category(category_id: str) -> Dict:
    category = get_service().categories.get_category_by_id(category_id)
    if category is None:
        return {"success": False, "error": f"Category not found: {category_id}", "code": "CategoryNotFound"}
    return {"success": True, "category": category}


def get_items_by_location(location_code: str) -> Dict:
    try:
        items = get_service().items.get_items_by_location(location_code)
    except SlottingError as e:
        return _error(e)
    return {"success": True, "count": len(items), "data": items}


def get_recent_movements(limit: int = 20) -> Dict:
    movements = get_service().movements.get_recent_movements(limit)
    return {"success": True, "count": len(movements), "data": movements}


def get_pending_actions() -> Dict:
    actions = get_service().get_pending_actions()
    return {"success": True, "count": len(actions), "data": actions}


if __name__ == "__main__":
    import asyncio
    from mcp.server.stdio import stdio_server

    async def run():
        async with stdio_server() as (read, write):
            await app.run(read, write, app.create_initialization_options())

    asyncio.run(run())
