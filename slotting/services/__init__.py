from slotting.services.actions import ActionQueue
from slotting.services.allocator import LocationAllocator
from slotting.services.categories import CategoryRepository
from slotting.services.ground_stack import GroundStackManager
from slotting.services.items import ItemRegistry
from slotting.services.kanban import KanbanQuantityTransactor
from slotting.services.movements import MovementLedger
from slotting.services.occupancy import LocationOccupancyStore
from slotting.services.warehouse import WarehouseService

__all__ = [
    "ActionQueue",
    "CategoryRepository",
    "GroundStackManager",
    "ItemRegistry",
    "KanbanQuantityTransactor",
    "LocationAllocator",
    "LocationOccupancyStore",
    "MovementLedger",
    "WarehouseService",
]
