# Services Package
from .inventory_service import InventoryService, rank_locations
from .notification_service import NotificationService
from .order_status_service import OrderStatusService, STATUS_TRANSITIONS, TERMINAL_STATUSES
from .allocation_service import AllocationService, AllocationStrategy, AllocationResult
from .backorder_service import BackOrderService
from .receiving_service import ReceivingService
from .order_service import OrderService
from .product_service import ProductService
from .pick_list_service import PickListService, PickPriority
from .pick_execution_service import PickExecutionService, PickAction
from .reconciliation_service import ReconciliationService

__all__ = [
    "InventoryService", "rank_locations",
    "NotificationService",
    "OrderStatusService", "STATUS_TRANSITIONS", "TERMINAL_STATUSES",
    "AllocationService", "AllocationStrategy", "AllocationResult",
    "BackOrderService",
    "ReceivingService",
    "OrderService",
    "ProductService",
    "PickListService", "PickPriority",
    "PickExecutionService", "PickAction",
    "ReconciliationService",
]
