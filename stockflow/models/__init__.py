from .base import TimestampMixin, UUIDMixin
from .product import Product
from .master import Location
from .stock import (
    InventoryRecord, InventoryTransaction, Reservation,
    TransactionType, ReservationStatus, ON_HAND_TRANSACTION_TYPES,
)
from .order import OrderHeader, OrderItem, OrderStatusHistory, OrderStatus
from .backorder import BackOrder, BackOrderStatus
from .picking import (
    PickList, PickListItem, PickEvent,
    PickListStatus, PickItemStatus, PickEventType, TERMINAL_ITEM_STATUSES,
)

__all__ = [
    # Base
    "TimestampMixin", "UUIDMixin",
    # Master
    "Product", "Location",
    # Stock
    "InventoryRecord", "InventoryTransaction", "Reservation",
    "TransactionType", "ReservationStatus", "ON_HAND_TRANSACTION_TYPES",
    # Order
    "OrderHeader", "OrderItem", "OrderStatusHistory", "OrderStatus",
    # Back order
    "BackOrder", "BackOrderStatus",
    # Picking
    "PickList", "PickListItem", "PickEvent",
    "PickListStatus", "PickItemStatus", "PickEventType", "TERMINAL_ITEM_STATUSES",
]
