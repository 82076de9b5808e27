# Pydantic Schemas Package
from .product import ProductCreate, ProductResponse, LocationCreate, LocationResponse
from .order import (
    OrderCreate, OrderItemCreate, OrderResponse, OrderStatusHistoryResponse,
    AllocateRequest, AllocationResponse, CancelRequest, TransitionRequest,
)
from .stock import (
    ReceiveRequest, ReceiveResponse, AdjustRequest, TransferRequest, CycleCountRequest,
    StockSummary, TransactionResponse,
)
from .picking import (
    GeneratePickListRequest, PickListResponse, PickRequest, PickResultResponse,
    PickListActionRequest, ReassignRequest, PickProgressResponse,
)
from .backorder import BackOrderResponse, FulfillRequest, FulfillResponse, ShipmentRequest

__all__ = [
    "ProductCreate", "ProductResponse", "LocationCreate", "LocationResponse",
    "OrderCreate", "OrderItemCreate", "OrderResponse", "OrderStatusHistoryResponse",
    "AllocateRequest", "AllocationResponse", "CancelRequest", "TransitionRequest",
    "ReceiveRequest", "ReceiveResponse", "AdjustRequest", "TransferRequest", "CycleCountRequest",
    "StockSummary", "TransactionResponse",
    "GeneratePickListRequest", "PickListResponse", "PickRequest", "PickResultResponse",
    "PickListActionRequest", "ReassignRequest", "PickProgressResponse",
    "BackOrderResponse", "FulfillRequest", "FulfillResponse", "ShipmentRequest",
]
