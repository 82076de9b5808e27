"""
Order Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from decimal import Decimal


class OrderItemCreate(BaseModel):
    product_id: UUID
    quantity: int = 1
    unit_price: Decimal = Decimal("0")


class OrderCreate(BaseModel):
    order_number: Optional[str] = None
    customer_name: Optional[str] = None
    items: List[OrderItemCreate] = []


class OrderItemResponse(BaseModel):
    id: UUID
    product_id: UUID
    quantity: int
    unit_price: Decimal

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: UUID
    order_number: str
    status: str
    customer_name: Optional[str]
    total_amount: Decimal
    has_back_orders: bool
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemResponse] = []

    class Config:
        from_attributes = True


class OrderStatusHistoryResponse(BaseModel):
    id: UUID
    previous_status: str
    new_status: str
    changed_by: str
    notes: Optional[str]
    changed_at: datetime

    class Config:
        from_attributes = True


class AllocateRequest(BaseModel):
    actor: str
    strategy: str = "backorder"  # backorder | check
    notes: Optional[str] = None


class ReservationSliceResponse(BaseModel):
    product_id: UUID
    location_id: UUID
    location_name: str
    quantity: int

    class Config:
        from_attributes = True


class InsufficientItemResponse(BaseModel):
    product_id: UUID
    sku: str
    requested: int
    available: int
    shortage: int

    class Config:
        from_attributes = True


class AllocationResponse(BaseModel):
    success: bool
    order_id: UUID
    order_status: str
    has_back_orders: bool
    reservations: List[ReservationSliceResponse] = []
    insufficient_items: List[InsufficientItemResponse] = []
    back_order_ids: List[UUID] = []

    class Config:
        from_attributes = True


class CancelRequest(BaseModel):
    actor: str
    reason: Optional[str] = None


class TransitionRequest(BaseModel):
    actor: str
    new_status: str = Field(..., description="Target order status, e.g. PACKED or SHIPPED")
    notes: Optional[str] = None
