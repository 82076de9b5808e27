"""
Back Order Schemas
"""
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from .order import ReservationSliceResponse


class BackOrderResponse(BaseModel):
    id: UUID
    order_id: UUID
    product_id: UUID
    quantity_back_ordered: int
    quantity_fulfilled: int
    quantity_outstanding: int
    status: str
    reason: Optional[str]
    reason_details: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class FulfillRequest(BaseModel):
    actor: str


class FulfillResponse(BaseModel):
    back_order_id: UUID
    order_id: UUID
    all_allocated: bool
    allocations: List[ReservationSliceResponse] = []

    class Config:
        from_attributes = True


class ShipmentRequest(BaseModel):
    quantity: int
