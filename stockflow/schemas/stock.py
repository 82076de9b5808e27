"""
Stock Schemas
"""
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from uuid import UUID


class ReceiveRequest(BaseModel):
    product_id: UUID
    location_id: UUID
    quantity: int
    actor: str
    reference_id: Optional[str] = None
    notes: Optional[str] = None


class ReceiveResponse(BaseModel):
    product_id: UUID
    location_id: UUID
    on_hand: int
    reserved: int
    available: int
    eligible_back_orders: List[UUID] = []


class AdjustRequest(BaseModel):
    product_id: UUID
    location_id: UUID
    quantity: int  # signed
    actor: str
    notes: Optional[str] = None


class TransferRequest(BaseModel):
    product_id: UUID
    from_location_id: UUID
    to_location_id: UUID
    quantity: int
    actor: str
    notes: Optional[str] = None


class CycleCountRequest(BaseModel):
    product_id: UUID
    location_id: UUID
    counted_quantity: int
    actor: str
    notes: Optional[str] = None


class StockSummary(BaseModel):
    product_id: UUID
    sku: str
    location_id: UUID
    location_name: str
    on_hand: int
    reserved: int
    available: int

    class Config:
        from_attributes = True


class TransactionResponse(BaseModel):
    id: UUID
    product_id: UUID
    location_id: UUID
    transaction_type: str
    quantity_change: int
    reference_type: Optional[str]
    reference_id: Optional[str]
    actor: Optional[str]
    notes: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True
