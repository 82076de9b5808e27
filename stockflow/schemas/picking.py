"""
Picking Schemas
"""
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from uuid import UUID


class GeneratePickListRequest(BaseModel):
    actor: str
    order_ids: Optional[List[UUID]] = None
    assign_to: Optional[str] = None
    max_items: Optional[int] = None
    priority: str = "FIFO"  # FIFO | VALUE
    notes: Optional[str] = None


class PickListItemResponse(BaseModel):
    id: UUID
    order_id: UUID
    product_id: UUID
    location_id: UUID
    quantity_to_pick: int
    quantity_picked: int
    status: str
    pick_sequence: int
    picked_by: Optional[str]
    picked_at: Optional[datetime]
    short_pick_reason: Optional[str]

    class Config:
        from_attributes = True


class PickListResponse(BaseModel):
    id: UUID
    batch_number: str
    status: str
    assigned_to: Optional[str]
    total_items: int
    picked_items: int
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    notes: Optional[str]
    items: List[PickListItemResponse] = []

    class Config:
        from_attributes = True


class PickRequest(BaseModel):
    action: str  # PICK | SHORT_PICK | SKIP
    actor: str
    quantity: Optional[int] = None
    reason: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None


class PickResultResponse(BaseModel):
    item: PickListItemResponse
    pick_list_status: str
    picked_items: int
    total_items: int
    quantity_picked: int
    list_completed: bool


class PickListActionRequest(BaseModel):
    actor: str
    notes: Optional[str] = None


class ReassignRequest(BaseModel):
    actor: str
    new_assignee: str
    reason: str
    notes: Optional[str] = None


class PickProgressResponse(BaseModel):
    pick_list_id: UUID
    batch_number: str
    status: str
    total_items: int
    picked_items: int
    pending_items: int
    short_picks: int
    skipped_items: int
    units_to_pick: int
    units_picked: int
    completion_rate: float

    class Config:
        from_attributes = True
