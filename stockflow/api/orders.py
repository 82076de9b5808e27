"""
Orders API - intake, allocation, status changes and cancellation
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from stockflow.core.database import get_db
from stockflow.schemas.order import (
    AllocateRequest, AllocationResponse, CancelRequest, OrderCreate, OrderResponse,
    OrderStatusHistoryResponse, TransitionRequest
)
from stockflow.services import AllocationService, OrderService, OrderStatusService

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("", response_model=OrderResponse, status_code=201)
def create_order(data: OrderCreate, actor: str = Query(...), db: Session = Depends(get_db)):
    return OrderService.create_order(db, data, actor)


@router.get("", response_model=List[OrderResponse])
def list_orders(
    status: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db)
):
    return OrderService.get_orders(db, status, limit)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: UUID, db: Session = Depends(get_db)):
    return OrderService.get_order_by_id(db, order_id)


@router.post("/{order_id}/allocate", response_model=AllocationResponse)
def allocate_order(order_id: UUID, data: AllocateRequest, db: Session = Depends(get_db)):
    """
    Reserve stock for a PENDING order.
    Shortfalls come back as back orders (strategy=backorder) or as
    success=false with insufficient_items and no writes (strategy=check).
    """
    result = AllocationService.allocate_order(db, order_id, data.actor, data.strategy, data.notes)
    return AllocationResponse.model_validate(result, from_attributes=True)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(order_id: UUID, data: CancelRequest, db: Session = Depends(get_db)):
    order, _ = OrderService.cancel_order(db, order_id, data.actor, data.reason)
    return order


@router.post("/{order_id}/status", response_model=OrderResponse)
def transition_order(order_id: UUID, data: TransitionRequest, db: Session = Depends(get_db)):
    """Manual status change for packing/shipping collaborators"""
    return OrderService.transition_order(db, order_id, data.new_status, data.actor, data.notes)


@router.get("/{order_id}/history", response_model=List[OrderStatusHistoryResponse])
def order_history(order_id: UUID, db: Session = Depends(get_db)):
    return OrderStatusService.get_history(db, order_id)
