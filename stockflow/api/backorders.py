"""
Back Orders API - list, fulfil (re-allocate), pack and ship
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from stockflow.core.database import get_db
from stockflow.schemas.backorder import BackOrderResponse, FulfillRequest, FulfillResponse, ShipmentRequest
from stockflow.services import BackOrderService

router = APIRouter(prefix="/backorders", tags=["Back Orders"])


@router.get("", response_model=List[BackOrderResponse])
def list_back_orders(
    status: Optional[str] = Query(None),
    product_id: Optional[UUID] = Query(None),
    order_id: Optional[UUID] = Query(None),
    db: Session = Depends(get_db)
):
    return BackOrderService.list_back_orders(db, status, product_id, order_id)


@router.post("/{back_order_id}/fulfill", response_model=FulfillResponse)
def fulfill_back_order(back_order_id: UUID, data: FulfillRequest, db: Session = Depends(get_db)):
    result = BackOrderService.fulfill_back_order(db, back_order_id, data.actor)
    return FulfillResponse.model_validate(result, from_attributes=True)


@router.post("/{back_order_id}/pack", response_model=BackOrderResponse)
def pack_back_order(back_order_id: UUID, db: Session = Depends(get_db)):
    return BackOrderService.mark_packed(db, back_order_id)


@router.post("/{back_order_id}/ship", response_model=BackOrderResponse)
def ship_back_order(back_order_id: UUID, data: ShipmentRequest, db: Session = Depends(get_db)):
    return BackOrderService.record_shipment(db, back_order_id, data.quantity)
