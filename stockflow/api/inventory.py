"""
Inventory API - receiving, adjustments, transfers, counts and stock queries
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from stockflow.core.database import get_db
from stockflow.schemas.product import LocationCreate, LocationResponse, ProductCreate, ProductResponse
from stockflow.schemas.stock import (
    AdjustRequest, CycleCountRequest, ReceiveRequest, ReceiveResponse, StockSummary,
    TransactionResponse, TransferRequest
)
from stockflow.services import InventoryService, ProductService, ReceivingService

router = APIRouter(prefix="/inventory", tags=["Inventory"])


# ===================== MASTER DATA =====================

@router.post("/products", response_model=ProductResponse, status_code=201)
def create_product(data: ProductCreate, db: Session = Depends(get_db)):
    return ProductService.create_product(db, data)


@router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(product_id: UUID, db: Session = Depends(get_db)):
    return ProductService.get_product_by_id(db, product_id)


@router.post("/locations", response_model=LocationResponse, status_code=201)
def create_location(data: LocationCreate, db: Session = Depends(get_db)):
    return ProductService.create_location(db, data)


# ===================== MOVEMENTS =====================

@router.post("/receive", response_model=ReceiveResponse)
def receive_stock(data: ReceiveRequest, db: Session = Depends(get_db)):
    """Book inbound stock; pending back orders it could cover are listed, not allocated"""
    result = ReceivingService.receive(
        db, data.product_id, data.location_id, data.quantity, data.actor,
        reference_id=data.reference_id, notes=data.notes
    )
    record = result.record
    return ReceiveResponse(
        product_id=record.product_id,
        location_id=record.location_id,
        on_hand=record.quantity_on_hand,
        reserved=record.quantity_reserved,
        available=max(record.quantity_available, 0),
        eligible_back_orders=[bo.id for bo in result.eligible_back_orders],
    )


@router.post("/adjust", response_model=TransactionResponse)
def adjust_stock(data: AdjustRequest, db: Session = Depends(get_db)):
    return InventoryService.post_adjustment(
        db, data.product_id, data.location_id, data.quantity, data.actor, data.notes
    )


@router.post("/transfer", response_model=List[TransactionResponse])
def transfer_stock(data: TransferRequest, db: Session = Depends(get_db)):
    return InventoryService.transfer(
        db, data.product_id, data.from_location_id, data.to_location_id,
        data.quantity, data.actor, data.notes
    )


@router.post("/count", response_model=TransactionResponse)
def cycle_count(data: CycleCountRequest, db: Session = Depends(get_db)):
    return InventoryService.cycle_count(
        db, data.product_id, data.location_id, data.counted_quantity, data.actor, data.notes
    )


# ===================== QUERIES =====================

@router.get("/summary", response_model=List[StockSummary])
def stock_summary(
    product_id: Optional[UUID] = Query(None),
    location_id: Optional[UUID] = Query(None),
    db: Session = Depends(get_db)
):
    return InventoryService.get_stock_summary(db, product_id, location_id)


@router.get("/transactions", response_model=List[TransactionResponse])
def list_transactions(
    product_id: Optional[UUID] = Query(None),
    location_id: Optional[UUID] = Query(None),
    transaction_type: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db)
):
    return InventoryService.get_transactions(db, product_id, location_id, transaction_type, limit)
