"""
Receiving Service - book inbound stock and surface back orders it could cover
"""
from dataclasses import dataclass, field
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from stockflow.models import BackOrder, InventoryRecord
from .inventory_service import InventoryService
from .backorder_service import BackOrderService
from .notification_service import NotificationService


@dataclass
class ReceiptResult:
    record: InventoryRecord
    eligible_back_orders: List[BackOrder] = field(default_factory=list)


class ReceivingService:

    @staticmethod
    def receive(
        db: Session,
        product_id: UUID,
        location_id: UUID,
        quantity: int,
        actor: str,
        reference_id: Optional[str] = None,
        notes: Optional[str] = None
    ) -> ReceiptResult:
        record = InventoryService.receive(
            db, product_id, location_id, quantity, actor,
            reference_id=reference_id, notes=notes
        )
        eligible = BackOrderService.on_stock_received(db, product_id, location_id, quantity)
        if eligible:
            NotificationService.send("back_order.stock_available", {
                "product_id": str(product_id),
                "location_id": str(location_id),
                "quantity_received": quantity,
                "back_orders": [str(bo.id) for bo in eligible],
            })
        return ReceiptResult(record=record, eligible_back_orders=eligible)
