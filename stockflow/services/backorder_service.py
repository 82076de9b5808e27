"""
Back Order Service - surface and settle back orders as stock arrives

Receiving never consumes stock into back orders on its own; it only
reports which pending back orders could now be covered. A person then
fulfils each one, which re-runs allocation for the outstanding quantity.
"""
from dataclasses import dataclass, field
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from stockflow.core import unit_of_work
from stockflow.core.exceptions import (
    ConflictError, InsufficientStockError, NotFoundError, ValidationError
)
from stockflow.models import BackOrder, BackOrderStatus, OrderStatus
from .allocation_service import AllocationService, ReservationSlice
from .inventory_service import InventoryService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


@dataclass
class BackOrderFulfillment:
    back_order_id: UUID
    order_id: UUID
    allocations: List[ReservationSlice] = field(default_factory=list)
    all_allocated: bool = False


class BackOrderService:

    @staticmethod
    def get_back_order(db: Session, back_order_id: UUID) -> BackOrder:
        back_order = db.get(BackOrder, back_order_id)
        if back_order is None:
            raise NotFoundError(f"Back order {back_order_id} not found")
        return back_order

    @staticmethod
    def list_back_orders(
        db: Session,
        status: Optional[str] = None,
        product_id: Optional[UUID] = None,
        order_id: Optional[UUID] = None
    ) -> List[BackOrder]:
        query = db.query(BackOrder)
        if status:
            query = query.filter(BackOrder.status == status)
        if product_id:
            query = query.filter(BackOrder.product_id == product_id)
        if order_id:
            query = query.filter(BackOrder.order_id == order_id)
        return query.order_by(BackOrder.created_at.asc()).all()

    @staticmethod
    def on_stock_received(db: Session, product_id: UUID, location_id: UUID, quantity: int) -> List[BackOrder]:
        """
        Pending back orders for the product that current availability can cover,
        oldest first. Nothing is allocated.
        """
        available = InventoryService.total_available(db, product_id)
        eligible = []
        for back_order in BackOrderService.list_back_orders(
            db, status=BackOrderStatus.PENDING.value, product_id=product_id
        ):
            if back_order.quantity_outstanding <= available:
                eligible.append(back_order)
                available -= back_order.quantity_outstanding

        if eligible:
            logger.info(
                f"Receipt of {quantity} at location {location_id} can cover "
                f"{len(eligible)} pending back order(s) for product {product_id}"
            )
        return eligible

    @staticmethod
    def fulfill_back_order(db: Session, back_order_id: UUID, actor: str) -> BackOrderFulfillment:
        """Allocate stock to a PENDING back order on a person's instruction"""
        if not actor:
            raise ValidationError("actor is required")
        back_order = BackOrderService.get_back_order(db, back_order_id)
        if back_order.status != BackOrderStatus.PENDING.value:
            raise ConflictError(
                f"Back order is not pending (current status: {back_order.status})",
                {"back_order_id": str(back_order.id), "status": back_order.status}
            )

        order = back_order.order
        if order.status != OrderStatus.PENDING.value:
            raise ConflictError(
                f"Order {order.order_number} is {order.status}; back orders can only be allocated while it is PENDING",
                {"order_id": str(order.id), "status": order.status}
            )

        needed = back_order.quantity_outstanding
        available = InventoryService.total_available(db, back_order.product_id)
        if available < needed:
            raise ConflictError(
                f"Insufficient inventory: need {needed} units, only {available} available",
                {"needed": needed, "available": available}
            )

        result = BackOrderFulfillment(back_order_id=back_order.id, order_id=order.id)
        with unit_of_work(db):
            slices, remaining = AllocationService.allocate_product(
                db, order, back_order.product_id, needed, actor,
                reference_type="BACKORDER_ALLOCATION",
                notes=f"Back order allocation for order {order.order_number}"
            )
            if remaining > 0:
                raise InsufficientStockError(
                    "Stock changed while allocating the back order, retry with fresh data",
                    {"needed": needed, "unallocated": remaining}
                )
            result.allocations = slices
            back_order.status = BackOrderStatus.ALLOCATED.value
            db.flush()

            result.all_allocated = AllocationService.advance_if_fully_allocated(
                db, order, actor, "All back orders allocated - Ready for picking"
            )

        logger.info(f"Back order {back_order.id} allocated ({needed} units) for order {order.order_number}")
        return result

    @staticmethod
    def mark_packed(db: Session, back_order_id: UUID) -> BackOrder:
        with unit_of_work(db):
            back_order = BackOrderService.get_back_order(db, back_order_id)
            if back_order.status != BackOrderStatus.ALLOCATED.value:
                raise ConflictError(
                    f"Only ALLOCATED back orders can be packed (current status: {back_order.status})"
                )
            back_order.status = BackOrderStatus.PACKED.value
        return back_order

    @staticmethod
    def record_shipment(db: Session, back_order_id: UUID, quantity: int) -> BackOrder:
        """
        Shipping collaborator entry point: the only way a back order becomes FULFILLED.
        """
        if quantity is None or quantity <= 0:
            raise ValidationError("Shipped quantity must be positive", {"quantity": quantity})

        with unit_of_work(db):
            back_order = BackOrderService.get_back_order(db, back_order_id)
            if back_order.status not in (BackOrderStatus.ALLOCATED.value, BackOrderStatus.PACKED.value):
                raise ConflictError(
                    f"Back order must be ALLOCATED or PACKED to ship (current status: {back_order.status})"
                )
            if quantity > back_order.quantity_outstanding:
                raise ValidationError(
                    "Shipped quantity exceeds the outstanding back-ordered quantity",
                    {"quantity": quantity, "outstanding": back_order.quantity_outstanding}
                )
            back_order.quantity_fulfilled += quantity
            if back_order.quantity_outstanding == 0:
                back_order.status = BackOrderStatus.FULFILLED.value
            NotificationService.notify_after_commit(db, "back_order.shipped", {
                "back_order_id": str(back_order.id),
                "order_id": str(back_order.order_id),
                "quantity": quantity,
                "status": back_order.status,
            })
        return back_order
