"""
Order Service - order intake and cancellation
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from stockflow.core import unit_of_work
from stockflow.core.exceptions import ConflictError, NotFoundError, ValidationError
from stockflow.models import (
    BackOrder, BackOrderStatus, OrderHeader, OrderItem, OrderStatus, Product,
    Reservation, ReservationStatus, TransactionType
)
from stockflow.schemas.order import OrderCreate
from .inventory_service import InventoryService
from .order_status_service import OrderStatusService

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = (OrderStatus.PENDING.value, OrderStatus.ALLOCATED.value)


class OrderService:
    """Order business logic"""

    @staticmethod
    def get_order_by_id(db: Session, order_id: UUID) -> OrderHeader:
        order = db.get(OrderHeader, order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    @staticmethod
    def get_order_by_number(db: Session, order_number: str) -> Optional[OrderHeader]:
        return db.query(OrderHeader).filter(OrderHeader.order_number == order_number).first()

    @staticmethod
    def _next_order_number(db: Session) -> str:
        prefix = f"ORD-{datetime.now().strftime('%Y%m%d')}-"
        numbers = db.query(OrderHeader.order_number).filter(
            OrderHeader.order_number.like(f"{prefix}%")
        ).all()
        suffixes = [int(n[len(prefix):]) for (n,) in numbers if n[len(prefix):].isdigit()]
        return f"{prefix}{max(suffixes, default=0) + 1:04d}"

    @staticmethod
    def create_order(db: Session, order_data: OrderCreate, actor: str) -> OrderHeader:
        """Create order header and lines in one unit of work"""
        if not order_data.items:
            raise ValidationError("Order must have at least one item")
        for item in order_data.items:
            if item.quantity <= 0:
                raise ValidationError("Item quantity must be positive", {"product_id": str(item.product_id)})
            if db.get(Product, item.product_id) is None:
                raise ValidationError(f"Unknown product {item.product_id}")

        order_number = order_data.order_number or OrderService._next_order_number(db)
        if OrderService.get_order_by_number(db, order_number):
            raise ConflictError(f"Order number {order_number} already exists")

        with unit_of_work(db):
            order = OrderHeader(
                order_number=order_number,
                customer_name=order_data.customer_name,
                status=OrderStatus.PENDING.value,
                has_back_orders=False,
            )

            total = Decimal("0")
            for item_data in order_data.items:
                item = OrderItem(
                    product_id=item_data.product_id,
                    quantity=item_data.quantity,
                    unit_price=item_data.unit_price,
                )
                total += item_data.unit_price * item_data.quantity
                order.items.append(item)
            order.total_amount = total

            db.add(order)
            db.flush()
            OrderStatusService.record_note(db, order.id, actor, "Order created")

        logger.info(f"Created order {order.order_number} with {len(order_data.items)} item(s)")
        return order

    @staticmethod
    def release_reservations(db: Session, order: OrderHeader, actor: str, reason: str) -> int:
        """Return every ACTIVE reservation of the order to available stock"""
        released = 0
        reservations = db.query(Reservation).filter(
            Reservation.order_id == order.id,
            Reservation.status == ReservationStatus.ACTIVE.value
        ).all()
        for reservation in reservations:
            InventoryService.reserve(db, reservation.product_id, reservation.location_id, -reservation.quantity)
            InventoryService.record_transaction(
                db, reservation.product_id, reservation.location_id,
                TransactionType.DEALLOCATION, reservation.quantity, actor,
                reference_type="ORDER", reference_id=order.id,
                notes=f"Released {reservation.quantity} units from order {order.order_number}: {reason}"
            )
            released += reservation.quantity
            reservation.status = ReservationStatus.RELEASED.value
        db.flush()
        return released

    @staticmethod
    def cancel_order(db: Session, order_id: UUID, actor: str, reason: Optional[str] = None) -> Tuple[OrderHeader, int]:
        """Cancel an order that has not started picking; returns (order, units released)"""
        order = OrderService.get_order_by_id(db, order_id)
        if order.status not in CANCELLABLE_STATUSES:
            raise ConflictError(
                f"Order {order.order_number} cannot be cancelled in status {order.status}",
                {"status": order.status, "cancellable": list(CANCELLABLE_STATUSES)}
            )

        reason = reason or "Order cancelled"
        with unit_of_work(db):
            released = OrderService.release_reservations(db, order, actor, reason)
            open_back_orders = db.query(BackOrder).filter(
                BackOrder.order_id == order.id,
                BackOrder.status.in_([BackOrderStatus.PENDING.value, BackOrderStatus.ALLOCATED.value])
            ).all()
            for back_order in open_back_orders:
                back_order.status = BackOrderStatus.CANCELLED.value
            order.has_back_orders = False
            OrderStatusService.transition(db, order.id, OrderStatus.CANCELLED, actor, reason)

        logger.info(f"Cancelled order {order.order_number}, released {released} unit(s)")
        return order, released

    @staticmethod
    def transition_order(db: Session, order_id: UUID, new_status: OrderStatus, actor: str,
                         notes: Optional[str] = None) -> OrderHeader:
        """Manual status change (packing/shipping collaborators)"""
        with unit_of_work(db):
            order = OrderStatusService.transition(db, order_id, new_status, actor, notes)
        return order

    @staticmethod
    def get_orders(db: Session, status: Optional[str] = None, limit: int = 100) -> List[OrderHeader]:
        query = db.query(OrderHeader)
        if status:
            query = query.filter(OrderHeader.status == status)
        return query.order_by(OrderHeader.created_at.asc()).limit(limit).all()
