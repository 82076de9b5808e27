"""
Allocation Service - reserve multi-location stock against order demand

Greedy "biggest bucket first": for each product the locations with the most
available stock are drained first, so an order touches as few locations as
possible. Unmet demand becomes a back order instead of failing the order.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from uuid import UUID
import enum
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from stockflow.core import unit_of_work
from stockflow.core.exceptions import ConflictError, NotFoundError, ValidationError
from stockflow.models import (
    BackOrder, BackOrderStatus, OrderHeader, OrderStatus, Product, Reservation,
    ReservationStatus, TransactionType
)
from .inventory_service import InventoryService
from .order_status_service import OrderStatusService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

SHORTFALL_REASON = "INSUFFICIENT_STOCK_AT_ALLOCATION"


class AllocationStrategy(str, enum.Enum):
    BACKORDER = "backorder"  # allocate what exists, back-order the rest
    CHECK = "check"          # allocate only if every line can be covered


@dataclass
class ReservationSlice:
    product_id: UUID
    location_id: UUID
    location_name: str
    quantity: int


@dataclass
class InsufficientItem:
    product_id: UUID
    sku: str
    requested: int
    available: int

    @property
    def shortage(self) -> int:
        return self.requested - self.available


@dataclass
class AllocationResult:
    success: bool
    order_id: UUID
    order_status: str
    reservations: List[ReservationSlice] = field(default_factory=list)
    insufficient_items: List[InsufficientItem] = field(default_factory=list)
    back_order_ids: List[UUID] = field(default_factory=list)

    @property
    def has_back_orders(self) -> bool:
        return bool(self.back_order_ids)


class AllocationService:

    @staticmethod
    def reserved_quantity(db: Session, order_id: UUID, product_id: UUID) -> int:
        """Units currently held by ACTIVE reservations for one order line"""
        total = db.query(func.coalesce(func.sum(Reservation.quantity), 0)).filter(
            Reservation.order_id == order_id,
            Reservation.product_id == product_id,
            Reservation.status == ReservationStatus.ACTIVE.value
        ).scalar()
        return int(total or 0)

    @staticmethod
    def outstanding_by_product(db: Session, order: OrderHeader) -> Dict[UUID, int]:
        """Ordered minus already reserved, per product"""
        required: Dict[UUID, int] = {}
        for item in order.items:
            required[item.product_id] = required.get(item.product_id, 0) + item.quantity

        outstanding = {}
        for product_id, quantity in required.items():
            remaining = quantity - AllocationService.reserved_quantity(db, order.id, product_id)
            if remaining > 0:
                outstanding[product_id] = remaining
        return outstanding

    @staticmethod
    def _upsert_reservation(db: Session, order_id: UUID, product_id: UUID, location_id: UUID, qty: int) -> Reservation:
        reservation = db.query(Reservation).filter(
            Reservation.order_id == order_id,
            Reservation.product_id == product_id,
            Reservation.location_id == location_id
        ).first()

        if reservation:
            if reservation.status == ReservationStatus.ACTIVE.value:
                reservation.quantity += qty
            else:
                reservation.quantity = qty
                reservation.status = ReservationStatus.ACTIVE.value
        else:
            reservation = Reservation(
                order_id=order_id,
                product_id=product_id,
                location_id=location_id,
                quantity=qty,
                status=ReservationStatus.ACTIVE.value,
            )
            db.add(reservation)
        db.flush()
        return reservation

    @staticmethod
    def allocate_product(
        db: Session,
        order: OrderHeader,
        product_id: UUID,
        quantity: int,
        actor: str,
        reference_type: str = "ORDER",
        notes: Optional[str] = None
    ) -> Tuple[List[ReservationSlice], int]:
        """
        Reserve up to ``quantity`` units of one product for an order.

        Runs inside the caller's unit of work. Returns the reservation
        slices made and the quantity left unreserved.
        """
        if quantity <= 0:
            raise ValidationError("Quantity to allocate must be positive", {"quantity": quantity})

        remaining = quantity
        slices: List[ReservationSlice] = []

        for record in InventoryService.rank_locations_for(db, product_id):
            if remaining <= 0:
                break

            qty = min(remaining, record.quantity_available)
            location_name = record.location.name

            AllocationService._upsert_reservation(db, order.id, product_id, record.location_id, qty)
            InventoryService.reserve(db, product_id, record.location_id, qty)
            InventoryService.record_transaction(
                db, product_id, record.location_id, TransactionType.ALLOCATION, -qty, actor,
                reference_type=reference_type, reference_id=order.id,
                notes=notes or f"Reserved {qty} units for order {order.order_number}"
            )

            slices.append(ReservationSlice(
                product_id=product_id,
                location_id=record.location_id,
                location_name=location_name,
                quantity=qty,
            ))
            remaining -= qty

        return slices, remaining

    @staticmethod
    def record_shortfall(
        db: Session,
        order: OrderHeader,
        product_id: UUID,
        requested: int,
        shortfall: int
    ) -> Optional[BackOrder]:
        """
        Create or update the back order for one order line.

        The back order always describes the currently unreserved remainder.
        A zero shortfall settles an existing PENDING back order.
        """
        back_order = db.query(BackOrder).filter(
            BackOrder.order_id == order.id,
            BackOrder.product_id == product_id
        ).first()

        if shortfall <= 0:
            if back_order and back_order.status == BackOrderStatus.PENDING.value:
                back_order.status = BackOrderStatus.ALLOCATED.value
                db.flush()
            return back_order

        details = f"Insufficient inventory during allocation. Allocated {requested - shortfall}/{requested} units."
        if back_order:
            back_order.quantity_back_ordered = back_order.quantity_fulfilled + shortfall
            back_order.status = BackOrderStatus.PENDING.value
            back_order.reason_details = details
        else:
            back_order = BackOrder(
                order_id=order.id,
                product_id=product_id,
                quantity_back_ordered=shortfall,
                quantity_fulfilled=0,
                status=BackOrderStatus.PENDING.value,
                reason=SHORTFALL_REASON,
                reason_details=details,
            )
            db.add(back_order)

        order.has_back_orders = True
        db.flush()
        return back_order

    @staticmethod
    def advance_if_fully_allocated(db: Session, order: OrderHeader, actor: str, notes: Optional[str] = None) -> bool:
        """
        Move the order to ALLOCATED once none of its back orders is PENDING.

        Clears ``has_back_orders``. Shares the caller's unit of work.
        """
        pending = db.query(BackOrder).filter(
            BackOrder.order_id == order.id,
            BackOrder.status == BackOrderStatus.PENDING.value
        ).count()
        if pending:
            logger.info(f"Order {order.order_number} still has {pending} pending back order(s)")
            return False

        order.has_back_orders = False
        if order.status == OrderStatus.PENDING.value:
            OrderStatusService.transition(db, order.id, OrderStatus.ALLOCATED, actor, notes)
        db.flush()
        return True

    @staticmethod
    def check_availability(db: Session, outstanding: Dict[UUID, int]) -> List[InsufficientItem]:
        """Products whose total available stock cannot cover the outstanding quantity"""
        insufficient = []
        for product_id, needed in outstanding.items():
            available = InventoryService.total_available(db, product_id)
            if available < needed:
                product = db.get(Product, product_id)
                insufficient.append(InsufficientItem(
                    product_id=product_id,
                    sku=product.sku if product else str(product_id),
                    requested=needed,
                    available=available,
                ))
        return insufficient

    @staticmethod
    def allocate_order(
        db: Session,
        order_id: UUID,
        actor: str,
        strategy: AllocationStrategy = AllocationStrategy.BACKORDER,
        notes: Optional[str] = None
    ) -> AllocationResult:
        """Reserve inventory for every line of a PENDING order"""
        if not order_id:
            raise ValidationError("order_id is required")
        if not actor:
            raise ValidationError("actor is required")
        try:
            strategy = AllocationStrategy(strategy)
        except ValueError:
            raise ValidationError(f"Unknown allocation strategy: {strategy}",
                                  {"allowed": [s.value for s in AllocationStrategy]})

        order = db.get(OrderHeader, order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        if order.status != OrderStatus.PENDING.value:
            raise ConflictError(
                "Order must be in PENDING status to reserve inventory",
                {"order_number": order.order_number, "status": order.status}
            )
        if not order.items:
            raise ValidationError(f"Order {order.order_number} has no items")

        outstanding = AllocationService.outstanding_by_product(db, order)

        # Early answer for the caller; the reservation UPDATE re-checks under the transaction.
        insufficient = AllocationService.check_availability(db, outstanding)
        if insufficient and strategy == AllocationStrategy.CHECK:
            logger.info(f"Order {order.order_number}: {len(insufficient)} item(s) short, nothing allocated")
            return AllocationResult(
                success=False,
                order_id=order.id,
                order_status=order.status,
                insufficient_items=insufficient,
            )

        result = AllocationResult(success=True, order_id=order.id, order_status=order.status,
                                  insufficient_items=insufficient)
        with unit_of_work(db):
            for product_id, needed in outstanding.items():
                slices, remaining = AllocationService.allocate_product(
                    db, order, product_id, needed, actor, notes=notes
                )
                result.reservations.extend(slices)
                back_order = AllocationService.record_shortfall(db, order, product_id, needed, remaining)
                if back_order is not None and back_order.status == BackOrderStatus.PENDING.value:
                    result.back_order_ids.append(back_order.id)

            locations = len(result.reservations)
            if result.back_order_ids:
                status_notes = (f"Partial allocation - {locations} location(s) allocated, "
                                f"{len(result.back_order_ids)} back order(s) created")
            else:
                status_notes = f"Inventory allocated successfully - {locations} location(s)"
            AllocationService.advance_if_fully_allocated(db, order, actor, notes or status_notes)
            result.order_status = order.status

        if result.back_order_ids:
            NotificationService.send("order.back_ordered", {
                "order_id": str(order.id),
                "order_number": order.order_number,
                "back_orders": [str(bo_id) for bo_id in result.back_order_ids],
            })
        logger.info(
            f"Allocated order {order.order_number}: {len(result.reservations)} reservation(s), "
            f"{len(result.back_order_ids)} back order(s)"
        )
        return result
