"""
Order Status Service - order status state machine with audit history
"""
from typing import Dict, FrozenSet, List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from stockflow.core.exceptions import IllegalTransitionError, NotFoundError, ValidationError
from stockflow.models import OrderHeader, OrderStatusHistory, OrderStatus
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

S = OrderStatus

# Legal (from, to) pairs. Terminal states map to an empty set.
STATUS_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    S.PENDING: frozenset({S.ALLOCATED, S.CANCELLED}),
    S.ALLOCATED: frozenset({S.PICKING, S.CANCELLED}),
    S.PICKING: frozenset({S.PICKED, S.PARTIALLY_PICKED, S.ALLOCATED}),
    S.PARTIALLY_PICKED: frozenset({S.PICKING, S.PICKED}),
    S.PICKED: frozenset({S.PACKED}),
    S.PACKED: frozenset({S.SHIPPED, S.PARTIALLY_SHIPPED}),
    S.PARTIALLY_SHIPPED: frozenset({S.SHIPPED}),
    S.SHIPPED: frozenset({S.DELIVERED, S.FULFILLED, S.RETURNED}),
    S.DELIVERED: frozenset(),
    S.FULFILLED: frozenset(),
    S.CANCELLED: frozenset(),
    S.RETURNED: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in STATUS_TRANSITIONS.items() if not targets)


class OrderStatusService:
    """
    Executes order status changes.

    ``transition`` only flushes; the caller owns the unit of work so the
    status change commits or rolls back with the business event that
    caused it. It never touches inventory.
    """

    @staticmethod
    def can_transition(current: str, new: str) -> bool:
        try:
            return OrderStatus(new) in STATUS_TRANSITIONS[OrderStatus(current)]
        except ValueError:
            return False

    @staticmethod
    def _get_order(db: Session, order_id: UUID) -> OrderHeader:
        order = db.get(OrderHeader, order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    @staticmethod
    def transition(
        db: Session,
        order_id: UUID,
        new_status: OrderStatus,
        actor: str,
        notes: Optional[str] = None
    ) -> OrderHeader:
        if not actor:
            raise ValidationError("actor is required for a status change")
        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise ValidationError(f"Unknown order status: {new_status}")

        order = OrderStatusService._get_order(db, order_id)
        previous = OrderStatus(order.status)

        if previous in TERMINAL_STATUSES:
            raise IllegalTransitionError(
                f"Order {order.order_number} is {previous.value} and can no longer change status",
                {"from": previous.value, "to": target.value}
            )
        if target not in STATUS_TRANSITIONS[previous]:
            raise IllegalTransitionError(
                f"Cannot move order {order.order_number} from {previous.value} to {target.value}",
                {
                    "from": previous.value,
                    "to": target.value,
                    "allowed": sorted(s.value for s in STATUS_TRANSITIONS[previous]),
                }
            )

        order.status = target.value
        db.add(OrderStatusHistory(
            order_id=order.id,
            previous_status=previous.value,
            new_status=target.value,
            changed_by=actor,
            notes=notes,
        ))
        db.flush()

        logger.info(f"Order {order.order_number}: {previous.value} -> {target.value} by {actor}")
        NotificationService.notify_after_commit(db, "order.status_changed", {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "previous_status": previous.value,
            "new_status": target.value,
            "changed_by": actor,
        })
        return order

    @staticmethod
    def record_note(db: Session, order_id: UUID, actor: str, notes: str) -> OrderStatusHistory:
        """History entry without a status change"""
        if not notes:
            raise ValidationError("notes are required")
        order = OrderStatusService._get_order(db, order_id)
        entry = OrderStatusHistory(
            order_id=order.id,
            previous_status=order.status,
            new_status=order.status,
            changed_by=actor,
            notes=notes,
        )
        db.add(entry)
        db.flush()
        return entry

    @staticmethod
    def get_history(db: Session, order_id: UUID) -> List[OrderStatusHistory]:
        OrderStatusService._get_order(db, order_id)
        return db.query(OrderStatusHistory).filter(
            OrderStatusHistory.order_id == order_id
        ).order_by(OrderStatusHistory.changed_at.asc()).all()
