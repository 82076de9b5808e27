"""
Pick Execution Service - per-item pick actions and pick list progress
"""
from dataclasses import dataclass
from typing import Optional
from uuid import UUID
import enum
import logging

from sqlalchemy.orm import Session

from stockflow.core import unit_of_work
from stockflow.core.exceptions import ConflictError, NotFoundError, ValidationError
from stockflow.models import (
    OrderHeader, OrderStatus, PickEvent, PickEventType, PickItemStatus, PickList,
    PickListItem, PickListStatus, Reservation, ReservationStatus, TERMINAL_ITEM_STATUSES,
    TransactionType
)
from stockflow.models.base import utcnow
from .inventory_service import InventoryService
from .order_status_service import OrderStatusService
from .pick_list_service import PickListService

logger = logging.getLogger(__name__)

# List states in which items may still be picked
PICKABLE_LIST_STATUSES = (
    PickListStatus.PENDING.value,
    PickListStatus.ASSIGNED.value,
    PickListStatus.IN_PROGRESS.value,
)

CLOSED_LIST_STATUSES = (
    PickListStatus.COMPLETED.value,
    PickListStatus.CANCELLED.value,
)


class PickAction(str, enum.Enum):
    PICK = "PICK"
    SHORT_PICK = "SHORT_PICK"
    SKIP = "SKIP"


ACTION_RESULT = {
    PickAction.PICK: (PickItemStatus.PICKED, PickEventType.ITEM_PICKED),
    PickAction.SHORT_PICK: (PickItemStatus.SHORT_PICK, PickEventType.ITEM_SHORT_PICKED),
    PickAction.SKIP: (PickItemStatus.SKIPPED, PickEventType.ITEM_SKIPPED),
}


@dataclass
class PickProgress:
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

    @property
    def completion_rate(self) -> float:
        if not self.total_items:
            return 0.0
        return round(self.picked_items / self.total_items * 100, 1)


@dataclass
class PickResult:
    item: PickListItem
    pick_list: PickList
    quantity_picked: int
    list_completed: bool


class PickExecutionService:

    @staticmethod
    def _get_item(db: Session, item_id: UUID) -> PickListItem:
        item = db.get(PickListItem, item_id)
        if item is None:
            raise NotFoundError(f"Pick list item {item_id} not found")
        return item

    @staticmethod
    def _add_event(db: Session, pick_list: PickList, event_type: PickEventType, actor: str,
                   item: Optional[PickListItem] = None, location: Optional[str] = None,
                   notes: Optional[str] = None) -> PickEvent:
        event = PickEvent(
            pick_list_id=pick_list.id,
            item_id=item.id if item is not None else None,
            event_type=event_type.value,
            actor=actor,
            location=location,
            notes=notes,
        )
        db.add(event)
        return event

    @staticmethod
    def _consume_reservation(db: Session, item: PickListItem, quantity: int) -> None:
        reservation = db.query(Reservation).filter(
            Reservation.order_id == item.order_id,
            Reservation.product_id == item.product_id,
            Reservation.location_id == item.location_id,
            Reservation.status == ReservationStatus.ACTIVE.value
        ).first()
        if reservation is None:
            logger.warning(f"Pick item {item.id}: no active reservation to consume")
            return

        reservation.quantity -= min(quantity, reservation.quantity)
        if reservation.quantity == 0:
            reservation.status = ReservationStatus.CONSUMED.value

    @staticmethod
    def record_pick(
        db: Session,
        item_id: UUID,
        action: PickAction,
        actor: str,
        quantity: Optional[int] = None,
        reason: Optional[str] = None,
        location: Optional[str] = None,
        notes: Optional[str] = None
    ) -> PickResult:
        """Apply one PICK / SHORT_PICK / SKIP to a pending pick list item"""
        try:
            action = PickAction(action)
        except ValueError:
            raise ValidationError(f"Unknown pick action: {action}",
                                  {"allowed": [a.value for a in PickAction]})
        if not actor:
            raise ValidationError("actor is required")
        if quantity is not None and quantity < 0:
            raise ValidationError("Picked quantity cannot be negative", {"quantity": quantity})
        if action == PickAction.SHORT_PICK and not reason:
            raise ValidationError("A reason is required for a short pick")

        item = PickExecutionService._get_item(db, item_id)
        pick_list = item.pick_list
        if item.status != PickItemStatus.PENDING.value:
            raise ConflictError(
                f"Pick list item was already processed (status: {item.status})",
                {"item_id": str(item.id), "status": item.status}
            )
        if pick_list.status not in PICKABLE_LIST_STATUSES:
            raise ConflictError(
                f"Pick list {pick_list.batch_number} is {pick_list.status}",
                {"pick_list_id": str(pick_list.id), "status": pick_list.status}
            )

        if action == PickAction.PICK:
            actual = item.quantity_to_pick if quantity is None else quantity
        elif action == PickAction.SHORT_PICK:
            actual = quantity or 0
        else:
            actual = 0
        actual = min(actual, item.quantity_to_pick)

        new_status, event_type = ACTION_RESULT[action]
        completed = False

        with unit_of_work(db):
            if actual > 0:
                InventoryService.consume(
                    db, item.product_id, item.location_id, actual, actor,
                    reference_type="PICK_LIST", reference_id=pick_list.id,
                    notes=f"Picked for order {item.order.order_number} on {pick_list.batch_number}"
                )
                PickExecutionService._consume_reservation(db, item, actual)

            item.status = new_status.value
            item.quantity_picked = actual
            item.picked_by = actor
            item.picked_at = utcnow()
            if action == PickAction.SHORT_PICK:
                item.short_pick_reason = reason
            if notes:
                item.notes = notes
            db.flush()

            event_notes = f"{action.value} {actual}/{item.quantity_to_pick}"
            if reason:
                event_notes += f" - {reason}"
            PickExecutionService._add_event(
                db, pick_list, event_type, actor, item=item,
                location=location or item.location.name, notes=event_notes
            )

            completed = PickExecutionService._update_progress(db, pick_list, actor)

        logger.info(
            f"{pick_list.batch_number} seq {item.pick_sequence}: {action.value} {actual}/{item.quantity_to_pick} by {actor}"
        )
        return PickResult(item=item, pick_list=pick_list, quantity_picked=actual, list_completed=completed)

    @staticmethod
    def _update_progress(db: Session, pick_list: PickList, actor: str) -> bool:
        """Recount terminal items; start or complete the list. Returns True on completion."""
        done = db.query(PickListItem).filter(
            PickListItem.pick_list_id == pick_list.id,
            PickListItem.status.in_(TERMINAL_ITEM_STATUSES)
        ).count()
        pick_list.picked_items = done

        if done > 0 and pick_list.status in (PickListStatus.PENDING.value, PickListStatus.ASSIGNED.value):
            pick_list.status = PickListStatus.IN_PROGRESS.value
            pick_list.start_time = utcnow()

        if done < pick_list.total_items:
            db.flush()
            return False

        pick_list.status = PickListStatus.COMPLETED.value
        pick_list.end_time = utcnow()
        PickExecutionService._add_event(
            db, pick_list, PickEventType.PICK_COMPLETED, actor,
            notes=f"All {pick_list.total_items} items processed"
        )

        order_ids = {item.order_id for item in pick_list.items}
        for order in db.query(OrderHeader).filter(OrderHeader.id.in_(order_ids)).all():
            if order.status == OrderStatus.PICKING.value:
                PickExecutionService._release_unpicked(db, pick_list, order, actor)
                OrderStatusService.transition(
                    db, order.id, OrderStatus.PICKED, actor,
                    f"Pick list {pick_list.batch_number} completed"
                )
        db.flush()
        logger.info(f"Pick list {pick_list.batch_number} completed")
        return True

    @staticmethod
    def _release_unpicked(db: Session, pick_list: PickList, order: OrderHeader, actor: str) -> int:
        """Return units left on skipped or short-picked items of a finished list to available stock"""
        released = 0
        for item in pick_list.items:
            remainder = item.quantity_to_pick - (item.quantity_picked or 0)
            if item.order_id != order.id or remainder <= 0:
                continue
            reservation = db.query(Reservation).filter(
                Reservation.order_id == item.order_id,
                Reservation.product_id == item.product_id,
                Reservation.location_id == item.location_id,
                Reservation.status == ReservationStatus.ACTIVE.value
            ).first()
            if reservation is None:
                continue

            quantity = min(remainder, reservation.quantity)
            InventoryService.reserve(db, item.product_id, item.location_id, -quantity)
            InventoryService.record_transaction(
                db, item.product_id, item.location_id,
                TransactionType.DEALLOCATION, quantity, actor,
                reference_type="PICK_LIST", reference_id=pick_list.id,
                notes=f"Released {quantity} unpicked unit(s) of order {order.order_number} on {pick_list.batch_number}"
            )
            reservation.quantity -= quantity
            if reservation.quantity == 0:
                reservation.status = ReservationStatus.RELEASED.value
            released += quantity

        if released:
            logger.info(f"Order {order.order_number}: released {released} unpicked unit(s) from {pick_list.batch_number}")
        return released

    # ===================== LIST CONTROL =====================

    @staticmethod
    def pause_pick_list(db: Session, pick_list_id: UUID, actor: str, notes: Optional[str] = None) -> PickList:
        with unit_of_work(db):
            pick_list = PickListService.get_pick_list(db, pick_list_id)
            if pick_list.status not in (PickListStatus.ASSIGNED.value, PickListStatus.IN_PROGRESS.value):
                raise ConflictError(f"Cannot pause pick list in status {pick_list.status}")
            pick_list.status = PickListStatus.PAUSED.value
            PickExecutionService._add_event(db, pick_list, PickEventType.PICK_PAUSED, actor, notes=notes)
        return pick_list

    @staticmethod
    def resume_pick_list(db: Session, pick_list_id: UUID, actor: str, notes: Optional[str] = None) -> PickList:
        with unit_of_work(db):
            pick_list = PickListService.get_pick_list(db, pick_list_id)
            if pick_list.status != PickListStatus.PAUSED.value:
                raise ConflictError(f"Only paused pick lists can be resumed (current status: {pick_list.status})")
            if pick_list.picked_items > 0:
                pick_list.status = PickListStatus.IN_PROGRESS.value
            elif pick_list.assigned_to:
                pick_list.status = PickListStatus.ASSIGNED.value
            else:
                pick_list.status = PickListStatus.PENDING.value
            PickExecutionService._add_event(db, pick_list, PickEventType.PICK_RESUMED, actor, notes=notes)
        return pick_list

    @staticmethod
    def reassign_pick_list(
        db: Session,
        pick_list_id: UUID,
        new_assignee: str,
        actor: str,
        reason: str,
        notes: Optional[str] = None
    ) -> PickList:
        """Hand the same list (and its progress) to another picker"""
        if not new_assignee or not reason:
            raise ValidationError("new_assignee and reason are required")

        with unit_of_work(db):
            pick_list = PickListService.get_pick_list(db, pick_list_id)
            if pick_list.status in CLOSED_LIST_STATUSES:
                raise ConflictError(f"Cannot reassign pick list in status {pick_list.status}")
            previous = pick_list.assigned_to
            pick_list.assigned_to = new_assignee
            if pick_list.status == PickListStatus.PENDING.value:
                pick_list.status = PickListStatus.ASSIGNED.value
            event_notes = f"Reassigned from {previous or 'nobody'} to {new_assignee}: {reason}"
            if notes:
                event_notes += f" ({notes})"
            PickExecutionService._add_event(db, pick_list, PickEventType.PICK_REASSIGNED, actor, notes=event_notes)

        logger.info(f"Pick list {pick_list.batch_number} reassigned to {new_assignee} by {actor}")
        return pick_list

    @staticmethod
    def cancel_pick_list(db: Session, pick_list_id: UUID, actor: str, reason: Optional[str] = None) -> PickList:
        """
        Abandon a list. Open items become SKIPPED; picked units stay picked.

        Orders still in PICKING go back to ALLOCATED, or to PARTIALLY_PICKED
        when some of their items were already picked. Reservations for
        unpicked units remain ACTIVE so the orders can be picked again.
        """
        with unit_of_work(db):
            pick_list = PickListService.get_pick_list(db, pick_list_id)
            if pick_list.status in CLOSED_LIST_STATUSES:
                raise ConflictError(f"Pick list {pick_list.batch_number} is already {pick_list.status}")

            picked_orders = set()
            for item in pick_list.items:
                if item.status == PickItemStatus.PENDING.value:
                    item.status = PickItemStatus.SKIPPED.value
                elif item.quantity_picked > 0:
                    picked_orders.add(item.order_id)

            pick_list.status = PickListStatus.CANCELLED.value
            pick_list.end_time = utcnow()
            PickExecutionService._add_event(db, pick_list, PickEventType.PICK_CANCELLED, actor, notes=reason)

            order_ids = {item.order_id for item in pick_list.items}
            for order in db.query(OrderHeader).filter(OrderHeader.id.in_(order_ids)).all():
                if order.status != OrderStatus.PICKING.value:
                    continue
                target = OrderStatus.PARTIALLY_PICKED if order.id in picked_orders else OrderStatus.ALLOCATED
                OrderStatusService.transition(
                    db, order.id, target, actor,
                    f"Pick list {pick_list.batch_number} cancelled"
                )
            db.flush()

        logger.info(f"Pick list {pick_list.batch_number} cancelled by {actor}")
        return pick_list

    @staticmethod
    def get_progress(db: Session, pick_list_id: UUID) -> PickProgress:
        pick_list = PickListService.get_pick_list(db, pick_list_id)
        items = pick_list.items
        return PickProgress(
            pick_list_id=pick_list.id,
            batch_number=pick_list.batch_number,
            status=pick_list.status,
            total_items=pick_list.total_items,
            picked_items=pick_list.picked_items,
            pending_items=sum(1 for i in items if i.status == PickItemStatus.PENDING.value),
            short_picks=sum(1 for i in items if i.status == PickItemStatus.SHORT_PICK.value),
            skipped_items=sum(1 for i in items if i.status == PickItemStatus.SKIPPED.value),
            units_to_pick=sum(i.quantity_to_pick for i in items),
            units_picked=sum(i.quantity_picked or 0 for i in items),
        )
