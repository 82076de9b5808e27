"""
Pick List Service - turn ALLOCATED orders into a location-ordered pick wave
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID
import enum
import logging
import uuid

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from stockflow.core import settings, unit_of_work
from stockflow.core.exceptions import ConflictError, NotFoundError, ValidationError
from stockflow.models import (
    Location, OrderHeader, OrderStatus, PickEvent, PickEventType, PickList,
    PickListItem, PickListStatus, Reservation, ReservationStatus
)
from .inventory_service import rank_locations
from .order_status_service import OrderStatusService

logger = logging.getLogger(__name__)

# Orders that still have reserved units waiting to be picked
PICKABLE_ORDER_STATUSES = (OrderStatus.ALLOCATED.value, OrderStatus.PARTIALLY_PICKED.value)


class PickPriority(str, enum.Enum):
    FIFO = "FIFO"    # oldest order first
    VALUE = "VALUE"  # highest total_amount first


@dataclass
class PickTask:
    order_id: UUID
    order_number: str
    product_id: UUID
    location_id: UUID
    location_name: str
    zone: str
    quantity_to_pick: int


def zone_of(location: Location) -> str:
    """Explicit zone, else the leading token of the location name ("A1-03-B" -> "A1")"""
    if location.zone:
        return location.zone
    token = (location.name or "").split("-")[0].strip()
    return token or settings.DEFAULT_ZONE


def sequence_tasks(tasks: List[PickTask]) -> List[PickTask]:
    """Walking order: zones lexicographically, then location name inside a zone"""
    by_zone: Dict[str, List[PickTask]] = {}
    for task in tasks:
        by_zone.setdefault(task.zone, []).append(task)

    ordered: List[PickTask] = []
    for zone in sorted(by_zone):
        # sorted() is stable, so tasks at one location keep their generation order
        ordered.extend(sorted(by_zone[zone], key=lambda t: t.location_name))
    return ordered


def new_batch_number() -> str:
    return f"PL-{datetime.now().strftime('%y%m%d')}-{uuid.uuid4().hex[:6].upper()}"


class PickListService:

    @staticmethod
    def get_pick_list(db: Session, pick_list_id: UUID) -> PickList:
        pick_list = db.get(PickList, pick_list_id)
        if pick_list is None:
            raise NotFoundError(f"Pick list {pick_list_id} not found")
        return pick_list

    @staticmethod
    def _load_orders(db: Session, order_ids: Optional[List[UUID]], priority: PickPriority) -> List[OrderHeader]:
        query = db.query(OrderHeader).options(
            joinedload(OrderHeader.items)
        ).filter(OrderHeader.status.in_(PICKABLE_ORDER_STATUSES))
        if order_ids:
            query = query.filter(OrderHeader.id.in_(order_ids))

        if priority == PickPriority.VALUE:
            query = query.order_by(OrderHeader.total_amount.desc(), OrderHeader.created_at.asc())
        else:
            query = query.order_by(OrderHeader.created_at.asc())
        return query.all()

    @staticmethod
    def picked_quantities(db: Session, order_id: UUID) -> Dict[UUID, int]:
        """Units already picked per product for an order, across all of its pick lists"""
        rows = db.query(
            PickListItem.product_id, func.coalesce(func.sum(PickListItem.quantity_picked), 0)
        ).filter(PickListItem.order_id == order_id).group_by(PickListItem.product_id).all()
        return {product_id: int(picked) for product_id, picked in rows}

    @staticmethod
    def tasks_for_order(db: Session, order: OrderHeader) -> List[PickTask]:
        """
        Pick sources for every line of one order.

        Each product is taken from the order's own ACTIVE reservations,
        biggest reservation first, until the units not yet picked are
        covered. A PARTIALLY_PICKED order only gets its remainder.
        """
        picked = PickListService.picked_quantities(db, order.id)
        required: Dict[UUID, int] = {}
        for item in order.items:
            required[item.product_id] = required.get(item.product_id, 0) + item.quantity
        for product_id in required:
            required[product_id] = max(required[product_id] - picked.get(product_id, 0), 0)

        tasks = []
        for product_id, quantity in required.items():
            if quantity <= 0:
                continue
            reservations = db.query(Reservation).options(
                joinedload(Reservation.location)
            ).filter(
                Reservation.order_id == order.id,
                Reservation.product_id == product_id,
                Reservation.status == ReservationStatus.ACTIVE.value
            ).all()

            remaining = quantity
            for reservation in rank_locations(reservations, lambda r: r.quantity, lambda r: r.location.name):
                if remaining <= 0:
                    break
                qty = min(remaining, reservation.quantity)
                tasks.append(PickTask(
                    order_id=order.id,
                    order_number=order.order_number,
                    product_id=product_id,
                    location_id=reservation.location_id,
                    location_name=reservation.location.name,
                    zone=zone_of(reservation.location),
                    quantity_to_pick=qty,
                ))
                remaining -= qty

            if remaining > 0:
                logger.warning(
                    f"Order {order.order_number}: {remaining} unit(s) of product {product_id} have no reservation to pick from"
                )
        return tasks

    @staticmethod
    def generate_pick_list(
        db: Session,
        actor: str,
        order_ids: Optional[List[UUID]] = None,
        assign_to: Optional[str] = None,
        max_items: Optional[int] = None,
        priority: PickPriority = PickPriority.FIFO,
        notes: Optional[str] = None
    ) -> PickList:
        """
        Build one pick list from ALLOCATED (or PARTIALLY_PICKED) orders and
        move those orders to PICKING.

        ``max_items`` caps the total units on the list. Orders are never
        split across lists: an order that would exceed the cap is left for
        the next wave, except that the first order is always taken.
        """
        if not actor:
            raise ValidationError("actor is required")
        max_items = max_items if max_items is not None else settings.PICK_LIST_MAX_ITEMS
        if max_items <= 0:
            raise ValidationError("max_items must be positive", {"max_items": max_items})
        try:
            priority = PickPriority(priority)
        except ValueError:
            raise ValidationError(f"Unknown pick priority: {priority}")

        orders = PickListService._load_orders(db, order_ids, priority)
        if not orders:
            raise ConflictError("No allocated orders found for picking",
                                {"order_ids": [str(o) for o in order_ids or []]})

        tasks: List[PickTask] = []
        included: List[OrderHeader] = []
        units = 0
        for order in orders:
            order_tasks = PickListService.tasks_for_order(db, order)
            if not order_tasks:
                continue
            order_units = sum(t.quantity_to_pick for t in order_tasks)
            if included and units + order_units > max_items:
                break
            tasks.extend(order_tasks)
            included.append(order)
            units += order_units

        if not tasks:
            raise ConflictError("Allocated orders have no reserved stock to pick")

        ordered = sequence_tasks(tasks)

        with unit_of_work(db):
            pick_list = PickList(
                batch_number=new_batch_number(),
                status=(PickListStatus.ASSIGNED if assign_to else PickListStatus.PENDING).value,
                assigned_to=assign_to,
                total_items=len(ordered),
                picked_items=0,
                notes=notes,
            )
            for sequence, task in enumerate(ordered, start=1):
                pick_list.items.append(PickListItem(
                    order_id=task.order_id,
                    product_id=task.product_id,
                    location_id=task.location_id,
                    quantity_to_pick=task.quantity_to_pick,
                    pick_sequence=sequence,
                ))
            db.add(pick_list)
            db.flush()

            for order in included:
                OrderStatusService.transition(
                    db, order.id, OrderStatus.PICKING, actor,
                    f"Added to pick list {pick_list.batch_number}"
                )

            db.add(PickEvent(
                pick_list_id=pick_list.id,
                event_type=PickEventType.PICK_STARTED.value,
                actor=actor,
                notes=f"Pick list generated with {len(ordered)} items for {len(included)} order(s)",
            ))

        logger.info(
            f"Created pick list {pick_list.batch_number}: {len(ordered)} item(s), "
            f"{units} unit(s), {len(included)} order(s)"
        )
        return pick_list

    @staticmethod
    def get_pick_lists(db: Session, status: Optional[str] = None, limit: int = 50) -> List[PickList]:
        query = db.query(PickList)
        if status:
            query = query.filter(PickList.status == status)
        return query.order_by(PickList.created_at.desc()).limit(limit).all()
