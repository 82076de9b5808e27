import re

import pytest

from stockflow.core.exceptions import ConflictError, ValidationError
from stockflow.models import (
    Location, OrderStatus, PickEvent, PickEventType, PickListStatus
)
from stockflow.services import AllocationService, PickListService
from stockflow.services.pick_list_service import PickTask, sequence_tasks, zone_of


def allocated_order(db, make_order, *lines):
    order = make_order(*lines)
    AllocationService.allocate_order(db, order.id, "planner")
    assert order.status == OrderStatus.ALLOCATED.value
    return order


def test_zone_of_prefers_explicit_zone():
    assert zone_of(Location(name="A1-03-B", zone="COLD")) == "COLD"
    assert zone_of(Location(name="A1-03-B")) == "A1"
    assert zone_of(Location(name="DOCK")) == "DOCK"
    assert zone_of(Location(name="-X")) == "MAIN"


def test_sequence_groups_by_zone_then_location():
    def task(name, zone):
        return PickTask(None, "O", None, None, name, zone, 1)

    ordered = sequence_tasks([task("B-02", "B"), task("A-09", "A"), task("B-01", "B"), task("A-01", "A")])
    assert [t.location_name for t in ordered] == ["A-01", "A-09", "B-01", "B-02"]


def test_generate_sequences_items_and_moves_orders_to_picking(db, make_product, make_location, stock, make_order):
    p1 = make_product()
    p2 = make_product()
    b1 = make_location("B-01")
    a2 = make_location("A-02")
    a1 = make_location("A-01")
    stock(p1, b1, 10)
    stock(p2, a2, 10)
    stock(p2, a1, 1)
    o1 = allocated_order(db, make_order, (p1, 2), (p2, 3))
    o2 = allocated_order(db, make_order, (p2, 8))

    pick_list = PickListService.generate_pick_list(db, "lead", assign_to="bob")

    assert re.fullmatch(r"PL-\d{6}-[0-9A-F]{6}", pick_list.batch_number)
    assert pick_list.status == PickListStatus.ASSIGNED.value
    assert pick_list.assigned_to == "bob"
    items = pick_list.items
    assert [i.pick_sequence for i in items] == list(range(1, len(items) + 1))
    assert pick_list.total_items == len(items)

    names = [i.location.name for i in items]
    assert names == sorted(names)
    assert names[-1] == "B-01"
    # o2 needs 8 of p2: A-02 had 10 and o1 took 3 first, so 7 + 1 from A-01
    o2_items = {(i.location.name, i.quantity_to_pick) for i in items if i.order_id == o2.id}
    assert o2_items == {("A-02", 7), ("A-01", 1)}

    assert o1.status == OrderStatus.PICKING.value
    assert o2.status == OrderStatus.PICKING.value
    events = db.query(PickEvent).filter_by(pick_list_id=pick_list.id).all()
    assert [e.event_type for e in events] == [PickEventType.PICK_STARTED.value]


def test_unassigned_list_is_pending(db, make_product, make_location, stock, make_order):
    product = make_product()
    loc = make_location("A-01")
    stock(product, loc, 5)
    allocated_order(db, make_order, (product, 1))

    pick_list = PickListService.generate_pick_list(db, "lead")

    assert pick_list.status == PickListStatus.PENDING.value
    assert pick_list.assigned_to is None


def test_only_allocated_orders_are_picked(db, make_product, make_location, stock, make_order):
    product = make_product()
    loc = make_location("A-01")
    stock(product, loc, 5)
    pending = make_order((product, 50))
    AllocationService.allocate_order(db, pending.id, "planner")
    assert pending.status == OrderStatus.PENDING.value

    with pytest.raises(ConflictError):
        PickListService.generate_pick_list(db, "lead")

    with pytest.raises(ConflictError):
        PickListService.generate_pick_list(db, "lead", order_ids=[pending.id])


def test_max_items_keeps_orders_whole(db, make_product, make_location, stock, make_order):
    product = make_product()
    loc = make_location("A-01")
    stock(product, loc, 100)
    first = allocated_order(db, make_order, (product, 4))
    second = allocated_order(db, make_order, (product, 4))

    pick_list = PickListService.generate_pick_list(db, "lead", order_ids=[first.id, second.id], max_items=6)

    assert {i.order_id for i in pick_list.items} == {first.id}
    assert first.status == OrderStatus.PICKING.value
    assert second.status == OrderStatus.ALLOCATED.value


def test_first_order_always_included_even_over_cap(db, make_product, make_location, stock, make_order):
    product = make_product()
    loc = make_location("A-01")
    stock(product, loc, 100)
    big = allocated_order(db, make_order, (product, 30))

    pick_list = PickListService.generate_pick_list(db, "lead", max_items=5)

    assert sum(i.quantity_to_pick for i in pick_list.items) == 30
    assert big.status == OrderStatus.PICKING.value


def test_value_priority_orders_by_total_amount(db, make_product, make_location, stock, make_order):
    product = make_product()
    loc = make_location("A-01")
    stock(product, loc, 100)
    cheap = allocated_order(db, make_order, (product, 2))
    pricey = allocated_order(db, make_order, (product, 5))

    pick_list = PickListService.generate_pick_list(db, "lead", max_items=5, priority="VALUE")

    assert {i.order_id for i in pick_list.items} == {pricey.id}
    assert cheap.status == OrderStatus.ALLOCATED.value


def test_invalid_arguments(db):
    with pytest.raises(ValidationError):
        PickListService.generate_pick_list(db, "")
    with pytest.raises(ValidationError):
        PickListService.generate_pick_list(db, "lead", max_items=0)
    with pytest.raises(ValidationError):
        PickListService.generate_pick_list(db, "lead", priority="RANDOM")
