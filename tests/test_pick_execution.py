import pytest

from stockflow.core.exceptions import ConflictError, ValidationError
from stockflow.models import (
    OrderStatus, PickEvent, PickEventType, PickItemStatus, PickListStatus, Reservation,
    ReservationStatus, TransactionType
)
from stockflow.services import (
    AllocationService, InventoryService, PickExecutionService, PickListService, ReconciliationService
)


@pytest.fixture()
def wave(db, make_product, make_location, stock, make_order):
    """One order, two items on one pick list"""
    p1 = make_product()
    p2 = make_product()
    a = make_location("A-01")
    b = make_location("B-01")
    stock(p1, a, 10)
    stock(p2, b, 10)
    order = make_order((p1, 4), (p2, 3))
    AllocationService.allocate_order(db, order.id, "planner")
    pick_list = PickListService.generate_pick_list(db, "lead", assign_to="bob")
    return {"order": order, "pick_list": pick_list, "p1": p1, "p2": p2, "a": a, "b": b}


def events_of(db, pick_list, event_type):
    return db.query(PickEvent).filter_by(pick_list_id=pick_list.id, event_type=event_type.value).all()


def test_full_pick_completes_list_and_advances_order(db, wave):
    pick_list, order = wave["pick_list"], wave["order"]
    first, second = pick_list.items

    r1 = PickExecutionService.record_pick(db, first.id, "PICK", "bob")
    assert r1.quantity_picked == first.quantity_to_pick
    assert pick_list.status == PickListStatus.IN_PROGRESS.value
    assert pick_list.start_time is not None
    assert pick_list.picked_items == 1
    assert not r1.list_completed
    assert order.status == OrderStatus.PICKING.value

    r2 = PickExecutionService.record_pick(db, second.id, "PICK", "bob")
    assert r2.list_completed
    assert pick_list.status == PickListStatus.COMPLETED.value
    assert pick_list.end_time is not None
    assert pick_list.picked_items == pick_list.total_items == 2
    assert order.status == OrderStatus.PICKED.value
    assert len(events_of(db, pick_list, PickEventType.PICK_COMPLETED)) == 1
    assert len(events_of(db, pick_list, PickEventType.ITEM_PICKED)) == 2

    picked_history = [h for h in order.status_history if h.new_status == OrderStatus.PICKED.value]
    assert len(picked_history) == 1


def test_pick_consumes_stock_and_reservation(db, wave):
    pick_list, p1, a = wave["pick_list"], wave["p1"], wave["a"]
    item = next(i for i in pick_list.items if i.product_id == p1.id)

    PickExecutionService.record_pick(db, item.id, "PICK", "bob")

    record = InventoryService.get_record(db, p1.id, a.id)
    assert record.quantity_on_hand == 6
    assert record.quantity_reserved == 0
    sales = InventoryService.get_transactions(db, product_id=p1.id, transaction_type=TransactionType.SALE.value)
    assert [t.quantity_change for t in sales] == [-4]
    reservation = db.query(Reservation).filter_by(order_id=wave["order"].id, product_id=p1.id).one()
    assert reservation.status == ReservationStatus.CONSUMED.value
    assert ReconciliationService.reconcile(db) == []


def test_pick_quantity_is_clamped(db, wave):
    item = wave["pick_list"].items[0]
    result = PickExecutionService.record_pick(db, item.id, "PICK", "bob", quantity=99)
    assert result.quantity_picked == item.quantity_to_pick


def test_short_pick_requires_reason_and_keeps_remainder_reserved(db, wave):
    p1, a = wave["p1"], wave["a"]
    item = next(i for i in wave["pick_list"].items if i.product_id == p1.id)

    with pytest.raises(ValidationError):
        PickExecutionService.record_pick(db, item.id, "SHORT_PICK", "bob", quantity=1)

    result = PickExecutionService.record_pick(db, item.id, "SHORT_PICK", "bob", quantity=1, reason="damaged")

    assert result.item.status == PickItemStatus.SHORT_PICK.value
    assert result.item.short_pick_reason == "damaged"
    record = InventoryService.get_record(db, p1.id, a.id)
    assert record.quantity_on_hand == 9
    assert record.quantity_reserved == 3
    reservation = db.query(Reservation).filter_by(order_id=wave["order"].id, product_id=p1.id).one()
    assert reservation.status == ReservationStatus.ACTIVE.value
    assert reservation.quantity == 3
    assert ReconciliationService.reconcile(db) == []


def test_skip_moves_no_stock(db, wave):
    p2, b = wave["p2"], wave["b"]
    item = next(i for i in wave["pick_list"].items if i.product_id == p2.id)

    result = PickExecutionService.record_pick(db, item.id, "SKIP", "bob", quantity=3)

    assert result.quantity_picked == 0
    assert result.item.status == PickItemStatus.SKIPPED.value
    record = InventoryService.get_record(db, p2.id, b.id)
    assert (record.quantity_on_hand, record.quantity_reserved) == (10, 3)


def test_completion_with_mixed_outcomes(db, wave):
    pick_list, order = wave["pick_list"], wave["order"]
    first, second = pick_list.items
    PickExecutionService.record_pick(db, first.id, "SKIP", "bob")
    PickExecutionService.record_pick(db, second.id, "SHORT_PICK", "bob", quantity=0, reason="empty bin")

    assert pick_list.status == PickListStatus.COMPLETED.value
    assert order.status == OrderStatus.PICKED.value
    assert len(events_of(db, pick_list, PickEventType.PICK_COMPLETED)) == 1


def test_item_can_only_be_processed_once(db, wave):
    item = wave["pick_list"].items[0]
    PickExecutionService.record_pick(db, item.id, "PICK", "bob")
    with pytest.raises(ConflictError):
        PickExecutionService.record_pick(db, item.id, "PICK", "bob")


def test_invalid_pick_requests(db, wave):
    item = wave["pick_list"].items[0]
    with pytest.raises(ValidationError):
        PickExecutionService.record_pick(db, item.id, "GRAB", "bob")
    with pytest.raises(ValidationError):
        PickExecutionService.record_pick(db, item.id, "PICK", "bob", quantity=-1)


def test_paused_list_rejects_picks_until_resumed(db, wave):
    pick_list = wave["pick_list"]
    item = pick_list.items[0]

    PickExecutionService.pause_pick_list(db, pick_list.id, "bob")
    assert pick_list.status == PickListStatus.PAUSED.value
    with pytest.raises(ConflictError):
        PickExecutionService.record_pick(db, item.id, "PICK", "bob")

    PickExecutionService.resume_pick_list(db, pick_list.id, "bob")
    assert pick_list.status == PickListStatus.ASSIGNED.value
    PickExecutionService.record_pick(db, item.id, "PICK", "bob")
    assert pick_list.status == PickListStatus.IN_PROGRESS.value

    assert len(events_of(db, pick_list, PickEventType.PICK_PAUSED)) == 1
    assert len(events_of(db, pick_list, PickEventType.PICK_RESUMED)) == 1


def test_reassign_in_place(db, wave):
    pick_list = wave["pick_list"]
    PickExecutionService.record_pick(db, pick_list.items[0].id, "PICK", "bob")

    PickExecutionService.reassign_pick_list(db, pick_list.id, "carol", "lead", reason="shift change")

    assert pick_list.assigned_to == "carol"
    assert pick_list.picked_items == 1
    event = events_of(db, pick_list, PickEventType.PICK_REASSIGNED)[0]
    assert "bob" in event.notes and "carol" in event.notes

    with pytest.raises(ValidationError):
        PickExecutionService.reassign_pick_list(db, pick_list.id, "dave", "lead", reason="")


def test_cancel_returns_orders(db, wave):
    pick_list, order = wave["pick_list"], wave["order"]

    PickExecutionService.cancel_pick_list(db, pick_list.id, "lead", "wave abandoned")

    assert pick_list.status == PickListStatus.CANCELLED.value
    assert all(i.status == PickItemStatus.SKIPPED.value for i in pick_list.items)
    assert order.status == OrderStatus.ALLOCATED.value
    with pytest.raises(ConflictError):
        PickExecutionService.record_pick(db, pick_list.items[0].id, "PICK", "bob")


def test_cancel_after_partial_pick_marks_order_partially_picked(db, wave):
    pick_list, order = wave["pick_list"], wave["order"]
    PickExecutionService.record_pick(db, pick_list.items[0].id, "PICK", "bob")

    PickExecutionService.cancel_pick_list(db, pick_list.id, "lead")

    assert order.status == OrderStatus.PARTIALLY_PICKED.value


def test_progress(db, wave):
    pick_list = wave["pick_list"]
    PickExecutionService.record_pick(db, pick_list.items[0].id, "PICK", "bob")

    progress = PickExecutionService.get_progress(db, pick_list.id)

    assert progress.total_items == 2
    assert progress.picked_items == 1
    assert progress.pending_items == 1
    assert progress.units_to_pick == 7
    assert progress.completion_rate == 50.0


def test_completion_releases_unpicked_reservations(db, wave):
    pick_list, order, p1, p2, a, b = (
        wave["pick_list"], wave["order"], wave["p1"], wave["p2"], wave["a"], wave["b"]
    )
    short = next(i for i in pick_list.items if i.product_id == p1.id)
    skipped = next(i for i in pick_list.items if i.product_id == p2.id)

    PickExecutionService.record_pick(db, short.id, "SHORT_PICK", "bob", quantity=1, reason="damaged")
    PickExecutionService.record_pick(db, skipped.id, "SKIP", "bob")

    assert order.status == OrderStatus.PICKED.value
    rec_a = InventoryService.get_record(db, p1.id, a.id)
    rec_b = InventoryService.get_record(db, p2.id, b.id)
    assert (rec_a.quantity_on_hand, rec_a.quantity_reserved) == (9, 0)
    assert (rec_b.quantity_on_hand, rec_b.quantity_reserved) == (10, 0)
    reservations = db.query(Reservation).filter_by(order_id=order.id).all()
    assert {r.status for r in reservations} == {ReservationStatus.RELEASED.value}
    releases = InventoryService.get_transactions(db, transaction_type=TransactionType.DEALLOCATION.value)
    assert sorted(t.quantity_change for t in releases) == [3, 3]
    assert {t.reference_type for t in releases} == {"PICK_LIST"}
    assert ReconciliationService.reconcile(db) == []


def test_partially_picked_order_can_be_picked_again(db, wave):
    pick_list, order, p1, p2, b = wave["pick_list"], wave["order"], wave["p1"], wave["p2"], wave["b"]
    first = next(i for i in pick_list.items if i.product_id == p1.id)
    PickExecutionService.record_pick(db, first.id, "PICK", "bob")
    PickExecutionService.cancel_pick_list(db, pick_list.id, "lead")
    assert order.status == OrderStatus.PARTIALLY_PICKED.value

    retry = PickListService.generate_pick_list(db, "lead", order_ids=[order.id], assign_to="carol")

    assert [(i.product_id, i.location_id, i.quantity_to_pick) for i in retry.items] == [(p2.id, b.id, 3)]
    assert order.status == OrderStatus.PICKING.value

    result = PickExecutionService.record_pick(db, retry.items[0].id, "PICK", "carol")
    assert result.list_completed
    assert order.status == OrderStatus.PICKED.value
    record = InventoryService.get_record(db, p2.id, b.id)
    assert (record.quantity_on_hand, record.quantity_reserved) == (7, 0)
    assert ReconciliationService.reconcile(db) == []
