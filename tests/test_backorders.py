import pytest

from stockflow.core.exceptions import ConflictError, ValidationError
from stockflow.models import BackOrderStatus, OrderStatus, TransactionType
from stockflow.services import (
    AllocationService, BackOrderService, InventoryService, ReceivingService, ReconciliationService
)
from stockflow.services import notification_service


@pytest.fixture()
def short_order(db, make_product, make_location, stock, make_order):
    product = make_product()
    loc = make_location("A-01")
    stock(product, loc, 4)
    order = make_order((product, 10))
    result = AllocationService.allocate_order(db, order.id, "planner")
    back_order = BackOrderService.get_back_order(db, result.back_order_ids[0])
    return {"product": product, "loc": loc, "order": order, "back_order": back_order}


def test_receipt_surfaces_but_does_not_allocate(db, short_order, monkeypatch):
    sent = []
    monkeypatch.setattr(
        notification_service.NotificationService, "send",
        staticmethod(lambda event, payload, webhook_url=None: sent.append(event) or True)
    )
    product, loc, back_order = short_order["product"], short_order["loc"], short_order["back_order"]

    result = ReceivingService.receive(db, product.id, loc.id, 6, "dock")

    assert [bo.id for bo in result.eligible_back_orders] == [back_order.id]
    assert back_order.status == BackOrderStatus.PENDING.value
    assert result.record.quantity_reserved == 4
    assert "back_order.stock_available" in sent


def test_receipt_too_small_surfaces_nothing(db, short_order):
    product, loc = short_order["product"], short_order["loc"]
    result = ReceivingService.receive(db, product.id, loc.id, 2, "dock")
    assert result.eligible_back_orders == []


def test_fulfill_allocates_and_advances_order(db, short_order):
    product, loc, order, back_order = (
        short_order["product"], short_order["loc"], short_order["order"], short_order["back_order"]
    )
    ReceivingService.receive(db, product.id, loc.id, 6, "dock")

    result = BackOrderService.fulfill_back_order(db, back_order.id, "supervisor")

    assert result.all_allocated
    assert sum(s.quantity for s in result.allocations) == 6
    assert back_order.status == BackOrderStatus.ALLOCATED.value
    assert back_order.quantity_fulfilled == 0
    assert order.status == OrderStatus.ALLOCATED.value
    assert order.has_back_orders is False
    txns = InventoryService.get_transactions(db, product_id=product.id,
                                             transaction_type=TransactionType.ALLOCATION.value)
    assert {t.reference_type for t in txns} == {"ORDER", "BACKORDER_ALLOCATION"}
    assert ReconciliationService.reconcile(db) == []


def test_fulfill_with_insufficient_stock(db, short_order):
    with pytest.raises(ConflictError) as exc:
        BackOrderService.fulfill_back_order(db, short_order["back_order"].id, "supervisor")
    assert exc.value.details == {"needed": 6, "available": 0}


def test_fulfill_requires_pending_back_order(db, short_order):
    product, loc, back_order = short_order["product"], short_order["loc"], short_order["back_order"]
    ReceivingService.receive(db, product.id, loc.id, 6, "dock")
    BackOrderService.fulfill_back_order(db, back_order.id, "supervisor")

    with pytest.raises(ConflictError):
        BackOrderService.fulfill_back_order(db, back_order.id, "supervisor")


def test_fulfill_one_line_while_another_is_pending(db, make_product, make_location, stock, make_order):
    p1 = make_product()
    p2 = make_product()
    loc = make_location("A-01")
    stock(p1, loc, 1)
    stock(p2, loc, 1)
    order = make_order((p1, 3), (p2, 3))
    result = AllocationService.allocate_order(db, order.id, "planner")
    assert len(result.back_order_ids) == 2

    stock(p1, loc, 2)
    bo1 = next(bo for bo in BackOrderService.list_back_orders(db, order_id=order.id) if bo.product_id == p1.id)
    fulfilment = BackOrderService.fulfill_back_order(db, bo1.id, "supervisor")

    assert not fulfilment.all_allocated
    assert bo1.status == BackOrderStatus.ALLOCATED.value
    assert order.status == OrderStatus.PENDING.value
    assert order.has_back_orders is True


def test_pack_and_ship_is_the_only_way_to_fulfilled(db, short_order):
    product, loc, back_order = short_order["product"], short_order["loc"], short_order["back_order"]
    ReceivingService.receive(db, product.id, loc.id, 6, "dock")
    BackOrderService.fulfill_back_order(db, back_order.id, "supervisor")

    BackOrderService.mark_packed(db, back_order.id)
    assert back_order.status == BackOrderStatus.PACKED.value

    BackOrderService.record_shipment(db, back_order.id, 4)
    assert back_order.quantity_fulfilled == 4
    assert back_order.status == BackOrderStatus.PACKED.value

    with pytest.raises(ValidationError):
        BackOrderService.record_shipment(db, back_order.id, 3)

    BackOrderService.record_shipment(db, back_order.id, 2)
    assert back_order.quantity_fulfilled == 6
    assert back_order.status == BackOrderStatus.FULFILLED.value


def test_ship_requires_allocated_back_order(db, short_order):
    with pytest.raises(ConflictError):
        BackOrderService.record_shipment(db, short_order["back_order"].id, 1)
    with pytest.raises(ConflictError):
        BackOrderService.mark_packed(db, short_order["back_order"].id)
