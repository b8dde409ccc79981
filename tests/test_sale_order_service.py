"""
Sale order lifecycle and its stock effects.
"""

from decimal import Decimal

import pytest

from ims.extensions import db
from ims.models import SaleOrder, SaleOrderLine, StockMovement
from ims.services import sale_order_service
from ims.services.stock_service import InsufficientStockError
from ims.validation import ValidationError

from tests.conftest import line, stock_of


def _create(customer, lines, status="pending", **kwargs):
    return sale_order_service.create_sale_order(
        customer_id=customer.id,
        order_date="2024-05-02T10:30:00Z",
        status=status,
        lines=lines,
        **kwargs,
    )


def test_create_pending_consumes_stock(customer, make_product):
    product = make_product(stock=10)

    order = _create(customer, [line(product, 4, "20")])

    assert stock_of(product) == 6
    assert order.total_amount == Decimal("80.00")


def test_create_cancelled_leaves_stock(customer, make_product):
    product = make_product(stock=10)

    _create(customer, [line(product, 4)], status="cancelled")

    assert stock_of(product) == 10


def test_delete_pending_restores_stock(customer, make_product):
    product = make_product(stock=10)
    order = _create(customer, [line(product, 4)])

    assert sale_order_service.delete_sale_order(order.id) == {"success": True}

    assert stock_of(product) == 10
    assert db.session.get(SaleOrder, order.id) is None


def test_delete_cancelled_leaves_stock(customer, make_product):
    product = make_product(stock=10)
    order = _create(customer, [line(product, 4)], status="cancelled")

    sale_order_service.delete_sale_order(order.id)

    assert stock_of(product) == 10


@pytest.mark.parametrize("steps, expected", [
    (["shipped", "delivered"], 6),
    (["cancelled"], 10),
    (["cancelled", "pending"], 6),
    (["shipped", "cancelled", "delivered"], 6),
])
def test_status_transitions(customer, make_product, steps, expected):
    product = make_product(stock=10)
    order = _create(customer, [line(product, 4)])

    for status in steps:
        sale_order_service.update_sale_order(order.id, status=status)

    assert stock_of(product) == expected


def test_line_edit_moves_net_difference(customer, make_product):
    a = make_product(name="A", stock=10)
    b = make_product(name="B", stock=10)
    order = _create(customer, [line(a, 4)])

    sale_order_service.update_sale_order(order.id, lines=[line(a, 1), line(b, 3)])

    assert stock_of(a) == 9
    assert stock_of(b) == 7
    refreshed = sale_order_service.get_sale_order(order.id)
    assert {l.product_id: l.quantity for l in refreshed.lines} == {a.id: 1, b.id: 3}


def test_line_edit_on_cancelled_order_still_moves_stock(customer, make_product):
    product = make_product(stock=10)
    order = _create(customer, [line(product, 4)], status="cancelled")

    sale_order_service.update_sale_order(order.id, lines=[line(product, 6)])

    assert stock_of(product) == 8


def test_reject_policy_blocks_oversell(customer, make_product, stock_policy):
    stock_policy("reject")
    product = make_product(stock=3)

    with pytest.raises(InsufficientStockError):
        _create(customer, [line(product, 5)])

    assert stock_of(product) == 3
    assert db.session.query(SaleOrder).count() == 0
    assert db.session.query(SaleOrderLine).count() == 0


def test_allow_policy_permits_oversell(customer, make_product):
    product = make_product(stock=3)

    _create(customer, [line(product, 5)])

    assert stock_of(product) == -2


def test_bulk_delete_mixed_statuses(customer, make_product):
    product = make_product(stock=10)
    live = _create(customer, [line(product, 2)])
    cancelled = _create(customer, [line(product, 3)], status="cancelled")
    assert stock_of(product) == 8

    sale_order_service.delete_sale_orders([live.id, cancelled.id])

    assert stock_of(product) == 10
    assert db.session.query(SaleOrder).count() == 0
    assert db.session.query(SaleOrderLine).count() == 0


def test_order_date_normalized_to_utc(customer, make_product):
    product = make_product(stock=10)

    order = _create(customer, [line(product, 1)])

    assert order.to_dict()["order_date"] == "2024-05-02T10:30:00Z"


def test_clamp_delete_returns_only_what_was_taken(customer, make_product, stock_policy):
    stock_policy("clamp")
    product = make_product(stock=3)
    order = _create(customer, [line(product, 5)])
    assert stock_of(product) == 0

    sale_order_service.delete_sale_order(order.id)

    assert stock_of(product) == 3


def test_clamp_cancel_and_reinstate(customer, make_product, stock_policy):
    stock_policy("clamp")
    product = make_product(stock=3)
    order = _create(customer, [line(product, 5)])

    sale_order_service.update_sale_order(order.id, status="cancelled")
    assert stock_of(product) == 3

    sale_order_service.update_sale_order(order.id, status="pending")
    assert stock_of(product) == 0

    sale_order_service.update_sale_order(order.id, status="cancelled")
    assert stock_of(product) == 3


def test_clamp_line_reduction_repays_shortfall_first(customer, make_product, stock_policy):
    stock_policy("clamp")
    product = make_product(stock=3)
    order = _create(customer, [line(product, 5)])

    sale_order_service.update_sale_order(order.id, lines=[line(product, 2)])

    assert stock_of(product) == 1


def test_clamp_bulk_delete(customer, make_product, stock_policy):
    stock_policy("clamp")
    product = make_product(stock=4)
    first = _create(customer, [line(product, 3)])
    second = _create(customer, [line(product, 3)])
    assert stock_of(product) == 0

    sale_order_service.delete_sale_orders([first.id, second.id])

    assert stock_of(product) == 4


def test_list_is_a_pure_read(customer, make_product):
    product = make_product(stock=10)
    _create(customer, [line(product, 4)])
    movements_before = db.session.query(StockMovement).count()

    first = [o.to_dict() for o in sale_order_service.list_sale_orders()]
    second = [o.to_dict() for o in sale_order_service.list_sale_orders()]

    assert first == second
    assert stock_of(product) == 6
    assert db.session.query(StockMovement).count() == movements_before


def test_empty_line_list_rejected_on_edit(customer, make_product):
    product = make_product(stock=10)
    order = _create(customer, [line(product, 4)])

    with pytest.raises(ValidationError):
        sale_order_service.update_sale_order(order.id, lines=[])

    assert stock_of(product) == 6
    assert len(sale_order_service.get_sale_order(order.id).lines) == 1
