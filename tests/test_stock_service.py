"""
Stock service: single writer of Product.stock_quantity.
"""

import pytest

from ims.extensions import db
from ims.models import StockMovement
from ims.services import stock_service
from ims.services.concurrency import atomic
from ims.services.stock_service import InsufficientStockError, StockError

from tests.conftest import stock_of


def test_positive_and_negative_deltas(make_product):
    product = make_product(stock=5)

    with atomic():
        assert stock_service.apply_stock_delta(product.id, 7, reason="test") == 7
        assert stock_service.apply_stock_delta(product.id, -2, reason="test") == -2

    assert stock_of(product) == 10


def test_zero_delta_writes_nothing(make_product):
    product = make_product(stock=5)

    with atomic():
        assert stock_service.apply_stock_delta(product.id, 0, reason="test") == 0

    assert stock_of(product) == 5
    assert db.session.query(StockMovement).count() == 0


def test_allow_policy_goes_negative(make_product, stock_policy):
    stock_policy("allow")
    product = make_product(stock=3)

    with atomic():
        stock_service.apply_stock_delta(product.id, -5, reason="test")

    assert stock_of(product) == -2


def test_reject_policy_raises_and_rolls_back(make_product, stock_policy):
    stock_policy("reject")
    product = make_product(stock=3)

    with pytest.raises(InsufficientStockError) as exc_info:
        with atomic():
            stock_service.apply_stock_delta(product.id, -5, reason="test")

    assert exc_info.value.details["on_hand"] == 3
    assert exc_info.value.details["requested_delta"] == -5
    assert stock_of(product) == 3
    assert db.session.query(StockMovement).count() == 0


def test_reject_policy_allows_reaching_zero(make_product, stock_policy):
    stock_policy("reject")
    product = make_product(stock=3)

    with atomic():
        stock_service.apply_stock_delta(product.id, -3, reason="test")

    assert stock_of(product) == 0


def test_clamp_policy_floors_at_zero(make_product, stock_policy):
    stock_policy("clamp")
    product = make_product(stock=3)

    with atomic():
        applied = stock_service.apply_stock_delta(product.id, -5, reason="test")

    assert applied == -3
    assert stock_of(product) == 0

    movement = db.session.query(StockMovement).one()
    assert movement.delta == -5
    assert movement.applied_delta == -3


def test_missing_product_raises(db_session):
    with pytest.raises(StockError):
        with atomic():
            stock_service.apply_stock_delta(999, 4, reason="test")


def test_movements_record_order_reference(make_product):
    product = make_product(stock=0)

    with atomic():
        stock_service.apply_stock_delta(product.id, 10, reason="purchase_order.created", order_kind="purchase", order_id=4)
        stock_service.apply_stock_delta(product.id, -4, reason="sale_order.created", order_kind="sale", order_id=8)

    movements, total = stock_service.list_stock_movements(product_id=product.id)
    assert total == 2
    # newest first
    assert [m.delta for m in movements] == [-4, 10]
    assert movements[0].order_kind == "sale"
    assert movements[0].order_id == 8

    sale_only, sale_total = stock_service.list_stock_movements(order_kind="sale")
    assert sale_total == 1
    assert sale_only[0].reason == "sale_order.created"


def test_list_stock_levels_below(make_product):
    low = make_product(name="Low", stock=1)
    make_product(name="High", stock=50)

    products = stock_service.list_stock_levels(below=5)

    assert [p.id for p in products] == [low.id]


def test_clamp_repays_order_shortfall_before_adding(make_product, stock_policy):
    stock_policy("clamp")
    product = make_product(stock=3)

    with atomic():
        stock_service.apply_stock_delta(product.id, -5, reason="sale_order.created", order_kind="sale", order_id=1)
        applied = stock_service.apply_stock_delta(product.id, 5, reason="sale_order.deleted", order_kind="sale", order_id=1)

    assert applied == 3
    assert stock_of(product) == 3


def test_clamp_shortfall_is_scoped_to_the_order(make_product, stock_policy):
    stock_policy("clamp")
    product = make_product(stock=3)

    with atomic():
        stock_service.apply_stock_delta(product.id, -5, reason="sale_order.created", order_kind="sale", order_id=1)
        other = stock_service.apply_stock_delta(product.id, 4, reason="purchase_order.created", order_kind="purchase", order_id=1)
        manual = stock_service.apply_stock_delta(product.id, 2, reason="manual")

    assert other == 4
    assert manual == 2
    assert stock_of(product) == 6
