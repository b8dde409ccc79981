from decimal import Decimal

import pytest

from ims.models import Product
from ims.models.orders import SALE_ORDER_STATUSES
from ims.validation import (
    LineItem,
    ModelValidationPolicy,
    ValidationError,
    order_total,
    parse_line_items,
    parse_order_payload,
    validate_payload,
)


def test_parse_order_payload_create():
    header, lines = parse_order_payload(
        {
            "customer_id": "3",
            "order_date": "2024-05-02T08:00:00+02:00",
            "status": "Shipped",
            "lines": [{"product_id": 1, "quantity": 2, "unit_price": 19.99}],
        },
        party_field="customer_id",
        statuses=SALE_ORDER_STATUSES,
        partial=False,
    )

    assert header["customer_id"] == 3
    assert header["status"] == "shipped"
    assert header["order_date"].hour == 6
    assert lines == [LineItem(product_id=1, quantity=2, unit_price=Decimal("19.99"))]


def test_parse_order_payload_partial_without_lines():
    header, lines = parse_order_payload(
        {"status": "cancelled"}, party_field="customer_id", statuses=SALE_ORDER_STATUSES, partial=True,
    )

    assert header == {"status": "cancelled"}
    assert lines is None


@pytest.mark.parametrize("payload", [
    {"customer_id": 1, "order_date": "2024-05-02", "status": "pending", "lines": []},
    {"customer_id": 1, "order_date": "not a date", "status": "pending", "lines": [{"product_id": 1, "quantity": 1, "unit_price": 1}]},
    {"customer_id": 1, "order_date": "2024-05-02", "status": "pending", "lines": [{"product_id": 1, "quantity": 1.5, "unit_price": 1}]},
    {"customer_id": 1, "order_date": "2024-05-02", "status": "pending", "lines": [{"product_id": 1, "quantity": 1, "unit_price": -1}]},
    {"customer_id": 1, "order_date": "2024-05-02", "status": "pending", "discount": 5, "lines": [{"product_id": 1, "quantity": 1, "unit_price": 1}]},
])
def test_parse_order_payload_rejects(payload):
    with pytest.raises(ValidationError):
        parse_order_payload(payload, party_field="customer_id", statuses=SALE_ORDER_STATUSES, partial=False)


def test_parse_line_items_rejects_duplicate_products():
    with pytest.raises(ValidationError):
        parse_line_items([
            {"product_id": 1, "quantity": 1, "unit_price": 1},
            {"product_id": 1, "quantity": 2, "unit_price": 1},
        ])


def test_order_total():
    lines = [LineItem(1, 3, Decimal("0.10")), LineItem(2, 1, Decimal("2.50"))]

    assert order_total(lines) == Decimal("2.80")


def test_parse_order_payload_partial_rejects_empty_lines():
    with pytest.raises(ValidationError):
        parse_order_payload(
            {"lines": []}, party_field="supplier_id", statuses=("pending",), partial=True,
        )


def test_validate_payload_coerces_by_column_type():
    policy = ModelValidationPolicy(writable_fields={"name", "stock_quantity", "selling_price"})

    patch = validate_payload(
        model=Product,
        payload={"name": "  Bolt ", "stock_quantity": "7", "selling_price": 0.3},
        policy=policy,
        partial=True,
    )

    assert patch == {"name": "Bolt", "stock_quantity": 7, "selling_price": Decimal("0.30")}


@pytest.mark.parametrize("payload", [
    {"name": "   "},
    {"stock_quantity": 1.5},
    {"selling_price": "cheap"},
])
def test_validate_payload_rejects_bad_values(payload):
    policy = ModelValidationPolicy(writable_fields={"name", "stock_quantity", "selling_price"})

    with pytest.raises(ValidationError):
        validate_payload(model=Product, payload=payload, policy=policy, partial=True)
