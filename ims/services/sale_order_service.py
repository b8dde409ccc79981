# Overview: Service-layer operations for sale orders; binds the shared order lifecycle to SaleOrder.

"""
Sale Order Service

Warehouse -> customer. Every status except 'cancelled' consumes stock:

- create with a non-cancelled status subtracts each line's quantity
- cancelling gives the existing lines back; un-cancelling takes them again;
  pending -> shipped -> delivered moves nothing
- line-set edits with unchanged status subtract (new - old) per product
- deleting a non-cancelled order gives its lines back
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable

from ..models import SaleOrder, SaleOrderLine
from ..models.orders import SALE_ORDER_STATUSES, SO_STATUS_PENDING
from . import order_service
from .order_service import OrderSchema, OrderNotFoundError  # noqa: F401
from .reconciliation import SALE


SALE_ORDERS = OrderSchema(
    kind=SALE,
    model=SaleOrder,
    line_model=SaleOrderLine,
    line_fk="sale_order_id",
    party_field="customer_id",
    statuses=SALE_ORDER_STATUSES,
    label="Sale order",
)


def list_sale_orders(*, status: str | None = None, customer_id: int | None = None) -> list[SaleOrder]:
    """All sale orders with lines attached, newest first."""
    return order_service.list_orders(SALE_ORDERS, status=status, party_id=customer_id)


def get_sale_order(order_id: int) -> SaleOrder:
    return order_service.get_order(SALE_ORDERS, order_id)


def create_sale_order(
    *,
    customer_id: int,
    order_date: datetime | str,
    lines: Iterable,
    status: str = SO_STATUS_PENDING,
    total_amount: Decimal | None = None,
) -> SaleOrder:
    """
    Create a sale order with its lines.

    Args:
        customer_id: Customer the goods go to
        order_date: Business date of the order
        lines: {product_id, quantity, unit_price} items
        status: pending, shipped, delivered or cancelled
        total_amount: Caller-computed total; derived from lines when omitted

    Returns:
        Created SaleOrder with lines attached
    """
    return order_service.create_order(
        SALE_ORDERS,
        header={
            "customer_id": customer_id,
            "order_date": order_date,
            "status": status,
            "total_amount": total_amount,
        },
        lines=lines,
    )


def update_sale_order(order_id: int, *, lines: Iterable | None = None, **header) -> dict:
    """
    Edit header fields (customer_id, order_date, total_amount, status) and
    optionally replace the line set. See order_service.update_order.
    """
    return order_service.update_order(SALE_ORDERS, order_id, header=header, lines=lines)


def delete_sale_order(order_id: int) -> dict:
    return order_service.delete_order(SALE_ORDERS, order_id)


def delete_sale_orders(order_ids: Iterable[int]) -> dict:
    return order_service.delete_orders(SALE_ORDERS, order_ids)
