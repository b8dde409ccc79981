# Overview: Service-layer operations for purchase orders; binds the shared order lifecycle to PurchaseOrder.

"""
Purchase Order Service

Supplier -> warehouse. Stock is added while an order is 'received':

- create with status 'received' adds each line's quantity
- status edits follow the purchase transition table in reconciliation.py
  (into 'cancelled' subtracts, out of 'cancelled' adds back,
  pending <-> received adds/subtracts)
- line-set edits with unchanged status add (new - old) per product
- deleting a 'received' order subtracts its lines
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable

from ..models import PurchaseOrder, PurchaseOrderLine
from ..models.orders import PURCHASE_ORDER_STATUSES, PO_STATUS_PENDING
from . import order_service
from .order_service import OrderSchema, OrderNotFoundError  # noqa: F401
from .reconciliation import PURCHASE


PURCHASE_ORDERS = OrderSchema(
    kind=PURCHASE,
    model=PurchaseOrder,
    line_model=PurchaseOrderLine,
    line_fk="purchase_order_id",
    party_field="supplier_id",
    statuses=PURCHASE_ORDER_STATUSES,
    label="Purchase order",
)


def list_purchase_orders(*, status: str | None = None, supplier_id: int | None = None) -> list[PurchaseOrder]:
    """All purchase orders with lines attached, newest first."""
    return order_service.list_orders(PURCHASE_ORDERS, status=status, party_id=supplier_id)


def get_purchase_order(order_id: int) -> PurchaseOrder:
    return order_service.get_order(PURCHASE_ORDERS, order_id)


def create_purchase_order(
    *,
    supplier_id: int,
    order_date: datetime | str,
    lines: Iterable,
    status: str = PO_STATUS_PENDING,
    total_amount: Decimal | None = None,
) -> PurchaseOrder:
    """
    Create a purchase order with its lines.

    Args:
        supplier_id: Supplier the goods come from
        order_date: Business date of the order
        lines: {product_id, quantity, unit_price} items
        status: pending, received or cancelled
        total_amount: Caller-computed total; derived from lines when omitted

    Returns:
        Created PurchaseOrder with lines attached
    """
    return order_service.create_order(
        PURCHASE_ORDERS,
        header={
            "supplier_id": supplier_id,
            "order_date": order_date,
            "status": status,
            "total_amount": total_amount,
        },
        lines=lines,
    )


def update_purchase_order(order_id: int, *, lines: Iterable | None = None, **header) -> dict:
    """
    Edit header fields (supplier_id, order_date, total_amount, status) and
    optionally replace the line set. See order_service.update_order.
    """
    return order_service.update_order(PURCHASE_ORDERS, order_id, header=header, lines=lines)


def delete_purchase_order(order_id: int) -> dict:
    return order_service.delete_order(PURCHASE_ORDERS, order_id)


def delete_purchase_orders(order_ids: Iterable[int]) -> dict:
    return order_service.delete_orders(PURCHASE_ORDERS, order_ids)
