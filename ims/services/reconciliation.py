# Overview: Signed-quantity reconciler shared by purchase-order and sale-order services.

"""
Stock Reconciliation Rules (authoritative)

Both order kinds share one reconciler. The only thing that differs between
them is the sign applied to line quantities, given by the functions below.

Purchase orders (supplier -> warehouse), status transitions old -> new:

    pending   -> received   +
    received  -> pending    -
    any       -> cancelled  -
    cancelled -> any        +
    unchanged               0

Sale orders (warehouse -> customer). 'cancelled' does not consume stock, any
other status does:

    cancelled     -> non-cancelled   -
    non-cancelled -> cancelled       +
    anything else                    0

Placement (create) applies placement_sign(); removal (delete) applies its
negation. A status-changing edit applies transition_sign() to the EXISTING
lines only.

Line-set edits with unchanged status move stock by line_edit_sign() times the
per-product difference, whatever the order status is. Purchase: +1,
sale: -1. This matches how the desktop application has always behaved, even
for pending purchase orders; do not "fix" it here without a product decision.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from ..models.orders import PO_STATUS_CANCELLED, PO_STATUS_PENDING, PO_STATUS_RECEIVED, SO_STATUS_CANCELLED
from . import stock_service


PURCHASE = "purchase"
SALE = "sale"
ORDER_KINDS = (PURCHASE, SALE)


def _require_kind(kind: str) -> None:
    if kind not in ORDER_KINDS:
        raise ValueError(f"Unknown order kind: {kind!r}")


def placement_sign(kind: str, status: str) -> int:
    """Stock sign for an order that comes into existence with `status`."""
    _require_kind(kind)
    if kind == PURCHASE:
        return 1 if status == PO_STATUS_RECEIVED else 0
    return 0 if status == SO_STATUS_CANCELLED else -1


def removal_sign(kind: str, status: str) -> int:
    """Stock sign for deleting an order currently in `status`."""
    return -placement_sign(kind, status)


def transition_sign(kind: str, before: str, after: str) -> int:
    """Stock sign for moving an existing order from `before` to `after`."""
    _require_kind(kind)
    if before == after:
        return 0

    if kind == PURCHASE:
        if after == PO_STATUS_CANCELLED:
            return -1
        if before == PO_STATUS_CANCELLED:
            return 1
        if before == PO_STATUS_PENDING and after == PO_STATUS_RECEIVED:
            return 1
        if before == PO_STATUS_RECEIVED and after == PO_STATUS_PENDING:
            return -1
        return 0

    was_consuming = before != SO_STATUS_CANCELLED
    is_consuming = after != SO_STATUS_CANCELLED
    if was_consuming == is_consuming:
        return 0
    return -1 if is_consuming else 1


def line_edit_sign(kind: str) -> int:
    """Sign applied to (new - old) quantity when a line set is replaced."""
    _require_kind(kind)
    return 1 if kind == PURCHASE else -1


def quantities_by_product(lines: Iterable) -> dict[int, int]:
    """
    Collapse line items into {product_id: quantity}.

    Accepts ORM line rows or anything with product_id/quantity attributes or keys.
    """
    result: dict[int, int] = {}
    for line in lines:
        if isinstance(line, Mapping):
            product_id, quantity = line["product_id"], line["quantity"]
        else:
            product_id, quantity = line.product_id, line.quantity
        result[int(product_id)] = result.get(int(product_id), 0) + int(quantity)
    return result


def diff_line_quantities(old: Mapping[int, int], new: Mapping[int, int]) -> dict[int, int]:
    """
    Set reconciliation keyed by product id.

    Returns {product_id: new - old} for every product present in either map,
    so a removed product yields -old and an added product yields +new.
    Products whose quantity did not change are omitted.
    """
    deltas: dict[int, int] = {}
    for product_id in set(old) | set(new):
        delta = new.get(product_id, 0) - old.get(product_id, 0)
        if delta:
            deltas[product_id] = delta
    return deltas


def apply_signed_quantities(
    kind: str,
    quantities: Mapping[int, int],
    sign: int,
    *,
    order_id: int | None,
    reason: str,
) -> dict[int, int]:
    """
    Apply sign * quantity to each product's stock via stock_service.

    Products are processed in ascending id order so concurrent writers touch
    rows in the same sequence. Must run inside the caller's transaction.

    Returns:
        {product_id: applied delta} for the products actually touched
    """
    _require_kind(kind)
    applied: dict[int, int] = {}
    if sign == 0:
        return applied

    for product_id in sorted(quantities):
        delta = sign * quantities[product_id]
        if delta == 0:
            continue
        applied[product_id] = stock_service.apply_stock_delta(
            product_id,
            delta,
            reason=reason,
            order_kind=kind,
            order_id=order_id,
        )
    return applied
