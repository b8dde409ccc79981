# Overview: Service-layer operations for stock levels; the single writer of Product.stock_quantity.

"""
IMS Stock Invariants (authoritative)

- Product.stock_quantity is a running counter, not ledger-derived.
- After product creation the counter is changed ONLY by apply_stock_delta().
  Purchase-order and sale-order services never increment/decrement directly.
- apply_stock_delta() never commits. It runs inside the caller's transaction
  (see concurrency.atomic), so a failed order mutation rolls back its deltas.
- Each applied delta appends a StockMovement row in the same transaction.
- Negative stock is governed by STOCK_NEGATIVE_POLICY:
    allow  -> the counter may go below zero
    reject -> InsufficientStockError, caller's transaction rolls back
    clamp  -> the counter is floored at zero; a later positive delta for
              the same order and product first repays that shortfall, so
              reversing an order returns only what it actually took
"""

from __future__ import annotations

import logging

from flask import current_app
from sqlalchemy import func, update

from ..config import STOCK_POLICY_ALLOW, STOCK_POLICY_CLAMP, STOCK_POLICY_REJECT
from ..extensions import db
from ..models import Product, StockMovement
from .concurrency import lock_for_update

logger = logging.getLogger(__name__)


class StockError(Exception):
    """Raised when a stock delta cannot be applied."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InsufficientStockError(StockError):
    """Raised under the 'reject' policy when a delta would go below zero."""


def negative_stock_policy() -> str:
    return current_app.config.get("STOCK_NEGATIVE_POLICY", STOCK_POLICY_ALLOW)


def _current_quantity(product_id: int, *, lock: bool = False) -> int | None:
    query = db.session.query(Product.stock_quantity).filter(Product.id == product_id)
    if lock:
        query = lock_for_update(query)
    row = query.first()
    return None if row is None else int(row[0])


def _unapplied_for_order(product_id: int, order_kind: str, order_id: int) -> int:
    """
    Outstanding clamp shortfall for one product on one order (<= 0).

    Sum of (delta - applied_delta) over the order's movements: -2 means the
    order asked for 2 more units than the counter could give.
    """
    total = (
        db.session.query(func.coalesce(func.sum(StockMovement.delta - StockMovement.applied_delta), 0))
        .filter(
            StockMovement.product_id == product_id,
            StockMovement.order_kind == order_kind,
            StockMovement.order_id == order_id,
        )
        .scalar()
    )
    return min(int(total), 0)


def _increment(product_id: int, delta: int, *, require_non_negative: bool = False) -> int:
    """Row-level UPDATE ... SET stock_quantity = stock_quantity + delta. Returns rowcount."""
    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(stock_quantity=Product.stock_quantity + delta)
        .execution_options(synchronize_session="evaluate")
    )
    if require_non_negative:
        stmt = stmt.where(Product.stock_quantity + delta >= 0)
    return db.session.execute(stmt).rowcount


def apply_stock_delta(
    product_id: int,
    delta: int,
    *,
    reason: str,
    order_kind: str | None = None,
    order_id: int | None = None,
) -> int:
    """
    Add `delta` (may be negative) to a product's stock counter.

    Args:
        product_id: Product to adjust
        delta: Signed quantity change
        reason: Short machine-readable reason stored on the movement row
        order_kind: "purchase" / "sale" when driven by an order
        order_id: Order that caused the change

    Returns:
        The delta actually applied (differs from `delta` only under clamp)

    Raises:
        StockError: If the product does not exist
        InsufficientStockError: If policy is 'reject' and stock would go negative
    """
    delta = int(delta)
    if delta == 0:
        return 0

    policy = negative_stock_policy()
    applied = delta

    if policy == STOCK_POLICY_CLAMP:
        if delta < 0:
            current = _current_quantity(product_id, lock=True)
            if current is None:
                raise StockError(f"Product {product_id} not found", details={"product_id": product_id})
            applied = max(delta, -max(current, 0))
        elif order_kind and order_id is not None:
            # Give back only what this order actually took off the counter
            applied = max(delta + _unapplied_for_order(product_id, order_kind, order_id), 0)

    # applied is 0 when clamping an empty counter or repaying an earlier clamp
    if applied:
        rowcount = _increment(
            product_id,
            applied,
            require_non_negative=(policy == STOCK_POLICY_REJECT and applied < 0),
        )
        if rowcount == 0:
            current = _current_quantity(product_id)
            if current is None:
                raise StockError(f"Product {product_id} not found", details={"product_id": product_id})
            raise InsufficientStockError(
                f"Insufficient stock for product {product_id}",
                details={"product_id": product_id, "requested_delta": delta, "on_hand": current},
            )

    db.session.add(StockMovement(
        product_id=product_id,
        delta=delta,
        applied_delta=applied,
        reason=reason,
        order_kind=order_kind,
        order_id=order_id,
    ))

    logger.info(
        "stock delta product=%s delta=%s applied=%s reason=%s order=%s:%s",
        product_id, delta, applied, reason, order_kind, order_id,
    )
    return applied


def get_stock_quantity(product_id: int) -> int:
    """Current counter value for a product (read only)."""
    current = _current_quantity(product_id)
    if current is None:
        raise StockError(f"Product {product_id} not found", details={"product_id": product_id})
    return current


def list_stock_levels(below: int | None = None) -> list[Product]:
    """Products ordered by stock ascending; optionally only those under a threshold."""
    query = db.session.query(Product)
    if below is not None:
        query = query.filter(Product.stock_quantity < below)
    return query.order_by(Product.stock_quantity.asc(), Product.id.asc()).all()


def list_stock_movements(
    *,
    product_id: int | None = None,
    order_kind: str | None = None,
    order_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[StockMovement], int]:
    """
    List stock movements, newest first.

    Returns:
        Tuple of (list of movements, total count)
    """
    query = db.session.query(StockMovement)

    if product_id is not None:
        query = query.filter(StockMovement.product_id == product_id)
    if order_kind:
        query = query.filter(StockMovement.order_kind == order_kind)
    if order_id is not None:
        query = query.filter(StockMovement.order_id == order_id)

    total = query.count()

    query = query.order_by(StockMovement.id.desc())
    query = query.offset(offset).limit(limit)

    return query.all(), total
