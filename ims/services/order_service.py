# Overview: Service-layer order lifecycle shared by purchase and sale orders; persists headers/lines and reconciles stock.

"""
Order Service

WHY: Purchase orders and sale orders have the same shape (header + line set
keyed by product) and the same lifecycle operations. Only the stock sign
differs, and that lives in reconciliation.py. This module is the single
implementation of create / update / delete / delete-many for both kinds;
purchase_order_service and sale_order_service bind it to their models.

TRANSACTIONS:
- Every mutation runs inside concurrency.atomic(): header write, line write
  and stock deltas commit together or not at all.
- The existing order and its lines are read inside the same transaction
  (row-locked where the database supports it) before deltas are computed.

EDIT SEMANTICS:
- Header fields supplied are always written.
- Status changed: one stock pass over the EXISTING lines using the
  transition sign. A line list supplied alongside a status change is ignored.
- Status unchanged and a line list supplied: the whole line set is replaced
  and stock moves by the per-product difference.
- Editing a missing order is a no-op that still reports success.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy.orm import selectinload

from ..extensions import db
from ..time_utils import coerce_datetime
from ..validation import LineItem, ValidationError, order_total
from .concurrency import atomic, lock_for_update
from .reconciliation import (
    apply_signed_quantities,
    diff_line_quantities,
    line_edit_sign,
    placement_sign,
    quantities_by_product,
    removal_sign,
    transition_sign,
)

logger = logging.getLogger(__name__)


ORDER_NOT_FOUND = "Order not found"


class OrderNotFoundError(Exception):
    """Raised when an order is not found."""
    pass


@dataclass(frozen=True)
class OrderSchema:
    """Binds the generic order lifecycle to one header/line model pair."""
    kind: str
    model: Any
    line_model: Any
    line_fk: str
    party_field: str
    statuses: tuple[str, ...]
    label: str

    @property
    def header_fields(self) -> set[str]:
        return {self.party_field, "order_date", "total_amount", "status"}

    def line_column(self):
        return getattr(self.line_model, self.line_fk)

    def build_line(self, item: LineItem):
        return self.line_model(
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price=item.unit_price,
        )


def _coerce_lines(lines: Iterable | None) -> list[LineItem] | None:
    if lines is None:
        return None
    return [LineItem.coerce(line) for line in lines]


def _require_status(schema: OrderSchema, status: str) -> None:
    if status not in schema.statuses:
        raise ValidationError(
            f"Invalid status {status!r}. Must be one of: {', '.join(schema.statuses)}"
        )


def _apply_header(schema: OrderSchema, order, header: dict) -> None:
    unknown = set(header) - schema.header_fields
    if unknown:
        raise ValidationError(f"Unknown order fields: {', '.join(sorted(unknown))}")

    for key, value in header.items():
        if key == "status":
            _require_status(schema, value)
        elif key == "order_date":
            value = coerce_datetime(value)
        setattr(order, key, value)


def _reason(schema: OrderSchema, event: str) -> str:
    return f"{schema.kind}_order.{event}"


def _load_for_update(schema: OrderSchema, order_id: int):
    query = db.session.query(schema.model).filter(schema.model.id == order_id)
    return lock_for_update(query).first()


def list_orders(
    schema: OrderSchema,
    *,
    status: str | None = None,
    party_id: int | None = None,
) -> list:
    """
    List orders with their lines attached. Pure read.

    Args:
        status: Filter by status
        party_id: Filter by supplier / customer
    """
    query = db.session.query(schema.model).options(selectinload(schema.model.lines))

    if status:
        query = query.filter(schema.model.status == status)
    if party_id is not None:
        query = query.filter(getattr(schema.model, schema.party_field) == party_id)

    return query.order_by(schema.model.order_date.desc(), schema.model.id.desc()).all()


def get_order(schema: OrderSchema, order_id: int):
    """
    Get an order by ID.

    Raises:
        OrderNotFoundError: If not found
    """
    order = db.session.get(schema.model, order_id)
    if order is None:
        raise OrderNotFoundError(f"{schema.label} {order_id} not found")
    return order


def create_order(schema: OrderSchema, *, header: dict, lines: Iterable):
    """
    Insert header and lines; apply the placement stock effect.

    Args:
        header: party id, order_date, status, optional total_amount
        lines: LineItem objects or mappings with product_id/quantity/unit_price

    Returns:
        Created order with lines attached

    Raises:
        ValidationError: Missing header fields or unknown status
        StockError / IntegrityError: Missing product or store failure (rolled back)
    """
    items = _coerce_lines(lines) or []
    header = dict(header)

    missing = [f for f in (schema.party_field, "order_date", "status") if header.get(f) is None]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if header.get("total_amount") is None:
        header["total_amount"] = order_total(items)

    with atomic():
        order = schema.model()
        _apply_header(schema, order, header)
        order.lines = [schema.build_line(item) for item in items]
        db.session.add(order)
        db.session.flush()

        apply_signed_quantities(
            schema.kind,
            quantities_by_product(items),
            placement_sign(schema.kind, order.status),
            order_id=order.id,
            reason=_reason(schema, "created"),
        )

    logger.info("%s %s created status=%s lines=%s", schema.label, order.id, order.status, len(items))
    return order


def update_order(
    schema: OrderSchema,
    order_id: int,
    *,
    header: dict,
    lines: Iterable | None = None,
) -> dict:
    """
    Edit an order and reconcile stock.

    Args:
        order_id: Order to edit
        header: Header fields to write (any subset of party id, order_date,
            total_amount, status)
        lines: Replacement line set, or None to keep the existing lines

    Returns:
        {"success": True}

    Raises:
        ValidationError: Unknown header field or status, or an empty line list
        StockError / IntegrityError: Store failure (rolled back)
    """
    items = _coerce_lines(lines)
    if items == []:
        raise ValidationError("An order needs at least one line")

    with atomic():
        order = _load_for_update(schema, order_id)
        if order is None:
            logger.warning("%s %s not found; update skipped", schema.label, order_id)
            return {"success": True}

        old_status = order.status
        existing = quantities_by_product(order.lines)

        _apply_header(schema, order, header)

        if order.status != old_status:
            if items is not None:
                logger.warning(
                    "%s %s status changed %s -> %s; supplied lines ignored",
                    schema.label, order_id, old_status, order.status,
                )
            apply_signed_quantities(
                schema.kind,
                existing,
                transition_sign(schema.kind, old_status, order.status),
                order_id=order.id,
                reason=_reason(schema, "status_changed"),
            )
        elif items is not None:
            # Flush deletes before inserts; new lines may reuse (order_id, product_id) keys
            order.lines.clear()
            db.session.flush()
            order.lines.extend(schema.build_line(item) for item in items)
            if "total_amount" not in header:
                order.total_amount = order_total(items)
            db.session.flush()

            apply_signed_quantities(
                schema.kind,
                diff_line_quantities(existing, quantities_by_product(items)),
                line_edit_sign(schema.kind),
                order_id=order.id,
                reason=_reason(schema, "lines_replaced"),
            )

    return {"success": True}


def delete_order(schema: OrderSchema, order_id: int) -> dict:
    """
    Reverse the order's stock effect, then delete lines and header.

    Returns:
        {"success": True} or {"success": False, "error": "Order not found"}
    """
    with atomic():
        order = _load_for_update(schema, order_id)
        if order is None:
            return {"success": False, "error": ORDER_NOT_FOUND}

        apply_signed_quantities(
            schema.kind,
            quantities_by_product(order.lines),
            removal_sign(schema.kind, order.status),
            order_id=order.id,
            reason=_reason(schema, "deleted"),
        )
        # cascade removes lines before the header
        db.session.delete(order)

    logger.info("%s %s deleted", schema.label, order_id)
    return {"success": True}


def delete_orders(schema: OrderSchema, order_ids: Iterable[int]) -> dict:
    """
    Bulk delete: per-order stock reversal, then bulk line and header deletes
    filtered by the id set. Unknown ids are skipped.

    Returns:
        {"success": True}
    """
    ids = sorted({int(i) for i in order_ids})
    if not ids:
        return {"success": True}

    with atomic():
        query = (
            db.session.query(schema.model)
            .options(selectinload(schema.model.lines))
            .filter(schema.model.id.in_(ids))
            .order_by(schema.model.id)
        )
        orders = lock_for_update(query).all()

        for order in orders:
            apply_signed_quantities(
                schema.kind,
                quantities_by_product(order.lines),
                removal_sign(schema.kind, order.status),
                order_id=order.id,
                reason=_reason(schema, "deleted"),
            )

        db.session.query(schema.line_model).filter(
            schema.line_column().in_(ids)
        ).delete(synchronize_session="fetch")
        db.session.query(schema.model).filter(
            schema.model.id.in_(ids)
        ).delete(synchronize_session="fetch")

    logger.info("%s bulk delete ids=%s matched=%s", schema.label, ids, len(orders))
    return {"success": True}
