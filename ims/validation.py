from __future__ import annotations
from datetime import datetime
from decimal import Decimal, InvalidOperation
from ims.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from sqlalchemy import Integer, Numeric, String
from sqlalchemy.orm import DeclarativeMeta


# Maximum money value: 9,999,999,999.99 fits Numeric(12, 2)
MAX_MONEY = Decimal("9999999999.99")
CENT = Decimal("0.01")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., row still referenced)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


@dataclass(frozen=True)
class LineItem:
    """One (product_id, quantity, unit_price) row of an order."""
    product_id: int
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @classmethod
    def coerce(cls, value: Any) -> "LineItem":
        """Build from a LineItem, a mapping, or any object with matching attributes."""
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            price = value.get("unit_price", value.get("price"))
            return cls(int(value["product_id"]), int(value["quantity"]), Decimal(str(price)))
        return cls(int(value.product_id), int(value.quantity), Decimal(str(value.unit_price)))


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_money(key: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    try:
        # str() first so floats like 19.99 do not carry binary noise
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{key} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{key} must be a finite number")
    if amount < 0:
        raise ValidationError(f"{key} must be >= 0")
    if amount > MAX_MONEY:
        raise ValidationError(f"{key} cannot exceed {MAX_MONEY}")
    return amount.quantize(CENT)


def _coerce_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except Exception:
            raise ValidationError(f"{key} must be an ISO-8601 datetime")
        if dt is None:
            raise ValidationError(f"{key} must be an ISO-8601 datetime")
        return dt
    raise ValidationError(f"{key} must be a datetime")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _coerce_int(col.key, value)

    if isinstance(coltype, Numeric):
        return _coerce_money(col.key, value)

    # Strings
    if isinstance(coltype, String):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, String) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "stock_quantity" in patch and patch["stock_quantity"] is not None:
        if patch["stock_quantity"] < 0:
            raise ValidationError("stock_quantity must be >= 0")


def parse_line_items(raw_lines: Any) -> list[LineItem]:
    """
    Validate an order's line list.

    Each line needs product_id (int), quantity (positive int) and unit_price
    (non-negative number; "price" is accepted as an alias). A product may
    appear only once per order.
    """
    if not isinstance(raw_lines, list):
        raise ValidationError("lines must be a list")

    items: list[LineItem] = []
    seen: set[int] = set()
    for index, raw in enumerate(raw_lines, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"line {index} must be an object")

        if raw.get("product_id") is None:
            raise ValidationError(f"line {index}: product_id is required")
        if raw.get("quantity") is None:
            raise ValidationError(f"line {index}: quantity is required")
        price = raw.get("unit_price", raw.get("price"))
        if price is None:
            raise ValidationError(f"line {index}: unit_price is required")

        product_id = _coerce_int(f"line {index}: product_id", raw["product_id"])
        quantity = _coerce_int(f"line {index}: quantity", raw["quantity"])
        if quantity <= 0:
            raise ValidationError(f"line {index}: quantity must be > 0")
        unit_price = _coerce_money(f"line {index}: unit_price", price)

        if product_id in seen:
            raise ValidationError(f"line {index}: product {product_id} appears more than once")
        seen.add(product_id)

        items.append(LineItem(product_id=product_id, quantity=quantity, unit_price=unit_price))

    return items


def order_total(lines: Iterable[LineItem]) -> Decimal:
    """Sum of quantity * unit_price, rounded to cents."""
    return sum((line.line_total for line in lines), Decimal("0")).quantize(CENT)


def parse_order_payload(
    payload: Any,
    *,
    party_field: str,
    statuses: Iterable[str],
    partial: bool,
) -> tuple[dict, list[LineItem] | None]:
    """
    Validate an order header + optional line list.

    party_field is "supplier_id" for purchase orders and "customer_id" for
    sale orders. Lines are read from "lines" or, for payloads shaped like the
    desktop UI's, from "products".

    partial=False: create semantics (party, order_date, status, lines required)
    partial=True: edit semantics (only provided keys are validated)

    Returns:
        (header dict, line items or None when no line list was supplied)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    allowed = {party_field, "order_date", "status", "total_amount", "lines", "products"}
    for k in payload.keys():
        if k not in allowed:
            raise ValidationError(f"Field not allowed: {k}")

    if not partial:
        missing = [f for f in (party_field, "order_date", "status") if payload.get(f) is None]
        if "lines" not in payload and "products" not in payload:
            missing.append("lines")
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    header: dict = {}

    if payload.get(party_field) is not None:
        header[party_field] = _coerce_int(party_field, payload[party_field])

    if payload.get("order_date") is not None:
        header["order_date"] = _coerce_datetime("order_date", payload["order_date"])

    if payload.get("status") is not None:
        status = str(payload["status"]).strip().lower()
        valid = tuple(statuses)
        if status not in valid:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(valid)}")
        header["status"] = status

    if payload.get("total_amount") is not None:
        header["total_amount"] = _coerce_money("total_amount", payload["total_amount"])

    raw_lines = payload.get("lines", payload.get("products"))
    lines = parse_line_items(raw_lines) if raw_lines is not None else None

    # Edits may omit lines but never send an empty list
    if lines == [] or (not partial and lines is None):
        raise ValidationError("An order needs at least one line")

    return header, lines
