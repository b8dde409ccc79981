# Overview: Service-layer CRUD for catalog and party records (products, categories, suppliers, customers).

"""
Catalog Service

Plain CRUD for the reference entities that orders point at. None of these
operations move stock, with one exception: a product may be created with an
initial stock_quantity. After that the counter belongs to stock_service and
cannot be patched here.

Deleting a row that orders still reference raises ConflictError (foreign key
enforcement), and the transaction is rolled back.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Category, Customer, Product, Supplier
from ..validation import ConflictError, ValidationError
from .concurrency import atomic

logger = logging.getLogger(__name__)


PRODUCT_MUTABLE_FIELDS = {"name", "sku", "upc", "cost_price", "selling_price", "category_id"}

# Columns matched by the ?search= filter
SEARCH_FIELDS = {
    Product: ("name", "sku", "upc"),
    Category: ("name", "description"),
    Supplier: ("name", "contact_person", "email"),
    Customer: ("name", "contact_person", "email"),
}


class NotFoundError(Exception):
    """Raised when a catalog record is not found."""
    pass


def _label(model) -> str:
    return model.__name__


def list_records(model, *, search: str | None = None) -> list:
    """All rows of `model` ordered by name, optionally filtered by a search term."""
    query = db.session.query(model)
    if search:
        like = f"%{search.strip()}%"
        fields = SEARCH_FIELDS.get(model, ("name",))
        query = query.filter(or_(*(getattr(model, f).ilike(like) for f in fields)))
    return query.order_by(model.name.asc(), model.id.asc()).all()


def get_record(model, record_id: int):
    record = db.session.get(model, record_id)
    if record is None:
        raise NotFoundError(f"{_label(model)} {record_id} not found")
    return record


def create_record(model, patch: dict):
    """
    Insert a row from a validated patch dict.

    Raises:
        ConflictError: If a constraint fails (e.g. unknown category_id)
    """
    try:
        with atomic():
            record = model(**patch)
            db.session.add(record)
            db.session.flush()
    except IntegrityError as e:
        raise ConflictError(f"Could not create {_label(model).lower()}: constraint violation") from e

    logger.info("%s %s created", _label(model), record.id)
    return record


def update_record(model, record_id: int, patch: dict):
    """
    Apply a validated patch dict to an existing row.

    Raises:
        NotFoundError: If not found
        ValidationError: If the patch tries to write product stock
        ConflictError: If a constraint fails
    """
    if model is Product:
        blocked = set(patch) - PRODUCT_MUTABLE_FIELDS
        if blocked:
            raise ValidationError(
                f"Field not allowed: {', '.join(sorted(blocked))}. Stock changes go through orders."
            )

    try:
        with atomic():
            record = get_record(model, record_id)
            for k, v in patch.items():
                setattr(record, k, v)
            db.session.flush()
    except IntegrityError as e:
        raise ConflictError(f"Could not update {_label(model).lower()}: constraint violation") from e

    return record


def delete_record(model, record_id: int) -> dict:
    """
    Returns:
        {"success": True} or {"success": False, "error": "<Model> not found"}

    Raises:
        ConflictError: If orders (or products, for suppliers/customers) still reference the row
    """
    try:
        with atomic():
            record = db.session.get(model, record_id)
            if record is None:
                return {"success": False, "error": f"{_label(model)} not found"}
            db.session.delete(record)
            db.session.flush()
    except IntegrityError as e:
        raise ConflictError(f"{_label(model)} {record_id} is still referenced") from e

    logger.info("%s %s deleted", _label(model), record_id)
    return {"success": True}


def delete_records(model, record_ids: Iterable[int]) -> dict:
    """
    Delete every row whose id is in `record_ids`; unknown ids are skipped.

    Returns:
        {"success": True, "deleted": <row count>}

    Raises:
        ConflictError: If any row is still referenced (nothing is deleted)
    """
    ids = sorted({int(i) for i in record_ids})
    if not ids:
        return {"success": True, "deleted": 0}

    try:
        with atomic():
            query = db.session.query(model).filter(model.id.in_(ids))
            deleted = query.count()
            query.delete(synchronize_session="fetch")
    except IntegrityError as e:
        raise ConflictError(f"One or more {_label(model).lower()} rows are still referenced") from e

    logger.info("%s bulk delete ids=%s deleted=%s", _label(model), ids, deleted)
    return {"success": True, "deleted": deleted}
