# Overview: Flask API routes for products, categories, suppliers and customers; parses input and returns JSON responses.

"""
Catalog Routes

Each entity family exposes the same five operations the desktop UI calls
(get / add / edit / delete / delete-multiple):

    GET    /api/<entity>                    list (optional ?search=)
    GET    /api/<entity>/<id>               fetch one
    POST   /api/<entity>                    create
    PUT    /api/<entity>/<id>               edit
    DELETE /api/<entity>/<id>               delete
    POST   /api/<entity>/delete-multiple    bulk delete {"ids": [...]}

Products additionally expose their stock movement history. Product stock is
writable on create only; afterwards it changes through orders.
"""

from flask import Blueprint, request, jsonify, current_app

from ..models import Category, Customer, Product, Supplier
from ..services import catalog_service, stock_service
from ..services.catalog_service import NotFoundError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "sku", "upc", "cost_price", "selling_price", "stock_quantity", "category_id"},
    required_on_create={"name"},
)
PRODUCT_EDIT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "sku", "upc", "cost_price", "selling_price", "category_id"},
)
CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)
SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_person", "email", "phone"},
    required_on_create={"name"},
)
CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_person", "email", "phone", "address"},
    required_on_create={"name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")
categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")
suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")
customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


def _register_crud(bp: Blueprint, model, create_policy, edit_policy=None, rules=None) -> None:
    """Attach the five catalog operations for `model` to `bp`."""
    edit_policy = edit_policy or create_policy
    label = model.__name__.lower()

    def list_route():
        records = catalog_service.list_records(model, search=request.args.get("search"))
        return jsonify({
            "items": [r.to_dict() for r in records],
            "count": len(records),
        })

    def get_route(record_id: int):
        try:
            return jsonify(catalog_service.get_record(model, record_id).to_dict())
        except NotFoundError:
            return jsonify({"error": f"{model.__name__} not found"}), 404

    def create_route():
        payload = request.get_json(silent=True) or {}
        try:
            patch = validate_payload(model=model, payload=payload, policy=create_policy, partial=False)
            if rules:
                rules(patch)
            record = catalog_service.create_record(model, patch)
            return jsonify(record.to_dict()), 201
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400
        except ConflictError as e:
            return jsonify({"error": str(e)}), 409
        except Exception:
            current_app.logger.exception("Failed to create %s", label)
            return jsonify({"error": "Internal server error"}), 500

    def update_route(record_id: int):
        payload = request.get_json(silent=True) or {}
        try:
            patch = validate_payload(model=model, payload=payload, policy=edit_policy, partial=True)
            if rules:
                rules(patch)
            record = catalog_service.update_record(model, record_id, patch)
            return jsonify(record.to_dict())
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400
        except NotFoundError:
            return jsonify({"error": f"{model.__name__} not found"}), 404
        except ConflictError as e:
            return jsonify({"error": str(e)}), 409
        except Exception:
            current_app.logger.exception("Failed to update %s", label)
            return jsonify({"error": "Internal server error"}), 500

    def delete_route(record_id: int):
        try:
            result = catalog_service.delete_record(model, record_id)
            return jsonify(result), (200 if result["success"] else 404)
        except ConflictError as e:
            return jsonify({"success": False, "error": str(e)}), 409
        except Exception:
            current_app.logger.exception("Failed to delete %s", label)
            return jsonify({"success": False, "error": "Internal server error"}), 500

    def delete_multiple_route():
        data = request.get_json(silent=True) or {}
        ids = data.get("ids")
        if not isinstance(ids, list) or not all(isinstance(i, int) and not isinstance(i, bool) for i in ids):
            return jsonify({"error": "ids must be a list of integers"}), 400
        try:
            return jsonify(catalog_service.delete_records(model, ids))
        except ConflictError as e:
            return jsonify({"success": False, "error": str(e)}), 409
        except Exception:
            current_app.logger.exception("Failed to delete %s rows", label)
            return jsonify({"success": False, "error": "Internal server error"}), 500

    bp.add_url_rule("", f"list_{bp.name}", list_route, methods=["GET"])
    bp.add_url_rule("", f"create_{label}", create_route, methods=["POST"])
    bp.add_url_rule("/<int:record_id>", f"get_{label}", get_route, methods=["GET"])
    bp.add_url_rule("/<int:record_id>", f"update_{label}", update_route, methods=["PUT"])
    bp.add_url_rule("/<int:record_id>", f"delete_{label}", delete_route, methods=["DELETE"])
    bp.add_url_rule("/delete-multiple", f"delete_multiple_{bp.name}", delete_multiple_route, methods=["POST"])


_register_crud(products_bp, Product, PRODUCT_POLICY, PRODUCT_EDIT_POLICY, rules=enforce_rules_product)
_register_crud(categories_bp, Category, CATEGORY_POLICY)
_register_crud(suppliers_bp, Supplier, SUPPLIER_POLICY)
_register_crud(customers_bp, Customer, CUSTOMER_POLICY)


@products_bp.get("/<int:product_id>/movements")
def list_product_movements_route(product_id: int):
    """
    Stock movement history for one product, newest first.

    Query parameters:
    - limit: Maximum results (default: 100)
    - offset: Pagination offset (default: 0)
    """
    limit = request.args.get("limit", 100, type=int)
    offset = request.args.get("offset", 0, type=int)

    # Clamp limit
    if limit < 1:
        limit = 1
    if limit > 500:
        limit = 500
    if offset < 0:
        offset = 0

    try:
        catalog_service.get_record(Product, product_id)
    except NotFoundError:
        return jsonify({"error": "Product not found"}), 404

    movements, total = stock_service.list_stock_movements(product_id=product_id, limit=limit, offset=offset)
    return jsonify({
        "items": [m.to_dict() for m in movements],
        "count": total,
        "limit": limit,
        "offset": offset,
    })
