# Overview: Flask API routes for purchase orders; parses input and returns JSON responses.

"""
Purchase Order Routes

Named operations exposed to the desktop UI:
- get-purchase-orders            GET    /api/purchase-orders
- add-purchase-order             POST   /api/purchase-orders
- edit-purchase-order            PUT    /api/purchase-orders/<id>
- delete-purchase-order          DELETE /api/purchase-orders/<id>
- delete-multiple-purchase-orders POST  /api/purchase-orders/delete-multiple

Every write reconciles Product.stock_quantity in the same transaction.
"""

from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.exc import IntegrityError

from ..models.orders import PURCHASE_ORDER_STATUSES
from ..services import purchase_order_service
from ..services.order_service import OrderNotFoundError
from ..services.stock_service import StockError
from ..validation import ValidationError, parse_order_payload


purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


@purchase_orders_bp.get("")
def list_purchase_orders_route():
    """
    List purchase orders with their lines.

    Query parameters:
    - status: Filter by status (pending, received, cancelled)
    - supplier_id: Filter by supplier

    Returns:
        {items: PurchaseOrder[], count: int}
    """
    status = request.args.get("status")
    supplier_id = request.args.get("supplier_id", type=int)

    orders = purchase_order_service.list_purchase_orders(status=status, supplier_id=supplier_id)
    return jsonify({
        "items": [o.to_dict() for o in orders],
        "count": len(orders),
    })


@purchase_orders_bp.get("/<int:order_id>")
def get_purchase_order_route(order_id: int):
    try:
        order = purchase_order_service.get_purchase_order(order_id)
        return jsonify(order.to_dict())
    except OrderNotFoundError:
        return jsonify({"error": "Order not found"}), 404


@purchase_orders_bp.post("")
def create_purchase_order_route():
    """
    Create a purchase order.

    Request body:
    {
        "supplier_id": 1,                 // required
        "order_date": "2024-05-01",       // required, ISO-8601
        "status": "received",             // required: pending, received, cancelled
        "total_amount": "50.00",          // optional, derived from lines if omitted
        "lines": [{"product_id": 1, "quantity": 10, "unit_price": "5.00"}]
    }

    Returns:
        Created PurchaseOrder with lines
    """
    data = request.get_json(silent=True) or {}

    try:
        header, lines = parse_order_payload(
            data, party_field="supplier_id", statuses=PURCHASE_ORDER_STATUSES, partial=False
        )
        order = purchase_order_service.create_purchase_order(lines=lines, **header)
        return jsonify(order.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StockError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except IntegrityError:
        current_app.logger.warning("Purchase order rejected by database constraints", exc_info=True)
        return jsonify({"error": "Order references a missing supplier or product"}), 409
    except Exception:
        current_app.logger.exception("Failed to create purchase order")
        return jsonify({"error": "Internal server error"}), 500


@purchase_orders_bp.put("/<int:order_id>")
def update_purchase_order_route(order_id: int):
    """
    Edit a purchase order.

    Any subset of supplier_id, order_date, status, total_amount and lines may be
    sent. A status change adjusts stock for the existing lines; a new line list
    with the same status replaces the lines and adjusts stock by the difference.

    Returns:
        {success: true}
    """
    data = request.get_json(silent=True) or {}

    try:
        header, lines = parse_order_payload(
            data, party_field="supplier_id", statuses=PURCHASE_ORDER_STATUSES, partial=True
        )
        result = purchase_order_service.update_purchase_order(order_id, lines=lines, **header)
        return jsonify(result)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StockError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except IntegrityError:
        current_app.logger.warning("Purchase order %s edit rejected by database constraints", order_id, exc_info=True)
        return jsonify({"error": "Order references a missing supplier or product"}), 409
    except Exception:
        current_app.logger.exception("Failed to update purchase order")
        return jsonify({"error": "Internal server error"}), 500


@purchase_orders_bp.delete("/<int:order_id>")
def delete_purchase_order_route(order_id: int):
    try:
        result = purchase_order_service.delete_purchase_order(order_id)
        return jsonify(result), (200 if result["success"] else 404)
    except StockError as e:
        return jsonify({"success": False, "error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to delete purchase order")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@purchase_orders_bp.post("/delete-multiple")
def delete_multiple_purchase_orders_route():
    """
    Delete several purchase orders at once.

    Request body:
        {"ids": [1, 2, 3]}
    """
    data = request.get_json(silent=True) or {}
    ids = data.get("ids")

    if not isinstance(ids, list) or not all(isinstance(i, int) and not isinstance(i, bool) for i in ids):
        return jsonify({"error": "ids must be a list of integers"}), 400

    try:
        result = purchase_order_service.delete_purchase_orders(ids)
        return jsonify(result)
    except StockError as e:
        return jsonify({"success": False, "error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to delete purchase orders")
        return jsonify({"success": False, "error": "Internal server error"}), 500
