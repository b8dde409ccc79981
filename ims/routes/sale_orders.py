# Overview: Flask API routes for sale orders; parses input and returns JSON responses.

"""
Sale Order Routes

Named operations exposed to the desktop UI:
- get-sales-orders               GET    /api/sale-orders
- add-sales-order                POST   /api/sale-orders
- edit-sales-order               PUT    /api/sale-orders/<id>
- delete-sales-order             DELETE /api/sale-orders/<id>
- delete-multiple-sales-orders   POST   /api/sale-orders/delete-multiple

Every write reconciles Product.stock_quantity in the same transaction.
"""

from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.exc import IntegrityError

from ..models.orders import SALE_ORDER_STATUSES
from ..services import sale_order_service
from ..services.order_service import OrderNotFoundError
from ..services.stock_service import StockError
from ..validation import ValidationError, parse_order_payload


sale_orders_bp = Blueprint("sale_orders", __name__, url_prefix="/api/sale-orders")


@sale_orders_bp.get("")
def list_sale_orders_route():
    """
    List sale orders with their lines.

    Query parameters:
    - status: Filter by status (pending, shipped, delivered, cancelled)
    - customer_id: Filter by customer

    Returns:
        {items: SaleOrder[], count: int}
    """
    status = request.args.get("status")
    customer_id = request.args.get("customer_id", type=int)

    orders = sale_order_service.list_sale_orders(status=status, customer_id=customer_id)
    return jsonify({
        "items": [o.to_dict() for o in orders],
        "count": len(orders),
    })


@sale_orders_bp.get("/<int:order_id>")
def get_sale_order_route(order_id: int):
    try:
        order = sale_order_service.get_sale_order(order_id)
        return jsonify(order.to_dict())
    except OrderNotFoundError:
        return jsonify({"error": "Order not found"}), 404


@sale_orders_bp.post("")
def create_sale_order_route():
    """
    Create a sale order.

    Request body:
    {
        "customer_id": 1,                 // required
        "order_date": "2024-05-01",       // required, ISO-8601
        "status": "pending",              // required: pending, shipped, delivered, cancelled
        "total_amount": "80.00",          // optional, derived from lines if omitted
        "lines": [{"product_id": 1, "quantity": 4, "unit_price": "20.00"}]
    }

    Returns:
        Created SaleOrder with lines
    """
    data = request.get_json(silent=True) or {}

    try:
        header, lines = parse_order_payload(
            data, party_field="customer_id", statuses=SALE_ORDER_STATUSES, partial=False
        )
        order = sale_order_service.create_sale_order(lines=lines, **header)
        return jsonify(order.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StockError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except IntegrityError:
        current_app.logger.warning("Sale order rejected by database constraints", exc_info=True)
        return jsonify({"error": "Order references a missing customer or product"}), 409
    except Exception:
        current_app.logger.exception("Failed to create sale order")
        return jsonify({"error": "Internal server error"}), 500


@sale_orders_bp.put("/<int:order_id>")
def update_sale_order_route(order_id: int):
    """
    Edit a sale order.

    Any subset of customer_id, order_date, status, total_amount and lines may be
    sent. A status change adjusts stock for the existing lines; a new line list
    with the same status replaces the lines and adjusts stock by the difference.

    Returns:
        {success: true}
    """
    data = request.get_json(silent=True) or {}

    try:
        header, lines = parse_order_payload(
            data, party_field="customer_id", statuses=SALE_ORDER_STATUSES, partial=True
        )
        result = sale_order_service.update_sale_order(order_id, lines=lines, **header)
        return jsonify(result)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StockError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except IntegrityError:
        current_app.logger.warning("Sale order %s edit rejected by database constraints", order_id, exc_info=True)
        return jsonify({"error": "Order references a missing customer or product"}), 409
    except Exception:
        current_app.logger.exception("Failed to update sale order")
        return jsonify({"error": "Internal server error"}), 500


@sale_orders_bp.delete("/<int:order_id>")
def delete_sale_order_route(order_id: int):
    try:
        result = sale_order_service.delete_sale_order(order_id)
        return jsonify(result), (200 if result["success"] else 404)
    except StockError as e:
        return jsonify({"success": False, "error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to delete sale order")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@sale_orders_bp.post("/delete-multiple")
def delete_multiple_sale_orders_route():
    """
    Delete several sale orders at once.

    Request body:
        {"ids": [1, 2, 3]}
    """
    data = request.get_json(silent=True) or {}
    ids = data.get("ids")

    if not isinstance(ids, list) or not all(isinstance(i, int) and not isinstance(i, bool) for i in ids):
        return jsonify({"error": "ids must be a list of integers"}), 400

    try:
        result = sale_order_service.delete_sale_orders(ids)
        return jsonify(result)
    except StockError as e:
        return jsonify({"success": False, "error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to delete sale orders")
        return jsonify({"success": False, "error": "Internal server error"}), 500
