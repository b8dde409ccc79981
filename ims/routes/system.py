# ims/routes/system.py
"""
System health endpoint.

Reports database connectivity and the active stock policy.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Product, PurchaseOrder, SaleOrder
from ..services.stock_service import negative_stock_policy

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        product_count = db.session.query(Product).count()
        purchase_order_count = db.session.query(PurchaseOrder).count()
        sale_order_count = db.session.query(SaleOrder).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "products": product_count,
                "purchase_orders": purchase_order_count,
                "sale_orders": sale_order_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    status_code = 200 if database["status"] == "healthy" else 503
    return {
        "status": database["status"],
        "database": database,
        "stock_negative_policy": negative_stock_policy(),
    }, status_code
