from __future__ import annotations

from ..extensions import db
from ims.time_utils import to_utc_z


class StockMovement(db.Model):
    """
    Append-only record of every delta applied to Product.stock_quantity.

    Written inside the same DB transaction as the delta itself, so a rolled
    back order mutation leaves no movement behind.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_created", "product_id", "created_at"),
        db.Index("ix_stock_movements_order", "order_kind", "order_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)

    # Requested delta and what actually landed on the counter (differs under clamp policy)
    delta = db.Column(db.Integer, nullable=False)
    applied_delta = db.Column(db.Integer, nullable=False)

    # e.g. purchase_order.created, sale_order.status_changed, sale_order.lines_replaced
    reason = db.Column(db.String(64), nullable=False)
    order_kind = db.Column(db.String(16), nullable=True)
    order_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "delta": self.delta,
            "applied_delta": self.applied_delta,
            "reason": self.reason,
            "order_kind": self.order_kind,
            "order_id": self.order_id,
            "created_at": to_utc_z(self.created_at),
        }
