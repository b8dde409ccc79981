from __future__ import annotations

from ..extensions import db
from ims.time_utils import to_utc_z
from .catalog import money


# Purchase order statuses
PO_STATUS_PENDING = "pending"
PO_STATUS_RECEIVED = "received"
PO_STATUS_CANCELLED = "cancelled"
PURCHASE_ORDER_STATUSES = (PO_STATUS_PENDING, PO_STATUS_RECEIVED, PO_STATUS_CANCELLED)

# Sale order statuses
SO_STATUS_PENDING = "pending"
SO_STATUS_SHIPPED = "shipped"
SO_STATUS_DELIVERED = "delivered"
SO_STATUS_CANCELLED = "cancelled"
SALE_ORDER_STATUSES = (SO_STATUS_PENDING, SO_STATUS_SHIPPED, SO_STATUS_DELIVERED, SO_STATUS_CANCELLED)


class PurchaseOrder(db.Model):
    """
    Purchase order header (supplier -> warehouse).

    Stock moves only on status transitions involving 'received' or
    'cancelled'; see services/reconciliation.py for the transition table.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.Index("ix_purchase_orders_status_date", "status", "order_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    order_date = db.Column(db.DateTime(timezone=True), nullable=False)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    status = db.Column(
        db.Enum(*PURCHASE_ORDER_STATUSES, name="purchase_order_status"),
        nullable=False,
        default=PO_STATUS_PENDING,
    )

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier = db.relationship("Supplier", backref=db.backref("purchase_orders", lazy=True))
    lines = db.relationship(
        "PurchaseOrderLine",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderLine.product_id",
    )

    def __repr__(self) -> str:
        return f"<PurchaseOrder id={self.id} status={self.status!r} total={self.total_amount}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "order_date": to_utc_z(self.order_date),
            "total_amount": money(self.total_amount),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class PurchaseOrderLine(db.Model):
    """One product on a purchase order. Keyed by (purchase_order_id, product_id)."""
    __tablename__ = "purchase_order_lines"

    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), primary_key=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)

    purchase_order = db.relationship("PurchaseOrder", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "purchase_order_id": self.purchase_order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": money(self.unit_price),
        }


class SaleOrder(db.Model):
    """
    Sale order header (warehouse -> customer).

    Any status other than 'cancelled' consumes stock.
    """
    __tablename__ = "sale_orders"
    __table_args__ = (
        db.Index("ix_sale_orders_status_date", "status", "order_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    order_date = db.Column(db.DateTime(timezone=True), nullable=False)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    status = db.Column(
        db.Enum(*SALE_ORDER_STATUSES, name="sale_order_status"),
        nullable=False,
        default=SO_STATUS_PENDING,
    )

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    customer = db.relationship("Customer", backref=db.backref("sale_orders", lazy=True))
    lines = db.relationship(
        "SaleOrderLine",
        back_populates="sale_order",
        cascade="all, delete-orphan",
        order_by="SaleOrderLine.product_id",
    )

    def __repr__(self) -> str:
        return f"<SaleOrder id={self.id} status={self.status!r} total={self.total_amount}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "customer_id": self.customer_id,
            "order_date": to_utc_z(self.order_date),
            "total_amount": money(self.total_amount),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleOrderLine(db.Model):
    """One product on a sale order. Keyed by (sale_order_id, product_id)."""
    __tablename__ = "sale_order_lines"

    sale_order_id = db.Column(db.Integer, db.ForeignKey("sale_orders.id"), primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), primary_key=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)

    sale_order = db.relationship("SaleOrder", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "sale_order_id": self.sale_order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": money(self.unit_price),
        }
