# Overview: Flask CLI command groups for database bootstrap and stock inspection.

# ims/cli.py
# Commands Legend:
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to ims (PowerShell: $env:FLASK_APP="ims").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (existing data is kept).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Insert a small catalog plus one received purchase order and one pending sale order.
#
# Stock inspection:
# - python -m flask stock show [--below 5]
#   List products by stock on hand, lowest first.
# - python -m flask stock movements --product-id 1 [--limit 20]
#   Show the most recent stock movements for a product.

from decimal import Decimal

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Category, Customer, Product, Supplier
from .models.orders import PO_STATUS_RECEIVED, SO_STATUS_PENDING
from .services import purchase_order_service, sale_order_service, stock_service
from .services.stock_service import StockError
from .time_utils import utcnow


@click.group('system')
def system_group():
    """Database bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system seed-demo' for sample data.")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """
    Seed a small demo data set.

    Creates:
    - 1 category, 3 products (stock 0)
    - 1 supplier, 1 customer
    - A received purchase order for 10 of each product (stock +10 each)
    - A pending sale order for 2 of the first product (stock -2)

    Refuses to run if products already exist.
    """
    if db.session.query(Product).count():
        click.echo("SKIP Products already exist; demo data not seeded.")
        return

    click.echo("START Seeding demo data...")

    category = Category(name="General", description="Demo category")
    db.session.add(category)
    db.session.flush()

    products = [
        Product(name="Widget", sku="WID-001", cost_price=Decimal("2.50"), selling_price=Decimal("4.00"), category_id=category.id),
        Product(name="Gadget", sku="GAD-001", cost_price=Decimal("5.00"), selling_price=Decimal("8.50"), category_id=category.id),
        Product(name="Gizmo", sku="GIZ-001", cost_price=Decimal("1.25"), selling_price=Decimal("2.00"), category_id=category.id),
    ]
    supplier = Supplier(name="Acme Supply", contact_person="Pat Doe", email="orders@acme.example")
    customer = Customer(name="Corner Shop", contact_person="Sam Roe", address="1 Main Street")
    db.session.add_all(products + [supplier, customer])
    db.session.commit()
    click.echo(f"PASS Created {len(products)} products, 1 supplier, 1 customer")

    try:
        po = purchase_order_service.create_purchase_order(
            supplier_id=supplier.id,
            order_date=utcnow(),
            status=PO_STATUS_RECEIVED,
            lines=[
                {"product_id": p.id, "quantity": 10, "unit_price": p.cost_price}
                for p in products
            ],
        )
        click.echo(f"PASS Purchase order {po.id} received (total {po.total_amount})")

        so = sale_order_service.create_sale_order(
            customer_id=customer.id,
            order_date=utcnow(),
            status=SO_STATUS_PENDING,
            lines=[{"product_id": products[0].id, "quantity": 2, "unit_price": products[0].selling_price}],
        )
        click.echo(f"PASS Sale order {so.id} placed (total {so.total_amount})")
    except StockError as e:
        raise click.ClickException(f"Seeding failed: {e}")

    click.echo("\nDONE Demo data ready.")


@click.group('stock')
def stock_group():
    """Stock level inspection commands."""


@stock_group.command('show')
@click.option('--below', type=int, default=None, help='Only products with stock under this value')
@with_appcontext
def show_stock(below):
    """List products by stock on hand, lowest first."""
    products = stock_service.list_stock_levels(below=below)

    if not products:
        click.echo("No products found.")
        return

    click.echo("\n" + "=" * 70)
    click.echo(f"{'ID':<6} {'SKU':<16} {'NAME':<32} {'STOCK':>10}")
    click.echo("=" * 70)
    for p in products:
        click.echo(f"{p.id:<6} {(p.sku or '-'):<16} {p.name[:32]:<32} {p.stock_quantity:>10}")
    click.echo("=" * 70 + "\n")


@stock_group.command('movements')
@click.option('--product-id', type=int, required=True, help='Product ID')
@click.option('--limit', type=int, default=20, show_default=True, help='Rows to show')
@with_appcontext
def show_movements(product_id, limit):
    """Show the most recent stock movements for a product."""
    movements, total = stock_service.list_stock_movements(product_id=product_id, limit=limit)

    click.echo(f"\nProduct {product_id}: {total} movement(s), showing {len(movements)}")
    for m in movements:
        order = f"{m.order_kind}:{m.order_id}" if m.order_kind else "-"
        click.echo(f"  #{m.id:<6} {m.delta:>+6} (applied {m.applied_delta:>+6})  {m.reason:<32} {order}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
