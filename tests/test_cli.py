from ims.extensions import db
from ims.models import Product, PurchaseOrder, SaleOrder


def test_seed_demo(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "seed-demo"])

    assert result.exit_code == 0, result.output
    assert db.session.query(Product).count() == 3
    assert db.session.query(PurchaseOrder).count() == 1
    assert db.session.query(SaleOrder).count() == 1

    widget = db.session.query(Product).filter_by(sku="WID-001").one()
    assert widget.stock_quantity == 8

    again = runner.invoke(args=["system", "seed-demo"])
    assert "SKIP" in again.output
    assert db.session.query(Product).count() == 3


def test_stock_show(app, make_product):
    make_product(name="Scarce", sku="SC-1", stock=1)
    make_product(name="Plenty", sku="PL-1", stock=40)

    result = app.test_cli_runner().invoke(args=["stock", "show", "--below", "5"])

    assert result.exit_code == 0, result.output
    assert "Scarce" in result.output
    assert "Plenty" not in result.output
