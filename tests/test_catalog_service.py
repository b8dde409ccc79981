"""
Catalog CRUD: products, categories, suppliers, customers.
"""

from decimal import Decimal

import pytest

from ims.extensions import db
from ims.models import Category, Customer, Product, Supplier
from ims.services import catalog_service, purchase_order_service
from ims.services.catalog_service import NotFoundError
from ims.validation import ConflictError, ValidationError

from tests.conftest import line, stock_of


def test_create_product_with_initial_stock(db_session):
    product = catalog_service.create_record(Product, {
        "name": "Bolt",
        "sku": "BLT-1",
        "selling_price": Decimal("0.25"),
        "stock_quantity": 100,
    })

    assert product.id is not None
    assert stock_of(product) == 100
    assert product.to_dict()["selling_price"] == "0.25"


def test_update_product_fields(make_product):
    product = make_product(name="Old name")

    updated = catalog_service.update_record(Product, product.id, {"name": "New name", "cost_price": Decimal("3.10")})

    assert updated.name == "New name"
    assert updated.cost_price == Decimal("3.10")


def test_update_product_stock_is_blocked(make_product):
    product = make_product(stock=5)

    with pytest.raises(ValidationError):
        catalog_service.update_record(Product, product.id, {"stock_quantity": 50})

    assert stock_of(product) == 5


def test_update_missing_record(db_session):
    with pytest.raises(NotFoundError):
        catalog_service.update_record(Supplier, 404, {"name": "Nobody"})


def test_search(make_product):
    make_product(name="Blue Widget", sku="BW-1")
    make_product(name="Red Gadget", sku="RG-1")

    names = [p.name for p in catalog_service.list_records(Product, search="widget")]

    assert names == ["Blue Widget"]


def test_list_ordered_by_name(db_session):
    for name in ("Zeta", "Alpha", "Mid"):
        catalog_service.create_record(Customer, {"name": name})

    assert [c.name for c in catalog_service.list_records(Customer)] == ["Alpha", "Mid", "Zeta"]


def test_delete_record(db_session):
    category = catalog_service.create_record(Category, {"name": "Tools"})

    assert catalog_service.delete_record(Category, category.id) == {"success": True}
    assert catalog_service.delete_record(Category, category.id) == {"success": False, "error": "Category not found"}


def test_delete_category_detaches_products(make_category, make_product):
    category = make_category()
    product = make_product(category=category)

    catalog_service.delete_record(Category, category.id)

    db.session.expire_all()
    assert db.session.get(Product, product.id).category_id is None


def test_delete_referenced_product_conflicts(supplier, make_product):
    product = make_product()
    purchase_order_service.create_purchase_order(
        supplier_id=supplier.id, order_date="2024-05-01", status="pending", lines=[line(product, 1)],
    )

    with pytest.raises(ConflictError):
        catalog_service.delete_record(Product, product.id)

    assert db.session.get(Product, product.id) is not None


def test_delete_referenced_supplier_conflicts(supplier, make_product):
    product = make_product()
    purchase_order_service.create_purchase_order(
        supplier_id=supplier.id, order_date="2024-05-01", status="pending", lines=[line(product, 1)],
    )

    with pytest.raises(ConflictError):
        catalog_service.delete_record(Supplier, supplier.id)


def test_delete_records(db_session):
    ids = [catalog_service.create_record(Supplier, {"name": f"S{i}"}).id for i in range(3)]

    result = catalog_service.delete_records(Supplier, ids[:2] + [999])

    assert result == {"success": True, "deleted": 2}
    assert [s.id for s in catalog_service.list_records(Supplier)] == [ids[2]]
