# Overview: Pytest coverage for the stale product cleanup job.

from app.models import Product
from app.services import maintenance_service, products_service


def _make(shop, name, quantity, day):
    return products_service.create_product(shop.id, {"name": name, "quantity": quantity, "date_string": day})[0]


def test_deletes_only_old_sold_out_products(db_session, shop_a):
    stale = _make(shop_a, "Old Empty", 0, "2020-01-01")
    stocked = _make(shop_a, "Old Stocked", 3, "2020-01-01")
    fresh = _make(shop_a, "New Empty", 0, "2999-01-01")

    deleted = maintenance_service.cleanup_stale_products(retention_days=30)

    assert deleted == 1
    assert db_session.get(Product, stale["id"]) is None
    assert db_session.get(Product, stocked["id"]) is not None
    assert db_session.get(Product, fresh["id"]) is not None


def test_retention_defaults_to_config(app, db_session, shop_a):
    _make(shop_a, "Old Empty", 0, "2020-01-01")
    app.config["STALE_PRODUCT_RETENTION_DAYS"] = 365 * 100
    try:
        assert maintenance_service.cleanup_stale_products() == 0
    finally:
        app.config["STALE_PRODUCT_RETENTION_DAYS"] = 30
