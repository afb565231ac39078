# Overview: Pytest coverage for stock deltas, stock-in and damage records.

import pytest

from app.models import Product, ProductDamage, ProductPurchase
from app.services import stock_service
from app.services.concurrency import atomic
from app.services.stock_service import (
    EVENT_DAMAGE,
    EVENT_PURCHASE,
    EVENT_RETURN,
    EVENT_SALE,
)
from app.validation import NotFoundError, ValidationError


def _quantity(db_session, product_id):
    return db_session.query(Product.quantity).filter_by(id=product_id).scalar()


class TestSignConvention:

    def test_signs(self):
        assert stock_service.stock_delta(EVENT_SALE, 3) == -3
        assert stock_service.stock_delta(EVENT_RETURN, 3) == 3
        assert stock_service.stock_delta(EVENT_PURCHASE, 3) == 3
        # Damage adds stock
        assert stock_service.stock_delta(EVENT_DAMAGE, 3) == 3

    def test_unknown_event(self):
        with pytest.raises(ValidationError):
            stock_service.stock_delta("LOST", 1)


class TestApplyDelta:

    def test_delta_round_trip(self, db_session, product_a):
        with atomic():
            stock_service.apply_delta(product_a["id"], -4)
            stock_service.apply_delta(product_a["id"], 4)

        assert _quantity(db_session, product_a["id"]) == 10

    def test_stock_conservation(self, db_session, product_a):
        deltas = [-2, -1, 5, -3, 1]
        with atomic():
            for delta in deltas:
                stock_service.apply_delta(product_a["id"], delta)

        assert _quantity(db_session, product_a["id"]) == 10 + sum(deltas)

    def test_missing_product(self, db_session, shop_a):
        with pytest.raises(NotFoundError):
            with atomic():
                stock_service.apply_delta(987654, 1)

    def test_shop_scope_is_enforced(self, db_session, product_a, shop_b):
        with pytest.raises(NotFoundError):
            with atomic():
                stock_service.apply_delta(product_a["id"], -1, shop_id=shop_b.id)
        assert _quantity(db_session, product_a["id"]) == 10

    def test_sold_quantity_tracks_sales(self, db_session, product_a):
        with atomic():
            stock_service.apply_delta(product_a["id"], -2, sold_delta=2)

        product = db_session.get(Product, product_a["id"])
        assert product.quantity == 8
        assert product.sold_quantity == 2

    def test_rejects_non_integer_delta(self, db_session, product_a):
        with pytest.raises(ValidationError):
            stock_service.apply_delta(product_a["id"], 1.5)


class TestStockIn:

    def test_record_purchase_logs_previous_quantity(self, db_session, shop_a, user_a, product_a):
        purchase = stock_service.record_purchase(
            shop_a.id, product_a["id"], 5, user_id=user_a.id, note="restock", date_string="2026-03-04"
        )

        assert _quantity(db_session, product_a["id"]) == 15
        assert purchase["previous_quantity"] == 10
        assert purchase["updated_quantity"] == 5
        assert purchase["month"] == 3
        assert purchase["year"] == 2026
        assert purchase["salesman"]["name"] == "Alice Seller"

    def test_initial_stock_in_is_logged(self, db_session, product_a):
        logs = db_session.query(ProductPurchase).all()
        assert len(logs) == 1
        assert logs[0].previous_quantity == 0
        assert logs[0].updated_quantity == 10

    def test_rejects_zero_quantity(self, db_session, shop_a, product_a):
        with pytest.raises(ValidationError):
            stock_service.record_purchase(shop_a.id, product_a["id"], 0)

    def test_rejects_bad_date(self, db_session, shop_a, product_a):
        with pytest.raises(ValidationError):
            stock_service.record_purchase(shop_a.id, product_a["id"], 1, date_string="03/04/2026")
        assert _quantity(db_session, product_a["id"]) == 10


class TestDamage:

    def test_damage_adds_stock_and_suffixes_name(self, db_session, shop_a):
        from app.services import products_service

        product = products_service.create_product(
            shop_a.id,
            {"name": "Shirt", "quantity": 4, "colors": {"id": 2, "name": "Red"}, "sizes": {"id": 3, "name": "XL"}},
        )[0]

        damage = stock_service.record_damage(shop_a.id, product["id"], 2, note="torn")

        assert _quantity(db_session, product["id"]) == 6
        assert damage["product"]["name"] == "Shirt - Red - XL"
        assert db_session.query(ProductDamage).count() == 1

    def test_damage_for_other_shop_product(self, db_session, shop_b, product_a):
        with pytest.raises(NotFoundError):
            stock_service.record_damage(shop_b.id, product_a["id"], 1)
