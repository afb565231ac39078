# Overview: Pytest coverage for sale, return and pre-order workflows.

"""
Transaction Workflow Tests

- Stock moves once per line item
- Invoice numbers come from the shared per-shop counter
- Customers are resolved by phone, created once
- Loyalty: new customers accrue, existing customers do not accrue on sale
- One database transaction per workflow: a failure leaves stock, counters,
  customers and points untouched
- Idempotency keys replay the first result
"""

import threading

import pytest

from app.extensions import db
from app.models import Customer, Product, SequenceCounter, Shop, Transaction, User
from app.services import customer_service, products_service, sequence_service, transaction_service
from app.services.query_configs import ENTITY_CONFIGS
from app.services.query_service import ListRequest, run_query
from app.services.sequence_service import COUNTER_INVOICE_NO
from app.validation import BusinessRuleViolation, NotFoundError, ValidationError


def _quantity(db_session, product_id):
    return db_session.query(Product.quantity).filter_by(id=product_id).scalar()


def _sale(shop, user, product, quantity=1, **extra):
    payload = {"products": [{"product_id": product["id"], "sold_quantity": quantity}], **extra}
    return transaction_service.record_sale(shop.id, payload, salesman_id=user.id)


class TestExampleScenario:

    def test_sale_return_and_listing(self, db_session, shop_a, user_a, product_a):
        sale = _sale(shop_a, user_a, product_a, quantity=2)

        assert sale["invoice_no"] == "0001"
        assert sale["transaction_id"]
        assert _quantity(db_session, product_a["id"]) == 8

        transaction_service.record_return(
            shop_a.id,
            {"products": [{"product_id": product_a["id"], "sold_quantity": 1}]},
            salesman_id=user_a.id,
        )
        assert _quantity(db_session, product_a["id"]) == 9

        request = ListRequest.from_dict({"pagination": {"pageSize": 10, "currentPage": 0}})
        request.filter["shop_id"] = shop_a.id
        result = run_query(ENTITY_CONFIGS["transactions"], request)
        assert result["count"] == 2
        assert len(result["data"]) == 2

    def test_invoice_numbers_follow_counter(self, db_session, shop_a, user_a, product_a):
        first = _sale(shop_a, user_a, product_a)
        second = _sale(shop_a, user_a, product_a)

        assert (first["invoice_no"], second["invoice_no"]) == ("0001", "0002")
        assert sequence_service.get_counters(shop_a.id)[COUNTER_INVOICE_NO] == 2


class TestSale:

    def test_snapshots_are_embedded(self, db_session, shop_a, user_a, product_a):
        result = _sale(shop_a, user_a, product_a, quantity=2, customer={"phone": "555-0100", "name": "Dana"})
        doc = transaction_service.get_transaction(result["transaction_id"], shop_a.id)

        assert doc["kind"] == "SALE"
        assert doc["salesman"] == {"id": user_a.id, "name": "Alice Seller", "phone": "0100"}
        assert doc["customer"]["phone"] == "555-0100"
        assert doc["sub_total_cents"] == 1000
        assert doc["total_cents"] == 1000
        line = doc["products"][0]
        assert line["name"] == "Phone Case"
        assert line["sale_price_cents"] == 500
        assert line["sale_type"] == "Sale"

    def test_mixed_sale_and_return_lines(self, db_session, shop_a, user_a, product_a):
        result = transaction_service.record_sale(
            shop_a.id,
            {"products": [
                {"product_id": product_a["id"], "sold_quantity": 3, "sale_type": "Sale"},
                {"product_id": product_a["id"], "sold_quantity": 1, "sale_type": "Return"},
            ]},
            salesman_id=user_a.id,
        )
        assert result["invoice_no"] == "0001"
        assert _quantity(db_session, product_a["id"]) == 8
        product = db_session.get(Product, product_a["id"])
        assert product.sold_quantity == 2

    def test_line_snapshot_survives_product_edit(self, db_session, shop_a, user_a, product_a):
        result = _sale(shop_a, user_a, product_a)
        products_service.update_product(product_a["id"], {"sale_price_cents": 900, "name": "Renamed"}, shop_id=shop_a.id)

        line = transaction_service.get_transaction(result["transaction_id"])["products"][0]
        assert line["name"] == "Phone Case"
        assert line["sale_price_cents"] == 500

    def test_requires_line_items(self, db_session, shop_a, user_a):
        with pytest.raises(ValidationError):
            transaction_service.record_sale(shop_a.id, {"products": []}, salesman_id=user_a.id)

    def test_malformed_sold_date_string(self, db_session, shop_a, user_a, product_a):
        with pytest.raises(ValidationError):
            _sale(shop_a, user_a, product_a, sold_date_string="2024-ab-01")
        assert _quantity(db_session, product_a["id"]) == 10
        assert db_session.query(Transaction).count() == 0

    def test_sold_date_string_sets_month_and_year(self, db_session, shop_a, user_a, product_a):
        result = _sale(shop_a, user_a, product_a, sold_date_string="2025-11-30")
        doc = transaction_service.get_transaction(result["transaction_id"])
        assert (doc["sold_date_string"], doc["month"], doc["year"]) == ("2025-11-30", 11, 2025)

    def test_other_shop_product_rejected(self, db_session, shop_a, user_a, product_b):
        with pytest.raises(NotFoundError):
            _sale(shop_a, user_a, product_b)
        assert _quantity(db_session, product_b["id"]) == 5


class TestCustomerAndPoints:

    def test_new_customer_accrues_points(self, db_session, shop_a, user_a, product_a, point_config_a):
        # 4 x 500 cents = 20.00; 10% -> 2 points
        _sale(shop_a, user_a, product_a, quantity=4, customer={"phone": "555-0001", "name": "Eve"})

        customer = db_session.query(Customer).filter_by(shop_id=shop_a.id, phone="555-0001").one()
        assert customer.user_points == 2

    def test_existing_customer_does_not_accrue(self, db_session, shop_a, user_a, product_a, point_config_a):
        _sale(shop_a, user_a, product_a, quantity=4, customer={"phone": "555-0001"})
        _sale(shop_a, user_a, product_a, quantity=4, customer={"phone": "555-0001"})

        customers = db_session.query(Customer).filter_by(shop_id=shop_a.id, phone="555-0001").all()
        assert len(customers) == 1
        assert customers[0].user_points == 2

    def test_no_point_config_accrues_nothing(self, db_session, shop_a, user_a, product_a):
        _sale(shop_a, user_a, product_a, quantity=4, customer={"phone": "555-0002"})
        customer = db_session.query(Customer).filter_by(phone="555-0002").one()
        assert customer.user_points == 0

    def test_redemption_disabled_by_default(self, db_session, shop_a, user_a, product_a, point_config_a):
        _sale(shop_a, user_a, product_a, quantity=4, customer={"phone": "555-0003"})
        _sale(shop_a, user_a, product_a, customer={"phone": "555-0003"}, use_points=1)

        assert customer_service.find_customer(shop_a.id, phone="555-0003").user_points == 2

    def test_redemption_when_enabled(self, app, db_session, shop_a, user_a, product_a, point_config_a):
        app.config["LOYALTY_REDEEM_ON_SALE"] = True
        _sale(shop_a, user_a, product_a, quantity=4, customer={"phone": "555-0004"})
        _sale(shop_a, user_a, product_a, customer={"phone": "555-0004"}, use_points=1)

        assert customer_service.find_customer(shop_a.id, phone="555-0004").user_points == 1

    def test_redeeming_more_than_balance_rolls_back(self, app, db_session, shop_a, user_a, product_a, point_config_a):
        app.config["LOYALTY_REDEEM_ON_SALE"] = True
        _sale(shop_a, user_a, product_a, quantity=4, customer={"phone": "555-0005"})

        with pytest.raises(BusinessRuleViolation):
            _sale(shop_a, user_a, product_a, customer={"phone": "555-0005"}, use_points=50)

        assert _quantity(db_session, product_a["id"]) == 6
        assert customer_service.find_customer(shop_a.id, phone="555-0005").user_points == 2

    def test_customer_resolution_is_idempotent(self, db_session, shop_a):
        first, created = customer_service.resolve_customer(shop_a.id, {"phone": " 555-0006 ", "name": "Finn"})
        db_session.commit()
        second, created_again = customer_service.resolve_customer(shop_a.id, {"phone": "555-0006"})

        assert created is True and created_again is False
        assert first.id == second.id

    def test_customers_are_per_shop(self, db_session, shop_a, shop_b, user_a, user_b, product_a, product_b):
        _sale(shop_a, user_a, product_a, customer={"phone": "555-0007"})
        _sale(shop_b, user_b, product_b, customer={"phone": "555-0007"})

        assert db_session.query(Customer).filter_by(phone="555-0007").count() == 2


class TestReturn:

    def test_return_deducts_points_from_positive_balance(self, db_session, shop_a, user_a, product_a, point_config_a):
        _sale(shop_a, user_a, product_a, quantity=4, customer={"phone": "555-0100"})
        customer = customer_service.find_customer(shop_a.id, phone="555-0100")

        result = transaction_service.record_return(
            shop_a.id,
            {
                "products": [{"product_id": product_a["id"], "sold_quantity": 2}],
                "customer": {"id": customer.id},
                "invoice_no": "0001",
            },
            salesman_id=user_a.id,
        )

        # 2 x 500 = 10.00; 10% -> 1 point
        assert customer_service.current_points(customer.id) == 1
        assert result["invoice_no"] == "0001"
        assert _quantity(db_session, product_a["id"]) == 8

    def test_return_does_not_allocate_invoice(self, db_session, shop_a, user_a, product_a):
        transaction_service.record_return(
            shop_a.id,
            {"products": [{"product_id": product_a["id"], "sold_quantity": 1, "sale_type": "Sale"}]},
            salesman_id=user_a.id,
        )
        assert COUNTER_INVOICE_NO not in sequence_service.get_counters(shop_a.id)
        doc = db_session.query(Transaction).one().to_dict()
        assert doc["products"][0]["sale_type"] == "Return"

    def test_return_never_creates_customer(self, db_session, shop_a, user_a, product_a):
        transaction_service.record_return(
            shop_a.id,
            {"products": [{"product_id": product_a["id"], "sold_quantity": 1}],
             "customer": {"phone": "555-0199"}},
            salesman_id=user_a.id,
        )
        assert db_session.query(Customer).count() == 0


class TestPreOrder:

    def test_pre_order_keeps_stock_and_shares_invoice_counter(self, db_session, shop_a, user_a, product_a):
        _sale(shop_a, user_a, product_a)
        result = transaction_service.record_pre_order(
            shop_a.id,
            {"products": [{"product_id": product_a["id"], "sold_quantity": 2}]},
            salesman_id=user_a.id,
        )

        assert result["invoice_no"] == "0002"
        assert _quantity(db_session, product_a["id"]) == 9

    def test_pre_order_line_without_product(self, db_session, shop_a, user_a):
        result = transaction_service.record_pre_order(
            shop_a.id,
            {"products": [{"name": "Custom Engraving", "sold_quantity": 1, "sale_price_cents": 2000}]},
            salesman_id=user_a.id,
        )
        doc = transaction_service.get_transaction(result["transaction_id"])
        assert doc["products"][0]["product_id"] is None
        assert doc["total_cents"] == 2000

    def test_existing_customer_redeems_and_accrues(self, db_session, shop_a, user_a, product_a, point_config_a):
        _sale(shop_a, user_a, product_a, quantity=4, customer={"phone": "555-0200"})

        transaction_service.record_pre_order(
            shop_a.id,
            {
                "products": [{"product_id": product_a["id"], "sold_quantity": 10}],
                "customer": {"phone": "555-0200"},
                "use_points": 1,
            },
            salesman_id=user_a.id,
        )

        # 2 - 1 redeemed + floor(10% of 50.00) = 6
        assert customer_service.find_customer(shop_a.id, phone="555-0200").user_points == 6


class TestAtomicity:

    def test_failure_after_stock_adjustment_rolls_everything_back(self, db_session, shop_a, user_a, product_a):
        payload = {
            "products": [{"product_id": product_a["id"], "sold_quantity": 2}],
            "customer": {"phone": "555-0300"},
        }
        # Unknown salesman fails at the persist step, after stock, invoice and customer
        with pytest.raises(NotFoundError):
            transaction_service.record_sale(shop_a.id, payload, salesman_id=424242)

        assert _quantity(db_session, product_a["id"]) == 10
        assert db_session.query(SequenceCounter).filter_by(
            shop_id=shop_a.id, counter_name=COUNTER_INVOICE_NO
        ).count() == 0
        assert db_session.query(Customer).count() == 0
        assert db_session.query(Transaction).count() == 0

    def test_failure_after_invoice_allocation_releases_number(self, db_session, shop_a, user_a, product_a):
        _sale(shop_a, user_a, product_a)
        with pytest.raises(NotFoundError):
            transaction_service.record_sale(
                shop_a.id,
                {"products": [{"product_id": product_a["id"], "sold_quantity": 1}]},
                salesman_id=424242,
            )

        assert _quantity(db_session, product_a["id"]) == 9
        assert _sale(shop_a, user_a, product_a)["invoice_no"] == "0002"

    def test_idempotency_key_replays_first_result(self, db_session, shop_a, user_a, product_a, point_config_a):
        payload = {
            "products": [{"product_id": product_a["id"], "sold_quantity": 2}],
            "customer": {"phone": "555-0400"},
        }
        first = transaction_service.record_sale(shop_a.id, payload, salesman_id=user_a.id, idempotency_key="req-1")
        retry = transaction_service.record_sale(shop_a.id, payload, salesman_id=user_a.id, idempotency_key="req-1")

        assert retry["replayed"] is True
        assert retry["transaction_id"] == first["transaction_id"]
        assert retry["invoice_no"] == first["invoice_no"]
        assert _quantity(db_session, product_a["id"]) == 8
        assert sequence_service.get_counters(shop_a.id)[COUNTER_INVOICE_NO] == 1
        # 2 x 500 = 10.00; 10% -> 1 point, credited once
        assert customer_service.find_customer(shop_a.id, phone="555-0400").user_points == 1

    def test_idempotency_key_is_scoped_by_kind(self, db_session, shop_a, user_a, product_a):
        payload = {"products": [{"product_id": product_a["id"], "sold_quantity": 1}]}
        sale = transaction_service.record_sale(shop_a.id, payload, salesman_id=user_a.id, idempotency_key="k")
        ret = transaction_service.record_return(shop_a.id, payload, salesman_id=user_a.id, idempotency_key="k")

        assert sale["transaction_id"] != ret["transaction_id"]
        assert ret["replayed"] is False


class TestCorrection:

    def test_header_update_has_no_side_effects(self, db_session, shop_a, user_a, product_a):
        result = _sale(shop_a, user_a, product_a, quantity=2)

        doc = transaction_service.update_transaction(
            result["transaction_id"],
            {"note": "gift wrap", "total_cents": 900, "sold_date_string": "2026-02-03"},
            shop_id=shop_a.id,
        )

        assert doc["note"] == "gift wrap"
        assert doc["total_cents"] == 900
        assert (doc["month"], doc["year"]) == (2, 2026)
        assert _quantity(db_session, product_a["id"]) == 8

    def test_malformed_date_correction(self, db_session, shop_a, user_a, product_a):
        result = _sale(shop_a, user_a, product_a)
        with pytest.raises(ValidationError):
            transaction_service.update_transaction(result["transaction_id"], {"sold_date_string": "2026-02-30"})

    def test_line_items_are_not_editable(self, db_session, shop_a, user_a, product_a):
        result = _sale(shop_a, user_a, product_a)
        with pytest.raises(ValidationError):
            transaction_service.update_transaction(result["transaction_id"], {"products": []})

    def test_unknown_transaction(self, db_session, shop_a):
        with pytest.raises(NotFoundError):
            transaction_service.get_transaction(123456, shop_a.id)


class TestConcurrentSales:
    """File-backed SQLite so each thread gets its own connection."""

    def test_parallel_sales_keep_exact_stock(self, file_app):
        app = file_app
        with app.app_context():
            shop = Shop(name="Busy Shop")
            db.session.add(shop)
            db.session.commit()
            user = User(shop_id=shop.id, username="till", name="Till One")
            db.session.add(user)
            db.session.commit()
            shop_id, user_id = shop.id, user.id
            product_id = products_service.create_product(
                shop_id, {"name": "Cable", "quantity": 100, "sale_price_cents": 300}
            )[0]["id"]

        invoices = []
        errors = []
        lock = threading.Lock()

        def worker():
            with app.app_context():
                try:
                    for _ in range(5):
                        result = transaction_service.record_sale(
                            shop_id,
                            {"products": [{"product_id": product_id, "sold_quantity": 1}]},
                            salesman_id=user_id,
                        )
                        with lock:
                            invoices.append(result["invoice_no"])
                except Exception as exc:
                    with lock:
                        errors.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert sorted(invoices) == [f"{n:04d}" for n in range(1, 31)]
        with app.app_context():
            product = db.session.get(Product, product_id)
            assert product.quantity == 70
            assert product.sold_quantity == 30
            assert db.session.query(Transaction).count() == 30
