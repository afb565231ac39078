# Overview: Pytest coverage for the HTTP surface; actor header, envelopes and status codes.

import pytest

from app.models import Product
from app.services import customer_service, products_service, sequence_service, transaction_service

from conftest import actor_headers


class TestActor:

    def test_missing_header_is_401(self, client, db_session, shop_a):
        response = client.post("/api/products/list", json={})
        assert response.status_code == 401
        assert response.get_json()["success"] is False

    def test_unknown_actor_is_401(self, client, db_session, shop_a):
        response = client.post("/api/products/list", json={}, headers={"X-User-Id": "424242"})
        assert response.status_code == 401

    def test_inactive_actor_is_401(self, client, db_session, user_a):
        user_a.is_active = False
        db_session.commit()
        response = client.get("/api/sequences", headers=actor_headers(user_a))
        assert response.status_code == 401


class TestListEndpoint:

    def test_list_is_scoped_to_actor_shop(self, client, db_session, user_a, product_a, product_b):
        response = client.post(
            "/api/products/list",
            json={"pagination": {"pageSize": 10, "currentPage": 0}, "filter": {"shop_id": product_b["shop_id"]}},
            headers=actor_headers(user_a),
        )

        body = response.get_json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["count"] == 1
        assert body["data"] == [{"id": product_a["id"], "name": "Phone Case"}]
        assert body["calculation"]["total_quantity"] == 10

    def test_hyphenated_entity_and_search(self, client, db_session, user_a, product_a):
        client.post(
            "/api/sales",
            json={"products": [{"product_id": product_a["id"], "sold_quantity": 1}]},
            headers=actor_headers(user_a),
        )
        client.post(
            "/api/return-sales",
            json={"products": [{"product_id": product_a["id"], "sold_quantity": 1}]},
            headers=actor_headers(user_a),
        )

        response = client.post("/api/return-sales/list", json={}, headers=actor_headers(user_a))
        assert response.get_json()["count"] == 1

        response = client.post("/api/products/list?search=case", json={}, headers=actor_headers(user_a))
        assert response.get_json()["count"] == 1

    def test_unknown_entity(self, client, db_session, user_a):
        response = client.post("/api/widgets/list", json={}, headers=actor_headers(user_a))
        assert response.status_code == 404

    def test_projection_mismatch_is_400(self, client, db_session, user_a, product_a):
        response = client.post(
            "/api/products/list",
            json={"select": {"name": 1, "sku": 0}},
            headers=actor_headers(user_a),
        )
        assert response.status_code == 400
        assert "Projection mismatch" in response.get_json()["message"]


class TestSaleEndpoint:

    def test_idempotency_key_header(self, client, db_session, user_a, product_a):
        payload = {"products": [{"product_id": product_a["id"], "sold_quantity": 2}]}
        headers = {**actor_headers(user_a), "Idempotency-Key": "checkout-7"}

        first = client.post("/api/sales", json=payload, headers=headers)
        retry = client.post("/api/sales", json=payload, headers=headers)

        assert first.status_code == 201
        assert retry.status_code == 200
        assert first.get_json()["data"]["invoice_no"] == "0001"
        assert retry.get_json()["data"]["transaction_id"] == first.get_json()["data"]["transaction_id"]
        db_session.expire_all()
        assert db_session.get(Product, product_a["id"]).quantity == 8

    def test_other_shop_product_is_404(self, client, db_session, user_a, product_b):
        response = client.post(
            "/api/sales",
            json={"products": [{"product_id": product_b["id"], "sold_quantity": 1}]},
            headers=actor_headers(user_a),
        )
        assert response.status_code == 404

    def test_bad_quantity_is_400(self, client, db_session, user_a, product_a):
        response = client.post(
            "/api/sales",
            json={"products": [{"product_id": product_a["id"], "sold_quantity": 0}]},
            headers=actor_headers(user_a),
        )
        assert response.status_code == 400

    def test_malformed_sold_date_string_is_400(self, client, db_session, user_a, product_a):
        response = client.post(
            "/api/sales",
            json={"products": [{"product_id": product_a["id"], "sold_quantity": 1}], "sold_date_string": "2024-ab-01"},
            headers=actor_headers(user_a),
        )
        assert response.status_code == 400

    def test_transaction_read_and_correction(self, client, db_session, user_a, user_b, product_a):
        created = client.post(
            "/api/sales",
            json={"products": [{"product_id": product_a["id"], "sold_quantity": 1}]},
            headers=actor_headers(user_a),
        ).get_json()["data"]
        url = f"/api/transactions/{created['transaction_id']}"

        assert client.get(url, headers=actor_headers(user_a)).get_json()["data"]["invoice_no"] == "0001"
        assert client.get(url, headers=actor_headers(user_b)).status_code == 404

        response = client.patch(url, json={"note": "fixed"}, headers=actor_headers(user_a))
        assert response.get_json()["data"]["note"] == "fixed"


class TestProductEndpoints:

    def test_create_and_stock_in(self, client, db_session, user_a):
        response = client.post(
            "/api/products",
            json={"name": "Earbuds", "quantity": 2, "imei": "A1,A2"},
            headers=actor_headers(user_a),
        )
        body = response.get_json()
        assert response.status_code == 201
        assert body["count"] == 2

        product_id = body["data"][0]["id"]
        response = client.post(
            f"/api/products/{product_id}/stock-in", json={"quantity": 3}, headers=actor_headers(user_a)
        )
        assert response.status_code == 201
        assert client.get(f"/api/products/{product_id}", headers=actor_headers(user_a)).get_json()["data"]["quantity"] == 5

    def test_duplicate_imei_is_409(self, client, db_session, user_a):
        client.post("/api/products", json={"name": "Earbuds", "imei": "A1"}, headers=actor_headers(user_a))
        response = client.post("/api/products", json={"name": "Earbuds", "imei": "A1"}, headers=actor_headers(user_a))
        assert response.status_code == 409

    def test_quantity_patch_is_400(self, client, db_session, user_a, product_a):
        response = client.patch(
            f"/api/products/{product_a['id']}", json={"quantity": 1}, headers=actor_headers(user_a)
        )
        assert response.status_code == 400


class TestArchiveEndpoints:

    def test_delete_then_restore(self, client, db_session, user_a, product_a):
        ids = {"ids": [product_a["id"]]}

        response = client.post("/api/archive/products/delete", json=ids, headers=actor_headers(user_a))
        assert response.get_json()["data"] == {"deleted": 1}

        logs = client.post("/api/product-logs/list", json={}, headers=actor_headers(user_a)).get_json()
        assert logs["count"] == 1

        response = client.post("/api/archive/products/restore", json=ids, headers=actor_headers(user_a))
        assert response.get_json()["success"] is True

        response = client.post("/api/archive/products/restore", json=ids, headers=actor_headers(user_a))
        assert response.get_json() == {"success": False, "message": "No logs found for the provided IDs."}


class TestLoyaltyEndpoints:

    def test_point_config_round_trip(self, client, db_session, user_a):
        assert client.get("/api/points", headers=actor_headers(user_a)).get_json()["data"] is None

        response = client.put(
            "/api/points", json={"point_amount": 5, "point_value": 100}, headers=actor_headers(user_a)
        )
        assert response.status_code == 200
        data = client.get("/api/points", headers=actor_headers(user_a)).get_json()["data"]
        assert (data["point_amount"], data["point_value"]) == (5, 100)


class TestSystem:

    def test_health(self, client, db_session):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json()["checks"]["database"]["status"] == "healthy"

    def test_version(self, client, db_session):
        body = client.get("/version").get_json()
        assert body["api_version"] == "0.1.0"
        assert body["python_version"].count(".") == 2


def _boom(*args, **kwargs):
    raise RuntimeError("disk on fire")


class TestUnexpectedErrors:

    @pytest.mark.parametrize(
        "service, name, url",
        [
            (products_service, "get_product", "/api/products/1"),
            (transaction_service, "get_transaction", "/api/transactions/1"),
            (customer_service, "get_point_config", "/api/points"),
            (sequence_service, "get_counters", "/api/sequences"),
        ],
    )
    def test_read_endpoints_return_500_envelope(self, client, db_session, user_a, monkeypatch, service, name, url):
        monkeypatch.setattr(service, name, _boom)

        response = client.get(url, headers=actor_headers(user_a))

        assert response.status_code == 500
        assert response.get_json() == {"success": False, "message": "Internal server error"}
