"""HTTP surface: status codes and response shapes of the blueprints."""

import pytest

from kasir.extensions import db
from kasir.models import Product


class TestCashierIdentity:
    @pytest.mark.parametrize("method,path", [
        ("get", "/api/transactions/cart"),
        ("post", "/api/transactions/cart"),
        ("post", "/api/transactions/holds"),
        ("post", "/api/transactions/checkout"),
        ("get", "/api/transactions/history"),
    ])
    def test_requires_cashier_header(self, client, db_session, method, path):
        response = getattr(client, method)(path, json={})
        assert response.status_code == 401

    def test_rejects_non_numeric_cashier(self, client, db_session):
        response = client.get("/api/transactions/cart", headers={"X-Cashier-Id": "abc"})
        assert response.status_code == 400


class TestCartRoutes:
    def test_add_and_list(self, client, make_product, cashier_headers):
        product = make_product(sell_price=2500, stock=4)

        response = client.post(
            "/api/transactions/cart",
            json={"product_id": product.id, "qty": 2},
            headers=cashier_headers,
        )
        assert response.status_code == 201
        assert response.get_json()["line"]["price"] == 5000

        response = client.get("/api/transactions/cart", headers=cashier_headers)
        data = response.get_json()
        assert response.status_code == 200
        assert data["total"] == 5000
        assert len(data["items"]) == 1
        assert data["default_gateway"] == "cash"
        assert data["payment_gateways"] == []

    def test_add_over_stock(self, client, make_product, cashier_headers):
        product = make_product(stock=1)
        response = client.post(
            "/api/transactions/cart",
            json={"product_id": product.id, "qty": 2},
            headers=cashier_headers,
        )
        assert response.status_code == 422
        assert response.get_json()["details"]["available"] == 1

    def test_add_rejects_decimal_qty(self, client, make_product, cashier_headers):
        product = make_product()
        response = client.post(
            "/api/transactions/cart",
            json={"product_id": product.id, "qty": "1.5"},
            headers=cashier_headers,
        )
        assert response.status_code == 400

    def test_update_and_remove(self, client, make_product, cashier_headers):
        product = make_product(sell_price=1000, stock=5)
        line_id = client.post(
            "/api/transactions/cart",
            json={"product_id": product.id, "qty": 1},
            headers=cashier_headers,
        ).get_json()["line"]["id"]

        response = client.patch(f"/api/transactions/cart/{line_id}", json={"qty": 3}, headers=cashier_headers)
        assert response.status_code == 200
        assert response.get_json()["line"]["price"] == 3000

        response = client.delete(f"/api/transactions/cart/{line_id}", headers=cashier_headers)
        assert response.status_code == 200

        response = client.delete(f"/api/transactions/cart/{line_id}", headers=cashier_headers)
        assert response.status_code == 404


class TestHoldRoutes:
    def test_hold_resume_discard(self, client, make_product, cashier_headers):
        product = make_product(stock=5)
        client.post("/api/transactions/cart", json={"product_id": product.id, "qty": 1}, headers=cashier_headers)

        response = client.post("/api/transactions/holds", json={"label": "Meja 1"}, headers=cashier_headers)
        assert response.status_code == 201
        hold_id = response.get_json()["hold"]["hold_id"]

        listed = client.get("/api/transactions/holds", headers=cashier_headers).get_json()["held_carts"]
        assert [h["hold_id"] for h in listed] == [hold_id]
        assert len(listed[0]["items"]) == 1

        response = client.post(f"/api/transactions/holds/{hold_id}/resume", headers=cashier_headers)
        assert response.status_code == 200
        assert len(response.get_json()["items"]) == 1

        client.post("/api/transactions/holds", json={}, headers=cashier_headers)
        hold_id = client.get("/api/transactions/holds", headers=cashier_headers).get_json()["held_carts"][0]["hold_id"]
        response = client.delete(f"/api/transactions/holds/{hold_id}", headers=cashier_headers)
        assert response.status_code == 200
        assert response.get_json()["deleted"] == 1

    def test_hold_empty_cart(self, client, db_session, cashier_headers):
        response = client.post("/api/transactions/holds", json={}, headers=cashier_headers)
        assert response.status_code == 422

    def test_resume_blocked_by_active_cart(self, client, make_product, cashier_headers):
        product = make_product(stock=5)
        client.post("/api/transactions/cart", json={"product_id": product.id, "qty": 1}, headers=cashier_headers)
        hold_id = client.post("/api/transactions/holds", json={}, headers=cashier_headers).get_json()["hold"]["hold_id"]
        client.post("/api/transactions/cart", json={"product_id": product.id, "qty": 1}, headers=cashier_headers)

        response = client.post(f"/api/transactions/holds/{hold_id}/resume", headers=cashier_headers)
        assert response.status_code == 409


class TestCheckoutRoutes:
    def fill(self, client, example_cart, headers):
        first, second = example_cart
        client.post("/api/transactions/cart", json={"product_id": first.id, "qty": 2}, headers=headers)
        client.post("/api/transactions/cart", json={"product_id": second.id, "qty": 1}, headers=headers)

    def test_checkout_and_print(self, client, example_cart, cashier_headers):
        self.fill(client, example_cart, cashier_headers)

        response = client.post("/api/transactions/checkout", json={
            "discount_type": "nominal",
            "discount_value": 1000,
            "tax_type": "percent",
            "tax_value": 10,
            "cash": 50000,
            "grand_total": 26400,
        }, headers=cashier_headers)

        assert response.status_code == 201
        data = response.get_json()
        invoice = data["transaction"]["invoice"]
        assert data["redirect"] == {"invoice": invoice}
        assert data["transaction"]["change"] == 23600
        assert len(data["transaction"]["details"]) == 2
        assert "payment_error" not in data

        response = client.get(f"/api/transactions/{invoice}", headers=cashier_headers)
        assert response.status_code == 200
        printed = response.get_json()["transaction"]
        assert printed["subtotal"] == 25000
        assert printed["details"][0]["product"]["title"] == "Kopi Bubuk"

        history = client.get("/api/transactions/history", headers=cashier_headers).get_json()
        assert [t["invoice"] for t in history["transactions"]] == [invoice]

    def test_stock_failure_lists(self, client, example_cart, cashier_headers):
        self.fill(client, example_cart, cashier_headers)
        first, _ = example_cart
        db.session.get(Product, first.id).stock = 0
        db.session.commit()

        response = client.post("/api/transactions/checkout", json={"cash": 50000}, headers=cashier_headers)

        assert response.status_code == 422
        data = response.get_json()
        assert data["out_of_stock"] == ["Kopi Bubuk"]
        assert data["insufficient_stock"] == []

    def test_gateway_failure_still_created(self, client, example_cart, cashier_headers, midtrans_setting, monkeypatch):
        from kasir.errors import GatewayError
        from kasir.services import checkout_service

        def refuse(transaction, *, client=None):
            raise GatewayError("midtrans request failed", details={"gateway": "midtrans"})

        monkeypatch.setattr(checkout_service, "_charge", refuse)
        self.fill(client, example_cart, cashier_headers)

        response = client.post(
            "/api/transactions/checkout",
            json={"payment_gateway": "midtrans", "tax_value": 0},
            headers=cashier_headers,
        )

        assert response.status_code == 201
        data = response.get_json()
        assert data["transaction"]["payment_status"] == "pending"
        assert data["payment_error"]["error"] == "midtrans request failed"

    def test_unknown_invoice(self, client, db_session, cashier_headers):
        response = client.get("/api/transactions/TRX-NOPE", headers=cashier_headers)
        assert response.status_code == 404

    def test_payment_status_callback(self, client, example_cart, cashier_headers, qris_setting):
        self.fill(client, example_cart, cashier_headers)
        invoice = client.post(
            "/api/transactions/checkout",
            json={"payment_gateway": "qris"},
            headers=cashier_headers,
        ).get_json()["transaction"]["invoice"]

        response = client.post(f"/api/transactions/{invoice}/payment-status", json={"status": "paid"})
        assert response.status_code == 200
        assert response.get_json()["transaction"]["payment_status"] == "paid"

        response = client.post(f"/api/transactions/{invoice}/payment-status", json={"status": "failed"})
        assert response.status_code == 400


class TestSettingsAndReports:
    def test_settings_round_trip(self, client, db_session, static_qris):
        response = client.put("/api/settings/payments", json={
            "default_gateway": "qris",
            "qris_enabled": True,
            "qris_string": static_qris,
        })
        assert response.status_code == 200
        data = response.get_json()
        assert data["default_gateway"] == "qris"
        assert [g["value"] for g in data["payment_gateways"]] == ["qris"]

        assert client.get("/api/settings/payments").get_json()["settings"]["qris_enabled"] is True

    def test_edit_after_read_keeps_secret_keys(self, client, db_session):
        response = client.put("/api/settings/payments", json={
            "default_gateway": "midtrans",
            "midtrans_enabled": True,
            "midtrans_server_key": "server",
            "midtrans_client_key": "client",
        })
        assert response.status_code == 200

        settings = client.get("/api/settings/payments").get_json()["settings"]
        assert "midtrans_server_key" not in settings
        settings["midtrans_production"] = True

        response = client.put("/api/settings/payments", json=settings)
        assert response.status_code == 200
        data = response.get_json()
        assert data["settings"]["midtrans_production"] is True
        assert data["settings"]["midtrans_server_key_set"] is True
        assert data["default_gateway"] == "midtrans"

    def test_settings_validation(self, client, db_session):
        response = client.put("/api/settings/payments", json={"default_gateway": "cash", "xendit_enabled": True})
        assert response.status_code == 400
        assert response.get_json()["details"]["field"] == "xendit_secret_key"

    def test_report(self, client, db_session):
        response = client.get("/api/reports/transactions?start_date=2026-01-01&end_date=2026-01-31")
        assert response.status_code == 200
        assert response.get_json()["filters"]["start_date"] == "2026-01-01"

    def test_report_bad_date(self, client, db_session):
        response = client.get("/api/reports/transactions?start_date=yesterday")
        assert response.status_code == 400

    def test_health(self, client, db_session):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json()["status"] == "healthy"
