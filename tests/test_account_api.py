"""
Storefront — Account self-service and orders.
"""

from __future__ import annotations

from storefront.models.orders import Order
from storefront.models.promo_codes import PromoCode
from storefront.models.users import User

ADDRESS = {"line1": "1 High Street", "city": "Leeds", "postcode": "LS1 1AA"}
ITEMS = [{"id": "sku-1", "name": "Mug", "quantity": 2, "price": 25.0}]


def _headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _place(client, token, **overrides):
    payload = {"items": ITEMS, "total": 50}
    payload.update(overrides)
    return client.post("/api/orders", json=payload, headers=_headers(token))


# ─── Shipping address ─────────────────────────────────────────────────────────


class TestShippingAddress:
    def test_empty_by_default(self, client, shopper_token):
        resp = client.get("/api/user/shipping-address", headers=_headers(shopper_token))
        assert resp.status_code == 200
        assert resp.json() == {"shippingAddress": None}

    def test_save_and_read_back(self, client, db_session, shopper, shopper_token):
        resp = client.post(
            "/api/user/shipping-address", json=ADDRESS, headers=_headers(shopper_token)
        )
        assert resp.status_code == 200
        assert resp.json()["success"] is True

        resp = client.get("/api/user/shipping-address", headers=_headers(shopper_token))
        assert resp.json()["shippingAddress"] == ADDRESS

        db_session.refresh(shopper)
        assert "Leeds" not in shopper.shipping_address_encrypted

    def test_requires_authentication(self, client):
        assert client.get("/api/user/shipping-address").status_code == 401

    def test_fixed_admin_has_no_address(self, client, fixed_admin_token):
        resp = client.get("/api/user/shipping-address", headers=_headers(fixed_admin_token))
        assert resp.status_code == 403


# ─── Account deletion ─────────────────────────────────────────────────────────


class TestDeleteAccount:
    def test_deletes_user_and_orders(self, client, db_session, shopper, shopper_token):
        assert _place(client, shopper_token).status_code == 200

        resp = client.delete("/api/user/delete-account", headers=_headers(shopper_token))
        assert resp.status_code == 200
        assert resp.json()["success"] is True

        db_session.expire_all()
        assert db_session.query(User).count() == 0
        assert db_session.query(Order).count() == 0

    def test_token_dead_after_deletion(self, client, shopper_token):
        client.delete("/api/user/delete-account", headers=_headers(shopper_token))
        assert client.get("/api/auth/me", headers=_headers(shopper_token)).status_code == 401

    def test_admin_cannot_self_delete(self, client, stored_admin_token):
        resp = client.delete("/api/user/delete-account", headers=_headers(stored_admin_token))
        assert resp.status_code == 403

    def test_fixed_admin_cannot_self_delete(self, client, fixed_admin_token):
        resp = client.delete("/api/user/delete-account", headers=_headers(fixed_admin_token))
        assert resp.status_code == 403

    def test_requires_authentication(self, client):
        assert client.delete("/api/user/delete-account").status_code == 401


# ─── Data deletion ───────────────────────────────────────────────────────────


class TestDeleteData:
    def test_erases_orders_and_address_keeps_account(self, client, db_session, shopper, shopper_token):
        client.post("/api/user/shipping-address", json=ADDRESS, headers=_headers(shopper_token))
        _place(client, shopper_token)
        _place(client, shopper_token, total=20)

        resp = client.delete("/api/user/delete-data", headers=_headers(shopper_token))
        assert resp.status_code == 200
        assert resp.json()["success"] is True

        db_session.expire_all()
        assert db_session.query(Order).count() == 0
        assert db_session.query(User).count() == 1
        assert client.get("/api/orders", headers=_headers(shopper_token)).json() == {"orders": []}
        resp = client.get("/api/user/shipping-address", headers=_headers(shopper_token))
        assert resp.json() == {"shippingAddress": None}

    def test_account_still_signs_in(self, client, shopper, shopper_token):
        client.delete("/api/user/delete-data", headers=_headers(shopper_token))
        resp = client.post(
            "/api/auth/login", json={"email": "shopper@shop.io", "password": "secret123"}
        )
        assert resp.status_code == 200
        assert resp.json()["user"]["id"] == shopper.id

    def test_other_users_orders_untouched(self, client, db_session, shopper_token, stored_admin_token):
        _place(client, shopper_token)
        _place(client, stored_admin_token)
        client.delete("/api/user/delete-data", headers=_headers(shopper_token))
        db_session.expire_all()
        assert db_session.query(Order).count() == 1

    def test_fixed_admin_forbidden(self, client, fixed_admin_token):
        resp = client.delete("/api/user/delete-data", headers=_headers(fixed_admin_token))
        assert resp.status_code == 403

    def test_requires_authentication(self, client):
        assert client.delete("/api/user/delete-data").status_code == 401


# ─── Orders ───────────────────────────────────────────────────────────────────


class TestOrders:
    def test_place_order_without_promo(self, client, shopper_token):
        resp = _place(client, shopper_token, shippingAddress=ADDRESS)
        assert resp.status_code == 200
        order = resp.json()["order"]
        assert order["subtotal"] == 50.0
        assert order["discount"] == 0.0
        assert order["total"] == 50.0
        assert order["status"] == "pending"
        assert order["shippingAddress"] == ADDRESS
        assert order["promoCode"] is None
        assert order["id"]
        assert order["createdAt"]

    def test_place_order_with_promo(self, client, db_session, shopper_token):
        resp = _place(client, shopper_token, promoCode="welcome10")
        assert resp.status_code == 200
        order = resp.json()["order"]
        assert order["discount"] == 5.0
        assert order["total"] == 45.0
        assert order["promoCode"] == "WELCOME10"

        db_session.expire_all()
        promo = db_session.query(PromoCode).filter(PromoCode.code == "WELCOME10").one()
        assert promo.used_count == 1

    def test_discount_rounds_to_cents(self, client, shopper_token):
        order = _place(client, shopper_token, total=19.99, promoCode="WELCOME10").json()["order"]
        assert order["discount"] == 2.0
        assert order["total"] == 17.99

    def test_unknown_promo_rejected(self, client, db_session, shopper_token):
        resp = _place(client, shopper_token, promoCode="NOPE")
        assert resp.status_code == 404
        db_session.expire_all()
        assert db_session.query(Order).count() == 0

    def test_list_only_own_orders(self, client, shopper_token, stored_admin_token):
        _place(client, shopper_token)
        _place(client, shopper_token, total=20)
        _place(client, stored_admin_token)

        resp = client.get("/api/orders", headers=_headers(shopper_token))
        assert resp.status_code == 200
        orders = resp.json()["orders"]
        assert len(orders) == 2
        assert {o["subtotal"] for o in orders} == {50.0, 20.0}

    def test_empty_items_rejected(self, client, shopper_token):
        assert _place(client, shopper_token, items=[]).status_code == 400

    def test_non_positive_total_rejected(self, client, shopper_token):
        assert _place(client, shopper_token, total=0).status_code == 400

    def test_requires_authentication(self, client):
        assert client.get("/api/orders").status_code == 401
        assert client.post("/api/orders", json={"items": ITEMS, "total": 50}).status_code == 401

    def test_fixed_admin_has_no_orders(self, client, fixed_admin_token):
        assert client.get("/api/orders", headers=_headers(fixed_admin_token)).status_code == 403
