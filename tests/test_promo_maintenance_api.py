"""
Storefront — Promo codes and maintenance mode.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from storefront.core.exceptions import DuplicatePromoCodeError, PromoCodeNotFoundError
from storefront.models.site_settings import DEFAULT_MAINTENANCE_MESSAGE
from storefront.services.maintenance import MaintenanceService
from storefront.services.promo_codes import PromoCodeService, apply_discount


def _headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


# ═══════════════════════════════════════════════════════════════════════════════
# PROMO CODES
# ═══════════════════════════════════════════════════════════════════════════════


class TestApplyDiscount:
    @pytest.mark.parametrize(
        "subtotal,pct,discount,total",
        [
            ("50.00", 10, "5.00", "45.00"),
            ("19.99", 10, "2.00", "17.99"),
            ("0.05", 10, "0.01", "0.04"),
            ("80.00", 100, "80.00", "0.00"),
        ],
    )
    def test_half_up_to_cents(self, subtotal, pct, discount, total):
        assert apply_discount(Decimal(subtotal), pct) == (Decimal(discount), Decimal(total))


class TestPromoCodeService:
    def test_welcome_code_seeded(self, db_session):
        promo = PromoCodeService(db_session).find_active("welcome10")
        assert promo.discount_percentage == 10

    def test_create_normalises_code(self, db_session):
        promo = PromoCodeService(db_session).create("  summer20 ", 20)
        assert promo.code == "SUMMER20"
        assert promo.used_count == 0
        assert promo.is_active is True

    def test_duplicate_is_case_insensitive(self, db_session):
        service = PromoCodeService(db_session)
        service.create("SUMMER20", 20)
        with pytest.raises(DuplicatePromoCodeError):
            service.create("summer20", 25)

    def test_inactive_code_not_found(self, db_session):
        service = PromoCodeService(db_session)
        promo = service.create("SPRING", 5)
        service.update(promo.id, is_active=False)
        with pytest.raises(PromoCodeNotFoundError):
            service.find_active("SPRING")

    def test_rename_onto_existing_code(self, db_session):
        service = PromoCodeService(db_session)
        promo = service.create("SPRING", 5)
        with pytest.raises(DuplicatePromoCodeError):
            service.update(promo.id, code="welcome10")


class TestPromoCodeAPI:
    def test_list_requires_admin(self, client, shopper_token):
        assert client.get("/api/admin/promo-codes").status_code == 401
        assert client.get("/api/admin/promo-codes", headers=_headers(shopper_token)).status_code == 403

    def test_list(self, client, fixed_admin_token):
        resp = client.get("/api/admin/promo-codes", headers=_headers(fixed_admin_token))
        assert resp.status_code == 200
        codes = resp.json()
        assert [c["code"] for c in codes] == ["WELCOME10"]
        assert codes[0]["discountPercentage"] == 10
        assert codes[0]["isActive"] is True

    def test_create(self, client, fixed_admin_token):
        resp = client.post(
            "/api/admin/promo-codes",
            json={"code": "summer20", "discountPercentage": 20},
            headers=_headers(fixed_admin_token),
        )
        assert resp.status_code == 201
        assert resp.json()["code"] == "SUMMER20"

    def test_create_duplicate_conflict(self, client, fixed_admin_token):
        resp = client.post(
            "/api/admin/promo-codes",
            json={"code": "Welcome10", "discountPercentage": 15},
            headers=_headers(fixed_admin_token),
        )
        assert resp.status_code == 409

    @pytest.mark.parametrize("pct", [0, 101])
    def test_create_out_of_range(self, client, fixed_admin_token, pct):
        resp = client.post(
            "/api/admin/promo-codes",
            json={"code": "BAD", "discountPercentage": pct},
            headers=_headers(fixed_admin_token),
        )
        assert resp.status_code == 400

    def test_update_and_delete(self, client, db_session, fixed_admin_token):
        promo = PromoCodeService(db_session).create("SPRING", 5)

        resp = client.patch(
            f"/api/admin/promo-codes/{promo.id}",
            json={"discountPercentage": 15, "isActive": False},
            headers=_headers(fixed_admin_token),
        )
        assert resp.status_code == 200
        assert resp.json()["discountPercentage"] == 15
        assert resp.json()["isActive"] is False

        resp = client.delete(f"/api/admin/promo-codes/{promo.id}", headers=_headers(fixed_admin_token))
        assert resp.status_code == 200
        resp = client.delete(f"/api/admin/promo-codes/{promo.id}", headers=_headers(fixed_admin_token))
        assert resp.status_code == 404

    def test_validate_active_code(self, client):
        resp = client.post("/api/promo-codes/validate", json={"code": "welcome10"})
        assert resp.status_code == 200
        assert resp.json() == {"code": "WELCOME10", "discountPercentage": 10}

    def test_validate_unknown_code(self, client):
        resp = client.post("/api/promo-codes/validate", json={"code": "NOPE"})
        assert resp.status_code == 404

    def test_validate_inactive_code(self, client, db_session):
        service = PromoCodeService(db_session)
        service.update(service.find_active("WELCOME10").id, is_active=False)
        resp = client.post("/api/promo-codes/validate", json={"code": "WELCOME10"})
        assert resp.status_code == 404


# ═══════════════════════════════════════════════════════════════════════════════
# MAINTENANCE MODE
# ═══════════════════════════════════════════════════════════════════════════════


def _broken_session():
    session = MagicMock()
    session.get.side_effect = OperationalError("SELECT", {}, Exception("down"))
    return session


class TestMaintenanceService:
    def test_defaults_off(self, db_session, tmp_path):
        state = MaintenanceService(db_session, flag_file=tmp_path / ".maintenance").get_status()
        assert state.is_maintenance_mode is False
        assert state.maintenance_message == DEFAULT_MAINTENANCE_MESSAGE
        assert state.source == "database"

    def test_set_and_get(self, db_session, tmp_path):
        service = MaintenanceService(db_session, flag_file=tmp_path / ".maintenance")
        service.set_status(True, "Back at noon", "2 hours")
        state = service.get_status()
        assert state.is_maintenance_mode is True
        assert state.maintenance_message == "Back at noon"
        assert state.estimated_time == "2 hours"

    def test_read_falls_back_to_flag_file(self, tmp_path):
        flag = tmp_path / ".maintenance"
        service = MaintenanceService(_broken_session(), flag_file=flag)
        assert service.get_status().is_maintenance_mode is False

        flag.write_text("true")
        state = service.get_status()
        assert state.is_maintenance_mode is True
        assert state.source == "flag_file"

    def test_write_falls_back_to_flag_file(self, tmp_path):
        flag = tmp_path / ".maintenance"
        service = MaintenanceService(_broken_session(), flag_file=flag)

        state = service.set_status(True)
        assert state.source == "flag_file"
        assert flag.exists()

        service.set_status(False)
        assert not flag.exists()


class TestMaintenanceAPI:
    def test_public_status_not_cached(self, client):
        resp = client.get("/api/maintenance-status")
        assert resp.status_code == 200
        assert resp.json()["isMaintenanceMode"] is False
        assert "no-store" in resp.headers["cache-control"]
        assert resp.headers["pragma"] == "no-cache"

    def test_admin_toggle_visible_publicly(self, client, fixed_admin_token):
        resp = client.post(
            "/api/admin/maintenance",
            json={"isMaintenanceMode": True, "maintenanceMessage": "Upgrading", "estimatedTime": "1h"},
            headers=_headers(fixed_admin_token),
        )
        assert resp.status_code == 200
        assert resp.json()["success"] is True

        body = client.get("/api/maintenance-status").json()
        assert body == {
            "isMaintenanceMode": True,
            "maintenanceMessage": "Upgrading",
            "estimatedTime": "1h",
        }

    def test_admin_read(self, client, stored_admin_token):
        resp = client.get("/api/admin/maintenance", headers=_headers(stored_admin_token))
        assert resp.status_code == 200
        assert resp.json()["maintenanceMessage"] == DEFAULT_MAINTENANCE_MESSAGE

    def test_toggle_requires_admin(self, client, shopper_token):
        resp = client.post(
            "/api/admin/maintenance",
            json={"isMaintenanceMode": True},
            headers=_headers(shopper_token),
        )
        assert resp.status_code == 403
        assert client.post("/api/admin/maintenance", json={"isMaintenanceMode": True}).status_code == 401
