"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Unknown tokens return 401
- Viewer and staff roles are denied operations outside their role (403)
- Admin role can perform privileged operations
- Health endpoint is public
"""

import pytest

from stockdesk.config import parse_api_tokens
from stockdesk.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    get_all_permission_codes,
    permissions_for_role,
    role_has_permission,
    validate_permission_code,
)
from conftest import auth_headers


TOKENS = {
    "admin-token": "admin",
    "staff-token": "staff",
    "viewer-token": "viewer",
}


@pytest.fixture
def enforce_auth(app, monkeypatch):
    """Turn token checks on for the duration of a test."""
    monkeypatch.setitem(app.config, "AUTH_DISABLED", False)
    monkeypatch.setitem(app.config, "API_TOKENS", dict(TOKENS))


@pytest.fixture
def admin_headers(enforce_auth):
    return auth_headers("admin-token")


@pytest.fixture
def staff_headers(enforce_auth):
    return auth_headers("staff-token")


@pytest.fixture
def viewer_headers(enforce_auth):
    return auth_headers("viewer-token")


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("GET", "/api/sales/1"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/products/low-stock"),
            ("POST", "/api/batch/add-stock"),
            ("GET", "/api/notifications"),
            ("GET", "/api/reports/summary"),
            ("GET", "/api/settings"),
            ("GET", "/api/export/inventory"),
        ],
    )
    def test_requires_auth(self, client, db_session, enforce_auth, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_unknown_token(self, client, db_session, enforce_auth):
        resp = client.get("/api/sales", headers=auth_headers("forged"))
        assert resp.status_code == 401

    def test_malformed_header(self, client, db_session, enforce_auth):
        resp = client.get("/api/sales", headers={"Authorization": "Token admin-token"})
        assert resp.status_code == 401


# =============================================================================
# ROLE DENIALS - 403
# =============================================================================


class TestRoleDenials:

    def test_viewer_cannot_post_sale(self, client, db_session, viewer_headers):
        resp = client.post("/api/sales", json={"items": []}, headers=viewer_headers)
        assert resp.status_code == 403
        assert resp.get_json()["required_permission"] == "POST_SALE"

    def test_staff_cannot_delete_sale(self, client, db_session, staff_headers):
        resp = client.delete("/api/sales/1", headers=staff_headers)
        assert resp.status_code == 403

    def test_staff_cannot_manage_products(self, client, db_session, staff_headers):
        resp = client.post("/api/batch/mark-out-of-stock", json={"productIds": [1]}, headers=staff_headers)
        assert resp.status_code == 403

    def test_staff_cannot_change_settings(self, client, db_session, staff_headers):
        resp = client.put("/api/settings", json={"currency": "GBP"}, headers=staff_headers)
        assert resp.status_code == 403


# =============================================================================
# ALLOWED ACCESS - 200
# =============================================================================


class TestAllowedAccess:

    def test_staff_can_post_sale(self, client, db_session, brake_pads, staff_headers):
        resp = client.post(
            "/api/sales",
            json={"items": [{"product": brake_pads.id, "variant": "Front", "quantity": 1}]},
            headers=staff_headers,
        )
        assert resp.status_code == 201

    def test_viewer_can_read_reports(self, client, db_session, viewer_headers):
        resp = client.get("/api/reports/summary", headers=viewer_headers)
        assert resp.status_code == 200

    def test_viewer_can_export_inventory(self, client, db_session, viewer_headers):
        resp = client.get("/api/export/inventory", headers=viewer_headers)
        assert resp.status_code == 200

    def test_admin_can_read_settings(self, client, db_session, admin_headers):
        resp = client.get("/api/settings", headers=admin_headers)
        assert resp.status_code == 200


class TestPublicEndpoints:

    def test_health(self, client, db_session, enforce_auth):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["checks"]["database"]["status"] == "healthy"


# =============================================================================
# TOKEN MAP AND ROLE TABLE
# =============================================================================


class TestTokenParsing:

    def test_parse(self):
        assert parse_api_tokens("abc:admin, def:Viewer ,ghi") == {
            "abc": "admin",
            "def": "viewer",
            "ghi": "staff",
        }

    @pytest.mark.parametrize("raw", [None, "", " , "])
    def test_empty(self, raw):
        assert parse_api_tokens(raw) == {}


class TestRoleTable:

    def test_admin_has_everything(self):
        assert DEFAULT_ROLE_PERMISSIONS["admin"] == set(get_all_permission_codes())

    def test_every_role_permission_is_defined(self):
        for codes in DEFAULT_ROLE_PERMISSIONS.values():
            assert all(validate_permission_code(code) for code in codes)

    def test_unknown_role_fails_closed(self):
        assert role_has_permission("intern", "VIEW_SALES") is False

    def test_viewer_grants_in_definition_order(self):
        assert permissions_for_role("viewer") == ["VIEW_INVENTORY", "VIEW_SALES", "VIEW_REPORTS"]
        assert permissions_for_role("intern") == []
