"""
Auth tests: gateway signature verification, user resolution, RBAC guard.

Tests run against mock dependencies (no real DB/Redis needed).
"""

import time

import pytest

from services.weatherdesk.config import settings
from services.weatherdesk.middleware.request_auth import (
    compute_body_hash,
    normalize_path,
    sort_query_string,
)
from services.weatherdesk.tests.helpers.factories import make_admin, make_user, signed_headers

pytestmark = pytest.mark.asyncio

SECRET = "test-hmac-secret"


@pytest.fixture(autouse=True)
def _secret(monkeypatch):
    monkeypatch.setattr(settings, "auth_hmac_secret", SECRET)


# ---------------------------------------------------------------------------
# Canonical string pieces
# ---------------------------------------------------------------------------

class TestCanonicalPieces:
    async def test_normalize_path_lowercases_and_collapses(self):
        assert normalize_path("//Weather//History/") == "/weather/history"

    async def test_normalize_path_keeps_root(self):
        assert normalize_path("/") == "/"

    async def test_normalize_path_rejects_traversal(self):
        from fastapi import HTTPException

        with pytest.raises(HTTPException) as exc_info:
            normalize_path("/weather/../users")
        assert exc_info.value.status_code == 400

    async def test_sort_query_string(self):
        assert sort_query_string("lon=2&lat=1&city=x") == "city=x&lat=1&lon=2"

    async def test_sort_query_string_empty(self):
        assert sort_query_string("") == ""

    async def test_body_hash_of_empty_body(self):
        assert compute_body_hash(b"") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


# ---------------------------------------------------------------------------
# Signature verification through a real route
# ---------------------------------------------------------------------------

class TestSignedIdentity:
    async def test_missing_headers_returns_401(self, client):
        response = await client.get("/auth/me")
        assert response.status_code == 401

    async def test_valid_signature_resolves_user(self, client, mock_session):
        user = make_user(id="user-123", username="signed")
        mock_session.returns_get(user)

        headers = signed_headers(SECRET, "user-123", "GET", "/auth/me")
        response = await client.get("/auth/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["data"]["username"] == "signed"

    async def test_signature_covers_query_string(self, client, mock_session):
        user = make_user(id="user-123")
        mock_session.returns_get(user)
        mock_session.returns_many([])

        headers = signed_headers(SECRET, "user-123", "GET", "/weather/history", query="offset=0&limit=5")
        response = await client.get("/weather/history?limit=5&offset=0", headers=headers)
        assert response.status_code == 200

    async def test_wrong_secret_returns_401(self, client, mock_session):
        mock_session.returns_get(make_user(id="user-123"))
        headers = signed_headers("other-secret", "user-123", "GET", "/auth/me")
        response = await client.get("/auth/me", headers=headers)
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid signature"

    async def test_tampered_user_id_returns_401(self, client, mock_session):
        headers = signed_headers(SECRET, "user-123", "GET", "/auth/me")
        headers["X-User-Id"] = "admin-001"
        response = await client.get("/auth/me", headers=headers)
        assert response.status_code == 401

    async def test_expired_timestamp_returns_401(self, client):
        stale = int(time.time()) - 3600
        headers = signed_headers(SECRET, "user-123", "GET", "/auth/me", timestamp=stale)
        response = await client.get("/auth/me", headers=headers)
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Request timestamp expired"

    async def test_non_numeric_timestamp_returns_401(self, client):
        headers = signed_headers(SECRET, "user-123", "GET", "/auth/me")
        headers["X-Auth-Timestamp"] = "yesterday"
        response = await client.get("/auth/me", headers=headers)
        assert response.status_code == 401

    async def test_body_hash_mismatch_returns_401(self, client):
        headers = signed_headers(SECRET, "user-123", "GET", "/auth/me", body=b"{}")
        response = await client.get("/auth/me", headers=headers)
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Body hash mismatch"

    async def test_unknown_user_returns_401(self, client, mock_session):
        headers = signed_headers(SECRET, "ghost", "GET", "/auth/me")
        response = await client.get("/auth/me", headers=headers)
        assert response.status_code == 401

    async def test_inactive_user_returns_401(self, client, mock_session):
        mock_session.returns_get(make_user(id="user-123", isActive=False))
        headers = signed_headers(SECRET, "user-123", "GET", "/auth/me")
        response = await client.get("/auth/me", headers=headers)
        assert response.status_code == 401

    async def test_missing_secret_returns_503(self, client, monkeypatch):
        monkeypatch.setattr(settings, "auth_hmac_secret", "")
        headers = signed_headers(SECRET, "user-123", "GET", "/auth/me")
        response = await client.get("/auth/me", headers=headers)
        assert response.status_code == 503


# ---------------------------------------------------------------------------
# RBAC guard
# ---------------------------------------------------------------------------

class TestAdminGuard:
    """USER callers get 403 on every admin route; ADMIN callers pass through."""

    ADMIN_ROUTES = [
        ("GET", "/users"),
        ("GET", "/users/stats"),
        ("GET", "/weather/admin/history"),
        ("GET", "/weather/admin/stats"),
    ]

    @pytest.mark.parametrize("method,path", ADMIN_ROUTES)
    async def test_regular_user_forbidden(self, user_client, method, path):
        response = await user_client.request(method, path)
        assert response.status_code == 403

    @pytest.mark.parametrize("method,path", ADMIN_ROUTES)
    async def test_anonymous_unauthorized(self, client, method, path):
        response = await client.request(method, path)
        assert response.status_code == 401

    async def test_regular_user_cannot_change_roles(self, user_client):
        response = await user_client.patch("/users/someone/role", json={"role": "ADMIN"})
        assert response.status_code == 403

    async def test_signed_admin_passes_guard(self, client, mock_session):
        admin = make_admin(id="admin-xyz")
        mock_session.returns_get(admin)
        mock_session.returns_scalar(0).returns_scalar(0).returns_rows([])

        headers = signed_headers(SECRET, "admin-xyz", "GET", "/weather/admin/stats")
        response = await client.get("/weather/admin/stats", headers=headers)
        assert response.status_code == 200
