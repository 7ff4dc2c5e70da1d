"""
Tests for /auth: register, login, me.
"""

import pytest

from services.weatherdesk.auth.roles import UserRole
from services.weatherdesk.tests.helpers.factories import make_user
from services.weatherdesk.users.passwords import hash_password, verify_password

pytestmark = pytest.mark.asyncio


def _added_user(mock_session):
    return mock_session.mock.add.call_args[0][0]


class TestRegister:
    async def test_creates_user_with_hashed_password(self, client, mock_session):
        mock_session.returns_none()

        response = await client.post(
            "/auth/register",
            json={"email": "new@example.com", "username": "newbie", "password": "secret1"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["email"] == "new@example.com"
        assert body["data"]["role"] == "USER"
        assert body["data"]["isActive"] is True
        assert "password" not in body["data"]

        added = _added_user(mock_session)
        assert added.password != "secret1"
        assert verify_password("secret1", added.password)
        mock_session.mock.commit.assert_awaited_once()

    async def test_anonymous_role_request_is_ignored(self, client, mock_session):
        mock_session.returns_none()

        response = await client.post(
            "/auth/register",
            json={
                "email": "sneaky@example.com",
                "username": "sneaky",
                "password": "secret1",
                "role": "ADMIN",
            },
        )

        assert response.status_code == 201
        assert response.json()["data"]["role"] == "USER"
        assert _added_user(mock_session).createdById is None

    async def test_admin_may_assign_role(self, app, admin_client, admin_user, mock_session):
        from services.weatherdesk.auth.deps import get_optional_user

        app.dependency_overrides[get_optional_user] = lambda: admin_user
        mock_session.returns_none()

        response = await admin_client.post(
            "/auth/register",
            json={
                "email": "ops@example.com",
                "username": "ops",
                "password": "secret1",
                "role": "ADMIN",
            },
        )

        assert response.status_code == 201
        assert response.json()["data"]["role"] == "ADMIN"
        added = _added_user(mock_session)
        assert added.role == UserRole.ADMIN
        assert added.createdById == admin_user.id

    async def test_duplicate_email_or_username_returns_409(self, client, mock_session):
        mock_session.returns_one(make_user(email="taken@example.com"))

        response = await client.post(
            "/auth/register",
            json={"email": "taken@example.com", "username": "fresh", "password": "secret1"},
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"
        mock_session.mock.add.assert_not_called()

    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "not-an-email", "username": "valid", "password": "secret1"},
            {"email": "a@example.com", "username": "ab", "password": "secret1"},
            {"email": "a@example.com", "username": "valid", "password": "12345"},
        ],
    )
    async def test_invalid_payload_returns_422(self, client, payload):
        response = await client.post("/auth/register", json=payload)
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestLogin:
    async def test_valid_credentials_return_profile(self, client, mock_session):
        user = make_user(email="me@example.com", username="me", password=hash_password("secret1"))
        mock_session.returns_one(user)

        response = await client.post(
            "/auth/login", json={"email": "me@example.com", "password": "secret1"}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"] == {
            "id": user.id,
            "email": "me@example.com",
            "username": "me",
            "role": "USER",
        }

    async def test_wrong_password_returns_401(self, client, mock_session):
        mock_session.returns_one(make_user(password=hash_password("secret1")))

        response = await client.post(
            "/auth/login", json={"email": "me@example.com", "password": "wrong-pass"}
        )

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid credentials"

    async def test_unknown_email_returns_401(self, client, mock_session):
        mock_session.returns_none()

        response = await client.post(
            "/auth/login", json={"email": "ghost@example.com", "password": "secret1"}
        )

        assert response.status_code == 401

    async def test_inactive_account_returns_401(self, client, mock_session):
        mock_session.returns_one(
            make_user(password=hash_password("secret1"), isActive=False)
        )

        response = await client.post(
            "/auth/login", json={"email": "me@example.com", "password": "secret1"}
        )

        assert response.status_code == 401


class TestMe:
    async def test_returns_current_profile(self, user_client, regular_user):
        response = await user_client.get("/auth/me")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == regular_user.id
        assert data["username"] == "regular"
        assert data["role"] == "USER"

    async def test_requires_identity(self, client):
        response = await client.get("/auth/me")
        assert response.status_code == 401
