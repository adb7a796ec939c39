"""
API tests for the authentication endpoints.
"""

import pytest
from sqlalchemy import func, select

from app.core.security import create_refresh_token
from conftest import TEST_PASSWORD
from models import User

SIGNUP = {"username": "Nadia", "email": "nadia@example.com", "password": "Secret123"}


class TestSignup:
    @pytest.mark.asyncio
    async def test_signup_requires_verification(self, client, email_service):
        response = await client.post("/api/v1/auth/signup", json=SIGNUP)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"] == {"requiresVerification": True, "email": "nadia@example.com"}
        assert email_service.sent[0]["url"].startswith("http")
        assert "/verify-email/" in email_service.sent[0]["url"]

    @pytest.mark.asyncio
    async def test_duplicate_email_conflict(self, client, test_db, test_user):
        response = await client.post(
            "/api/v1/auth/signup", json={**SIGNUP, "email": "test@example.com"}
        )

        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["error_code"] == "CONFLICT"
        count = (
            await test_db.execute(select(func.count(User.id)).where(User.email == "test@example.com"))
        ).scalar()
        assert count == 1

    @pytest.mark.asyncio
    async def test_conflict_message_in_arabic(self, client, test_user):
        response = await client.post(
            "/api/v1/auth/signup?lng=ar", json={**SIGNUP, "email": "test@example.com"}
        )

        assert response.json()["message"] == "يوجد حساب بهذا البريد الإلكتروني بالفعل"

    @pytest.mark.asyncio
    async def test_weak_password_rejected(self, client):
        response = await client.post("/api/v1/auth/signup", json={**SIGNUP, "password": "short"})

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["details"][0]["field"] == "password"

    @pytest.mark.asyncio
    async def test_verify_then_login(self, client, email_service):
        await client.post("/api/v1/auth/signup", json=SIGNUP)
        token = email_service.last_token("nadia@example.com")

        verified = await client.get(f"/api/v1/auth/verify-email/{token}")
        assert verified.status_code == 200
        assert verified.json()["data"]["user"]["isActive"] is True

        login = await client.post(
            "/api/v1/auth/login", json={"email": "nadia@example.com", "password": "Secret123"}
        )
        assert login.status_code == 200
        assert login.json()["data"]["refreshToken"]


class TestLogin:
    """Test login and lockout over HTTP."""

    @pytest.mark.asyncio
    async def test_login_success(self, client, test_user):
        response = await client.post(
            "/api/v1/auth/login", json={"email": "TEST@example.com", "password": TEST_PASSWORD}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["token"]
        assert data["user"]["email"] == "test@example.com"
        assert "hashedPassword" not in data["user"]

    @pytest.mark.asyncio
    async def test_wrong_password_counts_and_locks(self, client, test_db, test_user):
        for _ in range(5):
            response = await client.post(
                "/api/v1/auth/login", json={"email": "test@example.com", "password": "WrongPass1"}
            )
            assert response.status_code == 401
            assert response.json()["error_code"] == "INVALID_CREDENTIALS"

        await test_db.refresh(test_user)
        assert test_user.login_attempts == 5
        assert test_user.lock_until is not None

        locked = await client.post(
            "/api/v1/auth/login", json={"email": "test@example.com", "password": TEST_PASSWORD}
        )
        assert locked.status_code == 423
        assert locked.json()["error_code"] == "ACCOUNT_LOCKED"

    @pytest.mark.asyncio
    async def test_unverified_login_forbidden(self, client, test_db, test_user, email_service):
        test_user.email_verified = False
        test_db.add(test_user)
        await test_db.commit()

        response = await client.post(
            "/api/v1/auth/login", json={"email": "test@example.com", "password": TEST_PASSWORD}
        )

        assert response.status_code == 403
        assert response.json()["details"]["requiresVerification"] is True
        assert email_service.sent


class TestTokens:
    @pytest.mark.asyncio
    async def test_refresh(self, client, test_user):
        response = await client.post(
            "/api/v1/auth/refresh-token", json={"refreshToken": create_refresh_token(test_user.id)}
        )

        assert response.status_code == 200
        assert set(response.json()["data"]) == {"token", "refreshToken"}

    @pytest.mark.asyncio
    async def test_refresh_rejects_access_token(self, client, auth_headers):
        access = auth_headers["Authorization"].split()[1]

        response = await client.post("/api/v1/auth/refresh-token", json={"refreshToken": access})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_protected_route_without_token(self, client):
        response = await client.get("/api/v1/chat/history")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_garbage_token(self, client):
        response = await client.get(
            "/api/v1/chat/history", headers={"Authorization": "Bearer not.a.jwt"}
        )

        assert response.status_code == 401
        assert response.json()["error_code"] == "INVALID_TOKEN"

    @pytest.mark.asyncio
    async def test_me(self, client, authenticated_client):
        response = await authenticated_client.get("/api/v1/auth/me")

        assert response.json()["data"]["authenticated"] is True

    @pytest.mark.asyncio
    async def test_me_anonymous(self, client):
        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 200
        assert response.json()["data"] == {"authenticated": False}

    @pytest.mark.asyncio
    async def test_logout(self, authenticated_client):
        response = await authenticated_client.post("/api/v1/auth/logout")

        assert response.status_code == 200


class TestPasswordReset:
    @pytest.mark.asyncio
    async def test_full_reset_flow(self, client, test_user, email_service):
        forgot = await client.post("/api/v1/auth/forgot-password", json={"email": "test@example.com"})
        assert forgot.status_code == 200
        token = email_service.last_token("test@example.com")

        check = await client.get(f"/api/v1/auth/verify-reset-token/{token}")
        assert check.json()["data"] == {"status": "valid"}

        reset = await client.post(f"/api/v1/auth/reset-password/{token}", json={"password": "Brandnew123"})
        assert reset.status_code == 200

        reused = await client.get(f"/api/v1/auth/verify-reset-token/{token}")
        assert reused.status_code == 400
        assert reused.json()["details"] == {"status": "used"}

        login = await client.post(
            "/api/v1/auth/login", json={"email": "test@example.com", "password": "Brandnew123"}
        )
        assert login.status_code == 200

    @pytest.mark.asyncio
    async def test_unknown_email_same_answer(self, client, email_service):
        response = await client.post("/api/v1/auth/forgot-password", json={"email": "ghost@example.com"})

        assert response.status_code == 200
        assert email_service.sent == []

    @pytest.mark.asyncio
    async def test_change_password(self, authenticated_client):
        wrong = await authenticated_client.post(
            "/api/v1/auth/change-password",
            json={"currentPassword": "Nope12345", "newPassword": "Another123"},
        )
        assert wrong.status_code == 401

        ok = await authenticated_client.post(
            "/api/v1/auth/change-password",
            json={"currentPassword": TEST_PASSWORD, "newPassword": "Another123"},
        )
        assert ok.status_code == 200

    @pytest.mark.asyncio
    async def test_check_email(self, client, test_user):
        response = await client.post("/api/v1/auth/check-email", json={"email": "test@example.com"})

        assert response.json()["data"] == {"exists": True}


class TestGoogle:
    @pytest.mark.asyncio
    async def test_not_configured(self, client):
        response = await client.get("/api/v1/auth/google")

        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_callback_without_state_redirects_to_login(self, client):
        response = await client.get("/api/v1/auth/google/callback?code=abc&state=forged")

        assert response.status_code == 302
        assert response.headers["location"].endswith("/login?error=oauth_failed")
