"""
API tests for the named rate limiters.
"""

import pytest
from sqlalchemy import func, select

from app.core.config import settings
from app.core.rate_limit import limiter
from models import Message


@pytest.fixture
def limits_on(client):
    limiter.reset()
    limiter.enabled = True
    yield limiter
    limiter.enabled = False
    limiter.reset()


async def message_count(db) -> int:
    return (await db.execute(select(func.count(Message.id)))).scalar()


class TestChatLimit:
    @pytest.mark.asyncio
    async def test_exceeding_chat_limit(self, authenticated_client, test_db, limits_on, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_chat", "2/minute")

        for text in ("one", "two"):
            response = await authenticated_client.post("/api/v1/chat/message", json={"message": text})
            assert response.status_code == 201
        stored = await message_count(test_db)

        blocked = await authenticated_client.post("/api/v1/chat/message", json={"message": "three"})

        assert blocked.status_code == 429
        body = blocked.json()
        assert body["error_code"] == "RATE_LIMIT_EXCEEDED"
        assert body["message"] == "You are sending messages too quickly. Please slow down."
        assert blocked.headers["X-RateLimit-Limit"] == "2"
        assert blocked.headers["X-RateLimit-Remaining"] == "0"
        assert int(blocked.headers["Retry-After"]) > 0
        assert await message_count(test_db) == stored == 4

    @pytest.mark.asyncio
    async def test_limit_message_localized(self, authenticated_client, limits_on, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_chat", "1/minute")
        await authenticated_client.post("/api/v1/chat/message", json={"message": "one"})

        blocked = await authenticated_client.post("/api/v1/chat/message?lng=ar", json={"message": "two"})

        assert blocked.status_code == 429
        assert blocked.json()["message"] == "أنت ترسل الرسائل بسرعة كبيرة. يرجى الإبطاء."


class TestAuthLimit:
    @pytest.mark.asyncio
    async def test_login_limited_per_ip(self, client, test_user, limits_on, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_auth", "3/minute")

        statuses = []
        for _ in range(4):
            response = await client.post(
                "/api/v1/auth/login", json={"email": "test@example.com", "password": "WrongPass1"}
            )
            statuses.append(response.status_code)

        assert statuses == [401, 401, 401, 429]

    @pytest.mark.asyncio
    async def test_disabled_limiter_never_blocks(self, client, test_user, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_auth", "1/minute")

        for _ in range(3):
            response = await client.post(
                "/api/v1/auth/login", json={"email": "test@example.com", "password": "WrongPass1"}
            )
            assert response.status_code == 401
