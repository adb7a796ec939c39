"""
API tests for the chat endpoints.
"""

from datetime import datetime, timedelta

import pytest

from app.core.security import create_access_token
from conftest import add_messages, persist
from factories import ChatFactory


async def messages_of(client, chat_id):
    response = await client.get(f"/api/v1/chat/chat/{chat_id}")
    assert response.status_code == 200
    return response.json()["data"]["chat"]["messages"]


class TestSendMessage:
    @pytest.mark.asyncio
    async def test_send_creates_chat(self, authenticated_client, fake_provider):
        response = await authenticated_client.post(
            "/api/v1/chat/message", json={"message": "Hello there"}
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["chatId"]
        assert data["userMessage"]["content"] == "Hello there"
        assert data["message"]["role"] == "assistant"
        assert data["message"]["content"] == "Echo: Hello there"
        assert data["message"]["metadata"]["provider"] == "gemini"

    @pytest.mark.asyncio
    async def test_continue_chat(self, authenticated_client, test_chat):
        response = await authenticated_client.post(
            "/api/v1/chat/message",
            json={"message": "What about food?", "chatId": str(test_chat.id)},
        )

        assert response.status_code == 201
        assert response.json()["data"]["chatId"] == str(test_chat.id)
        assert len(await messages_of(authenticated_client, test_chat.id)) == 4

    @pytest.mark.asyncio
    async def test_blank_message_rejected(self, authenticated_client):
        response = await authenticated_client.post("/api/v1/chat/message", json={"message": "   "})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_message_too_long(self, authenticated_client):
        response = await authenticated_client.post("/api/v1/chat/message", json={"message": "x" * 4001})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_model(self, authenticated_client):
        response = await authenticated_client.post(
            "/api/v1/chat/message", json={"message": "Hi", "model": "gpt-4"}
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_MODEL"

    @pytest.mark.asyncio
    async def test_ai_failure_is_server_error(self, authenticated_client, fake_provider):
        fake_provider.fail = True

        response = await authenticated_client.post("/api/v1/chat/message", json={"message": "Hi"})

        assert response.status_code == 500
        assert response.json()["message"] == "Failed to generate AI response"

    @pytest.mark.asyncio
    async def test_other_users_chat_is_not_found(self, client, test_db, test_user_2, test_chat):
        response = await client.post(
            "/api/v1/chat/message",
            json={"message": "Sneaky", "chatId": str(test_chat.id)},
            headers={"Authorization": f"Bearer {create_access_token(test_user_2.id)}"},
        )

        assert response.status_code == 404


class TestEditMessage:
    @pytest.mark.asyncio
    async def test_edit_truncates_later_messages(self, authenticated_client, test_db, test_chat):
        await add_messages(test_db, test_chat, [("user", "Where to stay?"), ("assistant", "Wadi Musa.")])
        before = await messages_of(authenticated_client, test_chat.id)
        first_id = before[0]["id"]

        response = await authenticated_client.patch(
            f"/api/v1/chat/message/{first_id}/edit", json={"content": "Plan a trip to Aqaba"}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["editedMessage"]["content"] == "Plan a trip to Aqaba"
        assert data["editedMessage"]["isEdited"] is True
        assert data["newMessage"]["content"] == "Echo: Plan a trip to Aqaba"

        after = await messages_of(authenticated_client, test_chat.id)
        assert [m["id"] for m in after] == [first_id, data["newMessage"]["id"]]

        chat = (await authenticated_client.get(f"/api/v1/chat/chat/{test_chat.id}")).json()["data"]["chat"]
        assert chat["messageCount"] == 2

    @pytest.mark.asyncio
    async def test_edit_unknown_message(self, authenticated_client):
        response = await authenticated_client.patch(
            "/api/v1/chat/message/00000000-0000-0000-0000-000000000000/edit", json={"content": "x"}
        )

        assert response.status_code == 404


class TestRegenerateAndFeedback:
    @pytest.mark.asyncio
    async def test_regenerate(self, authenticated_client, test_chat):
        assistant_id = (await messages_of(authenticated_client, test_chat.id))[1]["id"]

        response = await authenticated_client.post(f"/api/v1/chat/message/{assistant_id}/regenerate")

        assert response.status_code == 200
        assert response.json()["data"]["message"]["content"] == "Echo: Plan a trip to Petra"

    @pytest.mark.asyncio
    async def test_feedback_toggle(self, authenticated_client, test_chat):
        assistant_id = (await messages_of(authenticated_client, test_chat.id))[1]["id"]
        url = f"/api/v1/chat/message/{assistant_id}/feedback"

        first = await authenticated_client.post(url, json={"feedback": "like"})
        second = await authenticated_client.post(url, json={"feedback": "like"})

        assert first.json()["data"]["feedback"] == "like"
        assert second.json()["data"]["feedback"] is None

    @pytest.mark.asyncio
    async def test_invalid_feedback_value(self, authenticated_client, test_chat):
        assistant_id = (await messages_of(authenticated_client, test_chat.id))[1]["id"]

        response = await authenticated_client.post(
            f"/api/v1/chat/message/{assistant_id}/feedback", json={"feedback": "love"}
        )

        assert response.status_code == 400


class TestChatHistory:
    """Test history listing."""

    @pytest.mark.asyncio
    async def test_archived_only_pinned_first(self, authenticated_client, test_db, test_user, test_chat):
        now = datetime(2025, 6, 1, 12, 0)
        pinned_old = ChatFactory.build(
            user_id=test_user.id, title="Pinned", is_archived=True, is_pinned=True,
            last_message_at=now - timedelta(days=30),
        )
        newest = ChatFactory.build(
            user_id=test_user.id, title="Newest", is_archived=True, last_message_at=now
        )
        older = ChatFactory.build(
            user_id=test_user.id, title="Older", is_archived=True, last_message_at=now - timedelta(days=1)
        )
        await persist(test_db, older, pinned_old, newest)

        response = await authenticated_client.get("/api/v1/chat/history?archived=true")

        data = response.json()["data"]
        assert [c["title"] for c in data["chats"]] == ["Pinned", "Newest", "Older"]
        assert all(c["isArchived"] for c in data["chats"])
        assert data["total"] == 3

    @pytest.mark.asyncio
    async def test_active_history_has_last_message(self, authenticated_client, test_chat):
        response = await authenticated_client.get("/api/v1/chat/history")

        data = response.json()["data"]
        assert data["total"] == 1
        assert data["totalPages"] == 1
        assert data["chats"][0]["lastMessage"]["content"] == "Start at the Siq at sunrise."

    @pytest.mark.asyncio
    async def test_pagination(self, authenticated_client, test_db, test_user):
        await persist(test_db, *[ChatFactory.build(user_id=test_user.id) for _ in range(5)])

        response = await authenticated_client.get("/api/v1/chat/history?page=2&limit=2")

        data = response.json()["data"]
        assert len(data["chats"]) == 2
        assert data["page"] == 2
        assert data["totalPages"] == 3


class TestChatManagement:
    @pytest.mark.asyncio
    async def test_create_chat(self, authenticated_client):
        response = await authenticated_client.post("/api/v1/chat/chat", json={"title": "Study plan"})

        assert response.status_code == 200
        chat = response.json()["data"]["chat"]
        assert chat["title"] == "Study plan"
        assert chat["messages"] == []

    @pytest.mark.asyncio
    async def test_update_archive_rename_delete(self, authenticated_client, test_chat):
        base = f"/api/v1/chat/chat/{test_chat.id}"

        updated = await authenticated_client.patch(base, json={"isPinned": True, "tags": ["travel"]})
        assert updated.json()["data"]["chat"]["isPinned"] is True

        archived = await authenticated_client.patch(f"{base}/archive")
        assert archived.json()["data"]["chat"]["isArchived"] is True

        renamed = await authenticated_client.patch(f"{base}/rename", json={"title": "Petra trip"})
        assert renamed.json()["data"]["chat"]["title"] == "Petra trip"

        deleted = await authenticated_client.delete(base)
        assert deleted.status_code == 200
        assert (await authenticated_client.get(base)).status_code == 404

    @pytest.mark.asyncio
    async def test_markdown_export_matches_message_count(self, authenticated_client, test_db, test_chat):
        await add_messages(test_db, test_chat, [("user", "Best time to go?"), ("assistant", "Spring.")])

        response = await authenticated_client.get(f"/api/v1/chat/chat/{test_chat.id}/export?format=md")

        assert response.status_code == 200
        assert response.headers["content-disposition"] == f'attachment; filename="chat-{test_chat.id}.md"'
        headings = [line for line in response.text.splitlines() if line.startswith("### ")]
        assert len(headings) == test_chat.message_count == 4

    @pytest.mark.asyncio
    async def test_export_json(self, authenticated_client, test_chat):
        response = await authenticated_client.get(f"/api/v1/chat/chat/{test_chat.id}/export")

        assert response.headers["content-type"].startswith("application/json")
        assert response.json()["title"] == "Trip planning"

    @pytest.mark.asyncio
    async def test_export_bad_format(self, authenticated_client, test_chat):
        response = await authenticated_client.get(f"/api/v1/chat/chat/{test_chat.id}/export?format=pdf")

        assert response.status_code == 400


class TestModelsAndHealth:
    @pytest.mark.asyncio
    async def test_models(self, authenticated_client):
        response = await authenticated_client.get("/api/v1/chat/models")

        ids = [m["id"] for m in response.json()["data"]["models"]]
        assert ids == ["gemini-2.5-flash", "gemini-2.5-pro"]

    @pytest.mark.asyncio
    async def test_health(self, authenticated_client):
        response = await authenticated_client.get("/api/v1/chat/health")

        assert response.json()["data"]["services"] == {"gemini": True, "huggingface": True}


class TestRequestMetadata:
    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "abc-123"})

        assert response.headers["X-Request-ID"] == "abc-123"
        assert response.json()["status"] == "OK"

    @pytest.mark.asyncio
    async def test_api_status(self, client):
        response = await client.get("/api/status")

        assert response.status_code == 200
        assert response.json()["database"] == "connected"

    @pytest.mark.asyncio
    async def test_error_envelope(self, authenticated_client):
        response = await authenticated_client.get(
            "/api/v1/chat/chat/00000000-0000-0000-0000-000000000000", headers={"X-Request-ID": "req-1"}
        )

        body = response.json()
        assert response.status_code == 404
        assert body["success"] is False
        assert body["path"] == "/api/v1/chat/chat/00000000-0000-0000-0000-000000000000"
        assert body["method"] == "GET"
        assert body["request_id"] == "req-1"
        assert body["timestamp"]
