"""
API tests for the /api/v1/ws endpoint.

The socket and the REST calls share one TestClient so both run on the same
event loop; the server side uses its own engine with a single pooled
connection, so a socket that kept a session open would starve the REST calls.
"""

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool
from starlette.websockets import WebSocketDisconnect

from app.core.config import settings
from app.core.dependencies import get_ai_service, get_event_broker
from app.core.rate_limit import limiter
from app.core.security import create_access_token
from app.database import get_db, get_session_factory
from app.main import app
from conftest import TEST_DATABASE_URL, persist
from factories import ChatFactory


@pytest_asyncio.fixture
async def ws_client(test_db, test_user, test_chat, ai_service, event_broker):
    """TestClient whose handlers open sessions on a one-connection pool."""
    await test_db.commit()
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=1,
        max_overflow=0,
        pool_timeout=2,
    )
    sessions = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def session_per_request():
        async with sessions() as session:
            yield session

    app.dependency_overrides[get_db] = session_per_request
    app.dependency_overrides[get_session_factory] = lambda: sessions
    app.dependency_overrides[get_ai_service] = lambda: ai_service
    app.dependency_overrides[get_event_broker] = lambda: event_broker
    limiter.enabled = False

    with TestClient(app) as client:
        yield client
        client.portal.call(engine.dispose)

    app.dependency_overrides.clear()
    limiter.enabled = True


def socket_url(user) -> str:
    return f"/api/v1/ws?token={create_access_token(user.id)}"


def bearer(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def join(websocket, chat_id) -> dict:
    websocket.send_json({"type": "join_chat", "chatId": str(chat_id)})
    return websocket.receive_json()


class TestWebSocketAuth:
    @pytest.mark.asyncio
    async def test_invalid_token_rejected(self, ws_client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with ws_client.websocket_connect("/api/v1/ws?token=not-a-token"):
                pass

        assert exc_info.value.code == 1008

    @pytest.mark.asyncio
    async def test_missing_token_rejected(self, ws_client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with ws_client.websocket_connect("/api/v1/ws"):
                pass

        assert exc_info.value.code == 1008


class TestChatRooms:
    @pytest.mark.asyncio
    async def test_join_own_chat(self, ws_client, test_user, test_chat, event_broker):
        with ws_client.websocket_connect(socket_url(test_user)) as websocket:
            ack = join(websocket, test_chat.id)

            assert ack == {"event": "joined_chat", "data": {"chatId": str(test_chat.id)}}
            assert event_broker.room_size(f"chat:{test_chat.id}") == 1

    @pytest.mark.asyncio
    async def test_foreign_chat_not_joined(self, ws_client, test_user_2, test_chat, event_broker):
        with ws_client.websocket_connect(socket_url(test_user_2)) as websocket:
            reply = join(websocket, test_chat.id)

            assert reply["event"] == "error"
            assert event_broker.room_size(f"chat:{test_chat.id}") == 0

    @pytest.mark.asyncio
    async def test_typing_requires_joined_room(self, ws_client, test_user, test_chat):
        with ws_client.websocket_connect(socket_url(test_user)) as websocket:
            websocket.send_json({"type": "typing", "chatId": str(test_chat.id)})

            assert websocket.receive_json()["event"] == "error"

    @pytest.mark.asyncio
    async def test_typing_relayed_to_other_members(self, ws_client, test_user, test_chat):
        with ws_client.websocket_connect(socket_url(test_user)) as typist:
            with ws_client.websocket_connect(socket_url(test_user)) as watcher:
                join(watcher, test_chat.id)
                join(typist, test_chat.id)

                typist.send_json({"type": "typing", "chatId": str(test_chat.id)})
                event = watcher.receive_json()
                assert event["event"] == "user_typing"
                assert event["data"] == {"userId": str(test_user.id), "chatId": str(test_chat.id)}

                typist.send_json({"type": "stop_typing", "chatId": str(test_chat.id)})
                assert watcher.receive_json()["event"] == "user_stop_typing"

    @pytest.mark.asyncio
    async def test_leave_chat(self, ws_client, test_user, test_chat, event_broker):
        with ws_client.websocket_connect(socket_url(test_user)) as websocket:
            join(websocket, test_chat.id)
            websocket.send_json({"type": "leave_chat", "chatId": str(test_chat.id)})

            assert websocket.receive_json()["event"] == "left_chat"
            assert event_broker.room_size(f"chat:{test_chat.id}") == 0


class TestMessageEvents:
    @pytest.mark.asyncio
    async def test_new_message_pushed_to_joined_socket(self, ws_client, test_user, test_chat):
        with ws_client.websocket_connect(socket_url(test_user)) as websocket:
            join(websocket, test_chat.id)

            # REST call needs the single pooled connection while the socket is open
            response = ws_client.post(
                "/api/v1/chat/message",
                json={"message": "Any hidden spots?", "chatId": str(test_chat.id)},
                headers=bearer(test_user),
            )
            assert response.status_code == 201

            event = websocket.receive_json()
            assert event["event"] == "new_message"
            assert event["data"]["id"] == response.json()["data"]["message"]["id"]
            assert event["data"]["content"] == "Echo: Any hidden spots?"

    @pytest.mark.asyncio
    async def test_regenerate_pushes_message_updated(self, ws_client, test_user, test_chat):
        detail = ws_client.get(f"/api/v1/chat/chat/{test_chat.id}", headers=bearer(test_user))
        assistant_id = detail.json()["data"]["chat"]["messages"][1]["id"]

        with ws_client.websocket_connect(socket_url(test_user)) as websocket:
            join(websocket, test_chat.id)

            response = ws_client.post(
                f"/api/v1/chat/message/{assistant_id}/regenerate", headers=bearer(test_user)
            )
            assert response.status_code == 200

            event = websocket.receive_json()
            assert event["event"] == "message_updated"
            assert event["data"]["id"] == assistant_id

    @pytest.mark.asyncio
    async def test_events_stay_in_their_room(self, ws_client, test_db, test_user, test_chat):
        other_chat = await persist(test_db, ChatFactory.build(user_id=test_user.id, title="Recipes"))
        await test_db.commit()

        with ws_client.websocket_connect(socket_url(test_user)) as websocket:
            join(websocket, other_chat.id)

            response = ws_client.post(
                "/api/v1/chat/message",
                json={"message": "Hello", "chatId": str(test_chat.id)},
                headers=bearer(test_user),
            )
            assert response.status_code == 201

            # the next frame is the leave ack, not the other chat's new_message
            websocket.send_json({"type": "leave_chat", "chatId": str(other_chat.id)})
            assert websocket.receive_json()["event"] == "left_chat"


class TestHeartbeat:
    @pytest.mark.asyncio
    async def test_ping_sent_on_interval(self, ws_client, test_user, monkeypatch):
        monkeypatch.setattr(settings, "websocket_heartbeat_interval", 0.1)

        with ws_client.websocket_connect(socket_url(test_user)) as websocket:
            event = websocket.receive_json()

        assert event["event"] == "ping"
        assert event["data"]["timestamp"]
