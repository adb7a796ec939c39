"""WebSocket endpoint: chat rooms and typing indicators."""

import asyncio
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.dependencies import decode_bearer, get_event_broker, get_session_factory, load_live_user
from app.core.events import (
    USER_STOP_TYPING,
    USER_TYPING,
    ChatEventBroker,
    ConnectionLimitError,
    chat_room,
)
from app.domains.chat.service import ChatService
from app.exceptions.base import BaseAppException
from app.exceptions.chat import ChatNotFoundError
from models import User, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix=settings.api_prefix, tags=["realtime"])

PING = "ping"
JOINED_CHAT = "joined_chat"
LEFT_CHAT = "left_chat"


def _parse_chat_id(raw_chat_id) -> UUID | None:
    try:
        return UUID(str(raw_chat_id))
    except ValueError:
        return None


async def _authenticate(sessions: async_sessionmaker[AsyncSession], token: str | None) -> User | None:
    try:
        payload = decode_bearer(token or "")
    except BaseAppException:
        return None
    async with sessions() as db:
        user = await load_live_user(db, payload["sub"])
    if not user or not user.is_active:
        return None
    return user


async def _owns_chat(sessions: async_sessionmaker[AsyncSession], user_id: UUID, chat_id: UUID) -> bool:
    # One session per lookup; an idle socket must not pin a pooled connection
    async with sessions() as db:
        try:
            await ChatService(db).get_owned_chat(chat_id, user_id)
        except ChatNotFoundError:
            return False
    return True


async def _heartbeat(websocket: WebSocket, interval: float) -> None:
    try:
        while True:
            await asyncio.sleep(interval)
            await websocket.send_json({"event": PING, "data": {"timestamp": utcnow().isoformat()}})
    except (WebSocketDisconnect, RuntimeError):
        return


async def _send_error(websocket: WebSocket, message: str) -> None:
    await websocket.send_json({"event": "error", "data": {"message": message}})


@router.websocket("/ws")
async def chat_socket(
    websocket: WebSocket,
    token: str | None = Query(None),
    sessions: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    broker: ChatEventBroker = Depends(get_event_broker),
):
    """Authenticated with ``?token=<access token>``.

    Client messages are ``{"type": ..., "chatId": ...}`` with type
    ``join_chat``, ``leave_chat``, ``typing`` or ``stop_typing``. Joining
    checks chat ownership; the other types require a joined room. The
    server sends a ``ping`` event every ``websocket_heartbeat_interval``
    seconds.
    """
    user = await _authenticate(sessions, token)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    try:
        await broker.connect(websocket, user.id)
    except ConnectionLimitError:
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
        return

    heartbeat = asyncio.create_task(_heartbeat(websocket, settings.websocket_heartbeat_interval))
    try:
        while True:
            try:
                data = await websocket.receive_json()
            except ValueError:
                await _send_error(websocket, "Invalid JSON")
                continue
            if not isinstance(data, dict):
                await _send_error(websocket, "Invalid message")
                continue

            event_type = data.get("type")
            chat_id = _parse_chat_id(data.get("chatId"))
            if chat_id is None:
                await _send_error(websocket, "Unknown chat")
                continue
            room = chat_room(chat_id)

            if event_type == "join_chat":
                if not await _owns_chat(sessions, user.id, chat_id):
                    await _send_error(websocket, "Unknown chat")
                    continue
                await broker.join(websocket, room)
                await websocket.send_json({"event": JOINED_CHAT, "data": {"chatId": str(chat_id)}})
                logger.info(f"User {user.id} joined chat {chat_id}")
            elif not broker.is_member(websocket, room):
                await _send_error(websocket, "Join the chat first")
            elif event_type == "leave_chat":
                await broker.leave(websocket, room)
                await websocket.send_json({"event": LEFT_CHAT, "data": {"chatId": str(chat_id)}})
                logger.info(f"User {user.id} left chat {chat_id}")
            elif event_type in ("typing", "stop_typing"):
                event = USER_TYPING if event_type == "typing" else USER_STOP_TYPING
                await broker.broadcast(
                    room, event, {"userId": user.id, "chatId": chat_id}, exclude=websocket
                )
            else:
                await _send_error(websocket, "Unknown event type")
    except WebSocketDisconnect:
        logger.info(f"User {user.id} disconnected")
    finally:
        heartbeat.cancel()
        await broker.disconnect(websocket)
