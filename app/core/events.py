"""WebSocket rooms and fire-and-forget chat event pushes."""

import asyncio
import logging
from collections import defaultdict
from typing import Any

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from app.core.config import settings

logger = logging.getLogger(__name__)

NEW_MESSAGE = "new_message"
MESSAGE_UPDATED = "message_updated"
USER_TYPING = "user_typing"
USER_STOP_TYPING = "user_stop_typing"


def chat_room(chat_id: Any) -> str:
    return f"chat:{chat_id}"


def user_room(user_id: Any) -> str:
    return f"user:{user_id}"


class ConnectionLimitError(Exception):
    """Raised when ``websocket_max_connections`` sockets are already open."""


class ChatEventBroker:
    """Tracks which sockets joined which rooms.

    Delivery is best effort: a socket whose send fails is dropped from every
    room and the broadcast carries on.
    """

    def __init__(self, max_connections: int | None = None):
        self.max_connections = max_connections or settings.websocket_max_connections
        self._rooms: dict[str, set[WebSocket]] = defaultdict(set)
        self._memberships: dict[WebSocket, set[str]] = defaultdict(set)
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()

    @property
    def connection_count(self) -> int:
        return len(self._memberships)

    def room_size(self, room: str) -> int:
        return len(self._rooms.get(room, ()))

    def is_member(self, websocket: WebSocket, room: str) -> bool:
        return room in self._memberships.get(websocket, ())

    async def connect(self, websocket: WebSocket, user_id: Any) -> None:
        async with self._lock:
            if self.connection_count >= self.max_connections:
                raise ConnectionLimitError("Too many WebSocket connections")
            self._join(websocket, user_room(user_id))
        logger.info(f"🔌 WebSocket connected for user {user_id}")

    async def join(self, websocket: WebSocket, room: str) -> None:
        async with self._lock:
            self._join(websocket, room)

    async def leave(self, websocket: WebSocket, room: str) -> None:
        async with self._lock:
            self._leave(websocket, room)

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            for room in list(self._memberships.get(websocket, ())):
                self._leave(websocket, room)
            self._memberships.pop(websocket, None)

    async def broadcast(
        self,
        room: str,
        event: str,
        payload: Any,
        exclude: WebSocket | None = None,
    ) -> int:
        """Send ``{"event", "data"}`` to every socket in ``room``; returns deliveries."""
        message = {"event": event, "data": jsonable_encoder(payload)}
        delivered = 0
        for websocket in list(self._rooms.get(room, ())):
            if websocket is exclude:
                continue
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping WebSocket after failed send to {room}: {e}")
                await self.disconnect(websocket)
        return delivered

    def publish(self, room: str, event: str, payload: Any) -> None:
        """Schedule a broadcast to ``room`` and return without waiting for delivery."""
        if not self._rooms.get(room):
            return
        task = asyncio.create_task(self.broadcast(room, event, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every scheduled broadcast to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        await self.drain()
        async with self._lock:
            sockets = list(self._memberships)
            self._rooms.clear()
            self._memberships.clear()
        for websocket in sockets:
            try:
                await websocket.close()
            except RuntimeError:
                # already closed by the client
                pass

    def _join(self, websocket: WebSocket, room: str) -> None:
        self._rooms[room].add(websocket)
        self._memberships[websocket].add(room)

    def _leave(self, websocket: WebSocket, room: str) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(websocket)
            if not members:
                del self._rooms[room]
        self._memberships.get(websocket, set()).discard(room)
