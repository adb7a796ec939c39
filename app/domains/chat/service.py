"""Chat service layer: conversations, messages and the AI round trip."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import and_, delete, desc, func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.config import settings
from app.core.events import MESSAGE_UPDATED, NEW_MESSAGE, ChatEventBroker, chat_room
from app.domains.ai.service import AIService
from app.exceptions.chat import ChatNotFoundError, InvalidModelError, MessageNotFoundError
from app.schemas.ai import AIReply, GenerationSettings
from app.schemas.chat import (
    ChatDetailResponse,
    CreateChatRequest,
    MessageResponse,
    SendMessageRequest,
    UpdateChatRequest,
)
from app.services.export_service import ExportDocument, export_chat
from app.shared.pagination import PaginationParams, paginate
from models import Chat, Message, MessageFeedback, MessageRole, User, utcnow
from models.chat import DEFAULT_CHAT_TITLE

logger = logging.getLogger(__name__)

TITLE_PREVIEW_LENGTH = 50
CREATE_CHAT_MESSAGE_LIMIT = 50


def title_from_message(message: str) -> str:
    if len(message) > TITLE_PREVIEW_LENGTH:
        return message[:TITLE_PREVIEW_LENGTH] + "..."
    return message


class ChatService:
    """Service class for chat business logic.

    Messages are ordered by their per-chat ``sequence``; every "before" or
    "after" comparison in this class uses it rather than timestamps.
    """

    def __init__(
        self,
        db: AsyncSession,
        ai_service: AIService | None = None,
        broker: ChatEventBroker | None = None,
    ):
        self.db = db
        self.ai_service = ai_service
        self.broker = broker

    # ----- lookups -----

    async def get_owned_chat(self, chat_id: UUID, user_id: UUID) -> Chat:
        stmt = select(Chat).where(
            Chat.id == chat_id, Chat.user_id == user_id, Chat.deleted_at.is_(None)
        )
        chat = (await self.db.execute(stmt)).scalar_one_or_none()
        if not chat:
            raise ChatNotFoundError(chat_id)
        return chat

    async def get_owned_message(
        self,
        message_id: UUID,
        user_id: UUID,
        role: MessageRole | None = None,
        message_key: str = "chat.message_not_found",
    ) -> tuple[Message, Chat]:
        """Message plus its chat, provided the chat is live and owned by ``user_id``."""
        stmt = (
            select(Message, Chat)
            .join(Chat, Message.chat_id == Chat.id)
            .where(
                Message.id == message_id,
                Chat.user_id == user_id,
                Chat.deleted_at.is_(None),
            )
        )
        if role is not None:
            stmt = stmt.where(Message.role == role)
        row = (await self.db.execute(stmt)).first()
        if not row:
            raise MessageNotFoundError(message_id, message_key=message_key)
        return row[0], row[1]

    async def get_messages(self, chat_id: UUID, limit: int | None = None) -> list[Message]:
        stmt = select(Message).where(Message.chat_id == chat_id).order_by(Message.sequence)
        if limit:
            stmt = stmt.limit(limit)
        return list((await self.db.execute(stmt)).scalars().all())

    async def get_history(self, chat_id: UUID, before_sequence: int) -> list[dict[str, str]]:
        """The most recent ``ai_history_limit`` turns strictly before ``before_sequence``."""
        stmt = (
            select(Message)
            .where(Message.chat_id == chat_id, Message.sequence < before_sequence)
            .order_by(desc(Message.sequence))
            .limit(settings.ai_history_limit)
        )
        rows = list((await self.db.execute(stmt)).scalars().all())
        return [{"role": m.role_value, "content": m.content} for m in reversed(rows)]

    # ----- helpers -----

    def _validate_model(self, model: str | None) -> str:
        model = model or settings.default_model
        if self.ai_service is not None and not self.ai_service.is_known_model(model):
            raise InvalidModelError(model)
        return model

    async def _append(
        self,
        chat: Chat,
        role: MessageRole,
        content: str,
        user_id: UUID | None = None,
        reply: AIReply | None = None,
    ) -> Message:
        """Add the next turn to ``chat``.

        Position and counters are bumped by one UPDATE on the chat row, whose
        lock is held until commit, so concurrent requests on one chat never
        share a sequence or overwrite each other's counts.
        """
        tokens = reply.tokens if reply is not None else 0
        await self.db.execute(
            update(Chat)
            .where(Chat.id == chat.id)
            .values(
                last_sequence=Chat.last_sequence + 1,
                message_count=Chat.message_count + 1,
                total_tokens=Chat.total_tokens + tokens,
                last_message_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        sequence = (
            await self.db.execute(select(Chat.last_sequence).where(Chat.id == chat.id))
        ).scalar_one()

        message = Message(
            chat_id=chat.id,
            user_id=user_id,
            sequence=sequence,
            role=role,
            content=content,
        )
        if reply is not None:
            message.model = reply.model
            message.tokens = reply.tokens
            message.metadata_ = {"provider": reply.provider, **reply.metadata}
        self.db.add(message)
        return message

    async def _commit(self, *instances) -> None:
        try:
            await self.db.commit()
            for instance in instances:
                await self.db.refresh(instance)
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def _generate(self, chat: Chat, content: str, history: list[dict[str, str]], model: str) -> AIReply:
        return await self.ai_service.generate_response(
            message=content,
            model=model,
            history=history,
            language=chat.language,
            gen_settings=GenerationSettings.from_chat_settings(chat.settings),
        )

    def _publish(self, chat_id: UUID, event: str, message: Message) -> None:
        if self.broker is None:
            return
        payload = MessageResponse.model_validate(message).to_response()
        self.broker.publish(chat_room(chat_id), event, payload)

    async def _recount(self, chat: Chat) -> None:
        """Reset the chat counters from its remaining message rows."""
        remaining = select(func.count(Message.id)).where(Message.chat_id == chat.id)
        tokens = select(func.coalesce(func.sum(Message.tokens), 0)).where(Message.chat_id == chat.id)
        await self.db.execute(
            update(Chat)
            .where(Chat.id == chat.id)
            .values(message_count=remaining.scalar_subquery(), total_tokens=tokens.scalar_subquery())
            .execution_options(synchronize_session=False)
        )

    # ----- messages -----

    async def send_message(
        self, user: User, request: SendMessageRequest
    ) -> tuple[Chat, Message, Message]:
        """Store the user turn, ask the model, store the reply.

        The user message is committed before the provider call, so an AI
        failure leaves it in place and surfaces as ``AIServiceError``.
        """
        model = self._validate_model(request.model)

        if request.chat_id:
            chat = await self.get_owned_chat(request.chat_id, user.id)
        else:
            chat = Chat(
                user_id=user.id,
                title=title_from_message(request.message),
                language=user.language_code,
                model=model,
            )
            self.db.add(chat)
            await self.db.flush()

        user_message = await self._append(chat, MessageRole.USER, request.message, user_id=user.id)
        await self._commit(chat, user_message)

        history = await self.get_history(chat.id, user_message.sequence)
        reply = await self._generate(chat, request.message, history, model)

        assistant_message = await self._append(chat, MessageRole.ASSISTANT, reply.content, reply=reply)
        await self._commit(chat, assistant_message)

        self._publish(chat.id, NEW_MESSAGE, assistant_message)
        return chat, user_message, assistant_message

    async def edit_message(
        self, user: User, message_id: UUID, content: str
    ) -> tuple[Message, Message]:
        """Rewrite a user turn, drop everything after it and answer it again.

        The edit and truncation commit together; the follow-up generation
        runs afterwards, so a provider failure keeps the edit.
        """
        message, chat = await self.get_owned_message(message_id, user.id, role=MessageRole.USER)

        removed = await self.db.execute(
            delete(Message)
            .where(Message.chat_id == chat.id, Message.sequence > message.sequence)
            .execution_options(synchronize_session=False)
        )
        message.content = content
        message.is_edited = True
        message.edited_at = utcnow()
        await self.db.flush()
        await self._recount(chat)
        await self._commit(chat, message)
        logger.info(f"✂️ Edited message {message.id}, removed {removed.rowcount} later messages")

        history = await self.get_history(chat.id, message.sequence)
        reply = await self._generate(chat, content, history, chat.model)

        assistant_message = await self._append(chat, MessageRole.ASSISTANT, reply.content, reply=reply)
        await self._commit(chat, assistant_message)

        self._publish(chat.id, NEW_MESSAGE, assistant_message)
        return message, assistant_message

    async def regenerate_message(self, user: User, message_id: UUID) -> Message:
        message, chat = await self.get_owned_message(
            message_id, user.id, role=MessageRole.ASSISTANT
        )

        stmt = (
            select(Message)
            .where(
                Message.chat_id == chat.id,
                Message.role == MessageRole.USER,
                Message.sequence < message.sequence,
            )
            .order_by(desc(Message.sequence))
            .limit(1)
        )
        prompt = (await self.db.execute(stmt)).scalar_one_or_none()
        if not prompt:
            raise MessageNotFoundError(message_id, message_key="chat.no_previous_user_message")

        history = await self.get_history(chat.id, prompt.sequence)
        reply = await self._generate(chat, prompt.content, history, message.model or chat.model)

        await self.db.execute(
            update(Chat)
            .where(Chat.id == chat.id)
            .values(total_tokens=Chat.total_tokens + (reply.tokens - (message.tokens or 0)))
            .execution_options(synchronize_session=False)
        )
        message.content = reply.content
        message.tokens = reply.tokens
        message.model = reply.model
        message.metadata_ = {"provider": reply.provider, **reply.metadata}
        message.is_edited = True
        message.edited_at = utcnow()
        await self._commit(chat, message)

        self._publish(chat.id, MESSAGE_UPDATED, message)
        return message

    async def set_feedback(self, user: User, message_id: UUID, feedback: str) -> Message:
        """Like/dislike an assistant reply; sending the current value again clears it."""
        message, _chat = await self.get_owned_message(
            message_id,
            user.id,
            role=MessageRole.ASSISTANT,
            message_key="chat.feedback_assistant_only",
        )
        requested = MessageFeedback(feedback)
        message.feedback = None if message.feedback == requested else requested
        await self._commit(message)
        return message

    # ----- chats -----

    async def create_or_get_chat(
        self, user: User, data: CreateChatRequest
    ) -> tuple[Chat, list[Message]]:
        if data.chat_id:
            chat = await self.get_owned_chat(data.chat_id, user.id)
            return chat, await self.get_messages(chat.id, limit=CREATE_CHAT_MESSAGE_LIMIT)

        chat = Chat(
            user_id=user.id,
            title=data.title or DEFAULT_CHAT_TITLE,
            language=data.language or user.language_code,
            model=self._validate_model(data.model),
        )
        self.db.add(chat)
        await self._commit(chat)
        return chat, []

    async def list_chats(
        self,
        user_id: UUID,
        pagination: PaginationParams,
        archived: bool = False,
        search: str | None = None,
    ) -> dict[str, Any]:
        """One page of live chats, pinned first then most recent, each with its latest message."""
        stmt = select(Chat).where(
            Chat.user_id == user_id,
            Chat.deleted_at.is_(None),
            Chat.is_archived == archived,
        )
        if search:
            search_term = f"%{search}%"
            stmt = stmt.where(or_(Chat.title.ilike(search_term), Chat.summary.ilike(search_term)))
        stmt = stmt.order_by(desc(Chat.is_pinned), desc(Chat.last_message_at))

        result = await paginate(self.db, stmt, pagination)
        result["last_messages"] = await self._latest_messages([c.id for c in result["items"]])
        return result

    async def _latest_messages(self, chat_ids: list[UUID]) -> dict[UUID, Message]:
        if not chat_ids:
            return {}
        latest = (
            select(Message.chat_id, func.max(Message.sequence).label("max_sequence"))
            .where(Message.chat_id.in_(chat_ids))
            .group_by(Message.chat_id)
            .subquery()
        )
        stmt = select(Message).join(
            latest,
            and_(Message.chat_id == latest.c.chat_id, Message.sequence == latest.c.max_sequence),
        )
        return {m.chat_id: m for m in (await self.db.execute(stmt)).scalars().all()}

    async def get_chat_detail(self, user_id: UUID, chat_id: UUID) -> tuple[Chat, list[Message]]:
        chat = await self.get_owned_chat(chat_id, user_id)
        return chat, await self.get_messages(chat.id)

    async def update_chat(self, user_id: UUID, chat_id: UUID, data: UpdateChatRequest) -> Chat:
        chat = await self.get_owned_chat(chat_id, user_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(chat, field, value)
        await self._commit(chat)
        return chat

    async def toggle_archive(self, user_id: UUID, chat_id: UUID) -> Chat:
        chat = await self.get_owned_chat(chat_id, user_id)
        chat.is_archived = not chat.is_archived
        await self._commit(chat)
        return chat

    async def rename_chat(self, user_id: UUID, chat_id: UUID, title: str) -> Chat:
        chat = await self.get_owned_chat(chat_id, user_id)
        chat.title = title
        await self._commit(chat)
        return chat

    async def delete_chat(self, user_id: UUID, chat_id: UUID) -> None:
        chat = await self.get_owned_chat(chat_id, user_id)
        chat.soft_delete()
        await self._commit()
        logger.info(f"🗑️ Chat {chat_id} soft deleted by {user_id}")

    async def export(self, user_id: UUID, chat_id: UUID, export_format: str) -> ExportDocument:
        chat, messages = await self.get_chat_detail(user_id, chat_id)
        chat_data = ChatDetailResponse.build(chat, messages).to_response()
        return export_chat(chat, messages, export_format, chat_data)

    # ----- maintenance -----

    async def reconcile_counters(self) -> int:
        """Recompute ``message_count``/``total_tokens`` of live chats that drifted.

        Returns:
            Number of chats corrected
        """
        totals = (
            select(
                Message.chat_id.label("chat_id"),
                func.count(Message.id).label("message_count"),
                func.coalesce(func.sum(Message.tokens), 0).label("total_tokens"),
            )
            .group_by(Message.chat_id)
            .subquery()
        )
        stmt = (
            select(
                Chat.id,
                func.coalesce(totals.c.message_count, 0),
                func.coalesce(totals.c.total_tokens, 0),
            )
            .outerjoin(totals, totals.c.chat_id == Chat.id)
            .where(
                Chat.deleted_at.is_(None),
                or_(
                    Chat.message_count != func.coalesce(totals.c.message_count, 0),
                    Chat.total_tokens != func.coalesce(totals.c.total_tokens, 0),
                ),
            )
        )
        drifted = (await self.db.execute(stmt)).all()
        for chat_id, count, tokens in drifted:
            await self.db.execute(
                update(Chat)
                .where(Chat.id == chat_id)
                .values(message_count=count, total_tokens=tokens)
            )
        await self._commit()
        if drifted:
            logger.warning(f"🔧 Reconciled counters on {len(drifted)} chats")
        return len(drifted)
