# app/domains/user/service.py
import logging
import secrets
from collections import Counter
from pathlib import Path
from typing import Any
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import desc, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import verify_password
from app.exceptions.base import AuthenticationError, ConflictError, ValidationError
from app.schemas.chat import ChatDetailResponse
from app.schemas.user import (
    PreferencesUpdate,
    ProfileResponse,
    UpdateProfileRequest,
    UserResponse,
    UserSummaryResponse,
)
from app.services.export_service import ExportDocument, export_user_data
from models import Chat, Message, MessageRole, User, UserSummary, utcnow

logger = logging.getLogger(__name__)

AVATAR_URL_PREFIX = "/uploads/avatars/"
AVATAR_EXTENSIONS = {"image/jpeg": ".jpg", "image/png": ".png", "image/gif": ".gif"}
WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

# camelCase JSON keys stored in User.preferences
PREFERENCE_KEYS = {
    "notifications": "notifications",
    "email_notifications": "emailNotifications",
    "sound_enabled": "soundEnabled",
    "auto_save": "autoSave",
}


def avatar_directory() -> Path:
    return Path(settings.upload_dir) / "avatars"


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commit(self, *instances) -> None:
        try:
            await self.db.commit()
            for instance in instances:
                await self.db.refresh(instance)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

    async def get_summary(self, user_id: UUID) -> UserSummary | None:
        result = await self.db.execute(select(UserSummary).where(UserSummary.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_profile(self, user: User) -> ProfileResponse:
        summary = await self.get_summary(user.id)
        return ProfileResponse(
            user=UserResponse.model_validate(user),
            summary=UserSummaryResponse.model_validate(summary) if summary else None,
        )

    async def get_localized_summary(self, user: User) -> dict[str, Any] | None:
        """The summary with ``content`` picked for the user's language."""
        summary = await self.get_summary(user.id)
        if summary is None:
            return None
        data = UserSummaryResponse.model_validate(summary).to_response()
        data["content"] = summary.content_for(user.language_code)
        return data

    async def _taken(self, column, value, user_id: UUID) -> bool:
        stmt = select(User.id).where(column == value, User.id != user_id, User.deleted_at.is_(None))
        return (await self.db.execute(stmt)).first() is not None

    async def update_profile(self, user: User, data: UpdateProfileRequest) -> User:
        """Update user information.

        Raises:
            ConflictError: The new username or email belongs to another live account
        """
        if data.username and data.username != user.username:
            if await self._taken(User.username, data.username, user.id):
                raise ConflictError("Username already taken", message_key="user.username_taken")
            user.username = data.username

        if data.email and data.email != user.email:
            if await self._taken(User.email, data.email, user.id):
                raise ConflictError("Email already in use", message_key="user.email_taken")
            user.email = data.email

        if data.language:
            user.language = data.language
        if data.theme:
            user.theme = data.theme

        await self._commit(user)
        return user

    async def update_preferences(self, user: User, data: PreferencesUpdate) -> dict[str, Any]:
        changes = {
            PREFERENCE_KEYS[name]: value
            for name, value in data.model_dump(exclude_none=True).items()
        }
        # Reassign so the JSON column is flagged dirty
        user.preferences = {**(user.preferences or {}), **changes}
        await self._commit(user)
        return user.preferences

    # ----- avatar -----

    def _remove_avatar_file(self, avatar: str | None) -> None:
        if not avatar or not avatar.startswith(AVATAR_URL_PREFIX):
            return
        path = avatar_directory() / avatar[len(AVATAR_URL_PREFIX) :]
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Error deleting avatar {path}: {e}")

    async def save_avatar(self, user: User, upload: UploadFile) -> str:
        """Store an uploaded JPEG/PNG/GIF and point the user at it.

        Returns:
            Public path under ``/uploads/avatars/``
        """
        extension = AVATAR_EXTENSIONS.get(upload.content_type or "")
        if extension is None or upload.content_type not in settings.allowed_avatar_types_list:
            raise ValidationError(
                "Invalid file type. Only JPEG, PNG and GIF are allowed.",
                message_key="user.avatar_invalid_type",
                details={"content_type": upload.content_type},
            )

        content = await upload.read(settings.max_avatar_size + 1)
        if len(content) > settings.max_avatar_size:
            raise ValidationError(
                "File too large",
                message_key="user.avatar_too_large",
                details={"max_size": settings.max_avatar_size},
            )

        directory = avatar_directory()
        directory.mkdir(parents=True, exist_ok=True)
        filename = f"avatar-{user.id}-{secrets.token_hex(8)}{extension}"
        (directory / filename).write_bytes(content)

        previous = user.avatar
        user.avatar = f"{AVATAR_URL_PREFIX}{filename}"
        await self._commit(user)
        self._remove_avatar_file(previous)

        logger.info(f"🖼️ Avatar updated for user {user.id}")
        return user.avatar

    async def remove_avatar(self, user: User) -> None:
        if not user.avatar:
            return
        previous = user.avatar
        user.avatar = None
        await self._commit(user)
        self._remove_avatar_file(previous)

    # ----- statistics -----

    async def get_statistics(self, user: User) -> dict[str, Any]:
        live_chats = (Chat.user_id == user.id, Chat.deleted_at.is_(None))

        totals = (
            await self.db.execute(
                select(
                    func.count(Chat.id),
                    func.coalesce(func.sum(Chat.message_count), 0),
                    func.coalesce(func.avg(Chat.message_count), 0),
                    func.coalesce(func.sum(Chat.total_tokens), 0),
                ).where(*live_chats)
            )
        ).one()

        favorite = (
            await self.db.execute(
                select(Message.model, func.count(Message.id).label("uses"))
                .join(Chat, Message.chat_id == Chat.id)
                .where(*live_chats, Message.role == MessageRole.ASSISTANT, Message.model.is_not(None))
                .group_by(Message.model)
                .order_by(desc("uses"))
                .limit(1)
            )
        ).first()

        timestamps = (
            await self.db.execute(
                select(Message.created_at).join(Chat, Message.chat_id == Chat.id).where(*live_chats)
            )
        ).scalars().all()
        # Sunday-first buckets; Python's weekday() is Monday=0
        by_day = Counter((ts.weekday() + 1) % 7 for ts in timestamps)

        average_length = (
            await self.db.execute(
                select(func.avg(func.length(Message.content)))
                .join(Chat, Message.chat_id == Chat.id)
                .where(*live_chats, Message.role == MessageRole.USER)
            )
        ).scalar()

        tag_lists = (await self.db.execute(select(Chat.tags).where(*live_chats))).scalars().all()
        tag_counts = Counter(tag for tags in tag_lists for tag in (tags or []))

        return {
            "chats": {
                "total": int(totals[0] or 0),
                "totalMessages": int(totals[1] or 0),
                "avgMessagesPerChat": round(float(totals[2] or 0), 2),
                "totalTokensUsed": int(totals[3] or 0),
            },
            "favoriteModel": favorite[0] if favorite else "N/A",
            "weekActivity": [
                {"day": WEEKDAYS[day], "count": by_day[day]} for day in sorted(by_day)
            ],
            "avgMessageLength": round(float(average_length or 0)),
            "topTags": [{"tag": tag, "count": count} for tag, count in tag_counts.most_common(10)],
            "memberSince": user.created_at.isoformat(),
            "lastActive": user.last_login.isoformat() if user.last_login else None,
        }

    # ----- account -----

    async def delete_account(self, user: User, password: str | None) -> None:
        """Soft delete the user and their chats; local accounts must confirm the password."""
        if user.hashed_password:
            if not password:
                raise ValidationError(
                    "Password required to delete account", message_key="user.password_required"
                )
            if not verify_password(password, user.hashed_password):
                raise AuthenticationError(
                    "Incorrect password",
                    message_key="user.wrong_password",
                    error_code="WRONG_PASSWORD",
                )

        now = utcnow()
        await self.db.execute(
            update(Chat)
            .where(Chat.user_id == user.id, Chat.deleted_at.is_(None))
            .values(deleted_at=now)
        )
        user.soft_delete()
        user.is_active = False
        await self._commit()
        logger.info(f"User account deleted: {user.email}")

    async def export_data(self, user: User, export_format: str) -> ExportDocument:
        chats = (
            await self.db.execute(
                select(Chat)
                .where(Chat.user_id == user.id, Chat.deleted_at.is_(None))
                .order_by(Chat.created_at)
            )
        ).scalars().all()

        chat_payloads = []
        for chat in chats:
            messages = (
                await self.db.execute(
                    select(Message).where(Message.chat_id == chat.id).order_by(Message.sequence)
                )
            ).scalars().all()
            chat_payloads.append(ChatDetailResponse.build(chat, messages).to_response())

        summary = await self.get_summary(user.id)
        profile_data = {
            "user": UserResponse.model_validate(user).to_response(),
            "summary": UserSummaryResponse.model_validate(summary).to_response() if summary else None,
            "chats": chat_payloads,
            "exportedAt": utcnow().isoformat(),
        }
        return export_user_data(user, export_format, profile_data, total_chats=len(chats))
