"""Chat schemas for request/response serialization."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import Field, field_validator

from .base import BaseModelSchema, CamelSchema

MAX_MESSAGE_LENGTH = 4000
MAX_TITLE_LENGTH = 255


def _clean_message(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Message is required")
    if len(value) > MAX_MESSAGE_LENGTH:
        raise ValueError("Message cannot exceed 4000 characters")
    return value


def _clean_title(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Title is required")
    if len(value) > MAX_TITLE_LENGTH:
        raise ValueError("Title cannot exceed 255 characters")
    return value


class SendMessageRequest(CamelSchema):
    """Schema for chat request."""

    message: str = Field(..., description="User message, 1-4000 characters")
    model: str | None = Field(None, description="Model id, defaults to the configured default")
    chat_id: UUID | None = Field(None, description="Existing chat ID, null for new")

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        return _clean_message(v)


class EditMessageRequest(CamelSchema):
    content: str

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        return _clean_message(v)


class FeedbackRequest(CamelSchema):
    feedback: Literal["like", "dislike"]


class CreateChatRequest(CamelSchema):
    chat_id: UUID | None = None
    title: str | None = None
    model: str | None = None
    language: Literal["en", "ar"] | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        return _clean_title(v) if v is not None else v


class UpdateChatRequest(CamelSchema):
    title: str | None = None
    is_archived: bool | None = None
    is_pinned: bool | None = None
    tags: list[str] | None = Field(None, max_length=20)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        return _clean_title(v) if v is not None else v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        cleaned = []
        for tag in v:
            tag = tag.strip()
            if tag and tag not in cleaned:
                cleaned.append(tag[:50])
        return cleaned


class RenameChatRequest(CamelSchema):
    title: str

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _clean_title(v)


class MessageResponse(BaseModelSchema):
    """Schema for chat message response."""

    chat_id: UUID
    user_id: UUID | None = None
    sequence: int
    role: str
    content: str
    model: str | None = None
    tokens: int = 0
    is_edited: bool = False
    edited_at: datetime | None = None
    parent_message_id: UUID | None = None
    feedback: str | None = None
    metadata: dict[str, Any] = Field(
        default_factory=dict, validation_alias="metadata_", serialization_alias="metadata"
    )
    attachments: list[Any] = Field(default_factory=list)


class ChatResponse(BaseModelSchema):
    """Schema for chat response."""

    user_id: UUID
    title: str
    summary: str | None = None
    model: str
    language: str
    message_count: int = 0
    total_tokens: int = 0
    is_archived: bool = False
    is_pinned: bool = False
    tags: list[str] = Field(default_factory=list)
    settings: dict[str, Any] = Field(default_factory=dict)
    last_message_at: datetime | None = None


class ChatPreviewResponse(ChatResponse):
    last_message: MessageResponse | None = None

    @classmethod
    def build(cls, chat, last_message=None) -> "ChatPreviewResponse":
        base = ChatResponse.model_validate(chat).model_dump()
        preview = MessageResponse.model_validate(last_message) if last_message else None
        return cls(**base, last_message=preview)


class ChatDetailResponse(ChatResponse):
    """Schema for detailed chat response with messages."""

    messages: list[MessageResponse] = Field(default_factory=list)

    @classmethod
    def build(cls, chat, messages) -> "ChatDetailResponse":
        # messages are passed in explicitly; the relationship is never lazy-loaded
        base = ChatResponse.model_validate(chat).model_dump()
        return cls(**base, messages=[MessageResponse.model_validate(m) for m in messages])


class ChatHistoryResponse(CamelSchema):
    chats: list[ChatPreviewResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class SendMessageResponse(CamelSchema):
    chat_id: UUID
    user_message: MessageResponse
    message: MessageResponse


class EditMessageResponse(CamelSchema):
    edited_message: MessageResponse
    new_message: MessageResponse
