"""
Chat model: one conversation thread owned by a user.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel, JSONType, SoftDeleteMixin, utcnow

DEFAULT_CHAT_TITLE = "New Chat"
DEFAULT_CHAT_MODEL = "gemini-2.5-flash"
DEFAULT_CHAT_SETTINGS = {
    "temperature": 0.7,
    "maxTokens": 2000,
    "topP": 1,
    "frequencyPenalty": 0,
    "presencePenalty": 0,
}


class Chat(SoftDeleteMixin, BaseModel):
    """
    Represents a chat conversation.

    ``message_count`` and ``total_tokens`` are maintained alongside message
    inserts and recomputed from the message rows whenever history is
    truncated. ``last_sequence`` is the highest ``Message.sequence`` handed
    out in this chat; the chat service increments it in SQL.
    """

    __tablename__ = "chats"
    __table_args__ = (
        Index("idx_chats_user_archived_last", "user_id", "is_archived", "last_message_at"),
    )

    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), default=DEFAULT_CHAT_TITLE, nullable=False)
    summary = Column(Text, nullable=True)
    model = Column(String(100), default=DEFAULT_CHAT_MODEL, nullable=False)
    language = Column(String(2), default="en", nullable=False)

    message_count = Column(Integer, default=0, nullable=False)
    total_tokens = Column(Integer, default=0, nullable=False)
    last_sequence = Column(Integer, default=0, nullable=False)

    is_archived = Column(Boolean, default=False, nullable=False)
    is_pinned = Column(Boolean, default=False, nullable=False)
    tags = Column(JSONType, default=list, nullable=False)
    metadata_ = Column("metadata", JSONType, default=dict, nullable=False)
    settings = Column(JSONType, default=lambda: dict(DEFAULT_CHAT_SETTINGS), nullable=False)
    last_message_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="chats")
    messages = relationship(
        "Message",
        back_populates="chat",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Message.sequence",
    )
