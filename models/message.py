"""
Message model: one turn inside a chat.
"""

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel, JSONType


class MessageRole(str, enum.Enum):
    """Message role enumeration."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class MessageFeedback(str, enum.Enum):
    LIKE = "like"
    DISLIKE = "dislike"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Message(BaseModel):
    """
    Represents a chat message.

    ``sequence`` is the position of the message inside its chat. It only ever
    grows, so "every message after X" is ``sequence > X.sequence`` regardless
    of clock skew between writers.
    """

    __tablename__ = "messages"
    __table_args__ = (UniqueConstraint("chat_id", "sequence", name="uq_messages_chat_sequence"),)

    chat_id = Column(UUID(), ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    sequence = Column(Integer, nullable=False)
    role = Column(
        Enum(MessageRole, name="message_role", values_callable=_enum_values),
        nullable=False,
    )
    content = Column(Text, nullable=False)
    model = Column(String(100), nullable=True)
    tokens = Column(Integer, default=0, nullable=False)

    is_edited = Column(Boolean, default=False, nullable=False)
    edited_at = Column(DateTime, nullable=True)
    parent_message_id = Column(
        UUID(), ForeignKey("messages.id", ondelete="SET NULL"), nullable=True
    )
    feedback = Column(
        Enum(MessageFeedback, name="message_feedback", values_callable=_enum_values),
        nullable=True,
    )
    metadata_ = Column("metadata", JSONType, default=dict, nullable=False)
    attachments = Column(JSONType, default=list, nullable=False)

    # Relationships
    chat = relationship("Chat", back_populates="messages")

    @property
    def role_value(self) -> str:
        return self.role.value if isinstance(self.role, MessageRole) else self.role
