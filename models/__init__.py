"""
Models package initialization.
"""

from .base import Base, BaseModel, utcnow
from .chat import Chat
from .message import Message, MessageFeedback, MessageRole
from .user import AuthProvider, Language, Theme, User, UserRole
from .user_summary import UserSummary

__all__ = [
    "Base",
    "BaseModel",
    "utcnow",
    "User",
    "UserRole",
    "AuthProvider",
    "Language",
    "Theme",
    "Chat",
    "Message",
    "MessageRole",
    "MessageFeedback",
    "UserSummary",
]
