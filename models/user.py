"""
Provides the User model for the application's database schema.

A user owns chats and exactly one summary. Local accounts carry a bcrypt
password hash; Google accounts carry ``google_id`` and may have no password.
New local accounts start inactive and unverified until the email link is
followed.

Attributes
----------
username : sqlalchemy.Column
    Display name, unique among live (not soft deleted) users.
email : sqlalchemy.Column
    Login email, unique among live users.
login_attempts / lock_until : sqlalchemy.Column
    Failed-password counter and the lockout deadline it triggers.
preferences : sqlalchemy.Column
    JSON object of UI toggles (notifications, sounds, autosave).
"""

import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, Index, Integer, String, text
from sqlalchemy.orm import relationship

from .base import BaseModel, JSONType, SoftDeleteMixin, utcnow

DEFAULT_PREFERENCES = {
    "notifications": True,
    "emailNotifications": True,
    "soundEnabled": True,
    "autoSave": True,
}


class UserRole(str, enum.Enum):
    USER = "user"
    PREMIUM = "premium"
    ADMIN = "admin"


class AuthProvider(str, enum.Enum):
    LOCAL = "local"
    GOOGLE = "google"


class Language(str, enum.Enum):
    EN = "en"
    AR = "ar"


class Theme(str, enum.Enum):
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


_LIVE_ROWS = text("deleted_at IS NULL")


class User(SoftDeleteMixin, BaseModel):
    """
    Represents a user entity in the application.

    :ivar email: Email address of the user.
    :type email: str
    :ivar username: Public display name.
    :type username: str
    :ivar is_active: Set once the email address has been verified.
    :type is_active: bool
    """

    __tablename__ = "users"
    __table_args__ = (
        Index(
            "uq_users_email_live",
            "email",
            unique=True,
            postgresql_where=_LIVE_ROWS,
            sqlite_where=_LIVE_ROWS,
        ),
        Index(
            "uq_users_username_live",
            "username",
            unique=True,
            postgresql_where=_LIVE_ROWS,
            sqlite_where=_LIVE_ROWS,
        ),
        Index(
            "uq_users_google_id_live",
            "google_id",
            unique=True,
            postgresql_where=_LIVE_ROWS,
            sqlite_where=_LIVE_ROWS,
        ),
    )

    username = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False)
    hashed_password = Column(String(255), nullable=True)
    google_id = Column(String(255), nullable=True)
    provider = Column(
        Enum(AuthProvider, name="auth_provider", values_callable=_enum_values),
        default=AuthProvider.LOCAL,
        nullable=False,
    )
    avatar = Column(String(500), nullable=True)
    language = Column(
        Enum(Language, name="user_language", values_callable=_enum_values),
        default=Language.EN,
        nullable=False,
    )
    theme = Column(
        Enum(Theme, name="user_theme", values_callable=_enum_values),
        default=Theme.AUTO,
        nullable=False,
    )
    role = Column(
        Enum(UserRole, name="user_role", values_callable=_enum_values),
        default=UserRole.USER,
        nullable=False,
    )
    is_active = Column(Boolean, default=False, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)

    reset_password_token = Column(String(500), nullable=True)
    reset_password_expires = Column(DateTime, nullable=True)
    reset_password_used = Column(Boolean, default=False, nullable=False)

    last_login = Column(DateTime, nullable=True)
    login_attempts = Column(Integer, default=0, nullable=False)
    lock_until = Column(DateTime, nullable=True)

    preferences = Column(JSONType, default=lambda: dict(DEFAULT_PREFERENCES), nullable=False)
    metadata_ = Column("metadata", JSONType, default=dict, nullable=False)

    # Relationships
    chats = relationship("Chat", back_populates="user", cascade="all, delete-orphan")
    summary = relationship(
        "UserSummary", back_populates="user", cascade="all, delete-orphan", uselist=False
    )

    def is_locked(self) -> bool:
        return bool(self.lock_until and self.lock_until > utcnow())

    def is_oauth_user(self) -> bool:
        return self.provider == AuthProvider.GOOGLE

    @property
    def language_code(self) -> str:
        return self.language.value if isinstance(self.language, Language) else (self.language or "en")

    def __repr__(self) -> str:
        return f"<User {self.email}>"
