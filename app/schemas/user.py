"""User-related Pydantic schemas for request/response validation."""

from datetime import datetime
from typing import Any, Literal

from pydantic import EmailStr, Field, field_validator

from .base import BaseModelSchema, CamelSchema


class UserResponse(BaseModelSchema):
    """Public view of a user; secrets and provider ids are never included."""

    username: str
    email: str
    provider: str
    avatar: str | None = None
    language: str
    theme: str
    role: str
    is_active: bool
    email_verified: bool
    preferences: dict[str, Any] = Field(default_factory=dict)
    last_login: datetime | None = None


class UpdateProfileRequest(CamelSchema):
    """Schema for updating user information."""

    username: str | None = Field(None, description="Username to update")
    email: EmailStr | None = Field(None, description="Email to update")
    language: Literal["en", "ar"] | None = None
    theme: Literal["light", "dark", "auto"] | None = None

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str | None) -> str | None:
        if v is None:
            return v
        from .auth import validate_username

        return validate_username(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        return v.strip().lower() if v else v


class PreferencesUpdate(CamelSchema):
    notifications: bool | None = None
    email_notifications: bool | None = None
    sound_enabled: bool | None = None
    auto_save: bool | None = None


class DeleteAccountRequest(CamelSchema):
    password: str | None = None


class ExportDataRequest(CamelSchema):
    format: str = "json"


class AvatarResponse(CamelSchema):
    avatar: str | None


class UserSummaryResponse(CamelSchema):
    summary: str | None = None
    summary_ar: str | None = None
    interests: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)
    preferred_models: list[str] = Field(default_factory=list)
    conversation_style: str | None = None
    statistics: dict[str, Any] = Field(default_factory=dict)
    last_updated: datetime | None = None
    generated_by: str | None = None


class ProfileResponse(CamelSchema):
    user: UserResponse
    summary: UserSummaryResponse | None = None
