"""Authentication request/response schemas."""

import re
from typing import Literal

from pydantic import EmailStr, Field, field_validator

from .base import CamelSchema
from .user import UserResponse

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9 ]+$")
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def validate_username(value: str) -> str:
    value = value.strip()
    if not 3 <= len(value) <= 50:
        raise ValueError("Username must be between 3 and 50 characters")
    if not USERNAME_PATTERN.match(value):
        raise ValueError("Username must contain only letters, numbers, and spaces")
    if "  " in value:
        raise ValueError("Username cannot contain multiple consecutive spaces")
    return value


def validate_password_strength(value: str) -> str:
    if not 8 <= len(value) <= 100:
        raise ValueError("Password must be between 8 and 100 characters")
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(
            "Password must contain at least one uppercase, one lowercase, and one number"
        )
    return value


class SignupRequest(CamelSchema):
    username: str = Field(..., description="Display name, letters digits and single spaces")
    email: EmailStr
    password: str
    language: Literal["en", "ar"] = "en"

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str) -> str:
        return validate_username(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password_strength(v)


class LoginRequest(CamelSchema):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class EmailRequest(CamelSchema):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class RefreshTokenRequest(CamelSchema):
    refresh_token: str = Field(..., min_length=1)


class ResetPasswordRequest(CamelSchema):
    password: str

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password_strength(v)


class ChangePasswordRequest(CamelSchema):
    current_password: str = Field(..., min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password_strength(v)


class TokenPair(CamelSchema):
    token: str
    refresh_token: str


class AuthResponse(CamelSchema):
    """Tokens plus the public user profile."""

    token: str
    refresh_token: str
    user: UserResponse


class SignupResponse(CamelSchema):
    requires_verification: bool = True
    email: str
