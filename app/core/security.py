"""Security related functions: password hashing and JWT handling.

Access and refresh tokens are signed with different secrets and both carry the
configured issuer/audience. Email-verification and password-reset tokens are
signed with the access secret and distinguished by their ``type`` claim.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from passlib.context import CryptContext

from app.core.config import settings

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"
EMAIL_VERIFICATION_TOKEN = "email_verification"
PASSWORD_RESET_TOKEN = "password_reset"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def _encode(claims: dict[str, Any], secret: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "iat": now,
        "exp": now + expires_delta,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
    }
    return jwt.encode(payload, secret, algorithm=settings.algorithm)


def _decode(token: str, secret: str, expected_type: str) -> dict[str, Any]:
    """Decode and check the ``type`` claim.

    Raises:
        jwt.ExpiredSignatureError: token is past ``exp``
        jwt.InvalidTokenError: bad signature, claims, or wrong token type
    """
    payload = jwt.decode(
        token,
        secret,
        algorithms=[settings.algorithm],
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        options={"require": ["exp", "sub"]},
    )
    if payload.get("type") != expected_type:
        raise jwt.InvalidTokenError(f"Expected a {expected_type} token")
    return payload


def create_access_token(user_id: uuid.UUID | str) -> str:
    return _encode(
        {"sub": str(user_id), "type": ACCESS_TOKEN},
        settings.secret_key,
        timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(user_id: uuid.UUID | str) -> str:
    return _encode(
        {"sub": str(user_id), "type": REFRESH_TOKEN},
        settings.refresh_secret_key,
        timedelta(days=settings.refresh_token_expire_days),
    )


def create_token_pair(user_id: uuid.UUID | str) -> dict[str, str]:
    return {
        "token": create_access_token(user_id),
        "refreshToken": create_refresh_token(user_id),
    }


def decode_access_token(token: str) -> dict[str, Any]:
    return _decode(token, settings.secret_key, ACCESS_TOKEN)


def decode_refresh_token(token: str) -> dict[str, Any]:
    return _decode(token, settings.refresh_secret_key, REFRESH_TOKEN)


def create_email_verification_token(user_id: uuid.UUID | str, email: str) -> str:
    return _encode(
        {"sub": str(user_id), "email": email, "type": EMAIL_VERIFICATION_TOKEN},
        settings.secret_key,
        timedelta(hours=settings.email_verification_expire_hours),
    )


def decode_email_verification_token(token: str) -> dict[str, Any]:
    return _decode(token, settings.secret_key, EMAIL_VERIFICATION_TOKEN)


def create_password_reset_token(user_id: uuid.UUID | str) -> tuple[str, datetime]:
    """Return the token and its naive-UTC expiry, which is stored on the user row."""
    expires_delta = timedelta(minutes=settings.password_reset_expire_minutes)
    token = _encode(
        {"sub": str(user_id), "type": PASSWORD_RESET_TOKEN, "jti": uuid.uuid4().hex},
        settings.secret_key,
        expires_delta,
    )
    expires_at = (datetime.now(timezone.utc) + expires_delta).replace(tzinfo=None)
    return token, expires_at


def decode_password_reset_token(token: str) -> dict[str, Any]:
    return _decode(token, settings.secret_key, PASSWORD_RESET_TOKEN)
