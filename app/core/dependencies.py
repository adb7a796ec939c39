# app/core/dependencies.py
import logging
from uuid import UUID

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.requests import HTTPConnection
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.events import ChatEventBroker
from app.core.oauth import GoogleOAuthClient
from app.core.security import decode_access_token
from app.database import get_db, get_session_factory
from app.domains.ai.service import AIService
from app.exceptions.auth import AccountInactiveError, InvalidTokenError, TokenExpiredError
from app.exceptions.base import AuthenticationError
from app.services.email_service import EmailService
from models import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def decode_bearer(token: str) -> dict:
    """Decode an access token, mapping PyJWT failures onto 401 app errors."""
    try:
        return decode_access_token(token)
    except jwt.ExpiredSignatureError as e:
        raise TokenExpiredError() from e
    except jwt.InvalidTokenError as e:
        raise InvalidTokenError() from e


async def validate_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> dict:
    """Validate and decode the bearer access token.

    Returns:
        dict: Decoded token payload

    Raises:
        AuthenticationError: If the token is missing, invalid or expired
    """
    if not credentials or not credentials.credentials:
        raise AuthenticationError(
            "Authentication token is required", message_key="auth.token_required"
        )
    return decode_bearer(credentials.credentials)


async def load_live_user(db: AsyncSession, user_id: str | UUID) -> User | None:
    try:
        user_uuid = user_id if isinstance(user_id, UUID) else UUID(str(user_id))
    except ValueError:
        return None
    result = await db.execute(
        select(User).where(User.id == user_uuid, User.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


async def get_current_user(
    request: Request,
    payload: dict = Depends(validate_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current authenticated user from JWT payload.

    Returns:
        User: Current authenticated user

    Raises:
        AuthenticationError: If the user no longer exists
        AccountInactiveError: If the user is inactive
    """
    user = await load_live_user(db, payload["sub"])
    if not user:
        raise AuthenticationError("User not found", message_key="auth.user_not_found")

    if not user.is_active:
        raise AccountInactiveError()

    # Add user info to request state for logging, rate-limit keys and i18n
    request.state.user_id = user.id
    request.state.language = user.language_code

    return user


async def get_optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """Current user if a bearer token was sent, otherwise None.

    A token that is present but malformed or expired still raises 401.
    """
    if not credentials or not credentials.credentials:
        return None

    payload = decode_bearer(credentials.credentials)
    user = await load_live_user(db, payload["sub"])
    if not user or not user.is_active:
        return None

    request.state.user_id = user.id
    request.state.language = user.language_code
    return user


def get_ai_service(request: Request) -> AIService:
    return request.app.state.ai_service


def get_event_broker(connection: HTTPConnection) -> ChatEventBroker:
    return connection.app.state.event_broker


def get_email_service() -> EmailService:
    return EmailService()


def get_google_oauth() -> GoogleOAuthClient:
    return GoogleOAuthClient()
