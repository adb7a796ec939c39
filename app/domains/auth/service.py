"""Authentication service: accounts, credentials, verification and reset flows."""

import logging
from datetime import timedelta
from uuid import UUID

import jwt
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.i18n import translate
from app.core.oauth import generate_username
from app.core.security import (
    create_email_verification_token,
    create_password_reset_token,
    create_token_pair,
    decode_email_verification_token,
    decode_password_reset_token,
    decode_refresh_token,
    get_password_hash,
    verify_password,
)
from app.exceptions.auth import (
    AccountInactiveError,
    AccountLockedError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    InvalidTokenError,
    OAuthAccountError,
    OAuthError,
    ResetTokenError,
)
from app.exceptions.base import (
    AuthenticationError,
    ConflictError,
    EmailDeliveryError,
    NotFoundError,
    ValidationError,
)
from app.schemas.auth import SignupRequest
from app.services.email_service import EmailService
from models import AuthProvider, User, UserSummary, utcnow

logger = logging.getLogger(__name__)

MAX_USERNAME_SUFFIX = 1000


class AuthService:
    """Service class for authentication business logic."""

    def __init__(self, db: AsyncSession, email_service: EmailService | None = None):
        self.db = db
        self.email_service = email_service or EmailService()

    # ----- lookups -----

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == email.lower(), User.deleted_at.is_(None))
        )
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id) -> User | None:
        result = await self.db.execute(
            select(User).where(User.id == user_id, User.deleted_at.is_(None))
        )
        return result.scalar_one_or_none()

    async def username_taken(self, username: str, exclude_id=None) -> bool:
        stmt = select(User.id).where(User.username == username, User.deleted_at.is_(None))
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        result = await self.db.execute(stmt)
        return result.first() is not None

    async def email_exists(self, email: str) -> bool:
        return await self.get_user_by_email(email) is not None

    async def _commit(self, *instances) -> None:
        try:
            await self.db.commit()
            for instance in instances:
                await self.db.refresh(instance)
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    # ----- signup / verification -----

    async def signup(self, data: SignupRequest) -> User:
        """Create an inactive local account and send its verification link.

        Raises:
            ConflictError: A live account already uses the email or username
        """
        if await self.email_exists(data.email):
            raise ConflictError("Email already registered", message_key="auth.email_exists")
        if await self.username_taken(data.username):
            raise ConflictError("Username already taken", message_key="auth.username_exists")

        user = User(
            username=data.username,
            email=data.email,
            hashed_password=get_password_hash(data.password),
            provider=AuthProvider.LOCAL,
            language=data.language,
            is_active=False,
            email_verified=False,
        )
        self.db.add(user)
        await self.db.flush()
        self.db.add(self._placeholder_summary(user.id, data.language))
        await self._commit(user)

        logger.info(f"New user registered: {user.email}")
        await self.send_verification(user)
        return user

    def _placeholder_summary(self, user_id, language: str) -> UserSummary:
        return UserSummary(
            user_id=user_id,
            summary=translate("user.new_user_summary", language),
            summary_ar=translate("user.new_user_summary", "ar"),
        )

    async def send_verification(self, user: User) -> None:
        token = create_email_verification_token(user.id, user.email)
        await self.email_service.send_verification_email(user.email, token, user.language_code)

    async def verify_email(self, token: str) -> tuple[User, dict[str, str]]:
        try:
            payload = decode_email_verification_token(token)
        except jwt.ExpiredSignatureError as e:
            raise ValidationError(
                "Verification link has expired", message_key="auth.verification_expired"
            ) from e
        except jwt.InvalidTokenError as e:
            raise ValidationError(
                "Invalid verification link", message_key="auth.verification_invalid"
            ) from e

        user = await self.get_user_by_id(_as_uuid(payload["sub"]))
        if not user or user.email != payload.get("email"):
            raise NotFoundError("User not found", message_key="auth.user_not_found")
        if user.email_verified:
            raise ValidationError("Email already verified", message_key="auth.already_verified")

        user.email_verified = True
        user.is_active = True
        user.last_login = utcnow()
        await self._commit(user)

        try:
            await self.email_service.send_welcome_email(user.email, user.username, user.language_code)
        except EmailDeliveryError as e:
            logger.warning(f"Welcome email to {user.email} failed: {e.message}")
        return user, create_token_pair(user.id)

    async def resend_verification(self, email: str) -> None:
        user = await self.get_user_by_email(email)
        if not user:
            # Same answer as success so addresses cannot be probed
            return
        if user.email_verified:
            raise ValidationError("Email already verified", message_key="auth.already_verified")
        await self.send_verification(user)

    # ----- login / tokens -----

    async def login(self, email: str, password: str) -> tuple[User, dict[str, str]]:
        """Check credentials and account state, then issue a token pair.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
            OAuthAccountError: The account only signs in with Google
            AccountLockedError: Too many recent failures
            EmailNotVerifiedError: Email not verified yet (a new link is sent)
            AccountInactiveError: Account disabled
        """
        user = await self.get_user_by_email(email)
        if not user:
            raise InvalidCredentialsError()

        if user.is_oauth_user() and not user.hashed_password:
            raise OAuthAccountError()

        if user.is_locked():
            raise AccountLockedError(user.lock_until)

        if not verify_password(password, user.hashed_password):
            await self.register_failed_login(user)
            raise InvalidCredentialsError()

        if not user.email_verified:
            await self.send_verification(user)
            raise EmailNotVerifiedError(user.email)

        if not user.is_active:
            raise AccountInactiveError()

        user.login_attempts = 0
        user.lock_until = None
        user.last_login = utcnow()
        await self._commit(user)

        logger.info(f"User logged in: {user.email} (provider: {user.provider.value})")
        return user, create_token_pair(user.id)

    async def register_failed_login(self, user: User) -> None:
        """Count a wrong password; the attempt that reaches the maximum locks the account."""
        now = utcnow()
        if user.lock_until and user.lock_until < now:
            # Previous lock has run out, this failure starts a new window
            user.login_attempts = 1
            user.lock_until = None
        else:
            user.login_attempts = (user.login_attempts or 0) + 1
            if user.login_attempts >= settings.max_login_attempts and not user.is_locked():
                user.lock_until = now + timedelta(minutes=settings.lock_time_minutes)
                logger.warning(f"🔒 Account locked after {user.login_attempts} failures: {user.email}")
        await self._commit(user)

    async def refresh_tokens(self, refresh_token: str) -> dict[str, str]:
        try:
            payload = decode_refresh_token(refresh_token)
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError("auth.refresh_invalid") from e

        user = await self.get_user_by_id(_as_uuid(payload["sub"]))
        if not user or not user.is_active or not user.email_verified:
            raise InvalidTokenError("auth.refresh_invalid")
        return create_token_pair(user.id)

    # ----- password reset -----

    async def forgot_password(self, email: str) -> None:
        user = await self.get_user_by_email(email)
        if not user:
            return

        token, expires_at = create_password_reset_token(user.id)
        user.reset_password_token = token
        user.reset_password_expires = expires_at
        user.reset_password_used = False
        await self._commit(user)

        await self.email_service.send_password_reset_email(user.email, token, user.language_code)

    async def check_reset_token(self, token: str) -> User:
        """Resolve a reset token to its user or raise ``ResetTokenError`` with the reason."""
        try:
            payload = decode_password_reset_token(token)
        except jwt.ExpiredSignatureError as e:
            raise ResetTokenError("expired") from e
        except jwt.InvalidTokenError as e:
            raise ResetTokenError("invalid") from e

        user = await self.get_user_by_id(_as_uuid(payload["sub"]))
        if not user:
            raise ResetTokenError("notfound")
        if user.reset_password_token == token and user.reset_password_used:
            raise ResetTokenError("used")
        if user.reset_password_token != token:
            raise ResetTokenError("mismatch")
        if user.reset_password_expires and user.reset_password_expires < utcnow():
            raise ResetTokenError("expired")
        return user

    async def reset_password(self, token: str, password: str) -> tuple[User, dict[str, str]]:
        user = await self.check_reset_token(token)
        user.hashed_password = get_password_hash(password)
        user.reset_password_used = True
        user.reset_password_expires = None
        user.login_attempts = 0
        user.lock_until = None
        await self._commit(user)

        logger.info(f"Password reset for {user.email}")
        return user, create_token_pair(user.id)

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        if not user.hashed_password:
            raise OAuthAccountError("auth.no_local_password")
        if not verify_password(current_password, user.hashed_password):
            raise AuthenticationError(
                "Current password is incorrect",
                message_key="auth.wrong_current_password",
                error_code="WRONG_PASSWORD",
            )
        user.hashed_password = get_password_hash(new_password)
        await self._commit(user)

    # ----- Google OAuth -----

    async def unique_username(self, base: str) -> str:
        username = base
        counter = 1
        while await self.username_taken(username):
            if counter > MAX_USERNAME_SUFFIX:
                raise OAuthError("Could not allocate a username")
            username = f"{base} {counter}"
            counter += 1
        return username

    async def login_with_google(self, profile: dict, language: str = "en") -> User:
        """Sign in, link or create the account behind a Google profile."""
        email = profile["email"].strip().lower()
        google_id = str(profile["sub"])

        user = await self.get_user_by_email(email)
        if user:
            if user.provider == AuthProvider.LOCAL and not user.google_id:
                logger.info(f"🔄 Linking local account to Google: {email}")
                user.provider = AuthProvider.GOOGLE
                user.email_verified = True
                user.is_active = True
            if not user.google_id:
                user.google_id = google_id
            if not user.avatar and profile.get("picture"):
                user.avatar = profile["picture"]
            user.last_login = utcnow()
            await self._commit(user)
            return user

        username = await self.unique_username(generate_username(profile.get("name"), email))
        user = User(
            username=username,
            email=email,
            google_id=google_id,
            provider=AuthProvider.GOOGLE,
            avatar=profile.get("picture"),
            language=language,
            email_verified=True,
            is_active=True,
            hashed_password=None,
            last_login=utcnow(),
        )
        self.db.add(user)
        await self.db.flush()
        self.db.add(self._placeholder_summary(user.id, language))
        await self._commit(user)

        logger.info(f"✅ Google account created: {email} as '{username}'")
        return user


def _as_uuid(value) -> UUID:
    try:
        return UUID(str(value))
    except ValueError as e:
        raise InvalidTokenError() from e
