"""
Unit tests for AuthService.
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from app.core.security import create_password_reset_token, verify_password
from app.domains.auth.service import AuthService
from app.exceptions.auth import (
    AccountLockedError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    OAuthAccountError,
    ResetTokenError,
)
from app.exceptions.base import ConflictError, EmailDeliveryError
from app.schemas.auth import SignupRequest
from conftest import TEST_PASSWORD, persist
from factories import UserFactory
from models import AuthProvider, User, UserSummary, utcnow


class TestSignup:
    @pytest.mark.asyncio
    async def test_signup_creates_inactive_user(self, test_db, email_service):
        service = AuthService(test_db, email_service)

        user = await service.signup(
            SignupRequest(username="Layla", email="Layla@Example.com", password="Secret123", language="ar")
        )

        assert user.email == "layla@example.com"
        assert user.is_active is False
        assert user.email_verified is False
        assert user.language_code == "ar"
        assert verify_password("Secret123", user.hashed_password)
        assert email_service.sent[-1]["to"] == "layla@example.com"
        assert email_service.sent[-1]["language"] == "ar"

        summary = (
            await test_db.execute(select(UserSummary).where(UserSummary.user_id == user.id))
        ).scalar_one()
        assert summary.summary_ar

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, test_db, test_user, email_service):
        service = AuthService(test_db, email_service)

        with pytest.raises(ConflictError) as exc_info:
            await service.signup(
                SignupRequest(username="Someone Else", email="TEST@example.com", password="Secret123")
            )

        assert exc_info.value.message_key == "auth.email_exists"
        count = (
            await test_db.execute(select(func.count(User.id)).where(User.email == "test@example.com"))
        ).scalar()
        assert count == 1

    @pytest.mark.asyncio
    async def test_soft_deleted_email_can_register_again(self, test_db, test_user, email_service):
        test_user.soft_delete()
        await persist(test_db, test_user)

        user = await AuthService(test_db, email_service).signup(
            SignupRequest(username="Test User", email="test@example.com", password="Secret123")
        )

        assert user.id != test_user.id


class TestVerification:
    @pytest.mark.asyncio
    async def test_verify_activates_and_issues_tokens(self, test_db, email_service):
        service = AuthService(test_db, email_service)
        user = await service.signup(
            SignupRequest(username="Omar", email="omar@example.com", password="Secret123")
        )
        token = email_service.last_token("omar@example.com")

        verified, tokens = await service.verify_email(token)

        assert verified.id == user.id
        assert verified.is_active and verified.email_verified
        assert set(tokens) == {"token", "refreshToken"}

    @pytest.mark.asyncio
    async def test_welcome_email_failure_still_issues_tokens(self, test_db, email_service, monkeypatch):
        service = AuthService(test_db, email_service)
        await service.signup(SignupRequest(username="Rana", email="rana@example.com", password="Secret123"))
        token = email_service.last_token("rana@example.com")

        async def relay_down(*args, **kwargs):
            raise EmailDeliveryError(details={"recipient": "rana@example.com"})

        monkeypatch.setattr(email_service, "send_welcome_email", relay_down)

        verified, tokens = await service.verify_email(token)

        assert verified.email_verified is True
        assert set(tokens) == {"token", "refreshToken"}

    @pytest.mark.asyncio
    async def test_login_before_verification_resends_link(self, test_db, email_service):
        service = AuthService(test_db, email_service)
        await service.signup(SignupRequest(username="Omar", email="omar@example.com", password="Secret123"))

        with pytest.raises(EmailNotVerifiedError):
            await service.login("omar@example.com", "Secret123")

        assert len(email_service.sent) == 2


class TestLogin:
    """Test credential checks and lockout."""

    @pytest.mark.asyncio
    async def test_successful_login_resets_attempts(self, test_db, test_user, email_service):
        test_user.login_attempts = 3
        await persist(test_db, test_user)

        user, tokens = await AuthService(test_db, email_service).login("test@example.com", TEST_PASSWORD)

        assert user.login_attempts == 0
        assert user.last_login is not None
        assert tokens["token"]

    @pytest.mark.asyncio
    async def test_unknown_email(self, test_db, email_service):
        with pytest.raises(InvalidCredentialsError):
            await AuthService(test_db, email_service).login("nobody@example.com", "whatever")

    @pytest.mark.asyncio
    async def test_lockout_after_max_attempts(self, test_db, test_user, email_service):
        service = AuthService(test_db, email_service)

        for attempt in range(1, 5):
            with pytest.raises(InvalidCredentialsError):
                await service.login("test@example.com", "WrongPass1")
            assert test_user.login_attempts == attempt
            assert test_user.lock_until is None

        with pytest.raises(InvalidCredentialsError):
            await service.login("test@example.com", "WrongPass1")

        assert test_user.login_attempts == 5
        remaining = test_user.lock_until - utcnow()
        assert timedelta(minutes=119) < remaining <= timedelta(minutes=120)

        # even the right password is refused while locked
        with pytest.raises(AccountLockedError):
            await service.login("test@example.com", TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_expired_lock_starts_new_window(self, test_db, test_user, email_service):
        test_user.login_attempts = 5
        test_user.lock_until = utcnow() - timedelta(minutes=1)
        await persist(test_db, test_user)

        with pytest.raises(InvalidCredentialsError):
            await AuthService(test_db, email_service).login("test@example.com", "WrongPass1")

        assert test_user.login_attempts == 1
        assert test_user.lock_until is None

    @pytest.mark.asyncio
    async def test_google_only_account(self, test_db, email_service):
        await persist(
            test_db,
            UserFactory.build(email="g@example.com", provider=AuthProvider.GOOGLE, google_id="123"),
        )

        with pytest.raises(OAuthAccountError):
            await AuthService(test_db, email_service).login("g@example.com", "Secret123")


class TestPasswordReset:
    @pytest.mark.asyncio
    async def test_reset_flow(self, test_db, test_user, email_service):
        service = AuthService(test_db, email_service)
        await service.forgot_password("test@example.com")
        token = email_service.last_token("test@example.com")

        assert (await service.check_reset_token(token)).id == test_user.id

        user, tokens = await service.reset_password(token, "NewSecret123")
        assert verify_password("NewSecret123", user.hashed_password)
        assert tokens["refreshToken"]

        with pytest.raises(ResetTokenError) as exc_info:
            await service.check_reset_token(token)
        assert exc_info.value.reason == "used"

    @pytest.mark.asyncio
    async def test_unknown_email_is_silent(self, test_db, email_service):
        await AuthService(test_db, email_service).forgot_password("nobody@example.com")

        assert email_service.sent == []

    @pytest.mark.asyncio
    async def test_superseded_token_mismatch(self, test_db, test_user, email_service):
        service = AuthService(test_db, email_service)
        await service.forgot_password("test@example.com")
        first = email_service.last_token("test@example.com")
        await service.forgot_password("test@example.com")

        with pytest.raises(ResetTokenError) as exc_info:
            await service.check_reset_token(first)

        assert exc_info.value.reason == "mismatch"

    @pytest.mark.asyncio
    async def test_garbage_token_invalid(self, test_db, email_service):
        with pytest.raises(ResetTokenError) as exc_info:
            await AuthService(test_db, email_service).check_reset_token("not-a-token")

        assert exc_info.value.reason == "invalid"
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_token_for_missing_user(self, test_db, email_service):
        token, _ = create_password_reset_token(UserFactory.build().id)

        with pytest.raises(ResetTokenError) as exc_info:
            await AuthService(test_db, email_service).check_reset_token(token)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_stored_expiry_checked(self, test_db, test_user, email_service):
        service = AuthService(test_db, email_service)
        await service.forgot_password("test@example.com")
        token = email_service.last_token("test@example.com")
        test_user.reset_password_expires = utcnow() - timedelta(seconds=1)
        await persist(test_db, test_user)

        with pytest.raises(ResetTokenError) as exc_info:
            await service.check_reset_token(token)

        assert exc_info.value.reason == "expired"


class TestGoogleLogin:
    @pytest.mark.asyncio
    async def test_new_google_user(self, test_db, test_user, email_service):
        service = AuthService(test_db, email_service)

        user = await service.login_with_google(
            {"sub": "g-1", "email": "New.Person@Example.com", "name": "Test User", "picture": "http://img"},
            language="ar",
        )

        assert user.email == "new.person@example.com"
        # "Test User" already belongs to test_user
        assert user.username == "Test User 1"
        assert user.provider == AuthProvider.GOOGLE
        assert user.is_active and user.email_verified
        assert user.hashed_password is None
        assert user.language_code == "ar"

    @pytest.mark.asyncio
    async def test_existing_local_account_linked(self, test_db, test_user, email_service):
        user = await AuthService(test_db, email_service).login_with_google(
            {"sub": "g-2", "email": "test@example.com", "name": "Whoever"}
        )

        assert user.id == test_user.id
        assert user.google_id == "g-2"
        assert user.provider == AuthProvider.GOOGLE
        # linked accounts keep their password
        assert verify_password(TEST_PASSWORD, user.hashed_password)
