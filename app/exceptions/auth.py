# ruff: noqa: D107
"""Authentication and account-state exceptions."""

from typing import Any

from .base import AppPermissionError, AuthenticationError, BaseAppException, ValidationError


class InvalidCredentialsError(AuthenticationError):
    def __init__(self, details: dict[str, Any] | None = None):
        super().__init__(
            "Invalid email or password",
            details=details,
            message_key="auth.invalid_credentials",
            error_code="INVALID_CREDENTIALS",
        )


class InvalidTokenError(AuthenticationError):
    def __init__(self, message_key: str = "auth.invalid_token"):
        super().__init__("Invalid token", message_key=message_key, error_code="INVALID_TOKEN")


class TokenExpiredError(AuthenticationError):
    def __init__(self, message_key: str = "auth.token_expired"):
        super().__init__("Token has expired", message_key=message_key, error_code="TOKEN_EXPIRED")


class AccountLockedError(BaseAppException):
    """Raised while ``lock_until`` is in the future."""

    def __init__(self, lock_until=None):
        details = {"lock_until": lock_until.isoformat()} if lock_until else None
        super().__init__(
            message="Account temporarily locked due to too many failed login attempts",
            status_code=423,
            error_code="ACCOUNT_LOCKED",
            details=details,
            message_key="auth.account_locked",
        )


class EmailNotVerifiedError(AppPermissionError):
    def __init__(self, email: str | None = None):
        super().__init__(
            "Please verify your email",
            details={"requiresVerification": True, "email": email},
            message_key="auth.email_not_verified",
            error_code="EMAIL_NOT_VERIFIED",
        )


class AccountInactiveError(AppPermissionError):
    def __init__(self):
        super().__init__(
            "Your account is inactive",
            message_key="auth.account_inactive",
            error_code="ACCOUNT_INACTIVE",
        )


class OAuthAccountError(ValidationError):
    """Password operations on an account that only signs in with Google."""

    def __init__(self, message_key: str = "auth.use_google_login"):
        super().__init__(
            "This account uses Google sign-in",
            message_key=message_key,
            error_code="OAUTH_ACCOUNT",
        )


class ResetTokenError(BaseAppException):
    """Password reset token rejected; ``reason`` is one of
    expired, invalid, notfound, used, mismatch."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(
            message=f"Password reset token {reason}",
            status_code=404 if reason == "notfound" else 400,
            error_code=f"RESET_TOKEN_{reason.upper()}",
            details={"status": reason},
            message_key=f"auth.reset_{reason}",
        )


class OAuthError(BaseAppException):
    def __init__(self, message: str = "Google sign-in failed", status_code: int = 400):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code="OAUTH_FAILED",
            message_key="auth.oauth_failed",
        )
