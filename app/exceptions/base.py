# ruff: noqa: D107
"""Base exception classes."""

from typing import Any

from fastapi import HTTPException


class BaseAppException(HTTPException):
    """Base application exception.

    ``message_key`` points into the i18n catalog; the global handler renders
    it in the request language and falls back to ``message``.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
        message_key: str | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.message_key = message_key

        super().__init__(
            status_code=status_code,
            detail={
                "message": message,
                "error_code": error_code,
                "details": details,
                "message_key": message_key,
            },
            headers=headers,
        )


class NotFoundError(BaseAppException):
    """Exception raised when a resource is not found."""

    def __init__(
        self,
        message: str = "Resource not found",
        details: dict[str, Any] | None = None,
        message_key: str | None = "errors.not_found",
    ):
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND",
            details=details,
            message_key=message_key,
        )


class AppPermissionError(BaseAppException):
    """Exception raised when user doesn't have permission to access a resource."""

    def __init__(
        self,
        message: str = "Permission denied",
        details: dict[str, Any] | None = None,
        message_key: str | None = "errors.permission",
        error_code: str = "PERMISSION_DENIED",
    ):
        super().__init__(
            message=message,
            status_code=403,
            error_code=error_code,
            details=details,
            message_key=message_key,
        )


class ValidationError(BaseAppException):
    """Exception raised when validation fails."""

    def __init__(
        self,
        message: str = "Validation failed",
        details: dict[str, Any] | None = None,
        message_key: str | None = "errors.validation",
        error_code: str = "VALIDATION_ERROR",
    ):
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details,
            message_key=message_key,
        )


class ConflictError(BaseAppException):
    """Exception raised when a unique value is already taken."""

    def __init__(
        self,
        message: str = "Resource already exists",
        details: dict[str, Any] | None = None,
        message_key: str | None = None,
    ):
        super().__init__(
            message=message,
            status_code=409,
            error_code="CONFLICT",
            details=details,
            message_key=message_key,
        )


class AuthenticationError(BaseAppException):
    """Exception raised when credentials or tokens are rejected."""

    def __init__(
        self,
        message: str = "Authentication required",
        details: dict[str, Any] | None = None,
        message_key: str | None = "errors.unauthorized",
        error_code: str = "UNAUTHORIZED",
    ):
        super().__init__(
            message=message,
            status_code=401,
            error_code=error_code,
            details=details,
            message_key=message_key,
            headers={"WWW-Authenticate": "Bearer"},
        )


class EmailDeliveryError(BaseAppException):
    """Exception raised when the SMTP relay rejects or cannot take a message."""

    def __init__(
        self,
        message: str = "Failed to send email",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=502,
            error_code="EMAIL_DELIVERY_FAILED",
            details=details,
            message_key="errors.email_failed",
        )


class RateLimitExceededError(BaseAppException):
    """Exception raised when a named rate limit is exhausted."""

    def __init__(
        self,
        message: str = "Too many requests, please try again later",
        message_key: str | None = "errors.rate_limited",
        headers: dict[str, str] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=429,
            error_code="RATE_LIMIT_EXCEEDED",
            message_key=message_key,
            headers=headers,
        )
