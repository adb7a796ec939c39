# ruff: noqa: D107
"""AI provider exceptions."""

from typing import Any

from .base import BaseAppException


class AIServiceError(BaseAppException):
    """Base exception for AI provider errors.

    Surfaces to clients as a 500 "Failed to generate AI response".
    """

    def __init__(
        self,
        message: str = "AI service error occurred",
        error_code: str = "AI_SERVICE_ERROR",
        details: dict[str, Any] | None = None,
        status_code: int = 500,
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details,
            message_key="chat.ai_failed",
        )


class AIConfigurationError(AIServiceError):
    """Exception raised when a provider has no credentials."""

    def __init__(
        self,
        message: str = "AI service is not properly configured",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "AI_CONFIGURATION_ERROR", details)


class AIServiceUnavailableError(AIServiceError):
    """Exception raised when a provider cannot be reached."""

    def __init__(
        self,
        message: str = "AI service is temporarily unavailable",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "AI_SERVICE_UNAVAILABLE", details)


class AITimeoutError(AIServiceError):
    """Exception raised when a provider request times out."""

    def __init__(
        self,
        message: str = "AI service request timed out",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "AI_TIMEOUT", details)


class AIProviderError(AIServiceError):
    """Exception raised when a provider answers with an error or an unusable body."""

    def __init__(
        self,
        message: str = "AI provider returned an error",
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = dict(details or {})
        if provider:
            details["provider"] = provider
        super().__init__(message, "AI_PROVIDER_ERROR", details)


class AIContentFilterError(AIServiceError):
    """Exception raised when content is blocked by provider safety filters."""

    def __init__(
        self,
        message: str = "Content was blocked by AI safety filters",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "AI_CONTENT_FILTERED", details)
