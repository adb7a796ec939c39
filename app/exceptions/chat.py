# ruff: noqa: D107
"""Chat and message exceptions."""

from typing import Any

from .base import NotFoundError, ValidationError


class ChatNotFoundError(NotFoundError):
    def __init__(self, chat_id: Any = None):
        super().__init__(
            "Chat not found",
            details={"chat_id": str(chat_id)} if chat_id else None,
            message_key="chat.not_found",
        )


class MessageNotFoundError(NotFoundError):
    def __init__(self, message_id: Any = None, message_key: str = "chat.message_not_found"):
        super().__init__(
            "Message not found",
            details={"message_id": str(message_id)} if message_id else None,
            message_key=message_key,
        )


class InvalidModelError(ValidationError):
    def __init__(self, model: str):
        super().__init__(
            f"Invalid model: {model}",
            details={"model": model},
            message_key="chat.invalid_model",
            error_code="INVALID_MODEL",
        )


class InvalidExportFormatError(ValidationError):
    def __init__(self, export_format: str, message_key: str = "chat.invalid_export_format"):
        super().__init__(
            f"Invalid export format: {export_format}",
            details={"format": export_format},
            message_key=message_key,
            error_code="INVALID_FORMAT",
        )
