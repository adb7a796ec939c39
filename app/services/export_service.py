"""Render chats and account data as downloadable documents."""

import csv
import io
import json
from dataclasses import dataclass
from typing import Any

from fastapi.encoders import jsonable_encoder

from app.exceptions.chat import InvalidExportFormatError
from models import Chat, Message, User

CHAT_FORMATS = ("json", "txt", "md")
USER_DATA_FORMATS = ("json", "csv")

MEDIA_TYPES = {
    "json": "application/json",
    "txt": "text/plain",
    "md": "text/markdown",
    "csv": "text/csv",
}


@dataclass
class ExportDocument:
    content: str
    filename: str
    media_type: str

    @property
    def content_disposition(self) -> str:
        return f'attachment; filename="{self.filename}"'


def _dumps(data: Any) -> str:
    return json.dumps(jsonable_encoder(data), ensure_ascii=False, indent=2)


def _role(message: Message) -> str:
    return message.role_value


def render_chat_txt(chat: Chat, messages: list[Message]) -> str:
    return "\n".join(f"[{_role(m).upper()}]: {m.content}\n" for m in messages)


def render_chat_markdown(chat: Chat, messages: list[Message]) -> str:
    """``# title``, the creation date, then one ``###`` section per message."""
    sections = []
    for message in messages:
        heading = "👤 User" if _role(message) == "user" else "🤖 Assistant"
        sections.append(f"### {heading}\n\n{message.content}\n\n---\n")
    header = f"# {chat.title}\n\n**Date**: {chat.created_at.isoformat()}\n\n"
    return header + "\n".join(sections)


def export_chat(chat: Chat, messages: list[Message], export_format: str, chat_data: dict) -> ExportDocument:
    """Build the attachment for ``GET /chat/{id}/export``.

    ``chat_data`` is the serialized chat (with messages) used for the json format.
    """
    if export_format not in CHAT_FORMATS:
        raise InvalidExportFormatError(export_format)

    if export_format == "json":
        content = _dumps(chat_data)
    elif export_format == "txt":
        content = render_chat_txt(chat, messages)
    else:
        content = render_chat_markdown(chat, messages)

    return ExportDocument(
        content=content,
        filename=f"chat-{chat.id}.{export_format}",
        media_type=MEDIA_TYPES[export_format],
    )


def render_user_csv(user: User, total_chats: int) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["Field", "Value"])
    writer.writerow(["Username", user.username])
    writer.writerow(["Email", user.email])
    writer.writerow(["Language", user.language_code])
    writer.writerow(["Theme", getattr(user.theme, "value", user.theme)])
    writer.writerow(["Total Chats", total_chats])
    writer.writerow(["Member Since", user.created_at.isoformat()])
    return buffer.getvalue()


def export_user_data(
    user: User, export_format: str, profile_data: dict, total_chats: int
) -> ExportDocument:
    if export_format not in USER_DATA_FORMATS:
        raise InvalidExportFormatError(export_format, message_key="user.invalid_export_format")

    if export_format == "json":
        content = _dumps(profile_data)
    else:
        content = render_user_csv(user, total_chats)

    return ExportDocument(
        content=content,
        filename=f"user-data-{user.id}.{export_format}",
        media_type=MEDIA_TYPES[export_format],
    )
