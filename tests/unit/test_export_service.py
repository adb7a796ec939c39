"""
Unit tests for chat and account exports.
"""

import csv
import io
import json
import uuid
from datetime import datetime

import pytest

from app.exceptions.chat import InvalidExportFormatError
from app.services.export_service import export_chat, export_user_data
from factories import ChatFactory, MessageFactory, UserFactory
from models import MessageRole


@pytest.fixture
def chat():
    return ChatFactory.build(user_id=uuid.uuid4(), title="Recipes", created_at=datetime(2025, 3, 1, 9, 30))


@pytest.fixture
def messages(chat):
    return [
        MessageFactory.build(chat_id=chat.id, sequence=1, role=MessageRole.USER, content="How do I make hummus?"),
        MessageFactory.build(chat_id=chat.id, sequence=2, role=MessageRole.ASSISTANT, content="Blend chickpeas."),
        MessageFactory.build(chat_id=chat.id, sequence=3, role=MessageRole.USER, content="شكرا"),
    ]


class TestExportChat:
    def test_markdown(self, chat, messages):
        document = export_chat(chat, messages, "md", {})

        assert document.content.startswith("# Recipes\n\n**Date**: 2025-03-01T09:30:00")
        assert document.content.count("### 👤 User") == 2
        assert document.content.count("### 🤖 Assistant") == 1
        assert document.media_type == "text/markdown"
        assert document.content_disposition == f'attachment; filename="chat-{chat.id}.md"'

    def test_text(self, chat, messages):
        document = export_chat(chat, messages, "txt", {})

        assert "[USER]: How do I make hummus?" in document.content
        assert "[ASSISTANT]: Blend chickpeas." in document.content

    def test_json_keeps_arabic(self, chat, messages):
        document = export_chat(chat, messages, "json", {"title": "وصفات", "messages": []})

        assert "وصفات" in document.content
        assert json.loads(document.content)["title"] == "وصفات"

    def test_unknown_format(self, chat, messages):
        with pytest.raises(InvalidExportFormatError):
            export_chat(chat, messages, "pdf", {})


class TestExportUserData:
    def test_csv_rows(self):
        user = UserFactory.build(username="Sam", email="sam@example.com", created_at=datetime(2024, 5, 1))

        document = export_user_data(user, "csv", {}, total_chats=4)

        rows = list(csv.reader(io.StringIO(document.content)))
        assert rows[0] == ["Field", "Value"]
        assert ["Username", "Sam"] in rows
        assert ["Total Chats", "4"] in rows
        assert document.filename == f"user-data-{user.id}.csv"

    def test_json(self):
        user = UserFactory.build()

        document = export_user_data(user, "json", {"chats": [], "exportedAt": "now"}, total_chats=0)

        assert json.loads(document.content) == {"chats": [], "exportedAt": "now"}

    def test_chat_only_formats_rejected(self):
        with pytest.raises(InvalidExportFormatError) as exc_info:
            export_user_data(UserFactory.build(), "md", {}, total_chats=0)

        assert exc_info.value.message_key == "user.invalid_export_format"
