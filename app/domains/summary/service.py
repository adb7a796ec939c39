"""User summary generation: AI-written profile plus keyword-derived interests."""

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.config import settings
from app.domains.ai.service import AIService
from app.exceptions.base import ValidationError
from app.schemas.ai import GenerationSettings
from models import Chat, Message, MessageRole, User, UserSummary, utcnow

logger = logging.getLogger(__name__)

RECENT_CHAT_LIMIT = 20
MESSAGES_PER_CHAT = 10
PROMPT_SAMPLE_SIZE = 20
MAX_INTERESTS = 10
MAX_TOPICS = 10
SUMMARY_SETTINGS = GenerationSettings(temperature=0.7, max_tokens=2000)

STOP_WORDS = frozenset(
    {"the", "is", "at", "which", "on", "and", "a", "an", "as", "are", "was", "were",
     "i", "you", "he", "she", "it", "they", "we"}
)

TOPIC_KEYWORDS = {
    "technology": ["code", "programming", "software", "app", "website", "computer", "tech"],
    "business": ["business", "company", "market", "sales", "revenue", "startup", "entrepreneur"],
    "education": ["learn", "study", "course", "university", "school", "education", "teaching"],
    "health": ["health", "medical", "doctor", "medicine", "fitness", "wellness", "disease"],
    "travel": ["travel", "trip", "vacation", "hotel", "flight", "destination", "tourism"],
    "food": ["food", "recipe", "cooking", "restaurant", "meal", "cuisine", "dish"],
    "entertainment": ["movie", "music", "game", "show", "entertainment", "film", "series"],
    "science": ["science", "research", "experiment", "theory", "physics", "chemistry", "biology"],
}

SUMMARY_PROMPTS = {
    "en": (
        "Based on the following user conversations, create a concise personal summary "
        "(2-3 sentences) describing their interests, conversation style, and common topics:\n\n"
        "Sample messages:\n{messages}\n\n"
        "Create a friendly and helpful summary in English."
    ),
    "ar": (
        "بناءً على محادثات المستخدم التالية، قم بإنشاء ملخص شخصي موجز (2-3 جمل) "
        "يصف اهتماماتهم وأسلوب المحادثة والمواضيع الشائعة:\n\n"
        "عينة من الرسائل:\n{messages}\n\n"
        "قم بإنشاء ملخص ودود ومفيد باللغة العربية."
    ),
}


@dataclass
class ConversationSample:
    """User-authored text and chat metadata collected for one summary run."""

    messages: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    models: Counter = field(default_factory=Counter)
    languages: Counter = field(default_factory=Counter)
    chat_count: int = 0
    message_count: int = 0


def extract_interests(messages: list[str], limit: int = MAX_INTERESTS) -> list[str]:
    """Most frequent words longer than three letters, stop words removed."""
    counts: Counter = Counter()
    for message in messages:
        for word in re.split(r"\W+", message.lower()):
            if len(word) > 3 and word not in STOP_WORDS:
                counts[word] += 1
    return [word for word, _ in counts.most_common(limit)]


def detect_topics(messages: list[str]) -> list[str]:
    """Categories with at least two of their keywords present anywhere in the text."""
    text = " ".join(messages).lower()
    return [
        topic
        for topic, keywords in TOPIC_KEYWORDS.items()
        if sum(1 for keyword in keywords if keyword in text) >= 2
    ]


def extract_topics(sample: ConversationSample, limit: int = MAX_TOPICS) -> list[str]:
    topics: list[str] = []
    for topic in [*sample.tags, *detect_topics(sample.messages)]:
        if topic not in topics:
            topics.append(topic)
    return topics[:limit]


def calculate_statistics(sample: ConversationSample) -> dict:
    total_length = sum(len(m) for m in sample.messages)
    favorite = sample.models.most_common(1)
    return {
        "totalChats": sample.chat_count,
        "totalMessages": sample.message_count,
        "averageMessageLength": round(total_length / len(sample.messages)) if sample.messages else 0,
        "favoriteModel": favorite[0][0] if favorite else None,
        "languageUsage": {"en": sample.languages.get("en", 0), "ar": sample.languages.get("ar", 0)},
    }


def build_summary_prompt(messages: list[str], language: str) -> str:
    template = SUMMARY_PROMPTS.get(language, SUMMARY_PROMPTS["en"])
    return template.format(messages="\n".join(messages[:PROMPT_SAMPLE_SIZE]))


class SummaryService:
    """Service class for user summaries."""

    def __init__(self, db: AsyncSession, ai_service: AIService | None = None):
        self.db = db
        self.ai_service = ai_service

    async def get_summary(self, user_id: UUID) -> UserSummary | None:
        result = await self.db.execute(select(UserSummary).where(UserSummary.user_id == user_id))
        return result.scalar_one_or_none()

    async def collect_sample(self, user_id: UUID) -> ConversationSample:
        """The user's 20 most recent live chats and up to 10 of their own messages from each."""
        chats = (
            await self.db.execute(
                select(Chat)
                .where(Chat.user_id == user_id, Chat.deleted_at.is_(None))
                .order_by(desc(Chat.last_message_at))
                .limit(RECENT_CHAT_LIMIT)
            )
        ).scalars().all()

        sample = ConversationSample(chat_count=len(chats))
        for chat in chats:
            rows = (
                await self.db.execute(
                    select(Message.content)
                    .where(Message.chat_id == chat.id, Message.role == MessageRole.USER)
                    .order_by(Message.sequence)
                    .limit(MESSAGES_PER_CHAT)
                )
            ).scalars().all()
            sample.messages.extend(rows)
            sample.message_count += chat.message_count or 0
            sample.tags.extend(tag for tag in (chat.tags or []) if tag not in sample.tags)
            sample.models[chat.model] += 1
            sample.languages[chat.language] += 1
        return sample

    async def _write_summary(self, sample: ConversationSample, language: str) -> str:
        reply = await self.ai_service.generate_response(
            message=build_summary_prompt(sample.messages, language),
            model=settings.default_model,
            language=language,
            gen_settings=SUMMARY_SETTINGS,
        )
        return reply.content

    async def generate(self, user: User) -> UserSummary:
        """Rebuild the user's summary from scratch.

        Raises:
            ValidationError: The user has no chats to summarize
            AIServiceError: Generation failed; the previous summary is left untouched
        """
        sample = await self.collect_sample(user.id)
        if sample.chat_count == 0:
            raise ValidationError(
                "Not enough conversation history to generate summary",
                message_key="user.summary_no_chats",
            )

        summary_en = await self._write_summary(sample, "en")
        summary_ar = await self._write_summary(sample, "ar")

        summary = await self.get_summary(user.id)
        if summary is None:
            summary = UserSummary(user_id=user.id)
            self.db.add(summary)

        summary.summary = summary_en
        summary.summary_ar = summary_ar
        summary.interests = extract_interests(sample.messages)
        summary.topics = extract_topics(sample)
        summary.preferred_models = [model for model, _ in sample.models.most_common()]
        summary.statistics = calculate_statistics(sample)
        summary.generated_by = settings.default_model
        summary.last_updated = utcnow()

        try:
            await self.db.commit()
            await self.db.refresh(summary)
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        logger.info(f"User summary generated for user {user.id}")
        return summary
