"""AI service: model routing, prompt assembly and optional Arabic translation."""

import logging
from datetime import UTC, datetime
from typing import Any

import httpx

from app.core.config import settings
from app.domains.ai.providers import (
    ARABIC,
    CHAT,
    FALLBACK,
    ChatProvider,
    DeepSeekProvider,
    GeminiProvider,
    HuggingFaceFallbackProvider,
)
from app.domains.ai.translation import ArabicTranslator
from app.exceptions.ai import AIServiceError
from app.schemas.ai import AIHealthStatus, AIReply, GenerationSettings

logger = logging.getLogger(__name__)

SYSTEM_PROMPTS = {
    "en": (
        "You are a helpful AI assistant. Provide clear, accurate, and helpful responses.\n"
        "Be conversational but professional. If you're unsure about something, acknowledge it.\n"
        "Format your responses using markdown when appropriate for better readability."
    ),
    "ar": (
        "أنت مساعد ذكاء اصطناعي مفيد. قدم إجابات واضحة ودقيقة ومفيدة.\n"
        "كن محادثًا ولكن احترافيًا. إذا لم تكن متأكدًا من شيء ما، اعترف بذلك.\n"
        "قم بتنسيق إجاباتك باستخدام markdown عند الاقتضاء لتحسين القراءة."
    ),
}

# Requested model -> provider name. Anything else goes to the fallback provider.
MODEL_ROUTES = {
    "gemini-2.5-flash": "gemini",
    "gemini-2.5-pro": "gemini",
    "deepseek/deepseek-chat-v3.1:free": "deepseek",
}

SELECTABLE_MODELS = tuple(MODEL_ROUTES)


class AIService:
    """Routes generation requests to providers.

    The requested model's provider is always tried first. When
    ``ai_failover_enabled`` is set, the remaining configured chat providers
    follow (Arabic-capable ones first for Arabic chats) and fallback providers
    come last. Otherwise a provider failure surfaces as ``AIServiceError``.
    """

    def __init__(
        self,
        providers: list[ChatProvider],
        translator: ArabicTranslator | None = None,
        http_client: httpx.AsyncClient | None = None,
        failover_enabled: bool | None = None,
        history_limit: int | None = None,
    ):
        self.providers = {provider.name: provider for provider in providers}
        self.translator = translator
        self.http_client = http_client
        self.failover_enabled = (
            settings.ai_failover_enabled if failover_enabled is None else failover_enabled
        )
        self.history_limit = history_limit or settings.ai_history_limit

    @classmethod
    def from_settings(cls) -> "AIService":
        """Build the service and its shared HTTP client from configuration."""
        client = httpx.AsyncClient(timeout=settings.ai_request_timeout)
        providers: list[ChatProvider] = [
            GeminiProvider(),
            DeepSeekProvider(client),
            HuggingFaceFallbackProvider(client),
        ]
        translator = ArabicTranslator(client) if settings.translation_enabled else None
        service = cls(providers, translator=translator, http_client=client)
        configured = [p.name for p in providers if p.is_configured()]
        logger.info(f"🤖 AI service ready with providers: {', '.join(configured)}")
        return service

    async def close(self) -> None:
        for provider in self.providers.values():
            await provider.close()
        if self.http_client is not None:
            await self.http_client.aclose()

    # ----- prompt assembly -----

    def get_system_prompt(self, language: str) -> str:
        return SYSTEM_PROMPTS.get(language, SYSTEM_PROMPTS["en"])

    def prepare_messages(
        self, message: str, history: list[dict[str, str]] | None, language: str
    ) -> list[dict[str, str]]:
        """System prompt, the most recent history turns, then the new user message."""
        trimmed = list(history or [])[-self.history_limit :]
        return [
            {"role": "system", "content": self.get_system_prompt(language)},
            *({"role": m["role"], "content": m["content"]} for m in trimmed),
            {"role": "user", "content": message},
        ]

    # ----- routing -----

    def is_known_model(self, model: str) -> bool:
        return model in MODEL_ROUTES

    def get_provider_name(self, model: str) -> str:
        return MODEL_ROUTES.get(model, self._fallback_name())

    def _fallback_name(self) -> str:
        for provider in self.providers.values():
            if provider.has(FALLBACK):
                return provider.name
        raise AIServiceError("No fallback provider registered")

    def supports_arabic(self, model: str) -> bool:
        provider = self.providers.get(self.get_provider_name(model))
        return bool(provider and provider.has(ARABIC) and provider.serves(model))

    def resolve_providers(self, model: str, language: str = "en") -> list[ChatProvider]:
        primary = self.providers[self.get_provider_name(model)]
        if not self.failover_enabled:
            return [primary]

        others = [
            p
            for p in self.providers.values()
            if p is not primary and p.has(CHAT) and not p.has(FALLBACK) and p.is_configured()
        ]
        if language == "ar":
            others.sort(key=lambda p: not p.has(ARABIC))
        fallbacks = [p for p in self.providers.values() if p is not primary and p.has(FALLBACK)]
        return [primary, *others, *fallbacks]

    # ----- generation -----

    async def generate_response(
        self,
        message: str,
        model: str | None = None,
        history: list[dict[str, str]] | None = None,
        language: str = "en",
        gen_settings: GenerationSettings | None = None,
    ) -> AIReply:
        model = model or settings.default_model
        gen_settings = gen_settings or GenerationSettings()
        messages = self.prepare_messages(message, history, language)

        reply: AIReply | None = None
        answered_by: ChatProvider | None = None
        last_error: AIServiceError | None = None
        for provider in self.resolve_providers(model, language):
            target_model = model if provider.serves(model) else provider.default_model
            try:
                reply = await provider.generate(messages, target_model, gen_settings)
                answered_by = provider
                break
            except AIServiceError as e:
                logger.error(f"AI generation error from {provider.name} ({target_model}): {e.message}")
                last_error = e

        if reply is None or answered_by is None:
            raise AIServiceError(
                "Failed to generate AI response",
                details={"model": model, "reason": last_error.message if last_error else None},
            ) from last_error

        if answered_by.name != self.get_provider_name(model):
            reply.metadata["failover_from"] = model

        if language == "ar" and not answered_by.has(ARABIC) and self.translator is not None:
            result = await self.translator.translate(reply.content)
            reply.content = result.text
            reply.metadata["translation"] = "translated" if result.translated else "failed"

        return reply

    # ----- discovery -----

    def get_available_models(self) -> list[dict[str, Any]]:
        models = []
        for model_id in SELECTABLE_MODELS:
            provider = self.providers.get(MODEL_ROUTES[model_id])
            if provider is None or not provider.is_configured():
                continue
            info = next(m for m in provider.models if m.id == model_id)
            models.append(info.model_dump(by_alias=True))
        return models

    async def health_check(self) -> AIHealthStatus:
        results = {}
        for name, provider in self.providers.items():
            results[name] = await provider.health_check()
        return AIHealthStatus(providers=results, timestamp=datetime.now(UTC).isoformat())
