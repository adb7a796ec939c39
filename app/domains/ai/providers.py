"""Chat providers: Gemini, a DeepSeek gateway and the Hugging Face fallback.

Each provider declares the models it serves and a set of capabilities:

* ``chat``     general conversation
* ``arabic``   answers natively in Arabic, no translation pass needed
* ``fallback`` last resort that never raises; it answers with an apology
"""

import asyncio
import logging
from typing import Any

import google.generativeai as genai
import httpx

from app.core.config import settings
from app.exceptions.ai import (
    AIConfigurationError,
    AIContentFilterError,
    AIProviderError,
    AIServiceUnavailableError,
    AITimeoutError,
)
from app.schemas.ai import AIReply, GenerationSettings, ModelInfo

logger = logging.getLogger(__name__)

CHAT = "chat"
ARABIC = "arabic"
FALLBACK = "fallback"

FALLBACK_APOLOGY = (
    "I apologize, but I am currently experiencing technical difficulties. Please try again later."
)
FALLBACK_EMPTY = "I apologize, but I am unable to generate a response at this time."


def flatten_transcript(messages: list[dict[str, str]], include_system: bool = False) -> str:
    """Render a message list as ``User:`` / ``Assistant:`` turns."""
    lines = []
    for msg in messages:
        role = msg["role"]
        if role == "system" and not include_system:
            continue
        label = {"user": "User", "assistant": "Assistant", "system": "System"}.get(role, role)
        lines.append(f"{label}: {msg['content']}")
    return "\n\n".join(lines)


class ChatProvider:
    """Interface shared by all providers."""

    name: str = ""
    capabilities: frozenset[str] = frozenset()
    models: tuple[ModelInfo, ...] = ()

    @property
    def default_model(self) -> str:
        return self.models[0].id if self.models else self.name

    def is_configured(self) -> bool:
        return True

    def serves(self, model: str) -> bool:
        return any(info.id == model for info in self.models)

    def has(self, capability: str) -> bool:
        return capability in self.capabilities

    async def generate(
        self, messages: list[dict[str, str]], model: str, gen_settings: GenerationSettings
    ) -> AIReply:
        raise NotImplementedError

    async def health_check(self) -> bool:
        return self.is_configured()

    async def close(self) -> None:
        return None


class GeminiProvider(ChatProvider):
    """Google Gemini through the ``google-generativeai`` SDK."""

    name = "gemini"
    capabilities = frozenset({CHAT, ARABIC})
    models = (
        ModelInfo(id="gemini-2.5-flash", name="Gemini Flash", provider="Google"),
        ModelInfo(id="gemini-2.5-pro", name="Gemini Pro", provider="Google"),
    )

    def __init__(self, api_key: str | None = None, timeout: int | None = None):
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.timeout = timeout or settings.ai_request_timeout
        if self.api_key:
            genai.configure(api_key=self.api_key)
            logger.info("Google Gemini provider initialized")

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def generate(
        self, messages: list[dict[str, str]], model: str, gen_settings: GenerationSettings
    ) -> AIReply:
        if not self.is_configured():
            raise AIConfigurationError("Gemini provider not configured")

        system_prompt = next((m["content"] for m in messages if m["role"] == "system"), None)
        prompt = flatten_transcript(messages)

        gen_model = genai.GenerativeModel(model_name=model, system_instruction=system_prompt)
        generation_config = genai.types.GenerationConfig(
            candidate_count=1,
            temperature=gen_settings.temperature,
            max_output_tokens=gen_settings.max_tokens,
            top_p=gen_settings.top_p,
        )

        try:
            # Run the synchronous Gemini API call in a thread pool
            loop = asyncio.get_running_loop()
            response = await asyncio.wait_for(
                loop.run_in_executor(
                    None,
                    lambda: gen_model.generate_content(prompt, generation_config=generation_config),
                ),
                timeout=self.timeout,
            )
        except TimeoutError:
            raise AITimeoutError("Gemini request timed out") from None
        except Exception as e:
            logger.error(f"Gemini API error: {str(e)}")
            raise AIProviderError(f"Gemini API failed: {str(e)}", provider=self.name) from e

        try:
            text = response.text
        except ValueError as e:
            # .text raises when the candidate was blocked or is empty
            logger.error(f"Gemini returned no text: {str(e)}")
            raise AIContentFilterError() from e

        usage = getattr(response, "usage_metadata", None)
        tokens = getattr(usage, "total_token_count", 0) or 0
        return AIReply(content=text, tokens=tokens, model=model, provider=self.name)

    async def health_check(self) -> bool:
        if not self.is_configured():
            return False
        try:
            loop = asyncio.get_running_loop()
            await asyncio.wait_for(
                loop.run_in_executor(None, lambda: next(iter(genai.list_models()), None)),
                timeout=self.timeout,
            )
            return True
        except Exception as e:
            logger.error(f"Gemini health check failed: {str(e)}")
            return False


class DeepSeekProvider(ChatProvider):
    """DeepSeek models behind an OpenAI-compatible gateway."""

    name = "deepseek"
    capabilities = frozenset({CHAT, ARABIC})
    models = (
        ModelInfo(id="deepseek/deepseek-chat-v3.1:free", name="DeepSeek", provider="DeepSeek"),
    )

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str | None = None,
        base_url: str | None = None,
    ):
        self.client = client
        self.api_key = api_key if api_key is not None else settings.deepseek_api_key
        self.base_url = (base_url or settings.deepseek_api_url).rstrip("/")

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    async def generate(
        self, messages: list[dict[str, str]], model: str, gen_settings: GenerationSettings
    ) -> AIReply:
        if not self.is_configured():
            raise AIConfigurationError("DEEPSEEK_API_KEY is not configured")

        body = {
            "model": model,
            "messages": messages,
            "temperature": gen_settings.temperature,
            "max_tokens": gen_settings.max_tokens,
            "top_p": gen_settings.top_p,
        }
        try:
            response = await self.client.post(
                f"{self.base_url}/chat/completions", json=body, headers=self._headers()
            )
            response.raise_for_status()
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except httpx.TimeoutException:
            raise AITimeoutError("DeepSeek request timed out") from None
        except httpx.HTTPStatusError as e:
            logger.error(
                f"DeepSeek API error: status={e.response.status_code} body={e.response.text[:500]}"
            )
            raise AIProviderError(
                f"DeepSeek API failed with status {e.response.status_code}",
                provider=self.name,
                details={"status": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"DeepSeek API unreachable: {str(e)}")
            raise AIServiceUnavailableError(f"DeepSeek API failed: {str(e)}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise AIProviderError("DeepSeek returned an unexpected payload", provider=self.name) from e

        usage = data.get("usage") or {}
        return AIReply(
            content=content,
            tokens=usage.get("total_tokens") or 0,
            model=data.get("model") or model,
            provider=self.name,
        )

    async def health_check(self) -> bool:
        if not self.is_configured():
            return False
        try:
            response = await self.client.get(f"{self.base_url}/models", headers=self._headers())
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error(f"DeepSeek health check failed: {str(e)}")
            return False


class HuggingFaceFallbackProvider(ChatProvider):
    """Free Hugging Face conversational model; answers with an apology on failure."""

    name = "huggingface"
    capabilities = frozenset({CHAT, FALLBACK})

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str | None = None,
        base_url: str | None = None,
        model_id: str | None = None,
    ):
        self.client = client
        self.api_key = api_key if api_key is not None else settings.huggingface_api_key
        self.base_url = (base_url or settings.huggingface_api_url).rstrip("/")
        self.model_id = model_id or settings.fallback_model_id
        self.models = (
            ModelInfo(
                id=self.model_id,
                name=self.model_id.split("/")[-1],
                provider="Hugging Face",
                supports_arabic=False,
            ),
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def generate(
        self, messages: list[dict[str, str]], model: str, gen_settings: GenerationSettings
    ) -> AIReply:
        prompt = "\n".join(f"{m['role']}: {m['content']}" for m in messages)
        body: dict[str, Any] = {
            "inputs": prompt,
            "parameters": {
                "max_length": gen_settings.max_tokens,
                "temperature": gen_settings.temperature,
            },
        }
        try:
            response = await self.client.post(
                f"{self.base_url}/models/{self.model_id}", json=body, headers=self._headers()
            )
            response.raise_for_status()
            data = response.json()
            generated = data[0].get("generated_text") if data else None
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            logger.error(f"Fallback model error: {str(e)}")
            return AIReply(content=FALLBACK_APOLOGY, tokens=0, model="fallback", provider=self.name)

        return AIReply(
            content=generated or FALLBACK_EMPTY,
            tokens=0,
            model=self.model_id.split("/")[-1].lower(),
            provider=self.name,
        )

    async def health_check(self) -> bool:
        try:
            response = await self.client.get(f"{self.base_url}/status", headers=self._headers())
            return response.status_code < 500
        except httpx.HTTPError as e:
            logger.error(f"Hugging Face health check failed: {str(e)}")
            return False
