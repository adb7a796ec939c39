"""English to Arabic translation for replies from models without native Arabic."""

import logging

import httpx

from app.core.config import settings
from app.schemas.ai import TranslationResult

logger = logging.getLogger(__name__)


class ArabicTranslator:
    """Hugging Face ``opus-mt-en-ar`` translation.

    Failures never raise: the original text comes back with
    ``translated=False`` so the caller can flag the reply.
    """

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
        self.model_id = model_id or settings.translation_model_id

    async def translate(self, text: str) -> TranslationResult:
        if not text.strip():
            return TranslationResult(text=text, translated=False)

        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        try:
            response = await self.client.post(
                f"{self.base_url}/models/{self.model_id}",
                json={"inputs": text},
                headers=headers,
            )
            response.raise_for_status()
            data = response.json()
            translated = data[0].get("translation_text") if data else None
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Translation error, keeping original text: {str(e)}")
            return TranslationResult(text=text, translated=False)

        if not translated:
            logger.warning("Translation returned no text, keeping original text")
            return TranslationResult(text=text, translated=False)
        return TranslationResult(text=translated, translated=True)
