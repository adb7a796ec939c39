"""AI provider schemas."""

from typing import Any

from pydantic import BaseModel, Field


class GenerationSettings(BaseModel):
    """Sampling parameters forwarded to providers."""

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2000, ge=1, le=32000)
    top_p: float = Field(default=1.0, ge=0.0, le=1.0)

    @classmethod
    def from_chat_settings(cls, chat_settings: dict[str, Any] | None) -> "GenerationSettings":
        """Build from the camelCase JSON stored on a chat."""
        chat_settings = chat_settings or {}
        values: dict[str, Any] = {}
        if chat_settings.get("temperature") is not None:
            values["temperature"] = chat_settings["temperature"]
        if chat_settings.get("maxTokens") is not None:
            values["max_tokens"] = chat_settings["maxTokens"]
        if chat_settings.get("topP") is not None:
            values["top_p"] = chat_settings["topP"]
        return cls(**values)


class AIReply(BaseModel):
    """A generated assistant reply."""

    content: str
    tokens: int = 0
    model: str
    provider: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class ModelInfo(BaseModel):
    """A model offered to clients."""

    id: str
    name: str
    provider: str
    premium: bool = False
    supports_arabic: bool = Field(default=True, serialization_alias="supportsArabic")


class TranslationResult(BaseModel):
    text: str
    translated: bool


class AIHealthStatus(BaseModel):
    providers: dict[str, bool]
    timestamp: str
