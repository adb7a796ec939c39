# app/core/config.py
"""Configuration settings for the Bilingual AI Chat API.

Uses Pydantic BaseSettings for environment variable management.
"""
import secrets
from enum import Enum

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentEnum(str, Enum):
    development = "development"
    testing = "testing"
    staging = "staging"
    production = "production"


class LogLevelEnum(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormatEnum(str, Enum):
    simple = "simple"
    json = "json"


class Settings(BaseSettings):
    # Pydantic v2 settings configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===== Application Settings =====
    app_name: str = Field(default="Bilingual AI Chat API", description="Application name")
    environment: EnvironmentEnum = Field(
        default=EnvironmentEnum.development, description="Environment type"
    )
    debug: bool = Field(default=False, description="Debug mode")
    version: str = Field(default="1.0.0", description="Application version")
    api_prefix: str = Field(default="/api/v1", description="Versioned REST prefix")
    frontend_url: str = Field(
        default="http://localhost:5173", description="Frontend base URL used in links and redirects"
    )

    # ===== Security Settings =====
    secret_key: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        description="Secret key for access, verification and reset tokens",
    )
    refresh_secret_key: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        description="Secret key for refresh tokens",
    )
    session_secret_key: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        description="Secret key signing the OAuth handoff session cookie",
    )
    algorithm: str = Field(default="HS256", description="JWT algorithm")
    jwt_issuer: str = Field(default="ai-chatbot", description="JWT issuer claim")
    jwt_audience: str = Field(default="ai-chatbot-users", description="JWT audience claim")
    access_token_expire_minutes: int = Field(default=15, description="Access token lifetime")
    refresh_token_expire_days: int = Field(default=7, description="Refresh token lifetime")
    email_verification_expire_hours: int = Field(
        default=24, description="Email verification token lifetime"
    )
    password_reset_expire_minutes: int = Field(
        default=60, description="Password reset token lifetime"
    )
    max_login_attempts: int = Field(default=5, description="Failed logins before lockout")
    lock_time_minutes: int = Field(default=120, description="Account lockout duration")

    # ===== Database Settings =====
    database_url: str | None = Field(default=None, description="Database connection URL")
    db_pool_size: int = Field(default=20, description="Database connection pool size")
    db_max_overflow: int = Field(default=0, description="Database max overflow connections")

    # Test database URL
    test_database_url: str | None = Field(default=None, description="Test database URL")

    # ===== Authentication (Google OAuth) =====
    google_client_id: str | None = Field(default=None, description="Google OAuth client ID")
    google_client_secret: str | None = Field(
        default=None, description="Google OAuth client secret"
    )
    google_callback_url: str = Field(
        default="http://localhost:8000/api/v1/auth/google/callback",
        description="Google OAuth redirect URI",
    )

    # ===== AI Providers =====
    gemini_api_key: str | None = Field(default=None, description="Google Gemini API key")
    deepseek_api_key: str | None = Field(default=None, description="DeepSeek gateway API key")
    deepseek_api_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description="OpenAI-compatible gateway serving DeepSeek models",
    )
    huggingface_api_key: str | None = Field(default=None, description="Hugging Face API key")
    huggingface_api_url: str = Field(
        default="https://api-inference.huggingface.co",
        description="Hugging Face inference API base URL",
    )
    fallback_model_id: str = Field(
        default="microsoft/DialoGPT-medium", description="Hugging Face fallback chat model"
    )
    translation_model_id: str = Field(
        default="Helsinki-NLP/opus-mt-en-ar", description="English to Arabic translation model"
    )
    default_model: str = Field(default="gemini-2.5-flash", description="Default chat model")
    ai_request_timeout: int = Field(default=60, description="AI request timeout in seconds")
    ai_history_limit: int = Field(default=20, description="History messages sent to providers")
    ai_failover_enabled: bool = Field(
        default=False, description="Try other capable providers when the primary one fails"
    )
    translation_enabled: bool = Field(
        default=True, description="Translate replies of models without native Arabic"
    )

    # ===== Redis Configuration =====
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")
    use_redis: bool = Field(default=False, description="Back rate limits with Redis")

    # ===== Rate Limiting =====
    rate_limit_enabled: bool = Field(default=True, description="Enable rate limiting")
    rate_limit_auth: str = Field(default="15/15 minutes", description="Auth endpoints limit")
    rate_limit_api: str = Field(default="30/minute", description="General API limit")
    rate_limit_chat: str = Field(default="60/minute", description="Chat send limit")
    rate_limit_upload: str = Field(default="10/15 minutes", description="Upload limit")
    rate_limit_ai_summary: str = Field(default="20/hour", description="AI summary limit")
    rate_limit_strict: str = Field(default="3/hour", description="Sensitive operations limit")

    # ===== Uploads =====
    upload_dir: str = Field(default="uploads", description="Directory for uploaded files")
    max_avatar_size: int = Field(default=5 * 1024 * 1024, description="Maximum avatar size (5MB)")
    allowed_avatar_types: str = Field(
        default="image/jpeg,image/png,image/gif", description="Allowed avatar MIME types"
    )

    # ===== CORS Settings =====
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173,http://127.0.0.1:5173",
        description="Allowed CORS origins (comma-separated)",
    )

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def allowed_avatar_types_list(self) -> list[str]:
        return [t.strip() for t in self.allowed_avatar_types.split(",") if t.strip()]

    # ===== Background Tasks (Celery) =====
    celery_broker_url: str = Field(
        default="redis://localhost:6379/1", description="Celery broker URL"
    )
    celery_result_backend: str = Field(
        default="redis://localhost:6379/2", description="Celery result backend"
    )
    counter_reconcile_minutes: int = Field(
        default=60, description="Interval of the chat counter reconciliation job"
    )

    # ===== Email Configuration =====
    smtp_host: str | None = Field(default=None, description="SMTP host")
    smtp_port: int = Field(default=587, description="SMTP port")
    smtp_user: str | None = Field(default=None, description="SMTP username")
    smtp_password: str | None = Field(default=None, description="SMTP password")
    smtp_use_tls: bool = Field(default=True, description="Use STARTTLS")
    email_from: str | None = Field(default=None, description="Email from address")

    # ===== Monitoring & Logging =====
    log_level: LogLevelEnum = Field(default=LogLevelEnum.INFO, description="Logging level")
    log_format: LogFormatEnum = Field(default=LogFormatEnum.simple, description="Log format")

    # ===== WebSocket Configuration =====
    websocket_heartbeat_interval: int = Field(
        default=30, description="WebSocket heartbeat interval"
    )
    websocket_max_connections: int = Field(
        default=1000, description="Maximum WebSocket connections"
    )

    # ===== Server Settings =====
    host: str = Field(default="127.0.0.1", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")

    # ===== Computed Properties =====
    @property
    def is_development(self) -> bool:
        return self.environment == EnvironmentEnum.development

    @property
    def is_production(self) -> bool:
        return self.environment == EnvironmentEnum.production

    @property
    def is_testing(self) -> bool:
        return self.environment == EnvironmentEnum.testing

    @property
    def has_ai_enabled(self) -> bool:
        return bool(self.gemini_api_key or self.deepseek_api_key)

    @property
    def has_email_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user)

    @property
    def has_google_oauth(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)

    # ===== Validation Methods =====
    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        if v and isinstance(v, str):
            lv = v.lower()
            if lv in ["dev", "develop"]:
                return "development"
            if lv in ["prod"]:
                return "production"
            if lv in ["test"]:
                return "testing"
        return v

    @field_validator("max_avatar_size")
    @classmethod
    def validate_avatar_size(cls, v):
        if v > 20 * 1024 * 1024:
            raise ValueError("Maximum avatar size cannot exceed 20MB")
        return v

    @field_validator("ai_history_limit")
    @classmethod
    def validate_history_limit(cls, v):
        if v < 1:
            raise ValueError("AI history limit must be at least 1")
        return v

    @model_validator(mode="after")
    def set_computed_fields(self):
        self.frontend_url = self.frontend_url.rstrip("/")
        return self


settings = Settings()


class ConfigValidator:
    @staticmethod
    def validate_required_settings():
        errors = []
        if not settings.database_url:
            errors.append("DATABASE_URL is required")
        if settings.is_production and not settings.has_ai_enabled:
            errors.append("GEMINI_API_KEY or DEEPSEEK_API_KEY is required in production")
        if settings.is_production and settings.use_redis and not settings.redis_url:
            errors.append("REDIS_URL is required when USE_REDIS is set")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

    @staticmethod
    def get_feature_status() -> dict:
        return {
            "ai_enabled": settings.has_ai_enabled,
            "gemini": bool(settings.gemini_api_key),
            "deepseek": bool(settings.deepseek_api_key),
            "translation": settings.translation_enabled,
            "email_enabled": settings.has_email_enabled,
            "google_oauth": settings.has_google_oauth,
            "redis_rate_limits": settings.use_redis,
            "environment": settings.environment,
        }


def get_config_summary() -> dict:
    return {
        "app_name": settings.app_name,
        "version": settings.version,
        "environment": settings.environment,
        "debug": settings.debug,
        "features": ConfigValidator.get_feature_status(),
        "database_configured": bool(settings.database_url),
    }


__all__ = [
    "settings",
    "Settings",
    "ConfigValidator",
    "get_config_summary",
    "EnvironmentEnum",
    "LogLevelEnum",
    "LogFormatEnum",
]
