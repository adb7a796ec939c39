"""Named rate limiters backed by slowapi.

Each limiter is a shared scope, so all routes decorated with the same limiter
draw from one counter per client key. Limits are read from settings on every
request and storage is in-memory unless ``USE_REDIS`` is set.
"""

import logging

import redis
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

logger = logging.getLogger(__name__)

MEMORY_STORAGE = "memory://"


def get_client_ip(request: Request) -> str:
    """Client IP, honouring the usual reverse-proxy headers."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return get_remote_address(request)


def get_user_or_ip(request: Request) -> str:
    """Authenticated user id when the auth dependency already ran, else the IP."""
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_client_ip(request)}"


def resolve_storage_uri() -> str:
    if not settings.use_redis:
        return MEMORY_STORAGE

    client = redis.from_url(settings.redis_url)
    try:
        client.ping()
    except redis.RedisError as e:
        logger.warning(f"⚠️ Redis unavailable, rate limits use in-memory storage: {e}")
        return MEMORY_STORAGE
    finally:
        client.close()

    logger.info("✅ Rate limiter initialized with Redis storage")
    return settings.redis_url


def create_limiter() -> Limiter:
    limiter = Limiter(
        key_func=get_client_ip,
        storage_uri=resolve_storage_uri(),
        enabled=settings.rate_limit_enabled,
    )
    return limiter


limiter = create_limiter()


def _named_limit(name: str, key_func):
    setting = f"rate_limit_{name}"
    return limiter.shared_limit(
        lambda: getattr(settings, setting),
        scope=name,
        key_func=key_func,
        error_message=f"rate_limit.{name}",
    )


auth_limit = _named_limit("auth", get_client_ip)
api_limit = _named_limit("api", get_user_or_ip)
chat_limit = _named_limit("chat", get_user_or_ip)
upload_limit = _named_limit("upload", get_user_or_ip)
ai_summary_limit = _named_limit("ai_summary", get_user_or_ip)
strict_limit = _named_limit("strict", get_client_ip)
