"""Celery tasks for chat maintenance."""

import asyncio
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import all models to ensure they're registered before creating session
import models  # noqa: F401
from app.celery_app import celery_app
from app.database import DB_URL
from app.domains.chat.service import ChatService

logger = logging.getLogger(__name__)


async def _reconcile_async() -> dict[str, Any]:
    # Each task run owns its event loop, so it gets its own engine too
    engine = create_async_engine(DB_URL, pool_pre_ping=True)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with session_maker() as session:
            corrected = await ChatService(session).reconcile_counters()
        return {"chats_corrected": corrected}
    finally:
        await engine.dispose()


@celery_app.task(name="app.tasks.chat_tasks.reconcile_chat_counters_task", bind=True)
def reconcile_chat_counters_task(self) -> dict[str, Any]:
    """Recompute denormalized chat counters from Message rows.

    Returns:
        Dictionary with the number of corrected chats
    """
    logger.info(f"🚀 Starting chat counter reconciliation (Task ID: {self.request.id})")
    try:
        result = asyncio.run(_reconcile_async())
    except Exception as e:
        logger.error(f"❌ Chat counter reconciliation failed: {str(e)}")
        raise self.retry(exc=e, countdown=60 * 5, max_retries=3)
    logger.info(f"✅ Chat counter reconciliation finished: {result}")
    return result
