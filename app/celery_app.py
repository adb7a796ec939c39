"""Celery application configuration."""

from celery import Celery

from app.core.config import settings

# Create Celery instance
celery_app = Celery(
    "bilingual_chat",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.tasks.chat_tasks"],
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
    worker_prefetch_multiplier=4,
    worker_max_tasks_per_child=1000,
)

# Periodic jobs (celery beat)
celery_app.conf.beat_schedule = {
    "reconcile-chat-counters": {
        "task": "app.tasks.chat_tasks.reconcile_chat_counters_task",
        "schedule": settings.counter_reconcile_minutes * 60,
        "options": {"expires": settings.counter_reconcile_minutes * 60},
    },
}

celery_app.conf.task_routes = {
    "app.tasks.chat_tasks.*": {"queue": "maintenance"},
}
