"""Celery application for outcome delivery and maintenance."""

from celery import Celery
from celery.schedules import crontab

from app.config import get_settings

settings = get_settings()

celery_app = Celery(
    "barberq",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "app.tasks.notifications",
        "app.tasks.cleanup",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Outcome delivery is latency sensitive; keep it off the maintenance queue
    task_routes={
        "app.tasks.notifications.*": {"queue": "notifications"},
        "app.tasks.cleanup.*": {"queue": "maintenance"},
    },
    task_default_queue="notifications",

    # A lost worker re-delivers the outcome rather than dropping it
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=60,
    worker_prefetch_multiplier=1,

    # Delivery results are only useful for a short while
    result_expires=1800,

    beat_schedule={
        "cleanup-old-function-traces": {
            "task": "app.tasks.cleanup.cleanup_old_function_traces",
            "schedule": crontab(hour=3, minute=0),
            "args": [settings.trace_retention_days],
        },
    },
)
