"""Celery tasks for CragPicks.

This module configures Celery. Results fetches and scoring runs are
triggered on demand (admin endpoint or an external scheduler); there is
no beat schedule.
"""

from celery import Celery

from app.config import get_settings

settings = get_settings()

# Create Celery application
celery_app = Celery(
    "cragpicks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "app.tasks.scoring",
    ],
)

# Celery configuration
celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Timezone
    timezone="UTC",
    enable_utc=True,
    # Task behavior
    task_track_started=True,
    task_time_limit=600,  # 10 minute hard limit
    task_soft_time_limit=540,  # 9 minute soft limit
    # Result expiration
    result_expires=3600,  # 1 hour
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,
)
