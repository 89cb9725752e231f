"""Celery worker configuration."""

from celery import Celery

from ugc_engine.config import settings
from ugc_engine.logging import setup_logging

# Setup logging before anything else
setup_logging()

# Create Celery app
celery_app = Celery(
    "ugc_engine",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Task execution
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=3600,  # Veo clips can take several minutes per item
    task_soft_time_limit=3300,
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,
    # Result backend
    result_expires=86400,  # 24 hours
    # Task routing
    task_routes={
        "generation.run_batch": {"queue": "high"},
    },
)

# Auto-discover tasks
celery_app.autodiscover_tasks(["ugc_engine.jobs"])
