"""Celery job definitions."""

from ugc_engine.jobs.generation_tasks import run_batch_task

__all__ = ["run_batch_task"]
