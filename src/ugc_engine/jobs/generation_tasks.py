"""Celery tasks for the generation pipeline."""

from typing import Any
from uuid import UUID

from ugc_engine.errors import AppError, NotFoundError
from ugc_engine.logging import get_logger
from ugc_engine.services.generation import GenerationService
from ugc_engine.utils.async_utils import run_async
from ugc_engine.worker import celery_app

logger = get_logger(__name__)


def execute_batch(service: GenerationService, batch_id: UUID) -> dict[str, Any]:
    """Run a batch and summarise the outcome.

    A fault before any item starts (unknown provider, missing brief) fails
    the whole batch; item failures are recorded per item by the driver.
    """
    try:
        batch = run_async(service.run_batch(batch_id))
    except NotFoundError as e:
        logger.error("batch_not_found", batch_id=str(batch_id))
        return {"success": False, "batch_id": str(batch_id), "error": str(e)}
    except AppError as e:
        logger.error("batch_run_failed", batch_id=str(batch_id), error=str(e), error_code=e.code)
        service.store.fail_batch(batch_id, str(e))
        return {"success": False, "batch_id": str(batch_id), "error": str(e)}

    return {
        "success": True,
        "batch_id": str(batch_id),
        "status": str(batch.status),
        "completed": batch.progress.completed,
        "failed": batch.progress.failed,
        "total_cost": str(batch.total_cost),
    }


@celery_app.task(bind=True, name="generation.run_batch", acks_late=True)
def run_batch_task(self: Any, batch_id: str) -> dict[str, Any]:
    """Advance every item of a batch through the pipeline.

    Re-delivery is safe: terminal items are skipped and stages whose output
    is already stored are not re-run.

    Args:
        batch_id: UUID of the generation to run
    """
    task_id = self.request.id
    logger.info("run_batch_task_started", task_id=task_id, batch_id=batch_id)

    result = execute_batch(GenerationService(), UUID(batch_id))

    logger.info("run_batch_task_finished", task_id=task_id, **result)
    return result
