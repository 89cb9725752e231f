"""Tests for the Celery pipeline task body."""

from uuid import uuid4

from ugc_engine.jobs.generation_tasks import execute_batch
from ugc_engine.services.generation import GenerationService, enqueue_with_celery


def test_execute_batch_summarises_run(service: GenerationService, parsed_brief) -> None:
    batch = service.start_batch(parsed_brief.id, 2, enqueue=False)

    result = execute_batch(service, batch.id)

    assert result["success"] is True
    assert result["batch_id"] == str(batch.id)
    assert result["status"] == "completed"
    assert result["completed"] == 2
    assert result["failed"] == 0
    assert result["total_cost"] == "3.049000"


def test_execute_batch_is_safe_to_redeliver(service: GenerationService, parsed_brief) -> None:
    batch = service.start_batch(parsed_brief.id, 1, enqueue=False)
    first = execute_batch(service, batch.id)

    second = execute_batch(service, batch.id)

    assert second == first


def test_execute_missing_batch(service: GenerationService) -> None:
    result = execute_batch(service, uuid4())

    assert result["success"] is False
    assert "not found" in result["error"]


def test_task_registered() -> None:
    from ugc_engine.worker import celery_app

    assert "generation.run_batch" in celery_app.tasks


def test_enqueue_uses_task_delay(monkeypatch) -> None:
    from ugc_engine.jobs import generation_tasks

    class FakeResult:
        id = "celery-task-1"

    sent = []
    monkeypatch.setattr(
        generation_tasks.run_batch_task, "delay", lambda batch_id: sent.append(batch_id) or FakeResult()
    )
    batch_id = uuid4()

    assert enqueue_with_celery(batch_id) == "celery-task-1"
    assert sent == [str(batch_id)]
