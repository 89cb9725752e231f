"""Generation service: the inbound operations used by the API, CLI and worker."""

from collections.abc import Callable
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.orm import Session

from ugc_engine.adapters.gateway import ProviderGateway
from ugc_engine.config import Settings, get_settings
from ugc_engine.db.session import SessionLocal
from ugc_engine.domain.enums import GenerationStatus, QualityStatus
from ugc_engine.domain.models import Batch, Brief, Item
from ugc_engine.errors import UploadError, ValidationError
from ugc_engine.logging import get_logger
from ugc_engine.services.brief_parser import parse_brief
from ugc_engine.services.cost_ledger import CostBreakdown, CostLedger, CostStats
from ugc_engine.services.lineage import LineageTracker
from ugc_engine.services.orchestrator import StageDriver
from ugc_engine.services.store import GenerationStore

logger = get_logger(__name__)

Enqueue = Callable[[UUID], str | None]


@dataclass
class Lineage:
    """A batch with its ancestors (nearest first) and direct children."""

    batch: Batch
    ancestors: list[Batch] = field(default_factory=list)
    children: list[Batch] = field(default_factory=list)


def enqueue_with_celery(batch_id: UUID) -> str | None:
    """Queue the pipeline task for a batch. Returns the Celery task id."""
    from ugc_engine.jobs.generation_tasks import run_batch_task

    result = run_batch_task.delay(str(batch_id))
    return result.id


class GenerationService:
    """Facade over the store, stage driver, ledger and lineage tracker."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        gateway: ProviderGateway | None = None,
        enqueue: Enqueue | None = None,
        config: Settings | None = None,
        driver: StageDriver | None = None,
    ) -> None:
        self.config = config or get_settings()
        self.ledger = CostLedger(session_factory)
        self.store = GenerationStore(session_factory, ledger=self.ledger, config=self.config)
        self.lineage = LineageTracker(self.store)
        self._gateway = gateway
        self._driver = driver
        self._enqueue = enqueue or enqueue_with_celery

    @property
    def driver(self) -> StageDriver:
        """Stage driver, built on first use so provider config errors surface at run time."""
        if self._driver is None:
            gateway = self._gateway or ProviderGateway.from_settings(self.config)
            self._driver = StageDriver(self.store, gateway, ledger=self.ledger, config=self.config)
        return self._driver

    # -- briefs ---------------------------------------------------------

    def create_brief(self, raw_input: str, parse: bool = False) -> Brief:
        brief = self.store.create_brief(raw_input)
        if parse:
            brief = self.parse_brief(brief.id)
        return brief

    def parse_brief(self, brief_id: UUID) -> Brief:
        brief = self.store.get_brief(brief_id)
        return self.store.set_parsed(brief_id, parse_brief(brief.raw_input))

    def update_brief(self, brief_id: UUID, raw_input: str) -> Brief:
        """Replace the brief text; the brief must be parsed again before generating."""
        return self.store.update_brief(brief_id, raw_input)

    def duplicate_brief(self, brief_id: UUID) -> Brief:
        return self.store.duplicate_brief(brief_id)

    def get_brief(self, brief_id: UUID) -> Brief:
        return self.store.get_brief(brief_id)

    def list_briefs(self, limit: int = 50, offset: int = 0) -> list[Brief]:
        return self.store.list_briefs(limit=limit, offset=offset)

    def delete_brief(self, brief_id: UUID) -> None:
        self.store.delete_brief(brief_id)

    # -- batches --------------------------------------------------------

    def start_batch(
        self,
        brief_id: UUID,
        target_count: int,
        enqueue: bool | None = None,
    ) -> Batch:
        """Create a batch of PENDING items and, by default, queue it.

        Raises:
            NotFoundError: The brief does not exist
            ValidationError: Count out of range or brief not parsed
        """
        self.store.validate_target_count(target_count)
        brief = self.store.get_brief(brief_id)
        if not brief.is_parsed:
            raise ValidationError(
                "Brief must be parsed before generating",
                fields={"brief_id": str(brief_id)},
            )

        batch = self.store.create_batch(brief_id, target_count)
        return self._maybe_enqueue(batch, enqueue)

    async def run_batch(self, batch_id: UUID) -> Batch:
        """Run a batch to completion in the current process."""
        return await self.driver.run_batch(batch_id)

    def get_batch(self, batch_id: UUID) -> Batch:
        return self.store.get_batch(batch_id)

    def list_batches(
        self,
        brief_id: UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Batch]:
        return self.store.list_batches(brief_id=brief_id, limit=limit, offset=offset)

    def cancel_batch(self, batch_id: UUID) -> Batch:
        return self.store.cancel_batch(batch_id)

    def create_iteration(
        self,
        item_id: UUID,
        target_count: int,
        variation_intent: str | None = None,
        enqueue: bool | None = None,
    ) -> Batch:
        batch = self.lineage.create_iteration(item_id, target_count, variation_intent)
        return self._maybe_enqueue(batch, enqueue)

    def retry_failed(self, batch_id: UUID, enqueue: bool | None = None) -> Batch:
        batch = self.lineage.retry_failed(batch_id)
        return self._maybe_enqueue(batch, enqueue)

    def get_lineage(self, batch_id: UUID) -> Lineage:
        return Lineage(
            batch=self.store.get_batch(batch_id),
            ancestors=self.lineage.ancestry(batch_id),
            children=self.lineage.children(batch_id),
        )

    def _maybe_enqueue(self, batch: Batch, enqueue: bool | None) -> Batch:
        should_enqueue = self.config.auto_enqueue if enqueue is None else enqueue
        if not should_enqueue:
            return batch

        task_id = self._enqueue(batch.id)
        if task_id:
            self.store.set_task_id(batch.id, task_id)
        logger.info("batch_enqueued", batch_id=str(batch.id), task_id=task_id)
        return batch

    # -- items ----------------------------------------------------------

    def get_item(self, item_id: UUID) -> Item:
        return self.store.get_item(item_id)

    def list_items(
        self,
        status: GenerationStatus | None = None,
        quality_status: QualityStatus | None = None,
        brief_id: UUID | None = None,
        batch_id: UUID | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Item], int]:
        return self.store.list_items(
            status=status,
            quality_status=quality_status,
            brief_id=brief_id,
            batch_id=batch_id,
            limit=limit,
            offset=offset,
        )

    async def delete_item(self, item_id: UUID) -> None:
        """Delete a finished video and its stored file.

        Cost history stays on the batch. A storage failure is logged and does
        not undo the delete.
        """
        storage_key = self.store.delete_item(item_id)
        if storage_key is None:
            return

        storage = self.driver.gateway.storage
        try:
            await storage.delete(storage_key)
        except UploadError as e:
            logger.warning(
                "stored_video_delete_failed",
                item_id=str(item_id),
                key=storage_key,
                error=e.message,
            )

    def review_item(
        self,
        item_id: UUID,
        quality_status: QualityStatus,
        note: str | None = None,
    ) -> Item:
        return self.store.set_quality(item_id, quality_status, note)

    # -- costs ----------------------------------------------------------

    def get_item_costs(self, item_id: UUID) -> CostBreakdown:
        self.store.get_item(item_id)
        return self.ledger.breakdown_by_item(item_id)

    def get_cost_stats(self) -> CostStats:
        return self.ledger.stats()
