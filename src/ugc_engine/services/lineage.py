"""Lineage tracker: "iterate on winner" and batch ancestry."""

from uuid import UUID

from ugc_engine.domain.enums import GenerationStatus, QualityStatus
from ugc_engine.domain.models import Batch
from ugc_engine.errors import ValidationError
from ugc_engine.logging import get_logger
from ugc_engine.services.store import GenerationStore

logger = get_logger(__name__)


class LineageTracker:
    """Creates child batches and walks the batch forest."""

    def __init__(self, store: GenerationStore) -> None:
        self.store = store

    def create_iteration(
        self,
        source_item_id: UUID,
        target_count: int,
        variation_intent: str | None = None,
    ) -> Batch:
        """Start a new batch from an approved item.

        The new batch runs on the source item's brief with the variation
        intent folded in, and points back at the source item's batch. It
        starts with no cost history.

        Raises:
            NotFoundError: The item does not exist
            ValidationError: The item is not completed and approved, its
                batch is still running, the brief is not parsed, or the
                count is out of range
        """
        item = self.store.get_item(source_item_id)
        if item.status is not GenerationStatus.COMPLETED:
            raise ValidationError(
                "Only completed videos can be iterated on",
                fields={"status": str(item.status)},
            )
        if item.quality_status is not QualityStatus.APPROVED:
            raise ValidationError(
                "Video must be approved before iterating",
                fields={"quality_status": str(item.quality_status)},
            )
        self.store.validate_target_count(target_count)

        source_batch = self.store.get_batch(item.batch_id)
        if source_batch.status is not GenerationStatus.COMPLETED:
            raise ValidationError(
                "Source generation must finish before iterating",
                fields={"status": str(source_batch.status)},
            )
        brief = self.store.get_brief(source_batch.brief_id)
        if not brief.is_parsed:
            raise ValidationError(
                "Brief must be parsed before iterating",
                fields={"brief_id": str(brief.id)},
            )

        intent = variation_intent.strip() if variation_intent else None
        batch = self.store.create_batch(
            brief.id,
            target_count,
            parent_id=source_batch.id,
            source_item_id=item.id,
            variation_intent=intent or None,
        )
        logger.info(
            "iteration_created",
            batch_id=str(batch.id),
            parent_id=str(source_batch.id),
            source_item_id=str(item.id),
        )
        return batch

    def retry_failed(self, batch_id: UUID) -> Batch:
        """Start a child batch on the same brief sized to the failed items.

        Raises:
            ValidationError: The batch is still running or has no failed items
        """
        batch = self.store.get_batch(batch_id)
        if batch.progress.pending or batch.progress.in_progress:
            raise ValidationError(
                "Generation is still in progress",
                fields={"status": str(batch.status)},
            )
        if not batch.progress.failed:
            raise ValidationError("Generation has no failed videos to retry")

        brief = self.store.get_brief(batch.brief_id)
        if not brief.is_parsed:
            raise ValidationError(
                "Brief must be parsed before retrying",
                fields={"brief_id": str(brief.id)},
            )

        child = self.store.create_batch(
            brief.id,
            batch.progress.failed,
            parent_id=batch.id,
            variation_intent=batch.variation_intent,
        )
        logger.info(
            "retry_batch_created",
            batch_id=str(child.id),
            parent_id=str(batch.id),
            target_count=child.target_count,
        )
        return child

    def ancestry(self, batch_id: UUID) -> list[Batch]:
        """Ancestors of a batch, nearest parent first."""
        chain: list[Batch] = []
        seen = {batch_id}
        parent_id = self.store.get_batch(batch_id).parent_id
        while parent_id is not None and parent_id not in seen:
            seen.add(parent_id)
            parent = self.store.get_batch(parent_id)
            chain.append(parent)
            parent_id = parent.parent_id
        return chain

    def children(self, batch_id: UUID) -> list[Batch]:
        """Direct children of a batch, oldest first."""
        return [self.store.get_batch(child_id) for child_id in self.store.child_ids(batch_id)]
