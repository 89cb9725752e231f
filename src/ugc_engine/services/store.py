"""Generation record store.

Durable state for briefs, batches and items, and the single place where
item status transitions are checked and written. Every method opens its own
short transaction and returns domain objects, never ORM rows.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ugc_engine.config import Settings, get_settings
from ugc_engine.db.models import BriefModel, GenerationModel, VideoModel
from ugc_engine.db.session import SessionLocal, session_scope
from ugc_engine.domain.enums import BriefStatus, GenerationStatus, QualityStatus
from ugc_engine.domain.models import (
    AvatarClip,
    Batch,
    BatchProgress,
    Brief,
    BRollClip,
    ComposedMedia,
    Item,
    ParsedBrief,
    Script,
    derive_batch_status,
)
from ugc_engine.errors import NotFoundError, ValidationError
from ugc_engine.logging import get_logger
from ugc_engine.services.cost_ledger import CostLedger

logger = get_logger(__name__)

CANCELLED_MESSAGE = "Cancelled"


def _now() -> datetime:
    return datetime.now(UTC)


def _to_brief(row: BriefModel) -> Brief:
    return Brief(
        id=row.id,
        raw_input=row.raw_input,
        status=BriefStatus(row.status),
        parsed=ParsedBrief.from_dict(row.parsed_data) if row.parsed_data else None,
        created_at=row.created_at,
    )


def _to_item(row: VideoModel) -> Item:
    return Item(
        id=row.id,
        batch_id=row.generation_id,
        status=GenerationStatus(row.status),
        variation_index=row.variation_index,
        script=Script.from_dict(row.script_data) if row.script_data else None,
        avatar=AvatarClip.from_record(row.avatar_data) if row.avatar_data else None,
        broll_clips=(
            [BRollClip.from_dict(c) for c in row.broll_data] if row.broll_data is not None else None
        ),
        composed=ComposedMedia.from_record(row.composed_data) if row.composed_data else None,
        video_url=row.video_url,
        storage_key=row.storage_key,
        quality_status=QualityStatus(row.quality_status),
        quality_note=row.quality_note,
        error_message=row.error_message,
        error_stage=GenerationStatus(row.error_stage) if row.error_stage else None,
        providers={
            "script": row.script_provider,
            "avatar": row.avatar_provider,
            "composition": row.composition_provider,
        },
        created_at=row.created_at,
        started_at=row.started_at,
        completed_at=row.completed_at,
    )


class GenerationStore:
    """Reads and writes briefs, batches and items."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        ledger: CostLedger | None = None,
        config: Settings | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.ledger = ledger or CostLedger(session_factory)
        self.config = config or get_settings()

    # -- briefs ---------------------------------------------------------

    def create_brief(self, raw_input: str) -> Brief:
        text = raw_input.strip()
        if not text:
            raise ValidationError("Brief text is required", fields={"raw_input": "must not be empty"})

        with session_scope(self.session_factory) as session:
            row = BriefModel(raw_input=text, status=str(BriefStatus.DRAFT))
            session.add(row)
            session.flush()
            session.refresh(row)
            brief = _to_brief(row)

        logger.info("brief_created", brief_id=str(brief.id))
        return brief

    def get_brief(self, brief_id: UUID) -> Brief:
        with session_scope(self.session_factory) as session:
            return _to_brief(self._brief_row(session, brief_id))

    def list_briefs(self, limit: int = 50, offset: int = 0) -> list[Brief]:
        with session_scope(self.session_factory) as session:
            rows = (
                session.query(BriefModel)
                .order_by(BriefModel.created_at.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return [_to_brief(row) for row in rows]

    def set_parsed(self, brief_id: UUID, parsed: ParsedBrief) -> Brief:
        """Replace a brief's interpretation.

        The previous interpretation is cleared in the same transaction, so a
        reader never sees a mix of old and new fields.
        """
        with session_scope(self.session_factory) as session:
            row = self._brief_row(session, brief_id)
            row.parsed_data = None
            row.status = str(BriefStatus.DRAFT)
            session.flush()

            row.parsed_data = parsed.to_dict()
            row.status = str(BriefStatus.PARSED)
            row.parsed_at = _now()
            session.flush()
            brief = _to_brief(row)

        logger.info("brief_parsed", brief_id=str(brief_id))
        return brief

    def update_brief(self, brief_id: UUID, raw_input: str) -> Brief:
        """Replace a brief's text. The old interpretation no longer applies."""
        text = raw_input.strip()
        if not text:
            raise ValidationError("Brief text is required", fields={"raw_input": "must not be empty"})

        with session_scope(self.session_factory) as session:
            row = self._brief_row(session, brief_id)
            row.raw_input = text
            row.parsed_data = None
            row.parsed_at = None
            row.status = str(BriefStatus.DRAFT)
            session.flush()
            brief = _to_brief(row)

        logger.info("brief_updated", brief_id=str(brief_id))
        return brief

    def duplicate_brief(self, brief_id: UUID) -> Brief:
        """Copy a brief's raw text into a new DRAFT brief."""
        source = self.get_brief(brief_id)
        return self.create_brief(source.raw_input)

    def delete_brief(self, brief_id: UUID) -> None:
        with session_scope(self.session_factory) as session:
            row = self._brief_row(session, brief_id)
            in_use = (
                session.query(func.count(GenerationModel.id))
                .filter(GenerationModel.brief_id == brief_id)
                .scalar()
            )
            if in_use:
                raise ValidationError(
                    "Brief is referenced by existing generations and cannot be deleted",
                    fields={"brief_id": str(brief_id)},
                )
            session.delete(row)

    # -- batches --------------------------------------------------------

    def validate_target_count(self, target_count: int) -> None:
        low = self.config.batch_min_target_count
        high = self.config.batch_max_target_count
        if not low <= target_count <= high:
            raise ValidationError(
                f"target_count must be between {low} and {high}",
                fields={"target_count": f"got {target_count}"},
            )

    def create_batch(
        self,
        brief_id: UUID,
        target_count: int,
        parent_id: UUID | None = None,
        source_item_id: UUID | None = None,
        variation_intent: str | None = None,
    ) -> Batch:
        """Create a batch with `target_count` PENDING items."""
        self.validate_target_count(target_count)

        with session_scope(self.session_factory) as session:
            self._brief_row(session, brief_id)
            generation = GenerationModel(
                brief_id=brief_id,
                parent_generation_id=parent_id,
                source_video_id=source_item_id,
                target_count=target_count,
                variation_intent=variation_intent,
            )
            generation.videos = [
                VideoModel(variation_index=index, status=str(GenerationStatus.PENDING))
                for index in range(target_count)
            ]
            session.add(generation)
            session.flush()
            batch_id = generation.id

        logger.info(
            "batch_created",
            batch_id=str(batch_id),
            brief_id=str(brief_id),
            target_count=target_count,
            parent_id=str(parent_id) if parent_id else None,
        )
        return self.get_batch(batch_id)

    def get_batch(self, batch_id: UUID) -> Batch:
        """Snapshot of a batch with derived status, cost and progress."""
        with session_scope(self.session_factory) as session:
            row = self._generation_row(session, batch_id)
            items = [_to_item(video) for video in row.videos]
            child_count = (
                session.query(func.count(GenerationModel.id))
                .filter(GenerationModel.parent_generation_id == batch_id)
                .scalar()
            )
            batch = Batch(
                id=row.id,
                brief_id=row.brief_id,
                target_count=row.target_count,
                status=GenerationStatus.PENDING,
                parent_id=row.parent_generation_id,
                source_item_id=row.source_video_id,
                variation_intent=row.variation_intent,
                error_message=row.error_message,
                cancelled_at=row.cancelled_at,
                created_at=row.created_at,
                items=items,
                child_count=child_count or 0,
            )

        item_totals, batch_total = self.ledger.batch_totals(batch_id)
        for item in batch.items:
            item.total_cost = item_totals.get(item.id, item.total_cost)

        statuses = [item.status for item in batch.items]
        batch.status = derive_batch_status(statuses, batch_fault=batch.error_message is not None)
        batch.progress = BatchProgress.from_statuses(statuses)
        batch.total_cost = batch_total
        return batch

    def list_batches(
        self,
        brief_id: UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Batch]:
        with session_scope(self.session_factory) as session:
            query = session.query(GenerationModel.id)
            if brief_id is not None:
                query = query.filter(GenerationModel.brief_id == brief_id)
            ids = [
                row.id
                for row in query.order_by(GenerationModel.created_at.desc())
                .offset(offset)
                .limit(limit)
                .all()
            ]
        return [self.get_batch(batch_id) for batch_id in ids]

    def child_ids(self, batch_id: UUID) -> list[UUID]:
        with session_scope(self.session_factory) as session:
            self._generation_row(session, batch_id)
            rows = (
                session.query(GenerationModel.id)
                .filter(GenerationModel.parent_generation_id == batch_id)
                .order_by(GenerationModel.created_at)
                .all()
            )
            return [row.id for row in rows]

    def set_task_id(self, batch_id: UUID, task_id: str) -> None:
        with session_scope(self.session_factory) as session:
            self._generation_row(session, batch_id).celery_task_id = task_id

    def fail_batch(self, batch_id: UUID, message: str) -> Batch:
        """Record a batch-level fault and fail every unfinished item."""
        with session_scope(self.session_factory) as session:
            row = self._generation_row(session, batch_id)
            row.error_message = message
            self._fail_open_items(row, message)

        logger.warning("batch_failed", batch_id=str(batch_id), error=message)
        return self.get_batch(batch_id)

    def cancel_batch(self, batch_id: UUID) -> Batch:
        """Fail every non-terminal item as cancelled. Already-billed cost stays."""
        with session_scope(self.session_factory) as session:
            row = self._generation_row(session, batch_id)
            if row.cancelled_at is None:
                row.cancelled_at = _now()
            cancelled = self._fail_open_items(row, CANCELLED_MESSAGE)

        logger.info("batch_cancelled", batch_id=str(batch_id), cancelled_items=cancelled)
        return self.get_batch(batch_id)

    def _fail_open_items(self, generation: GenerationModel, message: str) -> int:
        count = 0
        for video in generation.videos:
            status = GenerationStatus(video.status)
            if status.is_terminal:
                continue
            video.status = str(GenerationStatus.FAILED)
            video.error_message = message
            video.error_stage = str(status)
            video.completed_at = _now()
            count += 1
        return count

    # -- items ----------------------------------------------------------

    def get_item(self, item_id: UUID) -> Item:
        with session_scope(self.session_factory) as session:
            item = _to_item(self._video_row(session, item_id))
        item.total_cost = self.ledger.aggregate_by_item(item_id)
        return item

    def list_items(
        self,
        status: GenerationStatus | None = None,
        quality_status: QualityStatus | None = None,
        brief_id: UUID | None = None,
        batch_id: UUID | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Item], int]:
        """Filtered page of items, newest first, with the unpaged match count."""
        with session_scope(self.session_factory) as session:
            query = session.query(VideoModel)
            if status is not None:
                query = query.filter(VideoModel.status == str(status))
            if quality_status is not None:
                query = query.filter(VideoModel.quality_status == str(quality_status))
            if batch_id is not None:
                query = query.filter(VideoModel.generation_id == batch_id)
            if brief_id is not None:
                query = query.join(GenerationModel).filter(GenerationModel.brief_id == brief_id)

            total = query.count()
            rows = (
                query.order_by(VideoModel.created_at.desc(), VideoModel.variation_index)
                .offset(offset)
                .limit(limit)
                .all()
            )
            items = [_to_item(row) for row in rows]

        for item in items:
            item.total_cost = self.ledger.aggregate_by_item(item.id)
        return items, total

    def delete_item(self, item_id: UUID) -> str | None:
        """Delete a finished item and return its storage key, if any.

        Its ledger rows stay on the batch with the item reference cleared.

        Raises:
            NotFoundError: The item does not exist
            ValidationError: The item is still being generated
        """
        with session_scope(self.session_factory) as session:
            row = self._video_row(session, item_id, lock=True)
            status = GenerationStatus(row.status)
            if not status.is_terminal:
                raise ValidationError(
                    "Only finished videos can be deleted",
                    fields={"status": str(status)},
                )
            storage_key = row.storage_key
            batch_id = row.generation_id
            session.delete(row)

        logger.info("item_deleted", item_id=str(item_id), batch_id=str(batch_id))
        return storage_key

    def transition(
        self,
        item_id: UUID,
        target: GenerationStatus,
        **fields: Any,
    ) -> Item | None:
        """Move an item to `target`, writing `fields` in the same transaction.

        Returns None without writing when the item is already terminal
        (cancelled or finished meanwhile).

        Raises:
            ValidationError: The move is not the next stage or FAILED
        """
        with session_scope(self.session_factory) as session:
            row = self._video_row(session, item_id, lock=True)
            current = GenerationStatus(row.status)
            if current.is_terminal:
                logger.info(
                    "transition_refused",
                    item_id=str(item_id),
                    status=str(current),
                    target=str(target),
                )
                return None
            if not current.can_transition_to(target):
                raise ValidationError(
                    f"Illegal status transition {current} -> {target}",
                    fields={"status": str(current)},
                )

            for name, value in fields.items():
                setattr(row, name, value)
            row.status = str(target)
            if target is GenerationStatus.QUEUED and row.started_at is None:
                row.started_at = _now()
            if target.is_terminal:
                row.completed_at = _now()
            if target is GenerationStatus.FAILED and row.error_stage is None:
                row.error_stage = str(current)
            session.flush()
            item = _to_item(row)

        logger.debug("item_transitioned", item_id=str(item_id), source=str(current), target=str(target))
        return item

    def save_stage_output(
        self,
        item_id: UUID,
        stage: GenerationStatus,
        **fields: Any,
    ) -> Item | None:
        """Persist a stage's output while the item is still at that stage.

        Returns None without writing when the item has moved on or finished.
        """
        with session_scope(self.session_factory) as session:
            row = self._video_row(session, item_id, lock=True)
            if row.status != str(stage):
                return None
            for name, value in fields.items():
                setattr(row, name, value)
            session.flush()
            return _to_item(row)

    def fail_item(self, item_id: UUID, message: str) -> Item | None:
        return self.transition(item_id, GenerationStatus.FAILED, error_message=message)

    def set_quality(
        self,
        item_id: UUID,
        quality_status: QualityStatus,
        note: str | None = None,
    ) -> Item:
        """Record a human review outcome on a completed item."""
        with session_scope(self.session_factory) as session:
            row = self._video_row(session, item_id)
            if row.status != str(GenerationStatus.COMPLETED):
                raise ValidationError(
                    "Only completed videos can be reviewed",
                    fields={"status": row.status},
                )
            row.quality_status = str(quality_status)
            row.quality_note = note

        logger.info("item_reviewed", item_id=str(item_id), quality_status=str(quality_status))
        return self.get_item(item_id)

    # -- row lookups ----------------------------------------------------

    def _brief_row(self, session: Session, brief_id: UUID) -> BriefModel:
        row = session.get(BriefModel, brief_id)
        if row is None:
            raise NotFoundError("Brief", brief_id)
        return row

    def _generation_row(self, session: Session, batch_id: UUID) -> GenerationModel:
        row = session.get(GenerationModel, batch_id)
        if row is None:
            raise NotFoundError("Generation", batch_id)
        return row

    def _video_row(self, session: Session, item_id: UUID, lock: bool = False) -> VideoModel:
        row = session.get(VideoModel, item_id, with_for_update=lock)
        if row is None:
            raise NotFoundError("Video", item_id)
        return row
