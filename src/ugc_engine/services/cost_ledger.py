"""Append-only cost ledger.

Every completed billable provider operation produces exactly one row.
Totals for items and batches are sums over these rows and are never stored
anywhere else.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ugc_engine.db.models import CostLogModel, VideoModel
from ugc_engine.db.session import SessionLocal, session_scope
from ugc_engine.domain.enums import ServiceCategory, UnitType
from ugc_engine.domain.models import CostEntry
from ugc_engine.logging import get_logger
from ugc_engine.services.pricing import quantize_cost

logger = get_logger(__name__)

ZERO = quantize_cost(0)


@dataclass
class CostBreakdown:
    """Ledger rows for one item with per-category subtotals."""

    item_id: UUID
    total: Decimal
    by_category: dict[str, Decimal]
    entries: list[CostEntry] = field(default_factory=list)


@dataclass
class CostStats:
    """Spend over rolling windows."""

    today: Decimal
    week: Decimal
    month: Decimal
    all_time: Decimal
    by_category: dict[str, Decimal]
    entry_count: int


def _to_entry(row: CostLogModel) -> CostEntry:
    return CostEntry(
        id=row.id,
        item_id=row.video_id,
        batch_id=row.generation_id,
        category=ServiceCategory(row.service_type),
        provider=row.provider,
        operation=row.operation,
        input_units=row.input_units,
        output_units=row.output_units,
        unit_type=UnitType(row.unit_type),
        cost=quantize_cost(row.cost),
        created_at=row.created_at,
    )


def _total(value: Decimal | float | None) -> Decimal:
    return ZERO if value is None else quantize_cost(value)


class CostLedger:
    """Writes and sums cost log rows."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self.session_factory = session_factory

    def record(
        self,
        item_id: UUID | None,
        category: ServiceCategory,
        provider: str,
        operation: str,
        input_units: float,
        output_units: float,
        unit_type: UnitType,
        cost: Decimal | float,
        batch_id: UUID | None = None,
        created_at: datetime | None = None,
    ) -> CostEntry:
        """Append one priced operation.

        The batch reference is resolved from the item when not given.
        """
        with session_scope(self.session_factory) as session:
            if batch_id is None and item_id is not None:
                video = session.get(VideoModel, item_id)
                batch_id = video.generation_id if video else None

            row = CostLogModel(
                video_id=item_id,
                generation_id=batch_id,
                service_type=str(category),
                provider=provider,
                operation=operation,
                input_units=float(input_units),
                output_units=float(output_units),
                unit_type=str(unit_type),
                cost=quantize_cost(cost),
                created_at=created_at or datetime.now(UTC),
            )
            session.add(row)
            session.flush()
            entry = _to_entry(row)

        logger.info(
            "cost_recorded",
            item_id=str(item_id) if item_id else None,
            batch_id=str(batch_id) if batch_id else None,
            category=str(category),
            provider=provider,
            operation=operation,
            cost=str(entry.cost),
        )
        return entry

    def aggregate_by_item(self, item_id: UUID) -> Decimal:
        with session_scope(self.session_factory) as session:
            value = (
                session.query(func.sum(CostLogModel.cost))
                .filter(CostLogModel.video_id == item_id)
                .scalar()
            )
        return _total(value)

    def aggregate_by_batch(self, batch_id: UUID) -> Decimal:
        with session_scope(self.session_factory) as session:
            value = (
                session.query(func.sum(CostLogModel.cost))
                .filter(CostLogModel.generation_id == batch_id)
                .scalar()
            )
        return _total(value)

    def batch_totals(self, batch_id: UUID) -> tuple[dict[UUID, Decimal], Decimal]:
        """Per-item totals and the batch total from one grouped query.

        Rows whose item was deleted group under no item and count toward the
        batch total only.
        """
        with session_scope(self.session_factory) as session:
            rows = (
                session.query(CostLogModel.video_id, func.sum(CostLogModel.cost))
                .filter(CostLogModel.generation_id == batch_id)
                .group_by(CostLogModel.video_id)
                .all()
            )
        totals = {item_id: _total(total) for item_id, total in rows}
        batch_total = quantize_cost(sum(totals.values(), ZERO))
        totals.pop(None, None)
        return totals, batch_total

    def totals_by_item(self, batch_id: UUID) -> dict[UUID, Decimal]:
        return self.batch_totals(batch_id)[0]

    def entries_for_item(self, item_id: UUID) -> list[CostEntry]:
        with session_scope(self.session_factory) as session:
            rows = (
                session.query(CostLogModel)
                .filter(CostLogModel.video_id == item_id)
                .order_by(CostLogModel.created_at)
                .all()
            )
            return [_to_entry(row) for row in rows]

    def breakdown_by_item(self, item_id: UUID) -> CostBreakdown:
        entries = self.entries_for_item(item_id)
        by_category: dict[str, Decimal] = {}
        for entry in entries:
            key = str(entry.category)
            by_category[key] = by_category.get(key, ZERO) + entry.cost
        return CostBreakdown(
            item_id=item_id,
            total=self.aggregate_by_item(item_id),
            by_category=by_category,
            entries=entries,
        )

    def stats(self, now: datetime | None = None) -> CostStats:
        """Spend today, over the last 7 and 30 days, and all time."""
        now = now or datetime.now(UTC)
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_ago = now - timedelta(days=7)
        month_ago = now - timedelta(days=30)

        def since(session: Session, start: datetime | None) -> Decimal:
            query = session.query(func.sum(CostLogModel.cost))
            if start is not None:
                query = query.filter(CostLogModel.created_at >= start)
            return _total(query.scalar())

        with session_scope(self.session_factory) as session:
            category_rows = (
                session.query(CostLogModel.service_type, func.sum(CostLogModel.cost))
                .filter(CostLogModel.created_at >= month_ago)
                .group_by(CostLogModel.service_type)
                .all()
            )
            return CostStats(
                today=since(session, start_of_day),
                week=since(session, week_ago),
                month=since(session, month_ago),
                all_time=since(session, None),
                by_category={category: _total(total) for category, total in category_rows},
                entry_count=session.query(func.count(CostLogModel.id)).scalar() or 0,
            )
