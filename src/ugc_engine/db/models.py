"""SQLAlchemy ORM models."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID as PyUUID
from uuid import uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class BriefModel(Base):
    """Brief (user-authored ad description) ORM model."""

    __tablename__ = "briefs"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    raw_input: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), server_default="draft", index=True)
    parsed_data: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    parsed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    # Relationships
    generations: Mapped[list["GenerationModel"]] = relationship(
        "GenerationModel", back_populates="brief"
    )


class GenerationModel(Base):
    """Generation (one batch run over a brief) ORM model.

    Status and total cost are not columns: they are derived from the
    videos and the cost log.
    """

    __tablename__ = "generations"
    __table_args__ = (CheckConstraint("target_count >= 1", name="ck_generations_target_count"),)

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    brief_id: Mapped[PyUUID] = mapped_column(
        Uuid, ForeignKey("briefs.id", ondelete="RESTRICT"), index=True
    )
    parent_generation_id: Mapped[PyUUID | None] = mapped_column(
        Uuid, ForeignKey("generations.id", ondelete="SET NULL"), nullable=True, index=True
    )
    # Item that was iterated on; kept as a plain id so lineage survives its deletion
    source_video_id: Mapped[PyUUID | None] = mapped_column(Uuid, nullable=True)
    target_count: Mapped[int] = mapped_column(Integer, nullable=False)
    variation_intent: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    celery_task_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )

    # Relationships
    brief: Mapped["BriefModel"] = relationship("BriefModel", back_populates="generations")
    videos: Mapped[list["VideoModel"]] = relationship(
        "VideoModel",
        back_populates="generation",
        cascade="all, delete-orphan",
        order_by="VideoModel.variation_index",
    )
    parent: Mapped["GenerationModel | None"] = relationship(
        "GenerationModel", remote_side=[id], back_populates="children"
    )
    children: Mapped[list["GenerationModel"]] = relationship(
        "GenerationModel", back_populates="parent"
    )


class VideoModel(Base):
    """Video (one item of a generation) ORM model."""

    __tablename__ = "videos"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    generation_id: Mapped[PyUUID] = mapped_column(
        Uuid, ForeignKey("generations.id", ondelete="CASCADE"), index=True
    )
    variation_index: Mapped[int] = mapped_column(Integer, server_default="0")
    status: Mapped[str] = mapped_column(String(50), server_default="pending", index=True)
    # Stage outputs
    script_data: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    avatar_data: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    broll_data: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONType, nullable=True)
    composed_data: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    video_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    storage_key: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    duration_seconds: Mapped[float | None] = mapped_column(Float, nullable=True)
    script_provider: Mapped[str | None] = mapped_column(String(100), nullable=True)
    avatar_provider: Mapped[str | None] = mapped_column(String(100), nullable=True)
    composition_provider: Mapped[str | None] = mapped_column(String(100), nullable=True)
    # Human review
    quality_status: Mapped[str] = mapped_column(String(20), server_default="pending", index=True)
    quality_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Failure details
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_stage: Mapped[str | None] = mapped_column(String(50), nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    # Relationships
    generation: Mapped["GenerationModel"] = relationship(
        "GenerationModel", back_populates="videos"
    )


class CostLogModel(Base):
    """Append-only cost ledger entry ORM model.

    Rows outlive their video and generation: both references are nulled on
    delete so the financial audit trail survives.
    """

    __tablename__ = "cost_logs"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    video_id: Mapped[PyUUID | None] = mapped_column(
        Uuid, ForeignKey("videos.id", ondelete="SET NULL"), nullable=True, index=True
    )
    generation_id: Mapped[PyUUID | None] = mapped_column(
        Uuid, ForeignKey("generations.id", ondelete="SET NULL"), nullable=True, index=True
    )
    service_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    provider: Mapped[str] = mapped_column(String(100), nullable=False)
    operation: Mapped[str] = mapped_column(String(100), nullable=False)
    input_units: Mapped[float] = mapped_column(Float, server_default="0")
    output_units: Mapped[float] = mapped_column(Float, server_default="0")
    unit_type: Mapped[str] = mapped_column(String(20), nullable=False)
    cost: Mapped[Decimal] = mapped_column(Numeric(12, 6), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
