"""Initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    # Briefs table
    op.create_table(
        "briefs",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("raw_input", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("parsed_data", JSONType, nullable=True),
        sa.Column("parsed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), onupdate=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_briefs_status", "briefs", ["status"])

    # Generations table (one batch run over a brief)
    op.create_table(
        "generations",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("brief_id", sa.UUID(), nullable=False),
        sa.Column("parent_generation_id", sa.UUID(), nullable=True),
        sa.Column("source_video_id", sa.UUID(), nullable=True),
        sa.Column("target_count", sa.Integer(), nullable=False),
        sa.Column("variation_intent", sa.Text(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("celery_task_id", sa.String(255), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["brief_id"], ["briefs.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(
            ["parent_generation_id"], ["generations.id"], ondelete="SET NULL"
        ),
        sa.CheckConstraint("target_count >= 1", name="ck_generations_target_count"),
    )
    op.create_index("ix_generations_brief_id", "generations", ["brief_id"])
    op.create_index(
        "ix_generations_parent_generation_id", "generations", ["parent_generation_id"]
    )
    op.create_index("ix_generations_created_at", "generations", ["created_at"])

    # Videos table (one item of a generation)
    op.create_table(
        "videos",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("generation_id", sa.UUID(), nullable=False),
        sa.Column("variation_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("script_data", JSONType, nullable=True),
        sa.Column("avatar_data", JSONType, nullable=True),
        sa.Column("broll_data", JSONType, nullable=True),
        sa.Column("composed_data", JSONType, nullable=True),
        sa.Column("video_url", sa.String(2048), nullable=True),
        sa.Column("storage_key", sa.String(1024), nullable=True),
        sa.Column("duration_seconds", sa.Float(), nullable=True),
        sa.Column("script_provider", sa.String(100), nullable=True),
        sa.Column("avatar_provider", sa.String(100), nullable=True),
        sa.Column("composition_provider", sa.String(100), nullable=True),
        sa.Column("quality_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("quality_note", sa.Text(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("error_stage", sa.String(50), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), onupdate=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["generation_id"], ["generations.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_videos_generation_id", "videos", ["generation_id"])
    op.create_index("ix_videos_status", "videos", ["status"])
    op.create_index("ix_videos_quality_status", "videos", ["quality_status"])

    # Cost ledger (append-only; survives deletion of its video and generation)
    op.create_table(
        "cost_logs",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("video_id", sa.UUID(), nullable=True),
        sa.Column("generation_id", sa.UUID(), nullable=True),
        sa.Column("service_type", sa.String(50), nullable=False),
        sa.Column("provider", sa.String(100), nullable=False),
        sa.Column("operation", sa.String(100), nullable=False),
        sa.Column("input_units", sa.Float(), nullable=False, server_default="0"),
        sa.Column("output_units", sa.Float(), nullable=False, server_default="0"),
        sa.Column("unit_type", sa.String(20), nullable=False),
        sa.Column("cost", sa.Numeric(12, 6), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["video_id"], ["videos.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["generation_id"], ["generations.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_cost_logs_video_id", "cost_logs", ["video_id"])
    op.create_index("ix_cost_logs_generation_id", "cost_logs", ["generation_id"])
    op.create_index("ix_cost_logs_service_type", "cost_logs", ["service_type"])
    op.create_index("ix_cost_logs_created_at", "cost_logs", ["created_at"])


def downgrade() -> None:
    op.drop_table("cost_logs")
    op.drop_table("videos")
    op.drop_table("generations")
    op.drop_table("briefs")
