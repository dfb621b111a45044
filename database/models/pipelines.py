"""
Pipelines Module

Hiring pipelines made of explicitly ordered kanban stages.
"""

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String,
    Boolean,
    ForeignKey,
    BigInteger,
    DateTime,
    Text,
    Index,
    UniqueConstraint,
)
from database.engine import Base, BigIntPK
from core.utils.datetime import now
from datetime import datetime


DEFAULT_STAGE_COLOR = "#3B82F6"


# ==================== Pipeline Model ===================== #
class Pipeline(Base):
    """
    Named, ordered set of stages a job's applications move across.
    """

    __tablename__ = "pipelines"

    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )


# ==================== PipelineStage Model ===================== #
class PipelineStage(Base):
    """
    Individual kanban column in a pipeline.

    ``stage_order`` is a strictly increasing integer within the pipeline,
    recomputed whenever stages are reordered or removed.
    """

    __tablename__ = "pipeline_stages"

    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    pipeline_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("pipelines.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    color: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DEFAULT_STAGE_COLOR
    )
    stage_order: Mapped[int] = mapped_column(BigInteger, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )

    __table_args__ = (
        UniqueConstraint("pipeline_id", "stage_order", name="uq_pipeline_stage_order"),
        Index("idx_stage_pipeline", "pipeline_id", "stage_order"),
    )
