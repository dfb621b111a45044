"""
Job Posting Models

Job postings and their per-job recruitment rule sets.
"""

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String,
    Boolean,
    ForeignKey,
    BigInteger,
    Date,
    DateTime,
    Text,
    JSON,
    Float,
    Enum as SQLEnum,
    Index,
)
from database.engine import Base, BigIntPK
from core.utils.datetime import now
from datetime import date, datetime
from enum import Enum as PyEnum


# ==================== Enums ===================== #
class JobStatus(str, PyEnum):
    """Lifecycle status of a job posting."""

    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class EmploymentType(str, PyEnum):
    """Employment type offered by a posting."""

    FULL_TIME = "FULL_TIME"
    PART_TIME = "PART_TIME"
    CONTRACT = "CONTRACT"
    INTERNSHIP = "INTERNSHIP"
    TEMPORARY = "TEMPORARY"


# ==================== JobPosting Model ===================== #
class JobPosting(Base):
    """
    A vacancy advertised to internal and external applicants.
    """

    __tablename__ = "jobs"

    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    branch: Mapped[str | None] = mapped_column(String(120))
    region: Mapped[str | None] = mapped_column(String(120))
    employment_type: Mapped[EmploymentType] = mapped_column(
        SQLEnum(EmploymentType, native_enum=False, length=50),
        nullable=False,
        default=EmploymentType.FULL_TIME,
    )
    deadline: Mapped[date | None] = mapped_column(Date)
    status: Mapped[JobStatus] = mapped_column(
        SQLEnum(JobStatus, native_enum=False, length=20),
        nullable=False,
        default=JobStatus.ACTIVE,
        index=True,
    )
    pipeline_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("pipelines.id", ondelete="SET NULL"),
        index=True,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, onupdate=now
    )

    __table_args__ = (
        Index("idx_job_status_deadline", "status", "deadline"),
    )


# ==================== RuleSet Model ===================== #
class RuleSet(Base):
    """
    Keyword rules and score thresholds driving automatic classification.

    One-to-one with its job posting; the database deletes it with the job.
    """

    __tablename__ = "job_rule_sets"

    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    job_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    must_have: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    preferred: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    shortlist_threshold: Mapped[float] = mapped_column(Float, nullable=False, default=35)
    reject_threshold: Mapped[float] = mapped_column(Float, nullable=False, default=15)
    auto_regret: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, onupdate=now
    )
