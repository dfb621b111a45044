"""
Interview Models

Interviews scheduled against an application and the scorecards
evaluators submit for them.
"""

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String,
    ForeignKey,
    BigInteger,
    DateTime,
    Text,
    JSON,
    Boolean,
    SmallInteger,
    Enum as SQLEnum,
    Index,
    UniqueConstraint,
)
from database.engine import Base, BigIntPK
from core.utils.datetime import now
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any


# ==================== Enums ===================== #
class InterviewMode(str, PyEnum):
    """How the interview is held."""

    ONLINE = "ONLINE"
    PHYSICAL = "PHYSICAL"


class InterviewStatus(str, PyEnum):
    """Status of an interview."""

    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


# ==================== Interview Model ===================== #
class Interview(Base):
    """
    An interview session for an application.
    """

    __tablename__ = "interviews"

    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    application_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    panel: Mapped[str] = mapped_column(Text, nullable=False, default="")
    mode: Mapped[InterviewMode] = mapped_column(
        SQLEnum(InterviewMode, native_enum=False, length=20),
        nullable=False,
        default=InterviewMode.ONLINE,
    )
    location: Mapped[str | None] = mapped_column(String(500))
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[InterviewStatus] = mapped_column(
        SQLEnum(InterviewStatus, native_enum=False, length=20),
        nullable=False,
        default=InterviewStatus.SCHEDULED,
    )
    feedback: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    version: Mapped[int] = mapped_column(BigInteger, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )

    __table_args__ = (
        Index("idx_interview_app_start", "application_id", "starts_at"),
    )


# ==================== InterviewScorecard Model ===================== #
class InterviewScorecard(Base):
    """
    One evaluator's structured assessment of a candidate.

    ``criteria_scores`` maps criterion name to a 1-5 rating.
    """

    __tablename__ = "interview_scorecards"

    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    application_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    interview_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("interviews.id", ondelete="SET NULL"),
    )
    evaluator_id: Mapped[str] = mapped_column(String(120), nullable=False)
    evaluator_name: Mapped[str | None] = mapped_column(String(255))
    overall_rating: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    recommend_hire: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    criteria_scores: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    strengths: Mapped[str | None] = mapped_column(Text)
    weaknesses: Mapped[str | None] = mapped_column(Text)
    comments: Mapped[str | None] = mapped_column(Text)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )

    __table_args__ = (
        # One scorecard per evaluator per interview
        UniqueConstraint("interview_id", "evaluator_id", name="uq_scorecard_interview_evaluator"),
    )
