"""
Application Models

Job applications with lifecycle status, rule-based scoring results,
kanban stage placement and an activity trail.
"""

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String,
    ForeignKey,
    BigInteger,
    DateTime,
    Text,
    JSON,
    Float,
    Enum as SQLEnum,
    Index,
    UniqueConstraint,
)
from database.engine import Base, BigIntPK
from core.utils.datetime import now
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any


# ==================== Application Enums ===================== #
class ApplicationStatus(str, PyEnum):
    """Lifecycle status of an application."""

    RECEIVED = "RECEIVED"
    REVIEWED = "REVIEWED"
    SHORTLISTED = "SHORTLISTED"
    INTERVIEWING = "INTERVIEWING"
    OFFERED = "OFFERED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class ApplicantType(str, PyEnum):
    """Whether the applicant is existing staff."""

    INTERNAL = "INTERNAL"
    EXTERNAL = "EXTERNAL"


class Decision(str, PyEnum):
    """Outcome of automatic classification at intake."""

    SHORTLIST = "SHORTLIST"
    AUTO_REJECT = "AUTO-REJECT"
    RECEIVED = "RECEIVED"


class ApplicationActivityType(str, PyEnum):
    """Events recorded on an application's timeline."""

    APPLIED = "applied"
    STATUS_CHANGED = "status_changed"
    STAGE_CHANGED = "stage_changed"
    KNOCKOUT_FAILED = "knockout_failed"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    INTERVIEW_UPDATED = "interview_updated"
    SCORECARD_SUBMITTED = "scorecard_submitted"
    NOTE_ADDED = "note_added"
    TAG_ADDED = "tag_added"
    TAG_REMOVED = "tag_removed"
    OFFER_CREATED = "offer_created"
    OFFER_SENT = "offer_sent"
    OFFER_ACCEPTED = "offer_accepted"
    OFFER_DECLINED = "offer_declined"
    ONBOARDING_INITIALIZED = "onboarding_initialized"
    REGRET_SENT = "regret_sent"


# ==================== Application Model ===================== #
class Application(Base):
    """
    A candidate's application to a job posting.
    """

    __tablename__ = "applications"

    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    job_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Candidate identity
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50))
    applicant_type: Mapped[ApplicantType] = mapped_column(
        SQLEnum(ApplicantType, native_enum=False, length=20),
        nullable=False,
        default=ApplicantType.EXTERNAL,
    )
    resume_text: Mapped[str | None] = mapped_column(Text)
    cover_letter: Mapped[str | None] = mapped_column(Text)

    # Lifecycle
    status: Mapped[ApplicationStatus] = mapped_column(
        SQLEnum(ApplicationStatus, native_enum=False, length=30),
        nullable=False,
        default=ApplicationStatus.RECEIVED,
        index=True,
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    version: Mapped[int] = mapped_column(BigInteger, nullable=False, default=1)

    # Scoring
    score: Mapped[float | None] = mapped_column(Float)
    decision: Mapped[Decision | None] = mapped_column(
        SQLEnum(Decision, native_enum=False, length=20)
    )
    decision_reasons: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )

    # Kanban placement
    current_stage_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("pipeline_stages.id", ondelete="SET NULL"),
        index=True,
    )

    # Timestamps
    applied_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    last_activity_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )

    __table_args__ = (
        UniqueConstraint("job_id", "email", name="uq_application_job_email"),
        Index("idx_application_job_status", "job_id", "status"),
        Index("idx_application_stage_activity", "current_stage_id", "last_activity_at"),
    )


# ==================== ApplicationActivity Model ===================== #
class ApplicationActivity(Base):
    """
    Timeline entry recorded alongside every lifecycle change.
    """

    __tablename__ = "application_activities"

    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    application_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    activity_type: Mapped[ApplicationActivityType] = mapped_column(
        SQLEnum(ApplicationActivityType, native_enum=False, length=50),
        nullable=False,
    )
    performed_by: Mapped[str | None] = mapped_column(String(120))
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )

    __table_args__ = (
        Index("idx_activity_app_timeline", "application_id", "created_at"),
    )
