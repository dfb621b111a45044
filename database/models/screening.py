"""
Screening Models

Job-scoped screening questions, including knockout questions, and the
answers applicants submit.
"""

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String,
    Boolean,
    ForeignKey,
    BigInteger,
    DateTime,
    Text,
    UniqueConstraint,
)
from database.engine import Base, BigIntPK
from core.utils.datetime import now
from datetime import datetime


class ScreeningQuestion(Base):
    """
    A question asked of every applicant to a job.
    """

    __tablename__ = "screening_questions"

    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    job_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    is_knockout: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # The answer a knockout question expects; anything else disqualifies
    knockout_answer: Mapped[str | None] = mapped_column(String(255))
    required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    question_order: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )


class ScreeningAnswer(Base):
    """
    An applicant's answer to a screening question; one per question.
    """

    __tablename__ = "screening_answers"

    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    question_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("screening_questions.id", ondelete="CASCADE"),
        nullable=False,
    )
    application_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    is_knockout: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    passed_knockout: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )

    __table_args__ = (
        UniqueConstraint("application_id", "question_id", name="uq_screening_answer_app_question"),
    )
