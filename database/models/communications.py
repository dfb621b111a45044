"""
Communication Models

Templates for messages sent to applicants.
"""

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String,
    ForeignKey,
    BigInteger,
    DateTime,
    Text,
)
from database.engine import Base, BigIntPK
from core.utils.datetime import now
from datetime import datetime


class RegretTemplate(Base):
    """
    Regret (unsuccessful application) message template.

    Subject and body accept ``{{firstName}}``, ``{{jobTitle}}``,
    ``{{branch}}``, ``{{region}}`` and ``{{company}}``.
    """

    __tablename__ = "regret_templates"

    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    body_text: Mapped[str] = mapped_column(Text, nullable=False)
    locale: Mapped[str] = mapped_column(String(10), nullable=False, default="en")
    job_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("jobs.id", ondelete="SET NULL")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
