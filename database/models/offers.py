"""
Offers Module

Job offers, their lifecycle status and the contract templates used to
produce offer letter text.
"""

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String,
    ForeignKey,
    BigInteger,
    DateTime,
    Numeric,
    Text,
    Enum as SQLEnum,
    Index,
)
from database.engine import Base, BigIntPK
from core.utils.datetime import now
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum


# ==================== Enums ===================== #
class OfferStatus(str, PyEnum):
    """
    Status of a job offer.

    EXPIRED is never persisted; it is reported at read time for an open
    offer whose ``expires_at`` has passed.
    """

    PENDING = "PENDING"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


# ==================== Offer Model ===================== #
class Offer(Base):
    """
    Job offer extended to an applicant.
    """

    __tablename__ = "offers"

    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    application_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(10), nullable=False, default="KES")

    status: Mapped[OfferStatus] = mapped_column(
        SQLEnum(OfferStatus, native_enum=False, length=20),
        nullable=False,
        default=OfferStatus.PENDING,
        index=True,
    )
    version: Mapped[int] = mapped_column(BigInteger, nullable=False, default=1)

    # Offer letter
    contract_text: Mapped[str | None] = mapped_column(Text)
    signature_ref: Mapped[str | None] = mapped_column(String(500))
    decline_reason: Mapped[str | None] = mapped_column(Text)

    # Timestamps
    issued_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )

    __table_args__ = (
        Index("idx_offer_app_status", "application_id", "status"),
    )


# ==================== ContractTemplate Model ===================== #
class ContractTemplate(Base):
    """
    Stored offer letter body with ``{{placeholder}}`` fields.
    """

    __tablename__ = "contract_templates"

    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
