from sqlalchemy import Column, String, ForeignKey, DateTime, Integer, Numeric, Uuid, UniqueConstraint, CheckConstraint, Index, text, func
from sqlalchemy.orm import relationship
import uuid
import enum
from app.db.base import Base
from app.db.types import PaymentStatusType
from app.services.status import PaymentStatus


class ObligationKind(str, enum.Enum):
    """Which dues table an obligation id belongs to."""
    MONTHLY = "monthly"
    ENTRANCE = "entrance"


class MonthlyDues(Base):
    """One member's dues for one calendar month.

    At most one row per (member_id, month, year); the unique constraint is
    what the upsert in services/dues.py conflicts on.
    """
    __tablename__ = "monthly_dues"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    member_id = Column(Uuid(as_uuid=True), ForeignKey("member_profile.id"), nullable=False, index=True)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(PaymentStatusType(), default=PaymentStatus.PENDING.value, nullable=False)
    paid_at = Column(DateTime, nullable=True)
    reference = Column(String(100), nullable=True)
    confirmed_by = Column(Uuid(as_uuid=True), nullable=True)
    rejected_by = Column(Uuid(as_uuid=True), nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())

    # Relationships
    member = relationship("MemberProfile", back_populates="monthly_dues")

    __table_args__ = (
        UniqueConstraint("member_id", "month", "year", name="uq_monthly_dues_member_period"),
        CheckConstraint("month BETWEEN 1 AND 12", name="ck_monthly_dues_month"),
        Index("idx_monthly_dues_year_status", "year", "status"),
    )


class EntranceDues(Base):
    """One-time entrance fee. One row per member; a failed attempt is reused by the next claim."""
    __tablename__ = "entrance_dues"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    member_id = Column(Uuid(as_uuid=True), ForeignKey("member_profile.id"), nullable=False, unique=True, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(PaymentStatusType(), default=PaymentStatus.PENDING.value, nullable=False)
    paid_at = Column(DateTime, nullable=True)
    reference = Column(String(100), nullable=True)
    confirmed_by = Column(Uuid(as_uuid=True), nullable=True)
    rejected_by = Column(Uuid(as_uuid=True), nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())

    # Relationships
    member = relationship("MemberProfile", back_populates="entrance_dues")
