from sqlalchemy import Column, String, DateTime, Date, Enum as SQLEnum, Uuid, text
from sqlalchemy.orm import relationship
import uuid
from app.db.base import Base
import enum


class MemberStatus(str, enum.Enum):
    """Member status enum."""
    ACTIVE = "active"
    PENDING = "pending"
    INACTIVE = "inactive"


class MemberProfile(Base):
    """Resident member, owned by the onboarding screens.

    The dues ledger only references it by id and reads the display fields.
    """
    __tablename__ = "member_profile"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    full_name = Column(String(200), nullable=False)
    house_no = Column(String(20), nullable=True)
    status = Column(SQLEnum(MemberStatus, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), default=MemberStatus.PENDING, nullable=False)
    joined_on = Column(Date, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    monthly_dues = relationship("MonthlyDues", back_populates="member")
    entrance_dues = relationship("EntranceDues", back_populates="member", uselist=False)
