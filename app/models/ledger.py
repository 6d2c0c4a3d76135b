from sqlalchemy import Column, String, DateTime, Date, Numeric, Enum as SQLEnum, Text, Uuid, CheckConstraint, Index, text, func
import uuid
from app.db.base import Base
import enum


class EntryPolarity(str, enum.Enum):
    """Direction of a discretionary ledger line."""
    INCOME = "income"
    EXPENSE = "expense"


class ExpenseCategory(str, enum.Enum):
    """Closed set of expense categories; the breakdown report lists every one."""
    MAINTENANCE = "maintenance"
    ACTIVITIES = "activities"
    WELFARE = "welfare"
    OTHER = "other"


class IncomeSource(str, enum.Enum):
    """Usual income sources. Income tags are open, these are only suggestions."""
    DONATION = "donation"
    CONTRIBUTION = "contribution"
    SPONSOR = "sponsor"
    GOVERNMENT = "government"
    OTHER = "other"


class DiscretionaryEntry(Base):
    """Income or expense not attributed to any member (donations, repairs, events)."""
    __tablename__ = "discretionary_entry"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    polarity = Column(SQLEnum(EntryPolarity, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), nullable=False)
    title = Column(String(200), nullable=False)
    category = Column(String(50), nullable=False)  # expense category or income source
    amount = Column(Numeric(12, 2), nullable=False)
    entry_date = Column(Date, nullable=False)
    description = Column(Text, nullable=True)
    created_by = Column(Uuid(as_uuid=True), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())
    updated_by = Column(Uuid(as_uuid=True), nullable=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_discretionary_entry_amount_positive"),
        Index("idx_discretionary_entry_polarity_date", "polarity", "entry_date"),
    )
