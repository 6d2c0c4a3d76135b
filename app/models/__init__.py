from app.db.base import Base

# Import all models so Alembic can detect them
from app.models.member import MemberProfile, MemberStatus
from app.models.dues import MonthlyDues, EntranceDues, ObligationKind
from app.models.ledger import (
    DiscretionaryEntry,
    EntryPolarity,
    ExpenseCategory,
    IncomeSource,
)

__all__ = [
    "Base",
    "MemberProfile",
    "MemberStatus",
    "MonthlyDues",
    "EntranceDues",
    "ObligationKind",
    "DiscretionaryEntry",
    "EntryPolarity",
    "ExpenseCategory",
    "IncomeSource",
]
