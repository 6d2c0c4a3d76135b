from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from app.models.ledger import EntryPolarity


class IncomeCreate(BaseModel):
    """Schema for recording discretionary income."""
    title: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., description="Positive amount")
    source: str = Field("donation", description="donation, contribution, sponsor, government, other or any tag")
    entry_date: Optional[date] = None
    description: Optional[str] = None


class ExpenseCreate(BaseModel):
    """Schema for recording an expense."""
    title: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., description="Positive amount")
    category: str = Field(..., description="maintenance, activities, welfare or other")
    entry_date: Optional[date] = None
    description: Optional[str] = None


class EntryUpdate(BaseModel):
    """Schema for editing an income or expense entry. Polarity cannot change."""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    amount: Optional[Decimal] = None
    category: Optional[str] = None
    entry_date: Optional[date] = None
    description: Optional[str] = None


class EntryResponse(BaseModel):
    id: UUID
    polarity: EntryPolarity
    title: str
    category: str
    amount: Decimal
    entry_date: date
    description: Optional[str] = None
    created_by: Optional[UUID] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
