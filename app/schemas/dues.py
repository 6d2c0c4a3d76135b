from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from app.services.status import PaymentStatus


class MonthlyDuesResponse(BaseModel):
    id: UUID
    member_id: UUID
    month: int
    year: int
    amount: Decimal
    status: PaymentStatus
    paid_at: Optional[datetime] = None
    reference: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EntranceDuesResponse(BaseModel):
    id: UUID
    member_id: UUID
    amount: Decimal
    status: PaymentStatus
    paid_at: Optional[datetime] = None
    reference: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MonthClaimRequest(BaseModel):
    """Member claim covering one or more months paid with a single transfer."""
    months: List[int] = Field(..., min_length=1, description="Months (1-12) covered by the transfer")
    year: int = Field(..., description="Dues year")
    reference: Optional[str] = Field(None, max_length=100, description="Bank transfer reference")


class EntranceClaimRequest(BaseModel):
    amount: Optional[Decimal] = Field(None, gt=0, description="Defaults to the standard entrance fee")
    reference: Optional[str] = Field(None, max_length=100)


class ManualMonthlyPayment(BaseModel):
    """Admin entry of a cash or late-reported monthly payment."""
    member_id: UUID
    month: int = Field(..., ge=1, le=12)
    year: int
    amount: Optional[Decimal] = Field(None, gt=0, description="Defaults to the standard monthly amount")
    reference: Optional[str] = Field(None, max_length=100)


class ManualEntrancePayment(BaseModel):
    member_id: UUID
    amount: Optional[Decimal] = Field(None, gt=0, description="Defaults to the standard entrance fee")
    reference: Optional[str] = Field(None, max_length=100)


class RejectRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class ClaimOutcomeResponse(BaseModel):
    month: int
    year: int
    status: str  # "pending" or "skipped"
    obligation_id: Optional[UUID] = None
    reason: Optional[str] = None


class MonthStatusResponse(BaseModel):
    month: int
    status: PaymentStatus
    amount: Decimal
    obligation_id: Optional[UUID] = None
    paid_at: Optional[datetime] = None
    reference: Optional[str] = None

    class Config:
        from_attributes = True


class MemberYearResponse(BaseModel):
    member_id: UUID
    year: int
    months: List[MonthStatusResponse]
    paid_months: int
    total_paid: Decimal
    total_pending: Decimal
    outstanding: Decimal
    not_yet_due_amount: Decimal
    unpaid_months: List[int]
    not_yet_due_months: List[int]


class OutstandingResponse(BaseModel):
    member_id: UUID
    year: int
    outstanding: Decimal
    due_months: List[int]
    paid_months: List[int]
    pending_months: List[int]
    unpaid_months: List[int]
    not_yet_due_months: List[int]
    not_yet_due_amount: Decimal

    class Config:
        from_attributes = True
