from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from app.db.base import get_db
from app.core.config import settings
from app.core.dependencies import Actor, get_current_actor, require_finance_manager
from app.core.exceptions import LedgerError, to_http_exception
from app.models.dues import ObligationKind
from app.models.ledger import EntryPolarity
from app.schemas.dues import (
    EntranceDuesResponse,
    ManualEntrancePayment,
    ManualMonthlyPayment,
    MonthlyDuesResponse,
    OutstandingResponse,
    RejectRequest,
)
from app.schemas.ledger import EntryResponse, EntryUpdate, ExpenseCreate, IncomeCreate
from app.services import aggregation, ledger, reconciliation
from app.services import dues as store
from typing import List, Optional
from uuid import UUID
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/finance", tags=["finance"])

RESPONSE_SCHEMAS = {
    ObligationKind.MONTHLY: MonthlyDuesResponse,
    ObligationKind.ENTRANCE: EntranceDuesResponse,
}


def _parse_id(value: str, label: str = "id") -> UUID:
    try:
        return UUID(value)
    except (ValueError, TypeError):
        raise HTTPException(status_code=400, detail=f"Invalid {label} format")


def _obligation_response(kind: ObligationKind, obligation):
    return RESPONSE_SCHEMAS[kind].model_validate(obligation)


# ---------------------------------------------------------------------------
# Claim review
# ---------------------------------------------------------------------------

@router.get("/pending")
def get_pending_claims(
    kind: Optional[ObligationKind] = Query(None, description="monthly or entrance; both when omitted"),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Get claims awaiting confirmation, oldest first."""
    try:
        return reconciliation.list_pending(db, kind)
    except LedgerError as e:
        raise to_http_exception(e)


def _confirm(kind: ObligationKind, obligation_id: str, actor: Actor, db: Session):
    try:
        obligation = reconciliation.confirm(db, _parse_id(obligation_id, "obligation ID"), actor.actor_id, kind=kind)
    except LedgerError as e:
        raise to_http_exception(e)
    return _obligation_response(kind, obligation)


def _reject(kind: ObligationKind, obligation_id: str, body: Optional[RejectRequest], actor: Actor, db: Session):
    try:
        obligation = reconciliation.reject(
            db, _parse_id(obligation_id, "obligation ID"), actor.actor_id,
            kind=kind, reason=body.reason if body else None,
        )
    except LedgerError as e:
        raise to_http_exception(e)
    return _obligation_response(kind, obligation)


@router.post("/dues/{obligation_id}/confirm", response_model=MonthlyDuesResponse)
def confirm_monthly(
    obligation_id: str,
    actor: Actor = Depends(require_finance_manager),
    db: Session = Depends(get_db)
):
    """Confirm a monthly dues claim. Confirming a paid month is a no-op."""
    return _confirm(ObligationKind.MONTHLY, obligation_id, actor, db)


@router.post("/dues/{obligation_id}/reject", response_model=MonthlyDuesResponse)
def reject_monthly(
    obligation_id: str,
    body: Optional[RejectRequest] = None,
    actor: Actor = Depends(require_finance_manager),
    db: Session = Depends(get_db)
):
    """Reject a pending monthly dues claim."""
    return _reject(ObligationKind.MONTHLY, obligation_id, body, actor, db)


@router.post("/entrance/{obligation_id}/confirm", response_model=EntranceDuesResponse)
def confirm_entrance(
    obligation_id: str,
    actor: Actor = Depends(require_finance_manager),
    db: Session = Depends(get_db)
):
    return _confirm(ObligationKind.ENTRANCE, obligation_id, actor, db)


@router.post("/entrance/{obligation_id}/reject", response_model=EntranceDuesResponse)
def reject_entrance(
    obligation_id: str,
    body: Optional[RejectRequest] = None,
    actor: Actor = Depends(require_finance_manager),
    db: Session = Depends(get_db)
):
    return _reject(ObligationKind.ENTRANCE, obligation_id, body, actor, db)


@router.post("/dues/manual", response_model=MonthlyDuesResponse)
def record_manual_monthly(
    payment: ManualMonthlyPayment,
    actor: Actor = Depends(require_finance_manager),
    db: Session = Depends(get_db)
):
    """Record a cash or late-reported monthly payment directly as paid."""
    try:
        obligation = reconciliation.manual_backfill(
            db,
            member_id=payment.member_id,
            month=payment.month,
            year=payment.year,
            amount=payment.amount or settings.MONTHLY_DUES_AMOUNT,
            reference=payment.reference,
            actor_id=actor.actor_id,
        )
    except LedgerError as e:
        raise to_http_exception(e)
    return MonthlyDuesResponse.model_validate(obligation)


@router.post("/entrance/manual", response_model=EntranceDuesResponse)
def record_manual_entrance(
    payment: ManualEntrancePayment,
    actor: Actor = Depends(require_finance_manager),
    db: Session = Depends(get_db)
):
    """Record an entrance fee payment directly as paid."""
    try:
        obligation = reconciliation.manual_entrance_backfill(
            db,
            member_id=payment.member_id,
            amount=payment.amount or settings.ENTRANCE_FEE_AMOUNT,
            reference=payment.reference,
            actor_id=actor.actor_id,
        )
    except LedgerError as e:
        raise to_http_exception(e)
    return EntranceDuesResponse.model_validate(obligation)


def _delete(kind: ObligationKind, obligation_id: str, actor: Actor, db: Session):
    try:
        reconciliation.delete_obligation(db, _parse_id(obligation_id, "obligation ID"), actor.actor_id, kind=kind)
    except LedgerError as e:
        raise to_http_exception(e)
    return {"message": "Obligation deleted successfully"}


@router.delete("/dues/{obligation_id}")
def delete_monthly(
    obligation_id: str,
    actor: Actor = Depends(require_finance_manager),
    db: Session = Depends(get_db)
):
    """Delete a monthly dues row entered by mistake."""
    return _delete(ObligationKind.MONTHLY, obligation_id, actor, db)


@router.delete("/entrance/{obligation_id}")
def delete_entrance(
    obligation_id: str,
    actor: Actor = Depends(require_finance_manager),
    db: Session = Depends(get_db)
):
    return _delete(ObligationKind.ENTRANCE, obligation_id, actor, db)


# ---------------------------------------------------------------------------
# Discretionary income and expenses
# ---------------------------------------------------------------------------

@router.get("/entries", response_model=List[EntryResponse])
def list_entries(
    polarity: Optional[EntryPolarity] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Get income and expense lines, newest first."""
    try:
        return ledger.list_entries(db, polarity=polarity, category=category, search=search)
    except LedgerError as e:
        raise to_http_exception(e)


@router.get("/entries/{entry_id}", response_model=EntryResponse)
def get_entry(
    entry_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    try:
        return ledger.get_entry(db, _parse_id(entry_id, "entry ID"))
    except LedgerError as e:
        raise to_http_exception(e)


@router.post("/income", response_model=EntryResponse)
def create_income(
    income: IncomeCreate,
    actor: Actor = Depends(require_finance_manager),
    db: Session = Depends(get_db)
):
    """Record a donation, sponsorship or grant."""
    try:
        return ledger.record_income(
            db,
            title=income.title,
            amount=income.amount,
            source=income.source,
            entry_date=income.entry_date,
            description=income.description,
            created_by=actor.actor_id,
        )
    except LedgerError as e:
        raise to_http_exception(e)


@router.post("/expense", response_model=EntryResponse)
def create_expense(
    expense: ExpenseCreate,
    actor: Actor = Depends(require_finance_manager),
    db: Session = Depends(get_db)
):
    """Record an expense in one of the fixed categories."""
    try:
        return ledger.record_expense(
            db,
            title=expense.title,
            amount=expense.amount,
            category=expense.category,
            entry_date=expense.entry_date,
            description=expense.description,
            created_by=actor.actor_id,
        )
    except LedgerError as e:
        raise to_http_exception(e)


@router.put("/entries/{entry_id}", response_model=EntryResponse)
def update_entry(
    entry_id: str,
    update: EntryUpdate,
    actor: Actor = Depends(require_finance_manager),
    db: Session = Depends(get_db)
):
    try:
        return ledger.update_entry(
            db,
            _parse_id(entry_id, "entry ID"),
            updated_by=actor.actor_id,
            **update.model_dump(exclude_unset=True),
        )
    except LedgerError as e:
        raise to_http_exception(e)


@router.delete("/entries/{entry_id}")
def delete_entry(
    entry_id: str,
    actor: Actor = Depends(require_finance_manager),
    db: Session = Depends(get_db)
):
    try:
        ledger.delete_entry(db, _parse_id(entry_id, "entry ID"), deleted_by=actor.actor_id)
    except LedgerError as e:
        raise to_http_exception(e)
    return {"message": "Entry deleted successfully"}


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

@router.get("/summary")
def get_summary(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Dashboard figures: collected dues, income, expenses, balance and pending claims."""
    try:
        return aggregation.finance_summary(db)
    except LedgerError as e:
        raise to_http_exception(e)


@router.get("/categories")
def get_category_breakdown(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Expense totals for every category, including empty ones."""
    try:
        return aggregation.category_breakdown(db)
    except LedgerError as e:
        raise to_http_exception(e)


@router.get("/collected")
def get_year_collected(
    year: Optional[int] = None,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Dues collected in a year, or across all years when no year is given."""
    try:
        if year is not None:
            store.validate_period(1, year)
        return {"year": year, "collected": aggregation.year_collected(db, year)}
    except LedgerError as e:
        raise to_http_exception(e)


@router.get("/balance")
def get_balance(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    try:
        return {"balance": aggregation.organization_balance(db)}
    except LedgerError as e:
        raise to_http_exception(e)


@router.get("/trend")
def get_monthly_trend(
    months: int = Query(6, ge=1, le=36),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Income vs expense per month, oldest first."""
    try:
        return aggregation.monthly_trend(db, months=months)
    except LedgerError as e:
        raise to_http_exception(e)


@router.get("/members/overview")
def get_member_overview(
    year: Optional[int] = None,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Per-member dues overview for a year (defaults to the current year)."""
    try:
        if year is not None:
            store.validate_period(1, year)
        return aggregation.member_overview(db, year)
    except LedgerError as e:
        raise to_http_exception(e)


@router.get("/members/{member_id}/outstanding", response_model=OutstandingResponse)
def get_member_outstanding(
    member_id: str,
    year: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Dues a member still owes for months already due in a year."""
    try:
        store.validate_period(1, year)
        return aggregation.member_outstanding(db, _parse_id(member_id, "member ID"), year)
    except LedgerError as e:
        raise to_http_exception(e)
