"""Derived financial figures, recomputed from the stores on every read.

Nothing here is cached or stored.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import extract, func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.base import with_storage_retry
from app.models.dues import EntranceDues, MonthlyDues
from app.models.ledger import DiscretionaryEntry, EntryPolarity, ExpenseCategory
from app.services import dues as store
from app.services.directory import list_members
from app.services.status import PaymentStatus

ZERO = Decimal("0.00")


def _money(value) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(Decimal("0.01"))


@dataclass
class MemberOutstanding:
    member_id: UUID
    year: int
    outstanding: Decimal
    due_months: List[int]
    paid_months: List[int]
    pending_months: List[int]
    unpaid_months: List[int]  # unpaid or failed, already due
    not_yet_due_months: List[int]
    not_yet_due_amount: Decimal


@dataclass
class MonthStatus:
    month: int
    status: PaymentStatus
    amount: Decimal
    obligation_id: Optional[UUID] = None
    paid_at: Optional[datetime] = None
    reference: Optional[str] = None


@dataclass
class MemberYearStatus:
    member_id: UUID
    year: int
    months: List[MonthStatus] = field(default_factory=list)

    @property
    def paid_count(self) -> int:
        return sum(1 for m in self.months if m.status == PaymentStatus.PAID)

    @property
    def total_paid(self) -> Decimal:
        return sum((m.amount for m in self.months if m.status == PaymentStatus.PAID), ZERO)

    @property
    def total_pending(self) -> Decimal:
        return sum((m.amount for m in self.months if m.status == PaymentStatus.PENDING), ZERO)


def due_month_count(year: int, today: date) -> int:
    """How many months of ``year`` have fallen due by ``today``."""
    if year < today.year:
        return 12
    if year > today.year:
        return 0
    return today.month


@with_storage_retry
def member_year_status(db: Session, member_id: UUID, year: int) -> MemberYearStatus:
    """All 12 months of a year; months without a row are reported unpaid at the standard amount."""
    rows = {row.month: row for row in store.get_year(db, member_id, year)}
    result = MemberYearStatus(member_id=member_id, year=year)
    for month in range(1, 13):
        row = rows.get(month)
        if row is None:
            result.months.append(MonthStatus(month=month, status=PaymentStatus.UNPAID,
                                             amount=_money(settings.MONTHLY_DUES_AMOUNT)))
        else:
            result.months.append(MonthStatus(month=month, status=row.status, amount=_money(row.amount),
                                             obligation_id=row.id, paid_at=row.paid_at, reference=row.reference))
    return result


@with_storage_retry
def member_outstanding(db: Session, member_id: UUID, year: int, today: date = None) -> MemberOutstanding:
    """Sum of due-but-unpaid months; future months are reported separately as not yet due."""
    today = today or date.today()
    grid = member_year_status(db, member_id, year)
    due_count = due_month_count(year, today)

    outstanding = ZERO
    not_yet_due_amount = ZERO
    due, paid, pending, unpaid, not_yet_due = [], [], [], [], []
    for entry in grid.months:
        if entry.month > due_count:
            not_yet_due.append(entry.month)
            if entry.status == PaymentStatus.PAID:
                paid.append(entry.month)
            else:
                not_yet_due_amount += entry.amount
            continue
        due.append(entry.month)
        if entry.status == PaymentStatus.PAID:
            paid.append(entry.month)
            continue
        outstanding += entry.amount
        if entry.status == PaymentStatus.PENDING:
            pending.append(entry.month)
        else:
            unpaid.append(entry.month)

    return MemberOutstanding(
        member_id=member_id,
        year=year,
        outstanding=outstanding,
        due_months=due,
        paid_months=paid,
        pending_months=pending,
        unpaid_months=unpaid,
        not_yet_due_months=not_yet_due,
        not_yet_due_amount=not_yet_due_amount,
    )


def _paid_monthly_total(db: Session, year: Optional[int] = None) -> Decimal:
    query = db.query(func.coalesce(func.sum(MonthlyDues.amount), 0)).filter(
        store.status_in(MonthlyDues.status, PaymentStatus.PAID)
    )
    if year is not None:
        query = query.filter(MonthlyDues.year == year)
    return _money(query.scalar())


def _paid_entrance_total(db: Session, year: Optional[int] = None) -> Decimal:
    query = db.query(func.coalesce(func.sum(EntranceDues.amount), 0)).filter(
        store.status_in(EntranceDues.status, PaymentStatus.PAID)
    )
    if year is not None:
        recorded_at = func.coalesce(EntranceDues.paid_at, EntranceDues.created_at)
        query = query.filter(extract("year", recorded_at) == year)
    return _money(query.scalar())


def _discretionary_total(db: Session, polarity: EntryPolarity) -> Decimal:
    total = db.query(func.coalesce(func.sum(DiscretionaryEntry.amount), 0)).filter(
        DiscretionaryEntry.polarity == polarity
    ).scalar()
    return _money(total)


@with_storage_retry
def year_collected(db: Session, year: Optional[int] = None) -> Decimal:
    """Paid monthly dues for the year plus entrance fees paid in that year.

    ``year=None`` sums every year.
    """
    return _paid_monthly_total(db, year) + _paid_entrance_total(db, year)


@with_storage_retry
def organization_balance(db: Session) -> Decimal:
    """All collected dues plus discretionary income, minus all expenses."""
    return (
        _paid_monthly_total(db)
        + _paid_entrance_total(db)
        + _discretionary_total(db, EntryPolarity.INCOME)
        - _discretionary_total(db, EntryPolarity.EXPENSE)
    )


@with_storage_retry
def category_breakdown(db: Session) -> List[dict]:
    """Expense total and count for every category, zero rows included, in enum order."""
    rows = db.query(
        DiscretionaryEntry.category,
        func.coalesce(func.sum(DiscretionaryEntry.amount), 0),
        func.count(DiscretionaryEntry.id),
    ).filter(
        DiscretionaryEntry.polarity == EntryPolarity.EXPENSE
    ).group_by(DiscretionaryEntry.category).all()
    totals = {category: (_money(total), count) for category, total, count in rows}

    return [
        {
            "category": category.value,
            "total": totals.get(category.value, (ZERO, 0))[0],
            "count": totals.get(category.value, (ZERO, 0))[1],
        }
        for category in ExpenseCategory
    ]


@with_storage_retry
def pending_claims_total(db: Session) -> Dict[str, object]:
    count = 0
    amount = ZERO
    for model in (MonthlyDues, EntranceDues):
        row_count, total = db.query(
            func.count(model.id), func.coalesce(func.sum(model.amount), 0)
        ).filter(store.status_in(model.status, PaymentStatus.PENDING)).one()
        count += row_count
        amount += _money(total)
    return {"count": count, "amount": amount}


@with_storage_retry
def finance_summary(db: Session) -> dict:
    """Figures behind the admin dashboard cards."""
    dues_collected = year_collected(db)
    income = _discretionary_total(db, EntryPolarity.INCOME)
    expense = _discretionary_total(db, EntryPolarity.EXPENSE)
    pending = pending_claims_total(db)
    return {
        "dues_collected": dues_collected,
        "discretionary_income": income,
        "total_income": dues_collected + income,
        "total_expense": expense,
        "balance": dues_collected + income - expense,
        "pending_claims": pending["count"],
        "pending_amount": pending["amount"],
    }


def _shift_month(year: int, month: int, delta: int):
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


@with_storage_retry
def monthly_trend(db: Session, months: int = 6, today: date = None) -> List[dict]:
    """Income vs expense per calendar month for the last ``months`` months, oldest first.

    Dues count in the month they were paid; discretionary lines in the month
    of their entry date.
    """
    today = today or date.today()
    months = max(1, months)
    start_year, start_month = _shift_month(today.year, today.month, -(months - 1))
    start = date(start_year, start_month, 1)

    buckets = {}
    for i in range(months):
        y, m = _shift_month(start_year, start_month, i)
        buckets[(y, m)] = {"year": y, "month": m, "income": ZERO, "expense": ZERO}

    for model in (MonthlyDues, EntranceDues):
        paid_rows = db.query(model.paid_at, model.created_at, model.amount).filter(
            store.status_in(model.status, PaymentStatus.PAID)
        ).all()
        for paid_at, created_at, amount in paid_rows:
            when = paid_at or created_at
            if when is None or when.date() < start:
                continue
            bucket = buckets.get((when.year, when.month))
            if bucket:
                bucket["income"] += _money(amount)

    entries = db.query(DiscretionaryEntry).filter(DiscretionaryEntry.entry_date >= start).all()
    for entry in entries:
        bucket = buckets.get((entry.entry_date.year, entry.entry_date.month))
        if not bucket:
            continue
        key = "income" if entry.polarity == EntryPolarity.INCOME else "expense"
        bucket[key] += _money(entry.amount)

    return list(buckets.values())


@with_storage_retry
def member_overview(db: Session, year: int = None, today: date = None) -> List[dict]:
    """Per member: current month paid flag, months paid this year, outstanding, entrance paid."""
    today = today or date.today()
    year = year or today.year
    result = []
    for member in list_members(db):
        grid = member_year_status(db, member.id, year)
        outstanding = member_outstanding(db, member.id, year, today=today)
        entrance = store.get_entrance_for_member(db, member.id)
        current = grid.months[today.month - 1] if year == today.year else None
        result.append({
            "member_id": str(member.id),
            "member_name": (member.full_name or "").strip().title(),
            "house_no": member.house_no or "-",
            "member_status": member.status.value,
            "current_month_paid": bool(current and current.status == PaymentStatus.PAID),
            "paid_months": grid.paid_count,
            "outstanding": outstanding.outstanding,
            "entrance_paid": bool(entrance and entrance.status == PaymentStatus.PAID),
        })
    return result
