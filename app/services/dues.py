"""Persistent store for monthly and entrance dues.

Every write is a single conditional statement keyed on the unique
obligation key (member, month, year) or the row id, so two administrators
acting on the same period at the same time cannot produce duplicate rows or
overwrite each other's confirmation. Nothing here commits; the
reconciliation service owns the transaction.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy import String, case, func, literal, or_, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import DuplicateKeyViolation, InvalidAmount, InvalidPeriod, InvalidTransition, NotFound
from app.models.dues import EntranceDues, MonthlyDues, ObligationKind
from app.services.status import PaymentStatus, normalize_status, raw_tokens

logger = logging.getLogger(__name__)

MIN_YEAR = 2000
MAX_YEAR = 2100

Obligation = Union[MonthlyDues, EntranceDues]


@dataclass
class UpsertResult:
    obligation: Obligation
    applied: bool  # False when the status guard refused the update


def validate_period(month: int, year: int) -> None:
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise InvalidPeriod(f"Invalid month: {month}")
    if isinstance(year, bool) or not isinstance(year, int) or not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidPeriod(f"Invalid year: {year}")


def parse_amount(value) -> Decimal:
    """Convert to a 2dp Decimal, rejecting anything that is not strictly positive."""
    if isinstance(value, bool) or value is None:
        raise InvalidAmount(f"Invalid amount: {value}")
    try:
        amount = Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        raise InvalidAmount(f"Invalid amount: {value}")
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount(f"Amount must be positive, got {value}")
    return amount


def model_for(kind: ObligationKind):
    return MonthlyDues if ObligationKind(kind) == ObligationKind.MONTHLY else EntranceDues


def cleaned_status(column):
    """SQL twin of the token cleanup in normalize_status: trim, lower, '-' and ' ' to '_'."""
    cleaned = func.lower(func.trim(column, type_=String), type_=String)
    cleaned = func.replace(cleaned, literal("-", String), literal("_", String), type_=String)
    return func.replace(cleaned, literal(" ", String), literal("_", String), type_=String)


def status_in(column, *statuses: PaymentStatus):
    """SQL predicate: stored status normalises to one of ``statuses``.

    Compares the cleaned status against every known spelling so rows that
    still hold legacy values match. Unknown spellings count as UNPAID.
    """
    cleaned = cleaned_status(column)
    if PaymentStatus.UNPAID in statuses:
        others = [s for s in PaymentStatus if s not in statuses]
        if not others:
            return column.isnot(None) | column.is_(None)
        return or_(column.is_(None), cleaned.notin_(raw_tokens(*others)))
    return cleaned.in_(raw_tokens(*statuses))


def _insert(db: Session, table):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table)
    if dialect == "sqlite":
        return sqlite.insert(table)
    raise RuntimeError(f"Atomic upsert is not implemented for dialect '{dialect}'")


def _reload(db: Session, model, *criteria) -> Optional[Obligation]:
    return (
        db.query(model)
        .filter(*criteria)
        .execution_options(populate_existing=True)
        .first()
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def get_year(db: Session, member_id: UUID, year: int) -> List[MonthlyDues]:
    """Stored monthly rows for the year (0-12). Missing months are implicitly unpaid."""
    return (
        db.query(MonthlyDues)
        .filter(MonthlyDues.member_id == member_id, MonthlyDues.year == year)
        .order_by(MonthlyDues.month)
        .all()
    )


def get_monthly(db: Session, obligation_id: UUID) -> Optional[MonthlyDues]:
    return _reload(db, MonthlyDues, MonthlyDues.id == obligation_id)


def get_monthly_for_period(db: Session, member_id: UUID, month: int, year: int) -> Optional[MonthlyDues]:
    return _reload(
        db, MonthlyDues,
        MonthlyDues.member_id == member_id,
        MonthlyDues.month == month,
        MonthlyDues.year == year,
    )


def get_entrance(db: Session, obligation_id: UUID) -> Optional[EntranceDues]:
    return _reload(db, EntranceDues, EntranceDues.id == obligation_id)


def get_entrance_for_member(db: Session, member_id: UUID) -> Optional[EntranceDues]:
    return _reload(db, EntranceDues, EntranceDues.member_id == member_id)


def get_obligation(db: Session, kind: ObligationKind, obligation_id: UUID) -> Obligation:
    model = model_for(kind)
    obligation = _reload(db, model, model.id == obligation_id)
    if obligation is None:
        raise NotFound(f"{ObligationKind(kind).value.capitalize()} dues {obligation_id} not found")
    return obligation


def list_by_status(db: Session, kind: ObligationKind, statuses: Iterable[PaymentStatus]) -> List[Obligation]:
    model = model_for(kind)
    return (
        db.query(model)
        .filter(status_in(model.status, *statuses))
        .order_by(model.created_at, model.id)
        .all()
    )


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def _upsert(
    db: Session,
    model,
    key: dict,
    conflict_columns: List[str],
    amount,
    reference: Optional[str],
    status,
    paid_at: Optional[datetime],
    only_from: Optional[Iterable[PaymentStatus]],
    fallback_reference: Optional[str],
    actor_fields: dict,
) -> UpsertResult:
    table = model.__table__
    status = normalize_status(status)
    amount = parse_amount(amount)
    values = dict(
        key,
        id=uuid.uuid4(),
        amount=amount,
        status=status,
        paid_at=paid_at,
        reference=reference if reference is not None else fallback_reference,
        **actor_fields,
    )
    stmt = _insert(db, table).values(**values)
    # Without an explicit reference, keep whatever the row already carries
    # (e.g. the member's transfer reference) and only then the fallback.
    if reference is not None:
        new_reference = stmt.excluded.reference
    else:
        new_reference = func.coalesce(table.c.reference, stmt.excluded.reference)
    # A correction to an already-paid row keeps its original paid_at, so the
    # income stays in the year and month it was collected.
    if status == PaymentStatus.PAID:
        new_paid_at = case(
            (status_in(table.c.status, PaymentStatus.PAID),
             func.coalesce(table.c.paid_at, stmt.excluded.paid_at)),
            else_=stmt.excluded.paid_at,
        )
    else:
        new_paid_at = stmt.excluded.paid_at
    set_ = {
        "amount": stmt.excluded.amount,
        "status": stmt.excluded.status,
        "paid_at": new_paid_at,
        "reference": new_reference,
        "rejected_by": None,
        "rejected_at": None,
        "updated_at": func.now(),
    }
    for column in actor_fields:
        set_[column] = getattr(stmt.excluded, column)
    where = status_in(table.c.status, *only_from) if only_from else None
    stmt = stmt.on_conflict_do_update(index_elements=conflict_columns, set_=set_, where=where)

    try:
        result = db.execute(stmt)
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Uniqueness violation on {table.name} {key}: {e}")
        raise DuplicateKeyViolation(f"Duplicate {table.name} row for {key}") from e

    obligation = _reload(db, model, *[getattr(model, column) == value for column, value in key.items()])
    return UpsertResult(obligation=obligation, applied=result.rowcount != 0)


def upsert_monthly(
    db: Session,
    member_id: UUID,
    month: int,
    year: int,
    amount,
    reference: Optional[str],
    status,
    paid_at: Optional[datetime] = None,
    only_from: Optional[Iterable[PaymentStatus]] = None,
    fallback_reference: Optional[str] = None,
    confirmed_by: Optional[UUID] = None,
) -> UpsertResult:
    """Insert or update the single row for (member_id, month, year).

    ``only_from`` limits the update to rows whose current status is in that
    set; when the guard refuses, the row is returned untouched with
    ``applied=False``.
    """
    validate_period(month, year)
    return _upsert(
        db, MonthlyDues,
        key={"member_id": member_id, "month": month, "year": year},
        conflict_columns=["member_id", "month", "year"],
        amount=amount,
        reference=reference,
        status=status,
        paid_at=paid_at,
        only_from=only_from,
        fallback_reference=fallback_reference,
        actor_fields={"confirmed_by": confirmed_by},
    )


def upsert_entrance(
    db: Session,
    member_id: UUID,
    amount,
    reference: Optional[str],
    status,
    paid_at: Optional[datetime] = None,
    only_from: Optional[Iterable[PaymentStatus]] = None,
    fallback_reference: Optional[str] = None,
    confirmed_by: Optional[UUID] = None,
) -> UpsertResult:
    """Same contract as upsert_monthly, keyed on member_id alone."""
    return _upsert(
        db, EntranceDues,
        key={"member_id": member_id},
        conflict_columns=["member_id"],
        amount=amount,
        reference=reference,
        status=status,
        paid_at=paid_at,
        only_from=only_from,
        fallback_reference=fallback_reference,
        actor_fields={"confirmed_by": confirmed_by},
    )


def set_status(
    db: Session,
    kind: ObligationKind,
    obligation_id: UUID,
    new_status,
    paid_at: Optional[datetime] = None,
    only_from: Optional[Iterable[PaymentStatus]] = None,
    **fields,
) -> Tuple[Obligation, bool]:
    """Compare-and-swap the status of one obligation.

    Returns (obligation, changed). Setting the status the row already has
    is a no-op. When ``only_from`` is given and the current status is
    outside it, InvalidTransition is raised and nothing is written.
    """
    model = model_for(kind)
    table = model.__table__
    new_status = normalize_status(new_status)

    values = {"status": new_status, "updated_at": func.now(), **fields}
    if new_status == PaymentStatus.PAID:
        values["paid_at"] = paid_at or datetime.utcnow()
    elif paid_at is not None:
        values["paid_at"] = paid_at

    conditions = [table.c.id == obligation_id, ~status_in(table.c.status, new_status)]
    if only_from:
        conditions.append(status_in(table.c.status, *only_from))
    result = db.execute(update(table).where(*conditions).values(**values))

    obligation = get_obligation(db, kind, obligation_id)
    if result.rowcount:
        return obligation, True
    if obligation.status == new_status:
        return obligation, False
    raise InvalidTransition(
        f"Cannot move {ObligationKind(kind).value} dues from '{obligation.status.value}' to '{new_status.value}'"
    )


def delete_obligation(db: Session, kind: ObligationKind, obligation_id: UUID) -> Obligation:
    obligation = get_obligation(db, kind, obligation_id)
    db.delete(obligation)
    db.flush()
    return obligation
