"""Discretionary income and expense lines (not tied to any member)."""
import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.audit import write_audit_log
from app.core.exceptions import InvalidCategory, InvalidEntry, NotFound
from app.db.base import with_storage_retry
from app.models.ledger import DiscretionaryEntry, EntryPolarity, ExpenseCategory
from app.services.dues import parse_amount
from app.services.notifier import notifier

logger = logging.getLogger(__name__)

ENTITY_TYPE = "discretionary_entry"
EXPENSE_CATEGORIES = [c.value for c in ExpenseCategory]


def _expense_category(category) -> str:
    value = category.value if isinstance(category, ExpenseCategory) else str(category or "").strip().lower()
    if value not in EXPENSE_CATEGORIES:
        raise InvalidCategory(
            f"Unknown expense category '{category}'. Expected one of: {', '.join(EXPENSE_CATEGORIES)}"
        )
    return value


def _income_source(source) -> str:
    value = str(source.value if hasattr(source, "value") else source or "").strip().lower()
    if not value:
        raise InvalidCategory("Income source is required")
    return value


def _title(title: str) -> str:
    title = (title or "").strip()
    if not title:
        raise InvalidEntry("Title is required")
    return title


def _record(db: Session, polarity: EntryPolarity, title: str, category: str, amount, entry_date: date,
            description: Optional[str], created_by: Optional[UUID]) -> DiscretionaryEntry:
    entry = DiscretionaryEntry(
        polarity=polarity,
        title=_title(title),
        category=category,
        amount=parse_amount(amount),
        entry_date=entry_date or date.today(),
        description=description or None,
        created_by=created_by,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    write_audit_log(created_by, "finance", f"record_{polarity.value}", ENTITY_TYPE, entry.id,
                    f"amount={entry.amount} category={entry.category}")
    notifier.emit(ENTITY_TYPE, entry.id, "recorded")
    return entry


@with_storage_retry
def record_income(db: Session, title: str, amount, source="donation", entry_date: date = None,
                  description: str = None, created_by: UUID = None) -> DiscretionaryEntry:
    """Donation, sponsorship or grant. Income sources are an open tag."""
    return _record(db, EntryPolarity.INCOME, title, _income_source(source), amount, entry_date, description, created_by)


@with_storage_retry
def record_expense(db: Session, title: str, amount, category, entry_date: date = None,
                   description: str = None, created_by: UUID = None) -> DiscretionaryEntry:
    """Outflow in one of the closed expense categories."""
    return _record(db, EntryPolarity.EXPENSE, title, _expense_category(category), amount, entry_date, description, created_by)


@with_storage_retry
def get_entry(db: Session, entry_id: UUID) -> DiscretionaryEntry:
    entry = db.query(DiscretionaryEntry).filter(DiscretionaryEntry.id == entry_id).first()
    if not entry:
        raise NotFound(f"Ledger entry {entry_id} not found")
    return entry


@with_storage_retry
def update_entry(
    db: Session,
    entry_id: UUID,
    updated_by: UUID,
    title: str = None,
    amount=None,
    category: str = None,
    entry_date: date = None,
    description: str = None,
) -> DiscretionaryEntry:
    """Edit an entry in place. Polarity is fixed at creation."""
    entry = get_entry(db, entry_id)
    if title is not None:
        entry.title = _title(title)
    if amount is not None:
        entry.amount = parse_amount(amount)
    if category is not None:
        if entry.polarity == EntryPolarity.EXPENSE:
            entry.category = _expense_category(category)
        else:
            entry.category = _income_source(category)
    if entry_date is not None:
        entry.entry_date = entry_date
    if description is not None:
        entry.description = description or None
    entry.updated_by = updated_by

    db.commit()
    db.refresh(entry)
    write_audit_log(updated_by, "finance", "update_entry", ENTITY_TYPE, entry.id,
                    f"amount={entry.amount} category={entry.category}")
    notifier.emit(ENTITY_TYPE, entry.id, "updated")
    return entry


@with_storage_retry
def delete_entry(db: Session, entry_id: UUID, deleted_by: UUID) -> None:
    entry = get_entry(db, entry_id)
    summary = f"{entry.polarity.value} amount={entry.amount} title={entry.title}"
    db.delete(entry)
    db.commit()
    write_audit_log(deleted_by, "finance", "delete_entry", ENTITY_TYPE, entry_id, summary)
    notifier.emit(ENTITY_TYPE, entry_id, "deleted")


@with_storage_retry
def list_entries(
    db: Session,
    polarity: Optional[EntryPolarity] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
) -> List[DiscretionaryEntry]:
    """Newest first, optionally filtered by polarity, category and free text."""
    query = db.query(DiscretionaryEntry)
    if polarity:
        query = query.filter(DiscretionaryEntry.polarity == EntryPolarity(polarity))
    if category:
        query = query.filter(DiscretionaryEntry.category == category.strip().lower())
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            DiscretionaryEntry.title.ilike(pattern),
            DiscretionaryEntry.description.ilike(pattern),
        ))
    return query.order_by(DiscretionaryEntry.entry_date.desc(), DiscretionaryEntry.created_at.desc()).all()
