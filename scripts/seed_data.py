"""
Seed demo data: members, a few months of dues and some ledger lines.
"""
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from app.db.base import SessionLocal
from app.core.config import settings
from app.models.member import MemberProfile, MemberStatus
from app.models.ledger import ExpenseCategory
from app.services import ledger, reconciliation
from app.services import dues as store
from datetime import date
import uuid

SEED_ACTOR = uuid.UUID("00000000-0000-0000-0000-000000000001")


def seed_members(db):
    """Seed demo members."""
    print("Seeding members...")
    members = [
        {"full_name": "Siti Rahmah", "house_no": "A-01", "status": MemberStatus.ACTIVE},
        {"full_name": "Ahmad Fauzi", "house_no": "A-02", "status": MemberStatus.ACTIVE},
        {"full_name": "Lim Wei Ling", "house_no": "B-07", "status": MemberStatus.ACTIVE},
        {"full_name": "Rajesh Kumar", "house_no": "C-12", "status": MemberStatus.PENDING},
    ]

    seeded = []
    for member_data in members:
        existing = db.query(MemberProfile).filter(MemberProfile.house_no == member_data["house_no"]).first()
        if not existing:
            existing = MemberProfile(joined_on=date.today(), **member_data)
            db.add(existing)
            db.commit()
        seeded.append(existing)

    print("Members seeded")
    return seeded


def seed_dues(db, members):
    """Seed paid and pending dues for the current year."""
    print("Seeding dues...")
    today = date.today()
    for index, member in enumerate(members):
        if member.status != MemberStatus.ACTIVE:
            continue
        reconciliation.manual_entrance_backfill(db, member.id, settings.ENTRANCE_FEE_AMOUNT, None, SEED_ACTOR)
        paid_through = max(0, today.month - 1 - index)
        for month in range(1, paid_through + 1):
            reconciliation.manual_backfill(db, member.id, month, today.year, settings.MONTHLY_DUES_AMOUNT,
                                           None, SEED_ACTOR)
        if paid_through < today.month:
            existing = store.get_monthly_for_period(db, member.id, paid_through + 1, today.year)
            if not existing:
                reconciliation.submit_claim(db, member.id, paid_through + 1, today.year,
                                            settings.MONTHLY_DUES_AMOUNT, f"TRF-{member.house_no}-{today.year}")
    print("Dues seeded")


def seed_ledger(db):
    """Seed a donation and a couple of expenses."""
    print("Seeding ledger entries...")
    if ledger.list_entries(db):
        print("Ledger already has entries, skipping")
        return
    ledger.record_income(db, "Hari Raya open house donation", "150.00", source="donation", created_by=SEED_ACTOR)
    ledger.record_expense(db, "Playground repair", "80.00", ExpenseCategory.MAINTENANCE, created_by=SEED_ACTOR)
    ledger.record_expense(db, "Gotong-royong refreshments", "35.50", ExpenseCategory.ACTIVITIES, created_by=SEED_ACTOR)
    print("Ledger entries seeded")


if __name__ == "__main__":
    db = SessionLocal()
    try:
        members = seed_members(db)
        seed_dues(db, members)
        seed_ledger(db)
        print("\nSeed data complete!")
    except Exception as e:
        db.rollback()
        print(f"Error seeding data: {e}")
        raise
    finally:
        db.close()
