#!/usr/bin/env python3
"""Report every raw payment status stored in the database and how it normalises."""
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.db.base import SessionLocal
from app.services.status import PaymentStatus, normalize_status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

TABLES = ("monthly_dues", "entrance_dues")


def check_status_vocabulary():
    """Print the distinct stored spellings per table and flag non-canonical ones."""
    canonical = {s.value for s in PaymentStatus}
    db = SessionLocal()
    try:
        for table in TABLES:
            # Read the raw column; the ORM type would already normalise it.
            result = db.execute(text(f"SELECT status, COUNT(*) FROM {table} GROUP BY status ORDER BY status"))
            rows = result.fetchall()
            print(f"\n{table}: {sum(count for _, count in rows)} rows")
            legacy = 0
            for raw, count in rows:
                mapped = normalize_status(raw)
                marker = "" if raw in canonical else "  <- legacy"
                if marker:
                    legacy += count
                print(f"  {raw!r:<28} {count:>6}  -> {mapped.value}{marker}")
            if legacy:
                print(f"  {legacy} rows use legacy spellings; run `alembic upgrade head` to canonicalise them")
    except SQLAlchemyError as e:
        print(f"Error: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    check_status_vocabulary()
