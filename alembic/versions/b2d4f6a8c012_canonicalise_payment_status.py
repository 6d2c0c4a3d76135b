"""canonicalise_payment_status

Revision ID: b2d4f6a8c012
Revises: a1c3e5f7b901
Create Date: 2025-02-10 14:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from app.services.status import PaymentStatus, canonical_rewrites

# revision identifiers, used by Alembic.
revision: str = 'b2d4f6a8c012'
down_revision: Union[str, None] = 'a1c3e5f7b901'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TABLES = ('monthly_dues', 'entrance_dues')


def upgrade() -> None:
    # Rows written by older screens hold "sudah_bayar", "Sudah Bayar",
    # "confirmed", "gagal" and friends. Each distinct stored value goes through
    # the same normaliser the application reads with, then is rewritten by
    # exact match.
    connection = op.get_bind()
    for table in TABLES:
        stored = connection.execute(sa.text(f"SELECT DISTINCT status FROM {table}")).scalars().all()
        for raw, canonical in canonical_rewrites(stored).items():
            connection.execute(
                sa.text(f"UPDATE {table} SET status = :canonical WHERE status = :raw"),
                {"canonical": canonical.value, "raw": raw},
            )
        connection.execute(
            sa.text(f"UPDATE {table} SET status = :canonical WHERE status IS NULL"),
            {"canonical": PaymentStatus.UNPAID.value},
        )


def downgrade() -> None:
    # The original spellings are not recorded, so there is nothing to restore.
    pass
