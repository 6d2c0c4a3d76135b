"""Custom SQLAlchemy column types."""
from sqlalchemy import String
from sqlalchemy.types import TypeDecorator

from app.services.status import PaymentStatus, normalize_status


class PaymentStatusType(TypeDecorator):
    """Payment status stored as a plain lower-case string.

    Writes always store the canonical value. Reads pass through
    normalize_status, so rows still holding legacy spellings ("sudah_bayar",
    "confirmed", "gagal") load as canonical PaymentStatus members.
    """
    impl = String(30)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        return dialect.type_descriptor(String(30))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return normalize_status(value).value

    def process_result_value(self, value, dialect):
        if value is None:
            return PaymentStatus.UNPAID
        return normalize_status(value)
