"""Canonical payment status and the mapping from every legacy spelling.

Older write paths stored Malay tokens ("sudah_bayar", "gagal"), the admin
screens stored "confirmed", and the gateway prototype stored "approved".
All of them are folded into four canonical values here and nowhere else.
"""
import enum
from typing import Dict, FrozenSet, Iterable, Optional


class PaymentStatus(str, enum.Enum):
    """Canonical payment status shared by monthly and entrance dues."""
    UNPAID = "unpaid"
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


_SYNONYMS = {
    PaymentStatus.PAID: ("paid", "dibayar", "sudah_bayar", "confirmed", "approved", "settled"),
    PaymentStatus.PENDING: ("pending", "submitted", "menunggu", "awaiting_confirmation"),
    PaymentStatus.FAILED: ("failed", "gagal", "rejected", "ditolak"),
    PaymentStatus.UNPAID: ("unpaid", "belum_bayar", "belum", ""),
}

_LOOKUP = {token: status for status, tokens in _SYNONYMS.items() for token in tokens}


def _clean(raw: str) -> str:
    return raw.strip().lower().replace("-", "_").replace(" ", "_")


def normalize_status(raw: Optional[str]) -> PaymentStatus:
    """Map any stored status spelling onto a canonical PaymentStatus.

    Total and side-effect free: unknown values fall back to UNPAID so a single
    unreadable legacy row can never block an aggregate.
    """
    if raw is None:
        return PaymentStatus.UNPAID
    if isinstance(raw, PaymentStatus):
        return raw
    return _LOOKUP.get(_clean(str(raw)), PaymentStatus.UNPAID)


def raw_tokens(*statuses: PaymentStatus) -> FrozenSet[str]:
    """All stored spellings (lower-case) of the given canonical statuses.

    Used to build SQL predicates (compared against the cleaned status
    column) that still match rows written before the column was canonicalised.
    """
    tokens = set()
    for status in statuses:
        tokens.update(t for t in _SYNONYMS[status] if t)
    return frozenset(tokens)


def is_settled(raw: Optional[str]) -> bool:
    return normalize_status(raw) == PaymentStatus.PAID


def canonical_rewrites(stored: Iterable[Optional[str]]) -> Dict[str, PaymentStatus]:
    """Map each distinct stored spelling to its canonical status.

    Values already canonical are left out, as is NULL.
    """
    rewrites = {}
    for raw in stored:
        if raw is None:
            continue
        status = normalize_status(raw)
        if raw != status.value:
            rewrites[raw] = status
    return rewrites
