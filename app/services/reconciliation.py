"""Payment claim and confirmation workflow for monthly and entrance dues.

State machine per obligation::

    unpaid --submit_claim--> pending --confirm--> paid
                                 \\--reject---> failed --submit_claim--> pending
    any non-paid --confirm / manual_backfill--> paid

Members may only claim from unpaid or failed. Administrators may confirm or
backfill from any state that is not already paid. Authorization happens
before these functions are called; they receive the acting user's id only
for stamping and auditing.
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.audit import write_audit_log
from app.core.config import settings
from app.core.exceptions import InvalidPeriod, InvalidTransition, NotFound
from app.db.base import with_storage_retry
from app.models.dues import EntranceDues, MonthlyDues, ObligationKind
from app.models.member import MemberProfile
from app.services import dues as store
from app.services.directory import member_labels
from app.services.notifier import notifier
from app.services.status import PaymentStatus

logger = logging.getLogger(__name__)

CLAIMABLE_FROM = (PaymentStatus.UNPAID, PaymentStatus.FAILED)
CONFIRMABLE_FROM = (PaymentStatus.UNPAID, PaymentStatus.PENDING, PaymentStatus.FAILED)

ENTITY_TYPES = {
    ObligationKind.MONTHLY: "monthly_dues",
    ObligationKind.ENTRANCE: "entrance_dues",
}


@dataclass
class ClaimOutcome:
    month: int
    year: int
    obligation: Optional[MonthlyDues]
    skipped_reason: Optional[str] = None


def manual_reference() -> str:
    """Reference stamped on admin entries that came without one."""
    return f"MANUAL-{int(time.time() * 1000)}"


def _require_member(db: Session, member_id: UUID) -> None:
    if db.query(MemberProfile.id).filter(MemberProfile.id == member_id).first() is None:
        raise NotFound(f"Member {member_id} not found")


def _committed(db: Session, kind: ObligationKind, obligation, actor_id, actor_role: str, action: str, details: str = ""):
    """Commit, audit and announce a successful mutation."""
    db.commit()
    write_audit_log(actor_id, actor_role, action, ENTITY_TYPES[kind], obligation.id, details)
    notifier.emit(ENTITY_TYPES[kind], obligation.id, obligation.status.value)
    return obligation


def _period_label(month: int, year: int) -> str:
    return f"{month:02d}/{year}"


# ---------------------------------------------------------------------------
# Member claims
# ---------------------------------------------------------------------------

@with_storage_retry
def submit_claim(
    db: Session,
    member_id: UUID,
    month: int,
    year: int,
    amount,
    reference: Optional[str],
    actor_id: Optional[UUID] = None,
) -> MonthlyDues:
    """Member reports a bank transfer for one month; the period becomes pending."""
    store.validate_period(month, year)
    _require_member(db, member_id)

    result = store.upsert_monthly(
        db, member_id, month, year,
        amount=amount,
        reference=reference,
        status=PaymentStatus.PENDING,
        paid_at=None,
        only_from=CLAIMABLE_FROM,
    )
    if not result.applied:
        db.rollback()
        current = result.obligation.status
        if current == PaymentStatus.PAID:
            raise InvalidPeriod(f"Dues for {_period_label(month, year)} are already paid")
        raise InvalidTransition(
            f"Dues for {_period_label(month, year)} already have a claim awaiting confirmation"
        )

    logger.info(f"Claim submitted for member {member_id} period {_period_label(month, year)}")
    return _committed(
        db, ObligationKind.MONTHLY, result.obligation, actor_id or member_id, "member",
        "submit_claim", f"period={_period_label(month, year)} amount={result.obligation.amount} ref={reference}",
    )


def submit_claims(
    db: Session,
    member_id: UUID,
    months: List[int],
    year: int,
    reference: Optional[str],
    actor_id: Optional[UUID] = None,
) -> List[ClaimOutcome]:
    """Claim several months paid with one transfer, each at the standard monthly amount.

    Months that are already paid or already pending are reported as skipped
    instead of failing the whole batch.
    """
    if not months:
        raise InvalidPeriod("Select at least one month")
    for month in months:
        store.validate_period(month, year)

    outcomes = []
    for month in sorted(set(months)):
        try:
            obligation = submit_claim(
                db, member_id, month, year,
                amount=settings.MONTHLY_DUES_AMOUNT,
                reference=reference,
                actor_id=actor_id,
            )
            outcomes.append(ClaimOutcome(month=month, year=year, obligation=obligation))
        except (InvalidPeriod, InvalidTransition) as e:
            outcomes.append(ClaimOutcome(month=month, year=year, obligation=None, skipped_reason=e.message))
    return outcomes


@with_storage_retry
def submit_entrance_claim(
    db: Session,
    member_id: UUID,
    amount,
    reference: Optional[str],
    actor_id: Optional[UUID] = None,
) -> EntranceDues:
    _require_member(db, member_id)
    result = store.upsert_entrance(
        db, member_id,
        amount=amount,
        reference=reference,
        status=PaymentStatus.PENDING,
        paid_at=None,
        only_from=CLAIMABLE_FROM,
    )
    if not result.applied:
        db.rollback()
        if result.obligation.status == PaymentStatus.PAID:
            raise InvalidPeriod("Entrance fee is already paid")
        raise InvalidTransition("Entrance fee already has a claim awaiting confirmation")

    return _committed(
        db, ObligationKind.ENTRANCE, result.obligation, actor_id or member_id, "member",
        "submit_entrance_claim", f"amount={result.obligation.amount} ref={reference}",
    )


# ---------------------------------------------------------------------------
# Administrator actions
# ---------------------------------------------------------------------------

@with_storage_retry
def confirm(
    db: Session,
    obligation_id: UUID,
    actor_id: UUID,
    kind: ObligationKind = ObligationKind.MONTHLY,
):
    """Mark a claim as paid. Confirming an already-paid obligation is a no-op."""
    obligation, changed = store.set_status(
        db, kind, obligation_id, PaymentStatus.PAID,
        only_from=CONFIRMABLE_FROM,
        confirmed_by=actor_id,
        rejected_by=None,
        rejected_at=None,
    )
    if not changed:
        db.rollback()
        logger.info(f"{kind.value} dues {obligation_id} already paid, confirm ignored")
        return obligation
    return _committed(db, kind, obligation, actor_id, "finance", "confirm", f"amount={obligation.amount}")


@with_storage_retry
def reject(
    db: Session,
    obligation_id: UUID,
    actor_id: UUID,
    kind: ObligationKind = ObligationKind.MONTHLY,
    reason: Optional[str] = None,
):
    """Reject a pending claim. Only pending obligations can be rejected."""
    current = store.get_obligation(db, kind, obligation_id)
    if current.status != PaymentStatus.PENDING:
        raise InvalidTransition(f"Only pending claims can be rejected (current status: {current.status.value})")

    obligation, changed = store.set_status(
        db, kind, obligation_id, PaymentStatus.FAILED,
        only_from=(PaymentStatus.PENDING,),
        rejected_by=actor_id,
        rejected_at=datetime.utcnow(),
    )
    if not changed:
        # A concurrent reject landed first; rejecting a failed claim is still invalid.
        db.rollback()
        raise InvalidTransition("Claim was already rejected")
    return _committed(db, kind, obligation, actor_id, "finance", "reject", reason or "")


@with_storage_retry
def manual_backfill(
    db: Session,
    member_id: UUID,
    month: int,
    year: int,
    amount,
    reference: Optional[str],
    actor_id: UUID,
) -> MonthlyDues:
    """Record a cash or late-reported payment directly as paid.

    Re-running it for the same period updates the existing row. A pending
    claim on that period is confirmed implicitly and keeps the member's
    reference when none is given here.
    """
    store.validate_period(month, year)
    _require_member(db, member_id)
    result = store.upsert_monthly(
        db, member_id, month, year,
        amount=amount,
        reference=reference or None,
        status=PaymentStatus.PAID,
        paid_at=datetime.utcnow(),
        fallback_reference=manual_reference(),
        confirmed_by=actor_id,
    )
    return _committed(
        db, ObligationKind.MONTHLY, result.obligation, actor_id, "finance", "manual_backfill",
        f"period={_period_label(month, year)} amount={result.obligation.amount} ref={result.obligation.reference}",
    )


@with_storage_retry
def manual_entrance_backfill(
    db: Session,
    member_id: UUID,
    amount,
    reference: Optional[str],
    actor_id: UUID,
) -> EntranceDues:
    _require_member(db, member_id)
    result = store.upsert_entrance(
        db, member_id,
        amount=amount,
        reference=reference or None,
        status=PaymentStatus.PAID,
        paid_at=datetime.utcnow(),
        fallback_reference=manual_reference(),
        confirmed_by=actor_id,
    )
    return _committed(
        db, ObligationKind.ENTRANCE, result.obligation, actor_id, "finance", "manual_entrance_backfill",
        f"amount={result.obligation.amount} ref={result.obligation.reference}",
    )


@with_storage_retry
def delete_obligation(db: Session, obligation_id: UUID, actor_id: UUID, kind: ObligationKind = ObligationKind.MONTHLY):
    """Remove an obligation entered by mistake."""
    obligation = store.delete_obligation(db, kind, obligation_id)
    db.commit()
    write_audit_log(actor_id, "finance", "delete", ENTITY_TYPES[kind], obligation_id, f"amount={obligation.amount}")
    notifier.emit(ENTITY_TYPES[kind], obligation_id, "deleted")
    return obligation


# ---------------------------------------------------------------------------
# Review queue
# ---------------------------------------------------------------------------

@with_storage_retry
def get_member_entrance(db: Session, member_id: UUID) -> Optional[EntranceDues]:
    return store.get_entrance_for_member(db, member_id)


@with_storage_retry
def list_pending(db: Session, kind: Optional[ObligationKind] = None) -> List[dict]:
    """Claims awaiting confirmation, oldest first, with member labels."""
    kinds = [ObligationKind(kind)] if kind else [ObligationKind.MONTHLY, ObligationKind.ENTRANCE]
    rows = []
    for k in kinds:
        rows.extend((k, o) for o in store.list_by_status(db, k, [PaymentStatus.PENDING]))
    labels = member_labels(db, [o.member_id for _, o in rows])

    result = []
    for k, obligation in rows:
        label = labels.get(obligation.member_id, {})
        result.append({
            "id": str(obligation.id),
            "kind": k.value,
            "member_id": str(obligation.member_id),
            "member_name": label.get("name"),
            "house_no": label.get("house_no"),
            "month": getattr(obligation, "month", None),
            "year": getattr(obligation, "year", None),
            "amount": obligation.amount,
            "reference": obligation.reference,
            "status": obligation.status.value,
            "created_at": obligation.created_at,
        })
    result.sort(key=lambda r: (r["created_at"] or datetime.min, r["id"]))
    return result
