from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.db.base import get_db
from app.core.config import settings
from app.core.dependencies import Actor, get_current_actor
from app.core.exceptions import LedgerError, to_http_exception
from app.schemas.dues import (
    EntranceClaimRequest,
    EntranceDuesResponse,
    MemberYearResponse,
    MonthClaimRequest,
    ClaimOutcomeResponse,
    MonthStatusResponse,
)
from app.services import dues as store
from app.services.aggregation import member_outstanding, member_year_status
from app.services.reconciliation import get_member_entrance, submit_claims, submit_entrance_claim
from app.services.status import PaymentStatus
from typing import List
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/member", tags=["member"])


@router.get("/dues/{year}", response_model=MemberYearResponse)
def get_my_dues(
    year: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Get my 12-month dues grid for a year, with what is still outstanding."""
    try:
        store.validate_period(1, year)
        grid = member_year_status(db, actor.member_id, year)
        outstanding = member_outstanding(db, actor.member_id, year)
    except LedgerError as e:
        raise to_http_exception(e)

    return MemberYearResponse(
        member_id=actor.member_id,
        year=year,
        months=[MonthStatusResponse.model_validate(m) for m in grid.months],
        paid_months=grid.paid_count,
        total_paid=grid.total_paid,
        total_pending=grid.total_pending,
        outstanding=outstanding.outstanding,
        not_yet_due_amount=outstanding.not_yet_due_amount,
        unpaid_months=outstanding.unpaid_months,
        not_yet_due_months=outstanding.not_yet_due_months,
    )


@router.post("/dues/claims", response_model=List[ClaimOutcomeResponse])
def claim_months(
    claim: MonthClaimRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Report one bank transfer covering one or more months."""
    try:
        outcomes = submit_claims(
            db,
            member_id=actor.member_id,
            months=claim.months,
            year=claim.year,
            reference=claim.reference,
            actor_id=actor.actor_id,
        )
    except LedgerError as e:
        raise to_http_exception(e)

    return [
        ClaimOutcomeResponse(
            month=o.month,
            year=o.year,
            status="skipped" if o.skipped_reason else PaymentStatus.PENDING.value,
            obligation_id=o.obligation.id if o.obligation else None,
            reason=o.skipped_reason,
        )
        for o in outcomes
    ]


@router.post("/entrance/claim", response_model=EntranceDuesResponse)
def claim_entrance(
    claim: EntranceClaimRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Report payment of the one-time entrance fee."""
    try:
        obligation = submit_entrance_claim(
            db,
            member_id=actor.member_id,
            amount=claim.amount or settings.ENTRANCE_FEE_AMOUNT,
            reference=claim.reference,
            actor_id=actor.actor_id,
        )
    except LedgerError as e:
        raise to_http_exception(e)
    return EntranceDuesResponse.model_validate(obligation)


@router.get("/entrance")
def get_my_entrance(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Get my entrance fee status. Without a row the fee is unpaid."""
    try:
        obligation = get_member_entrance(db, actor.member_id)
    except LedgerError as e:
        raise to_http_exception(e)
    if not obligation:
        return {
            "member_id": str(actor.member_id),
            "amount": settings.ENTRANCE_FEE_AMOUNT,
            "status": PaymentStatus.UNPAID.value,
            "paid_at": None,
            "reference": None,
        }
    return EntranceDuesResponse.model_validate(obligation)
