"""Member directory lookups used for display labels only.

A failed lookup degrades the label to a placeholder; it must never stop a
ledger read or write.
"""
import logging
from typing import Dict, Iterable
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.member import MemberProfile, MemberStatus

logger = logging.getLogger(__name__)

UNKNOWN_MEMBER = "Unknown member"


def member_exists(db: Session, member_id: UUID) -> bool:
    try:
        return db.query(MemberProfile.id).filter(MemberProfile.id == member_id).first() is not None
    except SQLAlchemyError as e:
        logger.warning(f"Member lookup failed for {member_id}: {e}")
        return False


def member_display_name(db: Session, member_id: UUID) -> str:
    try:
        member = db.query(MemberProfile).filter(MemberProfile.id == member_id).first()
    except SQLAlchemyError as e:
        logger.warning(f"Member lookup failed for {member_id}: {e}")
        return UNKNOWN_MEMBER
    if not member or not member.full_name:
        return UNKNOWN_MEMBER
    return member.full_name.strip().title()


def member_labels(db: Session, member_ids: Iterable[UUID]) -> Dict[UUID, dict]:
    """Display name and house number for many members in one query."""
    ids = list(set(member_ids))
    labels = {mid: {"name": UNKNOWN_MEMBER, "house_no": "-"} for mid in ids}
    if not ids:
        return labels
    try:
        members = db.query(MemberProfile).filter(MemberProfile.id.in_(ids)).all()
    except SQLAlchemyError as e:
        logger.warning(f"Bulk member lookup failed: {e}")
        return labels
    for member in members:
        labels[member.id] = {
            "name": (member.full_name or "").strip().title() or UNKNOWN_MEMBER,
            "house_no": member.house_no or "-",
        }
    return labels


def list_members(db: Session, include_inactive: bool = False):
    query = db.query(MemberProfile)
    if not include_inactive:
        query = query.filter(MemberProfile.status != MemberStatus.INACTIVE)
    return query.order_by(MemberProfile.full_name).all()
