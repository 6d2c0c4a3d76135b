"""Request identity supplied by the upstream gateway.

Authentication and role resolution happen before a request reaches this
service. The gateway forwards the authenticated actor id, the member id the
actor acts for, and the actor's capabilities as headers; they are trusted
as given.
"""
from dataclasses import dataclass, field
from typing import FrozenSet, Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

from app.core.config import settings
from app.core.exceptions import AuthorizationDenied, to_http_exception


@dataclass(frozen=True)
class Actor:
    actor_id: UUID
    member_id: Optional[UUID] = None
    capabilities: FrozenSet[str] = field(default_factory=frozenset)

    def can(self, capability: str) -> bool:
        return capability in self.capabilities


def _parse_uuid(value: Optional[str], header: str) -> Optional[UUID]:
    if value is None or value == "":
        return None
    try:
        return UUID(value)
    except (ValueError, TypeError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Invalid {header} header")


async def get_current_actor(
    x_actor_id: Optional[str] = Header(None),
    x_member_id: Optional[str] = Header(None),
    x_actor_capabilities: Optional[str] = Header(None),
) -> Actor:
    """Build the Actor for this request from gateway headers."""
    actor_id = _parse_uuid(x_actor_id, "X-Actor-Id")
    if actor_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-Actor-Id header")
    member_id = _parse_uuid(x_member_id, "X-Member-Id") or actor_id
    capabilities = frozenset(
        c.strip() for c in (x_actor_capabilities or "").split(",") if c.strip()
    )
    return Actor(actor_id=actor_id, member_id=member_id, capabilities=capabilities)


def require_capability(capability: str):
    """Dependency factory for requiring a capability."""
    async def capability_checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not actor.can(capability):
            raise to_http_exception(AuthorizationDenied(f"Actor does not have required capability: {capability}"))
        return actor
    return capability_checker


require_finance_manager = require_capability(settings.FINANCE_CAPABILITY)
