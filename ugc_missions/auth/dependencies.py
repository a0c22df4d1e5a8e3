from dataclasses import dataclass
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from ugc_missions.db.deps import get_session
from ugc_missions.db.enums import PartyRoleEnum
from ugc_missions.db.repositories.parties import PartiesRepository


logger = logging.getLogger("auth.deps")


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    role: PartyRoleEnum
    network_address: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == PartyRoleEnum.admin


def _client_address(request: Request, forwarded_for: Optional[str]) -> Optional[str]:
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    if request.client:
        return request.client.host
    return None


def get_current_user(
    request: Request,
    x_actor_id: Optional[str] = Header(default=None),
    x_forwarded_for: Optional[str] = Header(default=None),
    session: Session = Depends(get_session),
) -> AuthContext:
    """
    Resolve the calling party.

    Authentication happens upstream; this service only maps the authenticated
    party id onto its role.
    """
    if not x_actor_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-Actor-Id header")

    party = PartiesRepository(session).get(x_actor_id)
    if not party:
        logger.info("Unknown actor", extra={"actor_id": x_actor_id})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown actor")

    context = AuthContext(
        user_id=party.id,
        role=PartyRoleEnum(party.role),
        network_address=_client_address(request, x_forwarded_for),
    )
    logger.debug("AuthContext built", extra={"actor_id": context.user_id, "role": context.role.value})
    return context
