from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ugc_missions.auth.dependencies import AuthContext, get_current_user
from ugc_missions.db.deps import get_session
from ugc_missions.db.enums import PartyRoleEnum
from ugc_missions.errors import UnauthorizedError
from ugc_missions.services.invoices import InvoiceService
from ugc_missions.services.missions import MissionEngine

router = APIRouter(prefix="/missions/{mission_id}/invoice", tags=["invoices"])


@router.get("")
def get_invoice(
    mission_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    MissionEngine(session).require_visible(mission_id, auth)
    return {"invoice": InvoiceService(session).get(mission_id)}


@router.post("")
def generate_invoice(
    mission_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    if auth.role not in (PartyRoleEnum.operator, PartyRoleEnum.admin):
        raise UnauthorizedError("Only operators can generate invoices")
    service = InvoiceService(session)
    invoice = service.generate(mission_id)
    return {"success": True, "invoice": service.serialize(invoice)}


@router.get("/text")
def get_invoice_text(
    mission_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    MissionEngine(session).require_visible(mission_id, auth)
    return {"text": InvoiceService(session).render_text(mission_id)}
