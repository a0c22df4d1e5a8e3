from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ugc_missions.auth.dependencies import AuthContext, get_current_user
from ugc_missions.db.deps import get_session
from ugc_missions.db.enums import PartyRoleEnum
from ugc_missions.db.repositories.applications import ApplicationsRepository
from ugc_missions.errors import NotFoundError, UnauthorizedError
from ugc_missions.schemas.contracts import ContractCreateRequest, ContractPreviewRequest
from ugc_missions.schemas.missions import SendToCreatorRequest
from ugc_missions.services.contracts import direct_contracts, mandate_contracts
from ugc_missions.services.missions import MissionEngine

router = APIRouter(tags=["contracts"])


def _require_application_visible(session: Session, application_id: str, auth: AuthContext) -> None:
    application = ApplicationsRepository(session).get(application_id)
    if not application:
        raise NotFoundError(f"Application {application_id} not found")
    if auth.role == PartyRoleEnum.creator and application.creator_id != auth.user_id:
        raise NotFoundError(f"Application {application_id} not found")
    if auth.role == PartyRoleEnum.brand and application.mission.brand_id != auth.user_id:
        raise NotFoundError(f"Application {application_id} not found")


# Mandate contracts (operator <-> creator), one per mission.


@router.get("/missions/{mission_id}/mandate-contract")
def get_mandate_contract(
    mission_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    MissionEngine(session).require_visible(mission_id, auth)
    return {"contract": mandate_contracts(session).get(mission_id)}


@router.post("/missions/{mission_id}/mandate-contract", status_code=status.HTTP_201_CREATED)
def send_mission_to_creator(
    mission_id: str,
    payload: SendToCreatorRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    result = MissionEngine(session).send_mission_to_creator(mission_id, payload.amount, auth)
    return {"success": True, **result}


@router.post("/missions/{mission_id}/mandate-contract/sign")
def sign_mandate_contract(
    mission_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    lifecycle = mandate_contracts(session)
    contract = lifecycle.sign(mission_id, auth)
    return {"success": True, "contract": lifecycle.serialize(contract)}


@router.get("/missions/{mission_id}/mandate-contract/text")
def get_mandate_contract_text(
    mission_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    MissionEngine(session).require_visible(mission_id, auth)
    return {"text": mandate_contracts(session).render_text(mission_id)}


# Direct contracts (brand <-> creator), one per application.


@router.get("/applications/{application_id}/contract")
def get_direct_contract(
    application_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    _require_application_visible(session, application_id, auth)
    return {"contract": direct_contracts(session).get(application_id)}


@router.post("/applications/{application_id}/contract", status_code=status.HTTP_201_CREATED)
def create_direct_contract(
    application_id: str,
    payload: ContractCreateRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    lifecycle = direct_contracts(session)
    contract = lifecycle.create(application_id, payload.amount, auth)
    return {"success": True, "contract": lifecycle.serialize(contract)}


@router.post("/applications/{application_id}/contract/sign")
def sign_direct_contract(
    application_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    lifecycle = direct_contracts(session)
    contract = lifecycle.sign(application_id, auth)
    return {"success": True, "contract": lifecycle.serialize(contract)}


@router.get("/applications/{application_id}/contract/text")
def get_direct_contract_text(
    application_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    _require_application_visible(session, application_id, auth)
    return {"text": direct_contracts(session).render_text(application_id)}


@router.post("/contracts/preview")
def preview_contract(
    payload: ContractPreviewRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    if payload.kind == "mandate":
        if auth.role not in (PartyRoleEnum.operator, PartyRoleEnum.admin):
            raise UnauthorizedError("Only operators can preview mandate contracts")
        MissionEngine(session).require_visible(payload.key, auth)
        lifecycle = mandate_contracts(session)
    else:
        _require_application_visible(session, payload.key, auth)
        lifecycle = direct_contracts(session)
    return {"text": lifecycle.preview_for(payload.key, payload.amount)}
