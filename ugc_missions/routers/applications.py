from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ugc_missions.auth.dependencies import AuthContext, get_current_user
from ugc_missions.db.deps import get_session
from ugc_missions.schemas.missions import ApplicationStatusRequest, DeliverableReviewRequest
from ugc_missions.services.missions import MissionEngine

router = APIRouter(tags=["applications"])


@router.post("/applications/{application_id}/withdraw")
def withdraw_application(
    application_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    application = MissionEngine(session).withdraw_application(application_id, auth)
    return {"success": True, "application": application}


@router.post("/applications/{application_id}/status")
def set_application_status(
    application_id: str,
    payload: ApplicationStatusRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    application = MissionEngine(session).set_application_status(application_id, payload.status, auth)
    return {"success": True, "application": application}


@router.post("/deliverables/{deliverable_id}/review")
def review_deliverable(
    deliverable_id: str,
    payload: DeliverableReviewRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    result = MissionEngine(session).review_deliverable(deliverable_id, payload.status, payload.notes, auth)
    return {"success": True, **result}
