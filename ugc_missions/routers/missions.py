from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ugc_missions.auth.dependencies import AuthContext, get_current_user
from ugc_missions.db.deps import get_session
from ugc_missions.db.enums import MissionStatusEnum
from ugc_missions.errors import NotFoundError
from ugc_missions.schemas.missions import (
    ApplicationCreateRequest,
    AssignCreatorRequest,
    CancelRequest,
    FeedbackRequest,
    MissionCreate,
    ProposeCreatorsRequest,
    ScriptSaveRequest,
    StepCompleteRequest,
    TextRequest,
    VideoSubmitRequest,
)
from ugc_missions.services.missions import MissionBrief, MissionEngine

router = APIRouter(prefix="/missions", tags=["missions"])


@router.get("")
def list_missions(
    status_filter: Optional[MissionStatusEnum] = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    engine = MissionEngine(session)
    return {"missions": engine.list_missions(auth, status=status_filter, limit=limit, offset=offset)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_mission(
    payload: MissionCreate,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    brief = MissionBrief(
        title=payload.title,
        product_name=payload.product_name,
        format=payload.format.value,
        script_type=payload.script_type.value,
        rights_usage=payload.rights_usage.value,
        budget=payload.budget,
        description=payload.description,
        product_description=payload.product_description,
        script_notes=payload.script_notes,
        pricing_pack=payload.pricing_pack.value,
        deadline=payload.deadline,
        pipeline=payload.pipeline.value,
        brand_id=payload.brand_id,
    )
    mission = MissionEngine(session).create_mission(brief, auth)
    return {"success": True, "mission": mission}


@router.get("/stats")
def mission_stats(
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    return {"stats": MissionEngine(session).mission_stats(auth)}


@router.get("/{mission_id}")
def get_mission(
    mission_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    mission = MissionEngine(session).get_mission_view(mission_id, auth)
    if not mission:
        raise NotFoundError(f"Mission {mission_id} not found")
    return {"mission": mission}


@router.get("/{mission_id}/steps")
def get_timeline(
    mission_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    engine = MissionEngine(session)
    engine.require_visible(mission_id, auth)
    return engine.timeline(mission_id)


@router.post("/{mission_id}/steps")
def complete_step(
    mission_id: str,
    payload: StepCompleteRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    engine = MissionEngine(session)
    result = engine.complete_step(mission_id, payload.step, auth)
    return {"success": True, **result, "current_step_index": engine.current_step_index(mission_id)}


@router.post("/{mission_id}/clarifications")
def request_clarification(
    mission_id: str,
    payload: TextRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    annotation = MissionEngine(session).request_clarification(mission_id, payload.text, auth)
    return {"success": True, "annotation": annotation}


@router.put("/{mission_id}/script")
def save_script(
    mission_id: str,
    payload: ScriptSaveRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    result = MissionEngine(session).save_script(mission_id, payload.content, payload.status, auth)
    return {"success": True, **result}


@router.post("/{mission_id}/script/send-to-brand")
def send_script_to_brand(
    mission_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    return {"success": True, **MissionEngine(session).send_script_to_brand(mission_id, auth)}


@router.post("/{mission_id}/script/approve")
def approve_script(
    mission_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    return {"success": True, **MissionEngine(session).approve_script(mission_id, auth)}


@router.post("/{mission_id}/script/changes")
def request_script_changes(
    mission_id: str,
    payload: FeedbackRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    result = MissionEngine(session).request_script_changes(mission_id, payload.feedback, auth)
    return {"success": True, **result}


@router.get("/{mission_id}/creators")
def list_proposed_creators(
    mission_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    return {"applications": MissionEngine(session).list_applications(mission_id, auth)}


@router.post("/{mission_id}/creators")
def propose_creators(
    mission_id: str,
    payload: ProposeCreatorsRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    result = MissionEngine(session).propose_creators(mission_id, payload.creator_ids, auth)
    return {"success": True, **result}


@router.post("/{mission_id}/applications", status_code=status.HTTP_201_CREATED)
def apply_to_mission(
    mission_id: str,
    payload: ApplicationCreateRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    application = MissionEngine(session).apply_to_mission(
        mission_id, payload.pitch_message, payload.proposed_rate, auth
    )
    return {"success": True, "application": application}


@router.post("/{mission_id}/creators/assign")
def assign_creator(
    mission_id: str,
    payload: AssignCreatorRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    result = MissionEngine(session).assign_creator(mission_id, payload.creator_id, auth)
    return {"success": True, **result}


@router.post("/{mission_id}/video")
def submit_video(
    mission_id: str,
    payload: VideoSubmitRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    result = MissionEngine(session).submit_video(mission_id, payload.video_reference, auth)
    return {"success": True, **result}


@router.get("/{mission_id}/deliverables")
def list_deliverables(
    mission_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    return {"deliverables": MissionEngine(session).list_deliverables(mission_id, auth)}


@router.post("/{mission_id}/qc-feedback")
def record_qc_feedback(
    mission_id: str,
    payload: TextRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    annotation = MissionEngine(session).record_qc_feedback(mission_id, payload.text, auth)
    return {"success": True, "annotation": annotation}


@router.post("/{mission_id}/revision-requests")
def record_brand_revision_request(
    mission_id: str,
    payload: FeedbackRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    result = MissionEngine(session).record_brand_revision_request(mission_id, payload.feedback, auth)
    return {"success": True, **result}


@router.post("/{mission_id}/cancel")
def cancel_mission(
    mission_id: str,
    payload: CancelRequest,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    mission = MissionEngine(session).cancel_mission(mission_id, payload.reason, auth)
    return {"success": True, "mission": mission}
