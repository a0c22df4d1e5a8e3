"""
Mission engine.

Every mutation re-reads the mission inside a unit of work, re-validates role
and preconditions against the current ledger, then commits once. Cascading
transitions (implied steps, invoice generation) join the same unit of work, so
a failure anywhere leaves no partial state behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ugc_missions.auth.dependencies import AuthContext
from ugc_missions.config import settings
from ugc_missions.db.base import unit_of_work
from ugc_missions.db.enums import (
    AnnotationKindEnum,
    ApplicationStatusEnum,
    DeliverableStatusEnum,
    MissionStatusEnum,
    PartyRoleEnum,
    PipelineEnum,
    PricingPackEnum,
    RightsUsageEnum,
    ScriptStatusEnum,
    ScriptTypeEnum,
    StepTypeEnum,
    VideoFormatEnum,
)
from ugc_missions.db.models import (
    Application,
    Deliverable,
    MandateContract,
    Mission,
    MissionAnnotation,
    utcnow,
)
from ugc_missions.db.repositories.annotations import AnnotationsRepository
from ugc_missions.db.repositories.applications import ApplicationsRepository
from ugc_missions.db.repositories.contracts import ContractsRepository
from ugc_missions.db.repositories.deliverables import DeliverablesRepository
from ugc_missions.db.repositories.missions import MissionsRepository
from ugc_missions.db.repositories.parties import PartiesRepository
from ugc_missions.db.repositories.steps import StepLedgerRepository
from ugc_missions.documents import formatting
from ugc_missions.errors import (
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    OutOfOrderError,
    RevisionCapExceededError,
    UnauthorizedError,
)
from ugc_missions.services.contracts import mandate_contracts
from ugc_missions.services.invoices import InvoiceService
from ugc_missions.workflow.policy import (
    INVOICE_TRIGGER_STEP,
    TERMINAL_STATUSES,
    WorkflowCatalogue,
    catalogue_for,
    implied_steps,
    is_authorized,
    promoted_script_status,
)

logger = logging.getLogger(__name__)

PROPOSAL_PITCH = "Proposé par MOSH"


@dataclass(frozen=True)
class MissionBrief:
    title: str
    product_name: str
    format: str
    script_type: str
    rights_usage: str
    budget: Decimal | float | int | str
    description: Optional[str] = None
    product_description: Optional[str] = None
    script_notes: Optional[str] = None
    pricing_pack: str = PricingPackEnum.single_video.value
    deadline: Optional[datetime] = None
    pipeline: str = PipelineEnum.expanded.value
    brand_id: Optional[str] = None


def _required_text(value: Optional[str], field: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise InvalidInputError(f"{field} is required")
    return cleaned


def _enum_value(enum_cls, value: str, field: str) -> str:
    try:
        return enum_cls(value).value
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidInputError(f"Invalid {field} {value!r}; expected one of: {allowed}") from exc


def _coerce_step(step: StepTypeEnum | str) -> StepTypeEnum:
    try:
        return StepTypeEnum(step)
    except ValueError as exc:
        raise InvalidInputError(f"Unknown step {step!r}") from exc


def _annotation_view(annotation: MissionAnnotation) -> dict[str, Any]:
    return {
        "id": annotation.id,
        "kind": AnnotationKindEnum(annotation.kind).value,
        "body": annotation.body,
        "author_id": annotation.author_id,
        "created_at": formatting.isoformat(annotation.created_at),
    }


def _application_view(application: Application) -> dict[str, Any]:
    return {
        "id": application.id,
        "mission_id": application.mission_id,
        "creator_id": application.creator_id,
        "creator_name": application.creator.full_name if application.creator else None,
        "pitch_message": application.pitch_message,
        "proposed_rate": formatting.from_cents(application.proposed_rate_cents),
        "status": ApplicationStatusEnum(application.status).value,
        "created_at": formatting.isoformat(application.created_at),
        "updated_at": formatting.isoformat(application.updated_at),
    }


def _deliverable_view(deliverable: Deliverable) -> dict[str, Any]:
    return {
        "id": deliverable.id,
        "mission_id": deliverable.mission_id,
        "creator_id": deliverable.creator_id,
        "version": deliverable.version,
        "video_reference": deliverable.video_reference,
        "status": DeliverableStatusEnum(deliverable.status).value,
        "revision_notes": deliverable.revision_notes,
        "reviewed_by": deliverable.reviewed_by,
        "reviewed_at": formatting.isoformat(deliverable.reviewed_at),
        "rights_transferred_at": formatting.isoformat(deliverable.rights_transferred_at),
        "created_at": formatting.isoformat(deliverable.created_at),
    }


class MissionEngine:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.missions = MissionsRepository(session)
        self.steps = StepLedgerRepository(session)
        self.annotations = AnnotationsRepository(session)
        self.applications = ApplicationsRepository(session)
        self.parties = PartiesRepository(session)
        self.deliverables = DeliverablesRepository(session)
        self.mandate_contracts = ContractsRepository(session, MandateContract, "mission_id")
        self.invoices = InvoiceService(session)

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _load(self, mission_id: str, *, for_update: bool = True) -> Mission:
        mission = self.missions.get(mission_id, for_update=for_update)
        if not mission:
            raise NotFoundError(f"Mission {mission_id} not found")
        return mission

    @staticmethod
    def _require_role(actor: AuthContext, *roles: PartyRoleEnum) -> None:
        if actor.is_admin or actor.role in roles:
            return
        raise UnauthorizedError(f"Role {actor.role.value} is not allowed to perform this action")

    @staticmethod
    def _require_party(mission: Mission, actor: AuthContext) -> None:
        """Brands act only on their own missions, creators only on missions they were selected for."""
        if actor.role == PartyRoleEnum.brand and mission.brand_id != actor.user_id:
            raise UnauthorizedError("This mission belongs to another brand")
        if actor.role == PartyRoleEnum.creator and mission.selected_creator_id != actor.user_id:
            raise UnauthorizedError("Only the selected creator can act on this mission")

    @staticmethod
    def _require_active(mission: Mission) -> None:
        status = MissionStatusEnum(mission.status)
        if status in TERMINAL_STATUSES:
            raise InvalidTransitionError(f"Mission is {status.value}")

    @staticmethod
    def _require_in_catalogue(catalogue: WorkflowCatalogue, step: StepTypeEnum) -> None:
        if step not in catalogue:
            raise InvalidTransitionError(
                f"Step {step.value} is not part of the {catalogue.pipeline.value} pipeline"
            )

    def _require_step_prerequisites(self, mission: Mission, step: StepTypeEnum) -> None:
        """Steps whose completion event carries data can only land once that data exists."""
        if step == StepTypeEnum.creator_validated and not mission.selected_creator_id:
            raise InvalidTransitionError("A creator must be assigned before the creator is validated")
        if step == StepTypeEnum.mission_sent_to_creator and not self.mandate_contracts.get(mission.id):
            raise InvalidTransitionError("The mission is sent to the creator together with its mandate contract")

    # ------------------------------------------------------------------
    # Ledger writes
    # ------------------------------------------------------------------

    def _append_step(
        self,
        mission: Mission,
        catalogue: WorkflowCatalogue,
        step: StepTypeEnum,
        actor: AuthContext,
        completed: set[StepTypeEnum],
    ) -> bool:
        created = self.steps.append(mission.id, step, completed_by=actor.user_id)
        if not created:
            logger.debug("Step already completed", extra={"mission_id": mission.id, "step": step.value})
            return False
        completed.add(step)

        fields: dict[str, Any] = {}
        script_status = promoted_script_status(ScriptStatusEnum(mission.script_status), step)
        if script_status != mission.script_status:
            fields["script_status"] = script_status
        status = MissionStatusEnum(mission.status)
        if step == StepTypeEnum.creators_proposed and status == MissionStatusEnum.draft:
            fields["status"] = MissionStatusEnum.open
        if step == StepTypeEnum.creator_validated and status in (MissionStatusEnum.draft, MissionStatusEnum.open):
            fields["status"] = MissionStatusEnum.in_progress
        # Terminal only once every step of the catalogue is on the ledger.
        if completed.issuperset(catalogue.step_ids) and status not in TERMINAL_STATUSES:
            fields["status"] = MissionStatusEnum.completed
            fields["completed_at"] = utcnow()
            self._approve_pending_deliverable(mission, actor)
        if fields:
            self.missions.update(mission, **fields)

        logger.info(
            "Mission step completed",
            extra={"mission_id": mission.id, "step": step.value, "actor_id": actor.user_id},
        )
        return True

    def _approve_pending_deliverable(self, mission: Mission, actor: AuthContext) -> None:
        """A completed mission transfers the rights on the cut still awaiting review."""
        latest = self.deliverables.latest(mission.id)
        if latest and DeliverableStatusEnum(latest.status) == DeliverableStatusEnum.review:
            self.deliverables.review(latest, DeliverableStatusEnum.approved, reviewed_by=actor.user_id)

    def _record_brand_revision(
        self,
        mission: Mission,
        body: str,
        actor: AuthContext,
    ) -> MissionAnnotation:
        cap = settings.BRAND_REVISION_CAP
        completed = self.steps.completed_types(mission.id)
        if StepTypeEnum.video_sent_to_brand not in completed:
            raise InvalidTransitionError("The video has not been sent to the brand yet")
        if StepTypeEnum.brand_final_approved in completed:
            raise InvalidTransitionError("The video was already approved")
        if not self.missions.increment_revision_count(mission.id, cap):
            raise RevisionCapExceededError(f"The {cap} included revision(s) have already been used")
        self.session.refresh(mission)
        latest = self.deliverables.latest(mission.id)
        if latest and DeliverableStatusEnum(latest.status) == DeliverableStatusEnum.review:
            self.deliverables.review(
                latest,
                DeliverableStatusEnum.revision_requested,
                reviewed_by=actor.user_id,
                revision_notes=body,
            )
        return self.annotations.append(
            mission.id, AnnotationKindEnum.brand_final_feedback, body, author_id=actor.user_id
        )

    def _complete(
        self,
        mission: Mission,
        step: StepTypeEnum,
        actor: AuthContext,
    ) -> dict[str, Any]:
        """Record ``step`` plus everything it implies. Runs inside the caller's unit of work."""
        catalogue = catalogue_for(mission.pipeline)
        self._require_in_catalogue(catalogue, step)
        completed = self.steps.completed_types(mission.id)
        result: dict[str, Any] = {
            "mission_id": mission.id,
            "step": step.value,
            "created": False,
            "implied": [],
            "invoice": None,
        }
        if step in completed:
            logger.debug("Step already completed", extra={"mission_id": mission.id, "step": step.value})
            return result

        self._require_active(mission)
        self._require_step_prerequisites(mission, step)
        if settings.STRICT_STEP_ORDER:
            missing = [prior for prior in catalogue.predecessors(step) if prior not in completed]
            if missing:
                raise OutOfOrderError(
                    f"Step {step.value} requires {', '.join(prior.value for prior in missing)} first"
                )

        if not self._append_step(mission, catalogue, step, actor, completed):
            return result
        result["created"] = True

        for implied in implied_steps(catalogue, step):
            if self._append_step(mission, catalogue, implied, actor, completed):
                result["implied"].append(implied.value)

        if INVOICE_TRIGGER_STEP in completed and self.invoices.is_eligible(mission, completed):
            invoice = self.invoices.generate(mission.id)
            result["invoice"] = self.invoices.serialize(invoice)
        return result

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create_mission(self, brief: MissionBrief, actor: AuthContext) -> dict[str, Any]:
        self._require_role(actor, PartyRoleEnum.brand)
        title = _required_text(brief.title, "title")
        product_name = _required_text(brief.product_name, "product_name")
        try:
            budget_cents = formatting.to_cents(brief.budget)
        except (ArithmeticError, ValueError) as exc:
            raise InvalidInputError(f"Invalid budget: {brief.budget!r}") from exc
        if budget_cents <= 0:
            raise InvalidInputError("budget must be greater than zero")

        brand_id = actor.user_id if actor.role == PartyRoleEnum.brand else brief.brand_id
        if not brand_id:
            raise InvalidInputError("brand_id is required")
        brand = self.parties.get(brand_id)
        if not brand or PartyRoleEnum(brand.role) != PartyRoleEnum.brand:
            raise InvalidInputError(f"Party {brand_id} is not a brand")

        with unit_of_work(self.session):
            mission = self.missions.create(
                brand_id,
                title,
                description=brief.description,
                product_name=product_name,
                product_description=brief.product_description,
                format=_enum_value(VideoFormatEnum, brief.format, "format"),
                script_type=_enum_value(ScriptTypeEnum, brief.script_type, "script_type"),
                script_notes=brief.script_notes,
                rights_usage=_enum_value(RightsUsageEnum, brief.rights_usage, "rights_usage"),
                pricing_pack=_enum_value(PricingPackEnum, brief.pricing_pack, "pricing_pack"),
                budget_cents=budget_cents,
                deadline=brief.deadline,
                pipeline=PipelineEnum(_enum_value(PipelineEnum, brief.pipeline, "pipeline")),
                status=MissionStatusEnum.draft,
                script_status=ScriptStatusEnum.draft,
            )
        logger.info("Mission created", extra={"mission_id": mission.id, "brand_id": brand_id})
        return self.view(mission)

    def complete_step(self, mission_id: str, step: StepTypeEnum | str, actor: AuthContext) -> dict[str, Any]:
        step = _coerce_step(step)
        with unit_of_work(self.session):
            mission = self._load(mission_id)
            if not is_authorized(actor.role, step):
                raise UnauthorizedError(f"Role {actor.role.value} cannot complete step {step.value}")
            self._require_party(mission, actor)
            return self._complete(mission, step, actor)

    def current_step_index(self, mission_id: str) -> Optional[int]:
        mission = self.missions.get(mission_id)
        if not mission:
            return None
        catalogue = catalogue_for(mission.pipeline)
        return catalogue.highest_completed_index(self.steps.completed_types(mission_id))

    def timeline(self, mission_id: str) -> Optional[dict[str, Any]]:
        mission = self.missions.get(mission_id)
        if not mission:
            return None
        catalogue = catalogue_for(mission.pipeline)
        entries = {StepTypeEnum(entry.step_type): entry for entry in self.steps.list(mission_id)}
        completed = set(entries)
        next_step = catalogue.next_step(completed)
        steps = []
        for index, definition in enumerate(catalogue.steps):
            entry = entries.get(definition.id)
            steps.append(
                {
                    "index": index,
                    "id": definition.id.value,
                    "label": definition.label,
                    "owner": definition.owner.value,
                    "completed": entry is not None,
                    "completed_at": formatting.isoformat(entry.completed_at) if entry else None,
                    "completed_by": entry.completed_by if entry else None,
                }
            )
        return {
            "mission_id": mission.id,
            "pipeline": catalogue.pipeline.value,
            "current_step_index": catalogue.highest_completed_index(completed),
            "next_step": (
                {"id": next_step.id.value, "label": next_step.label, "owner": next_step.owner.value}
                if next_step
                else None
            ),
            "steps": steps,
        }

    def request_clarification(self, mission_id: str, text: str, actor: AuthContext) -> dict[str, Any]:
        self._require_role(actor, PartyRoleEnum.operator)
        body = _required_text(text, "text")
        with unit_of_work(self.session):
            mission = self._load(mission_id)
            self._require_active(mission)
            annotation = self.annotations.append(
                mission.id, AnnotationKindEnum.brief_feedback, body, author_id=actor.user_id
            )
        logger.info("Clarification requested", extra={"mission_id": mission_id, "actor_id": actor.user_id})
        return _annotation_view(annotation)

    def save_script(
        self,
        mission_id: str,
        text: Optional[str],
        status: ScriptStatusEnum | str,
        actor: AuthContext,
    ) -> dict[str, Any]:
        self._require_role(actor, PartyRoleEnum.operator)
        try:
            target = ScriptStatusEnum(status)
        except ValueError as exc:
            raise InvalidInputError(f"Invalid script status {status!r}") from exc
        if target not in (ScriptStatusEnum.draft, ScriptStatusEnum.validated):
            raise InvalidInputError("A script can only be saved as draft or validated")

        with unit_of_work(self.session):
            mission = self._load(mission_id)
            self._require_active(mission)
            current = ScriptStatusEnum(mission.script_status)
            if current == ScriptStatusEnum.brand_approved:
                raise InvalidTransitionError("The script was already approved by the brand")
            if current == ScriptStatusEnum.brand_review:
                raise InvalidTransitionError("The script is under brand review")

            result: Optional[dict[str, Any]] = None
            if target == ScriptStatusEnum.validated:
                content = _required_text(text, "script content")
                if not mission.selected_creator_id:
                    raise InvalidInputError("A creator must be selected before the script is validated")
                self.missions.update(mission, script_content=content, script_status=ScriptStatusEnum.validated)
                result = self._complete(mission, StepTypeEnum.script_sent, actor)
            else:
                self.missions.update(mission, script_content=text, script_status=ScriptStatusEnum.draft)

        logger.info(
            "Script saved",
            extra={"mission_id": mission_id, "script_status": target.value, "actor_id": actor.user_id},
        )
        return {"mission": self.view(mission), "step": result}

    def send_script_to_brand(self, mission_id: str, actor: AuthContext) -> dict[str, Any]:
        self._require_role(actor, PartyRoleEnum.operator)
        with unit_of_work(self.session):
            mission = self._load(mission_id)
            self._require_active(mission)
            self._require_in_catalogue(catalogue_for(mission.pipeline), StepTypeEnum.script_brand_review)
            if ScriptStatusEnum(mission.script_status) != ScriptStatusEnum.validated:
                raise InvalidTransitionError("Only a validated script can be sent to the brand")
            self.missions.update(mission, script_status=ScriptStatusEnum.brand_review)
            result = self._complete(mission, StepTypeEnum.script_brand_review, actor)
        return {"mission": self.view(mission), "step": result}

    def approve_script(self, mission_id: str, actor: AuthContext) -> dict[str, Any]:
        self._require_role(actor, PartyRoleEnum.brand)
        with unit_of_work(self.session):
            mission = self._load(mission_id)
            self._require_party(mission, actor)
            self._require_active(mission)
            self._require_in_catalogue(catalogue_for(mission.pipeline), StepTypeEnum.script_brand_approved)
            if ScriptStatusEnum(mission.script_status) != ScriptStatusEnum.brand_review:
                raise InvalidTransitionError("The script is not awaiting brand review")
            self.missions.update(mission, script_status=ScriptStatusEnum.brand_approved)
            result = self._complete(mission, StepTypeEnum.script_brand_approved, actor)
        return {"mission": self.view(mission), "step": result}

    def request_script_changes(self, mission_id: str, feedback: str, actor: AuthContext) -> dict[str, Any]:
        self._require_role(actor, PartyRoleEnum.brand)
        body = _required_text(feedback, "feedback")
        with unit_of_work(self.session):
            mission = self._load(mission_id)
            self._require_party(mission, actor)
            self._require_active(mission)
            if ScriptStatusEnum(mission.script_status) != ScriptStatusEnum.brand_review:
                raise InvalidTransitionError("The script is not awaiting brand review")
            self.missions.update(mission, script_status=ScriptStatusEnum.draft)
            self.annotations.append(
                mission.id, AnnotationKindEnum.script_brand_feedback, body, author_id=actor.user_id
            )
        logger.info("Script changes requested", extra={"mission_id": mission_id, "actor_id": actor.user_id})
        return {"mission": self.view(mission)}

    def propose_creators(self, mission_id: str, creator_ids: Iterable[str], actor: AuthContext) -> dict[str, Any]:
        self._require_role(actor, PartyRoleEnum.operator)
        ids = list(dict.fromkeys(creator_id for creator_id in creator_ids if creator_id))
        if not ids:
            raise InvalidInputError("At least one creator must be proposed")

        with unit_of_work(self.session):
            mission = self._load(mission_id)
            self._require_active(mission)
            completed = self.steps.completed_types(mission.id)
            if StepTypeEnum.brief_received not in completed:
                raise InvalidTransitionError("The brief must be received before proposing creators")
            if StepTypeEnum.creator_validated in completed:
                raise InvalidTransitionError("A creator was already validated for this mission")

            creators = {party.id: party for party in self.parties.get_many(ids)}
            invalid = [
                creator_id
                for creator_id in ids
                if creator_id not in creators or PartyRoleEnum(creators[creator_id].role) != PartyRoleEnum.creator
            ]
            if invalid:
                raise InvalidInputError(f"Unknown creators: {', '.join(invalid)}")

            for creator_id in ids:
                if self.applications.get_for_creator(mission.id, creator_id):
                    continue
                self.applications.create(mission.id, creator_id, pitch_message=PROPOSAL_PITCH)

            fields: dict[str, Any] = {}
            if MissionStatusEnum(mission.status) == MissionStatusEnum.draft:
                fields["status"] = MissionStatusEnum.open
            if actor.role in (PartyRoleEnum.operator, PartyRoleEnum.admin):
                fields["assigned_operator_id"] = actor.user_id
            self.missions.update(mission, **fields)
            result = self._complete(mission, StepTypeEnum.creators_proposed, actor)
            applications = [_application_view(application) for application in self.applications.list(mission.id)]

        logger.info(
            "Creators proposed",
            extra={"mission_id": mission_id, "creator_count": len(ids), "actor_id": actor.user_id},
        )
        return {"mission": self.view(mission), "applications": applications, "step": result}

    def assign_creator(self, mission_id: str, creator_id: str, actor: AuthContext) -> dict[str, Any]:
        self._require_role(actor, PartyRoleEnum.brand)
        with unit_of_work(self.session):
            mission = self._load(mission_id)
            self._require_party(mission, actor)
            self._require_active(mission)
            completed = self.steps.completed_types(mission.id)
            if StepTypeEnum.creators_proposed not in completed or StepTypeEnum.creator_validated in completed:
                raise InvalidTransitionError("The mission is not in profile review")

            chosen = self.applications.get_for_creator(mission.id, creator_id)
            if not chosen or ApplicationStatusEnum(chosen.status) not in (
                ApplicationStatusEnum.pending,
                ApplicationStatusEnum.accepted,
            ):
                raise InvalidInputError(f"Creator {creator_id} was not proposed for this mission")

            for application in self.applications.list(mission.id):
                if application.id == chosen.id:
                    self.applications.set_status(application, ApplicationStatusEnum.accepted)
                elif ApplicationStatusEnum(application.status) == ApplicationStatusEnum.pending:
                    self.applications.set_status(application, ApplicationStatusEnum.rejected)

            self.missions.update(mission, selected_creator_id=creator_id, status=MissionStatusEnum.in_progress)
            self.session.refresh(mission, attribute_names=["selected_creator"])
            result = self._complete(mission, StepTypeEnum.creator_validated, actor)

        logger.info(
            "Creator assigned",
            extra={"mission_id": mission_id, "creator_id": creator_id, "actor_id": actor.user_id},
        )
        return {"mission": self.view(mission), "step": result}

    def apply_to_mission(
        self,
        mission_id: str,
        pitch_message: Optional[str],
        proposed_rate: Decimal | float | int | str | None,
        actor: AuthContext,
    ) -> dict[str, Any]:
        if actor.role != PartyRoleEnum.creator:
            raise UnauthorizedError("Only creators can apply to a mission")
        rate_cents: Optional[int] = None
        if proposed_rate is not None:
            try:
                rate_cents = formatting.to_cents(proposed_rate)
            except (ArithmeticError, ValueError) as exc:
                raise InvalidInputError(f"Invalid proposed rate: {proposed_rate!r}") from exc
            if rate_cents <= 0:
                raise InvalidInputError("proposed_rate must be greater than zero")

        with unit_of_work(self.session):
            mission = self._load(mission_id)
            self._require_active(mission)
            if mission.selected_creator_id or StepTypeEnum.creator_validated in self.steps.completed_types(mission.id):
                raise InvalidTransitionError("A creator was already validated for this mission")
            if self.applications.get_for_creator(mission.id, actor.user_id):
                raise InvalidTransitionError("You already applied to this mission")
            try:
                application = self.applications.create(
                    mission.id,
                    actor.user_id,
                    pitch_message=(pitch_message or "").strip() or None,
                    proposed_rate_cents=rate_cents,
                )
            except IntegrityError as exc:
                raise InvalidTransitionError("You already applied to this mission") from exc

        logger.info(
            "Creator applied",
            extra={"mission_id": mission_id, "application_id": application.id, "actor_id": actor.user_id},
        )
        return _application_view(application)

    def withdraw_application(self, application_id: str, actor: AuthContext) -> dict[str, Any]:
        if actor.role != PartyRoleEnum.creator:
            raise UnauthorizedError("Only the applying creator can withdraw an application")
        with unit_of_work(self.session):
            application = self.applications.get(application_id)
            if not application or application.creator_id != actor.user_id:
                raise NotFoundError(f"Application {application_id} not found")
            self._require_active(self._load(application.mission_id))
            current = ApplicationStatusEnum(application.status)
            if current != ApplicationStatusEnum.pending:
                raise InvalidTransitionError(f"Application is {current.value}")
            self.applications.set_status(application, ApplicationStatusEnum.withdrawn)

        logger.info("Application withdrawn", extra={"application_id": application_id, "actor_id": actor.user_id})
        return _application_view(application)

    def set_application_status(
        self,
        application_id: str,
        status: ApplicationStatusEnum | str,
        actor: AuthContext,
    ) -> dict[str, Any]:
        """Brand decision on a pending application. Selecting the creator is ``assign_creator``."""
        self._require_role(actor, PartyRoleEnum.brand)
        try:
            target = ApplicationStatusEnum(status)
        except ValueError as exc:
            raise InvalidInputError(f"Invalid application status {status!r}") from exc
        if target not in (ApplicationStatusEnum.accepted, ApplicationStatusEnum.rejected):
            raise InvalidInputError("An application can only be accepted or rejected")

        with unit_of_work(self.session):
            application = self.applications.get(application_id)
            if not application:
                raise NotFoundError(f"Application {application_id} not found")
            mission = self._load(application.mission_id)
            self._require_party(mission, actor)
            self._require_active(mission)
            current = ApplicationStatusEnum(application.status)
            if current != ApplicationStatusEnum.pending:
                raise InvalidTransitionError(f"Application is {current.value}")
            self.applications.set_status(application, target)

        logger.info(
            "Application status updated",
            extra={"application_id": application_id, "status": target.value, "actor_id": actor.user_id},
        )
        return _application_view(application)

    def send_mission_to_creator(
        self,
        mission_id: str,
        amount: Decimal | float | int | str,
        actor: AuthContext,
    ) -> dict[str, Any]:
        self._require_role(actor, PartyRoleEnum.operator)
        contracts = mandate_contracts(self.session)
        with unit_of_work(self.session):
            mission = self._load(mission_id)
            self._require_active(mission)
            self._require_in_catalogue(catalogue_for(mission.pipeline), StepTypeEnum.mission_sent_to_creator)
            contract = contracts.create(mission.id, amount, actor)
            self.missions.update(mission, creator_amount_cents=contract.amount_cents)
            result = self._complete(mission, StepTypeEnum.mission_sent_to_creator, actor)

        return {"mission": self.view(mission), "contract": contracts.serialize(contract), "step": result}

    def submit_video(self, mission_id: str, reference: str, actor: AuthContext) -> dict[str, Any]:
        self._require_role(actor, PartyRoleEnum.creator)
        video_reference = _required_text(reference, "video reference")
        with unit_of_work(self.session):
            mission = self._load(mission_id)
            self._require_party(mission, actor)
            self._require_active(mission)
            catalogue = catalogue_for(mission.pipeline)
            step = (
                StepTypeEnum.video_uploaded
                if StepTypeEnum.video_uploaded in catalogue
                else StepTypeEnum.video_delivered
            )
            latest = self.deliverables.latest(mission.id)
            if latest and DeliverableStatusEnum(latest.status) == DeliverableStatusEnum.approved:
                raise InvalidTransitionError("The video was already approved")
            deliverable = self.deliverables.create(
                mission.id, mission.selected_creator_id or actor.user_id, video_reference
            )
            self.missions.update(mission, video_reference=video_reference)
            result = self._complete(mission, step, actor)

        logger.info(
            "Video submitted",
            extra={"mission_id": mission_id, "version": deliverable.version, "actor_id": actor.user_id},
        )
        return {"mission": self.view(mission), "deliverable": _deliverable_view(deliverable), "step": result}

    def review_deliverable(
        self,
        deliverable_id: str,
        status: DeliverableStatusEnum | str,
        notes: Optional[str],
        actor: AuthContext,
    ) -> dict[str, Any]:
        """Brand verdict on the latest cut: approval transfers the rights, a revision uses up the cap."""
        self._require_role(actor, PartyRoleEnum.brand)
        try:
            target = DeliverableStatusEnum(status)
        except ValueError as exc:
            raise InvalidInputError(f"Invalid deliverable status {status!r}") from exc
        if target == DeliverableStatusEnum.review:
            raise InvalidInputError("A deliverable can only be approved or sent back for revision")
        body = None
        if target == DeliverableStatusEnum.revision_requested:
            body = _required_text(notes, "revision notes")

        with unit_of_work(self.session):
            deliverable = self.deliverables.get(deliverable_id)
            if not deliverable:
                raise NotFoundError(f"Deliverable {deliverable_id} not found")
            mission = self._load(deliverable.mission_id)
            self._require_party(mission, actor)
            self._require_active(mission)
            latest = self.deliverables.latest(mission.id)
            if (
                latest is None
                or latest.id != deliverable.id
                or DeliverableStatusEnum(deliverable.status) != DeliverableStatusEnum.review
            ):
                raise InvalidTransitionError("Only the latest deliverable awaiting review can be reviewed")
            if INVOICE_TRIGGER_STEP not in self.steps.completed_types(mission.id):
                raise InvalidTransitionError("The video has not been sent to the brand yet")

            result: Optional[dict[str, Any]] = None
            annotation: Optional[MissionAnnotation] = None
            if target == DeliverableStatusEnum.approved:
                self.deliverables.review(deliverable, DeliverableStatusEnum.approved, reviewed_by=actor.user_id)
                if StepTypeEnum.brand_final_approved in catalogue_for(mission.pipeline):
                    result = self._complete(mission, StepTypeEnum.brand_final_approved, actor)
            else:
                annotation = self._record_brand_revision(mission, body, actor)

        logger.info(
            "Deliverable reviewed",
            extra={
                "mission_id": mission.id,
                "deliverable_id": deliverable_id,
                "status": target.value,
                "actor_id": actor.user_id,
            },
        )
        return {
            "deliverable": _deliverable_view(deliverable),
            "mission": self.view(mission),
            "annotation": _annotation_view(annotation) if annotation else None,
            "step": result,
        }

    def list_deliverables(self, mission_id: str, actor: AuthContext) -> list[dict[str, Any]]:
        self.require_visible(mission_id, actor)
        return [_deliverable_view(deliverable) for deliverable in self.deliverables.list(mission_id)]

    def record_qc_feedback(self, mission_id: str, text: str, actor: AuthContext) -> dict[str, Any]:
        self._require_role(actor, PartyRoleEnum.operator)
        body = _required_text(text, "feedback")
        with unit_of_work(self.session):
            mission = self._load(mission_id)
            self._require_active(mission)
            completed = self.steps.completed_types(mission.id)
            if not completed & {StepTypeEnum.video_uploaded, StepTypeEnum.video_delivered}:
                raise InvalidTransitionError("No video has been delivered yet")
            if StepTypeEnum.video_validated in completed:
                raise InvalidTransitionError("The video was already validated")
            annotation = self.annotations.append(
                mission.id, AnnotationKindEnum.qc_feedback, body, author_id=actor.user_id
            )
        logger.info("QC feedback recorded", extra={"mission_id": mission_id, "actor_id": actor.user_id})
        return _annotation_view(annotation)

    def record_brand_revision_request(self, mission_id: str, feedback: str, actor: AuthContext) -> dict[str, Any]:
        self._require_role(actor, PartyRoleEnum.brand)
        body = _required_text(feedback, "feedback")
        cap = settings.BRAND_REVISION_CAP
        with unit_of_work(self.session):
            mission = self._load(mission_id)
            self._require_party(mission, actor)
            self._require_active(mission)
            annotation = self._record_brand_revision(mission, body, actor)

        logger.info(
            "Brand revision requested",
            extra={
                "mission_id": mission_id,
                "brand_revision_count": mission.brand_revision_count,
                "actor_id": actor.user_id,
            },
        )
        return {
            "brand_revision_count": mission.brand_revision_count,
            "brand_revision_cap": cap,
            "annotation": _annotation_view(annotation),
        }

    def cancel_mission(self, mission_id: str, reason: Optional[str], actor: AuthContext) -> dict[str, Any]:
        self._require_role(actor, PartyRoleEnum.operator, PartyRoleEnum.brand)
        with unit_of_work(self.session):
            mission = self._load(mission_id)
            self._require_party(mission, actor)
            self._require_active(mission)
            self.missions.update(mission, status=MissionStatusEnum.cancelled, cancelled_at=utcnow())
            if reason and reason.strip():
                self.annotations.append(
                    mission.id, AnnotationKindEnum.cancellation, reason.strip(), author_id=actor.user_id
                )
        logger.info("Mission cancelled", extra={"mission_id": mission_id, "actor_id": actor.user_id})
        return self.view(mission)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    def can_view(mission: Mission, actor: AuthContext, proposed_creator_ids: Iterable[str] = ()) -> bool:
        if actor.role in (PartyRoleEnum.admin, PartyRoleEnum.operator):
            return True
        if actor.role == PartyRoleEnum.brand:
            return mission.brand_id == actor.user_id
        return mission.selected_creator_id == actor.user_id or actor.user_id in set(proposed_creator_ids)

    def _visible(self, mission_id: str, actor: Optional[AuthContext]) -> Optional[Mission]:
        mission = self.missions.get(mission_id)
        if not mission:
            return None
        if actor is not None:
            proposed = [application.creator_id for application in self.applications.list(mission.id)]
            if not self.can_view(mission, actor, proposed):
                return None
        return mission

    def require_visible(self, mission_id: str, actor: AuthContext) -> Mission:
        """Missions an actor may not see are reported as missing."""
        mission = self._visible(mission_id, actor)
        if not mission:
            raise NotFoundError(f"Mission {mission_id} not found")
        return mission

    def get_mission_view(self, mission_id: str, actor: Optional[AuthContext] = None) -> Optional[dict[str, Any]]:
        mission = self._visible(mission_id, actor)
        if not mission:
            return None
        return self.view(mission)

    def list_applications(self, mission_id: str, actor: AuthContext) -> list[dict[str, Any]]:
        self.require_visible(mission_id, actor)
        applications = self.applications.list(mission_id)
        if actor.role == PartyRoleEnum.creator:
            applications = [application for application in applications if application.creator_id == actor.user_id]
        return [_application_view(application) for application in applications]

    def list_missions(
        self,
        actor: AuthContext,
        *,
        status: MissionStatusEnum | str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        status_filter = MissionStatusEnum(_enum_value(MissionStatusEnum, status, "status")) if status else None
        filters: dict[str, Any] = {"status": status_filter, "limit": limit, "offset": offset}
        if actor.role == PartyRoleEnum.brand:
            filters["brand_id"] = actor.user_id
        elif actor.role == PartyRoleEnum.creator:
            filters["creator_id"] = actor.user_id
        return [self.view(mission, include_feedback=False) for mission in self.missions.list(**filters)]

    def mission_stats(self, actor: AuthContext) -> dict[str, int]:
        self._require_role(actor, PartyRoleEnum.operator)
        counts = self.missions.count_by_status()
        counts["total"] = sum(counts.values())
        return counts

    def view(self, mission: Mission, *, include_feedback: bool = True) -> dict[str, Any]:
        catalogue = catalogue_for(mission.pipeline)
        completed = self.steps.completed_types(mission.id)
        index = catalogue.highest_completed_index(completed)
        payload: dict[str, Any] = {
            "id": mission.id,
            "brand_id": mission.brand_id,
            "brand_name": (mission.brand.company_name or mission.brand.full_name) if mission.brand else None,
            "title": mission.title,
            "description": mission.description,
            "product_name": mission.product_name,
            "product_description": mission.product_description,
            "format": mission.format,
            "script_type": mission.script_type,
            "script_notes": mission.script_notes,
            "rights_usage": mission.rights_usage,
            "pricing_pack": mission.pricing_pack,
            "budget": formatting.from_cents(mission.budget_cents),
            "deadline": formatting.isoformat(mission.deadline),
            "pipeline": catalogue.pipeline.value,
            "status": MissionStatusEnum(mission.status).value,
            "script_status": ScriptStatusEnum(mission.script_status).value,
            "script_content": mission.script_content,
            "selected_creator_id": mission.selected_creator_id,
            "selected_creator_name": mission.selected_creator.full_name if mission.selected_creator else None,
            "assigned_operator_id": mission.assigned_operator_id,
            "video_reference": mission.video_reference,
            "brand_revision_count": mission.brand_revision_count,
            "brand_revision_cap": settings.BRAND_REVISION_CAP,
            "creator_amount": formatting.from_cents(mission.creator_amount_cents),
            "completed_steps": [step.value for step in catalogue.step_ids if step in completed],
            "current_step_index": index,
            "current_step": catalogue.step_ids[index].value if index >= 0 else None,
            "created_at": formatting.isoformat(mission.created_at),
            "updated_at": formatting.isoformat(mission.updated_at),
            "completed_at": formatting.isoformat(mission.completed_at),
            "cancelled_at": formatting.isoformat(mission.cancelled_at),
        }
        if include_feedback:
            latest = self.annotations.latest_by_kind(mission.id)
            payload["feedback"] = {
                kind.value: _annotation_view(latest[kind]) if kind in latest else None
                for kind in AnnotationKindEnum
            }
        return payload
