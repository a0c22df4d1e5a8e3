from typing import List, Optional

from sqlalchemy import select

from ugc_missions.db.enums import ApplicationStatusEnum
from ugc_missions.db.models import Application
from ugc_missions.db.repositories.base import Repository


class ApplicationsRepository(Repository):
    def get(self, application_id: str) -> Optional[Application]:
        stmt = select(Application).where(Application.id == application_id)
        return self.session.scalars(stmt).unique().first()

    def get_for_creator(self, mission_id: str, creator_id: str) -> Optional[Application]:
        stmt = select(Application).where(
            Application.mission_id == mission_id,
            Application.creator_id == creator_id,
        )
        return self.session.scalars(stmt).unique().first()

    def list(self, mission_id: str) -> List[Application]:
        stmt = (
            select(Application)
            .where(Application.mission_id == mission_id)
            .order_by(Application.created_at.asc())
        )
        return list(self.session.scalars(stmt).unique().all())

    def create(
        self,
        mission_id: str,
        creator_id: str,
        pitch_message: str | None = None,
        proposed_rate_cents: int | None = None,
    ) -> Application:
        application = Application(
            mission_id=mission_id,
            creator_id=creator_id,
            pitch_message=pitch_message,
            proposed_rate_cents=proposed_rate_cents,
        )
        return self.save(application)

    def set_status(self, application: Application, status: ApplicationStatusEnum) -> Application:
        application.status = status
        self.session.flush()
        return application
