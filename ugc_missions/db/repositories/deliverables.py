from typing import List, Optional

from sqlalchemy import func, select

from ugc_missions.db.enums import DeliverableStatusEnum
from ugc_missions.db.models import Deliverable, utcnow
from ugc_missions.db.repositories.base import Repository


class DeliverablesRepository(Repository):
    def get(self, deliverable_id: str) -> Optional[Deliverable]:
        return self.session.get(Deliverable, deliverable_id)

    def list(self, mission_id: str) -> List[Deliverable]:
        stmt = (
            select(Deliverable)
            .where(Deliverable.mission_id == mission_id)
            .order_by(Deliverable.version.desc())
        )
        return list(self.session.scalars(stmt).all())

    def latest(self, mission_id: str) -> Optional[Deliverable]:
        stmt = (
            select(Deliverable)
            .where(Deliverable.mission_id == mission_id)
            .order_by(Deliverable.version.desc())
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    def create(self, mission_id: str, creator_id: str, video_reference: str) -> Deliverable:
        """Record the next version; the (mission_id, version) constraint rejects a concurrent duplicate."""
        current = self.session.scalar(
            select(func.max(Deliverable.version)).where(Deliverable.mission_id == mission_id)
        )
        deliverable = Deliverable(
            mission_id=mission_id,
            creator_id=creator_id,
            version=(current or 0) + 1,
            video_reference=video_reference,
            status=DeliverableStatusEnum.review,
        )
        return self.save(deliverable)

    def review(
        self,
        deliverable: Deliverable,
        status: DeliverableStatusEnum,
        *,
        reviewed_by: str,
        revision_notes: str | None = None,
    ) -> Deliverable:
        now = utcnow()
        deliverable.status = status
        deliverable.reviewed_by = reviewed_by
        deliverable.reviewed_at = now
        if status == DeliverableStatusEnum.revision_requested:
            deliverable.revision_notes = revision_notes
        if status == DeliverableStatusEnum.approved:
            deliverable.rights_transferred_at = now
        self.session.flush()
        return deliverable
