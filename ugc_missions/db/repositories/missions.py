from typing import List, Optional

from sqlalchemy import func, select, update

from ugc_missions.db.enums import MissionStatusEnum
from ugc_missions.db.models import Application, Mission
from ugc_missions.db.repositories.base import Repository


class MissionsRepository(Repository):
    def get(self, mission_id: str, *, for_update: bool = False) -> Optional[Mission]:
        stmt = select(Mission).where(Mission.id == mission_id)
        if for_update:
            # Row lock on PostgreSQL; SQLite serializes writers at the database level.
            stmt = stmt.with_for_update(of=Mission)
        return self.session.scalars(stmt).unique().first()

    def list(
        self,
        *,
        brand_id: str | None = None,
        creator_id: str | None = None,
        status: MissionStatusEnum | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Mission]:
        stmt = select(Mission)
        if brand_id:
            stmt = stmt.where(Mission.brand_id == brand_id)
        if creator_id:
            proposed = select(Application.mission_id).where(Application.creator_id == creator_id)
            stmt = stmt.where((Mission.selected_creator_id == creator_id) | Mission.id.in_(proposed))
        if status:
            stmt = stmt.where(Mission.status == status)
        stmt = stmt.order_by(Mission.created_at.desc()).limit(limit).offset(offset)
        return list(self.session.scalars(stmt).unique().all())

    def create(self, brand_id: str, title: str, **fields) -> Mission:
        mission = Mission(brand_id=brand_id, title=title, **fields)
        return self.save(mission)

    def update(self, mission: Mission, **fields) -> Mission:
        for key, value in fields.items():
            setattr(mission, key, value)
        self.session.flush()
        return mission

    def increment_revision_count(self, mission_id: str, cap: int) -> bool:
        """Atomically bump the brand revision counter; False when the cap is already reached."""
        stmt = (
            update(Mission)
            .where(Mission.id == mission_id, Mission.brand_revision_count < cap)
            .values(brand_revision_count=Mission.brand_revision_count + 1)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1

    def count_by_status(self) -> dict[str, int]:
        stmt = select(Mission.status, func.count(Mission.id)).group_by(Mission.status)
        counts = {status.value: 0 for status in MissionStatusEnum}
        for status, count in self.session.execute(stmt).all():
            counts[MissionStatusEnum(status).value] = count
        return counts
