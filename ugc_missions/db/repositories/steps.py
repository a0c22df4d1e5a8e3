from typing import List, Optional, Set

from sqlalchemy import select

from ugc_missions.db.enums import StepTypeEnum
from ugc_missions.db.models import MissionStep, new_id, utcnow
from ugc_missions.db.repositories.base import Repository


class StepLedgerRepository(Repository):
    """Append-only set of completed steps, unique per (mission, step type)."""

    def list(self, mission_id: str) -> List[MissionStep]:
        stmt = (
            select(MissionStep)
            .where(MissionStep.mission_id == mission_id)
            .order_by(MissionStep.completed_at.asc())
        )
        return list(self.session.scalars(stmt).all())

    def get(self, mission_id: str, step_type: StepTypeEnum) -> Optional[MissionStep]:
        stmt = select(MissionStep).where(
            MissionStep.mission_id == mission_id,
            MissionStep.step_type == step_type,
        )
        return self.session.scalars(stmt).first()

    def completed_types(self, mission_id: str) -> Set[StepTypeEnum]:
        stmt = select(MissionStep.step_type).where(MissionStep.mission_id == mission_id)
        return {StepTypeEnum(value) for value in self.session.scalars(stmt).all()}

    def append(self, mission_id: str, step_type: StepTypeEnum, completed_by: str | None = None) -> bool:
        """
        Record a completed step.

        Returns True when a new entry was written, False when the step was already
        recorded (by this or a concurrent request). Never raises on duplicates.
        """
        stmt = (
            self.insert_ignoring_conflicts(MissionStep)
            .values(
                id=new_id(),
                mission_id=mission_id,
                step_type=step_type.value,
                completed_by=completed_by,
                completed_at=utcnow(),
            )
            .on_conflict_do_nothing(index_elements=["mission_id", "step_type"])
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1
