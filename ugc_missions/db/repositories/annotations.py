from typing import Dict, List

from sqlalchemy import select

from ugc_missions.db.enums import AnnotationKindEnum
from ugc_missions.db.models import MissionAnnotation
from ugc_missions.db.repositories.base import Repository


class AnnotationsRepository(Repository):
    def append(
        self,
        mission_id: str,
        kind: AnnotationKindEnum,
        body: str,
        author_id: str | None = None,
    ) -> MissionAnnotation:
        annotation = MissionAnnotation(mission_id=mission_id, kind=kind, body=body, author_id=author_id)
        return self.save(annotation)

    def list(self, mission_id: str, kind: AnnotationKindEnum | None = None) -> List[MissionAnnotation]:
        stmt = select(MissionAnnotation).where(MissionAnnotation.mission_id == mission_id)
        if kind:
            stmt = stmt.where(MissionAnnotation.kind == kind)
        stmt = stmt.order_by(MissionAnnotation.id.asc())
        return list(self.session.scalars(stmt).all())

    def latest_by_kind(self, mission_id: str) -> Dict[AnnotationKindEnum, MissionAnnotation]:
        latest: Dict[AnnotationKindEnum, MissionAnnotation] = {}
        for annotation in self.list(mission_id):
            latest[AnnotationKindEnum(annotation.kind)] = annotation
        return latest
