from typing import Iterable, List, Optional

from sqlalchemy import select

from ugc_missions.db.enums import PartyRoleEnum
from ugc_missions.db.models import Party
from ugc_missions.db.repositories.base import Repository


class PartiesRepository(Repository):
    def get(self, party_id: str) -> Optional[Party]:
        return self.session.get(Party, party_id)

    def get_many(self, party_ids: Iterable[str]) -> List[Party]:
        ids = list(party_ids)
        if not ids:
            return []
        stmt = select(Party).where(Party.id.in_(ids))
        return list(self.session.scalars(stmt).all())

    def create(self, role: PartyRoleEnum, full_name: str, email: str, **fields) -> Party:
        party = Party(role=role, full_name=full_name, email=email, **fields)
        return self.save(party)
