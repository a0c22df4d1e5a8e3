from typing import Optional, Type

from sqlalchemy import select, update

from ugc_missions.db.enums import ContractStatusEnum
from ugc_missions.db.models import ContractRecordMixin
from ugc_missions.db.repositories.base import Repository


class ContractsRepository(Repository):
    """Works for both contract tables; ``key_column`` names the owning record (application or mission)."""

    def __init__(self, session, model: Type[ContractRecordMixin], key_column: str) -> None:
        super().__init__(session)
        self.model = model
        self.key_column = key_column

    def get(self, key: str) -> Optional[ContractRecordMixin]:
        column = getattr(self.model, self.key_column)
        stmt = select(self.model).where(column == key)
        return self.session.scalars(stmt).first()

    def create(self, key: str, **fields) -> ContractRecordMixin:
        contract = self.model(**{self.key_column: key}, **fields)
        return self.save(contract)

    def activate(self, contract_id: str, **fields) -> bool:
        """
        Move a pending contract to ``active`` in a single conditional UPDATE.

        Returns False when the contract was no longer pending (a concurrent signature won).
        """
        stmt = (
            update(self.model)
            .where(
                self.model.id == contract_id,
                self.model.status == ContractStatusEnum.pending_counterparty_signature,
            )
            .values(status=ContractStatusEnum.active, **fields)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1
