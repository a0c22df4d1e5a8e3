from typing import Optional

from sqlalchemy import func, select

from ugc_missions.db.models import Invoice, new_id, utcnow
from ugc_missions.db.repositories.base import Repository


class InvoicesRepository(Repository):
    def get_by_mission(self, mission_id: str) -> Optional[Invoice]:
        stmt = select(Invoice).where(Invoice.mission_id == mission_id)
        return self.session.scalars(stmt).first()

    def count_with_prefix(self, prefix: str) -> int:
        stmt = select(func.count(Invoice.id)).where(Invoice.invoice_number.like(f"{prefix}%"))
        return int(self.session.scalar(stmt) or 0)

    def insert_if_absent(
        self,
        *,
        mission_id: str,
        invoice_number: str,
        amount_cents: int,
        document_reference: str | None = None,
    ) -> bool:
        """
        Insert an invoice unless one already exists for the mission or the number is taken.

        Returns True when this call wrote the row.
        """
        stmt = (
            self.insert_ignoring_conflicts(Invoice)
            .values(
                id=new_id(),
                mission_id=mission_id,
                invoice_number=invoice_number,
                amount_cents=amount_cents,
                generated_at=utcnow(),
                document_reference=document_reference,
            )
            .on_conflict_do_nothing()
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1

    def set_document_reference(self, invoice: Invoice, reference: str | None) -> Invoice:
        invoice.document_reference = reference
        self.session.flush()
        return invoice
