from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Optional

from sqlalchemy.orm import Session

from ugc_missions.config import settings
from ugc_missions.db.base import unit_of_work
from ugc_missions.db.enums import StepTypeEnum
from ugc_missions.db.models import Invoice, MandateContract, Mission, utcnow
from ugc_missions.db.repositories.contracts import ContractsRepository
from ugc_missions.db.repositories.invoices import InvoicesRepository
from ugc_missions.db.repositories.missions import MissionsRepository
from ugc_missions.db.repositories.steps import StepLedgerRepository
from ugc_missions.documents import formatting
from ugc_missions.documents.templates import render_invoice
from ugc_missions.errors import InvalidInputError, NotEligibleError, NotFoundError
from ugc_missions.services.document_storage import store_document
from ugc_missions.workflow.policy import INVOICE_TRIGGER_STEP, catalogue_for

logger = logging.getLogger(__name__)

# Upper bound on invoice-number collisions retried within one request.
MAX_NUMBER_ATTEMPTS = 20


class InvoiceService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.missions = MissionsRepository(session)
        self.steps = StepLedgerRepository(session)
        self.invoices = InvoicesRepository(session)

    def is_eligible(self, mission: Mission, completed: set[StepTypeEnum]) -> bool:
        if INVOICE_TRIGGER_STEP not in completed:
            return False
        catalogue = catalogue_for(mission.pipeline)
        if StepTypeEnum.brand_final_review in catalogue:
            return StepTypeEnum.brand_final_review in completed
        return True

    def generate(self, mission_id: str) -> Invoice:
        """
        Return the mission's invoice, creating it on first call.

        Safe under concurrent calls: the unique constraints on ``mission_id`` and
        ``invoice_number`` decide the winner, and a loser resolves to the
        winner's invoice or retries with the next number.
        """
        with unit_of_work(self.session):
            mission = self.missions.get(mission_id)
            if not mission:
                raise NotFoundError(f"Mission {mission_id} not found")
            completed = self.steps.completed_types(mission_id)
            if not self.is_eligible(mission, completed):
                raise NotEligibleError("The video must be sent to the brand before an invoice can be generated")

            existing = self.invoices.get_by_mission(mission_id)
            if existing:
                logger.debug(
                    "Invoice already generated",
                    extra={"mission_id": mission_id, "invoice_number": existing.invoice_number},
                )
                return existing

            if not mission.selected_creator_id:
                raise InvalidInputError("A creator must be assigned before invoicing")

            amount_cents = self._amount_for(mission)
            prefix = f"{settings.INVOICE_NUMBER_PREFIX}-{utcnow().year}-"
            sequence = self.invoices.count_with_prefix(prefix) + 1
            invoice: Optional[Invoice] = None
            for _ in range(MAX_NUMBER_ATTEMPTS):
                number = f"{prefix}{sequence:04d}"
                inserted = self.invoices.insert_if_absent(
                    mission_id=mission_id,
                    invoice_number=number,
                    amount_cents=amount_cents,
                )
                invoice = self.invoices.get_by_mission(mission_id)
                if inserted:
                    break
                if invoice:
                    logger.info(
                        "Concurrent invoice generation resolved to existing invoice",
                        extra={"mission_id": mission_id, "invoice_number": invoice.invoice_number},
                    )
                    return invoice
                sequence += 1
            else:
                raise RuntimeError(f"Could not allocate an invoice number for mission {mission_id}")

            text = self._render(invoice, mission)
            self.invoices.set_document_reference(
                invoice, store_document(self.session, kind="invoices", number=invoice.invoice_number, text=text)
            )

        logger.info(
            "Invoice generated",
            extra={
                "mission_id": mission_id,
                "invoice_number": invoice.invoice_number,
                "amount_cents": invoice.amount_cents,
            },
        )
        return invoice

    def render_text(self, mission_id: str) -> Optional[str]:
        invoice = self.invoices.get_by_mission(mission_id)
        if not invoice:
            return None
        mission = self.missions.get(mission_id)
        return self._render(invoice, mission)

    def get(self, mission_id: str) -> Optional[dict[str, Any]]:
        invoice = self.invoices.get_by_mission(mission_id)
        if not invoice:
            return None
        return self.serialize(invoice)

    @staticmethod
    def serialize(invoice: Invoice) -> dict[str, Any]:
        generated_at = formatting.ensure_utc(invoice.generated_at)
        return {
            "id": invoice.id,
            "mission_id": invoice.mission_id,
            "invoice_number": invoice.invoice_number,
            "amount": formatting.from_cents(invoice.amount_cents),
            "generated_at": generated_at.isoformat(),
            "payment_due_at": (generated_at + timedelta(days=settings.PAYMENT_TERM_DAYS)).isoformat(),
            "document_reference": invoice.document_reference,
        }

    def _amount_for(self, mission: Mission) -> int:
        if mission.creator_amount_cents:
            return mission.creator_amount_cents
        contract = ContractsRepository(self.session, MandateContract, "mission_id").get(mission.id)
        if contract:
            return contract.amount_cents
        return mission.budget_cents

    def _render(self, invoice: Invoice, mission: Mission) -> str:
        creator = mission.selected_creator
        brand = mission.brand
        generated_at = formatting.ensure_utc(invoice.generated_at)
        delivered = self.steps.get(mission.id, INVOICE_TRIGGER_STEP)
        amount_ht, vat_amount = formatting.vat_split(invoice.amount_cents, settings.VAT_RATE_PERCENT)
        return render_invoice(
            {
                "invoice_number": invoice.invoice_number,
                "invoice_date": formatting.format_date_ch(generated_at),
                "operator_company_name": settings.OPERATOR_COMPANY_NAME,
                "operator_address": settings.OPERATOR_ADDRESS,
                "operator_uid": settings.OPERATOR_UID,
                "operator_email": settings.OPERATOR_EMAIL,
                "creator_full_name": creator.full_name if creator else formatting.NOT_PROVIDED,
                "creator_address": (creator.address if creator else None) or formatting.NOT_PROVIDED,
                "creator_email": creator.email if creator else formatting.NOT_PROVIDED,
                "mission_title": mission.title,
                "mission_ref": formatting.short_reference(mission.id),
                "brand_name": brand.company_name or brand.full_name,
                "deliverables_summary": formatting.build_deliverables_summary(
                    pricing_pack=mission.pricing_pack,
                    script_type=mission.script_type,
                    video_format=mission.format,
                    product_name=mission.product_name,
                ),
                "completion_date": formatting.format_date_ch(delivered.completed_at if delivered else generated_at),
                "amount_ht": formatting.format_chf(amount_ht),
                "vat_rate": formatting.format_rate(settings.VAT_RATE_PERCENT),
                "vat_amount": formatting.format_chf(vat_amount),
                "amount_ttc": formatting.format_chf(invoice.amount_cents),
                "payment_terms": f"Paiement à {settings.PAYMENT_TERM_DAYS} jours.",
                "payment_due_date": formatting.format_date_ch(
                    generated_at + timedelta(days=settings.PAYMENT_TERM_DAYS)
                ),
            }
        )
