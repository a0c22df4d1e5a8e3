"""
Contract lifecycles.

Direct (brand <-> creator, keyed by application) and mandate (operator <->
creator, keyed by mission) contracts share one state machine:

    none -> pending_counterparty_signature -> active

``none`` is the absence of a record. Creating a contract records the
initiator's signature; the named creator's signature activates it. Text is
rendered from a JSON snapshot of the variables taken at creation, so the
stored document can always be reproduced byte for byte.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, Type

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ugc_missions.auth.dependencies import AuthContext
from ugc_missions.config import settings
from ugc_missions.db.base import unit_of_work
from ugc_missions.db.enums import ApplicationStatusEnum, ContractStatusEnum, MissionStatusEnum, PartyRoleEnum
from ugc_missions.db.models import (
    Application,
    ContractRecordMixin,
    DirectContract,
    MandateContract,
    Mission,
    Party,
    utcnow,
)
from ugc_missions.db.repositories.applications import ApplicationsRepository
from ugc_missions.db.repositories.contracts import ContractsRepository
from ugc_missions.db.repositories.missions import MissionsRepository
from ugc_missions.documents import formatting
from ugc_missions.documents.templates import render_direct_contract, render_mandate_contract
from ugc_missions.errors import (
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    UnauthorizedError,
)
from ugc_missions.services.document_storage import store_document
from ugc_missions.workflow.policy import TERMINAL_STATUSES

logger = logging.getLogger(__name__)

SIGNATURE_KEYS = (
    "initiator_accepted_at",
    "initiator_network_address",
    "counterparty_accepted_at",
    "counterparty_network_address",
)


@dataclass(frozen=True)
class ContractParties:
    mission: Mission
    counterparty: Optional[Party]
    initiator: Optional[Party] = None
    application: Optional[Application] = None


@dataclass(frozen=True)
class ContractKind:
    name: str
    model: Type[ContractRecordMixin]
    key_column: str
    initiator_role: PartyRoleEnum
    counterparty_role: PartyRoleEnum
    number_prefix: str
    render: Callable[[Mapping[str, Any]], str]
    resolve: Callable[[Session, str], ContractParties]
    build_variables: Callable[[ContractParties, str, int, datetime], dict[str, Any]]


def _display(value: Optional[str]) -> str:
    return value if value else formatting.NOT_PROVIDED


def _deadline(mission: Mission) -> str:
    if mission.deadline is None:
        return "À définir"
    return formatting.format_date_ch(mission.deadline)


def _payment_terms() -> str:
    return (
        f"Paiement à {settings.PAYMENT_TERM_DAYS} jours après validation finale "
        "des Contenus par la Marque."
    )


def _deliverables(mission: Mission) -> str:
    return formatting.build_deliverables_text(
        script_type=mission.script_type,
        video_format=mission.format,
        product_name=mission.product_name,
        script_notes=mission.script_notes,
    )


def _resolve_mandate(session: Session, mission_id: str) -> ContractParties:
    mission = MissionsRepository(session).get(mission_id, for_update=True)
    if not mission:
        raise NotFoundError(f"Mission {mission_id} not found")
    return ContractParties(mission=mission, counterparty=mission.selected_creator)


def _resolve_direct(session: Session, application_id: str) -> ContractParties:
    application = ApplicationsRepository(session).get(application_id)
    if not application:
        raise NotFoundError(f"Application {application_id} not found")
    mission = application.mission
    return ContractParties(
        mission=mission,
        counterparty=application.creator,
        initiator=mission.brand,
        application=application,
    )


def _mandate_variables(
    parties: ContractParties, number: str, amount_cents: int, generated_at: datetime
) -> dict[str, Any]:
    mission = parties.mission
    creator = parties.counterparty
    brand = mission.brand
    amount_ht, vat_amount = formatting.vat_split(amount_cents, settings.VAT_RATE_PERCENT)
    return {
        "contract_id": number,
        "contract_date": formatting.format_date_ch(generated_at),
        "operator_company_name": settings.OPERATOR_COMPANY_NAME,
        "operator_address": settings.OPERATOR_ADDRESS,
        "operator_uid": settings.OPERATOR_UID,
        "operator_email": settings.OPERATOR_EMAIL,
        "creator_full_name": creator.full_name,
        "creator_address": _display(creator.address),
        "creator_email": creator.email,
        "mission_title": mission.title,
        "mission_description": _display(mission.description or mission.product_description),
        "brand_name": brand.company_name or brand.full_name,
        "deliverables": _deliverables(mission),
        "format": formatting.label(formatting.FORMAT_LABELS, mission.format),
        "script_type": formatting.label(formatting.SCRIPT_TYPE_LABELS, mission.script_type),
        "deadline": _deadline(mission),
        "revision_count": settings.INCLUDED_REVISIONS,
        "amount_ttc": formatting.format_chf(amount_cents),
        "amount_ht": formatting.format_chf(amount_ht),
        "vat_amount": formatting.format_chf(vat_amount),
        "vat_rate": formatting.format_rate(settings.VAT_RATE_PERCENT),
        "payment_terms": _payment_terms(),
    }


def _direct_variables(
    parties: ContractParties, number: str, amount_cents: int, generated_at: datetime
) -> dict[str, Any]:
    mission = parties.mission
    creator = parties.counterparty
    brand = parties.initiator
    return {
        "contract_id": number,
        "contract_date": formatting.format_date_ch(generated_at),
        "brand_company_name": brand.company_name or brand.full_name,
        "brand_contact_name": brand.full_name,
        "brand_address": _display(brand.address),
        "brand_email": brand.email,
        "creator_full_name": creator.full_name,
        "creator_address": _display(creator.address),
        "creator_email": creator.email,
        "mission_title": mission.title,
        "mission_description": _display(mission.description or mission.product_description),
        "deliverables": _deliverables(mission),
        "rights_usage": formatting.label(formatting.RIGHTS_USAGE_LABELS, mission.rights_usage),
        "deadline": _deadline(mission),
        "revision_count": settings.INCLUDED_REVISIONS,
        "amount_ttc": formatting.format_chf(amount_cents),
        "payment_terms": _payment_terms(),
    }


DIRECT = ContractKind(
    name="direct",
    model=DirectContract,
    key_column="application_id",
    initiator_role=PartyRoleEnum.brand,
    counterparty_role=PartyRoleEnum.creator,
    number_prefix="UGC",
    render=render_direct_contract,
    resolve=_resolve_direct,
    build_variables=_direct_variables,
)

MANDATE = ContractKind(
    name="mandate",
    model=MandateContract,
    key_column="mission_id",
    initiator_role=PartyRoleEnum.operator,
    counterparty_role=PartyRoleEnum.creator,
    number_prefix="MOSH",
    render=render_mandate_contract,
    resolve=_resolve_mandate,
    build_variables=_mandate_variables,
)


def _signed_at(value: Optional[datetime]) -> str:
    return formatting.format_timestamp(value) if value else formatting.PENDING_SIGNATURE


def _signed_from(signed_at: Optional[datetime], address: Optional[str]) -> str:
    if signed_at is None:
        return formatting.PENDING_SIGNATURE
    return address or formatting.NOT_PROVIDED


def signature_variables(
    *,
    initiator_signed_at: Optional[datetime],
    initiator_network_address: Optional[str],
    counterparty_signed_at: Optional[datetime],
    counterparty_network_address: Optional[str],
) -> dict[str, str]:
    return {
        "initiator_accepted_at": _signed_at(initiator_signed_at),
        "initiator_network_address": _signed_from(initiator_signed_at, initiator_network_address),
        "counterparty_accepted_at": _signed_at(counterparty_signed_at),
        "counterparty_network_address": _signed_from(counterparty_signed_at, counterparty_network_address),
    }


def contract_signatures(contract: ContractRecordMixin) -> dict[str, str]:
    return signature_variables(
        initiator_signed_at=contract.initiator_signed_at,
        initiator_network_address=contract.initiator_network_address,
        counterparty_signed_at=contract.counterparty_signed_at,
        counterparty_network_address=contract.counterparty_network_address,
    )


class ContractLifecycle:
    def __init__(self, session: Session, kind: ContractKind) -> None:
        self.session = session
        self.kind = kind
        self.repo = ContractsRepository(session, kind.model, kind.key_column)

    # Rendering -----------------------------------------------------------

    def render_preview(self, variables: Mapping[str, Any]) -> str:
        """
        Render contract text without touching the database.

        Signature fields missing from ``variables`` render as the pending
        placeholder, so an unsaved draft and a freshly created contract share
        the same shape.
        """
        merged = {key: formatting.PENDING_SIGNATURE for key in SIGNATURE_KEYS}
        merged.update(variables)
        return self.kind.render(merged)

    def preview_for(self, key: str, amount: Decimal | float | int | str) -> str:
        amount_cents = self._validated_amount(amount)
        parties = self.kind.resolve(self.session, key)
        self._require_counterparty(parties)
        generated_at = utcnow()
        number = self._contract_number(key, generated_at)
        variables = self.kind.build_variables(parties, number, amount_cents, generated_at)
        return self.render_preview(variables)

    def render_text(self, key: str) -> Optional[str]:
        contract = self.repo.get(key)
        if not contract:
            return None
        return self._render_contract(contract)

    def _render_contract(self, contract: ContractRecordMixin) -> str:
        return self.render_preview({**contract.variables, **contract_signatures(contract)})

    # Reads ---------------------------------------------------------------

    def get(self, key: str) -> dict[str, Any]:
        contract = self.repo.get(key)
        if not contract:
            return {"kind": self.kind.name, self.kind.key_column: key, "state": ContractStatusEnum.none.value}
        return self.serialize(contract)

    def serialize(self, contract: ContractRecordMixin) -> dict[str, Any]:
        return {
            "kind": self.kind.name,
            self.kind.key_column: getattr(contract, self.kind.key_column),
            "id": contract.id,
            "state": ContractStatusEnum(contract.status).value,
            "contract_number": contract.contract_number,
            "amount": formatting.from_cents(contract.amount_cents),
            "generated_at": formatting.isoformat(contract.generated_at),
            "document_reference": contract.document_reference,
            "initiator": {
                "role": PartyRoleEnum(contract.initiator_role).value,
                "id": contract.initiator_id,
                "signed_at": formatting.isoformat(contract.initiator_signed_at),
                "network_address": contract.initiator_network_address,
            },
            "counterparty": {
                "role": PartyRoleEnum(contract.counterparty_role).value,
                "id": contract.counterparty_id,
                "signed_at": formatting.isoformat(contract.counterparty_signed_at),
                "network_address": contract.counterparty_network_address,
            },
        }

    # Transitions ---------------------------------------------------------

    def create(self, key: str, amount: Decimal | float | int | str, actor: AuthContext) -> ContractRecordMixin:
        amount_cents = self._validated_amount(amount)
        with unit_of_work(self.session):
            parties = self.kind.resolve(self.session, key)
            self._require_open_mission(parties)
            self._authorize_initiator(parties, actor)
            self._require_counterparty(parties)
            if self.repo.get(key):
                raise InvalidTransitionError(f"A {self.kind.name} contract already exists for {key}")
            if parties.application is not None and parties.application.status in (
                ApplicationStatusEnum.rejected,
                ApplicationStatusEnum.withdrawn,
            ):
                raise InvalidTransitionError(f"Application {key} is {parties.application.status.value}")

            generated_at = utcnow()
            number = self._contract_number(key, generated_at)
            variables = self.kind.build_variables(parties, number, amount_cents, generated_at)
            try:
                contract = self.repo.create(
                    key,
                    contract_number=number,
                    status=ContractStatusEnum.pending_counterparty_signature,
                    amount_cents=amount_cents,
                    variables=variables,
                    document_text="",
                    generated_at=generated_at,
                    initiator_role=actor.role,
                    initiator_id=actor.user_id,
                    initiator_signed_at=generated_at,
                    initiator_network_address=actor.network_address,
                    counterparty_role=self.kind.counterparty_role,
                    counterparty_id=parties.counterparty.id,
                )
            except IntegrityError as exc:
                raise InvalidTransitionError(f"A {self.kind.name} contract already exists for {key}") from exc

            contract.document_text = self._render_contract(contract)
            contract.document_reference = store_document(
                self.session, kind="contracts", number=number, text=contract.document_text
            )
            if parties.application is not None:
                ApplicationsRepository(self.session).set_status(parties.application, ApplicationStatusEnum.accepted)
            self.session.flush()

        logger.info(
            "Contract created",
            extra={
                "contract_kind": self.kind.name,
                "contract_key": key,
                "contract_number": number,
                "actor_id": actor.user_id,
            },
        )
        return contract

    def sign(self, key: str, actor: AuthContext) -> ContractRecordMixin:
        with unit_of_work(self.session):
            contract = self.repo.get(key)
            if not contract:
                raise InvalidTransitionError(f"No {self.kind.name} contract to sign for {key}")
            if ContractStatusEnum(contract.status) == ContractStatusEnum.active:
                raise InvalidTransitionError(f"Contract {contract.contract_number} is already active")
            self._require_open_mission(self.kind.resolve(self.session, key))

            if actor.role == self.kind.counterparty_role:
                if actor.user_id != contract.counterparty_id:
                    raise UnauthorizedError("Only the named creator can sign this contract")
                self._activate(contract, actor)
                return contract

            if self._is_initiator_side(contract, actor):
                logger.debug(
                    "Initiator already signed; nothing to do",
                    extra={"contract_kind": self.kind.name, "contract_key": key, "actor_id": actor.user_id},
                )
                return contract

            raise UnauthorizedError(f"Role {actor.role.value} cannot sign a {self.kind.name} contract")

    def _activate(self, contract: ContractRecordMixin, actor: AuthContext) -> None:
        signed_at = utcnow()
        signatures = signature_variables(
            initiator_signed_at=contract.initiator_signed_at,
            initiator_network_address=contract.initiator_network_address,
            counterparty_signed_at=signed_at,
            counterparty_network_address=actor.network_address,
        )
        signed_text = self.render_preview({**contract.variables, **signatures})
        reference = store_document(
            self.session, kind="contracts", number=f"{contract.contract_number}-signed", text=signed_text
        ) or contract.document_reference

        activated = self.repo.activate(
            contract.id,
            counterparty_signed_at=signed_at,
            counterparty_network_address=actor.network_address,
            signed_document_text=signed_text,
            document_reference=reference,
        )
        if not activated:
            self.session.expire(contract)
            raise InvalidTransitionError(f"Contract {contract.contract_number} is no longer pending signature")
        self.session.refresh(contract)
        logger.info(
            "Contract activated",
            extra={
                "contract_kind": self.kind.name,
                "contract_number": contract.contract_number,
                "actor_id": actor.user_id,
            },
        )

    # Helpers -------------------------------------------------------------

    @staticmethod
    def _validated_amount(amount: Decimal | float | int | str) -> int:
        try:
            cents = formatting.to_cents(amount)
        except (ArithmeticError, ValueError) as exc:
            raise InvalidInputError(f"Invalid amount: {amount!r}") from exc
        if cents <= 0:
            raise InvalidInputError("Amount must be greater than zero")
        return cents

    @staticmethod
    def _require_open_mission(parties: ContractParties) -> None:
        status = MissionStatusEnum(parties.mission.status)
        if status in TERMINAL_STATUSES:
            raise InvalidTransitionError(f"Mission is {status.value}")

    def _require_counterparty(self, parties: ContractParties) -> None:
        if parties.counterparty is None:
            raise InvalidInputError("A creator must be selected before generating a contract")

    def _authorize_initiator(self, parties: ContractParties, actor: AuthContext) -> None:
        if actor.is_admin:
            return
        if actor.role != self.kind.initiator_role:
            raise UnauthorizedError(f"Role {actor.role.value} cannot create a {self.kind.name} contract")
        if parties.initiator is not None and parties.initiator.id != actor.user_id:
            raise UnauthorizedError(f"Only {parties.initiator.full_name} can create this contract")

    def _is_initiator_side(self, contract: ContractRecordMixin, actor: AuthContext) -> bool:
        if actor.is_admin:
            return True
        if actor.role != self.kind.initiator_role:
            return False
        if self.kind.initiator_role == PartyRoleEnum.brand:
            return contract.initiator_id == actor.user_id
        return True

    def _contract_number(self, key: str, generated_at: datetime) -> str:
        millis = int(formatting.ensure_utc(generated_at).timestamp() * 1000)
        return f"{self.kind.number_prefix}-{millis}-{formatting.short_reference(key)}"


def direct_contracts(session: Session) -> ContractLifecycle:
    return ContractLifecycle(session, DIRECT)


def mandate_contracts(session: Session) -> ContractLifecycle:
    return ContractLifecycle(session, MANDATE)
