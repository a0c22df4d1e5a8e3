from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

import sqlalchemy as sa
from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ugc_missions.db.base import Base
from ugc_missions.db.enums import (
    AnnotationKindEnum,
    ApplicationStatusEnum,
    ContractStatusEnum,
    DeliverableStatusEnum,
    MissionStatusEnum,
    PartyRoleEnum,
    PipelineEnum,
    ScriptStatusEnum,
    StepTypeEnum,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


def _enum(enum_cls, name: str) -> Enum:
    # Stored as VARCHAR so the schema stays portable between SQLite and PostgreSQL.
    return Enum(enum_cls, name=name, native_enum=False, length=32)


class Party(Base):
    __tablename__ = "parties"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    role: Mapped[PartyRoleEnum] = mapped_column(_enum(PartyRoleEnum, "party_role"), nullable=False)
    full_name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    company_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    uid_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class Mission(Base):
    __tablename__ = "missions"
    __table_args__ = (sa.Index("idx_missions_brand", "brand_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    brand_id: Mapped[str] = mapped_column(ForeignKey("parties.id"), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    product_name: Mapped[str] = mapped_column(Text, nullable=False)
    product_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    format: Mapped[str] = mapped_column(String(16), nullable=False)
    script_type: Mapped[str] = mapped_column(String(32), nullable=False)
    script_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rights_usage: Mapped[str] = mapped_column(String(32), nullable=False)
    pricing_pack: Mapped[str] = mapped_column(String(16), nullable=False, default="1_video")
    budget_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    pipeline: Mapped[PipelineEnum] = mapped_column(
        _enum(PipelineEnum, "mission_pipeline"), nullable=False, default=PipelineEnum.expanded
    )
    status: Mapped[MissionStatusEnum] = mapped_column(
        _enum(MissionStatusEnum, "mission_status"), nullable=False, default=MissionStatusEnum.draft
    )
    script_status: Mapped[ScriptStatusEnum] = mapped_column(
        _enum(ScriptStatusEnum, "script_status"), nullable=False, default=ScriptStatusEnum.draft
    )
    script_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    selected_creator_id: Mapped[Optional[str]] = mapped_column(ForeignKey("parties.id"), nullable=True)
    assigned_operator_id: Mapped[Optional[str]] = mapped_column(ForeignKey("parties.id"), nullable=True)
    video_reference: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    brand_revision_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    creator_amount_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    brand: Mapped[Party] = relationship(foreign_keys=[brand_id], lazy="joined")
    selected_creator: Mapped[Optional[Party]] = relationship(foreign_keys=[selected_creator_id], lazy="joined")


class MissionStep(Base):
    __tablename__ = "mission_steps"
    __table_args__ = (UniqueConstraint("mission_id", "step_type", name="uq_mission_steps_mission_step"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    mission_id: Mapped[str] = mapped_column(ForeignKey("missions.id", ondelete="CASCADE"), nullable=False, index=True)
    step_type: Mapped[StepTypeEnum] = mapped_column(_enum(StepTypeEnum, "step_type"), nullable=False)
    completed_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class MissionAnnotation(Base):
    __tablename__ = "mission_annotations"
    __table_args__ = (sa.Index("idx_mission_annotations_mission_kind", "mission_id", "kind"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    mission_id: Mapped[str] = mapped_column(ForeignKey("missions.id", ondelete="CASCADE"), nullable=False)
    kind: Mapped[AnnotationKindEnum] = mapped_column(_enum(AnnotationKindEnum, "annotation_kind"), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (UniqueConstraint("mission_id", "creator_id", name="uq_applications_mission_creator"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    mission_id: Mapped[str] = mapped_column(ForeignKey("missions.id", ondelete="CASCADE"), nullable=False, index=True)
    creator_id: Mapped[str] = mapped_column(ForeignKey("parties.id"), nullable=False)
    pitch_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    proposed_rate_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status: Mapped[ApplicationStatusEnum] = mapped_column(
        _enum(ApplicationStatusEnum, "application_status"),
        nullable=False,
        default=ApplicationStatusEnum.pending,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    mission: Mapped[Mission] = relationship(lazy="joined")
    creator: Mapped[Party] = relationship(lazy="joined")


class Deliverable(Base):
    """One uploaded cut of the mission video; each resubmission gets the next version."""

    __tablename__ = "deliverables"
    __table_args__ = (UniqueConstraint("mission_id", "version", name="uq_deliverables_mission_version"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    mission_id: Mapped[str] = mapped_column(ForeignKey("missions.id", ondelete="CASCADE"), nullable=False, index=True)
    creator_id: Mapped[str] = mapped_column(ForeignKey("parties.id"), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    video_reference: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[DeliverableStatusEnum] = mapped_column(
        _enum(DeliverableStatusEnum, "deliverable_status"),
        nullable=False,
        default=DeliverableStatusEnum.review,
    )
    revision_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rights_transferred_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class ContractRecordMixin:
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    contract_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    status: Mapped[ContractStatusEnum] = mapped_column(
        _enum(ContractStatusEnum, "contract_status"),
        nullable=False,
        default=ContractStatusEnum.pending_counterparty_signature,
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    variables: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    document_text: Mapped[str] = mapped_column(Text, nullable=False)
    signed_document_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    document_reference: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    initiator_role: Mapped[PartyRoleEnum] = mapped_column(_enum(PartyRoleEnum, "party_role"), nullable=False)
    initiator_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    initiator_signed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    initiator_network_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    counterparty_role: Mapped[PartyRoleEnum] = mapped_column(_enum(PartyRoleEnum, "party_role"), nullable=False)
    counterparty_id: Mapped[str] = mapped_column(String(36), nullable=False)
    counterparty_signed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    counterparty_network_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)


class DirectContract(ContractRecordMixin, Base):
    """Brand <-> creator agreement, one per accepted application."""

    __tablename__ = "direct_contracts"

    application_id: Mapped[str] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, unique=True
    )


class MandateContract(ContractRecordMixin, Base):
    """Operator <-> creator mandate, one per mission."""

    __tablename__ = "mandate_contracts"

    mission_id: Mapped[str] = mapped_column(ForeignKey("missions.id", ondelete="CASCADE"), nullable=False, unique=True)


class Invoice(Base):
    __tablename__ = "invoices"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    mission_id: Mapped[str] = mapped_column(ForeignKey("missions.id", ondelete="CASCADE"), nullable=False, unique=True)
    invoice_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    document_reference: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
