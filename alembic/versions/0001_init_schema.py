"""Initial mission workflow schema"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_init_schema"
down_revision = None
branch_labels = None
depends_on = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(length=36), primary_key=True)


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def _contract_columns() -> list[sa.Column]:
    return [
        _id(),
        sa.Column("contract_number", sa.String(length=64), nullable=False, unique=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("variables", sa.JSON(), nullable=False),
        sa.Column("document_text", sa.Text(), nullable=False),
        sa.Column("signed_document_text", sa.Text(), nullable=True),
        sa.Column("document_reference", sa.Text(), nullable=True),
        _timestamp("generated_at"),
        sa.Column("initiator_role", sa.String(length=32), nullable=False),
        sa.Column("initiator_id", sa.String(length=36), nullable=True),
        _timestamp("initiator_signed_at"),
        sa.Column("initiator_network_address", sa.String(length=64), nullable=True),
        sa.Column("counterparty_role", sa.String(length=32), nullable=False),
        sa.Column("counterparty_id", sa.String(length=36), nullable=False),
        _timestamp("counterparty_signed_at", nullable=True),
        sa.Column("counterparty_network_address", sa.String(length=64), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "parties",
        _id(),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("company_name", sa.Text(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("uid_number", sa.String(length=32), nullable=True),
        _timestamp("created_at"),
    )

    op.create_table(
        "missions",
        _id(),
        sa.Column("brand_id", sa.String(length=36), sa.ForeignKey("parties.id"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("product_name", sa.Text(), nullable=False),
        sa.Column("product_description", sa.Text(), nullable=True),
        sa.Column("format", sa.String(length=16), nullable=False),
        sa.Column("script_type", sa.String(length=32), nullable=False),
        sa.Column("script_notes", sa.Text(), nullable=True),
        sa.Column("rights_usage", sa.String(length=32), nullable=False),
        sa.Column("pricing_pack", sa.String(length=16), nullable=False),
        sa.Column("budget_cents", sa.Integer(), nullable=False),
        _timestamp("deadline", nullable=True),
        sa.Column("pipeline", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("script_status", sa.String(length=32), nullable=False),
        sa.Column("script_content", sa.Text(), nullable=True),
        sa.Column("selected_creator_id", sa.String(length=36), sa.ForeignKey("parties.id"), nullable=True),
        sa.Column("assigned_operator_id", sa.String(length=36), sa.ForeignKey("parties.id"), nullable=True),
        sa.Column("video_reference", sa.Text(), nullable=True),
        sa.Column("brand_revision_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("creator_amount_cents", sa.Integer(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        _timestamp("completed_at", nullable=True),
        _timestamp("cancelled_at", nullable=True),
    )
    op.create_index("idx_missions_brand", "missions", ["brand_id"])

    op.create_table(
        "mission_steps",
        _id(),
        sa.Column(
            "mission_id",
            sa.String(length=36),
            sa.ForeignKey("missions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("step_type", sa.String(length=32), nullable=False),
        sa.Column("completed_by", sa.String(length=36), nullable=True),
        _timestamp("completed_at"),
        sa.UniqueConstraint("mission_id", "step_type", name="uq_mission_steps_mission_step"),
    )
    op.create_index("ix_mission_steps_mission_id", "mission_steps", ["mission_id"])

    op.create_table(
        "mission_annotations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "mission_id",
            sa.String(length=36),
            sa.ForeignKey("missions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("author_id", sa.String(length=36), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index(
        "idx_mission_annotations_mission_kind", "mission_annotations", ["mission_id", "kind"]
    )

    op.create_table(
        "applications",
        _id(),
        sa.Column(
            "mission_id",
            sa.String(length=36),
            sa.ForeignKey("missions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("creator_id", sa.String(length=36), sa.ForeignKey("parties.id"), nullable=False),
        sa.Column("pitch_message", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        _timestamp("created_at"),
        sa.UniqueConstraint("mission_id", "creator_id", name="uq_applications_mission_creator"),
    )
    op.create_index("ix_applications_mission_id", "applications", ["mission_id"])

    op.create_table(
        "direct_contracts",
        *_contract_columns(),
        sa.Column(
            "application_id",
            sa.String(length=36),
            sa.ForeignKey("applications.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
    )

    op.create_table(
        "mandate_contracts",
        *_contract_columns(),
        sa.Column(
            "mission_id",
            sa.String(length=36),
            sa.ForeignKey("missions.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
    )

    op.create_table(
        "invoices",
        _id(),
        sa.Column(
            "mission_id",
            sa.String(length=36),
            sa.ForeignKey("missions.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("invoice_number", sa.String(length=64), nullable=False, unique=True),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        _timestamp("generated_at"),
        sa.Column("document_reference", sa.Text(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("invoices")
    op.drop_table("mandate_contracts")
    op.drop_table("direct_contracts")
    op.drop_index("ix_applications_mission_id", table_name="applications")
    op.drop_table("applications")
    op.drop_index("idx_mission_annotations_mission_kind", table_name="mission_annotations")
    op.drop_table("mission_annotations")
    op.drop_index("ix_mission_steps_mission_id", table_name="mission_steps")
    op.drop_table("mission_steps")
    op.drop_index("idx_missions_brand", table_name="missions")
    op.drop_table("missions")
    op.drop_table("parties")
