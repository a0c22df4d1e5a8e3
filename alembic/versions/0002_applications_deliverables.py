"""Creator applications with proposed rates and versioned deliverables"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002_applications_deliverables"
down_revision = "0001_init_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("applications", sa.Column("proposed_rate_cents", sa.Integer(), nullable=True))
    op.add_column("applications", sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True))

    op.create_table(
        "deliverables",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "mission_id",
            sa.String(length=36),
            sa.ForeignKey("missions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("creator_id", sa.String(length=36), sa.ForeignKey("parties.id"), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("video_reference", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("revision_notes", sa.Text(), nullable=True),
        sa.Column("reviewed_by", sa.String(length=36), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rights_transferred_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("mission_id", "version", name="uq_deliverables_mission_version"),
    )
    op.create_index("ix_deliverables_mission_id", "deliverables", ["mission_id"])


def downgrade() -> None:
    op.drop_index("ix_deliverables_mission_id", table_name="deliverables")
    op.drop_table("deliverables")
    with op.batch_alter_table("applications") as batch_op:
        batch_op.drop_column("updated_at")
        batch_op.drop_column("proposed_rate_cents")
