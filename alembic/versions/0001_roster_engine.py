"""shift catalog, staff and roster tables

Revision ID: 0001_roster_engine
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_roster_engine"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "shift_definitions",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("duration_hours", sa.Float(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("name"),
    )
    op.create_table(
        "tasks",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=120), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
    )
    op.create_table(
        "staff",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("role", sa.String(length=120), nullable=True),
        sa.Column("experience_level", sa.String(length=20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("default_shift_preference", sa.String(length=120), nullable=True),
        sa.Column("week_off_days", sa.JSON(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.CheckConstraint("experience_level IN ('experienced', 'fresher')", name="ck_staff_experience_level"),
    )
    op.create_table(
        "rosters",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("store_id", sa.String(length=64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("shift_id", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("coverage", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["shift_id"], ["shift_definitions.id"]),
        sa.UniqueConstraint("store_id", "date", "shift_id", name="uq_rosters_store_date_shift"),
        sa.CheckConstraint("status IN ('draft', 'published')", name="ck_rosters_status"),
    )
    op.create_index("ix_rosters_store_id", "rosters", ["store_id"], unique=False)
    op.create_index("ix_rosters_date", "rosters", ["date"], unique=False)
    op.create_index("ix_rosters_shift_id", "rosters", ["shift_id"], unique=False)
    op.create_table(
        "roster_slots",
        sa.Column("id", sa.String(length=96), primary_key=True),
        sa.Column("roster_id", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("shift_id", sa.String(length=64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("assigned_tasks", sa.JSON(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["roster_id"], ["rosters.id"], ondelete="CASCADE"),
        sa.CheckConstraint("status IN ('draft', 'published')", name="ck_roster_slots_status"),
    )
    op.create_index("ix_roster_slots_roster_id", "roster_slots", ["roster_id"], unique=False)
    op.create_index("ix_roster_slots_user_id", "roster_slots", ["user_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_roster_slots_user_id", table_name="roster_slots")
    op.drop_index("ix_roster_slots_roster_id", table_name="roster_slots")
    op.drop_table("roster_slots")
    op.drop_index("ix_rosters_shift_id", table_name="rosters")
    op.drop_index("ix_rosters_date", table_name="rosters")
    op.drop_index("ix_rosters_store_id", table_name="rosters")
    op.drop_table("rosters")
    op.drop_table("staff")
    op.drop_table("tasks")
    op.drop_table("shift_definitions")
