"""create subject catalog and timetable session tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    class_type = sa.Enum("lecture", "tutorial", "lab", "practical", name="class_type")

    op.create_table(
        "subjects",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("credits", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("semester", sa.String(length=50), nullable=True),
        sa.Column("department", sa.String(length=200), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_subjects_code", "subjects", ["code"], unique=True)

    op.create_table(
        "class_schedules",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("subject_id", sa.String(length=36), sa.ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", class_type, nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.String(length=8), nullable=False),
        sa.Column("end_time", sa.String(length=8), nullable=False),
        sa.Column("venue", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("instructor", sa.String(length=200), nullable=True),
        sa.Column("max_capacity", sa.Integer(), nullable=True, server_default="30"),
        sa.Column("created_order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_class_schedules_subject_id", "class_schedules", ["subject_id"])
    op.create_index("ix_class_schedules_day_of_week", "class_schedules", ["day_of_week"])

    op.create_table(
        "tutorial_groups",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("subject_id", sa.String(length=36), sa.ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("group_name", sa.String(length=100), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.String(length=8), nullable=False),
        sa.Column("end_time", sa.String(length=8), nullable=False),
        sa.Column("venue", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("instructor", sa.String(length=200), nullable=True),
        sa.Column("max_capacity", sa.Integer(), nullable=True, server_default="25"),
        sa.Column("created_order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_tutorial_groups_subject_id", "tutorial_groups", ["subject_id"])
    op.create_index("ix_tutorial_groups_day_of_week", "tutorial_groups", ["day_of_week"])

    op.create_table(
        "timetable_sessions",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("selections", sa.JSON(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_timetable_sessions_expires_at", "timetable_sessions", ["expires_at"])


def downgrade() -> None:
    op.drop_index("ix_timetable_sessions_expires_at", table_name="timetable_sessions")
    op.drop_table("timetable_sessions")
    op.drop_index("ix_tutorial_groups_day_of_week", table_name="tutorial_groups")
    op.drop_index("ix_tutorial_groups_subject_id", table_name="tutorial_groups")
    op.drop_table("tutorial_groups")
    op.drop_index("ix_class_schedules_day_of_week", table_name="class_schedules")
    op.drop_index("ix_class_schedules_subject_id", table_name="class_schedules")
    op.drop_table("class_schedules")
    op.drop_index("ix_subjects_code", table_name="subjects")
    op.drop_table("subjects")
    sa.Enum(name="class_type").drop(op.get_bind(), checkfirst=True)
