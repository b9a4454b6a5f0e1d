"""create completion tables

Revision ID: 3b1f7c2a9d10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b1f7c2a9d10"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "course",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("fullname", sa.String(length=254), nullable=False, server_default=""),
        sa.Column(
            "enable_completion", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "completion_start_on_enrol",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
    )
    op.create_table(
        "enrol",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("course.id"), nullable=False),
        sa.Column("enrol", sa.String(length=20), nullable=False, server_default="manual"),
        sa.Column("status", sa.SmallInteger(), nullable=False, server_default="0"),
    )
    op.create_table(
        "user_enrolments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("enrol_id", sa.Integer(), sa.ForeignKey("enrol.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.SmallInteger(), nullable=False, server_default="0"),
        sa.Column("time_start", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("time_end", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("enrol_id", "user_id"),
    )
    op.create_table(
        "course_completion_criteria",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("course.id"), nullable=False),
        sa.Column("criterion_type", sa.SmallInteger(), nullable=False),
        sa.Column("module_instance", sa.Integer(), nullable=True),
        sa.Column("course_instance", sa.Integer(), nullable=True),
        sa.Column("role", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False, server_default=""),
    )
    op.create_table(
        "course_completion_aggr_methd",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("course.id"), nullable=False),
        sa.Column("criterion_type", sa.SmallInteger(), nullable=True),
        sa.Column("method", sa.SmallInteger(), nullable=False, server_default="1"),
        sa.UniqueConstraint("course_id", "criterion_type"),
    )
    op.create_table(
        "course_completion_crit_compl",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("course.id"), nullable=False),
        sa.Column(
            "criteria_id",
            sa.Integer(),
            sa.ForeignKey("course_completion_criteria.id"),
            nullable=False,
        ),
        sa.Column("time_completed", sa.Integer(), nullable=True),
        sa.UniqueConstraint("user_id", "course_id", "criteria_id"),
    )
    op.create_table(
        "course_completions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("course.id"), nullable=False),
        sa.Column("time_enrolled", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("time_started", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("time_completed", sa.Integer(), nullable=True),
        sa.Column("reaggregate", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("user_id", "course_id"),
    )
    op.create_index(
        "ix_course_completions_reaggregate", "course_completions", ["reaggregate"]
    )


def downgrade() -> None:
    op.drop_index("ix_course_completions_reaggregate", table_name="course_completions")
    op.drop_table("course_completions")
    op.drop_table("course_completion_crit_compl")
    op.drop_table("course_completion_aggr_methd")
    op.drop_table("course_completion_criteria")
    op.drop_table("user_enrolments")
    op.drop_table("enrol")
    op.drop_table("course")
