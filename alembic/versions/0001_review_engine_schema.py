"""review engine schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TS = sa.DateTime(timezone=True)
REVIEWER_TYPES = "('self','peer','client','manager')"


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.CheckConstraint(
            "role IN ('admin','hr','manager','employee','intern')", name="ck_users_role"
        ),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "review_cycles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("cycle_type", sa.String(20), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.CheckConstraint(
            "status IN ('draft','active','locked','completed')", name="ck_review_cycles_status"
        ),
        sa.CheckConstraint("cycle_type IN ('6-month','1-year')", name="ck_review_cycles_type"),
        sa.CheckConstraint("start_date < end_date", name="ck_review_cycles_dates"),
    )

    op.create_table(
        "reviewer_assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("cycle_id", sa.Integer(), sa.ForeignKey("review_cycles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("reviewer_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("reviewer_type", sa.String(20), nullable=False),
        sa.Column("assigned_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("notified_at", TS, nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.UniqueConstraint(
            "cycle_id", "employee_id", "reviewer_id", "reviewer_type",
            name="uq_assignment_cycle_employee_reviewer_type",
        ),
        sa.CheckConstraint(
            "status IN ('pending','completed','overdue')", name="ck_reviewer_assignments_status"
        ),
        sa.CheckConstraint(f"reviewer_type IN {REVIEWER_TYPES}", name="ck_reviewer_assignments_type"),
    )
    op.create_index("ix_reviewer_assignments_cycle_id", "reviewer_assignments", ["cycle_id"])

    op.create_table(
        "review_forms",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("cycle_id", sa.Integer(), sa.ForeignKey("review_cycles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("reviewer_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("reviewer_type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("overall_rating", sa.Integer(), nullable=True),
        sa.Column("goals_achievement", sa.Text(), nullable=True),
        sa.Column("strengths", sa.Text(), nullable=True),
        sa.Column("improvements", sa.Text(), nullable=True),
        sa.Column("additional_comments", sa.Text(), nullable=True),
        sa.Column("kpi_scores", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=True),
        sa.Column("submitted_at", TS, nullable=True),
        sa.Column("approved_at", TS, nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.UniqueConstraint(
            "cycle_id", "employee_id", "reviewer_id", "reviewer_type",
            name="uq_review_forms_cycle_employee_reviewer_type",
        ),
        sa.CheckConstraint(
            "status IN ('pending','draft','submitted','approved')", name="ck_review_forms_status"
        ),
        sa.CheckConstraint(f"reviewer_type IN {REVIEWER_TYPES}", name="ck_review_forms_type"),
        sa.CheckConstraint(
            "overall_rating IS NULL OR (overall_rating BETWEEN 1 AND 5)", name="ck_review_forms_rating"
        ),
        sa.CheckConstraint(
            "(status NOT IN ('submitted','approved')) OR (submitted_at IS NOT NULL)",
            name="ck_review_forms_ts_submitted",
        ),
    )
    op.create_index("ix_review_forms_cycle_id", "review_forms", ["cycle_id"])
    op.create_index("ix_review_forms_employee_id", "review_forms", ["employee_id"])
    op.create_index("ix_review_forms_reviewer_id", "review_forms", ["reviewer_id"])

    op.create_table(
        "review_notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("notification_type", sa.String(30), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("related_id", sa.Integer(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.CheckConstraint(
            "notification_type IN ('review_submitted','draft_saved','review_requested','cycle_completed','reminder')",
            name="ck_review_notifications_type",
        ),
    )
    op.create_index("ix_review_notifications_user_id", "review_notifications", ["user_id"])
    op.create_index("ix_review_notifications_is_read", "review_notifications", ["is_read"])

    op.create_table(
        "review_comments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("form_id", sa.Integer(), sa.ForeignKey("review_forms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("commenter_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("commenter_role", sa.String(20), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("ix_review_comments_form_id", "review_comments", ["form_id"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("event_metadata", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=True),
        sa.Column("created_at", TS, nullable=False),
    )


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_index("ix_review_comments_form_id", table_name="review_comments")
    op.drop_table("review_comments")
    op.drop_index("ix_review_notifications_is_read", table_name="review_notifications")
    op.drop_index("ix_review_notifications_user_id", table_name="review_notifications")
    op.drop_table("review_notifications")
    op.drop_index("ix_review_forms_reviewer_id", table_name="review_forms")
    op.drop_index("ix_review_forms_employee_id", table_name="review_forms")
    op.drop_index("ix_review_forms_cycle_id", table_name="review_forms")
    op.drop_table("review_forms")
    op.drop_index("ix_reviewer_assignments_cycle_id", table_name="reviewer_assignments")
    op.drop_table("reviewer_assignments")
    op.drop_table("review_cycles")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
