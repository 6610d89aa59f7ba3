from datetime import datetime

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint, CheckConstraint, Integer
from sqlalchemy.orm import Mapped, mapped_column

from app.core.workflow import FORM_PENDING, FORM_STATUSES, REVIEWER_TYPES, in_clause
from app.db.base import Base, utcnow
from app.db.types import KpiScoresType, UTCDateTime


class ReviewForm(Base):
    __tablename__ = "review_forms"
    __table_args__ = (
        UniqueConstraint(
            "cycle_id", "employee_id", "reviewer_id", "reviewer_type",
            name="uq_review_forms_cycle_employee_reviewer_type",
        ),
        CheckConstraint(
            f"status IN {in_clause(FORM_STATUSES)}",
            name="ck_review_forms_status",
        ),
        CheckConstraint(f"reviewer_type IN {in_clause(REVIEWER_TYPES)}", name="ck_review_forms_type"),
        CheckConstraint(
            "overall_rating IS NULL OR (overall_rating BETWEEN 1 AND 5)",
            name="ck_review_forms_rating",
        ),

        # submitted/approved => must have submitted_at
        CheckConstraint(
            "(status NOT IN ('submitted','approved')) OR (submitted_at IS NOT NULL)",
            name="ck_review_forms_ts_submitted",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    cycle_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("review_cycles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    reviewer_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    reviewer_type: Mapped[str] = mapped_column(String(20), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=FORM_PENDING)

    overall_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    goals_achievement: Mapped[str | None] = mapped_column(Text, nullable=True)
    strengths: Mapped[str | None] = mapped_column(Text, nullable=True)
    improvements: Mapped[str | None] = mapped_column(Text, nullable=True)
    additional_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    kpi_scores = mapped_column(KpiScoresType, nullable=True)

    submitted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    # Optimistic locking
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version}
