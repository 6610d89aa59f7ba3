from datetime import datetime

from sqlalchemy import ForeignKey, String, UniqueConstraint, CheckConstraint, Integer
from sqlalchemy.orm import Mapped, mapped_column

from app.core.workflow import ASSIGNMENT_PENDING, ASSIGNMENT_STATUSES, REVIEWER_TYPES, in_clause
from app.db.base import Base, utcnow
from app.db.types import UTCDateTime


class ReviewerAssignment(Base):
    __tablename__ = "reviewer_assignments"
    __table_args__ = (
        UniqueConstraint(
            "cycle_id", "employee_id", "reviewer_id", "reviewer_type",
            name="uq_assignment_cycle_employee_reviewer_type",
        ),
        CheckConstraint(f"status IN {in_clause(ASSIGNMENT_STATUSES)}", name="ck_reviewer_assignments_status"),
        CheckConstraint(f"reviewer_type IN {in_clause(REVIEWER_TYPES)}", name="ck_reviewer_assignments_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    cycle_id: Mapped[int] = mapped_column(Integer, ForeignKey("review_cycles.id", ondelete="CASCADE"), nullable=False, index=True)

    employee_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    reviewer_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    reviewer_type: Mapped[str] = mapped_column(String(20), nullable=False)

    assigned_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ASSIGNMENT_PENDING)
    notified_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
