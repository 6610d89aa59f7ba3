from datetime import datetime, date

from sqlalchemy import String, Date, ForeignKey, CheckConstraint, Integer
from sqlalchemy.orm import Mapped, mapped_column

from app.core.workflow import CYCLE_DRAFT, CYCLE_STATUSES, CYCLE_TYPES, in_clause
from app.db.base import Base, utcnow
from app.db.types import UTCDateTime


class ReviewCycle(Base):
    __tablename__ = "review_cycles"
    __table_args__ = (
        CheckConstraint(
            f"status IN {in_clause(CYCLE_STATUSES)}",
            name="ck_review_cycles_status",
        ),
        CheckConstraint(
            f"cycle_type IN {in_clause(CYCLE_TYPES)}",
            name="ck_review_cycles_type",
        ),
        CheckConstraint("start_date < end_date", name="ck_review_cycles_dates"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    cycle_type: Mapped[str] = mapped_column(String(20), nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=CYCLE_DRAFT)

    created_by: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
