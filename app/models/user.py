from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.workflow import ROLE_EMPLOYEE, ROLES, in_clause
from app.db.base import Base, utcnow
from app.db.types import UTCDateTime


class User(Base):
    """Identity collaborator row: the engine only reads id, name, email and role."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(f"role IN {in_clause(ROLES)}", name="ck_users_role"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=ROLE_EMPLOYEE)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
