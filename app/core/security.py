from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.core.workflow import PRIVILEGED_ROLES, ROLE_ADMIN
from app.db.session import get_db
from app.models.user import User


@dataclass(frozen=True)
class Caller:
    """Identity threaded explicitly through every workflow operation."""

    id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_admin_or_hr(self) -> bool:
        return self.role in PRIVILEGED_ROLES


def get_current_user(
    x_user_email: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    """
    DEV AUTH: pass X-User-Email header to simulate logged-in user.
    Example: X-User-Email: admin@local.test
    """
    if not x_user_email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Email header (dev auth)",
        )

    user = db.query(User).filter(User.email == x_user_email).one_or_none()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid or inactive user")
    return user


def get_caller(user: User = Depends(get_current_user)) -> Caller:
    return Caller(id=user.id, role=user.role)
