import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.user import User
from app.schemas.user import UserInfo

logger = logging.getLogger(__name__)


def to_info(u: User) -> UserInfo:
    return UserInfo(id=u.id, name=u.name, email=u.email, role=u.role)


def lookup_user(db: Session, user_id: int | None) -> UserInfo | None:
    """Display data for a user id. Store failures degrade to None."""
    if user_id is None:
        return None
    try:
        u = db.get(User, user_id)
    except SQLAlchemyError:
        logger.warning("identity lookup failed", extra={"user_id": user_id}, exc_info=True)
        return None
    return to_info(u) if u else None


def lookup_users(db: Session, user_ids) -> dict[int, UserInfo]:
    """Batch variant of lookup_user; missing ids are simply absent."""
    ids = {i for i in user_ids if i is not None}
    if not ids:
        return {}
    try:
        rows = db.query(User).filter(User.id.in_(ids)).all()
    except SQLAlchemyError:
        logger.warning("identity batch lookup failed", extra={"user_ids": sorted(ids)}, exc_info=True)
        return {}
    return {u.id: to_info(u) for u in rows}


def users_with_roles(db: Session, roles) -> list[User]:
    return (
        db.query(User)
        .filter(User.role.in_(list(roles)), User.is_active.is_(True))
        .order_by(User.id)
        .all()
    )


def missing_user_ids(db: Session, user_ids) -> list[int]:
    ids = set(user_ids)
    found = {r[0] for r in db.query(User.id).filter(User.id.in_(ids)).all()}
    return sorted(ids - found)
