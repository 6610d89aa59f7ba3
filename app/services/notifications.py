"""
Notification emitter.

notify() appends one ReviewNotification inside its own SAVEPOINT so a failed
insert never poisons the caller's transaction. Callers on mandatory paths use
notify() and handle NotificationError; everything else goes through
notify_best_effort().
"""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.audit import log_event
from app.core.errors import AccessDeniedError, NotFoundError, NotificationError, ValidationError
from app.core.rbac import assert_role
from app.core.security import Caller
from app.core.workflow import NOTIFICATION_TYPES, ROLE_ADMIN
from app.models.review_notification import ReviewNotification
from app.models.user import User

logger = logging.getLogger(__name__)


def notify(
    db: Session,
    *,
    user_id: int,
    notification_type: str,
    title: str,
    message: str,
    related_id: int | None = None,
) -> ReviewNotification:
    try:
        with db.begin_nested():
            n = ReviewNotification(
                user_id=user_id,
                notification_type=notification_type,
                title=title,
                message=message,
                related_id=related_id,
                is_read=False,
            )
            db.add(n)
            db.flush()
    except SQLAlchemyError as exc:
        raise NotificationError(
            "Failed to write notification",
            {"user_id": user_id, "notification_type": notification_type},
        ) from exc
    return n


def notify_best_effort(db: Session, **kwargs) -> ReviewNotification | None:
    try:
        return notify(db, **kwargs)
    except NotificationError:
        logger.warning(
            "notification dropped",
            extra={"user_id": kwargs.get("user_id"), "notification_type": kwargs.get("notification_type")},
            exc_info=True,
        )
        return None


def list_notifications(
    db: Session,
    caller: Caller,
    *,
    unread_only: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[ReviewNotification], int]:
    q = db.query(ReviewNotification).filter(ReviewNotification.user_id == caller.id)
    if unread_only:
        q = q.filter(ReviewNotification.is_read.is_(False))
    total = q.count()
    rows = (
        q.order_by(ReviewNotification.created_at.desc(), ReviewNotification.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return rows, total


def mark_read(db: Session, caller: Caller, notification_id: int) -> ReviewNotification:
    n = db.get(ReviewNotification, notification_id)
    if not n:
        raise NotFoundError("Notification not found", {"notification_id": notification_id})
    if n.user_id != caller.id:
        raise AccessDeniedError("You can only mark your own notifications as read")
    if not n.is_read:
        n.is_read = True
        db.commit()
    return n


def mark_all_read(db: Session, caller: Caller) -> int:
    updated = (
        db.query(ReviewNotification)
        .filter(ReviewNotification.user_id == caller.id, ReviewNotification.is_read.is_(False))
        .update({ReviewNotification.is_read: True}, synchronize_session="fetch")
    )
    db.commit()
    return updated


def send_notification(
    db: Session,
    caller: Caller,
    *,
    user_id: int,
    notification_type: str,
    title: str,
    message: str,
    related_id: int | None = None,
) -> ReviewNotification:
    """Manual notification (e.g. reminders) sent by an admin."""
    assert_role(caller, ROLE_ADMIN, message="Only admins can send notifications")

    if notification_type not in NOTIFICATION_TYPES:
        raise ValidationError(
            "Invalid notification type",
            {"notification_type": notification_type, "allowed": list(NOTIFICATION_TYPES)},
        )
    title = (title or "").strip()
    message = (message or "").strip()
    if not title:
        raise ValidationError("Title is required", {"field": "title"})
    if not message:
        raise ValidationError("Message is required", {"field": "message"})
    if not db.get(User, user_id):
        raise NotFoundError("User not found", {"user_id": user_id})

    n = notify(
        db,
        user_id=user_id,
        notification_type=notification_type,
        title=title,
        message=message,
        related_id=related_id,
    )
    log_event(
        db=db,
        actor=caller,
        action="NOTIFICATION_SENT",
        entity_type="review_notification",
        entity_id=n.id,
        metadata={"user_id": user_id, "notification_type": notification_type},
    )
    db.commit()
    return n
