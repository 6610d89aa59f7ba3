from typing import Union

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.security import Caller, get_caller
from app.db.session import get_db
from app.models.review_notification import ReviewNotification
from app.schemas.notification import NotificationCreate, NotificationOut
from app.schemas.pagination import PaginatedResponse
from app.services import notifications as svc

router = APIRouter(prefix="/notifications", tags=["notifications"])


def to_out(n: ReviewNotification) -> NotificationOut:
    return NotificationOut(
        id=n.id,
        user_id=n.user_id,
        notification_type=n.notification_type,
        title=n.title,
        message=n.message,
        related_id=n.related_id,
        is_read=n.is_read,
        created_at=n.created_at,
    )


@router.get("", response_model=Union[list[NotificationOut], PaginatedResponse[NotificationOut]])
def list_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    include_pagination: bool = Query(default=False, description="Include pagination metadata"),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    rows, total = svc.list_notifications(db, caller, unread_only=unread_only, limit=limit, offset=offset)
    items = [to_out(n) for n in rows]
    if include_pagination:
        return PaginatedResponse.build(items, total, limit, offset)
    return items


@router.post("", response_model=NotificationOut, status_code=status.HTTP_201_CREATED)
def send_notification(
    payload: NotificationCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    return to_out(svc.send_notification(db, caller, **payload.model_dump()))


# registered before /{notification_id}/read so "read-all" is never taken for an id
@router.post("/read-all")
def mark_all_read(db: Session = Depends(get_db), caller: Caller = Depends(get_caller)):
    return {"updated": svc.mark_all_read(db, caller)}


@router.post("/{notification_id}/read", response_model=NotificationOut)
def mark_read(notification_id: int, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)):
    return to_out(svc.mark_read(db, caller, notification_id))
