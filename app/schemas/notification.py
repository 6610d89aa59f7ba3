from datetime import datetime

from pydantic import BaseModel, Field


class NotificationOut(BaseModel):
    id: int
    user_id: int
    notification_type: str
    title: str
    message: str
    related_id: int | None
    is_read: bool
    created_at: datetime


class NotificationCreate(BaseModel):
    user_id: int
    notification_type: str
    title: str = Field(max_length=255)
    message: str
    related_id: int | None = None
