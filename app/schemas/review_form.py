from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from app.schemas.user import UserInfo

RequestedStatus = Literal["draft", "submitted"]


class KpiScore(BaseModel):
    name: str
    # any JSON value is kept as written; only numbers in [1, 5] count toward the rating
    score: Any = None


class ReviewFormSave(BaseModel):
    """
    Upsert payload. Only the fields actually present in the request are
    merged onto an existing form (see model_fields_set).
    """
    cycle_id: int
    employee_id: int
    reviewer_id: int | None = None  # defaults to the caller
    reviewer_type: Literal["self", "peer", "client", "manager"]
    status: RequestedStatus | None = None

    overall_rating: int | None = None
    goals_achievement: str | None = None
    strengths: str | None = None
    improvements: str | None = None
    additional_comments: str | None = None
    kpi_scores: list[KpiScore] | None = None


# content fields a save may patch
CONTENT_FIELDS = (
    "overall_rating",
    "goals_achievement",
    "strengths",
    "improvements",
    "additional_comments",
    "kpi_scores",
)


class ReviewFormOut(BaseModel):
    id: int
    cycle_id: int
    employee_id: int
    reviewer_id: int
    reviewer_type: str
    status: str
    overall_rating: int | None
    goals_achievement: str | None
    strengths: str | None
    improvements: str | None
    additional_comments: str | None
    kpi_scores: list[KpiScore] | None
    submitted_at: datetime | None
    approved_at: datetime | None
    created_at: datetime
    updated_at: datetime
    version: int


class CycleRef(BaseModel):
    id: int
    name: str
    status: str
    start_date: str
    end_date: str


class ReviewFormDetailOut(ReviewFormOut):
    cycle: CycleRef | None = None
    employee: UserInfo | None = None
    reviewer: UserInfo | None = None


class SaveFormResult(BaseModel):
    form: ReviewFormOut
    created: bool
    # non-fatal problems, e.g. "employee_notification_failed"
    warnings: list[str] = Field(default_factory=list)


class CommentCreate(BaseModel):
    comment: str = Field(max_length=5000)


class CommentOut(BaseModel):
    id: int
    form_id: int
    commenter_id: int
    commenter_role: str
    comment: str
    created_at: datetime
    commenter_name: str | None = None
    commenter_email: str | None = None
