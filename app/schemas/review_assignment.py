from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from app.schemas.user import UserInfo

ReviewerType = Literal["self", "peer", "client", "manager"]


class ReviewerSpec(BaseModel):
    reviewer_id: int
    reviewer_type: ReviewerType


class AssignReviewersPayload(BaseModel):
    employee_id: int
    reviewers: list[ReviewerSpec] = Field(min_length=1)


class AssignmentOut(BaseModel):
    id: int
    cycle_id: int
    employee_id: int
    reviewer_id: int
    reviewer_type: str
    assigned_by: int | None
    status: str
    notified_at: datetime | None
    created_at: datetime


class AssignmentOutExpanded(AssignmentOut):
    """Assignment with employee/reviewer display data (null when the lookup fails)"""
    employee: UserInfo | None = None
    reviewer: UserInfo | None = None


class AssignReviewersResult(BaseModel):
    assignments: list[AssignmentOut]
    created_count: int
    forms_created: int
