from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

CycleType = Literal["6-month", "1-year"]
CycleStatus = Literal["draft", "active", "locked", "completed"]


class ReviewCycleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    cycle_type: str
    start_date: date
    end_date: date
    status: str | None = None  # initial status, defaults to draft


class ReviewCycleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    cycle_type: str | None = None
    start_date: date | None = None
    end_date: date | None = None


class ReviewCycleOut(BaseModel):
    id: int
    name: str
    cycle_type: str
    start_date: date
    end_date: date
    status: str
    created_by: int
    created_at: datetime
    updated_at: datetime


class CycleSummary(BaseModel):
    total_forms: int = 0
    submitted_forms: int = 0  # submitted + approved
    pending_forms: int = 0  # pending + draft
    average_rating: float | None = None


class ReviewCycleDetailOut(ReviewCycleOut):
    summary: CycleSummary
    forms: list[dict]  # ReviewFormOut rows, kept loose to avoid a schema cycle


class CycleDeleteResult(BaseModel):
    cycle: ReviewCycleOut
    forms_deleted: int
    assignments_deleted: int
