from datetime import date, datetime

from pydantic import BaseModel

from app.schemas.review_form import KpiScore


class ExportCycle(BaseModel):
    id: int
    name: str
    cycle_type: str
    start_date: date
    end_date: date
    status: str


class ExportStatistics(BaseModel):
    total_employees: int
    total_reviews: int
    average_rating: float
    rating_distribution: dict[str, int]


class ExportReview(BaseModel):
    form_id: int
    reviewer_id: int
    reviewer_name: str
    reviewer_type: str
    overall_rating: int | None
    goals_achievement: str | None
    strengths: str | None
    improvements: str | None
    kpi_scores: list[KpiScore] | None
    additional_comments: str | None
    submitted_at: datetime | None


class ExportEmployee(BaseModel):
    employee_id: int
    employee_name: str
    employee_email: str
    reviews: list[ExportReview]
    average_rating: float
    review_count: int


class CycleExport(BaseModel):
    cycle: ExportCycle
    statistics: ExportStatistics
    reviews: list[ExportEmployee]
