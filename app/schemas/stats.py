from datetime import date, datetime

from pydantic import BaseModel, ConfigDict


class AdminStats(BaseModel):
    """Statistics for admin/hr callers"""
    model_config = ConfigDict(extra="forbid")

    total_cycles: int = 0
    active_cycles: int = 0
    total_forms: int = 0
    submitted_forms: int = 0
    pending_forms: int = 0
    draft_forms: int = 0
    approved_forms: int = 0
    forms_by_status: dict[str, int] = {}  # pending, draft, submitted, approved
    forms_by_type: dict[str, int] = {}  # self, peer, client, manager
    total_assignments: int = 0
    completed_assignments: int = 0
    overdue_assignments: int = 0
    average_rating: float | None = None  # over submitted forms


class UpcomingDeadline(BaseModel):
    id: int
    cycle_id: int
    cycle_name: str | None
    cycle_end_date: date | None
    employee_id: int
    reviewer_type: str
    created_at: datetime


class IndividualStats(BaseModel):
    """Statistics for the current (non-privileged) caller"""
    model_config = ConfigDict(extra="forbid")

    my_pending_reviews: int = 0
    my_completed_reviews: int = 0
    reviews_about_me: int = 0
    my_average_rating: float | None = None
    upcoming_deadlines: list[UpcomingDeadline] = []


class StatsOut(BaseModel):
    role: str
    cycle_id: int | None = None
    stats: AdminStats | IndividualStats
