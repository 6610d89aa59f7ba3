from sqlalchemy.orm import Session

from app.core.ratings import RATING_MAX, RATING_MIN, average
from app.core.rbac import assert_role
from app.core.security import Caller
from app.core.workflow import FORM_SUBMITTED, PRIVILEGED_ROLES
from app.models.review_form import ReviewForm
from app.schemas.export import (
    CycleExport,
    ExportCycle,
    ExportEmployee,
    ExportReview,
    ExportStatistics,
)
from app.services import identity
from app.services.cycles import get_cycle_or_404

UNKNOWN = "Unknown"


def export_cycle(db: Session, caller: Caller, cycle_id: int) -> CycleExport:
    """Submitted reviews of a cycle, grouped per employee, with rating statistics."""
    assert_role(caller, *PRIVILEGED_ROLES, message="Admin or HR role required")
    cycle = get_cycle_or_404(db, cycle_id)

    forms = (
        db.query(ReviewForm)
        .filter(ReviewForm.cycle_id == cycle.id, ReviewForm.status == FORM_SUBMITTED)
        .order_by(ReviewForm.id)
        .all()
    )
    people = identity.lookup_users(db, [f.employee_id for f in forms] + [f.reviewer_id for f in forms])

    distribution = {str(r): 0 for r in range(RATING_MIN, RATING_MAX + 1)}
    grouped: dict[int, list[ReviewForm]] = {}
    for f in forms:
        if f.overall_rating is not None and str(f.overall_rating) in distribution:
            distribution[str(f.overall_rating)] += 1
        grouped.setdefault(f.employee_id, []).append(f)

    employees = []
    for employee_id, rows in grouped.items():
        emp = people.get(employee_id)
        reviews = []
        for f in rows:
            reviewer = people.get(f.reviewer_id)
            reviews.append(
                ExportReview(
                    form_id=f.id,
                    reviewer_id=f.reviewer_id,
                    reviewer_name=reviewer.name if reviewer else UNKNOWN,
                    reviewer_type=f.reviewer_type,
                    overall_rating=f.overall_rating,
                    goals_achievement=f.goals_achievement,
                    strengths=f.strengths,
                    improvements=f.improvements,
                    kpi_scores=f.kpi_scores,
                    additional_comments=f.additional_comments,
                    submitted_at=f.submitted_at,
                )
            )
        employees.append(
            ExportEmployee(
                employee_id=employee_id,
                employee_name=emp.name if emp else UNKNOWN,
                employee_email=emp.email if emp else UNKNOWN,
                reviews=reviews,
                average_rating=average(f.overall_rating for f in rows) or 0,
                review_count=len(rows),
            )
        )
    employees.sort(key=lambda e: (e.employee_name, e.employee_id))

    return CycleExport(
        cycle=ExportCycle(
            id=cycle.id,
            name=cycle.name,
            cycle_type=cycle.cycle_type,
            start_date=cycle.start_date,
            end_date=cycle.end_date,
            status=cycle.status,
        ),
        statistics=ExportStatistics(
            total_employees=len(employees),
            total_reviews=len(forms),
            average_rating=average(f.overall_rating for f in forms) or 0,
            rating_distribution=distribution,
        ),
        reviews=employees,
    )
