"""
Statistics aggregator.

Every view loads its rows with a single query and counts in Python, so all
derived numbers come from the same snapshot and always agree with each other.
"""
from collections import Counter

from sqlalchemy.orm import Session

from app.core.ratings import average
from app.core.security import Caller
from app.core.workflow import (
    ASSIGNMENT_COMPLETED,
    ASSIGNMENT_OVERDUE,
    ASSIGNMENT_PENDING,
    CYCLE_ACTIVE,
    FORM_APPROVED,
    FORM_DRAFT,
    FORM_PENDING,
    FORM_SUBMITTED,
)
from app.models.review_assignment import ReviewerAssignment
from app.models.review_cycle import ReviewCycle
from app.models.review_form import ReviewForm
from app.schemas.stats import AdminStats, IndividualStats, StatsOut, UpcomingDeadline


def admin_stats(db: Session, cycle_id: int | None = None) -> AdminStats:
    cycle_statuses = [r[0] for r in db.query(ReviewCycle.status).all()]

    fq = db.query(ReviewForm.status, ReviewForm.reviewer_type, ReviewForm.overall_rating)
    aq = db.query(ReviewerAssignment.status)
    if cycle_id is not None:
        fq = fq.filter(ReviewForm.cycle_id == cycle_id)
        aq = aq.filter(ReviewerAssignment.cycle_id == cycle_id)
    forms = fq.all()
    assignment_statuses = Counter(r[0] for r in aq.all())

    by_status = Counter(f.status for f in forms)
    by_type = Counter(f.reviewer_type for f in forms)
    submitted_ratings = [f.overall_rating for f in forms if f.status == FORM_SUBMITTED]

    return AdminStats(
        total_cycles=len(cycle_statuses),
        active_cycles=sum(1 for s in cycle_statuses if s == CYCLE_ACTIVE),
        total_forms=len(forms),
        submitted_forms=by_status[FORM_SUBMITTED],
        pending_forms=by_status[FORM_PENDING],
        draft_forms=by_status[FORM_DRAFT],
        approved_forms=by_status[FORM_APPROVED],
        forms_by_status=dict(by_status),
        forms_by_type=dict(by_type),
        total_assignments=sum(assignment_statuses.values()),
        completed_assignments=assignment_statuses[ASSIGNMENT_COMPLETED],
        overdue_assignments=assignment_statuses[ASSIGNMENT_OVERDUE],
        # averaged over every submitted form; a submitted form always carries a rating
        average_rating=average(submitted_ratings) if by_status[FORM_SUBMITTED] else None,
    )


def individual_stats(db: Session, user_id: int, cycle_id: int | None = None) -> IndividualStats:
    fq = db.query(
        ReviewForm.status, ReviewForm.reviewer_id, ReviewForm.employee_id, ReviewForm.overall_rating
    ).filter((ReviewForm.reviewer_id == user_id) | (ReviewForm.employee_id == user_id))
    if cycle_id is not None:
        fq = fq.filter(ReviewForm.cycle_id == cycle_id)
    forms = fq.all()

    written = [f for f in forms if f.reviewer_id == user_id]
    about_me = [f for f in forms if f.employee_id == user_id and f.status == FORM_SUBMITTED]

    aq = (
        db.query(ReviewerAssignment, ReviewCycle.name, ReviewCycle.end_date)
        .outerjoin(ReviewCycle, ReviewCycle.id == ReviewerAssignment.cycle_id)
        .filter(
            ReviewerAssignment.reviewer_id == user_id,
            ReviewerAssignment.status == ASSIGNMENT_PENDING,
        )
    )
    if cycle_id is not None:
        aq = aq.filter(ReviewerAssignment.cycle_id == cycle_id)
    deadlines = [
        UpcomingDeadline(
            id=a.id,
            cycle_id=a.cycle_id,
            cycle_name=name,
            cycle_end_date=end_date,
            employee_id=a.employee_id,
            reviewer_type=a.reviewer_type,
            created_at=a.created_at,
        )
        for a, name, end_date in aq.order_by(ReviewCycle.end_date, ReviewerAssignment.id).all()
    ]

    return IndividualStats(
        my_pending_reviews=sum(1 for f in written if f.status in (FORM_PENDING, FORM_DRAFT)),
        my_completed_reviews=sum(1 for f in written if f.status == FORM_SUBMITTED),
        reviews_about_me=len(about_me),
        my_average_rating=average(f.overall_rating for f in about_me),
        upcoming_deadlines=deadlines,
    )


def get_stats(db: Session, caller: Caller, cycle_id: int | None = None) -> StatsOut:
    if caller.is_admin_or_hr:
        stats = admin_stats(db, cycle_id)
    else:
        stats = individual_stats(db, caller.id, cycle_id)
    return StatsOut(role=caller.role, cycle_id=cycle_id, stats=stats)
