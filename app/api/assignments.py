from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.security import Caller, get_caller
from app.db.session import get_db
from app.models.review_assignment import ReviewerAssignment
from app.schemas.review_assignment import (
    AssignmentOut,
    AssignmentOutExpanded,
    AssignReviewersPayload,
    AssignReviewersResult,
)
from app.services import assignments as svc
from app.services import identity

router = APIRouter(tags=["assignments"])


def to_out(a: ReviewerAssignment) -> AssignmentOut:
    return AssignmentOut(
        id=a.id,
        cycle_id=a.cycle_id,
        employee_id=a.employee_id,
        reviewer_id=a.reviewer_id,
        reviewer_type=a.reviewer_type,
        assigned_by=a.assigned_by,
        status=a.status,
        notified_at=a.notified_at,
        created_at=a.created_at,
    )


@router.post(
    "/cycles/{cycle_id}/assignments",
    response_model=AssignReviewersResult,
    status_code=status.HTTP_201_CREATED,
)
def assign_reviewers(
    cycle_id: int,
    payload: AssignReviewersPayload,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    rows, created_count, forms_created = svc.assign_reviewers(
        db,
        caller,
        cycle_id,
        employee_id=payload.employee_id,
        reviewers=payload.reviewers,
    )
    return AssignReviewersResult(
        assignments=[to_out(a) for a in rows],
        created_count=created_count,
        forms_created=forms_created,
    )


@router.get("/cycles/{cycle_id}/assignments", response_model=list[AssignmentOutExpanded])
def list_assignments(
    cycle_id: int,
    employee_id: int | None = Query(default=None),
    reviewer_id: int | None = Query(default=None),
    status: str | None = Query(default=None, description="pending, completed or overdue"),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    """Assignments of a cycle with employee/reviewer display data."""
    rows = svc.list_assignments(
        db, caller, cycle_id, employee_id=employee_id, reviewer_id=reviewer_id, status=status
    )
    people = identity.lookup_users(db, [a.employee_id for a in rows] + [a.reviewer_id for a in rows])
    return [
        AssignmentOutExpanded(
            **to_out(a).model_dump(),
            employee=people.get(a.employee_id),
            reviewer=people.get(a.reviewer_id),
        )
        for a in rows
    ]


@router.delete("/assignments/{assignment_id}", response_model=AssignmentOut)
def delete_assignment(
    assignment_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    return to_out(svc.delete_assignment(db, caller, assignment_id))
