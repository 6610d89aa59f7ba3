"""
Assignment manager: binds a reviewer to an employee for one reviewer type
within a cycle. The (cycle, employee, reviewer, type) tuple is unique, and the
review form for the same tuple is created alongside every new assignment.
"""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.audit import log_event
from app.core.errors import (
    AssignmentNotFoundError,
    ConflictError,
    CycleNotActiveError,
    NotFoundError,
    ValidationError,
)
from app.core.rbac import assert_role
from app.core.security import Caller
from app.core.workflow import (
    ASSIGNMENT_COMPLETED,
    CYCLE_WRITABLE_STATUSES,
    FORM_APPROVED,
    FORM_PENDING,
    FORM_SUBMITTED,
    NOTIFY_REVIEW_REQUESTED,
    PRIVILEGED_ROLES,
    REVIEWER_TYPES,
    ROLE_ADMIN,
)
from app.db.base import utcnow
from app.models.review_assignment import ReviewerAssignment
from app.models.review_comment import ReviewComment
from app.models.review_form import ReviewForm
from app.services import identity, notifications
from app.services.cycles import get_cycle_or_404

logger = logging.getLogger(__name__)


def _tuple_filter(model, cycle_id: int, employee_id: int, reviewer_id: int, reviewer_type: str):
    return (
        model.cycle_id == cycle_id,
        model.employee_id == employee_id,
        model.reviewer_id == reviewer_id,
        model.reviewer_type == reviewer_type,
    )


def find_assignment(
    db: Session, cycle_id: int, employee_id: int, reviewer_id: int, reviewer_type: str
) -> ReviewerAssignment:
    a = (
        db.query(ReviewerAssignment)
        .filter(*_tuple_filter(ReviewerAssignment, cycle_id, employee_id, reviewer_id, reviewer_type))
        .one_or_none()
    )
    if not a:
        raise AssignmentNotFoundError(
            "Reviewer assignment not found",
            {
                "cycle_id": cycle_id,
                "employee_id": employee_id,
                "reviewer_id": reviewer_id,
                "reviewer_type": reviewer_type,
            },
        )
    return a


def mark_completed(
    db: Session, cycle_id: int, employee_id: int, reviewer_id: int, reviewer_type: str
) -> ReviewerAssignment:
    """
    Flip the matching assignment to completed. Runs inside the form engine's
    transaction; no commit here.
    """
    a = find_assignment(db, cycle_id, employee_id, reviewer_id, reviewer_type)
    if a.status != ASSIGNMENT_COMPLETED:
        a.status = ASSIGNMENT_COMPLETED
        db.flush()
    return a


def _dedupe(reviewers) -> list[tuple[int, str]]:
    seen: list[tuple[int, str]] = []
    for r in reviewers:
        key = (r.reviewer_id, r.reviewer_type)
        if key not in seen:
            seen.append(key)
    return seen


def assign_reviewers(
    db: Session,
    caller: Caller,
    cycle_id: int,
    *,
    employee_id: int,
    reviewers,
) -> tuple[list[ReviewerAssignment], int, int]:
    """
    Upsert one assignment per (reviewer_id, reviewer_type) entry.

    Returns (assignments, created_count, forms_created); the list holds both
    newly created and already existing rows, in request order.
    """
    assert_role(caller, ROLE_ADMIN, message="Only admins can assign reviewers")

    entries = _dedupe(reviewers)
    if not entries:
        raise ValidationError("At least one reviewer is required", {"field": "reviewers"})
    for _, reviewer_type in entries:
        if reviewer_type not in REVIEWER_TYPES:
            raise ValidationError(
                "Invalid reviewer type",
                {"reviewer_type": reviewer_type, "allowed": list(REVIEWER_TYPES)},
            )

    cycle = get_cycle_or_404(db, cycle_id)
    if cycle.status not in CYCLE_WRITABLE_STATUSES:
        raise CycleNotActiveError(cycle.id, cycle.status)

    missing = identity.missing_user_ids(db, [employee_id] + [rid for rid, _ in entries])
    if missing:
        raise NotFoundError("User not found", {"missing_user_ids": missing})

    result: list[ReviewerAssignment] = []
    new_rows: list[ReviewerAssignment] = []
    forms_created = 0

    for reviewer_id, reviewer_type in entries:
        key = _tuple_filter(ReviewerAssignment, cycle.id, employee_id, reviewer_id, reviewer_type)
        existing = db.query(ReviewerAssignment).filter(*key).one_or_none()
        if existing:
            result.append(existing)
            continue

        # SAVEPOINT so a concurrent insert of the same tuple doesn't poison the whole txn.
        try:
            with db.begin_nested():
                a = ReviewerAssignment(
                    cycle_id=cycle.id,
                    employee_id=employee_id,
                    reviewer_id=reviewer_id,
                    reviewer_type=reviewer_type,
                    assigned_by=caller.id,
                )
                db.add(a)
                db.flush()
        except IntegrityError:
            result.append(db.query(ReviewerAssignment).filter(*key).one())
            continue

        form_key = _tuple_filter(ReviewForm, cycle.id, employee_id, reviewer_id, reviewer_type)
        if not db.query(ReviewForm.id).filter(*form_key).first():
            try:
                with db.begin_nested():
                    db.add(
                        ReviewForm(
                            cycle_id=cycle.id,
                            employee_id=employee_id,
                            reviewer_id=reviewer_id,
                            reviewer_type=reviewer_type,
                            status=FORM_PENDING,
                        )
                    )
                    db.flush()
                forms_created += 1
            except IntegrityError:
                pass  # a writer already created it

        log_event(
            db=db,
            actor=caller,
            action="ASSIGNMENT_CREATED",
            entity_type="reviewer_assignment",
            entity_id=a.id,
            metadata={
                "cycle_id": cycle.id,
                "employee_id": employee_id,
                "reviewer_id": reviewer_id,
                "reviewer_type": reviewer_type,
            },
        )
        result.append(a)
        new_rows.append(a)

    db.commit()

    if new_rows:
        employee = identity.lookup_user(db, employee_id)
        employee_name = employee.name if employee else "an employee"
        for a in new_rows:
            n = notifications.notify_best_effort(
                db,
                user_id=a.reviewer_id,
                notification_type=NOTIFY_REVIEW_REQUESTED,
                title="Review Requested",
                message=f'You have been assigned to complete a {a.reviewer_type} review for {employee_name} in "{cycle.name}"',
                related_id=a.id,
            )
            if n is not None:
                a.notified_at = utcnow()
        db.commit()

    logger.info(
        "reviewers assigned",
        extra={"cycle_id": cycle.id, "employee_id": employee_id, "created_count": len(new_rows)},
    )
    return result, len(new_rows), forms_created


def list_assignments(
    db: Session,
    caller: Caller,
    cycle_id: int,
    *,
    employee_id: int | None = None,
    reviewer_id: int | None = None,
    status: str | None = None,
) -> list[ReviewerAssignment]:
    assert_role(caller, *PRIVILEGED_ROLES, message="Admin or HR role required")
    get_cycle_or_404(db, cycle_id)

    q = db.query(ReviewerAssignment).filter(ReviewerAssignment.cycle_id == cycle_id)
    if employee_id is not None:
        q = q.filter(ReviewerAssignment.employee_id == employee_id)
    if reviewer_id is not None:
        q = q.filter(ReviewerAssignment.reviewer_id == reviewer_id)
    if status:
        q = q.filter(ReviewerAssignment.status == status)
    return q.order_by(ReviewerAssignment.created_at.desc(), ReviewerAssignment.id.desc()).all()


def delete_assignment(db: Session, caller: Caller, assignment_id: int) -> ReviewerAssignment:
    """Removes the assignment and its unsubmitted form. Submitted work blocks deletion."""
    assert_role(caller, ROLE_ADMIN, message="Only admins can delete assignments")

    a = db.get(ReviewerAssignment, assignment_id)
    if not a:
        raise AssignmentNotFoundError(details={"assignment_id": assignment_id})

    form = (
        db.query(ReviewForm)
        .filter(*_tuple_filter(ReviewForm, a.cycle_id, a.employee_id, a.reviewer_id, a.reviewer_type))
        .one_or_none()
    )
    if form and form.status in (FORM_SUBMITTED, FORM_APPROVED):
        raise ConflictError(
            "Cannot delete assignment with a submitted review",
            {"assignment_id": a.id, "form_id": form.id, "form_status": form.status},
        )

    if form:
        db.query(ReviewComment).filter(ReviewComment.form_id == form.id).delete(synchronize_session=False)
        db.delete(form)
    db.delete(a)
    log_event(
        db=db,
        actor=caller,
        action="ASSIGNMENT_DELETED",
        entity_type="reviewer_assignment",
        entity_id=assignment_id,
        metadata={
            "cycle_id": a.cycle_id,
            "employee_id": a.employee_id,
            "reviewer_id": a.reviewer_id,
            "reviewer_type": a.reviewer_type,
            "form_deleted": form is not None,
        },
    )
    db.commit()
    return a
