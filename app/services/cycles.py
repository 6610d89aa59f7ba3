"""
Cycle manager: review cycle lifecycle.

    draft -> active -> locked -> completed
               ^---------'  (reopen)

Forms can only be written, and reviewers assigned, while a cycle is draft or
active.
"""
import logging
from datetime import date

from sqlalchemy.orm import Session

from app.core.audit import log_event
from app.core.errors import ConflictError, CycleNotFoundError, InvalidStateError, ValidationError
from app.core.ratings import average
from app.core.rbac import assert_role
from app.core.security import Caller
from app.core.workflow import (
    CYCLE_ACTIVE,
    CYCLE_COMPLETED,
    CYCLE_DRAFT,
    CYCLE_LOCKED,
    CYCLE_STATUSES,
    CYCLE_TYPES,
    FORM_APPROVED,
    FORM_DRAFT,
    FORM_PENDING,
    FORM_SUBMITTED,
    NOTIFY_CYCLE_COMPLETED,
    PRIVILEGED_ROLES,
    ROLE_ADMIN,
)
from app.models.review_assignment import ReviewerAssignment
from app.models.review_comment import ReviewComment
from app.models.review_cycle import ReviewCycle
from app.models.review_form import ReviewForm
from app.schemas.review_cycle import CycleSummary
from app.services import notifications

logger = logging.getLogger(__name__)


def get_cycle_or_404(db: Session, cycle_id: int) -> ReviewCycle:
    c = db.get(ReviewCycle, cycle_id)
    if not c:
        raise CycleNotFoundError(cycle_id)
    return c


def _validate_fields(name: str, cycle_type: str, start_date: date, end_date: date):
    if not name:
        raise ValidationError("Name is required", {"field": "name"})
    if cycle_type not in CYCLE_TYPES:
        raise ValidationError(
            "Invalid cycle type",
            {"cycle_type": cycle_type, "allowed": list(CYCLE_TYPES)},
        )
    if start_date >= end_date:
        raise ValidationError(
            "start_date must be before end_date",
            {"start_date": str(start_date), "end_date": str(end_date)},
        )


def create_cycle(
    db: Session,
    caller: Caller,
    *,
    name: str,
    cycle_type: str,
    start_date: date,
    end_date: date,
    initial_status: str | None = None,
) -> ReviewCycle:
    assert_role(caller, ROLE_ADMIN, message="Only admins can create review cycles")

    name = (name or "").strip()
    _validate_fields(name, cycle_type, start_date, end_date)
    status = initial_status or CYCLE_DRAFT
    if status not in CYCLE_STATUSES:
        raise ValidationError("Invalid status", {"status": status, "allowed": list(CYCLE_STATUSES)})

    c = ReviewCycle(
        name=name,
        cycle_type=cycle_type,
        start_date=start_date,
        end_date=end_date,
        status=status,
        created_by=caller.id,
    )
    db.add(c)
    db.flush()  # ensures c.id exists for audit

    log_event(
        db=db,
        actor=caller,
        action="CYCLE_CREATED",
        entity_type="review_cycle",
        entity_id=c.id,
        metadata={
            "name": name,
            "cycle_type": cycle_type,
            "start_date": str(start_date),
            "end_date": str(end_date),
            "status": status,
        },
    )
    db.commit()
    logger.info("review cycle created", extra={"cycle_id": c.id, "status": status})
    return c


def list_cycles(
    db: Session,
    caller: Caller,
    *,
    status: str | None = None,
    cycle_type: str | None = None,
) -> list[ReviewCycle]:
    assert_role(caller, *PRIVILEGED_ROLES, message="Admin or HR role required")
    q = db.query(ReviewCycle)
    if status:
        q = q.filter(ReviewCycle.status == status)
    if cycle_type:
        q = q.filter(ReviewCycle.cycle_type == cycle_type)
    return q.order_by(ReviewCycle.created_at.desc(), ReviewCycle.id.desc()).all()


def summarize_forms(forms: list[ReviewForm]) -> CycleSummary:
    done = [f for f in forms if f.status in (FORM_SUBMITTED, FORM_APPROVED)]
    return CycleSummary(
        total_forms=len(forms),
        submitted_forms=len(done),
        pending_forms=sum(1 for f in forms if f.status in (FORM_PENDING, FORM_DRAFT)),
        average_rating=average(f.overall_rating for f in done),
    )


def get_cycle(db: Session, caller: Caller, cycle_id: int) -> tuple[ReviewCycle, list[ReviewForm], CycleSummary]:
    assert_role(caller, *PRIVILEGED_ROLES, message="Admin or HR role required")
    c = get_cycle_or_404(db, cycle_id)
    forms = (
        db.query(ReviewForm)
        .filter(ReviewForm.cycle_id == c.id)
        .order_by(ReviewForm.id)
        .all()
    )
    return c, forms, summarize_forms(forms)


def update_cycle(
    db: Session,
    caller: Caller,
    cycle_id: int,
    *,
    name: str | None = None,
    cycle_type: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> ReviewCycle:
    assert_role(caller, ROLE_ADMIN, message="Only admins can update review cycles")
    c = get_cycle_or_404(db, cycle_id)
    if c.status in (CYCLE_LOCKED, CYCLE_COMPLETED):
        raise InvalidStateError(
            f"Cannot update a {c.status} cycle",
            {"cycle_id": c.id, "current_status": c.status},
        )

    before = {
        "name": c.name,
        "cycle_type": c.cycle_type,
        "start_date": str(c.start_date),
        "end_date": str(c.end_date),
    }
    merged_name = name.strip() if name is not None else c.name
    merged_type = cycle_type if cycle_type is not None else c.cycle_type
    merged_start = start_date if start_date is not None else c.start_date
    merged_end = end_date if end_date is not None else c.end_date
    _validate_fields(merged_name, merged_type, merged_start, merged_end)

    c.name = merged_name
    c.cycle_type = merged_type
    c.start_date = merged_start
    c.end_date = merged_end

    after = {
        "name": c.name,
        "cycle_type": c.cycle_type,
        "start_date": str(c.start_date),
        "end_date": str(c.end_date),
    }
    log_event(
        db=db,
        actor=caller,
        action="CYCLE_UPDATED",
        entity_type="review_cycle",
        entity_id=c.id,
        metadata={"before": before, "after": after},
    )
    db.commit()
    return c


def _transition(
    db: Session,
    caller: Caller,
    cycle_id: int,
    *,
    allowed_from: tuple[str, ...],
    to_status: str,
    action: str,
    idempotent: bool = False,
) -> ReviewCycle:
    assert_role(caller, ROLE_ADMIN, message="Admin access required")
    c = (
        db.query(ReviewCycle)
        .filter(ReviewCycle.id == cycle_id)
        .with_for_update()
        .populate_existing()
        .one_or_none()
    )
    if not c:
        raise CycleNotFoundError(cycle_id)

    if idempotent and c.status == to_status:
        return c

    if c.status not in allowed_from:
        raise InvalidStateError(
            f"Cannot move cycle from {c.status} to {to_status}",
            {
                "cycle_id": c.id,
                "current_status": c.status,
                "allowed_from": list(allowed_from),
            },
        )

    from_status = c.status
    c.status = to_status
    log_event(
        db=db,
        actor=caller,
        action=action,
        entity_type="review_cycle",
        entity_id=c.id,
        metadata={"from": from_status, "to": to_status},
    )
    db.commit()
    logger.info(
        "review cycle transition",
        extra={"cycle_id": c.id, "from_status": from_status, "to_status": to_status},
    )
    return c


def activate_cycle(db: Session, caller: Caller, cycle_id: int) -> ReviewCycle:
    return _transition(
        db, caller, cycle_id,
        allowed_from=(CYCLE_DRAFT,),
        to_status=CYCLE_ACTIVE,
        action="CYCLE_ACTIVATED",
        idempotent=True,
    )


def lock_cycle(db: Session, caller: Caller, cycle_id: int) -> ReviewCycle:
    return _transition(
        db, caller, cycle_id,
        allowed_from=(CYCLE_DRAFT, CYCLE_ACTIVE),
        to_status=CYCLE_LOCKED,
        action="CYCLE_LOCKED",
        idempotent=True,
    )


def reopen_cycle(db: Session, caller: Caller, cycle_id: int) -> ReviewCycle:
    return _transition(
        db, caller, cycle_id,
        allowed_from=(CYCLE_LOCKED,),
        to_status=CYCLE_ACTIVE,
        action="CYCLE_REOPENED",
    )


def complete_cycle(db: Session, caller: Caller, cycle_id: int) -> ReviewCycle:
    c = _transition(
        db, caller, cycle_id,
        allowed_from=(CYCLE_ACTIVE, CYCLE_LOCKED),
        to_status=CYCLE_COMPLETED,
        action="CYCLE_COMPLETED",
    )

    reviewer_ids = [
        r[0]
        for r in db.query(ReviewerAssignment.reviewer_id)
        .filter(ReviewerAssignment.cycle_id == c.id)
        .distinct()
        .order_by(ReviewerAssignment.reviewer_id)
        .all()
    ]
    for reviewer_id in reviewer_ids:
        notifications.notify_best_effort(
            db,
            user_id=reviewer_id,
            notification_type=NOTIFY_CYCLE_COMPLETED,
            title="Review Cycle Completed",
            message=f'The review cycle "{c.name}" has been completed',
            related_id=c.id,
        )
    db.commit()
    return c


def delete_cycle(db: Session, caller: Caller, cycle_id: int) -> tuple[ReviewCycle, int, int]:
    """
    Blocked while the cycle holds submitted or approved forms; otherwise the
    cycle goes together with its comments, forms and assignments.
    """
    assert_role(caller, ROLE_ADMIN, message="Only admins can delete review cycles")
    c = get_cycle_or_404(db, cycle_id)

    submitted = (
        db.query(ReviewForm.id)
        .filter(
            ReviewForm.cycle_id == c.id,
            ReviewForm.status.in_((FORM_SUBMITTED, FORM_APPROVED)),
        )
        .count()
    )
    if submitted:
        raise ConflictError(
            "Cannot delete cycle with submitted forms",
            {"cycle_id": c.id, "submitted_forms": submitted},
        )

    form_ids = db.query(ReviewForm.id).filter(ReviewForm.cycle_id == c.id)
    db.query(ReviewComment).filter(ReviewComment.form_id.in_(form_ids.scalar_subquery())).delete(
        synchronize_session=False
    )
    forms_deleted = (
        db.query(ReviewForm).filter(ReviewForm.cycle_id == c.id).delete(synchronize_session=False)
    )
    assignments_deleted = (
        db.query(ReviewerAssignment)
        .filter(ReviewerAssignment.cycle_id == c.id)
        .delete(synchronize_session=False)
    )

    snapshot = {"name": c.name, "status": c.status}
    db.delete(c)
    log_event(
        db=db,
        actor=caller,
        action="CYCLE_DELETED",
        entity_type="review_cycle",
        entity_id=cycle_id,
        metadata={
            **snapshot,
            "forms_deleted": forms_deleted,
            "assignments_deleted": assignments_deleted,
        },
    )
    db.commit()
    logger.info("review cycle deleted", extra={"cycle_id": cycle_id})
    return c, forms_deleted, assignments_deleted
