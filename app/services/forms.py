"""
Form engine: upsert-on-write review forms.

save_form() is the only write path for form content. All structural checks
(cycle state, backing assignment, access, completeness) run before anything is
written; the write itself happens inside a SAVEPOINT that re-reads the cycle
and form rows FOR UPDATE, so a cycle locked mid-request or a concurrent
submission of the same tuple is seen before commit. Notifications are emitted
after the commit.
"""
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.access import assert_can_read_form, assert_can_write_form
from app.core.audit import log_event
from app.core.errors import (
    ConflictError,
    CycleLockedError,
    CycleNotFoundError,
    FormNotFoundError,
    IncompleteFormError,
    InvalidStateError,
    NotificationError,
    ValidationError,
)
from app.core.ratings import RATING_MAX, RATING_MIN, derive_overall_rating
from app.core.rbac import assert_role
from app.core.security import Caller
from app.core.workflow import (
    CYCLE_WRITABLE_STATUSES,
    FORM_APPROVED,
    FORM_DRAFT,
    FORM_SUBMITTED,
    NOTIFY_DRAFT_SAVED,
    NOTIFY_REVIEW_SUBMITTED,
    PRIVILEGED_ROLES,
    REQUIRED_FOR_SUBMIT,
    REVIEWER_MANAGER,
    ROLE_ADMIN,
)
from app.db.base import utcnow
from app.models.review_comment import ReviewComment
from app.models.review_cycle import ReviewCycle
from app.models.review_form import ReviewForm
from app.schemas.review_form import (
    CONTENT_FIELDS,
    CycleRef,
    ReviewFormDetailOut,
    ReviewFormOut,
    ReviewFormSave,
    SaveFormResult,
)
from app.services import assignments, identity, notifications
from app.services.cycles import get_cycle_or_404

logger = logging.getLogger(__name__)

WARN_EMPLOYEE_NOT_NOTIFIED = "employee_notification_failed"


def form_to_out(f: ReviewForm) -> ReviewFormOut:
    return ReviewFormOut.model_validate(f, from_attributes=True)


def form_to_detail(db: Session, f: ReviewForm) -> ReviewFormDetailOut:
    cycle = db.get(ReviewCycle, f.cycle_id)
    people = identity.lookup_users(db, [f.employee_id, f.reviewer_id])
    return ReviewFormDetailOut(
        **form_to_out(f).model_dump(),
        cycle=CycleRef(
            id=cycle.id,
            name=cycle.name,
            status=cycle.status,
            start_date=str(cycle.start_date),
            end_date=str(cycle.end_date),
        ) if cycle else None,
        employee=people.get(f.employee_id),
        reviewer=people.get(f.reviewer_id),
    )


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def missing_for_submit(view: dict) -> list[str]:
    return [name for name in REQUIRED_FOR_SUBMIT if _is_blank(view.get(name))]


def resolve_status(previous: str | None, requested: str | None) -> str:
    """
    Status a save lands in, given the persisted status (None for a new form)
    and the status the caller asked for.
    """
    if previous == FORM_APPROVED:
        raise InvalidStateError("Approved reviews can no longer be changed", {"current_status": previous})

    if requested == FORM_SUBMITTED:
        return FORM_SUBMITTED
    if requested == FORM_DRAFT:
        if previous == FORM_SUBMITTED:
            raise InvalidStateError(
                "A submitted review cannot be moved back to draft",
                {"current_status": previous},
            )
        return FORM_DRAFT
    # no explicit status: keep submitted forms submitted, everything else is a draft save
    if previous == FORM_SUBMITTED:
        return FORM_SUBMITTED
    return FORM_DRAFT


def _lock_cycle(db: Session, cycle_id: int) -> ReviewCycle:
    c = (
        db.query(ReviewCycle)
        .filter(ReviewCycle.id == cycle_id)
        .with_for_update()
        .populate_existing()
        .one_or_none()
    )
    if not c:
        raise CycleNotFoundError(cycle_id)
    return c


def _lock_form(db: Session, key: dict) -> ReviewForm | None:
    return (
        db.query(ReviewForm)
        .filter_by(**key)
        .with_for_update()
        .populate_existing()
        .one_or_none()
    )


def _build_patch(payload: ReviewFormSave) -> dict:
    """Only the content fields the caller actually sent."""
    patch = {f: getattr(payload, f) for f in CONTENT_FIELDS if f in payload.model_fields_set}

    rating = patch.get("overall_rating")
    if rating is not None and not (RATING_MIN <= rating <= RATING_MAX):
        raise ValidationError(
            f"overall_rating must be between {RATING_MIN} and {RATING_MAX}",
            {"field": "overall_rating", "value": rating},
        )

    if patch.get("kpi_scores") and rating is None:
        derived = derive_overall_rating(patch["kpi_scores"])
        if derived is not None:
            patch["overall_rating"] = derived
    return patch


def save_form(db: Session, caller: Caller, payload: ReviewFormSave) -> SaveFormResult:
    reviewer_id = payload.reviewer_id if payload.reviewer_id is not None else caller.id
    key = {
        "cycle_id": payload.cycle_id,
        "employee_id": payload.employee_id,
        "reviewer_id": reviewer_id,
        "reviewer_type": payload.reviewer_type,
    }
    patch = _build_patch(payload)
    requested = payload.status

    cycle = get_cycle_or_404(db, payload.cycle_id)
    if cycle.status not in CYCLE_WRITABLE_STATUSES:
        raise CycleLockedError(cycle.id, cycle.status)

    assignment = assignments.find_assignment(db, **key)
    assert_can_write_form(caller, assignment)

    form = None
    created = False
    previous = None
    target = None
    for attempt in (1, 2):
        try:
            with db.begin_nested():
                # cycle status as of this write, not as of the start of the request
                cycle = _lock_cycle(db, payload.cycle_id)
                if cycle.status not in CYCLE_WRITABLE_STATUSES:
                    raise CycleLockedError(cycle.id, cycle.status)

                form = _lock_form(db, key)
                previous = form.status if form else None
                target = resolve_status(previous, requested)

                if target == FORM_SUBMITTED:
                    view = {name: getattr(form, name, None) for name in REQUIRED_FOR_SUBMIT} if form else {}
                    view.update({k: v for k, v in patch.items() if k in REQUIRED_FOR_SUBMIT})
                    missing = missing_for_submit(view)
                    if missing:
                        raise IncompleteFormError(missing)

                now = utcnow()
                if form is None:
                    form = ReviewForm(**key, status=target, **patch)
                    form.created_at = now
                    db.add(form)
                    created = True
                else:
                    for name, value in patch.items():
                        setattr(form, name, value)
                    form.status = target
                form.updated_at = now

                if target == FORM_SUBMITTED and previous != FORM_SUBMITTED:
                    form.submitted_at = now
                    assignments.mark_completed(db, **key)

                db.flush()

                log_event(
                    db=db,
                    actor=caller,
                    action="FORM_SUBMITTED" if target == FORM_SUBMITTED and previous != FORM_SUBMITTED else "FORM_SAVED",
                    entity_type="review_form",
                    entity_id=form.id,
                    metadata={
                        "cycle_id": form.cycle_id,
                        "employee_id": form.employee_id,
                        "reviewer_id": form.reviewer_id,
                        "reviewer_type": form.reviewer_type,
                        "from_status": previous,
                        "to_status": target,
                        "fields": sorted(patch),
                    },
                )
            break
        except IntegrityError:
            # lost the insert race for this tuple; go again as an update
            created = False
            if attempt == 2:
                raise ConflictError("Review form was modified concurrently; retry", key)
        except StaleDataError:
            raise ConflictError("Review form was modified concurrently; retry", key)

    db.commit()

    newly_submitted = target == FORM_SUBMITTED and previous != FORM_SUBMITTED
    logger.info(
        "review form saved",
        extra={
            "form_id": form.id,
            "from_status": previous,
            "to_status": target,
            "form_created": created,
        },
    )

    warnings: list[str] = []
    if newly_submitted:
        warnings.extend(_emit_submitted(db, form))
    elif target == FORM_DRAFT:
        employee = identity.lookup_user(db, form.employee_id)
        notifications.notify_best_effort(
            db,
            user_id=form.reviewer_id,
            notification_type=NOTIFY_DRAFT_SAVED,
            title="Review Draft Saved",
            message=f"Your review draft for {employee.name if employee else 'the employee'} has been saved",
            related_id=form.id,
        )
    db.commit()

    return SaveFormResult(form=form_to_out(form), created=created, warnings=warnings)


def _emit_submitted(db: Session, form: ReviewForm) -> list[str]:
    warnings = []
    people = identity.lookup_users(db, [form.employee_id, form.reviewer_id])
    reviewer = people.get(form.reviewer_id)
    employee = people.get(form.employee_id)

    try:
        notifications.notify(
            db,
            user_id=form.employee_id,
            notification_type=NOTIFY_REVIEW_SUBMITTED,
            title="Review Submitted",
            message=f"{reviewer.name if reviewer else 'A reviewer'} has submitted a review for you",
            related_id=form.id,
        )
    except NotificationError:
        logger.warning(
            "employee not notified of submitted review",
            extra={"form_id": form.id, "employee_id": form.employee_id},
            exc_info=True,
        )
        warnings.append(WARN_EMPLOYEE_NOT_NOTIFIED)

    if form.reviewer_type == REVIEWER_MANAGER:
        try:
            recipients = identity.users_with_roles(db, PRIVILEGED_ROLES)
        except SQLAlchemyError:
            logger.warning("manager review broadcast skipped", extra={"form_id": form.id}, exc_info=True)
            recipients = []
        for u in recipients:
            notifications.notify_best_effort(
                db,
                user_id=u.id,
                notification_type=NOTIFY_REVIEW_SUBMITTED,
                title="Manager Review Submitted",
                message=f"Manager review for {employee.name if employee else 'an employee'} has been submitted",
                related_id=form.id,
            )
    return warnings


def get_form_or_404(db: Session, form_id: int) -> ReviewForm:
    f = db.get(ReviewForm, form_id)
    if not f:
        raise FormNotFoundError(form_id)
    return f


def get_form(db: Session, caller: Caller, form_id: int) -> ReviewForm:
    f = get_form_or_404(db, form_id)
    assert_can_read_form(caller, f)
    return f


def list_forms(
    db: Session,
    caller: Caller,
    *,
    cycle_id: int | None = None,
    employee_id: int | None = None,
    reviewer_id: int | None = None,
    status: str | None = None,
    reviewer_type: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[ReviewForm], int]:
    q = db.query(ReviewForm)

    if not caller.is_admin_or_hr:
        q = q.filter(or_(ReviewForm.reviewer_id == caller.id, ReviewForm.employee_id == caller.id))

    if cycle_id is not None:
        q = q.filter(ReviewForm.cycle_id == cycle_id)
    if employee_id is not None:
        q = q.filter(ReviewForm.employee_id == employee_id)
    if reviewer_id is not None:
        q = q.filter(ReviewForm.reviewer_id == reviewer_id)
    if status:
        q = q.filter(ReviewForm.status == status)
    if reviewer_type:
        q = q.filter(ReviewForm.reviewer_type == reviewer_type)

    total = q.count()
    rows = q.order_by(ReviewForm.created_at.desc(), ReviewForm.id.desc()).offset(offset).limit(limit).all()
    return rows, total


def approve_form(db: Session, caller: Caller, form_id: int) -> ReviewForm:
    assert_role(caller, *PRIVILEGED_ROLES, message="Admin or HR role required to approve reviews")
    f = (
        db.query(ReviewForm)
        .filter(ReviewForm.id == form_id)
        .with_for_update()
        .populate_existing()
        .one_or_none()
    )
    if not f:
        raise FormNotFoundError(form_id)

    if f.status == FORM_APPROVED:
        return f
    if f.status != FORM_SUBMITTED:
        raise InvalidStateError(
            "Only submitted reviews can be approved",
            {"form_id": f.id, "current_status": f.status},
        )

    now = utcnow()
    f.status = FORM_APPROVED
    f.approved_at = now
    f.updated_at = now
    try:
        db.flush()
    except StaleDataError:
        raise ConflictError("Review form was modified concurrently; retry", {"form_id": form_id})

    log_event(
        db=db,
        actor=caller,
        action="FORM_APPROVED",
        entity_type="review_form",
        entity_id=f.id,
        metadata={"from_status": FORM_SUBMITTED, "to_status": FORM_APPROVED},
    )
    db.commit()
    logger.info("review form approved", extra={"form_id": f.id})
    return f


def delete_form(db: Session, caller: Caller, form_id: int) -> ReviewForm:
    assert_role(caller, ROLE_ADMIN, message="Only admins can delete reviews")
    f = get_form_or_404(db, form_id)

    db.query(ReviewComment).filter(ReviewComment.form_id == f.id).delete(synchronize_session=False)
    db.delete(f)
    log_event(
        db=db,
        actor=caller,
        action="FORM_DELETED",
        entity_type="review_form",
        entity_id=form_id,
        metadata={
            "cycle_id": f.cycle_id,
            "employee_id": f.employee_id,
            "reviewer_id": f.reviewer_id,
            "reviewer_type": f.reviewer_type,
            "status": f.status,
        },
    )
    db.commit()
    return f
