from app.core.errors import AccessDeniedError
from app.core.security import Caller
from app.models.review_assignment import ReviewerAssignment
from app.models.review_form import ReviewForm


def assert_can_write_form(caller: Caller, assignment: ReviewerAssignment):
    if caller.is_admin_or_hr:
        return
    if caller.id != assignment.reviewer_id:
        raise AccessDeniedError("Only the assigned reviewer can write this review")


def can_read_form(caller: Caller, form: ReviewForm) -> bool:
    return caller.is_admin_or_hr or caller.id in (form.reviewer_id, form.employee_id)


def assert_can_read_form(caller: Caller, form: ReviewForm):
    if not can_read_form(caller, form):
        raise AccessDeniedError("You can only view reviews you wrote or reviews about you")
