from sqlalchemy.orm import Session

from app.core.audit import log_event
from app.core.errors import ValidationError
from app.core.rbac import assert_role
from app.core.security import Caller
from app.core.workflow import ROLE_ADMIN, ROLE_HR, ROLE_MANAGER
from app.models.review_comment import ReviewComment
from app.services import identity
from app.services.forms import get_form_or_404

COMMENTER_ROLES = (ROLE_ADMIN, ROLE_HR, ROLE_MANAGER)


def list_comments(db: Session, caller: Caller, form_id: int) -> list[tuple[ReviewComment, object]]:
    assert_role(caller, *COMMENTER_ROLES, message="Only admin, hr or manager can view review comments")
    get_form_or_404(db, form_id)

    rows = (
        db.query(ReviewComment)
        .filter(ReviewComment.form_id == form_id)
        .order_by(ReviewComment.created_at.desc(), ReviewComment.id.desc())
        .all()
    )
    people = identity.lookup_users(db, [c.commenter_id for c in rows])
    return [(c, people.get(c.commenter_id)) for c in rows]


def add_comment(db: Session, caller: Caller, form_id: int, text: str) -> ReviewComment:
    assert_role(caller, *COMMENTER_ROLES, message="Only admin, hr or manager can comment on reviews")
    form = get_form_or_404(db, form_id)

    text = (text or "").strip()
    if not text:
        raise ValidationError("Comment cannot be empty", {"field": "comment"})

    c = ReviewComment(
        form_id=form.id,
        commenter_id=caller.id,
        commenter_role=caller.role,
        comment=text,
    )
    db.add(c)
    db.flush()

    log_event(
        db=db,
        actor=caller,
        action="COMMENT_ADDED",
        entity_type="review_comment",
        entity_id=c.id,
        metadata={"form_id": form.id},
    )
    db.commit()
    return c
